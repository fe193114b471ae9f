"""Pluggable line -> timestamp parsers.

A parser is selected once from the configured format string. Supporting a new
log format means adding a parser class here and registering it in `PARSERS`,
the scanning code never changes.

Timestamps are naive datetimes in the wall-clock time written in the log. The
CLF zone offset (`+0000`) is matched but not applied: the log is written by the
server on the same host whose clock drives the monitor.
"""

import re
from abc import ABC, abstractmethod
from datetime import datetime


MONTHS = {
    'jan': 1,
    'feb': 2,
    'mar': 3,
    'apr': 4,
    'may': 5,
    'jun': 6,
    'jul': 7,
    'aug': 8,
    'sep': 9,
    'oct': 10,
    'nov': 11,
    'dec': 12,
}


class TimestampParser(ABC):
    """Base class for timestamp extractors.

    Subclasses provide a compiled `pattern` and convert its match into a
    datetime. Lines that don't match, or whose fields don't form a valid
    date, yield None and are never an error.
    """

    pattern: re.Pattern

    @property
    @abstractmethod
    def name(self) -> str:
        """Parser identifier (e.g., 'clf', 'iso')."""
        pass

    @abstractmethod
    def _convert(self, match: re.Match) -> datetime:
        pass

    def parse(self, line: str) -> datetime | None:
        match = self.pattern.search(line)
        if not match:
            return None
        try:
            return self._convert(match)
        except (ValueError, KeyError):
            return None

    __call__ = parse

    def __repr__(self) -> str:
        return f'{type(self).__name__}()'


class ClfTimestampParser(TimestampParser):
    """Apache/NCSA common log format: `[24/Feb/2010:14:04:57 -0800]`."""

    pattern = re.compile(r'(\d{2})/([A-Za-z]{3})/(\d{4}).(\d{2}):(\d{2}):(\d{2})(?: [+-]\d{4})?')

    @property
    def name(self) -> str:
        return 'clf'

    def _convert(self, match: re.Match) -> datetime:
        # strptime with %b is locale dependent and several times slower
        day, month, year, hour, minute, second = match.groups()
        return datetime(int(year), MONTHS[month.lower()], int(day), int(hour), int(minute), int(second))


class IsoTimestampParser(TimestampParser):
    """ISO 8601 style: `2024-01-15T10:30:45` or `2024-01-15 10:30:45`."""

    pattern = re.compile(r'(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2}):(\d{2})')

    @property
    def name(self) -> str:
        return 'iso'

    def _convert(self, match: re.Match) -> datetime:
        return datetime(*(int(g) for g in match.groups()))


class ProcessingMarkerParser(TimestampParser):
    """Request start marker written by Rails-style application logs.

    Matches lines like:
        Processing PostsController#index (for 10.0.0.1 at 2010-02-24 14:04:57) [GET]
    """

    pattern = re.compile(r'\AProcessing .+ at (\d+)-(\d+)-(\d+) (\d+):(\d+):(\d+)\)')

    @property
    def name(self) -> str:
        return 'rails'

    def _convert(self, match: re.Match) -> datetime:
        return datetime(*(int(g) for g in match.groups()))


# Named apache formats all carry the %t field
PARSERS: dict[str, type[TimestampParser]] = {
    'common': ClfTimestampParser,
    'combined': ClfTimestampParser,
    'vhost_combined': ClfTimestampParser,
    'referer': ClfTimestampParser,
    'agent': ClfTimestampParser,
    'clf': ClfTimestampParser,
    'iso': IsoTimestampParser,
    'rails': ProcessingMarkerParser,
}


def get_parser(log_format: str) -> TimestampParser:
    """Select the parser for a configured format.

    Args:
        log_format: A named format ('common', 'combined', 'iso', 'rails', ...)
            or a custom apache LogFormat string such as '%h %l %u %t "%r" %>s %b'

    Returns:
        A parser instance

    Raises:
        ValueError: If the format is neither a known name nor an apache format string
    """
    key = (log_format or '').strip()
    parser_cls = PARSERS.get(key.lower())
    if parser_cls is not None:
        return parser_cls()

    # Custom LogFormat directives render %t in CLF
    if '%t' in key:
        return ClfTimestampParser()

    raise ValueError(f'Unsupported log format: {log_format!r}')


def get_window_parser(log_format: str, seek_format: str | None = None) -> TimestampParser:
    """Select the parser used to locate analysis windows.

    Defaults to the live-tail parser of `log_format` unless a separate
    `seek_format` is configured (e.g. 'rails' for request start markers).
    """
    return get_parser(seek_format or log_format)
