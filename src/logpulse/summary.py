"""Daily summary engines.

An engine receives a forward-readable byte stream positioned at the start of
the summary window and returns a rendered report body. The built-in
`RequestSummaryEngine` aggregates common/combined log format requests; any
other `AnalysisEngine` can be injected into the monitor instead.
"""

import logging
import re
import shlex
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO

from logpulse.timestamps import get_parser
from logpulse.utils import human_readable_size


logger = logging.getLogger(__name__)

# "GET /path HTTP/1.1" 200 1234
REQUEST_PATTERN = re.compile(r'"(?P<method>[A-Z]+) (?P<path>\S+)[^"]*" (?P<status>\d{3}) (?P<bytes>\d+|-)')

TIME_FORMAT = '%Y-%m-%d %H:%M:%S'


def analyzer_format_option(log_format: str) -> str:
    """request-log-analyzer option selecting the file format.

    Rails logs use `--format rails`, ISO timestamped logs are left to the
    analyzer's auto detection, everything else is an apache format.
    """
    key = (log_format or '').strip()
    if key.lower() == 'rails':
        return '--format rails'
    if key.lower() == 'iso':
        return ''
    return f'--apache-format {shlex.quote(key)}'


def describe_window(log_path: str, log_format: str, window_start: datetime, window_end: datetime) -> str:
    """Equivalent request-log-analyzer command line for a summary window."""
    parts = [
        'request-log-analyzer',
        f"--after '{window_start.strftime(TIME_FORMAT)}'",
        f"--before '{window_end.strftime(TIME_FORMAT)}'",
        analyzer_format_option(log_format),
        f"'{log_path}'",
    ]
    return ' '.join(part for part in parts if part)


class AnalysisEngine(ABC):
    """Base class for summary engines."""

    @abstractmethod
    def analyze(self, source: BinaryIO, log_format: str, window_start: datetime, window_end: datetime) -> str:
        """Analyze requests in [window_start, window_end) and return a rendered body.

        Args:
            source: Binary stream positioned at the first line of the window
            log_format: Configured log format
            window_start: Inclusive window start
            window_end: Exclusive window end
        """
        pass


@dataclass
class RequestStats:
    total_requests: int = 0
    total_bytes: int = 0
    skipped_lines: int = 0
    status_counts: dict[str, int] = field(default_factory=dict)
    method_counts: dict[str, int] = field(default_factory=dict)
    requests_per_hour: dict[str, int] = field(default_factory=dict)
    top_paths: list[tuple[str, int]] = field(default_factory=list)


class RequestSummaryEngine(AnalysisEngine):
    """Aggregates request counts, status codes, busiest hours and top paths."""

    def __init__(self, top_n: int = 10):
        self.top_n = top_n

    def collect(self, source: BinaryIO, log_format: str, window_start: datetime, window_end: datetime) -> RequestStats:
        parser = get_parser(log_format)
        status_counter = Counter()
        method_counter = Counter()
        hour_counter = Counter()
        path_counter = Counter()
        stats = RequestStats()

        for raw in source:
            line = raw.decode('utf-8', errors='replace')
            timestamp = parser.parse(line)
            if timestamp is None or not (window_start <= timestamp < window_end):
                continue

            match = REQUEST_PATTERN.search(line)
            if not match:
                stats.skipped_lines += 1
                continue

            stats.total_requests += 1
            status_counter[match['status']] += 1
            method_counter[match['method']] += 1
            hour_counter[timestamp.strftime('%Y-%m-%d %H:00')] += 1
            # Query strings would split one endpoint into many entries
            path_counter[match['path'].split('?', 1)[0]] += 1
            if match['bytes'] != '-':
                stats.total_bytes += int(match['bytes'])

        stats.status_counts = dict(sorted(status_counter.items()))
        stats.method_counts = dict(method_counter.most_common())
        stats.requests_per_hour = dict(sorted(hour_counter.items()))
        stats.top_paths = path_counter.most_common(self.top_n)
        return stats

    def analyze(self, source: BinaryIO, log_format: str, window_start: datetime, window_end: datetime) -> str:
        stats = self.collect(source, log_format, window_start, window_end)
        logger.debug(f'Summarized {stats.total_requests} requests ({stats.skipped_lines} unparsed lines)')
        return format_stats_text(stats)


def format_stats_text(stats: RequestStats) -> str:
    """Human-readable request summary."""
    lines = []
    lines.append(f'Requests: {stats.total_requests:,}')
    lines.append(f'Bytes sent: {human_readable_size(stats.total_bytes)}')
    if stats.skipped_lines:
        lines.append(f'Unparsed lines: {stats.skipped_lines:,}')
    lines.append('')

    if stats.status_counts:
        lines.append('Status codes:')
        for status, count in stats.status_counts.items():
            lines.append(f'  {status}  {count:,}')
        lines.append('')

    if stats.method_counts:
        lines.append('Methods:')
        for method, count in stats.method_counts.items():
            lines.append(f'  {method:8s} {count:,}')
        lines.append('')

    if stats.requests_per_hour:
        lines.append('Requests per hour:')
        for hour, count in stats.requests_per_hour.items():
            lines.append(f'  {hour}  {count:,}')
        lines.append('')

    if stats.top_paths:
        lines.append('Top paths:')
        for path, count in stats.top_paths:
            lines.append(f'  {count:>8,}  {path}')

    return '\n'.join(lines).rstrip()
