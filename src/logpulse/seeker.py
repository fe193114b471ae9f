"""Locate the start of a summary window inside a log file.

The seeker scans backward from the end of the log and stops at the first
timestamp older than the window start, so finding a daily window costs about
one day of lines instead of a pass over the whole historical log.

The byte offset of each line comes from a cursor strategy chosen once per
reader: readers that track their own position (`pos`) are used as-is, other
reverse readers get their offsets counted from the end of the file.
"""

import logging
import os
from datetime import datetime
from typing import BinaryIO

from logpulse.reverse_reader import DEFAULT_BLOCK_SIZE, ReverseLineReader
from logpulse.timestamps import TimestampParser
from logpulse.utils import NEWLINE_SYMBOL_BYTES


logger = logging.getLogger(__name__)


class NativeCursor:
    """Reads the offset a reader maintains itself."""

    def __init__(self, reader):
        self.reader = reader

    def advance(self, raw_line: bytes) -> int:
        return self.reader.pos


class CountingCursor:
    """Derives line offsets from the bytes a reader has yielded so far.

    Assumes lines are yielded last-first without their separators, and that a
    separator at the very end of the file was not yielded as an empty line.
    """

    def __init__(self, path: str, separator: bytes):
        self.separator = separator
        size = os.path.getsize(path)
        end = size
        if size >= len(separator):
            with open(path, 'rb') as f:
                f.seek(size - len(separator))
                if f.read() == separator:
                    end -= len(separator)
        self._next_end = end

    def advance(self, raw_line: bytes) -> int:
        start = self._next_end - len(raw_line)
        self._next_end = start - len(self.separator)
        return start


def resolve_cursor(reader) -> NativeCursor | CountingCursor:
    """Pick the cursor strategy for a reverse reader."""
    if hasattr(reader, 'pos'):
        return NativeCursor(reader)
    return CountingCursor(reader.path, getattr(reader, 'separator', NEWLINE_SYMBOL_BYTES))


class LogWindowSeeker:
    """Finds the byte offset where lines at or after a timestamp begin.

    Example:
        seeker = LogWindowSeeker('/var/log/apache2/access.log', ClfTimestampParser())
        with seeker.open_window(datetime(2024, 1, 15)) as f:
            for line in f:
                ...
    """

    def __init__(
        self,
        path: str,
        parser: TimestampParser,
        block_size: int = DEFAULT_BLOCK_SIZE,
        reader_factory=None,
    ):
        self.path = path
        self.parser = parser
        self.block_size = block_size
        self.reader_factory = reader_factory or self._default_reader

    def _default_reader(self, path: str):
        return ReverseLineReader(path, block_size=self.block_size)

    def find_offset(self, start: datetime) -> int:
        """Return the offset of the earliest line of the trailing run at or after `start`.

        Returns 0 when no line qualifies (the window predates all data, or
        nothing parses), so the caller reads the whole file.
        """
        reader = self.reader_factory(self.path)
        cursor = resolve_cursor(reader)
        encoding = getattr(reader, 'encoding', 'utf-8')

        offset = None
        lines = reader.raw_lines()
        try:
            for raw in lines:
                line_start = cursor.advance(raw)
                timestamp = self.parser.parse(raw.decode(encoding, errors='replace'))
                if timestamp is None:
                    continue
                if timestamp < start:
                    break
                offset = line_start
        finally:
            lines.close()

        if offset is None:
            logger.debug(f'No line in {self.path} at or after {start}, reading from the beginning')
            return 0

        logger.debug(f'Window starting {start} begins at offset {offset} of {self.path}')
        return offset

    def open_window(self, start: datetime) -> BinaryIO:
        """Open the log positioned at the first line of the window.

        The caller owns the returned handle and reads forward to end of file.
        """
        offset = self.find_offset(start)
        f = open(self.path, 'rb')
        f.seek(offset)
        return f
