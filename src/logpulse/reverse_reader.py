"""Backward (tail-first) line reader.

Reads a text file from its end toward its start in fixed-size blocks, so the
newest lines of an append-only log are available without loading the whole
file into memory.

Key behaviors:
- Lines are yielded last-first, without their line separator
- A trailing separator at end of file does not produce an empty line
- Fragments split across block boundaries are stitched before being yielded
- After each yielded line, `pos` holds the byte offset where that line starts
  in the forward file, so a forward read can resume from exactly that point
"""

import logging
import os
from collections.abc import Iterator

from logpulse.utils import NEWLINE_SYMBOL_BYTES


logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 8192


class ReverseLineReader:
    """Lazy reverse iterator over the lines of a file.

    The sequence is finite and non-restartable: each call to `raw_lines()` or
    `iter()` opens the file, and the handle is released when the generator is
    exhausted, closed, or garbage collected.

    Example:
        reader = ReverseLineReader('/var/log/apache2/access.log')
        for line in reader:
            if line.startswith('10.0.0.1'):
                print(reader.pos)
                break
    """

    def __init__(
        self,
        path: str,
        block_size: int = DEFAULT_BLOCK_SIZE,
        separator: bytes = NEWLINE_SYMBOL_BYTES,
        encoding: str = 'utf-8',
    ):
        if block_size <= 0:
            raise ValueError(f'block_size must be positive, got {block_size}')
        if not separator:
            raise ValueError('separator must not be empty')
        self.path = path
        self.block_size = block_size
        self.separator = separator
        self.encoding = encoding
        self.pos: int | None = None  # start offset of the last yielded line
        self.blocks_read = 0
        self._started = False

    def __iter__(self) -> Iterator[str]:
        for raw in self.raw_lines():
            yield raw.decode(self.encoding, errors='replace')

    def raw_lines(self) -> Iterator[bytes]:
        """Yield raw line bytes from the last line to the first."""
        if self._started:
            raise RuntimeError(f'ReverseLineReader for {self.path} has already been consumed')
        self._started = True

        sep = self.separator
        with open(self.path, 'rb') as f:
            f.seek(0, os.SEEK_END)
            end = f.tell()

            # A separator right at EOF terminates the last line, it doesn't start a new one
            if end >= len(sep):
                f.seek(end - len(sep))
                if f.read(len(sep)) == sep:
                    end -= len(sep)

            cursor = end
            carry = b''
            while cursor > 0:
                size = min(self.block_size, cursor)
                cursor -= size
                f.seek(cursor)
                data = f.read(size) + carry
                self.blocks_read += 1

                pieces = data.split(sep)
                # The earliest piece may continue in the previous block
                carry = pieces.pop(0) if cursor > 0 else b''

                piece_end = cursor + len(data)
                for piece in reversed(pieces):
                    start = piece_end - len(piece)
                    self.pos = start
                    yield piece
                    piece_end = start - len(sep)

        logger.debug(f'Reverse scan of {self.path} finished after {self.blocks_read} blocks')
