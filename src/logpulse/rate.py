"""Incremental request rate tracking.

Each invocation counts only the log lines newer than the persisted watermark
(`last_request_time`), reading the file tail-first and stopping at the first
line that is not newer. Consecutive invocations therefore attribute disjoint
sets of lines, as long as the log is written in time order.

State keys:
- reads `last_request_time` once, before the scan
- writes `last_request_time` once, after the scan completed
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from logpulse.errors import LogReadError
from logpulse.models import RateReport, RateSample
from logpulse.reverse_reader import DEFAULT_BLOCK_SIZE, ReverseLineReader
from logpulse.state import LAST_REQUEST_TIME, StateStore
from logpulse.timestamps import TimestampParser


logger = logging.getLogger(__name__)

# Look back this far when no watermark exists yet
FIRST_RUN_LOOKBACK = timedelta(seconds=60)

# Sub-second intervals (e.g. two back-to-back runs) are clamped to this
MIN_INTERVAL = timedelta(seconds=1)


@dataclass
class ScanResult:
    """Outcome of one reverse scan against a watermark."""

    request_count: int = 0
    lines_scanned: int = 0
    newest_seen: datetime | None = None  # first parsed timestamp, i.e. the newest in the file


def format_rate(rate: float) -> str:
    """Format a rate with two fractional digits."""
    return f'{rate:.2f}'


class RateTracker:
    """Counts new requests in an access log and computes a per-minute rate.

    Example:
        tracker = RateTracker('/var/log/apache2/access.log', ClfTimestampParser(), store)
        sample, report = tracker.track()
        print(report.request_rate)
    """

    def __init__(
        self,
        path: str,
        parser: TimestampParser,
        store: StateStore,
        block_size: int = DEFAULT_BLOCK_SIZE,
    ):
        self.path = path
        self.parser = parser
        self.store = store
        self.block_size = block_size

    def scan(self, watermark: datetime) -> ScanResult:
        """Read lines newest-first until one is not newer than `watermark`.

        Raises:
            LogReadError: If the file can't be opened or read
        """
        result = ScanResult()
        reader = ReverseLineReader(self.path, block_size=self.block_size)
        try:
            for line in reader:
                result.lines_scanned += 1
                timestamp = self.parser.parse(line)
                if timestamp is None:
                    continue
                if result.newest_seen is None:
                    result.newest_seen = timestamp
                if timestamp <= watermark:
                    # Everything before this line is older still
                    break
                result.request_count += 1
        except OSError as e:
            raise LogReadError(self.path, e) from e

        logger.debug(
            f'Scanned {result.lines_scanned} lines of {self.path} in {reader.blocks_read} blocks, '
            f'{result.request_count} newer than {watermark}'
        )
        return result

    def track(self, now: datetime | None = None, previous_run: datetime | None = None) -> tuple[RateSample, RateReport]:
        """Run one rate tracking pass and advance the watermark.

        Args:
            now: Current wall-clock time (defaults to datetime.now())
            previous_run: When the previous invocation ran; the watermark is
                used when unknown

        Returns:
            Tuple of (RateSample, RateReport)

        Raises:
            LogReadError: If the log can't be read. The watermark is not touched.
        """
        now = now or datetime.now()
        stored = self.store.get(LAST_REQUEST_TIME)
        watermark = stored if stored is not None else now - FIRST_RUN_LOOKBACK

        result = self.scan(watermark)

        interval = max(now - (previous_run or watermark), MIN_INTERVAL)
        interval_minutes = interval.total_seconds() / 60
        rate = result.request_count / interval_minutes if result.request_count > 0 else 0.0

        # Never move the watermark backwards; an unparsable tail falls back to now
        if result.newest_seen is not None:
            new_watermark = max(result.newest_seen, watermark)
        else:
            new_watermark = now
        self.store.set(LAST_REQUEST_TIME, new_watermark)

        sample = RateSample(
            request_count=result.request_count,
            interval_minutes=interval_minutes,
            rate=rate,
            newest_request_time=result.newest_seen if result.request_count > 0 else None,
        )
        report = RateReport(request_rate=format_rate(rate), lines_scanned=result.lines_scanned)
        return sample, report
