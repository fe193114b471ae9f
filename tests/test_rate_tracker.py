"""Tests for incremental request rate tracking."""

import os
from datetime import datetime, timedelta

import pytest

from logpulse.errors import LogReadError
from logpulse.rate import RateTracker, format_rate
from logpulse.state import LAST_REQUEST_TIME, MemoryStateStore
from logpulse.timestamps import ClfTimestampParser


def minutes(start: datetime, count: int, step: int = 1) -> list[datetime]:
    return [start + timedelta(minutes=i * step) for i in range(count)]


class TestScan:
    def test_counts_only_newer_lines(self, access_log):
        base = datetime(2024, 1, 15, 10, 1)
        path = access_log(minutes(base, 10))  # 10:01 .. 10:10
        tracker = RateTracker(path, ClfTimestampParser(), MemoryStateStore())

        result = tracker.scan(datetime(2024, 1, 15, 10, 7))

        assert result.request_count == 3  # 10:08, 10:09, 10:10
        assert result.newest_seen == datetime(2024, 1, 15, 10, 10)
        # Stops at the first line that isn't newer, which is still read
        assert result.lines_scanned == 4

    def test_unparsable_lines_are_scanned_not_counted(self, temp_dir, clf_line):
        path = os.path.join(temp_dir, 'access.log')
        with open(path, 'w') as f:
            f.write(clf_line(datetime(2024, 1, 15, 10, 0)))
            f.write('garbage line\n')
            f.write(clf_line(datetime(2024, 1, 15, 10, 5)))
            f.write('another garbage line\n')

        tracker = RateTracker(path, ClfTimestampParser(), MemoryStateStore())
        result = tracker.scan(datetime(2024, 1, 15, 10, 1))

        assert result.request_count == 1
        assert result.lines_scanned == 4

    def test_empty_file(self, access_log):
        path = access_log([])
        tracker = RateTracker(path, ClfTimestampParser(), MemoryStateStore())

        result = tracker.scan(datetime(2024, 1, 15))

        assert result.request_count == 0
        assert result.lines_scanned == 0
        assert result.newest_seen is None


class TestTrack:
    def test_rate_over_interval(self, access_log):
        base = datetime(2024, 1, 15, 10, 0)
        path = access_log([base + timedelta(seconds=10 * i) for i in range(1, 31)])  # 30 lines in 5 minutes
        store = MemoryStateStore({LAST_REQUEST_TIME: base})
        tracker = RateTracker(path, ClfTimestampParser(), store)

        sample, report = tracker.track(now=base + timedelta(minutes=5))

        assert sample.request_count == 30
        assert sample.interval_minutes == pytest.approx(5.0)
        assert sample.rate == pytest.approx(6.0)
        assert report.request_rate == '6.00'
        assert report.lines_scanned == 30
        assert store.get(LAST_REQUEST_TIME) == base + timedelta(minutes=5)

    def test_previous_run_sets_interval(self, access_log):
        base = datetime(2024, 1, 15, 10, 0)
        path = access_log(minutes(base + timedelta(minutes=1), 4))
        store = MemoryStateStore({LAST_REQUEST_TIME: base})
        tracker = RateTracker(path, ClfTimestampParser(), store)

        sample, report = tracker.track(now=base + timedelta(minutes=10), previous_run=base + timedelta(minutes=8))

        assert sample.interval_minutes == pytest.approx(2.0)
        assert report.request_rate == '2.00'

    def test_sub_second_interval_is_clamped(self, access_log):
        """Test that back-to-back runs divide by one second, not by ~zero."""
        now = datetime(2024, 1, 15, 10, 0, 0)
        path = access_log([now])
        store = MemoryStateStore({LAST_REQUEST_TIME: now - timedelta(seconds=5)})
        tracker = RateTracker(path, ClfTimestampParser(), store)

        sample, report = tracker.track(now=now, previous_run=now - timedelta(microseconds=10))

        assert sample.interval_minutes == pytest.approx(1 / 60)
        assert sample.rate == pytest.approx(60.0)
        assert report.request_rate == '60.00'

    def test_no_new_lines_is_idempotent(self, access_log):
        base = datetime(2024, 1, 15, 10, 0)
        path = access_log(minutes(base, 5))
        store = MemoryStateStore()
        tracker = RateTracker(path, ClfTimestampParser(), store)

        tracker.track(now=base + timedelta(minutes=5))
        watermark = store.get(LAST_REQUEST_TIME)
        sample, report = tracker.track(now=base + timedelta(minutes=10))

        assert sample.request_count == 0
        assert sample.rate == 0
        assert sample.newest_request_time is None
        assert report.request_rate == '0.00'
        assert store.get(LAST_REQUEST_TIME) == watermark

    def test_first_run_looks_back_one_minute(self, access_log):
        now = datetime(2024, 1, 15, 10, 0, 0)
        path = access_log([now - timedelta(seconds=s) for s in (120, 90, 45, 30, 5)])
        store = MemoryStateStore()
        tracker = RateTracker(path, ClfTimestampParser(), store)

        sample, _ = tracker.track(now=now)

        assert sample.request_count == 3
        assert store.get(LAST_REQUEST_TIME) == now - timedelta(seconds=5)

    def test_unparsable_log_moves_watermark_to_now(self, temp_dir):
        path = os.path.join(temp_dir, 'access.log')
        with open(path, 'w') as f:
            f.write('nothing to see\n')
        store = MemoryStateStore({LAST_REQUEST_TIME: datetime(2024, 1, 15, 9, 0)})
        tracker = RateTracker(path, ClfTimestampParser(), store)
        now = datetime(2024, 1, 15, 10, 0)

        sample, report = tracker.track(now=now)

        assert sample.request_count == 0
        assert report.lines_scanned == 1
        assert store.get(LAST_REQUEST_TIME) == now

    def test_read_error_leaves_state_untouched(self, temp_dir):
        watermark = datetime(2024, 1, 15, 9, 0)
        store = MemoryStateStore({LAST_REQUEST_TIME: watermark})
        tracker = RateTracker(os.path.join(temp_dir, 'missing.log'), ClfTimestampParser(), store)

        with pytest.raises(LogReadError) as exc_info:
            tracker.track(now=datetime(2024, 1, 15, 10, 0))

        assert isinstance(exc_info.value.cause, FileNotFoundError)
        assert store.get(LAST_REQUEST_TIME) == watermark
        assert store.writes == 0


class TestAccounting:
    """Consecutive invocations attribute disjoint, exhaustive sets of lines."""

    def test_sum_over_invocations_matches_window(self, access_log, append_lines):
        t0 = datetime(2024, 1, 15, 10, 0)
        path = access_log([])
        store = MemoryStateStore({LAST_REQUEST_TIME: t0})
        tracker = RateTracker(path, ClfTimestampParser(), store, block_size=64)

        # Lines arrive every 20 seconds; invocations every 5 minutes
        all_times = [t0 - timedelta(minutes=3) + timedelta(seconds=20 * i) for i in range(100)]
        written = 0
        total = 0
        for n in range(1, 7):
            now = t0 + timedelta(minutes=5 * n)
            new_times = [t for t in all_times[written:] if t <= now]
            append_lines(path, new_times)
            written += len(new_times)
            sample, _ = tracker.track(now=now)
            total += sample.request_count

        tn = t0 + timedelta(minutes=30)
        expected = sum(1 for t in all_times if t0 < t <= tn)
        assert total == expected

    def test_end_to_end_scenario(self, access_log, append_lines):
        """Ten lines 10:01..10:10, first run at 10:11, one new line, second run at 10:12."""
        base = datetime(2024, 1, 15, 10, 1)
        path = access_log(minutes(base, 10))
        store = MemoryStateStore()
        tracker = RateTracker(path, ClfTimestampParser(), store)

        first, _ = tracker.track(now=datetime(2024, 1, 15, 10, 11))
        assert first.request_count == 0
        assert store.get(LAST_REQUEST_TIME) == datetime(2024, 1, 15, 10, 10)

        append_lines(path, [datetime(2024, 1, 15, 10, 11)])
        second, report = tracker.track(now=datetime(2024, 1, 15, 10, 12), previous_run=datetime(2024, 1, 15, 10, 11))

        assert second.request_count == 1
        assert second.newest_request_time == datetime(2024, 1, 15, 10, 11)
        # One request over the minute since the 10:11 invocation
        assert second.interval_minutes == 1.0
        assert report.request_rate == '1.00'

    def test_unknown_previous_run_falls_back_to_watermark(self, access_log):
        path = access_log([datetime(2024, 1, 15, 10, 11)])
        store = MemoryStateStore({LAST_REQUEST_TIME: datetime(2024, 1, 15, 10, 10)})
        tracker = RateTracker(path, ClfTimestampParser(), store)

        sample, _ = tracker.track(now=datetime(2024, 1, 15, 10, 12))

        assert sample.interval_minutes == 2.0


def test_format_rate():
    assert format_rate(0) == '0.00'
    assert format_rate(1 / 3) == '0.33'
    assert format_rate(12.5) == '12.50'
