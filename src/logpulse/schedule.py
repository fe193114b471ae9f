"""Once-daily summary gate.

The monitor is invoked every few minutes by an external scheduler. The gate
decides on each invocation whether the daily summary is due:

- never run: seed `last_summary_time` to 24h ago, not due
- before the run time, or already fired today: not due, nothing written
- at/after the run time on a new calendar day: due, `last_summary_time`
  is set to now before the summary runs, so a failing summary is not
  retried until the next day

The window always covers at least a full day: if the previous firing was less
than 22 hours ago, the window starts 24 hours before now instead.

State keys:
- reads `last_summary_time` once
- writes `last_summary_time` at most once (when seeding or firing)
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from logpulse.state import LAST_SUMMARY_TIME, StateStore


logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
MIN_WINDOW = timedelta(hours=22)

DEFAULT_RUN_TIME = (23, 45)

RUN_TIME_PATTERN = re.compile(r'\A\s*(0?\d|1\d|2[0-3]):(0?\d|[1-4]\d|5\d)\s*\Z')


def parse_run_time(value: str | None) -> tuple[int, int]:
    """Parse an HH:MM run time, falling back to 23:45 when invalid."""
    match = RUN_TIME_PATTERN.match(value or '')
    if not match:
        if value:
            logger.warning(f'Invalid run time {value!r}, using {DEFAULT_RUN_TIME[0]}:{DEFAULT_RUN_TIME[1]:02d}')
        return DEFAULT_RUN_TIME
    return int(match.group(1)), int(match.group(2))


@dataclass
class GateDecision:
    is_due: bool
    window_start: datetime
    state: str  # never_run, waiting, due


class ScheduleGate:
    """Debounced, self-correcting once-daily trigger."""

    def __init__(self, store: StateStore, run_time: tuple[int, int] = DEFAULT_RUN_TIME):
        self.store = store
        self.run_hour, self.run_minute = run_time

    def _past_run_time(self, now: datetime) -> bool:
        return (now.hour, now.minute) >= (self.run_hour, self.run_minute)

    def check(self, now: datetime | None = None) -> GateDecision:
        """Decide whether the summary is due and where its window starts."""
        now = now or datetime.now()
        last_summary = self.store.get(LAST_SUMMARY_TIME)

        if last_summary is None:
            seeded = now - ONE_DAY
            self.store.set(LAST_SUMMARY_TIME, seeded)
            logger.debug(f'No previous summary, seeded last summary time to {seeded}')
            return GateDecision(is_due=False, window_start=seeded, state='never_run')

        if not self._past_run_time(now) or last_summary.date() == now.date():
            return GateDecision(is_due=False, window_start=last_summary, state='waiting')

        # Persist before running so a crash doesn't cause retries today
        self.store.set(LAST_SUMMARY_TIME, now)

        window_start = last_summary
        if now - last_summary < MIN_WINDOW:
            window_start = now - ONE_DAY

        logger.info(f'Daily summary due, window {window_start} -> {now}')
        return GateDecision(is_due=True, window_start=window_start, state='due')
