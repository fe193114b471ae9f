"""One monitor invocation: rate tracking, then the optional daily summary.

The rate tracker always runs first and persists its watermark. The summary
phase is isolated from it: any failure while seeking or analyzing becomes an
ErrorReport in the result and never undoes the rate tracking already done.
"""

import logging
import os
import traceback
from datetime import datetime
from time import time

from logpulse import prometheus as prom
from logpulse.errors import ConfigurationError
from logpulse.models import ErrorReport, InvocationResult, MonitorConfig, SummaryReport
from logpulse.rate import RateTracker
from logpulse.schedule import GateDecision, ScheduleGate, parse_run_time
from logpulse.seeker import LogWindowSeeker
from logpulse.state import LAST_REQUEST_TIME, LAST_RUN_TIME, JsonStateStore, StateStore
from logpulse.summary import AnalysisEngine, RequestSummaryEngine, describe_window
from logpulse.timestamps import TimestampParser, get_parser, get_window_parser


logger = logging.getLogger(__name__)


def validate_config(config: MonitorConfig) -> tuple[TimestampParser, TimestampParser]:
    """Check the configuration and build the live-tail and window parsers.

    Raises:
        ConfigurationError: If the log path is missing or a format is unsupported
    """
    if not config.log or not config.log.strip():
        raise ConfigurationError(
            "A path to the Apache log file wasn't provided. Please provide the full path to the "
            'Apache log file to analyze (ie - /var/www/apps/APP_NAME/log/access_log)'
        )
    try:
        return get_parser(config.format), get_window_parser(config.format, config.seek_format)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


class Monitor:
    """Runs the rate tracker and the daily summary against one access log.

    Example:
        monitor = Monitor(MonitorConfig(log='/var/log/apache2/access.log'))
        result = monitor.run()
        print(result.report.request_rate)
    """

    def __init__(
        self,
        config: MonitorConfig,
        store: StateStore | None = None,
        engine: AnalysisEngine | None = None,
    ):
        self.config = config
        # Validate before touching state so a bad config changes nothing
        self.parser, self.window_parser = validate_config(config)
        self.store = store if store is not None else JsonStateStore(config.state_file)
        self.engine = engine or RequestSummaryEngine()
        self.tracker = RateTracker(config.log, self.parser, self.store, block_size=config.block_size)
        self.gate = ScheduleGate(self.store, parse_run_time(config.rla_run_time))
        self.seeker = LogWindowSeeker(config.log, self.window_parser, block_size=config.block_size)

    def run(self, now: datetime | None = None, previous_run: datetime | None = None) -> InvocationResult:
        """Run one invocation.

        Args:
            now: Current wall-clock time (defaults to datetime.now())
            previous_run: When the previous invocation ran. Falls back to the
                configured `last_run`, then to the time persisted by the
                previous invocation.

        Raises:
            LogReadError: If the log can't be read during rate tracking
        """
        now = now or datetime.now()

        if previous_run is None:
            previous_run = self.config.last_run or self.store.get(LAST_RUN_TIME)

        start_time = time()
        sample, report = self.tracker.track(now, previous_run)
        self.store.set(LAST_RUN_TIME, now)
        watermark = self.store.get(LAST_REQUEST_TIME)
        prom.record_rate_report(
            rate=sample.rate,
            scanned=report.lines_scanned,
            counted=sample.request_count,
            watermark_epoch=watermark.timestamp() if watermark else 0,
            duration=time() - start_time,
        )
        logger.info(
            f'{self.config.log}: {report.request_rate} req/min '
            f'({sample.request_count} requests, {report.lines_scanned} lines scanned)'
        )

        result = InvocationResult(report=report, sample=sample)

        decision = self.gate.check(now)
        if decision.is_due:
            result.summary_due = True
            try:
                result.summary = self.run_summary(decision, now)
            except Exception as e:
                logger.error(f'Daily summary failed: {type(e).__name__}: {e}')
                result.error = ErrorReport(kind=type(e).__name__, message=str(e), trace=traceback.format_exc())
                prom.record_summary('error')

        if self.config.metrics_file:
            self._write_metrics()

        return result

    def run_summary(self, decision: GateDecision, now: datetime) -> SummaryReport:
        """Seek to the window start and hand the segment to the analysis engine."""
        with self.seeker.open_window(decision.window_start) as source:
            offset = source.tell()
            output = self.engine.analyze(source, self.config.format, decision.window_start, now)
            window_bytes = source.seek(0, os.SEEK_END) - offset

        prom.record_summary('success', window_bytes)
        return SummaryReport(
            command=describe_window(self.config.log, self.config.format, decision.window_start, now),
            window_start=decision.window_start,
            window_end=now,
            offset=offset,
            output=output.strip(),
        )

    def _write_metrics(self):
        try:
            prom.write_metrics_textfile(self.config.metrics_file)
        except OSError as e:
            logger.warning(f'Failed to write metrics to {self.config.metrics_file}: {e}')
