"""Pydantic models for configuration, reports and invocation results"""

from datetime import datetime

from pydantic import BaseModel, Field

from logpulse.reverse_reader import DEFAULT_BLOCK_SIZE


class MonitorConfig(BaseModel):
    """Options recognized by one monitor invocation.

    Attributes:
        log: Full path to the access log (required, validated by the monitor)
        format: Log format name or apache LogFormat string
        rla_run_time: Daily summary trigger time, HH:MM
        seek_format: Parser used to locate the summary window (defaults to `format`)
        state_file: Where persisted state lives (defaults to the state directory)
        metrics_file: Optional prometheus textfile to write after each invocation
        last_run: When the previous invocation ran (defaults to the persisted run time)
        block_size: Reverse read block size in bytes
    """

    log: str | None = Field(None, description='Full path to the access log file')
    format: str = Field('common', description="Apache log format, e.g. 'common' or '%h %l %u %t \"%r\" %>s %b'")
    rla_run_time: str = Field('23:45', description='Daily summary run time (HH:MM)')
    seek_format: str | None = Field(None, description='Timestamp format used to locate the summary window')
    state_file: str | None = Field(None, description='Path of the persisted state file')
    metrics_file: str | None = Field(None, description='Prometheus textfile collector output path')
    last_run: datetime | None = Field(None, description='Previous invocation time used for the rate interval')
    block_size: int = Field(DEFAULT_BLOCK_SIZE, gt=0, description='Reverse read block size in bytes')


class RateSample(BaseModel):
    """Per-invocation request rate computation (never persisted)"""

    request_count: int = Field(..., description='Requests newer than the previous watermark')
    interval_minutes: float = Field(..., description='Minutes since the previous invocation (clamped to >= 1s)')
    rate: float = Field(..., description='Requests per minute')
    newest_request_time: datetime | None = Field(None, description='Newest counted request, None if nothing counted')


class RateReport(BaseModel):
    """Metrics report emitted on every invocation"""

    request_rate: str = Field(..., description='Requests per minute with two fractional digits')
    lines_scanned: int = Field(..., description='Lines read during the reverse scan')


class SummaryReport(BaseModel):
    """Daily artifact produced when the summary gate fires"""

    command: str = Field(..., description='Equivalent analyzer command line for the window')
    window_start: datetime
    window_end: datetime
    offset: int = Field(..., description='Byte offset in the log where the window starts')
    output: str = Field(..., description='Rendered body returned by the analysis engine')

    def to_cli(self, colorize: bool = False) -> str:
        BOLD = '\033[1m'
        GREY = '\033[90m'
        RESET = '\033[0m'

        lines = []
        if colorize:
            lines.append(f'{BOLD}Daily summary{RESET}')
            lines.append(f'{GREY}{self.command}{RESET}')
        else:
            lines.append('Daily summary')
            lines.append(self.command)
        lines.append(f'Window: {self.window_start:%Y-%m-%d %H:%M:%S} -> {self.window_end:%Y-%m-%d %H:%M:%S}')
        lines.append(f'Offset: {self.offset:,}')
        lines.append('')
        lines.append(self.output)
        return '\n'.join(lines)


class ErrorReport(BaseModel):
    """User-visible error raised during the summary phase"""

    kind: str = Field(..., description='Exception class name')
    message: str
    trace: str = Field('', description='Formatted traceback')

    def to_cli(self, colorize: bool = False) -> str:
        header = f'{self.kind}:  {self.message}'
        if colorize:
            header = f'\033[31m{header}\033[0m'
        return f'{header}\n{self.trace}'.rstrip()


class InvocationResult(BaseModel):
    """Everything one monitor invocation produced"""

    report: RateReport
    sample: RateSample
    summary_due: bool = False
    summary: SummaryReport | None = None
    error: ErrorReport | None = None

    def to_cli(self, colorize: bool = False) -> str:
        GREEN = '\033[32m'
        RESET = '\033[0m'

        rate = f'{GREEN}{self.report.request_rate}{RESET}' if colorize else self.report.request_rate
        lines = [
            f'Request rate: {rate} req/min',
            f'Requests counted: {self.sample.request_count:,}',
            f'Lines scanned: {self.report.lines_scanned:,}',
        ]
        if self.summary is not None:
            lines.append('')
            lines.append(self.summary.to_cli(colorize))
        if self.error is not None:
            lines.append('')
            lines.append(self.error.to_cli(colorize))
        return '\n'.join(lines)
