"""Prometheus metrics for logpulse.

Metrics live in a dedicated registry because each invocation is a short-lived
process: the values are exported through the node-exporter textfile collector
(`write_metrics_textfile`) rather than an HTTP endpoint.
"""

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, write_to_textfile

registry = CollectorRegistry()

# ============================================================================
# Rate Metrics
# ============================================================================

request_rate = Gauge('logpulse_request_rate', 'Requests per minute since the previous invocation', registry=registry)

lines_scanned = Gauge('logpulse_lines_scanned', 'Lines read during the last reverse scan', registry=registry)

requests_counted = Gauge(
    'logpulse_requests_counted', 'Requests newer than the previous watermark', registry=registry
)

last_request_timestamp = Gauge(
    'logpulse_last_request_timestamp_seconds',
    'Unix time of the rate tracker watermark',
    registry=registry,
)

scan_duration_seconds = Histogram(
    'logpulse_scan_duration_seconds',
    'Time spent in the reverse scan',
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
    # 1ms to 30s - a few minutes of log tail is usually well under a second
    registry=registry,
)


# ============================================================================
# Summary Metrics
# ============================================================================

summary_runs_total = Counter(
    'logpulse_summary_runs_total',
    'Daily summary runs by outcome',
    ['status'],  # success, error
    registry=registry,
)

summary_window_bytes = Gauge(
    'logpulse_summary_window_bytes', 'Bytes between the summary window start and end of file', registry=registry
)


# ============================================================================
# Helper Functions
# ============================================================================


def record_rate_report(rate: float, scanned: int, counted: int, watermark_epoch: float, duration: float):
    """
    Record metrics for one rate tracker pass.

    Args:
        rate: Requests per minute
        scanned: Lines read
        counted: Requests counted
        watermark_epoch: New watermark as unix time
        duration: Scan duration in seconds
    """
    request_rate.set(rate)
    lines_scanned.set(scanned)
    requests_counted.set(counted)
    last_request_timestamp.set(watermark_epoch)
    scan_duration_seconds.observe(duration)


def record_summary(status: str, window_bytes: int | None = None):
    """Record the outcome of a daily summary run ('success' or 'error')."""
    summary_runs_total.labels(status=status).inc()
    if window_bytes is not None:
        summary_window_bytes.set(window_bytes)


def write_metrics_textfile(path: str):
    """Write the registry in text exposition format for the textfile collector."""
    write_to_textfile(path, registry)
