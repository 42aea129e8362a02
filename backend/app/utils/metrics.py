"""Prometheus metrics for completion calls and report jobs."""

from prometheus_client import Counter, Histogram

# Completion API metrics
completion_latency_ms = Histogram(
    "completion_latency_ms",
    "Completion API attempt latency in milliseconds",
    ["purpose", "outcome"],
    buckets=[100, 250, 500, 1000, 2000, 4000, 8000, 15000, 30000],
)

completion_errors_total = Counter(
    "completion_errors_total",
    "Total completion API errors",
    ["purpose", "reason"],
)

# Report pipeline metrics
report_jobs_total = Counter(
    "report_jobs_total",
    "Background report jobs by final status",
    ["status"],
)

chunk_summary_failures_total = Counter(
    "chunk_summary_failures_total",
    "Chunks whose summarization fell back to an error placeholder",
)


class PrometheusCompletionMetrics:
    """Prometheus-based completion metrics implementation."""

    def record_latency(self, purpose: str, outcome: str, latency_ms: float) -> None:
        """Record completion attempt latency."""
        completion_latency_ms.labels(purpose=purpose, outcome=outcome).observe(latency_ms)

    def inc_error(self, purpose: str, reason: str) -> None:
        """Increment error counter."""
        completion_errors_total.labels(purpose=purpose, reason=reason).inc()
