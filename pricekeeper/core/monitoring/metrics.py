"""Prometheus metrics for the retention engine."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

_ALLOWED_OUTCOMES = {"success", "retry", "abandoned"}


class CleanupMetrics:
    """Counters and timings describing cleanup cycles."""

    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.buckets_aggregated_total = Counter(
            "pricekeeper_buckets_aggregated_total",
            "Aggregate buckets written, by bucket width in seconds.",
            ("bucket_width",),
            registry=self.registry,
        )
        self.rows_deleted_total = Counter(
            "pricekeeper_rows_deleted_total",
            "Rows removed by retention sweeps, by table and bucket width.",
            ("table", "bucket_width"),
            registry=self.registry,
        )
        self.cycles_total = Counter(
            "pricekeeper_cleanup_cycles_total",
            "Cleanup cycle attempts grouped by outcome.",
            ("outcome",),
            registry=self.registry,
        )
        self.cycle_duration_seconds = Histogram(
            "pricekeeper_cleanup_cycle_duration_seconds",
            "Wall clock duration of successful cleanup cycles.",
            buckets=(0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0, float("inf")),
            registry=self.registry,
        )
        self.compactions_total = Counter(
            "pricekeeper_compactions_total",
            "Storage compactions performed after large cleanups.",
            registry=self.registry,
        )
        self.last_success_timestamp = Gauge(
            "pricekeeper_cleanup_last_success_timestamp_seconds",
            "Unix time of the last successful cleanup cycle.",
            registry=self.registry,
        )

    def record_aggregated(self, bucket_width: int, count: int) -> None:
        if count:
            self.buckets_aggregated_total.labels(bucket_width=str(bucket_width)).inc(count)

    def record_deleted(self, table: str, count: int, bucket_width: int | None = None) -> None:
        if count:
            width = "raw" if bucket_width is None else str(bucket_width)
            self.rows_deleted_total.labels(table=table, bucket_width=width).inc(count)

    def record_cycle(self, outcome: str, duration_seconds: float | None = None, finished_at: int | None = None) -> None:
        """Record one cycle attempt with a constrained outcome label."""

        label = outcome if outcome in _ALLOWED_OUTCOMES else "__other__"
        self.cycles_total.labels(outcome=label).inc()
        if outcome == "success":
            if duration_seconds is not None:
                self.cycle_duration_seconds.observe(duration_seconds)
            if finished_at is not None:
                self.last_success_timestamp.set(finished_at)

    def record_compaction(self) -> None:
        self.compactions_total.inc()

    def render(self) -> bytes:
        """Render metrics in Prometheus exposition format."""

        return generate_latest(self.registry)


_DEFAULT_METRICS: CleanupMetrics | None = None


def get_cleanup_metrics() -> CleanupMetrics:
    """Return the process-wide metrics instance."""

    global _DEFAULT_METRICS
    if _DEFAULT_METRICS is None:
        _DEFAULT_METRICS = CleanupMetrics()
    return _DEFAULT_METRICS


def configure_cleanup_metrics(metrics: CleanupMetrics | None) -> None:
    """Override the process-wide metrics instance for wiring or tests."""

    global _DEFAULT_METRICS
    _DEFAULT_METRICS = metrics


__all__ = ["CleanupMetrics", "get_cleanup_metrics", "configure_cleanup_metrics"]
