"""Monitoring helpers."""

from pricekeeper.core.monitoring.metrics import (
    CleanupMetrics,
    configure_cleanup_metrics,
    get_cleanup_metrics,
)

__all__ = ["CleanupMetrics", "get_cleanup_metrics", "configure_cleanup_metrics"]
