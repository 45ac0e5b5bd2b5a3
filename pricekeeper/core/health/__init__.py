"""Health monitoring and status checking."""

from pricekeeper.core.health.checker import MAX_CONSECUTIVE_FAILURES, CleanupHealth

__all__ = ["CleanupHealth", "MAX_CONSECUTIVE_FAILURES"]
