"""Tiered retention: aggregation, sweeping, compaction and scheduling."""

from pricekeeper.core.retention.aggregator import Aggregator
from pricekeeper.core.retention.compactor import DEFAULT_VACUUM_THRESHOLD, Compactor
from pricekeeper.core.retention.cycle import CleanupCycle, CycleReport, CycleState
from pricekeeper.core.retention.scheduler import CleanupScheduler
from pricekeeper.core.retention.sweeper import RetentionSweeper
from pricekeeper.core.retention.tiers import DEFAULT_TIERS, RetentionTier, cascade, validate_tiers

__all__ = [
    "Aggregator",
    "RetentionSweeper",
    "Compactor",
    "DEFAULT_VACUUM_THRESHOLD",
    "CleanupCycle",
    "CycleReport",
    "CycleState",
    "CleanupScheduler",
    "RetentionTier",
    "DEFAULT_TIERS",
    "cascade",
    "validate_tiers",
]
