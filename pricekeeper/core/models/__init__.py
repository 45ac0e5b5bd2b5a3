"""Core data models."""

from pricekeeper.core.models.price import OHLC, AggregateBucket, PendingGroup, Sample

__all__ = ["Sample", "OHLC", "AggregateBucket", "PendingGroup"]
