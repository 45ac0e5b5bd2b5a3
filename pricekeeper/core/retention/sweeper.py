"""Deletion of expired raw samples and aggregate buckets."""

from __future__ import annotations

import time

from pricekeeper.core.data.storage import AggregateStore, SampleStore
from pricekeeper.core.logging import get_logger

log = get_logger("sweeper")


class RetentionSweeper:
    """Deletes rows that have aged past their retention window."""

    def __init__(self, samples: SampleStore, aggregates: AggregateStore):
        self.samples = samples
        self.aggregates = aggregates

    def sweep_raw(self, cutoff: int) -> int:
        deleted = self.samples.delete_older_than(cutoff)
        log.info("Deleted {} raw samples older than {}", deleted, cutoff)
        return deleted

    def sweep_raw_older_than(self, seconds: int, now: int | None = None) -> int:
        now = int(time.time()) if now is None else now
        return self.sweep_raw(now - seconds)

    def sweep_aggregates(self, bucket_width: int, cutoff: int) -> int:
        deleted = self.aggregates.delete_older_than(bucket_width, cutoff)
        log.info("Deleted {} {}s buckets older than {}", deleted, bucket_width, cutoff)
        return deleted

    def sweep_aggregates_older_than(self, bucket_width: int, seconds: int, now: int | None = None) -> int:
        now = int(time.time()) if now is None else now
        return self.sweep_aggregates(bucket_width, now - seconds)


__all__ = ["RetentionSweeper"]
