"""Downsampling of source rows into OHLC buckets."""

from __future__ import annotations

import asyncio

from duckdb import DuckDBPyConnection

from pricekeeper.core.data.storage import AggregateStore, SampleStore
from pricekeeper.core.exceptions import ConsistencyViolation
from pricekeeper.core.logging import get_logger
from pricekeeper.core.models import OHLC, PendingGroup
from pricekeeper.core.retention.tiers import RetentionTier

log = get_logger("aggregator")


class Aggregator:
    """Builds the buckets of one tier from raw samples or from a finer tier.

    Work proceeds in batches of ``batch_size`` groups, each committed as one
    write transaction. Batches are paged by ``(series_id, bucket_start)`` so
    groups that are skipped never stall progress. Running several aggregators
    over the same store at once is safe: every bucket is written at most once.
    """

    def __init__(
        self,
        samples: SampleStore,
        aggregates: AggregateStore,
        *,
        batch_size: int = 100,
        batch_pause: float = 0.1,
    ):
        if samples.db is not aggregates.db:
            raise ValueError("sample and aggregate stores must share one database")
        self.samples = samples
        self.aggregates = aggregates
        self.db = samples.db
        self.batch_size = batch_size
        self.batch_pause = batch_pause

    async def aggregate(self, tier: RetentionTier, now: int) -> int:
        """Aggregate every complete bucket of ``tier`` older than its cutoff. Returns buckets written."""

        cutoff = tier.aggregation_cutoff(now)
        after: tuple[str, int] | None = None
        written_total = 0
        batches = 0
        while True:
            written, fetched, last_key = await asyncio.to_thread(self._process_batch, tier, cutoff, after)
            if not fetched:
                break
            batches += 1
            written_total += written
            after = last_key
            await asyncio.sleep(self.batch_pause)

        log.info(
            "Aggregated {} buckets into tier {} ({} batches, cutoff {})",
            written_total,
            tier.name,
            batches,
            cutoff,
        )
        return written_total

    def _pending(
        self,
        tier: RetentionTier,
        cutoff: int,
        after: tuple[str, int] | None,
        cur: DuckDBPyConnection,
    ) -> list[PendingGroup]:
        if tier.source_width is None:
            return self.samples.pending_groups(
                tier.bucket_width, cutoff, after=after, limit=self.batch_size, cur=cur
            )
        return self.aggregates.pending_groups(
            tier.source_width, tier.bucket_width, cutoff, after=after, limit=self.batch_size, cur=cur
        )

    def _open_close(
        self, tier: RetentionTier, group: PendingGroup, cur: DuckDBPyConnection
    ) -> tuple[float, float] | None:
        end = group.bucket_start + tier.bucket_width
        if tier.source_width is None:
            return self.samples.open_close(group.series_id, group.bucket_start, end, cur=cur)
        return self.aggregates.open_close(
            group.series_id, tier.source_width, group.bucket_start, end, cur=cur
        )

    def _process_batch(
        self, tier: RetentionTier, cutoff: int, after: tuple[str, int] | None
    ) -> tuple[int, int, tuple[str, int] | None]:
        written = 0
        with self.db.write(f"aggregate_{tier.name}") as cur:
            groups = self._pending(tier, cutoff, after, cur)
            for group in groups:
                key = (group.series_id, group.bucket_start, tier.bucket_width)
                bounds = self._open_close(tier, group, cur)
                if bounds is None:
                    continue
                try:
                    ohlc = OHLC(
                        open=bounds[0],
                        high=group.high,
                        low=group.low,
                        close=bounds[1],
                        average=group.average,
                        sample_count=group.sample_count,
                    ).verified(key)
                except ConsistencyViolation as exc:
                    log.bind(error_code=exc.error_code).warning(
                        "Skipping bucket {}: {}", key, exc.message
                    )
                    continue
                if self.aggregates.upsert_if_absent(*key, ohlc, cur=cur):
                    written += 1
        last_key = (groups[-1].series_id, groups[-1].bucket_start) if groups else None
        return written, len(groups), last_key


__all__ = ["Aggregator"]
