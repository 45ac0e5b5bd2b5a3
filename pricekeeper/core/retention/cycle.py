"""One complete cleanup pass over the store."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from time import perf_counter
from typing import Any

from pricekeeper.core.data.storage import AggregateStore, PriceDatabase, SampleStore
from pricekeeper.core.exceptions import ErrorCode
from pricekeeper.core.logging import get_logger, log_context
from pricekeeper.core.monitoring import CleanupMetrics, get_cleanup_metrics
from pricekeeper.core.patterns import BackoffRetry, RetryConfig
from pricekeeper.core.retention.aggregator import Aggregator
from pricekeeper.core.retention.compactor import DEFAULT_VACUUM_THRESHOLD, Compactor
from pricekeeper.core.retention.sweeper import RetentionSweeper
from pricekeeper.core.retention.tiers import DEFAULT_TIERS, RetentionTier, validate_tiers

log = get_logger("cleanup")


class CycleState(str, Enum):
    """Phases of a cleanup cycle, in execution order."""

    INIT = "INIT"
    AGGREGATE_TIER = "AGGREGATE_TIER"
    SWEEP_RAW = "SWEEP_RAW"
    SWEEP_TIER = "SWEEP_TIER"
    MAYBE_COMPACT = "MAYBE_COMPACT"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class CycleReport:
    """What one cycle attempt did, and how far it got."""

    now: int
    attempt: int = 1
    state: CycleState = CycleState.INIT
    tier_index: int | None = None
    aggregated: dict[str, int] = field(default_factory=dict)
    deleted_raw: int = 0
    deleted: dict[str, int] = field(default_factory=dict)
    compacted: bool = False
    duration_seconds: float = 0.0
    failed_in: str | None = None
    error: str | None = None

    @property
    def state_label(self) -> str:
        if self.tier_index is not None:
            return f"{self.state.value}_{self.tier_index}"
        return self.state.value

    @property
    def total_deleted(self) -> int:
        return self.deleted_raw + sum(self.deleted.values())

    @property
    def succeeded(self) -> bool:
        return self.state is CycleState.DONE

    def enter(self, state: CycleState, tier_index: int | None = None) -> None:
        self.state = state
        self.tier_index = tier_index

    def fail(self, exc: BaseException) -> None:
        self.failed_in = self.state_label
        self.error = f"{type(exc).__name__}: {exc}"
        self.enter(CycleState.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "now": self.now,
            "attempt": self.attempt,
            "state": self.state_label,
            "aggregated": dict(self.aggregated),
            "deleted_raw": self.deleted_raw,
            "deleted": dict(self.deleted),
            "total_deleted": self.total_deleted,
            "compacted": self.compacted,
            "duration_seconds": round(self.duration_seconds, 3),
            "failed_in": self.failed_in,
            "error": self.error,
        }


class CleanupCycle:
    """Aggregates every tier, sweeps raw and expired buckets, then maybe compacts.

    A single ``now`` is taken at the start of each attempt and used by every
    phase, so the raw sweep never removes samples newer than the first tier's
    aggregation cutoff.
    """

    def __init__(
        self,
        db: PriceDatabase,
        tiers: Sequence[RetentionTier] = DEFAULT_TIERS,
        *,
        batch_size: int = 100,
        batch_pause: float = 0.1,
        vacuum_threshold: int = DEFAULT_VACUUM_THRESHOLD,
        metrics: CleanupMetrics | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.tiers = validate_tiers(tiers)
        self.samples = SampleStore(db)
        self.aggregates = AggregateStore(db)
        self.aggregator = Aggregator(
            self.samples, self.aggregates, batch_size=batch_size, batch_pause=batch_pause
        )
        self.sweeper = RetentionSweeper(self.samples, self.aggregates)
        self.compactor = Compactor(db, vacuum_threshold)
        self.metrics = metrics or get_cleanup_metrics()
        self._clock = clock or time.time
        self.last_report: CycleReport | None = None

    async def run_once(self, now: int | None = None, attempt: int = 1) -> CycleReport:
        """Run every phase once. Any failure marks the report failed and propagates."""

        now = int(self._clock()) if now is None else now
        report = CycleReport(now=now, attempt=attempt)
        self.last_report = report
        started = perf_counter()
        try:
            for index, tier in enumerate(self.tiers, start=1):
                report.enter(CycleState.AGGREGATE_TIER, index)
                written = await self.aggregator.aggregate(tier, now)
                report.aggregated[tier.name] = written
                self.metrics.record_aggregated(tier.bucket_width, written)

            report.enter(CycleState.SWEEP_RAW)
            raw_cutoff = self.tiers[0].aggregation_cutoff(now)
            report.deleted_raw = await asyncio.to_thread(self.sweeper.sweep_raw, raw_cutoff)
            self.metrics.record_deleted("price_samples", report.deleted_raw)

            for index, tier in enumerate(self.tiers, start=1):
                report.enter(CycleState.SWEEP_TIER, index)
                deleted = await asyncio.to_thread(
                    self.sweeper.sweep_aggregates, tier.bucket_width, tier.expiry_cutoff(now)
                )
                report.deleted[tier.name] = deleted
                self.metrics.record_deleted("price_aggregates", deleted, tier.bucket_width)

            report.enter(CycleState.MAYBE_COMPACT)
            report.compacted = await asyncio.to_thread(
                self.compactor.compact_if_threshold_exceeded, report.total_deleted
            )
            if report.compacted:
                self.metrics.record_compaction()
        except Exception as exc:
            report.fail(exc)
            report.duration_seconds = perf_counter() - started
            log.bind(error_code=getattr(exc, "error_code", None)).error(
                "Cleanup attempt {} failed during {}: {}", attempt, report.failed_in, exc
            )
            raise

        report.enter(CycleState.DONE)
        report.duration_seconds = perf_counter() - started
        log.info(
            "Cleanup finished in {:.2f}s: aggregated {}, deleted {} raw and {} buckets, compacted={}",
            report.duration_seconds,
            report.aggregated,
            report.deleted_raw,
            report.deleted,
            report.compacted,
        )
        return report

    async def run(self, max_attempts: int = 3, retry_delay: float = 30.0) -> CycleReport:
        """Run the cycle, retrying the whole of it with a fixed delay.

        When every attempt fails the cycle is abandoned: the failure is logged
        together with what the last attempt completed, and its failed report
        is returned.
        """

        retry = BackoffRetry(
            RetryConfig(
                max_attempts=max_attempts,
                base_delay=retry_delay,
                multiplier=1.0,
                retry_on_exceptions=[Exception],
            )
        )
        attempts = 0

        with log_context() as trace_id:

            async def attempt_cycle() -> CycleReport:
                nonlocal attempts
                attempts += 1
                with log_context(trace_id=trace_id, cycle_attempt=attempts):
                    try:
                        return await self.run_once(attempt=attempts)
                    except Exception:
                        if attempts < max_attempts:
                            self.metrics.record_cycle("retry")
                        raise

            try:
                report = await retry.execute(attempt_cycle)
            except Exception as exc:
                report = self.last_report or CycleReport(now=int(self._clock()), attempt=attempts)
                if report.state is not CycleState.FAILED:
                    report.fail(exc)
                log.bind(error_code=ErrorCode.CYCLE_ABANDONED.value).error(
                    "Abandoning cleanup after {} attempts; last attempt completed {}",
                    attempts,
                    report.to_dict(),
                )
                self.metrics.record_cycle("abandoned")
                return report

        self.metrics.record_cycle("success", report.duration_seconds, report.now)
        return report


__all__ = ["CleanupCycle", "CycleReport", "CycleState"]
