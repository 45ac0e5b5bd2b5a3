from __future__ import annotations

import asyncio

import pytest

from pricekeeper.core.data.storage import PriceDatabase
from pricekeeper.core.exceptions import ConfigurationError, StorageError
from pricekeeper.core.monitoring import CleanupMetrics
from pricekeeper.core.retention import CleanupCycle, CleanupScheduler


def _scheduler(db: PriceDatabase, metrics: CleanupMetrics, **kwargs) -> CleanupScheduler:
    cycle = CleanupCycle(db, batch_pause=0.0, metrics=metrics)
    kwargs.setdefault("retry_delay", 0.0)
    return CleanupScheduler(cycle, **kwargs)


@pytest.mark.asyncio
async def test_run_once_records_last_run(db: PriceDatabase, metrics: CleanupMetrics) -> None:
    scheduler = _scheduler(db, metrics)
    assert scheduler.last_run_at is None

    report = await scheduler.run_once()

    assert report.succeeded
    assert scheduler.last_run_at is not None
    assert scheduler.health.last_success_at == scheduler.last_run_at
    assert scheduler.health.consecutive_failures == 0
    assert scheduler.health.last_report is report


@pytest.mark.asyncio
async def test_abandoned_cycles_count_as_failures(
    db: PriceDatabase, metrics: CleanupMetrics, monkeypatch: pytest.MonkeyPatch
) -> None:
    scheduler = _scheduler(db, metrics, max_attempts=2)

    def broken_sweep(cutoff: int) -> int:
        raise StorageError("disk full")

    monkeypatch.setattr(scheduler.cycle.sweeper, "sweep_raw", broken_sweep)

    for _ in range(4):
        report = await scheduler.run_once()
        assert not report.succeeded

    assert scheduler.health.consecutive_failures == 4
    assert scheduler.health.last_success_at is None
    assert scheduler.health.is_healthy() is False


@pytest.mark.asyncio
async def test_background_task_runs_first_cycle_after_initial_delay(
    db: PriceDatabase, metrics: CleanupMetrics
) -> None:
    scheduler = _scheduler(db, metrics, initial_delay=0.0, interval=3600.0)

    task = scheduler.start()
    assert scheduler.start() is task
    for _ in range(200):
        if scheduler.last_run_at is not None:
            break
        await asyncio.sleep(0.01)
    await scheduler.stop()

    assert scheduler.last_run_at is not None
    assert task.done()
    assert not scheduler.running


@pytest.mark.asyncio
async def test_stop_before_first_slot_skips_cycle(db: PriceDatabase, metrics: CleanupMetrics) -> None:
    scheduler = _scheduler(db, metrics, initial_delay=3600.0)

    scheduler.start()
    await asyncio.sleep(0)
    await scheduler.stop()

    assert scheduler.last_run_at is None


@pytest.mark.asyncio
async def test_stop_waits_for_running_cycle(
    db: PriceDatabase, metrics: CleanupMetrics, monkeypatch: pytest.MonkeyPatch
) -> None:
    scheduler = _scheduler(db, metrics, initial_delay=0.0)
    started = asyncio.Event()
    original = scheduler.cycle.run

    async def slow_run(max_attempts: int, retry_delay: float):
        started.set()
        await asyncio.sleep(0.05)
        return await original(max_attempts, retry_delay)

    monkeypatch.setattr(scheduler.cycle, "run", slow_run)

    scheduler.start()
    await started.wait()
    await scheduler.stop()

    assert scheduler.last_run_at is not None


@pytest.mark.parametrize("interval", [0.0, -60.0])
def test_non_positive_interval_is_rejected(db: PriceDatabase, metrics: CleanupMetrics, interval: float) -> None:
    with pytest.raises(ConfigurationError):
        _scheduler(db, metrics, interval=interval)
