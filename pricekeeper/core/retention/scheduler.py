"""Background task running cleanup cycles on a fixed interval."""

from __future__ import annotations

import asyncio

from pricekeeper.core.exceptions import ConfigurationError
from pricekeeper.core.health import CleanupHealth
from pricekeeper.core.logging import get_logger
from pricekeeper.core.retention.cycle import CleanupCycle, CycleReport

log = get_logger("scheduler")


class CleanupScheduler:
    """Runs ``cycle`` after ``initial_delay`` and then every ``interval`` seconds.

    Cycles never overlap. Retries of a failing cycle happen inside its slot;
    the next slot stays on the fixed schedule. Stopping waits for a running
    cycle to finish rather than cancelling it.
    """

    def __init__(
        self,
        cycle: CleanupCycle,
        *,
        interval: float = 86400.0,
        initial_delay: float = 30.0,
        max_attempts: int = 3,
        retry_delay: float = 30.0,
        health: CleanupHealth | None = None,
    ):
        if interval <= 0:
            raise ConfigurationError(
                "cleanup interval must be positive", details={"interval": interval}
            )
        self.cycle = cycle
        self.interval = interval
        self.initial_delay = initial_delay
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.health = health or CleanupHealth(interval=interval)
        self._run_lock = asyncio.Lock()
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def last_run_at(self) -> int | None:
        return self.health.last_run_at

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> CycleReport:
        """Run one cycle with retries and record the outcome in ``health``."""

        async with self._run_lock:
            report = await self.cycle.run(self.max_attempts, self.retry_delay)
        if report.succeeded:
            self.health.record_success(report)
        else:
            self.health.record_failure(report)
        return report

    def start(self) -> asyncio.Task[None]:
        if self.running:
            assert self._task is not None
            return self._task
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name="pricekeeper-cleanup")
        log.info(
            "Cleanup scheduled every {}s, first run in {}s", self.interval, self.initial_delay
        )
        return self._task

    async def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        log.info("Cleanup scheduler stopped")

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_slot = loop.time() + self.initial_delay
        while not await self._wait_until(next_slot):
            next_slot += self.interval
            try:
                await self.run_once()
            except Exception:
                log.exception("Unexpected error in cleanup slot")
            # Slots missed while a cycle overran are skipped, not run back to back.
            while next_slot <= loop.time():
                next_slot += self.interval

    async def _wait_until(self, deadline: float) -> bool:
        """Sleep until ``deadline``; returns True if a stop was requested first."""

        assert self._stop_event is not None
        timeout = max(0.0, deadline - asyncio.get_running_loop().time())
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True


__all__ = ["CleanupScheduler"]
