"""Health state of the background cleanup service."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pricekeeper.core.retention.cycle import CycleReport

MAX_CONSECUTIVE_FAILURES = 3


@dataclass
class CleanupHealth:
    """Tracks cleanup outcomes for an external health endpoint.

    The service is unhealthy after more than three consecutive abandoned
    cycles, or once the last success is older than two scheduling intervals.
    """

    interval: float = 86400.0
    last_run_at: int | None = None
    last_success_at: int | None = None
    consecutive_failures: int = 0
    last_report: CycleReport | None = None

    def record_success(self, report: CycleReport, finished_at: int | None = None) -> None:
        finished_at = int(time.time()) if finished_at is None else finished_at
        self.last_run_at = finished_at
        self.last_success_at = finished_at
        self.consecutive_failures = 0
        self.last_report = report

    def record_failure(self, report: CycleReport | None, finished_at: int | None = None) -> None:
        self.last_run_at = int(time.time()) if finished_at is None else finished_at
        self.consecutive_failures += 1
        self.last_report = report

    def is_healthy(self, now: int | None = None) -> bool:
        now = int(time.time()) if now is None else now
        if self.consecutive_failures > MAX_CONSECUTIVE_FAILURES:
            return False
        if self.last_success_at is not None and now - self.last_success_at > 2 * self.interval:
            return False
        return True

    def to_dict(self, now: int | None = None) -> dict[str, Any]:
        now = int(time.time()) if now is None else now
        return {
            "healthy": self.is_healthy(now),
            "timestamp": now,
            "last_run_at": self.last_run_at,
            "last_success_at": self.last_success_at,
            "consecutive_failures": self.consecutive_failures,
            "seconds_since_success": (now - self.last_success_at) if self.last_success_at is not None else None,
            "last_report": self.last_report.to_dict() if self.last_report else None,
        }


__all__ = ["CleanupHealth", "MAX_CONSECUTIVE_FAILURES"]
