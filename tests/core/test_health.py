from __future__ import annotations

from pricekeeper.core.health import CleanupHealth
from pricekeeper.core.retention import CycleReport, CycleState


def _report(state: CycleState = CycleState.DONE) -> CycleReport:
    report = CycleReport(now=1000)
    report.enter(state)
    return report


def test_new_health_state_is_healthy() -> None:
    health = CleanupHealth()

    assert health.is_healthy(now=0) is True
    assert health.to_dict(now=0)["last_report"] is None


def test_more_than_three_failures_is_unhealthy() -> None:
    health = CleanupHealth()
    for _ in range(3):
        health.record_failure(_report(CycleState.FAILED), finished_at=100)
    assert health.is_healthy(now=100) is True

    health.record_failure(_report(CycleState.FAILED), finished_at=100)

    assert health.is_healthy(now=100) is False
    assert health.consecutive_failures == 4


def test_success_resets_failures() -> None:
    health = CleanupHealth()
    health.record_failure(None, finished_at=50)
    health.record_success(_report(), finished_at=100)

    assert health.consecutive_failures == 0
    assert health.last_success_at == 100
    assert health.last_run_at == 100


def test_stale_success_is_unhealthy() -> None:
    health = CleanupHealth(interval=3600)
    health.record_success(_report(), finished_at=0)

    assert health.is_healthy(now=7200) is True
    assert health.is_healthy(now=7201) is False


def test_to_dict_includes_last_report() -> None:
    health = CleanupHealth()
    health.record_success(_report(), finished_at=100)

    payload = health.to_dict(now=160)

    assert payload["healthy"] is True
    assert payload["seconds_since_success"] == 60
    assert payload["last_report"]["state"] == "DONE"
