from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pricekeeper.cli.cleanup import serve
from pricekeeper.cli.main import create_app
from pricekeeper.core.data.storage import AggregateStore, PriceDatabase, SampleStore
from pricekeeper.core.retention import CleanupCycle, CleanupScheduler


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def test_cleanup_command_reports_cycle(runner: CliRunner, tmp_path: Path) -> None:
    db_path = tmp_path / "prices.duckdb"
    now = int(time.time())
    with PriceDatabase(str(db_path)) as db:
        samples = SampleStore(db)
        samples.append("BTC", 100.0, now - 30 * 3600)
        samples.append("BTC", 101.0, now - 3600)

    output = tmp_path / "report.jsonl"
    result = runner.invoke(
        create_app(),
        [
            "--config",
            str(tmp_path / "missing.toml"),
            "--db",
            str(db_path),
            "--log-level",
            "ERROR",
            "--format",
            "jsonl",
            "--output",
            str(output),
            "cleanup",
            "--retry-delay",
            "0",
        ],
    )

    assert result.exit_code == 0, result.output
    rows = [json.loads(line) for line in output.read_text(encoding="utf-8").splitlines()]
    values = {(row["phase"], row["name"]): row["value"] for row in rows}
    assert values[("aggregate", "1m")] == 1
    assert values[("sweep", "raw")] == 1
    assert values[("cycle", "state")] == "DONE"

    with PriceDatabase(str(db_path)) as db:
        assert SampleStore(db).total_count() == 1
        assert AggregateStore(db).count_by_width() == {60: 1}


def test_cleanup_command_rejects_bad_ladder(runner: CliRunner, tmp_path: Path) -> None:
    config = tmp_path / "config.toml"
    config.write_text("[retention]\nraw_retention_hours = 0\n", encoding="utf-8")

    result = runner.invoke(
        create_app(),
        ["--config", str(config), "--db", str(tmp_path / "prices.duckdb"), "--log-level", "ERROR", "cleanup"],
    )

    assert result.exit_code == 2


@pytest.mark.asyncio
async def test_serve_stops_scheduler_on_event() -> None:
    with PriceDatabase() as db:
        scheduler = CleanupScheduler(CleanupCycle(db, batch_pause=0.0), initial_delay=0.0, retry_delay=0.0)
        stop = asyncio.Event()

        async def stop_after_first_cycle() -> None:
            while scheduler.last_run_at is None:
                await asyncio.sleep(0.01)
            stop.set()

        await asyncio.wait_for(asyncio.gather(serve(scheduler, stop), stop_after_first_cycle()), timeout=10)

        assert not scheduler.running
        assert scheduler.health.consecutive_failures == 0


def test_run_command_rejects_zero_interval(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(
        create_app(),
        [
            "--config",
            str(tmp_path / "missing.toml"),
            "--db",
            str(tmp_path / "prices.duckdb"),
            "--log-level",
            "ERROR",
            "run",
            "--interval-hours",
            "0",
        ],
    )

    assert result.exit_code == 2
