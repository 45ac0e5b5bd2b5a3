"""Cleanup commands: a single cycle, or the scheduler daemon."""

from __future__ import annotations

import asyncio
import signal
from typing import Any

import typer

from pricekeeper.core.config import PriceKeeperConfig
from pricekeeper.core.data.storage import PriceDatabase
from pricekeeper.core.exceptions import ConfigurationError
from pricekeeper.core.logging import get_logger
from pricekeeper.core.retention import CleanupCycle, CleanupScheduler, CycleReport

from .constants import CLEANUP_EXIT_CODE, VALIDATION_EXIT_CODE
from .utils import emit_error, load_config, open_database, prepare_output

REPORT_COLUMNS = ["phase", "name", "value"]

log = get_logger("cli")


def register(app: typer.Typer) -> None:
    """Register cleanup commands on the provided application."""

    app.command("cleanup")(cleanup_command)
    app.command("run")(run_command)


def build_cycle(db: PriceDatabase, config: PriceKeeperConfig) -> CleanupCycle:
    retention = config.retention
    try:
        tiers = retention.tiers()
    except ConfigurationError as error:
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from error
    return CleanupCycle(
        db,
        tiers,
        batch_size=retention.batch_size,
        batch_pause=retention.batch_pause,
        vacuum_threshold=retention.vacuum_threshold,
    )


def report_rows(report: CycleReport) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = [
        {"phase": "aggregate", "name": name, "value": count} for name, count in report.aggregated.items()
    ]
    rows.append({"phase": "sweep", "name": "raw", "value": report.deleted_raw})
    rows.extend({"phase": "sweep", "name": name, "value": count} for name, count in report.deleted.items())
    rows.append({"phase": "compact", "name": "compacted", "value": report.compacted})
    rows.append({"phase": "cycle", "name": "state", "value": report.state_label})
    rows.append({"phase": "cycle", "name": "attempt", "value": report.attempt})
    if report.error:
        rows.append({"phase": "cycle", "name": "failed_in", "value": report.failed_in})
        rows.append({"phase": "cycle", "name": "error", "value": report.error})
    return rows


def cleanup_command(
    ctx: typer.Context,
    max_attempts: int | None = typer.Option(None, "--max-attempts", min=1, help="Whole-cycle attempts."),
    retry_delay: float | None = typer.Option(None, "--retry-delay", min=0.0, help="Seconds between attempts."),
) -> None:
    """Run one cleanup cycle now: aggregate, sweep and maybe compact."""

    config = load_config(ctx)
    scheduler_config = config.scheduler
    attempts = max_attempts or scheduler_config.max_attempts
    delay = scheduler_config.retry_delay if retry_delay is None else retry_delay

    with open_database(config) as db:
        cycle = build_cycle(db, config)
        report = asyncio.run(cycle.run(attempts, delay))

    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        formatter.render(report_rows(report), stream=stream, columns=REPORT_COLUMNS, title="Cleanup report")
    finally:
        stack.close()

    if not report.succeeded:
        emit_error(f"cleanup abandoned after {report.attempt} attempts", "CLEANUP_CYCLE_ABANDONED")
        raise typer.Exit(code=CLEANUP_EXIT_CODE)


async def serve(scheduler: CleanupScheduler, stop: asyncio.Event) -> None:
    """Run ``scheduler`` until ``stop`` is set."""

    scheduler.start()
    try:
        await stop.wait()
    finally:
        await scheduler.stop()


async def _serve_until_signal(scheduler: CleanupScheduler) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop.set)
        except (NotImplementedError, RuntimeError):
            # Platforms without loop signal handlers fall back to KeyboardInterrupt.
            pass
    await serve(scheduler, stop)


def run_command(
    ctx: typer.Context,
    initial_delay: float | None = typer.Option(None, "--initial-delay", min=0.0, help="Seconds before the first cycle."),
    interval_hours: float | None = typer.Option(None, "--interval-hours", help="Hours between cycles; must be positive."),
) -> None:
    """Run the cleanup scheduler in the foreground until interrupted."""

    config = load_config(ctx)
    scheduler_config = config.scheduler
    interval = (interval_hours if interval_hours is not None else scheduler_config.interval_hours) * 3600

    with open_database(config) as db:
        try:
            scheduler = CleanupScheduler(
                build_cycle(db, config),
                interval=interval,
                initial_delay=scheduler_config.initial_delay if initial_delay is None else initial_delay,
                max_attempts=scheduler_config.max_attempts,
                retry_delay=scheduler_config.retry_delay,
            )
        except ConfigurationError as error:
            emit_error(error.message, error.error_code, details=error.details)
            raise typer.Exit(code=VALIDATION_EXIT_CODE) from error
        try:
            asyncio.run(_serve_until_signal(scheduler))
        except KeyboardInterrupt:
            log.info("Interrupted")
    typer.echo("cleanup scheduler stopped", err=True)


__all__ = ["register", "build_cycle", "report_rows", "serve"]
