"""Operator commands reading and writing the price store."""

from __future__ import annotations

from typing import Any

import typer

from pricekeeper.core.data.ingestion import record_sample
from pricekeeper.core.data.storage import AggregateStore, PriceDatabase, SampleStore
from pricekeeper.core.exceptions import PriceKeeperError, StorageError, ValidationError
from pricekeeper.core.models import Sample
from pricekeeper.core.services import PriceChangeService

from .constants import STORAGE_EXIT_CODE, SYSTEM_EXIT_CODE, VALIDATION_EXIT_CODE
from .formatters import format_price, format_timestamp
from .utils import emit_error, load_config, open_database, prepare_output

SAMPLE_COLUMNS = ["series_id", "price", "value", "timestamp", "time"]
STATS_COLUMNS = ["section", "name", "value"]
CHANGE_COLUMNS = ["horizon", "previous", "current", "change_percent", "direction", "source"]


def register(app: typer.Typer) -> None:
    """Register price store commands on the provided application."""

    app.command("stats")(stats_command)
    app.command("latest")(latest_command)
    app.command("history")(history_command)
    app.command("record")(record_command)
    app.command("changes")(changes_command)


def _fail(error: PriceKeeperError) -> typer.Exit:
    emit_error(error.message, error.error_code, details=error.details)
    if isinstance(error, ValidationError):
        return typer.Exit(code=VALIDATION_EXIT_CODE)
    if isinstance(error, StorageError):
        return typer.Exit(code=STORAGE_EXIT_CODE)
    return typer.Exit(code=SYSTEM_EXIT_CODE)


def _sample_rows(samples: list[Sample]) -> list[dict[str, Any]]:
    return [
        {
            "series_id": s.series_id,
            "price": format_price(s.value),
            "value": s.value,
            "timestamp": s.timestamp,
            "time": format_timestamp(s.timestamp),
        }
        for s in samples
    ]


def _render(ctx: typer.Context, rows: list[dict[str, Any]], columns: list[str], title: str) -> None:
    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        formatter.render(rows, stream=stream, columns=columns, title=title)
    finally:
        stack.close()


def collect_stats(db: PriceDatabase) -> list[dict[str, Any]]:
    samples = SampleStore(db)
    aggregates = AggregateStore(db)
    oldest, newest = samples.time_range()
    rows: list[dict[str, Any]] = [{"section": "samples", "name": "total", "value": samples.total_count()}]
    rows.extend(
        {"section": "samples", "name": series_id, "value": count}
        for series_id, count in samples.count_by_series().items()
    )
    rows.append({"section": "range", "name": "oldest", "value": format_timestamp(oldest)})
    rows.append({"section": "range", "name": "newest", "value": format_timestamp(newest)})
    rows.extend(
        {"section": "aggregates", "name": f"{width}s", "value": count}
        for width, count in aggregates.count_by_width().items()
    )
    return rows


def stats_command(ctx: typer.Context) -> None:
    """Show sample counts per series, the stored time range and bucket counts per width."""

    config = load_config(ctx)
    with open_database(config) as db:
        try:
            rows = collect_stats(db)
        except PriceKeeperError as error:
            raise _fail(error) from error
    _render(ctx, rows, STATS_COLUMNS, "Database statistics")


def latest_command(
    ctx: typer.Context,
    series_id: str | None = typer.Argument(None, help="Series to show; all series when omitted."),
) -> None:
    """Show the most recent sample of one or every series."""

    config = load_config(ctx)
    with open_database(config) as db:
        try:
            samples = SampleStore(db).latest(series_id)
        except PriceKeeperError as error:
            raise _fail(error) from error
    _render(ctx, _sample_rows(samples), SAMPLE_COLUMNS, "Latest prices")


def history_command(
    ctx: typer.Context,
    series_id: str | None = typer.Argument(None, help="Series to show; all series when omitted."),
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Number of samples to show."),
) -> None:
    """Show recent samples, newest first."""

    config = load_config(ctx)
    with open_database(config) as db:
        try:
            samples = SampleStore(db).history(series_id, limit)
        except PriceKeeperError as error:
            raise _fail(error) from error
    _render(ctx, _sample_rows(samples), SAMPLE_COLUMNS, "Price history")


def record_command(
    ctx: typer.Context,
    series_id: str = typer.Argument(..., help="Series identifier, e.g. BTC."),
    value: float = typer.Argument(..., help="Observed price."),
    timestamp: int | None = typer.Option(None, "--timestamp", help="Unix seconds; defaults to now."),
) -> None:
    """Validate and store one observation."""

    config = load_config(ctx)
    with open_database(config) as db:
        try:
            sample = record_sample(SampleStore(db), series_id, value, timestamp)
        except PriceKeeperError as error:
            raise _fail(error) from error
    _render(ctx, _sample_rows([sample]), SAMPLE_COLUMNS, "Recorded")


def changes_command(
    ctx: typer.Context,
    series_id: str = typer.Argument(..., help="Series identifier, e.g. BTC."),
    current: float = typer.Argument(..., help="Current price to compare against history."),
    now: int | None = typer.Option(None, "--now", help="Reference time in Unix seconds."),
) -> None:
    """Show percentage changes over 1h, 12h, 24h, 7d and 30d."""

    config = load_config(ctx)
    with open_database(config) as db:
        try:
            service = PriceChangeService(SampleStore(db), AggregateStore(db), config.retention.tiers())
            changes = service.changes(series_id, current, now)
        except PriceKeeperError as error:
            raise _fail(error) from error
    rows = [
        {
            "horizon": change.label,
            "previous": change.previous,
            "current": change.current,
            "change_percent": round(change.change_percent, 2),
            "direction": change.direction,
            "source": change.source,
        }
        for change in changes
    ]
    _render(ctx, rows, CHANGE_COLUMNS, f"Price changes for {series_id}")


__all__ = ["register", "collect_stats"]
