"""Utility helpers shared across CLI commands."""

from __future__ import annotations

import json
import sys
from collections.abc import Mapping, Sequence
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

import typer

from pricekeeper.core.config import ConfigManager, PriceKeeperConfig
from pricekeeper.core.data.storage import PriceDatabase
from pricekeeper.core.exceptions import ConfigurationError, StorageError
from pricekeeper.core.logging import configure_logging

from .constants import STORAGE_EXIT_CODE, VALIDATION_EXIT_CODE
from .formatters import OutputFormatter, create_formatter


_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


@dataclass(slots=True)
class CLIOptions:
    """Resolved options derived from the Typer context."""

    format: str = "table"
    output_path: Path | None = None
    no_color: bool = False
    config_path: Path | None = None
    db_path: str | None = None


def get_cli_options(ctx: typer.Context) -> CLIOptions:
    """Extract :class:`CLIOptions` from the Typer context object."""

    ctx.ensure_object(dict)
    data = ctx.obj or {}
    return CLIOptions(
        format=str(data.get("format", "table")),
        output_path=data.get("output_path"),
        no_color=bool(data.get("no_color", False)),
        config_path=data.get("config_path"),
        db_path=data.get("db_path"),
    )


def load_config(ctx: typer.Context) -> PriceKeeperConfig:
    """Load configuration, applying the ``--db`` override."""

    options = get_cli_options(ctx)
    try:
        manager = ConfigManager(options.config_path)
        if options.db_path:
            manager.update_config(store={"path": options.db_path})
    except ConfigurationError as error:
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from error
    config = manager.get_config()
    level = (ctx.obj or {}).get("log_level") or resolve_log_level(config.logging.level)
    if config.logging.file:
        configure_logging(level=level, file_output=True, file_path=config.logging.file)
    else:
        configure_logging(level=level)
    return config


def resolve_log_level(name: str) -> str:
    """Normalise a loguru level name, falling back to INFO for unknown names."""

    level = name.strip().upper()
    if level not in _LOG_LEVELS:
        return "INFO"
    return level


def open_database(config: PriceKeeperConfig) -> PriceDatabase:
    """Open the configured store, exiting with a storage error code on failure."""

    store = config.store
    try:
        return PriceDatabase(
            path=store.path,
            busy_timeout=store.busy_timeout,
            threads=store.threads,
            connect_attempts=store.connect_attempts,
        )
    except StorageError as error:
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=STORAGE_EXIT_CODE) from error


def prepare_output(ctx: typer.Context) -> tuple[OutputFormatter, TextIO, ExitStack, CLIOptions]:
    """Resolve formatter and writable stream for the current command."""

    options = get_cli_options(ctx)
    try:
        formatter = create_formatter(options.format, no_color=options.no_color)
    except ValueError as exc:  # pragma: no cover - validated at callback
        emit_error(str(exc), "INVALID_FORMAT")
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc

    stack = ExitStack()
    stream: TextIO
    if options.output_path is not None:
        try:
            stream = stack.enter_context(open(options.output_path, "w", encoding="utf-8"))
        except OSError as exc:
            stack.close()
            emit_error(f"Unable to open '{options.output_path}': {exc}", "OUTPUT_WRITE_ERROR")
            raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc
    else:
        stream = sys.stdout

    return formatter, stream, stack, options


def emit_error(message: str, code: str, *, details: Mapping[str, object] | None = None) -> None:
    """Print a structured error payload to stderr."""

    payload: dict[str, object] = {"code": code, "message": message}
    if details:
        payload["details"] = _sanitize_details(details)
    typer.echo(json.dumps(payload, ensure_ascii=False, default=str), err=True)


def _sanitize_details(details: Mapping[str, object]) -> Mapping[str, object]:
    sanitized: dict[str, object] = {}
    for key, value in details.items():
        if isinstance(value, (str, int, float, bool)) or value is None:
            sanitized[key] = value
        elif isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
            sanitized[key] = [str(item) for item in value]
        else:
            sanitized[key] = str(value)
    return sanitized


__all__ = [
    "CLIOptions",
    "get_cli_options",
    "load_config",
    "resolve_log_level",
    "open_database",
    "prepare_output",
    "emit_error",
]
