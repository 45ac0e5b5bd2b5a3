"""Main entry point for the pricekeeper command line interface."""

from __future__ import annotations

from pathlib import Path

import typer

from pricekeeper.core.logging import configure_logging

from .cleanup import register as register_cleanup_commands
from .formatters import create_formatter
from .prices import register as register_price_commands
from .utils import resolve_log_level


def create_app() -> typer.Typer:
    """Create a Typer application instance for pricekeeper."""

    app = typer.Typer(add_completion=False, help="pricekeeper price store and retention tooling")

    @app.callback()
    def main(
        ctx: typer.Context,
        format: str = typer.Option(
            "table",
            "--format",
            "-f",
            help="Output format (table or jsonl).",
            show_default=True,
        ),
        output: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Write output to a file instead of stdout.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            help="Logging level; defaults to logging.level from configuration.",
        ),
        no_color: bool = typer.Option(
            False,
            "--no-color",
            help="Disable colorized output for table format.",
        ),
        config: Path | None = typer.Option(
            None,
            "--config",
            help="TOML configuration file (default ~/.pricekeeper/config.toml).",
        ),
        db: str | None = typer.Option(
            None,
            "--db",
            help="Price store path, overriding configuration.",
        ),
    ) -> None:
        ctx.ensure_object(dict)
        normalized_format = format.strip().lower()
        try:
            create_formatter(normalized_format, no_color=no_color)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--format") from exc

        ctx.obj.update(
            {
                "format": normalized_format,
                "output_path": output,
                "log_level": resolve_log_level(log_level) if log_level else None,
                "no_color": no_color,
                "config_path": config,
                "db_path": db,
            }
        )
        if log_level:
            configure_logging(level=resolve_log_level(log_level))

    register_price_commands(app)
    register_cleanup_commands(app)
    return app


app = create_app()
