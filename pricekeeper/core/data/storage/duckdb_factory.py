"""Helpers for creating configured DuckDB connections."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import duckdb
from duckdb import DuckDBPyConnection

from pricekeeper.core.exceptions import StorageError
from pricekeeper.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

log = get_logger("storage")


@dataclass(frozen=True)
class DuckDBFactoryConfig:
    """Configuration applied to DuckDB connections produced by the factory."""

    database: str | Path = ":memory:"
    read_only: bool = False
    pragmas: Mapping[str, object] = field(default_factory=lambda: {"threads": 2})
    connect_attempts: int = 3
    connect_backoff: float = 0.5


class DuckDBFactory:
    """Factory that opens configured DuckDB connections, retrying transient failures."""

    def __init__(self, config: DuckDBFactoryConfig | None = None) -> None:
        self._config = config or DuckDBFactoryConfig()

    @property
    def config(self) -> DuckDBFactoryConfig:
        return self._config

    def create_connection(self) -> DuckDBPyConnection:
        """Open a connection, retrying with linear backoff before giving up."""

        attempts = max(1, self._config.connect_attempts)
        last_error: duckdb.Error | None = None
        for attempt in range(1, attempts + 1):
            try:
                conn = duckdb.connect(
                    database=str(self._config.database), read_only=self._config.read_only
                )
                self._apply_pragmas(conn)
                return conn
            except duckdb.Error as exc:
                last_error = exc
                log.warning(
                    "Opening {} failed (attempt {}/{}): {}", self._config.database, attempt, attempts, exc
                )
                if attempt < attempts:
                    time.sleep(self._config.connect_backoff * attempt)
        raise StorageError(
            f"could not open price store at {self._config.database}: {last_error}",
            operation="connect",
            details={"attempts": attempts},
        ) from last_error

    def _apply_pragmas(self, conn: DuckDBPyConnection) -> None:
        for setting, value in self._config.pragmas.items():
            conn.execute(f"SET {setting}=?", [value])


__all__ = ["DuckDBFactory", "DuckDBFactoryConfig"]
