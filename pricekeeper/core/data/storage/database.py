"""Shared DuckDB handle for the price store."""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import duckdb
from duckdb import DuckDBPyConnection

from pricekeeper.core.data.schema import PRICE_TABLES, ensure_price_tables
from pricekeeper.core.data.storage.duckdb_factory import DuckDBFactory, DuckDBFactoryConfig
from pricekeeper.core.exceptions import StorageError
from pricekeeper.core.logging import get_logger

log = get_logger("storage")


def _sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class PriceDatabase:
    """One DuckDB database shared by every store, task and thread of the process.

    Each operation runs on its own cursor. Writers are serialized by a
    process-wide lock acquired with ``busy_timeout``; a writer that cannot get
    the lock in time fails with ``StorageError``. Readers never take the lock
    and see a consistent snapshot of committed data.
    """

    def __init__(
        self,
        path: str = ":memory:",
        busy_timeout: float = 30.0,
        threads: int = 2,
        connect_attempts: int = 3,
        connect_backoff: float = 0.5,
    ):
        self.path = path
        self.busy_timeout = busy_timeout
        if path != ":memory:":
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
        self._factory = DuckDBFactory(
            DuckDBFactoryConfig(
                database=path,
                pragmas={"threads": threads},
                connect_attempts=connect_attempts,
                connect_backoff=connect_backoff,
            )
        )
        self._conn: DuckDBPyConnection | None = self._factory.create_connection()
        self._write_lock = threading.Lock()
        with self.write("ensure_schema") as cur:
            ensure_price_tables(cur)

    @property
    def connection(self) -> DuckDBPyConnection:
        if self._conn is None:
            raise StorageError("price store is closed", operation="cursor")
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> PriceDatabase:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _acquire(self, operation: str) -> None:
        if not self._write_lock.acquire(timeout=self.busy_timeout):
            raise StorageError(
                f"timed out after {self.busy_timeout}s waiting for the write lock",
                operation=operation,
            )

    @contextmanager
    def read(self, cur: DuckDBPyConnection | None = None) -> Iterator[DuckDBPyConnection]:
        """Yield a cursor for reads; reuses ``cur`` when the caller already holds one."""

        if cur is not None:
            yield cur
            return
        cursor = self.connection.cursor()
        try:
            yield cursor
        except duckdb.Error as exc:
            raise StorageError(str(exc), operation="read") from exc
        finally:
            cursor.close()

    @contextmanager
    def write(
        self, operation: str, cur: DuckDBPyConnection | None = None
    ) -> Iterator[DuckDBPyConnection]:
        """Yield a cursor inside a serialized write transaction.

        The transaction commits when the block exits normally and rolls back
        otherwise. Passing ``cur`` joins a transaction the caller already owns.
        """

        if cur is not None:
            yield cur
            return
        self._acquire(operation)
        cursor = self.connection.cursor()
        try:
            cursor.execute("BEGIN TRANSACTION")
            try:
                yield cursor
                cursor.execute("COMMIT")
            except BaseException:
                cursor.execute("ROLLBACK")
                raise
        except duckdb.Error as exc:
            raise StorageError(str(exc), operation=operation) from exc
        finally:
            cursor.close()
            self._write_lock.release()

    @contextmanager
    def exclusive(self, operation: str) -> Iterator[DuckDBPyConnection]:
        """Hold the write lock without opening a transaction."""

        self._acquire(operation)
        cursor = self.connection.cursor()
        try:
            yield cursor
        except duckdb.Error as exc:
            raise StorageError(str(exc), operation=operation) from exc
        finally:
            cursor.close()
            self._write_lock.release()

    def compact(self) -> None:
        """Rebuild the database file so space freed by deletes goes back to the OS.

        DuckDB only reuses freed blocks in place, so the live data is copied
        into a fresh file that then replaces the old one. The write lock is
        held throughout; readers that run during the swap fail with
        ``StorageError``. In-memory stores are only checkpointed.
        """

        if self.path == ":memory:":
            with self.exclusive("compact") as cur:
                cur.execute("CHECKPOINT")
            return

        target = f"{self.path}.compact"
        self._acquire("compact")
        try:
            self._remove_file(target)
            cursor = self.connection.cursor()
            try:
                cursor.execute("CHECKPOINT")
                row = cursor.execute("SELECT current_database()").fetchone()
                source = row[0].replace('"', '""')
                cursor.execute(f"ATTACH {_sql_literal(target)} AS pricekeeper_compact")
                cursor.execute(f'COPY FROM DATABASE "{source}" TO pricekeeper_compact')
                cursor.execute("DETACH pricekeeper_compact")
            except duckdb.Error as exc:
                self._remove_file(target)
                raise StorageError(str(exc), operation="compact") from exc
            finally:
                cursor.close()

            self.close()
            try:
                self._remove_file(f"{self.path}.wal")
                os.replace(target, self.path)
            finally:
                self._conn = self._factory.create_connection()
            cursor = self.connection.cursor()
            try:
                ensure_price_tables(cursor)
            finally:
                cursor.close()
        finally:
            self._write_lock.release()

    @staticmethod
    def _remove_file(path: str) -> None:
        for leftover in (path, f"{path}.wal"):
            if os.path.exists(leftover):
                os.remove(leftover)

    def file_size(self) -> int | None:
        if self.path == ":memory:" or not os.path.exists(self.path):
            return None
        return os.path.getsize(self.path)

    def get_database_stats(self) -> dict[str, Any]:
        """Row counts per table plus the on-disk size."""

        stats: dict[str, Any] = {"path": self.path, "file_size": self.file_size()}
        with self.read() as cur:
            for table in PRICE_TABLES:
                row = cur.execute(f"SELECT COUNT(*) FROM {table.name}").fetchone()
                stats[f"{table.name}_count"] = row[0] if row else 0
        return stats


__all__ = ["PriceDatabase"]
