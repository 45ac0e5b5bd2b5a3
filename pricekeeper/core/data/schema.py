"""Table definitions for the price store."""

from __future__ import annotations

from collections.abc import Sequence  # noqa: TC003
from dataclasses import dataclass

from duckdb import DuckDBPyConnection


@dataclass(frozen=True)
class ColumnDef:
    """Represents a DuckDB table column definition."""

    name: str
    data_type: str
    constraints: Sequence[str] = ()

    def render(self) -> str:
        parts = [self.name, self.data_type, *self.constraints]
        return " ".join(parts)


@dataclass(frozen=True)
class TableSchema:
    """Utility wrapper describing a DuckDB table and its secondary indexes."""

    name: str
    columns: Sequence[ColumnDef]
    primary_key: Sequence[str] = ()
    indexes: Sequence[tuple[str, Sequence[str]]] = ()

    def create_ddl(self) -> str:
        column_defs: list[str] = [column.render() for column in self.columns]
        if self.primary_key:
            pk_cols = ", ".join(self.primary_key)
            column_defs.append(f"PRIMARY KEY ({pk_cols})")
        columns_sql = ",\n                ".join(column_defs)
        return f"""
            CREATE TABLE IF NOT EXISTS {self.name} (
                {columns_sql}
            )
            """.strip()

    def index_ddl(self) -> list[str]:
        return [
            f"CREATE INDEX IF NOT EXISTS {index_name} ON {self.name} ({', '.join(columns)})"
            for index_name, columns in self.indexes
        ]

    def ensure(self, conn: DuckDBPyConnection) -> None:
        """Create the table and its indexes on the provided connection if missing."""

        conn.execute(self.create_ddl())
        for statement in self.index_ddl():
            conn.execute(statement)


PRICE_SAMPLES_TABLE = TableSchema(
    name="price_samples",
    columns=(
        ColumnDef("series_id", "VARCHAR", ("NOT NULL",)),
        ColumnDef("value", "DOUBLE", ("NOT NULL",)),
        ColumnDef("timestamp", "BIGINT", ("NOT NULL",)),
        ColumnDef("created_at", "TIMESTAMP", ("DEFAULT current_timestamp",)),
    ),
    indexes=(("idx_price_samples_series_ts", ("series_id", "timestamp")),),
)

PRICE_AGGREGATES_TABLE = TableSchema(
    name="price_aggregates",
    columns=(
        ColumnDef("series_id", "VARCHAR", ("NOT NULL",)),
        ColumnDef("bucket_start", "BIGINT", ("NOT NULL",)),
        ColumnDef("bucket_width", "BIGINT", ("NOT NULL",)),
        ColumnDef("open_price", "DOUBLE", ("NOT NULL",)),
        ColumnDef("high_price", "DOUBLE", ("NOT NULL",)),
        ColumnDef("low_price", "DOUBLE", ("NOT NULL",)),
        ColumnDef("close_price", "DOUBLE", ("NOT NULL",)),
        ColumnDef("avg_price", "DOUBLE", ("NOT NULL",)),
        ColumnDef("sample_count", "BIGINT", ("NOT NULL",)),
        ColumnDef("created_at", "TIMESTAMP", ("DEFAULT current_timestamp",)),
    ),
    primary_key=("series_id", "bucket_start", "bucket_width"),
)

PRICE_TABLES: tuple[TableSchema, ...] = (PRICE_SAMPLES_TABLE, PRICE_AGGREGATES_TABLE)


def ensure_price_tables(conn: DuckDBPyConnection) -> None:
    """Create all price store tables on ``conn``."""

    for table in PRICE_TABLES:
        table.ensure(conn)


__all__ = [
    "ColumnDef",
    "TableSchema",
    "PRICE_SAMPLES_TABLE",
    "PRICE_AGGREGATES_TABLE",
    "PRICE_TABLES",
    "ensure_price_tables",
]
