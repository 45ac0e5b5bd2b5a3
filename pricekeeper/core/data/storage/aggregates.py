"""OHLC aggregate bucket storage."""

from __future__ import annotations

from duckdb import DuckDBPyConnection

from pricekeeper.core.data.storage.database import PriceDatabase
from pricekeeper.core.models import OHLC, AggregateBucket, PendingGroup

_BUCKET_COLUMNS = (
    "series_id, bucket_start, bucket_width, open_price, high_price, low_price, "
    "close_price, avg_price, sample_count"
)


def _to_bucket(row: tuple) -> AggregateBucket:
    return AggregateBucket(
        series_id=row[0],
        bucket_start=row[1],
        bucket_width=row[2],
        open=row[3],
        high=row[4],
        low=row[5],
        close=row[6],
        average=row[7],
        sample_count=row[8],
    )


class AggregateStore:
    """Buckets keyed by ``(series_id, bucket_start, bucket_width)``, each written once."""

    def __init__(self, db: PriceDatabase):
        self.db = db

    def upsert_if_absent(
        self,
        series_id: str,
        bucket_start: int,
        bucket_width: int,
        ohlc: OHLC,
        cur: DuckDBPyConnection | None = None,
    ) -> bool:
        """Insert the bucket unless its key exists. Returns whether a row was written."""
        with self.db.write("upsert_bucket", cur) as cursor:
            existing = cursor.execute(
                """
                SELECT 1 FROM price_aggregates
                WHERE series_id = ? AND bucket_start = ? AND bucket_width = ?
                """,
                [series_id, bucket_start, bucket_width],
            ).fetchone()
            if existing:
                return False
            cursor.execute(
                f"""
                INSERT OR IGNORE INTO price_aggregates ({_BUCKET_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    series_id,
                    bucket_start,
                    bucket_width,
                    ohlc.open,
                    ohlc.high,
                    ohlc.low,
                    ohlc.close,
                    ohlc.average,
                    ohlc.sample_count,
                ],
            )
        return True

    def get(self, series_id: str, bucket_start: int, bucket_width: int) -> AggregateBucket | None:
        with self.db.read() as cur:
            row = cur.execute(
                f"""
                SELECT {_BUCKET_COLUMNS} FROM price_aggregates
                WHERE series_id = ? AND bucket_start = ? AND bucket_width = ?
                """,
                [series_id, bucket_start, bucket_width],
            ).fetchone()
        return _to_bucket(row) if row else None

    def buckets(
        self, series_id: str | None = None, bucket_width: int | None = None
    ) -> list[AggregateBucket]:
        """All buckets matching the filters, oldest first."""
        clauses: list[str] = []
        params: list[object] = []
        if series_id is not None:
            clauses.append("series_id = ?")
            params.append(series_id)
        if bucket_width is not None:
            clauses.append("bucket_width = ?")
            params.append(bucket_width)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self.db.read() as cur:
            rows = cur.execute(
                f"""
                SELECT {_BUCKET_COLUMNS} FROM price_aggregates
                {where}
                ORDER BY series_id, bucket_width, bucket_start
                """,
                params,
            ).fetchall()
        return [_to_bucket(row) for row in rows]

    def earliest_bucket_at_or_before(
        self, series_id: str, bucket_width: int, timestamp: int
    ) -> float | None:
        """Open price of the earliest bucket starting at or before ``timestamp``."""
        with self.db.read() as cur:
            row = cur.execute(
                """
                SELECT open_price FROM price_aggregates
                WHERE series_id = ? AND bucket_width = ? AND bucket_start <= ?
                ORDER BY bucket_start ASC
                LIMIT 1
                """,
                [series_id, bucket_width, timestamp],
            ).fetchone()
        return row[0] if row else None

    def count_by_width(self) -> dict[int, int]:
        with self.db.read() as cur:
            rows = cur.execute(
                """
                SELECT bucket_width, COUNT(*) FROM price_aggregates
                GROUP BY bucket_width
                ORDER BY bucket_width
                """
            ).fetchall()
        return {width: count for width, count in rows}

    def total_count(self) -> int:
        with self.db.read() as cur:
            row = cur.execute("SELECT COUNT(*) FROM price_aggregates").fetchone()
        return row[0] if row else 0

    def delete_older_than(
        self, bucket_width: int, cutoff: int, cur: DuckDBPyConnection | None = None
    ) -> int:
        """Delete buckets of ``bucket_width`` starting before ``cutoff``."""
        with self.db.write("delete_buckets", cur) as cursor:
            row = cursor.execute(
                "DELETE FROM price_aggregates WHERE bucket_width = ? AND bucket_start < ?",
                [bucket_width, cutoff],
            ).fetchone()
        return row[0] if row else 0

    def pending_groups(
        self,
        source_width: int,
        bucket_width: int,
        cutoff: int,
        *,
        after: tuple[str, int] | None = None,
        limit: int = 100,
        cur: DuckDBPyConnection | None = None,
    ) -> list[PendingGroup]:
        """Finer buckets older than ``cutoff`` regrouped into ``bucket_width`` buckets not yet built.

        The average is weighted by each source bucket's sample count.
        """
        params: list[object] = [bucket_width, bucket_width, source_width, cutoff, bucket_width]
        keyset = ""
        if after is not None:
            keyset = "AND (g.series_id > ? OR (g.series_id = ? AND g.bucket_start > ?))"
            params.extend([after[0], after[0], after[1]])
        params.append(limit)
        with self.db.read(cur) as cursor:
            rows = cursor.execute(
                f"""
                WITH bucketed AS (
                    SELECT series_id, high_price, low_price, avg_price, sample_count,
                           (bucket_start // ?) * ? AS target_start
                    FROM price_aggregates
                    WHERE bucket_width = ? AND bucket_start < ?
                ),
                grouped AS (
                    SELECT series_id,
                           target_start AS bucket_start,
                           MIN(low_price) AS low,
                           MAX(high_price) AS high,
                           SUM(avg_price * sample_count) / SUM(sample_count) AS average,
                           SUM(sample_count) AS sample_count
                    FROM bucketed
                    GROUP BY series_id, target_start
                )
                SELECT g.series_id, g.bucket_start, g.low, g.high, g.average, g.sample_count
                FROM grouped g
                WHERE NOT EXISTS (
                    SELECT 1 FROM price_aggregates a
                    WHERE a.series_id = g.series_id
                      AND a.bucket_start = g.bucket_start
                      AND a.bucket_width = ?
                )
                {keyset}
                ORDER BY g.series_id, g.bucket_start
                LIMIT ?
                """,
                params,
            ).fetchall()
        return [
            PendingGroup(
                series_id=r[0], bucket_start=r[1], low=r[2], high=r[3], average=r[4], sample_count=r[5]
            )
            for r in rows
        ]

    def open_close(
        self,
        series_id: str,
        source_width: int,
        start: int,
        end: int,
        cur: DuckDBPyConnection | None = None,
    ) -> tuple[float, float] | None:
        """Open of the first and close of the last ``source_width`` bucket in ``[start, end)``."""
        with self.db.read(cur) as cursor:
            row = cursor.execute(
                """
                SELECT arg_min(open_price, bucket_start), arg_max(close_price, bucket_start), COUNT(*)
                FROM price_aggregates
                WHERE series_id = ? AND bucket_width = ? AND bucket_start >= ? AND bucket_start < ?
                """,
                [series_id, source_width, start, end],
            ).fetchone()
        if not row or not row[2]:
            return None
        return row[0], row[1]


__all__ = ["AggregateStore"]
