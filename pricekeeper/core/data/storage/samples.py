"""Raw price sample storage."""

from __future__ import annotations

from duckdb import DuckDBPyConnection

from pricekeeper.core.data.storage.database import PriceDatabase
from pricekeeper.core.models import PendingGroup, Sample


class SampleStore:
    """Append-only table of raw samples.

    The store never validates what it is given; callers check samples before
    appending them.
    """

    def __init__(self, db: PriceDatabase):
        self.db = db

    def append(self, series_id: str, value: float, timestamp: int) -> None:
        with self.db.write("append_sample") as cur:
            cur.execute(
                "INSERT INTO price_samples (series_id, value, timestamp) VALUES (?, ?, ?)",
                [series_id, value, timestamp],
            )

    def append_many(self, samples: list[Sample]) -> int:
        if not samples:
            return 0
        with self.db.write("append_samples") as cur:
            cur.executemany(
                "INSERT INTO price_samples (series_id, value, timestamp) VALUES (?, ?, ?)",
                [[s.series_id, s.value, s.timestamp] for s in samples],
            )
        return len(samples)

    def value_as_of(self, series_id: str, timestamp: int) -> float | None:
        """Value of the oldest sample at or after ``timestamp``.

        Samples sharing a timestamp are returned in no particular order.
        """
        with self.db.read() as cur:
            row = cur.execute(
                """
                SELECT value FROM price_samples
                WHERE series_id = ? AND timestamp >= ?
                ORDER BY timestamp ASC
                LIMIT 1
                """,
                [series_id, timestamp],
            ).fetchone()
        return row[0] if row else None

    def count_by_series(self) -> dict[str, int]:
        with self.db.read() as cur:
            rows = cur.execute(
                "SELECT series_id, COUNT(*) FROM price_samples GROUP BY series_id ORDER BY series_id"
            ).fetchall()
        return {series_id: count for series_id, count in rows}

    def total_count(self) -> int:
        with self.db.read() as cur:
            row = cur.execute("SELECT COUNT(*) FROM price_samples").fetchone()
        return row[0] if row else 0

    def time_range(self) -> tuple[int | None, int | None]:
        with self.db.read() as cur:
            row = cur.execute("SELECT MIN(timestamp), MAX(timestamp) FROM price_samples").fetchone()
        return (row[0], row[1]) if row else (None, None)

    def delete_older_than(self, cutoff: int, cur: DuckDBPyConnection | None = None) -> int:
        """Delete every sample with ``timestamp < cutoff`` and return how many went."""
        with self.db.write("delete_samples", cur) as cursor:
            row = cursor.execute("DELETE FROM price_samples WHERE timestamp < ?", [cutoff]).fetchone()
        return row[0] if row else 0

    def latest(self, series_id: str | None = None) -> list[Sample]:
        """Most recent sample of one series, or of every series."""
        with self.db.read() as cur:
            if series_id is not None:
                rows = cur.execute(
                    """
                    SELECT series_id, value, timestamp FROM price_samples
                    WHERE series_id = ?
                    ORDER BY timestamp DESC
                    LIMIT 1
                    """,
                    [series_id],
                ).fetchall()
            else:
                rows = cur.execute(
                    """
                    SELECT series_id, arg_max(value, timestamp), MAX(timestamp)
                    FROM price_samples
                    GROUP BY series_id
                    ORDER BY series_id
                    """
                ).fetchall()
        return [Sample(series_id=r[0], value=r[1], timestamp=r[2]) for r in rows]

    def history(self, series_id: str | None = None, limit: int = 10) -> list[Sample]:
        """Newest ``limit`` samples, newest first."""
        query = "SELECT series_id, value, timestamp FROM price_samples"
        params: list[object] = []
        if series_id is not None:
            query += " WHERE series_id = ?"
            params.append(series_id)
        query += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)
        with self.db.read() as cur:
            rows = cur.execute(query, params).fetchall()
        return [Sample(series_id=r[0], value=r[1], timestamp=r[2]) for r in rows]

    def pending_groups(
        self,
        bucket_width: int,
        cutoff: int,
        *,
        after: tuple[str, int] | None = None,
        limit: int = 100,
        cur: DuckDBPyConnection | None = None,
    ) -> list[PendingGroup]:
        """Samples older than ``cutoff`` grouped into ``bucket_width`` buckets not yet built.

        Groups come back ordered by ``(series_id, bucket_start)`` and start
        strictly after ``after`` so callers can page through them.
        """
        params: list[object] = [bucket_width, bucket_width, cutoff, bucket_width]
        keyset = ""
        if after is not None:
            keyset = "AND (g.series_id > ? OR (g.series_id = ? AND g.bucket_start > ?))"
            params.extend([after[0], after[0], after[1]])
        params.append(limit)
        with self.db.read(cur) as cursor:
            rows = cursor.execute(
                f"""
                WITH bucketed AS (
                    SELECT series_id, value, (timestamp // ?) * ? AS bucket_start
                    FROM price_samples
                    WHERE timestamp < ?
                ),
                grouped AS (
                    SELECT series_id,
                           bucket_start,
                           MIN(value) AS low,
                           MAX(value) AS high,
                           AVG(value) AS average,
                           COUNT(*) AS sample_count
                    FROM bucketed
                    GROUP BY series_id, bucket_start
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
        self, series_id: str, start: int, end: int, cur: DuckDBPyConnection | None = None
    ) -> tuple[float, float] | None:
        """First and last value of ``series_id`` in ``[start, end)``."""
        with self.db.read(cur) as cursor:
            row = cursor.execute(
                """
                SELECT arg_min(value, timestamp), arg_max(value, timestamp), COUNT(*)
                FROM price_samples
                WHERE series_id = ? AND timestamp >= ? AND timestamp < ?
                """,
                [series_id, start, end],
            ).fetchone()
        if not row or not row[2]:
            return None
        return row[0], row[1]


__all__ = ["SampleStore"]
