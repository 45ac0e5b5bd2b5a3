"""Storage reclamation after large cleanups."""

from __future__ import annotations

from pricekeeper.core.data.storage import PriceDatabase
from pricekeeper.core.logging import get_logger

log = get_logger("compactor")

DEFAULT_VACUUM_THRESHOLD = 1000


class Compactor:
    """Compacts the database once enough rows have been deleted.

    Compaction holds the store's write lock, so writers wait for it to finish.
    """

    def __init__(self, db: PriceDatabase, threshold: int = DEFAULT_VACUUM_THRESHOLD):
        self.db = db
        self.threshold = threshold

    def compact_if_threshold_exceeded(self, total_deleted: int, threshold: int | None = None) -> bool:
        limit = self.threshold if threshold is None else threshold
        if total_deleted <= limit:
            return False
        size_before = self.db.file_size()
        self.db.compact()
        log.info(
            "Compacted store after deleting {} rows (size {} -> {})",
            total_deleted,
            size_before,
            self.db.file_size(),
        )
        return True


__all__ = ["Compactor", "DEFAULT_VACUUM_THRESHOLD"]
