"""Sample ingestion."""

from pricekeeper.core.data.ingestion.service import (
    IngestionResult,
    record_batch,
    record_sample,
    validate_sample,
)
from pricekeeper.core.data.ingestion.validator import (
    validate_series_id,
    validate_timestamp,
    validate_value,
)

__all__ = [
    "IngestionResult",
    "record_sample",
    "record_batch",
    "validate_sample",
    "validate_series_id",
    "validate_value",
    "validate_timestamp",
]
