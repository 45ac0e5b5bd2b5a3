"""Ingestion of externally observed prices into the sample store."""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Iterable  # noqa: TC003
from dataclasses import dataclass
from time import perf_counter

from pricekeeper.core.data.ingestion.validator import (
    validate_series_id,
    validate_timestamp,
    validate_value,
)
from pricekeeper.core.data.storage import SampleStore
from pricekeeper.core.exceptions import ValidationError
from pricekeeper.core.logging import get_logger
from pricekeeper.core.models import Sample

log = get_logger("ingestion")


@dataclass(slots=True, frozen=True)
class IngestionResult:
    """Outcome of recording a batch of observations."""

    written_rows: int
    rejected_rows: int
    duration_ms: float
    fail_reasons: tuple[tuple[str, int], ...] = ()


def validate_sample(series_id: str, value: float, timestamp: int | None = None) -> Sample:
    """Validate one observation, stamping it with the current time when none is given."""

    if timestamp is None:
        timestamp = int(time.time())
    return Sample(
        series_id=validate_series_id(series_id),
        value=validate_value(value),
        timestamp=validate_timestamp(timestamp),
    )


def record_sample(
    samples: SampleStore, series_id: str, value: float, timestamp: int | None = None
) -> Sample:
    """Validate and append one observation. Raises ``ValidationError`` for bad input."""

    sample = validate_sample(series_id, value, timestamp)
    samples.append(sample.series_id, sample.value, sample.timestamp)
    log.debug("Recorded {} = {} at {}", sample.series_id, sample.value, sample.timestamp)
    return sample


def record_batch(
    samples: SampleStore, observations: Iterable[tuple[str, float, int | None]]
) -> IngestionResult:
    """Validate a batch, append the valid observations in one transaction and skip the rest."""

    started = perf_counter()
    accepted: list[Sample] = []
    failures: Counter[str] = Counter()
    for series_id, value, timestamp in observations:
        try:
            accepted.append(validate_sample(series_id, value, timestamp))
        except ValidationError as exc:
            failures[exc.details.get("field", "unknown")] += 1
    written = samples.append_many(accepted)
    result = IngestionResult(
        written_rows=written,
        rejected_rows=sum(failures.values()),
        duration_ms=(perf_counter() - started) * 1000,
        fail_reasons=tuple(sorted(failures.items())),
    )
    if result.rejected_rows:
        log.warning("Rejected {} of {} observations", result.rejected_rows, written + result.rejected_rows)
    return result


__all__ = ["IngestionResult", "record_sample", "record_batch", "validate_sample"]
