from __future__ import annotations

import math

import pytest

from pricekeeper.core.data.ingestion import (
    record_batch,
    record_sample,
    validate_sample,
    validate_series_id,
    validate_value,
)
from pricekeeper.core.data.storage import SampleStore
from pricekeeper.core.exceptions import ValidationError


@pytest.mark.parametrize("series_id", ["BTC", "ETH", "A1", "ABCDEFGHIJ"])
def test_valid_series_ids(series_id: str) -> None:
    assert validate_series_id(series_id) == series_id


@pytest.mark.parametrize("series_id", ["", "ABCDEFGHIJK", "BTC-USD", "BT C"])
def test_invalid_series_ids(series_id: str) -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_series_id(series_id)
    assert exc_info.value.field == "series_id"


@pytest.mark.parametrize("value", [-1.0, math.nan, math.inf])
def test_invalid_values(value: float) -> None:
    with pytest.raises(ValidationError):
        validate_value(value)


def test_zero_is_a_valid_value() -> None:
    assert validate_value(0.0) == 0.0


def test_validate_sample_defaults_timestamp_to_now() -> None:
    sample = validate_sample("BTC", 1.0)

    assert sample.timestamp > 1_600_000_000


def test_negative_timestamp_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_sample("BTC", 1.0, -5)
    assert exc_info.value.details["field"] == "timestamp"


def test_record_sample_appends(samples: SampleStore) -> None:
    sample = record_sample(samples, "BTC", 42000.5, 1000)

    assert sample.value == 42000.5
    assert samples.value_as_of("BTC", 0) == 42000.5


def test_record_sample_rejects_without_writing(samples: SampleStore) -> None:
    with pytest.raises(ValidationError):
        record_sample(samples, "BTC", -1.0, 1000)

    assert samples.total_count() == 0


def test_record_batch_skips_invalid_rows(samples: SampleStore) -> None:
    result = record_batch(
        samples,
        [
            ("BTC", 1.0, 100),
            ("ETH", 2.0, 100),
            ("", 3.0, 100),
            ("BTC", -1.0, 100),
            ("BTC", math.nan, 200),
        ],
    )

    assert result.written_rows == 2
    assert result.rejected_rows == 3
    assert dict(result.fail_reasons) == {"series_id": 1, "value": 2}
    assert samples.count_by_series() == {"BTC": 1, "ETH": 1}
