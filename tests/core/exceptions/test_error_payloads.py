"""Tests for the pricekeeper exception hierarchy."""

from __future__ import annotations

from pricekeeper.core.exceptions import (
    ConfigurationError,
    ConsistencyViolation,
    ErrorCode,
    PriceKeeperError,
    StorageError,
    ValidationError,
)


def test_storage_error_records_operation() -> None:
    error = StorageError("database is locked", operation="aggregate_1m")

    assert isinstance(error, PriceKeeperError)
    assert error.error_code == ErrorCode.STORAGE.value
    assert error.to_payload() == {
        "code": "STORAGE_ERROR",
        "message": "database is locked",
        "details": {"operation": "aggregate_1m"},
    }


def test_validation_error_records_field_and_value() -> None:
    error = ValidationError("price cannot be negative", field="value", value=-1.0)

    assert error.error_code == ErrorCode.VALIDATION.value
    assert error.details == {"field": "value", "value": -1.0}


def test_consistency_violation_records_bucket_key() -> None:
    error = ConsistencyViolation("low above high", bucket_key=("BTC", 600, 60))

    assert error.bucket_key == ("BTC", 600, 60)
    assert error.details == {"series_id": "BTC", "bucket_start": 600, "bucket_width": 60}


def test_configuration_error_code() -> None:
    assert ConfigurationError("bad ladder").error_code == ErrorCode.CONFIG.value
