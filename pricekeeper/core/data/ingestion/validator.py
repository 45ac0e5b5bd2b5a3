"""Validation of incoming price samples."""

from __future__ import annotations

from math import isfinite

from pricekeeper.core.exceptions import ValidationError

MAX_SERIES_ID_LENGTH = 10


def validate_series_id(series_id: str) -> str:
    """Series ids are non-empty, alphanumeric and at most ten characters."""

    if not series_id:
        raise ValidationError("series id cannot be empty", field="series_id", value=series_id)
    if len(series_id) > MAX_SERIES_ID_LENGTH:
        raise ValidationError(
            f"series id too long (max {MAX_SERIES_ID_LENGTH} chars)", field="series_id", value=series_id
        )
    if not series_id.isalnum():
        raise ValidationError("series id must be alphanumeric", field="series_id", value=series_id)
    return series_id


def validate_value(value: float, field: str = "value") -> float:
    """Prices are finite and non-negative."""

    if not isfinite(value):
        raise ValidationError("invalid price value", field=field, value=value)
    if value < 0:
        raise ValidationError("price cannot be negative", field=field, value=value)
    return value


def validate_timestamp(timestamp: int) -> int:
    if timestamp < 0:
        raise ValidationError("timestamp cannot be negative", field="timestamp", value=timestamp)
    return timestamp


__all__ = ["validate_series_id", "validate_value", "validate_timestamp", "MAX_SERIES_ID_LENGTH"]
