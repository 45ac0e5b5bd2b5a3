from __future__ import annotations

import pydantic
import pytest

from pricekeeper.core.exceptions import ConsistencyViolation
from pricekeeper.core.models import OHLC


def test_valid_ohlc_is_returned_unchanged() -> None:
    ohlc = OHLC(open=2.0, high=3.0, low=1.0, close=2.5, average=2.1, sample_count=4)

    assert ohlc.verified() is ohlc


def test_average_float_noise_is_clamped() -> None:
    average = (0.1 + 0.2 + 0.3) / 3 + 1e-15
    ohlc = OHLC(open=0.2, high=0.2, low=0.1, close=0.2, average=average, sample_count=3)

    assert average > 0.2
    assert ohlc.verified().average == 0.2


@pytest.mark.parametrize(
    "fields",
    [
        {"open": 5.0, "high": 3.0, "low": 1.0, "close": 2.0, "average": 2.0},
        {"open": 2.0, "high": 3.0, "low": 1.0, "close": 0.5, "average": 2.0},
        {"open": 2.0, "high": 3.0, "low": 1.0, "close": 2.0, "average": 3.5},
        {"open": 2.0, "high": 1.0, "low": 3.0, "close": 2.0, "average": 2.0},
    ],
)
def test_invariant_breaches_raise(fields: dict[str, float]) -> None:
    ohlc = OHLC(sample_count=1, **fields)

    with pytest.raises(ConsistencyViolation) as excinfo:
        ohlc.verified(("BTC", 60, 60))

    assert excinfo.value.details["series_id"] == "BTC"
    assert excinfo.value.error_code == "CONSISTENCY_VIOLATION"


def test_sample_count_must_be_positive() -> None:
    with pytest.raises(pydantic.ValidationError):
        OHLC(open=1.0, high=1.0, low=1.0, close=1.0, average=1.0, sample_count=0)
