"""Price sample and aggregate bucket models."""

import math

from pydantic import BaseModel, Field

from pricekeeper.core.exceptions import ConsistencyViolation


class Sample(BaseModel):
    """A single observed price."""

    series_id: str
    value: float
    timestamp: int


class OHLC(BaseModel):
    """Open/high/low/close/average summary of a bucket."""

    open: float
    high: float
    low: float
    close: float
    average: float
    sample_count: int = Field(ge=1)

    def verified(self, bucket_key: tuple[str, int, int] | None = None) -> "OHLC":
        """Return a copy satisfying ``low <= open, close, average <= high``.

        An average that overshoots the range by floating point noise is clamped
        back into it; any other breach raises ``ConsistencyViolation``.
        """
        if self.low > self.high:
            raise ConsistencyViolation(f"low {self.low} above high {self.high}", bucket_key)
        for name in ("open", "close"):
            value = getattr(self, name)
            if not self.low <= value <= self.high:
                raise ConsistencyViolation(
                    f"{name} {value} outside [{self.low}, {self.high}]", bucket_key
                )

        average = self.average
        if average < self.low and math.isclose(average, self.low, rel_tol=1e-9, abs_tol=1e-12):
            average = self.low
        elif average > self.high and math.isclose(average, self.high, rel_tol=1e-9, abs_tol=1e-12):
            average = self.high
        if not self.low <= average <= self.high:
            raise ConsistencyViolation(
                f"average {average} outside [{self.low}, {self.high}]", bucket_key
            )
        if average == self.average:
            return self
        return self.model_copy(update={"average": average})


class AggregateBucket(BaseModel):
    """A persisted OHLC bucket."""

    series_id: str
    bucket_start: int
    bucket_width: int
    open: float
    high: float
    low: float
    close: float
    average: float
    sample_count: int

    @property
    def key(self) -> tuple[str, int, int]:
        return (self.series_id, self.bucket_start, self.bucket_width)


class PendingGroup(BaseModel):
    """Source rows sharing one target bucket that has not been built yet."""

    series_id: str
    bucket_start: int
    low: float
    high: float
    average: float
    sample_count: int
