"""Percentage change of a series over fixed look-back horizons."""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass

from pricekeeper.core.data.ingestion.validator import validate_series_id, validate_value
from pricekeeper.core.data.storage import AggregateStore, SampleStore
from pricekeeper.core.exceptions import ValidationError
from pricekeeper.core.retention.tiers import DEFAULT_TIERS, RetentionTier

HORIZONS: tuple[tuple[int, str], ...] = (
    (3600, "1h"),
    (43200, "12h"),
    (86400, "24h"),
    (604800, "7d"),
    (2592000, "30d"),
)


def calculate_percentage_change(current: float, previous: float) -> float:
    """``(current - previous) / previous * 100``; a zero ``previous`` is rejected."""

    validate_value(current, field="current")
    validate_value(previous, field="previous")
    if previous == 0:
        raise ValidationError("previous value cannot be zero", field="previous", value=previous)
    return (current - previous) / previous * 100.0


def direction(change_percent: float) -> str:
    if change_percent > 0:
        return "up"
    if change_percent < 0:
        return "down"
    return "flat"


@dataclass(frozen=True, slots=True)
class PriceChange:
    """Change between a reference value and the current value over one horizon."""

    label: str
    seconds: int
    previous: float
    current: float
    change_percent: float
    source: str

    @property
    def direction(self) -> str:
        return direction(self.change_percent)

    def describe(self) -> str:
        sign = "+" if self.change_percent >= 0 else ""
        return f"{sign}{self.change_percent:.2f}% ({self.label})"


class PriceChangeService:
    """Looks up reference values in raw samples or in the tier that still holds them."""

    def __init__(
        self,
        samples: SampleStore,
        aggregates: AggregateStore,
        tiers: Sequence[RetentionTier] = DEFAULT_TIERS,
        horizons: Sequence[tuple[int, str]] = HORIZONS,
    ):
        self.samples = samples
        self.aggregates = aggregates
        self.tiers = tuple(tiers)
        self.horizons = tuple(horizons)

    @property
    def raw_retention(self) -> int:
        return self.tiers[0].aggregate_after

    def source_width(self, seconds: int) -> int | None:
        """Bucket width consulted for a horizon, or ``None`` for raw samples."""

        if seconds <= self.raw_retention:
            return None
        for tier in self.tiers:
            if seconds <= tier.retain_for:
                return tier.bucket_width
        return self.tiers[-1].bucket_width

    def reference_value(self, series_id: str, seconds: int, now: int) -> tuple[float | None, str]:
        since = now - seconds
        width = self.source_width(seconds)
        if width is None:
            return self.samples.value_as_of(series_id, since), "raw"
        return self.aggregates.earliest_bucket_at_or_before(series_id, width, since), f"{width}s"

    def changes(self, series_id: str, current_value: float, now: int | None = None) -> list[PriceChange]:
        """Changes for every horizon with a usable reference value, shortest first."""

        validate_series_id(series_id)
        validate_value(current_value, field="current")
        now = int(time.time()) if now is None else now

        results: list[PriceChange] = []
        for seconds, label in self.horizons:
            previous, source = self.reference_value(series_id, seconds, now)
            if previous is None or previous == 0:
                continue
            results.append(
                PriceChange(
                    label=label,
                    seconds=seconds,
                    previous=previous,
                    current=current_value,
                    change_percent=calculate_percentage_change(current_value, previous),
                    source=source,
                )
            )
        return results

    def indicator(self, series_id: str, current_value: float, now: int | None = None) -> PriceChange | None:
        """One hour change used for short status lines, if there is history."""

        now = int(time.time()) if now is None else now
        previous = self.samples.value_as_of(series_id, now - 3600)
        if previous is None or previous == 0:
            return None
        return PriceChange(
            label="1h",
            seconds=3600,
            previous=previous,
            current=current_value,
            change_percent=calculate_percentage_change(current_value, previous),
            source="raw",
        )


__all__ = [
    "HORIZONS",
    "PriceChange",
    "PriceChangeService",
    "calculate_percentage_change",
    "direction",
]
