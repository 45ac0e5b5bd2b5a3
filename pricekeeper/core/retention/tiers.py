"""Retention tier ladder."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from pricekeeper.core.exceptions import ConfigurationError

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR


@dataclass(frozen=True, slots=True)
class RetentionTier:
    """One rung of the downsampling ladder.

    ``aggregate_after`` is the age past which source data is summarized into
    this tier; for the first tier it is also how long raw samples are kept.
    ``retain_for`` is the age past which this tier's own buckets expire.
    ``source_width`` selects the source: ``None`` re-buckets raw samples, a
    width re-buckets the finer tier with that width.
    """

    name: str
    bucket_width: int
    aggregate_after: int
    retain_for: int
    source_width: int | None = None

    def aggregation_cutoff(self, now: int) -> int:
        """Cutoff aligned down to a bucket boundary so only complete buckets are built."""

        cutoff = now - self.aggregate_after
        return (cutoff // self.bucket_width) * self.bucket_width

    def expiry_cutoff(self, now: int) -> int:
        return now - self.retain_for


DEFAULT_TIERS: tuple[RetentionTier, ...] = (
    RetentionTier("1m", MINUTE, aggregate_after=24 * HOUR, retain_for=7 * DAY),
    RetentionTier("5m", 5 * MINUTE, aggregate_after=7 * DAY, retain_for=30 * DAY),
    RetentionTier("15m", 15 * MINUTE, aggregate_after=30 * DAY, retain_for=365 * DAY),
)


def cascade(tiers: Sequence[RetentionTier]) -> tuple[RetentionTier, ...]:
    """Rebuild ``tiers`` so each tier after the first reads the previous tier's buckets."""

    cascaded: list[RetentionTier] = []
    previous: RetentionTier | None = None
    for tier in tiers:
        source = previous.bucket_width if previous else None
        cascaded.append(
            RetentionTier(tier.name, tier.bucket_width, tier.aggregate_after, tier.retain_for, source)
        )
        previous = tier
    return validate_tiers(cascaded)


def validate_tiers(tiers: Sequence[RetentionTier]) -> tuple[RetentionTier, ...]:
    """Check the ladder is non-empty, strictly widening and internally consistent."""

    if not tiers:
        raise ConfigurationError("at least one retention tier is required")

    widths = [tier.bucket_width for tier in tiers]
    for tier in tiers:
        if tier.bucket_width <= 0:
            raise ConfigurationError(f"tier {tier.name} must have a positive bucket width")
        if tier.aggregate_after <= 0 or tier.retain_for <= 0:
            raise ConfigurationError(f"tier {tier.name} must have positive retention windows")
        if tier.source_width is not None:
            if tier.source_width not in widths or tier.source_width >= tier.bucket_width:
                raise ConfigurationError(
                    f"tier {tier.name} reads from width {tier.source_width}, which is not a finer tier"
                )
            if tier.bucket_width % tier.source_width:
                raise ConfigurationError(
                    f"tier {tier.name} width {tier.bucket_width} is not a multiple of {tier.source_width}"
                )
    if any(later <= earlier for earlier, later in zip(widths, widths[1:])):
        raise ConfigurationError("retention tiers must be ordered by increasing bucket width")
    return tuple(tiers)


__all__ = ["RetentionTier", "DEFAULT_TIERS", "cascade", "validate_tiers", "MINUTE", "HOUR", "DAY"]
