"""Query services over the price store."""

from pricekeeper.core.services.price_changes import (
    HORIZONS,
    PriceChange,
    PriceChangeService,
    calculate_percentage_change,
    direction,
)

__all__ = [
    "HORIZONS",
    "PriceChange",
    "PriceChangeService",
    "calculate_percentage_change",
    "direction",
]
