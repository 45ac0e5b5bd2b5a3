"""pricekeeper: tiered time-series retention for price feeds."""

__version__ = "0.1.0"
