"""pricekeeper core modules."""
