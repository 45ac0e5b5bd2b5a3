"""Price store."""

from pricekeeper.core.data.storage.aggregates import AggregateStore
from pricekeeper.core.data.storage.database import PriceDatabase
from pricekeeper.core.data.storage.duckdb_factory import DuckDBFactory, DuckDBFactoryConfig
from pricekeeper.core.data.storage.samples import SampleStore

__all__ = [
    "PriceDatabase",
    "SampleStore",
    "AggregateStore",
    "DuckDBFactory",
    "DuckDBFactoryConfig",
]
