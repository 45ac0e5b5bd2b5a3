"""Exception handling module."""

from pricekeeper.core.exceptions.base import (
    ConfigurationError,
    ConsistencyViolation,
    PriceKeeperError,
    StorageError,
    ValidationError,
)
from pricekeeper.core.exceptions.codes import ErrorCode

__all__ = [
    "PriceKeeperError",
    "StorageError",
    "ValidationError",
    "ConsistencyViolation",
    "ConfigurationError",
    "ErrorCode",
]
