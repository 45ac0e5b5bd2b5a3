"""pricekeeper core exception classes."""

from typing import Any

from pricekeeper.core.exceptions.codes import ErrorCode


class PriceKeeperError(Exception):
    """Base exception for pricekeeper."""

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.GENERAL.value,
        details: dict[str, Any] | None = None,
    ):
        """Initialise the exception.

        Args:
            message: human readable message
            error_code: stable machine readable code
            details: extra context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        """Return a serializable payload representing the error."""

        return {"code": self.error_code, "message": self.message, "details": dict(self.details)}


class StorageError(PriceKeeperError):
    """Connection, lock or disk failure in the price store."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if operation:
            super_details["operation"] = operation
        super().__init__(message, ErrorCode.STORAGE.value, super_details)
        self.operation = operation


class ValidationError(PriceKeeperError):
    """Malformed sample or query input."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if field:
            super_details["field"] = field
            super_details["value"] = value
        super().__init__(message, ErrorCode.VALIDATION.value, super_details)
        self.field = field
        self.value = value


class ConsistencyViolation(PriceKeeperError):
    """An aggregate bucket broke the OHLC invariant."""

    def __init__(
        self,
        message: str,
        bucket_key: tuple[str, int, int] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if bucket_key:
            series_id, bucket_start, bucket_width = bucket_key
            super_details.update(
                {"series_id": series_id, "bucket_start": bucket_start, "bucket_width": bucket_width}
            )
        super().__init__(message, ErrorCode.CONSISTENCY.value, super_details)
        self.bucket_key = bucket_key


class ConfigurationError(PriceKeeperError):
    """Invalid configuration or retention tier ladder."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.CONFIG.value, details)
