"""Stable error codes shared by exceptions, logs and CLI payloads."""

from enum import Enum


class ErrorCode(str, Enum):
    GENERAL = "GENERAL_ERROR"
    STORAGE = "STORAGE_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    CONSISTENCY = "CONSISTENCY_VIOLATION"
    CONFIG = "CONFIG_ERROR"
    CYCLE_ABANDONED = "CLEANUP_CYCLE_ABANDONED"


__all__ = ["ErrorCode"]
