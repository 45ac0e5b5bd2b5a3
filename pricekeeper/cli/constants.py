"""Exit codes shared by CLI commands."""

SYSTEM_EXIT_CODE = 1
VALIDATION_EXIT_CODE = 2
STORAGE_EXIT_CODE = 3
CLEANUP_EXIT_CODE = 4

__all__ = ["SYSTEM_EXIT_CODE", "VALIDATION_EXIT_CODE", "STORAGE_EXIT_CODE", "CLEANUP_EXIT_CODE"]
