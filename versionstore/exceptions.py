"""Custom exception hierarchy for the version store."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes."""

    # Configuration errors
    UNKNOWN_TABLE = "UNKNOWN_TABLE"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Storage errors
    DATABASE_ERROR = "DATABASE_ERROR"
    FILE_ERROR = "FILE_ERROR"
    VERSION_CONFLICT = "VERSION_CONFLICT"


class VersionStoreException(Exception):
    """
    Base exception for all version store errors.

    Provides structured errors with:
    - Human-readable message
    - Machine-readable error code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to a dictionary.

        Returns:
            Dictionary with error, message, and details fields
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class ConfigurationError(VersionStoreException):
    """The version store was set up with an unknown table or invalid settings."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.CONFIGURATION_ERROR,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class UnknownTableError(ConfigurationError):
    """Table has no schema registered."""

    def __init__(self, table: str):
        super().__init__(
            f'"{table}" is not a valid table',
            ErrorCode.UNKNOWN_TABLE,
            details={"table": table}
        )


class StorageError(VersionStoreException):
    """Persistence layer failure. Not recovered locally."""

    def __init__(self, message: str, original_error: Optional[Exception] = None,
                 error_code: ErrorCode = ErrorCode.DATABASE_ERROR):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(message, error_code, details)
        self.original_error = original_error


class VersionConflictError(StorageError):
    """Concurrent creators kept taking the next version number."""

    def __init__(self, table: str, record_id: int, attempts: int,
                 original_error: Optional[Exception] = None):
        super().__init__(
            f'Could not allocate a version for "{table}.id={record_id}" after {attempts} attempts',
            original_error,
            ErrorCode.VERSION_CONFLICT,
        )
        self.details.update({"table": table, "record_id": record_id, "attempts": attempts})
