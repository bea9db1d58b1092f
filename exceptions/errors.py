"""
Custom exception classes for the application.

Every error carries a machine-readable code, an HTTP status and a details
dict so routes can return it unchanged via to_dict().
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "ORDER_FILE_PARSE_ERROR")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# ORDER FILE ERRORS
# ===================

class OrderFileParseError(ValidationError):
    """Uploaded order file could not be read as a table."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="ORDER_FILE_PARSE_ERROR",
            message=message,
            details=details
        )


class ImportTooLargeError(ValidationError):
    """Order file has more rows than a single import accepts."""

    def __init__(self, row_count: int, max_rows: int):
        super().__init__(
            code="ORDER_FILE_TOO_LARGE",
            message=f"File has {row_count} rows, maximum is {max_rows}",
            details={"row_count": row_count, "max_rows": max_rows}
        )


# ===================
# MARKETPLACE ERRORS
# ===================

class UnknownMarketplaceError(ValidationError):
    """Marketplace id is not in the profile registry."""

    def __init__(self, marketplace_id: str, valid: Optional[list[str]] = None):
        super().__init__(
            code="UNKNOWN_MARKETPLACE",
            message=f"Unknown marketplace: {marketplace_id}",
            details={"provided": marketplace_id, "valid": valid or []}
        )


# ===================
# PREVIEW ERRORS
# ===================

class PreviewNotFoundError(NotFoundError):
    """Import preview expired or never existed."""

    def __init__(self, preview_id: str):
        super().__init__(
            resource="Import preview",
            identifier=preview_id,
            code="IMPORT_PREVIEW_NOT_FOUND"
        )
