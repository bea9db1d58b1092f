"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    DatabaseError,

    # Order files
    OrderFileParseError,
    ImportTooLargeError,

    # Marketplaces
    UnknownMarketplaceError,

    # Previews
    PreviewNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "DatabaseError",

    # Order files
    "OrderFileParseError",
    "ImportTooLargeError",

    # Marketplaces
    "UnknownMarketplaceError",

    # Previews
    "PreviewNotFoundError",
]
