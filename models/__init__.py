"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema, TimestampMixin
from models.order_import import (
    OrderStatus,
    PaymentStatus,
    ImportWarningKind,
    CanonicalOrder,
    CanonicalOrderItem,
    ImportWarning,
    HeaderMappingOverride,
    ImportOptions,
    ImportResult,
    MarketplaceSummary,
    OrderImportPreview,
    OrderImportConfirmRequest,
    OrderImportHistoryCreate,
    OrderImportHistoryResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",

    # Order import
    "OrderStatus",
    "PaymentStatus",
    "ImportWarningKind",
    "CanonicalOrder",
    "CanonicalOrderItem",
    "ImportWarning",
    "HeaderMappingOverride",
    "ImportOptions",
    "ImportResult",
    "MarketplaceSummary",
    "OrderImportPreview",
    "OrderImportConfirmRequest",
    "OrderImportHistoryCreate",
    "OrderImportHistoryResponse",
]
