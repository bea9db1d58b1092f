"""
Order import schemas.

Canonical order / order item records produced from marketplace exports,
parse warnings, import options and results.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import ConfigDict, Field

from models.base import BaseSchema, TimestampMixin


class OrderStatus(str, Enum):
    """Canonical order lifecycle status."""
    PENDING = "pending"
    PROCESSING = "processing"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    """Canonical payment status."""
    PAID = "paid"
    PENDING = "pending"
    REFUNDED = "refunded"


class ImportWarningKind(str, Enum):
    """Kinds of row diagnostics collected while parsing."""
    UNKNOWN_SKU = "unknown_sku"
    DUPLICATE_ORDER = "duplicate_order"
    INVALID_DATE = "invalid_date"
    MISSING_FIELD = "missing_field"


# Warnings that drop the whole row
ROW_SKIP_WARNINGS = frozenset({
    ImportWarningKind.MISSING_FIELD,
    ImportWarningKind.INVALID_DATE,
})


# ===================
# CANONICAL RECORDS
# ===================

class CanonicalOrder(BaseSchema):
    """One order per distinct order number in a parsed file."""

    order_number: str = Field(..., min_length=1, description="Marketplace order number")
    order_date: datetime = Field(..., description="Order instant (UTC)")
    customer_email: str = Field(..., min_length=1)
    customer_name: Optional[str] = None
    shipping_address: Optional[str] = None
    shipping_address_line_2: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country: Optional[str] = None
    shipping_phone: Optional[str] = None
    status: OrderStatus = OrderStatus.DELIVERED
    payment_status: PaymentStatus = PaymentStatus.PAID
    source: Optional[str] = None
    notes: Optional[str] = None


class CanonicalOrderItem(BaseSchema):
    """Order line, linked to its order by order number."""

    order_number: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)
    unit_price: float = Field(0.0, ge=0)
    title: Optional[str] = Field(None, description="Title given by the file, used when the SKU is unknown")


class ImportWarning(BaseSchema):
    """Row-level diagnostic. Never raised, always collected."""

    kind: ImportWarningKind
    message: str
    row: Optional[int] = Field(None, description="1-based row number including header row")
    order_number: Optional[str] = None
    sku: Optional[str] = None

    @property
    def skips_row(self) -> bool:
        return self.kind in ROW_SKIP_WARNINGS


class HeaderMappingOverride(BaseSchema):
    """User-supplied column mapping for one marketplace."""

    model_config = ConfigDict(populate_by_name=True)

    source_column: str = Field(..., min_length=1, alias="sourceColumn")
    target_field: str = Field(..., min_length=1, alias="targetField")


# ===================
# IMPORT
# ===================

class ImportOptions(BaseSchema):
    """Duplicate policy for the reconciliation step."""

    skip_duplicates: bool = True
    update_existing: bool = False


class ImportResult(BaseSchema):
    """Outcome of one import run."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    items_created: int = 0
    errors: list[str] = Field(default_factory=list)


# ===================
# API
# ===================

class MarketplaceSummary(BaseSchema):
    """Marketplace profile as shown to the UI."""

    id: str
    name: str
    description: str
    identifying_headers: list[str] = Field(default_factory=list)
    custom_mappings: list[HeaderMappingOverride] = Field(default_factory=list)


class OrderImportPreview(BaseSchema):
    """Parsed upload waiting for confirmation. Nothing written yet."""

    preview_id: str
    file_name: str
    import_type: str = Field(..., pattern="^(csv|xls)$")
    marketplace: Optional[str] = Field(None, description="Detected or forced marketplace id")
    marketplace_name: Optional[str] = None
    total_rows: int = 0
    orders: list[CanonicalOrder] = Field(default_factory=list)
    items: list[CanonicalOrderItem] = Field(default_factory=list)
    warnings: list[ImportWarning] = Field(default_factory=list)
    duplicate_count: int = 0
    unknown_sku_count: int = 0
    expires_in_minutes: int = 30


class OrderImportConfirmRequest(BaseSchema):
    """Confirm a preview with the duplicate policy to apply."""

    preview_id: str
    skip_duplicates: Optional[bool] = Field(None, description="Defaults to the configured value")
    update_existing: bool = False


class OrderImportHistoryCreate(BaseSchema):
    """Row written to order_import_history after an import."""

    file_name: Optional[str] = None
    import_type: str = Field(..., pattern="^(csv|xls|ocr)$")
    source: Optional[str] = None
    orders_created: int = 0
    orders_updated: int = 0
    orders_skipped: int = 0
    items_created: int = 0
    errors: list[str] = Field(default_factory=list)


class OrderImportHistoryResponse(TimestampMixin, OrderImportHistoryCreate):
    """Stored import history entry."""

    id: str
    user_id: Optional[str] = None
    user_email: Optional[str] = None
