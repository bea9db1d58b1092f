"""
Order row parser.

Turns raw rows from a marketplace export into canonical orders, order
items and row-level warnings. Bad rows are reported, never raised, so a
single malformed line cannot reject the whole file.

Supports two item layouts, both allowed on the same row:
    Flat:   product_sku / quantity / unit_price columns, one item per row
    Packed: items column holding "sku:qty:price;sku:qty:price"
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence
import structlog

from models.order_import import (
    CanonicalOrder,
    CanonicalOrderItem,
    ImportWarning,
    ImportWarningKind,
)
from parsers.header_mapping import (
    DEFAULT_ORDER_HEADER_MAPPING,
    apply_value_transformers,
    map_row,
)
from parsers.marketplace_profiles import MarketplaceProfile
from parsers.value_transformers import (
    clean_text,
    normalize_order_status,
    normalize_payment_status,
    parse_date,
    parse_price,
    parse_quantity,
)

logger = structlog.get_logger(__name__)

ITEM_SEPARATOR = ";"
ITEM_FIELD_SEPARATOR = ":"

# Spreadsheet row of the first data row (1-indexed, after the header)
FIRST_DATA_ROW = 2


@dataclass
class OrderParseResult:
    """Result of parsing an order file."""
    orders: list[CanonicalOrder] = field(default_factory=list)
    items: list[CanonicalOrderItem] = field(default_factory=list)
    warnings: list[ImportWarning] = field(default_factory=list)
    total_rows: int = 0

    @property
    def skipped_rows(self) -> int:
        return sum(1 for w in self.warnings if w.skips_row)

    def warning_count(self, kind: ImportWarningKind) -> int:
        return sum(1 for w in self.warnings if w.kind == kind)

    def items_for(self, order_number: str) -> list[CanonicalOrderItem]:
        return [item for item in self.items if item.order_number == order_number]

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "total_rows": self.total_rows,
            "order_count": len(self.orders),
            "item_count": len(self.items),
            "skipped_rows": self.skipped_rows,
            "orders": [o.model_dump(mode="json") for o in self.orders],
            "items": [i.model_dump(mode="json") for i in self.items],
            "warnings": [w.model_dump(mode="json") for w in self.warnings],
        }


def parse_order_rows(
    rows: Iterable[Mapping[str, Any]],
    existing_order_numbers: Iterable[str],
    existing_skus: Iterable[str],
    header_mapping: Optional[Mapping[str, str]] = None,
    profile: Optional[MarketplaceProfile] = None,
    row_numbers: Optional[Sequence[int]] = None,
) -> OrderParseResult:
    """
    Parse raw file rows into canonical orders and items.

    Args:
        rows: Raw rows keyed by source column name
        existing_order_numbers: Order numbers already in the store,
            used for duplicate_order warnings only
        existing_skus: SKUs of known products, used for unknown_sku warnings
        header_mapping: Resolved source -> canonical mapping
            (defaults to the generic mapping)
        profile: Detected marketplace, whose value transformers are applied
        row_numbers: Spreadsheet row of each entry in rows, for warnings
            (defaults to position + 2)

    Returns:
        OrderParseResult with orders, items and warnings
    """
    mapping = header_mapping if header_mapping is not None else DEFAULT_ORDER_HEADER_MAPPING
    known_orders = {str(n) for n in existing_order_numbers}
    known_skus = {str(s) for s in existing_skus}

    result = OrderParseResult()
    seen_order_numbers: set[str] = set()

    for index, raw_row in enumerate(rows):
        row_num = row_numbers[index] if row_numbers else index + FIRST_DATA_ROW
        result.total_rows += 1

        row = apply_value_transformers(map_row(raw_row, mapping), profile)

        order_number = clean_text(row.get("order_number"))
        if not order_number:
            result.warnings.append(ImportWarning(
                kind=ImportWarningKind.MISSING_FIELD,
                message=f"Row {row_num}: missing order number",
                row=row_num,
            ))
            continue

        customer_email = clean_text(row.get("customer_email"))
        if not customer_email:
            result.warnings.append(ImportWarning(
                kind=ImportWarningKind.MISSING_FIELD,
                message=f"Row {row_num}: missing customer email ({order_number})",
                row=row_num,
                order_number=order_number,
            ))
            continue

        order_date = parse_date(row.get("order_date"))
        if order_date is None:
            result.warnings.append(ImportWarning(
                kind=ImportWarningKind.INVALID_DATE,
                message=f"Row {row_num}: invalid date ({order_number})",
                row=row_num,
                order_number=order_number,
            ))
            continue

        if order_number in known_orders:
            result.warnings.append(ImportWarning(
                kind=ImportWarningKind.DUPLICATE_ORDER,
                message=f"Order {order_number} already exists",
                row=row_num,
                order_number=order_number,
            ))

        if order_number not in seen_order_numbers:
            seen_order_numbers.add(order_number)
            result.orders.append(_build_order(row, order_number, order_date, customer_email))

        row_items = _flat_items(row, order_number) + parse_packed_items(row.get("items"), order_number)
        for item in row_items:
            if item.sku not in known_skus:
                result.warnings.append(ImportWarning(
                    kind=ImportWarningKind.UNKNOWN_SKU,
                    message=f"Unknown SKU: {item.sku} (row {row_num}, order {order_number})",
                    row=row_num,
                    order_number=order_number,
                    sku=item.sku,
                ))
            result.items.append(item)

    logger.info(
        "order_rows_parsed",
        total_rows=result.total_rows,
        orders=len(result.orders),
        items=len(result.items),
        skipped_rows=result.skipped_rows,
        unknown_skus=result.warning_count(ImportWarningKind.UNKNOWN_SKU),
        duplicates=result.warning_count(ImportWarningKind.DUPLICATE_ORDER),
        marketplace=profile.id if profile else None,
    )

    return result


def _build_order(
    row: Mapping[str, Any],
    order_number: str,
    order_date,
    customer_email: str,
) -> CanonicalOrder:
    return CanonicalOrder(
        order_number=order_number,
        order_date=order_date,
        customer_email=customer_email,
        customer_name=clean_text(row.get("customer_name")),
        shipping_address=clean_text(row.get("shipping_address")),
        shipping_address_line_2=clean_text(row.get("shipping_address_line_2")),
        shipping_city=clean_text(row.get("shipping_city")),
        shipping_postal_code=clean_text(row.get("shipping_postal_code")),
        shipping_country=clean_text(row.get("shipping_country")),
        shipping_phone=clean_text(row.get("shipping_phone")),
        status=normalize_order_status(row.get("status")),
        payment_status=normalize_payment_status(row.get("payment_status")),
        source=clean_text(row.get("source")),
        notes=clean_text(row.get("notes")) or clean_text(row.get("internal_notes")),
    )


def _flat_items(row: Mapping[str, Any], order_number: str) -> list[CanonicalOrderItem]:
    sku = clean_text(row.get("product_sku"))
    if not sku:
        return []
    return [CanonicalOrderItem(
        order_number=order_number,
        sku=sku,
        quantity=parse_quantity(row.get("quantity")),
        unit_price=max(0.0, parse_price(row.get("unit_price"))),
        title=clean_text(row.get("product_title")),
    )]


def parse_packed_items(value: Any, order_number: str) -> list[CanonicalOrderItem]:
    """
    Parse a packed items cell: "SKU1:2:9.99;SKU2:1;SKU3".

    Quantity and price are optional and default like flat columns.
    Empty segments are ignored.
    """
    text = clean_text(value)
    if not text:
        return []

    items = []
    for part in text.split(ITEM_SEPARATOR):
        fields = [f.strip() for f in part.strip().split(ITEM_FIELD_SEPARATOR)]
        sku = fields[0] if fields else ""
        if not sku:
            continue
        items.append(CanonicalOrderItem(
            order_number=order_number,
            sku=sku,
            quantity=parse_quantity(fields[1] if len(fields) > 1 else None),
            unit_price=max(0.0, parse_price(fields[2] if len(fields) > 2 else None)),
        ))
    return items
