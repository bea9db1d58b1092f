"""
Value transformers for marketplace order exports.

Every function here is total: it never raises and always returns a
best-effort value, so one malformed cell cannot abort a file.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional
import math
import re

import pandas as pd

from models.order_import import OrderStatus, PaymentStatus


CURRENCY_SYMBOLS_RE = re.compile(r"[€$£¥₹]")
WHITESPACE_RE = re.compile(r"\s+")
ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
DMY_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
NUMERIC_RE = re.compile(r"^\d+(\.\d+)?$")

# Days between 1899-12-30 (Excel serial 0, with the 1900 leap year bug) and 1970-01-01
EXCEL_EPOCH_OFFSET_DAYS = 25569
SECONDS_PER_DAY = 86400
MIN_EXCEL_YEAR = 1990


def is_blank(value: Any) -> bool:
    """True for None, NaN/NaT and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def clean_text(value: Any) -> Optional[str]:
    """Stripped string, or None when blank."""
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        # Spreadsheet readers turn "75011" into 75011.0
        value = int(value)
    return str(value).strip()


def parse_price(value: Any) -> float:
    """
    Parse a price cell.

    Strips currency symbols and whitespace. When both "." and "," are
    present the rightmost one is the decimal separator:
    "€1.234,56" -> 1234.56, "$1,234.56" -> 1234.56, "27,50" -> 27.5.
    Returns 0.0 when unparseable.
    """
    if is_blank(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0

    text = CURRENCY_SYMBOLS_RE.sub("", str(value))
    text = WHITESPACE_RE.sub("", text)

    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".", 1) if text.count(",") == 1 else text.replace(",", "")

    try:
        price = float(text)
    except ValueError:
        return 0.0
    return price if math.isfinite(price) else 0.0


def parse_quantity(value: Any) -> int:
    """Parse a quantity cell. Anything unparseable or below 1 becomes 1."""
    if is_blank(value) or isinstance(value, bool):
        return 1
    try:
        quantity = int(float(str(value).strip().replace(",", ".")))
    except (ValueError, OverflowError):
        return 1
    return max(1, quantity)


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse an order date into a UTC datetime.

    Tried in order: ISO prefix (YYYY-MM-DD...), DD/MM/YYYY, Excel serial.
    Excel serials are only accepted when they land after 1990.

    Returns:
        Timezone-aware datetime, or None if nothing matched
    """
    if is_blank(value) or isinstance(value, bool):
        return None

    # Already-typed values from spreadsheet readers
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    text = str(value).strip()

    iso_match = ISO_DATE_RE.match(text)
    if iso_match:
        parsed = _parse_iso(text, iso_match)
        if parsed is not None:
            return parsed

    dmy_match = DMY_DATE_RE.match(text)
    if dmy_match:
        day, month, year = (int(part) for part in dmy_match.groups())
        try:
            return datetime(year, month, day, tzinfo=timezone.utc)
        except ValueError:
            return None

    if isinstance(value, (int, float)) or NUMERIC_RE.match(text):
        return _parse_excel_serial(float(text))

    return None


def _parse_iso(text: str, match: re.Match) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    except ValueError:
        pass
    year, month, day = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None


def _parse_excel_serial(serial: float) -> Optional[datetime]:
    if not math.isfinite(serial):
        return None
    seconds = (serial - EXCEL_EPOCH_OFFSET_DAYS) * SECONDS_PER_DAY
    try:
        parsed = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=seconds)
    except OverflowError:
        return None
    if parsed.year <= MIN_EXCEL_YEAR:
        return None
    return parsed


# ===================
# STATUS NORMALIZERS
# ===================

def _status_key(value: Any) -> str:
    return "" if is_blank(value) else str(value).lower().strip()


def normalize_order_status(value: Any) -> str:
    """Canonical status if already canonical, else delivered."""
    key = _status_key(value)
    valid = {status.value for status in OrderStatus}
    return key if key in valid else OrderStatus.DELIVERED.value


def normalize_payment_status(value: Any) -> str:
    """Canonical payment status if already canonical, else paid."""
    key = _status_key(value)
    valid = {status.value for status in PaymentStatus}
    return key if key in valid else PaymentStatus.PAID.value


DISCOGS_STATUS_MAP = {
    "shipped": OrderStatus.SHIPPED,
    "payment received": OrderStatus.CONFIRMED,
    "payment pending": OrderStatus.PENDING,
    "invoice sent": OrderStatus.PENDING,
    "cancelled": OrderStatus.CANCELLED,
    "refunded": OrderStatus.REFUNDED,
    "merged": OrderStatus.CANCELLED,
    "shipped (carrier unknown)": OrderStatus.SHIPPED,
    "awaiting shipment": OrderStatus.PROCESSING,
}

EBAY_STATUS_MAP = {
    "completed": OrderStatus.DELIVERED,
    "shipped": OrderStatus.SHIPPED,
    "paid": OrderStatus.CONFIRMED,
    "awaiting payment": OrderStatus.PENDING,
    "cancelled": OrderStatus.CANCELLED,
    "refunded": OrderStatus.REFUNDED,
    "delivered": OrderStatus.DELIVERED,
    "dispatched": OrderStatus.SHIPPED,
    "awaiting dispatch": OrderStatus.PROCESSING,
}


def normalize_discogs_status(value: Any) -> str:
    """Discogs order status. Unknown values count as delivered."""
    return DISCOGS_STATUS_MAP.get(_status_key(value), OrderStatus.DELIVERED).value


def normalize_discogs_payment_status(value: Any) -> str:
    key = _status_key(value)
    if "received" in key or "paid" in key:
        return PaymentStatus.PAID.value
    if "pending" in key or "invoice" in key:
        return PaymentStatus.PENDING.value
    if "refund" in key:
        return PaymentStatus.REFUNDED.value
    return PaymentStatus.PAID.value


def normalize_ebay_status(value: Any) -> str:
    """eBay order status. Unknown values count as delivered."""
    return EBAY_STATUS_MAP.get(_status_key(value), OrderStatus.DELIVERED).value


def normalize_ebay_payment_status(value: Any) -> str:
    key = _status_key(value)
    if "paid" in key or "completed" in key or "cleared" in key:
        return PaymentStatus.PAID.value
    if "pending" in key or "awaiting" in key:
        return PaymentStatus.PENDING.value
    if "refund" in key:
        return PaymentStatus.REFUNDED.value
    return PaymentStatus.PAID.value
