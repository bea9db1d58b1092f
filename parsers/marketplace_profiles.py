"""
Marketplace profile registry.

Each supported marketplace export format is described by one immutable
profile: how its columns map onto canonical order fields, which value
transformers apply, and which headers / filenames identify it.

Adding a marketplace means adding one profile and registering it in
MARKETPLACE_PROFILES.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional
import re

from exceptions import UnknownMarketplaceError
from parsers.value_transformers import (
    parse_price,
    parse_quantity,
    normalize_discogs_status,
    normalize_discogs_payment_status,
    normalize_ebay_status,
    normalize_ebay_payment_status,
)


Transformer = Callable[[Any], Any]


@dataclass(frozen=True)
class MarketplaceProfile:
    """Column mapping, transformers and detection signals for one marketplace."""
    id: str
    name: str
    description: str
    header_mapping: Mapping[str, str]
    identifying_headers: tuple[str, ...]
    file_name_patterns: tuple[re.Pattern, ...]
    value_transformers: Mapping[str, Transformer] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def matches_filename(self, filename: str) -> bool:
        return any(pattern.search(filename) for pattern in self.file_name_patterns)


def _profile(
    id: str,
    name: str,
    description: str,
    header_mapping: dict[str, str],
    identifying_headers: list[str],
    file_name_patterns: list[str],
    value_transformers: dict[str, Transformer],
) -> MarketplaceProfile:
    return MarketplaceProfile(
        id=id,
        name=name,
        description=description,
        header_mapping=MappingProxyType(dict(header_mapping)),
        identifying_headers=tuple(identifying_headers),
        file_name_patterns=tuple(re.compile(p, re.IGNORECASE) for p in file_name_patterns),
        value_transformers=MappingProxyType(dict(value_transformers)),
    )


PRICE_FIELDS = ("unit_price", "total_price", "shipping_amount", "order_total", "subtotal")


# ===================
# DISCOGS
# ===================

DISCOGS = _profile(
    id="discogs",
    name="Discogs",
    description="Discogs Seller order export",
    identifying_headers=[
        "Listing ID", "Release ID", "order_id", "Order ID", "Discogs Order",
        "Media Condition", "Sleeve Condition", "Catalog#",
    ],
    file_name_patterns=[r"discogs", r"disco?gs"],
    header_mapping={
        # Order identification
        "order_id": "order_number",
        "Order ID": "order_number",
        "Order Number": "order_number",
        "Order Id": "order_number",
        # Date
        "order_created": "order_date",
        "Order Created": "order_date",
        "Order Date": "order_date",
        "Created": "order_date",
        "Date": "order_date",
        # Customer
        "buyer": "customer_name",
        "Buyer": "customer_name",
        "Buyer Username": "customer_name",
        "buyer_name": "customer_name",
        "buyer_email": "customer_email",
        "Buyer Email": "customer_email",
        "Email": "customer_email",
        # Shipping address
        "shipping_name": "customer_name",
        "Shipping Name": "customer_name",
        "Ship To Name": "customer_name",
        "shipping_address": "shipping_address",
        "Shipping Address": "shipping_address",
        "Address": "shipping_address",
        "Address Line 1": "shipping_address",
        "shipping_address_line_1": "shipping_address",
        "shipping_address_line_2": "shipping_address_line_2",
        "Shipping Address Line 2": "shipping_address_line_2",
        "Address Line 2": "shipping_address_line_2",
        "shipping_city": "shipping_city",
        "Shipping City": "shipping_city",
        "City": "shipping_city",
        "shipping_postal_code": "shipping_postal_code",
        "Shipping Postal Code": "shipping_postal_code",
        "Postal Code": "shipping_postal_code",
        "Zip": "shipping_postal_code",
        "Zip Code": "shipping_postal_code",
        "shipping_country": "shipping_country",
        "Shipping Country": "shipping_country",
        "Country": "shipping_country",
        "shipping_phone": "shipping_phone",
        "Shipping Phone": "shipping_phone",
        "Phone": "shipping_phone",
        # Status
        "status": "status",
        "Status": "status",
        "Order Status": "status",
        "payment_status": "payment_status",
        "Payment Status": "payment_status",
        # Items
        "Listing ID": "product_sku",
        "listing_id": "product_sku",
        "Catalog#": "product_sku",
        "catalog_number": "product_sku",
        "Catalog Number": "product_sku",
        "Release ID": "discogs_release_id",
        "release_id": "discogs_release_id",
        "Release Title": "product_title",
        "release_title": "product_title",
        "Artist": "artist_name",
        "artist": "artist_name",
        "Label": "label_name",
        "label": "label_name",
        "Format": "format",
        "format": "format",
        "Media Condition": "condition_media",
        "Sleeve Condition": "condition_sleeve",
        # Pricing
        "price": "unit_price",
        "Price": "unit_price",
        "Item Price": "unit_price",
        "item_price": "unit_price",
        "quantity": "quantity",
        "Quantity": "quantity",
        "Qty": "quantity",
        "item_total": "total_price",
        "Item Total": "total_price",
        "subtotal": "subtotal",
        "Subtotal": "subtotal",
        "order_total": "order_total",
        "Order Total": "order_total",
        "Total": "order_total",
        "shipping": "shipping_amount",
        "Shipping": "shipping_amount",
        "Shipping Cost": "shipping_amount",
        # Notes
        "buyer_message": "notes",
        "Buyer Message": "notes",
        "Comments": "notes",
        "Notes": "notes",
        "Seller Notes": "internal_notes",
    },
    value_transformers={
        "status": normalize_discogs_status,
        "payment_status": normalize_discogs_payment_status,
        "quantity": parse_quantity,
        **{name: parse_price for name in PRICE_FIELDS},
    },
)


# ===================
# EBAY
# ===================

EBAY = _profile(
    id="ebay",
    name="eBay",
    description="eBay Seller Hub order report",
    identifying_headers=[
        "eBay Item Number", "Item ID", "Sales Record Number", "Transaction ID",
        "eBay User ID", "eBay Order", "Record Number", "Order Number",
    ],
    file_name_patterns=[r"ebay", r"e-?bay"],
    header_mapping={
        # Order identification
        "Sales Record Number": "order_number",
        "Record Number": "order_number",
        "Order Number": "order_number",
        "order_id": "order_number",
        "Transaction ID": "transaction_id",
        # Date
        "Paid on Date": "order_date",
        "Sale Date": "order_date",
        "Sold On": "order_date",
        "Transaction Date": "order_date",
        "Date": "order_date",
        "Order Date": "order_date",
        # Customer
        "Buyer User ID": "customer_name",
        "Buyer Username": "customer_name",
        "Buyer ID": "customer_name",
        "eBay User ID": "customer_name",
        "buyer_name": "customer_name",
        "Buyer Name": "customer_name",
        "Buyer Full Name": "customer_name",
        "Buyer Email": "customer_email",
        "buyer_email": "customer_email",
        "Email": "customer_email",
        "Buyer Email Address": "customer_email",
        # Shipping address
        "Ship To Name": "customer_name",
        "Recipient Name": "customer_name",
        "Ship To Address 1": "shipping_address",
        "Ship to Address 1": "shipping_address",
        "Ship to: Address Line 1": "shipping_address",
        "Shipping Address 1": "shipping_address",
        "Address": "shipping_address",
        "Ship To Address 2": "shipping_address_line_2",
        "Ship to Address 2": "shipping_address_line_2",
        "Ship to: Address Line 2": "shipping_address_line_2",
        "Shipping Address 2": "shipping_address_line_2",
        "Ship To City": "shipping_city",
        "Ship to: City": "shipping_city",
        "City": "shipping_city",
        "Ship To Zip": "shipping_postal_code",
        "Ship to: Postal Code": "shipping_postal_code",
        "Post Code": "shipping_postal_code",
        "Postal Code": "shipping_postal_code",
        "Zip": "shipping_postal_code",
        "Ship To Country": "shipping_country",
        "Ship to: Country": "shipping_country",
        "Country": "shipping_country",
        "Shipping Country": "shipping_country",
        "Buyer Phone Number": "shipping_phone",
        "Phone": "shipping_phone",
        # Status
        "Order Status": "status",
        "Status": "status",
        "Paid Status": "payment_status",
        "Payment Status": "payment_status",
        # Items
        "eBay Item Number": "ebay_item_id",
        "Item ID": "ebay_item_id",
        "Item Number": "ebay_item_id",
        "Custom Label": "product_sku",
        "Custom label": "product_sku",
        "SKU": "product_sku",
        "Item SKU": "product_sku",
        "Item Title": "product_title",
        "Title": "product_title",
        "Item Description": "product_title",
        # Pricing
        "Sold For": "unit_price",
        "Item Price": "unit_price",
        "Sale Price": "unit_price",
        "Price": "unit_price",
        "Total Price": "total_price",
        "Quantity": "quantity",
        "Qty": "quantity",
        "Quantity Sold": "quantity",
        "Shipping and Handling": "shipping_amount",
        "Shipping Cost": "shipping_amount",
        "Postage and Packaging": "shipping_amount",
        "P&P": "shipping_amount",
        "Order Total": "order_total",
        "Total": "order_total",
        # Notes
        "Buyer Note": "notes",
        "Buyer Notes": "notes",
        "Notes to Seller": "notes",
        "Special Instructions": "notes",
    },
    value_transformers={
        "status": normalize_ebay_status,
        "payment_status": normalize_ebay_payment_status,
        "quantity": parse_quantity,
        **{name: parse_price for name in PRICE_FIELDS if name != "subtotal"},
    },
)


# ===================
# BANDCAMP
# ===================

BANDCAMP = _profile(
    id="bandcamp",
    name="Bandcamp",
    description="Bandcamp merch orders export",
    identifying_headers=["bandcamp_transaction", "Bandcamp", "payment_id", "ship_date"],
    file_name_patterns=[r"bandcamp", r"band-?camp"],
    header_mapping={
        # Order identification
        "payment_id": "order_number",
        "transaction_id": "order_number",
        # Date
        "date": "order_date",
        "paid_on": "order_date",
        "ship_date": "shipped_at",
        # Customer
        "ship_to_name": "customer_name",
        "buyer_name": "customer_name",
        "email": "customer_email",
        "buyer_email": "customer_email",
        # Shipping
        "ship_to_street": "shipping_address",
        "ship_to_street_2": "shipping_address_line_2",
        "ship_to_city": "shipping_city",
        "ship_to_zip": "shipping_postal_code",
        "ship_to_country": "shipping_country",
        "ship_to_country_code": "shipping_country",
        # Item
        "item_name": "product_title",
        "sku": "product_sku",
        "catalog_number": "product_sku",
        "quantity": "quantity",
        "item_price": "unit_price",
        "subtotal": "subtotal",
        "shipping": "shipping_amount",
        "total": "order_total",
        # Notes
        "item_note": "notes",
        "buyer_note": "notes",
    },
    value_transformers={
        "quantity": parse_quantity,
        **{name: parse_price for name in PRICE_FIELDS if name != "total_price"},
    },
)


# Detection walks this in order
MARKETPLACE_PROFILES: Mapping[str, MarketplaceProfile] = MappingProxyType({
    profile.id: profile
    for profile in (DISCOGS, EBAY, BANDCAMP)
})


def list_profiles() -> list[MarketplaceProfile]:
    """All registered profiles in registry order."""
    return list(MARKETPLACE_PROFILES.values())


def get_profile(profile_id: str) -> MarketplaceProfile:
    """
    Look up a profile by id.

    Raises:
        UnknownMarketplaceError: If no profile has this id
    """
    profile = MARKETPLACE_PROFILES.get((profile_id or "").strip().lower())
    if profile is None:
        raise UnknownMarketplaceError(profile_id, valid=list(MARKETPLACE_PROFILES))
    return profile


def find_profile(profile_id: Optional[str]) -> Optional[MarketplaceProfile]:
    """Like get_profile but returns None for blank or unknown ids."""
    if not profile_id:
        return None
    return MARKETPLACE_PROFILES.get(profile_id.strip().lower())
