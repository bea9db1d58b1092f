"""
Header mapping for order files.

Resolves which source column feeds which canonical field, then projects
raw rows onto those canonical field names.

Priority (lowest to highest):
    default mapping < marketplace profile mapping < user overrides
"""

from typing import Any, Iterable, Mapping, Optional

from models.order_import import HeaderMappingOverride
from parsers.marketplace_profiles import MarketplaceProfile
from parsers.value_transformers import is_blank


# Generic column names understood without marketplace context.
# Canonical names map to themselves so pre-normalized files pass through.
DEFAULT_ORDER_HEADER_MAPPING: dict[str, str] = {
    "order_number": "order_number",
    "Numéro Commande": "order_number",
    "N° Commande": "order_number",
    "order_date": "order_date",
    "Date Commande": "order_date",
    "Date": "order_date",
    "customer_email": "customer_email",
    "Email Client": "customer_email",
    "Email": "customer_email",
    "customer_name": "customer_name",
    "Nom Client": "customer_name",
    "Client": "customer_name",
    "shipping_address": "shipping_address",
    "Adresse": "shipping_address",
    "Adresse Livraison": "shipping_address",
    "shipping_address_line_2": "shipping_address_line_2",
    "shipping_city": "shipping_city",
    "Ville": "shipping_city",
    "shipping_postal_code": "shipping_postal_code",
    "Code Postal": "shipping_postal_code",
    "CP": "shipping_postal_code",
    "shipping_country": "shipping_country",
    "Pays": "shipping_country",
    "shipping_phone": "shipping_phone",
    "status": "status",
    "Statut": "status",
    "Statut Commande": "status",
    "payment_status": "payment_status",
    "Statut Paiement": "payment_status",
    "Paiement": "payment_status",
    "source": "source",
    "Source": "source",
    "Origine": "source",
    "notes": "notes",
    "Notes": "notes",
    "internal_notes": "internal_notes",
    "Notes Internes": "internal_notes",
    "product_sku": "product_sku",
    "SKU": "product_sku",
    "SKU Produit": "product_sku",
    "product_title": "product_title",
    "quantity": "quantity",
    "Quantité": "quantity",
    "Qté": "quantity",
    "unit_price": "unit_price",
    "Prix Unitaire": "unit_price",
    "Prix": "unit_price",
    "items": "items",
    "Articles": "items",
}


def resolve_header_mapping(
    default_mapping: Mapping[str, str],
    profile: Optional[MarketplaceProfile],
    custom_overrides: Optional[Mapping[str, Iterable[HeaderMappingOverride]]] = None,
) -> dict[str, str]:
    """
    Merge default, profile and user mappings into one source -> field map.

    Target fields are not validated; unknown ones are carried through and
    ignored by the order parser.

    Args:
        default_mapping: Generic column mapping
        profile: Detected marketplace profile, or None
        custom_overrides: User overrides keyed by marketplace id

    Returns:
        New dict ordered by layer: default entries first, then profile
        entries, then user overrides. A column redefined by a higher
        layer moves to that layer's position.
    """
    result = dict(default_mapping)

    if profile is None:
        return result

    for column, target in profile.header_mapping.items():
        result.pop(column, None)
        result[column] = target

    for override in (custom_overrides or {}).get(profile.id, []):
        result.pop(override.source_column, None)
        result[override.source_column] = override.target_field

    return result


def _lookup(row: Mapping[str, Any], column: str) -> Any:
    # Exact header first, then lower/upper-case variants
    for key in (column, column.lower(), column.upper()):
        if key in row:
            return row[key]
    return None


def map_row(row: Mapping[str, Any], mapping: Mapping[str, str]) -> dict[str, Any]:
    """
    Project a raw row onto canonical field names.

    When several source columns feed the same field, the last non-blank
    value in mapping order wins, so overrides beat profile columns and
    profile columns beat default ones.
    """
    mapped: dict[str, Any] = {}
    for column, target in mapping.items():
        value = _lookup(row, column)
        if value is None:
            continue
        if target not in mapped or not is_blank(value):
            mapped[target] = value
    return mapped


def apply_value_transformers(
    row: Mapping[str, Any],
    profile: Optional[MarketplaceProfile],
) -> dict[str, Any]:
    """Apply a profile's transformers to the canonical fields present in a mapped row."""
    transformed = dict(row)
    if profile is None:
        return transformed

    for field_name, transformer in profile.value_transformers.items():
        if field_name in transformed and not is_blank(transformed[field_name]):
            transformed[field_name] = transformer(transformed[field_name])
    return transformed
