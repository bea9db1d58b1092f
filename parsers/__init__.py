"""
Order file parsing pipeline.

file -> reader -> marketplace detection -> header mapping -> row parser
"""

from parsers.order_file_reader import read_order_file, OrderFile
from parsers.marketplace_profiles import (
    MarketplaceProfile,
    MARKETPLACE_PROFILES,
    get_profile,
    find_profile,
    list_profiles,
)
from parsers.marketplace_detector import detect_marketplace
from parsers.header_mapping import (
    DEFAULT_ORDER_HEADER_MAPPING,
    resolve_header_mapping,
    map_row,
    apply_value_transformers,
)
from parsers.order_parser import (
    parse_order_rows,
    parse_packed_items,
    OrderParseResult,
)

__all__ = [
    "read_order_file",
    "OrderFile",
    "MarketplaceProfile",
    "MARKETPLACE_PROFILES",
    "get_profile",
    "find_profile",
    "list_profiles",
    "detect_marketplace",
    "DEFAULT_ORDER_HEADER_MAPPING",
    "resolve_header_mapping",
    "map_row",
    "apply_value_transformers",
    "parse_order_rows",
    "parse_packed_items",
    "OrderParseResult",
]
