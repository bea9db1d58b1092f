"""
Business logic services.

Each service handles one domain area.
"""

from services.order_store import OrderStore, get_order_store
from services.order_import_service import (
    OrderImportService,
    ImportContext,
    get_order_import_service,
)
from services.order_preview_service import OrderPreviewService, get_order_preview_service
from services.marketplace_mapping_service import (
    MarketplaceMappingService,
    get_marketplace_mapping_service,
)
from services.order_import_history_service import (
    OrderImportHistoryService,
    get_order_import_history_service,
)

__all__ = [
    "OrderStore",
    "get_order_store",
    "OrderImportService",
    "ImportContext",
    "get_order_import_service",
    "OrderPreviewService",
    "get_order_preview_service",
    "MarketplaceMappingService",
    "get_marketplace_mapping_service",
    "OrderImportHistoryService",
    "get_order_import_history_service",
]
