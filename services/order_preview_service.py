"""
Order import preview.

Runs the parsing pipeline for an uploaded file without writing anything:
read -> detect marketplace -> resolve mapping -> parse rows.
"""

from typing import Optional
import structlog

from config import settings
from exceptions import ImportTooLargeError
from models.order_import import ImportWarningKind, OrderImportPreview
from parsers.header_mapping import DEFAULT_ORDER_HEADER_MAPPING, resolve_header_mapping
from parsers.marketplace_detector import detect_marketplace
from parsers.marketplace_profiles import MarketplaceProfile, get_profile
from parsers.order_file_reader import OrderFile, read_order_file
from parsers.order_parser import parse_order_rows
from services.marketplace_mapping_service import (
    MarketplaceMappingService,
    get_marketplace_mapping_service,
)
from services.order_store import OrderStore, get_order_store
from services.preview_cache_service import new_preview_id

logger = structlog.get_logger(__name__)


class OrderPreviewService:
    """Builds OrderImportPreview objects from uploaded files."""

    def __init__(
        self,
        store: Optional[OrderStore] = None,
        mapping_service: Optional[MarketplaceMappingService] = None,
    ):
        self.store = store or get_order_store()
        self.mapping_service = mapping_service or get_marketplace_mapping_service()

    def preview_file(
        self,
        contents: bytes,
        filename: str,
        marketplace_id: Optional[str] = None,
    ) -> OrderImportPreview:
        """
        Read and parse an uploaded order file.

        Args:
            contents: Raw file bytes
            filename: Original filename
            marketplace_id: Force a profile instead of detecting one

        Raises:
            OrderFileParseError: File unreadable
            ImportTooLargeError: More rows than IMPORT_MAX_ROWS
            UnknownMarketplaceError: Forced marketplace does not exist
        """
        order_file = read_order_file(contents, filename)
        return self.preview_rows(order_file, marketplace_id)

    def preview_rows(
        self,
        order_file: OrderFile,
        marketplace_id: Optional[str] = None,
    ) -> OrderImportPreview:
        if len(order_file.rows) > settings.import_max_rows:
            raise ImportTooLargeError(len(order_file.rows), settings.import_max_rows)

        profile = self.select_profile(order_file, marketplace_id)
        mapping = resolve_header_mapping(
            DEFAULT_ORDER_HEADER_MAPPING,
            profile,
            self.mapping_service.get_overrides() if profile else None,
        )

        # Snapshot for warnings only, the importer re-reads before writing
        existing_order_numbers = self.store.list_order_numbers().keys()
        existing_skus = self.store.list_products_by_sku().keys()

        parsed = parse_order_rows(
            order_file.rows,
            existing_order_numbers,
            existing_skus,
            header_mapping=mapping,
            profile=profile,
            row_numbers=order_file.row_numbers or None,
        )

        preview = OrderImportPreview(
            preview_id=new_preview_id(),
            file_name=order_file.filename,
            import_type=order_file.import_type,
            marketplace=profile.id if profile else None,
            marketplace_name=profile.name if profile else None,
            total_rows=parsed.total_rows,
            orders=parsed.orders,
            items=parsed.items,
            warnings=parsed.warnings,
            duplicate_count=parsed.warning_count(ImportWarningKind.DUPLICATE_ORDER),
            unknown_sku_count=parsed.warning_count(ImportWarningKind.UNKNOWN_SKU),
            expires_in_minutes=settings.import_preview_ttl_minutes,
        )

        logger.info(
            "order_import_previewed",
            preview_id=preview.preview_id,
            file_name=preview.file_name,
            marketplace=preview.marketplace,
            orders=len(preview.orders),
            items=len(preview.items),
            warnings=len(preview.warnings),
        )
        return preview

    def select_profile(
        self,
        order_file: OrderFile,
        marketplace_id: Optional[str] = None,
    ) -> Optional[MarketplaceProfile]:
        """Forced marketplace if given, otherwise detection."""
        if marketplace_id:
            return get_profile(marketplace_id)
        return detect_marketplace(order_file.filename, order_file.headers)


def get_order_preview_service() -> OrderPreviewService:
    return OrderPreviewService()
