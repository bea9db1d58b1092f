"""
Records completed order imports in order_import_history.
"""
import structlog
from typing import Optional

from config import get_supabase_client
from exceptions import DatabaseError
from models.order_import import (
    ImportResult,
    OrderImportHistoryCreate,
    OrderImportHistoryResponse,
)

logger = structlog.get_logger(__name__)

MAX_STORED_ERRORS = 100


class OrderImportHistoryService:
    def __init__(self):
        self.db = get_supabase_client()
        self.table = "order_import_history"

    def record_import(
        self,
        result: ImportResult,
        import_type: str,
        file_name: Optional[str] = None,
        source: Optional[str] = None,
    ) -> Optional[OrderImportHistoryResponse]:
        """Record a finished import. Failures are logged, never raised."""
        entry = OrderImportHistoryCreate(
            file_name=file_name,
            import_type=import_type,
            source=source,
            orders_created=result.created,
            orders_updated=result.updated,
            orders_skipped=result.skipped,
            items_created=result.items_created,
            errors=result.errors[:MAX_STORED_ERRORS],
        )
        try:
            response = self.db.table(self.table).insert(entry.model_dump()).execute()
            logger.info(
                "order_import_recorded",
                file_name=file_name,
                source=source,
                created=result.created,
                updated=result.updated,
                skipped=result.skipped,
            )
            return OrderImportHistoryResponse(**response.data[0]) if response.data else None
        except Exception as log_err:
            # Never let history logging break the import response
            logger.warning(
                "failed_to_record_order_import",
                file_name=file_name,
                log_error=str(log_err),
            )
            return None

    def list_recent(self, limit: int = 50) -> list[OrderImportHistoryResponse]:
        """Most recent imports first."""
        try:
            response = (
                self.db.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            logger.error("order_import_history_failed", error=str(e))
            raise DatabaseError("select", str(e), {"table": self.table})
        return [OrderImportHistoryResponse(**row) for row in response.data or []]


_service: Optional[OrderImportHistoryService] = None


def get_order_import_history_service() -> OrderImportHistoryService:
    global _service
    if _service is None:
        _service = OrderImportHistoryService()
    return _service
