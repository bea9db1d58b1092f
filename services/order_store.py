"""
Order store backed by Supabase.

The only place the import pipeline touches the orders, order_items,
customers and products tables. Every method is a single batched call.
"""

from typing import Any, Iterable, Optional
import structlog

from config import get_supabase_client
from exceptions import DatabaseError
from utils.text_utils import normalize_email

logger = structlog.get_logger(__name__)

# Supabase caps select results at 1000 rows per request
PAGE_SIZE = 1000
# Emails per or_() filter, keeps the request URL short
EMAIL_CHUNK_SIZE = 200

PRODUCT_COLUMNS = (
    "id, sku, title, selling_price, cost_price, supplier_id, supplier_name, "
    "supplier_type, consignment_rate, image_url, format, artist_name"
)


class OrderStore:
    """
    Persistence for order imports.

    Reads return plain dicts; writes raise DatabaseError on failure so the
    importer can record the failing order and move on.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.orders_table = "orders"
        self.items_table = "order_items"
        self.customers_table = "customers"
        self.products_table = "products"

    # ===================
    # READ OPERATIONS
    # ===================

    def list_order_numbers(self) -> dict[str, str]:
        """
        Get all existing orders.

        Returns:
            Dict mapping order_number -> order id
        """
        rows = self._select_all(self.orders_table, "id, order_number")
        order_ids = {
            str(row["order_number"]): row["id"]
            for row in rows
            if row.get("order_number")
        }
        logger.debug("order_numbers_loaded", count=len(order_ids))
        return order_ids

    def list_products_by_sku(self) -> dict[str, dict]:
        """
        Get all products with the metadata copied onto order items.

        Returns:
            Dict mapping sku -> product row
        """
        rows = self._select_all(self.products_table, PRODUCT_COLUMNS)
        products = {str(row["sku"]): row for row in rows if row.get("sku")}
        logger.debug("products_loaded", count=len(products))
        return products

    def list_customers_by_email(self, emails: Iterable[str]) -> dict[str, str]:
        """
        Get customers whose email matches one in the given list, ignoring case.

        Each chunk is one request with an OR of `ilike` filters. `_` and `%`
        act as wildcards there, so returned rows are checked again for an
        exact lower-case match.

        Returns:
            Dict mapping lower-cased email -> customer id
        """
        wanted = sorted({e for e in (normalize_email(email) for email in emails) if e})
        customers: dict[str, str] = {}

        try:
            for start in range(0, len(wanted), EMAIL_CHUNK_SIZE):
                chunk = wanted[start:start + EMAIL_CHUNK_SIZE]
                result = (
                    self.db.table(self.customers_table)
                    .select("id, email")
                    .or_(",".join(f"email.ilike.{_quote_filter_value(e)}" for e in chunk))
                    .order("id")
                    .execute()
                )
                for row in result.data or []:
                    email = normalize_email(row.get("email"))
                    if email in chunk and email not in customers:
                        customers[email] = row["id"]
        except Exception as e:
            logger.error("list_customers_failed", error=str(e), emails=len(wanted))
            raise DatabaseError("select", str(e), {"table": self.customers_table})

        logger.debug("customers_loaded", requested=len(wanted), found=len(customers))
        return customers

    def insert_customers(self, records: list[dict[str, Any]]) -> list[dict]:
        """
        Batch insert customers.

        Returns:
            Inserted rows (at least id and email)
        """
        if not records:
            return []
        try:
            result = self.db.table(self.customers_table).insert(records).execute()
        except Exception as e:
            logger.error("insert_customers_failed", error=str(e), count=len(records))
            raise DatabaseError("insert", str(e), {"table": self.customers_table})

        logger.info("customers_inserted", count=len(result.data or []))
        return result.data or []

    # ===================
    # WRITE OPERATIONS
    # ===================

    def insert_order(self, data: dict[str, Any]) -> str:
        """
        Insert one order row.

        Returns:
            New order id
        """
        try:
            result = self.db.table(self.orders_table).insert(data).execute()
        except Exception as e:
            raise DatabaseError("insert", str(e), {"table": self.orders_table})

        if not result.data:
            raise DatabaseError("insert", "no row returned", {"table": self.orders_table})
        return result.data[0]["id"]

    def update_order(self, order_id: str, data: dict[str, Any]) -> None:
        try:
            self.db.table(self.orders_table).update(data).eq("id", order_id).execute()
        except Exception as e:
            raise DatabaseError("update", str(e), {"table": self.orders_table, "id": order_id})

    def delete_order_items(self, order_id: str) -> None:
        try:
            self.db.table(self.items_table).delete().eq("order_id", order_id).execute()
        except Exception as e:
            raise DatabaseError("delete", str(e), {"table": self.items_table, "order_id": order_id})

    def insert_order_items(self, items: list[dict[str, Any]]) -> int:
        """
        Batch insert order items.

        Returns:
            Number of items written
        """
        if not items:
            return 0
        try:
            self.db.table(self.items_table).insert(items).execute()
        except Exception as e:
            raise DatabaseError("insert", str(e), {"table": self.items_table, "count": len(items)})
        return len(items)

    # ===================
    # HELPERS
    # ===================

    def _select_all(self, table: str, columns: str) -> list[dict]:
        """Page through a whole table."""
        rows: list[dict] = []
        offset = 0
        try:
            while True:
                result = (
                    self.db.table(table)
                    .select(columns)
                    .order("id")
                    .range(offset, offset + PAGE_SIZE - 1)
                    .execute()
                )
                batch = result.data or []
                rows.extend(batch)
                if len(batch) < PAGE_SIZE:
                    break
                offset += PAGE_SIZE
        except Exception as e:
            logger.error("select_all_failed", table=table, error=str(e))
            raise DatabaseError("select", str(e), {"table": table})
        return rows


def _quote_filter_value(value: str) -> str:
    """Quote a value for a PostgREST filter so commas and dots stay literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


_order_store: Optional[OrderStore] = None


def get_order_store() -> OrderStore:
    """Get or create OrderStore instance."""
    global _order_store
    if _order_store is None:
        _order_store = OrderStore()
    return _order_store
