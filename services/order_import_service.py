"""
Order import service.

Reconciles parsed orders against existing customers, products and orders
and writes them. Each order is its own unit of work: a failing order is
recorded in the result and the batch carries on.

Per-order outcome:
    skipped  existing order number, and skip_duplicates or not update_existing
    updated  existing order number and update_existing
    created  new order number
    error    write failed (no retry)
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional
import structlog

from models.order_import import (
    CanonicalOrder,
    CanonicalOrderItem,
    ImportOptions,
    ImportResult,
    OrderStatus,
    PaymentStatus,
)
from services.order_store import OrderStore, get_order_store
from utils.text_utils import normalize_email, split_customer_name, truncate

logger = structlog.get_logger(__name__)

ITEM_STATUS_ACTIVE = "active"
MAX_ERROR_LENGTH = 500


@dataclass
class ImportContext:
    """
    Lookups for one import run.

    Built once per call and mutated as orders and customers are created,
    so later orders see what earlier ones wrote.
    """
    order_ids: dict[str, str] = field(default_factory=dict)
    products: dict[str, dict] = field(default_factory=dict)
    customer_ids: dict[str, str] = field(default_factory=dict)

    def customer_id_for(self, email: str) -> Optional[str]:
        return self.customer_ids.get(normalize_email(email) or "")


class OrderImportService:
    """
    Reconciliation importer.

    Usage:
        service = OrderImportService()
        result = service.import_orders(parsed.orders, parsed.items, ImportOptions())
    """

    def __init__(self, store: Optional[OrderStore] = None):
        self.store = store or get_order_store()

    def import_orders(
        self,
        orders: list[CanonicalOrder],
        items: list[CanonicalOrderItem],
        options: Optional[ImportOptions] = None,
    ) -> ImportResult:
        """
        Create or update orders and their items.

        Args:
            orders: Parsed orders, processed in this order
            items: Parsed items, linked to orders by order number
            options: Duplicate policy (defaults to skip duplicates)

        Returns:
            ImportResult with created/updated/skipped counts and per-order errors

        Raises:
            DatabaseError: If the initial batch reads fail
        """
        options = options or ImportOptions()
        result = ImportResult()

        logger.info(
            "importing_orders",
            orders=len(orders),
            items=len(items),
            skip_duplicates=options.skip_duplicates,
            update_existing=options.update_existing,
        )

        context = self.load_context(orders)

        items_by_order: dict[str, list[CanonicalOrderItem]] = defaultdict(list)
        for item in items:
            items_by_order[item.order_number].append(item)

        for order in orders:
            existing_order_id = context.order_ids.get(order.order_number)

            if existing_order_id and (options.skip_duplicates or not options.update_existing):
                result.skipped += 1
                continue

            item_rows, subtotal = self.build_item_rows(items_by_order.get(order.order_number, []), context)
            order_row = self.build_order_row(order, subtotal, context)

            try:
                if existing_order_id:
                    self.store.update_order(existing_order_id, order_row)
                    self.store.delete_order_items(existing_order_id)
                    written = self.store.insert_order_items(
                        [{**row, "order_id": existing_order_id} for row in item_rows]
                    )
                    result.updated += 1
                else:
                    new_order_id = self.store.insert_order(order_row)
                    context.order_ids[order.order_number] = new_order_id
                    written = self.store.insert_order_items(
                        [{**row, "order_id": new_order_id} for row in item_rows]
                    )
                    result.created += 1
                result.items_created += written

            except Exception as e:
                logger.error(
                    "order_import_failed",
                    order_number=order.order_number,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                result.errors.append(
                    truncate(f"Error for {order.order_number}: {e}", MAX_ERROR_LENGTH)
                )

        logger.info(
            "orders_imported",
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
            items_created=result.items_created,
            errors=len(result.errors),
        )

        return result

    # ===================
    # CONTEXT
    # ===================

    def load_context(self, orders: list[CanonicalOrder]) -> ImportContext:
        """
        Batch-load existing orders, products and customers.

        Customers missing for any email in the batch are created here.
        """
        context = ImportContext(
            order_ids=self.store.list_order_numbers(),
            products=self.store.list_products_by_sku(),
        )

        emails = _distinct_emails(o.customer_email for o in orders)
        context.customer_ids = self.store.list_customers_by_email(emails)
        self._create_missing_customers(orders, emails, context)

        return context

    def _create_missing_customers(
        self,
        orders: list[CanonicalOrder],
        emails: list[str],
        context: ImportContext,
    ) -> None:
        missing = [e for e in emails if normalize_email(e) not in context.customer_ids]
        if not missing:
            return

        names = {}
        for order in orders:
            names.setdefault(normalize_email(order.customer_email), order.customer_name)

        records = []
        for email in missing:
            first_name, last_name = split_customer_name(names.get(normalize_email(email)))
            records.append({
                "email": email,
                "first_name": first_name,
                "last_name": last_name,
            })

        try:
            created = self.store.insert_customers(records)
        except Exception as e:
            # Orders are still written, just without a customer link
            logger.warning("customer_creation_failed", count=len(records), error=str(e))
            return

        for row in created:
            if row.get("email"):
                context.customer_ids[row["email"].lower()] = row["id"]

        logger.info("customers_created", count=len(created))

    # ===================
    # ROW BUILDERS
    # ===================

    def build_item_rows(
        self,
        items: list[CanonicalOrderItem],
        context: ImportContext,
    ) -> tuple[list[dict], float]:
        """
        Build order_items rows and the order subtotal.

        A zero price from the file falls back to the product's selling
        price. Unknown SKUs are kept with the file's own data.

        Line totals are the plain unit_price x quantity product; only the
        order subtotal is rounded to cents.
        """
        rows = []
        subtotal = 0.0

        for item in items:
            product = context.products.get(item.sku) or {}
            unit_price = item.unit_price or float(product.get("selling_price") or 0)
            total_price = unit_price * item.quantity
            subtotal += total_price

            rows.append({
                "product_id": product.get("id"),
                "title": product.get("title") or item.title or item.sku,
                "sku": item.sku,
                "quantity": item.quantity,
                "unit_price": unit_price,
                "total_price": total_price,
                "unit_cost": product.get("cost_price"),
                "supplier_id": product.get("supplier_id"),
                "supplier_name": product.get("supplier_name"),
                "supplier_type": product.get("supplier_type"),
                "consignment_rate": product.get("consignment_rate"),
                "image_url": product.get("image_url"),
                "format": product.get("format"),
                "artist_name": product.get("artist_name"),
                "status": ITEM_STATUS_ACTIVE,
            })

        return rows, round(subtotal, 2)

    def build_order_row(
        self,
        order: CanonicalOrder,
        subtotal: float,
        context: ImportContext,
    ) -> dict:
        order_date = order.order_date.isoformat()
        return {
            "order_number": order.order_number,
            "created_at": order_date,
            "customer_email": order.customer_email,
            "customer_name": order.customer_name,
            "customer_id": context.customer_id_for(order.customer_email),
            "shipping_address": order.shipping_address,
            "shipping_address_line_2": order.shipping_address_line_2,
            "shipping_city": order.shipping_city,
            "shipping_postal_code": order.shipping_postal_code,
            "shipping_country": order.shipping_country,
            "shipping_phone": order.shipping_phone,
            "status": order.status.value,
            "payment_status": order.payment_status.value,
            "source": order.source,
            "internal_notes": order.notes,
            "subtotal": subtotal,
            "total": subtotal,
            "paid_at": order_date if order.payment_status == PaymentStatus.PAID else None,
            "delivered_at": order_date if order.status == OrderStatus.DELIVERED else None,
        }


def _distinct_emails(emails: Iterable[str]) -> list[str]:
    """Distinct by lower-case, keeping the first spelling seen."""
    seen = {}
    for email in emails:
        key = normalize_email(email)
        if key and key not in seen:
            seen[key] = email.strip()
    return list(seen.values())


def get_order_import_service() -> OrderImportService:
    """Create an OrderImportService on the shared store."""
    return OrderImportService()
