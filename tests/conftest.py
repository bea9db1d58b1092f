"""
Shared test fixtures.

Provides an in-memory Supabase stand-in and a fake order store so the
parsing and import pipeline can be tested without a database.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are loaded at import time and require these
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
import re
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Generator, Optional
from unittest.mock import patch
from uuid import uuid4


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: Any = None, count: Optional[int] = None):
        self.data = data if data is not None else []
        self.count = count if count is not None else (len(self.data) if isinstance(self.data, list) else 1)


class MockSupabaseQuery:
    """
    Chainable query builder that runs against in-memory rows.

    Supports the calls the import services make: select / insert / update /
    delete / upsert with eq, in_, ilike, or_, order, limit and range.
    """

    def __init__(self, client: "MockSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: list = []
        self._order: Optional[tuple[str, bool]] = None
        self._limit: Optional[int] = None
        self._range: Optional[tuple[int, int]] = None
        self._on_conflict: Optional[str] = None

    # Operations
    def select(self, *args, **kwargs):
        self._op = "select"
        return self

    def insert(self, data):
        self._op = "insert"
        self._payload = data
        return self

    def update(self, data):
        self._op = "update"
        self._payload = data
        return self

    def delete(self):
        self._op = "delete"
        return self

    def upsert(self, data, on_conflict: str = "id", **kwargs):
        self._op = "upsert"
        self._payload = data
        self._on_conflict = on_conflict
        return self

    # Filters
    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def ilike(self, column, pattern):
        matcher = _like_matcher(pattern)
        self._filters.append(lambda row: matcher(row.get(column)))
        return self

    def or_(self, filters: str):
        conditions = [
            (column, _like_matcher(_unquote(value)))
            for column, value in _OR_ILIKE.findall(filters)
        ]
        self._filters.append(
            lambda row: any(matcher(row.get(column)) for column, matcher in conditions)
        )
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> MockSupabaseResponse:
        self._client.calls.append((self._table, self._op))
        error = self._client.failures.get((self._table, self._op))
        if error is not None:
            raise error

        rows = self._client.rows(self._table)

        if self._op == "select":
            self._client.select_orders.append((self._table, self._order[0] if self._order else None))
            data = [deepcopy(r) for r in rows if self._matches(r)]
            if self._order:
                column, desc = self._order
                data.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
            if self._range:
                start, end = self._range
                data = data[start:end + 1]
            if self._limit is not None:
                data = data[:self._limit]
            return MockSupabaseResponse(data)

        if self._op == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for item in payload:
                row = {"id": str(uuid4()), "created_at": _now(), **deepcopy(item)}
                rows.append(row)
                inserted.append(deepcopy(row))
            return MockSupabaseResponse(inserted)

        if self._op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(deepcopy(self._payload))
                    updated.append(deepcopy(row))
            return MockSupabaseResponse(updated)

        if self._op == "delete":
            removed = [r for r in rows if self._matches(r)]
            rows[:] = [r for r in rows if not self._matches(r)]
            return MockSupabaseResponse(removed)

        if self._op == "upsert":
            key = self._on_conflict
            for row in rows:
                if row.get(key) == self._payload.get(key):
                    row.update(deepcopy(self._payload))
                    return MockSupabaseResponse([deepcopy(row)])
            row = {"id": str(uuid4()), **deepcopy(self._payload)}
            rows.append(row)
            return MockSupabaseResponse([deepcopy(row)])

        raise AssertionError(f"unsupported op {self._op}")


class MockSupabaseClient:
    """In-memory Supabase client."""

    def __init__(self):
        self._tables: dict[str, list[dict]] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.calls: list[tuple[str, str]] = []
        # (table, order column or None) for every select
        self.select_orders: list[tuple[str, Optional[str]]] = []

    def set_table_data(self, table_name: str, data: list):
        """Configure rows for a table."""
        self._tables[table_name] = deepcopy(data)

    def rows(self, table_name: str) -> list[dict]:
        return self._tables.setdefault(table_name, [])

    def fail(self, table_name: str, op: str, error: Optional[Exception] = None):
        """Make the next (and every) execute of op on table raise."""
        self.failures[(table_name, op)] = error or Exception(f"{op} on {table_name} failed")

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


_OR_ILIKE = re.compile(r'(\w+)\.ilike\.("(?:[^"\\]|\\.)*"|[^,]*)')


def _unquote(value: str) -> str:
    if value.startswith('"') and value.endswith('"'):
        return re.sub(r"\\(.)", r"\1", value[1:-1])
    return value


def _like_matcher(pattern: str):
    """Case-insensitive SQL LIKE: % is any run of characters, _ is one character."""
    regex = "".join(
        ".*" if ch == "%" else "." if ch == "_" else re.escape(ch)
        for ch in pattern
    )
    compiled = re.compile(regex, re.IGNORECASE | re.DOTALL)
    return lambda value: value is not None and compiled.fullmatch(str(value)) is not None


# ===================
# FAKE ORDER STORE
# ===================

class FakeOrderStore:
    """
    OrderStore double with plain dict storage.

    Individual order numbers can be made to fail on write.
    """

    def __init__(self, products: Optional[list[dict]] = None, customers: Optional[list[dict]] = None):
        self.orders: dict[str, dict] = {}
        self.items: list[dict] = []
        self.products = {p["sku"]: p for p in (products or [])}
        self.customers: list[dict] = list(customers or [])
        self.failing_orders: set[str] = set()
        self.customer_insert_error: Optional[Exception] = None
        self.read_calls: list[str] = []
        self._next_id = 0

    def _id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    def add_order(self, order_number: str, items: Optional[list[dict]] = None) -> str:
        order_id = self._id("order")
        self.orders[order_id] = {"id": order_id, "order_number": order_number}
        for item in items or []:
            self.items.append({**item, "order_id": order_id})
        return order_id

    def items_for(self, order_id: str) -> list[dict]:
        return [i for i in self.items if i["order_id"] == order_id]

    def order_by_number(self, order_number: str) -> Optional[dict]:
        return next((o for o in self.orders.values() if o["order_number"] == order_number), None)

    # Reads
    def list_order_numbers(self) -> dict[str, str]:
        self.read_calls.append("orders")
        return {o["order_number"]: o["id"] for o in self.orders.values()}

    def list_products_by_sku(self) -> dict[str, dict]:
        self.read_calls.append("products")
        return dict(self.products)

    def list_customers_by_email(self, emails) -> dict[str, str]:
        self.read_calls.append("customers")
        wanted = {e.lower() for e in emails}
        return {c["email"].lower(): c["id"] for c in self.customers if c["email"].lower() in wanted}

    def insert_customers(self, records: list[dict]) -> list[dict]:
        if self.customer_insert_error:
            raise self.customer_insert_error
        created = []
        for record in records:
            row = {"id": self._id("customer"), **record}
            self.customers.append(row)
            created.append(row)
        return created

    # Writes
    def _check(self, data: dict):
        if data.get("order_number") in self.failing_orders:
            raise Exception(f"constraint violation on {data['order_number']}")

    def insert_order(self, data: dict) -> str:
        self._check(data)
        order_id = self._id("order")
        self.orders[order_id] = {"id": order_id, **data}
        return order_id

    def update_order(self, order_id: str, data: dict) -> None:
        self._check(data)
        self.orders[order_id].update(data)

    def delete_order_items(self, order_id: str) -> None:
        self.items = [i for i in self.items if i["order_id"] != order_id]

    def insert_order_items(self, items: list[dict]) -> int:
        self.items.extend(items)
        return len(items)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create an in-memory Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "sku": "VIA01LP", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch every service's database client with the mock.

    Service singletons are reset so they pick up the mock.
    """
    import services.order_store as order_store
    import services.marketplace_mapping_service as mapping_service
    import services.order_import_history_service as history_service

    order_store._order_store = None
    mapping_service._service = None
    history_service._service = None

    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.order_store.get_supabase_client", return_value=mock_supabase):
            with patch("services.marketplace_mapping_service.get_supabase_client", return_value=mock_supabase):
                with patch("services.order_import_history_service.get_supabase_client", return_value=mock_supabase):
                    yield mock_supabase

    order_store._order_store = None
    mapping_service._service = None
    history_service._service = None


@pytest.fixture
def fake_store() -> FakeOrderStore:
    """Empty fake order store with two known products."""
    return FakeOrderStore(products=[
        {
            "id": "prod-1",
            "sku": "SKU1",
            "title": "Abbey Road",
            "selling_price": 29.99,
            "cost_price": 15.0,
            "supplier_id": "sup-1",
            "supplier_name": "Disques Dupont",
            "supplier_type": "consignment",
            "consignment_rate": 0.3,
            "image_url": "https://img.example.com/abbey.jpg",
            "format": "lp",
            "artist_name": "The Beatles",
        },
        {
            "id": "prod-2",
            "sku": "SKU2",
            "title": "Kind of Blue",
            "selling_price": 24.0,
            "cost_price": 12.0,
            "supplier_id": None,
            "supplier_name": None,
            "supplier_type": "own",
            "consignment_rate": None,
            "image_url": None,
            "format": "lp",
            "artist_name": "Miles Davis",
        },
    ])


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with the in-memory database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            response = test_client_with_mock_db.get("/api/order-imports/marketplaces")
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
