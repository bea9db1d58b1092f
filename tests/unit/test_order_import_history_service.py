"""
Unit tests for OrderImportHistoryService.

Run: pytest tests/unit/test_order_import_history_service.py -v
"""

import pytest

from exceptions import DatabaseError
from models.order_import import ImportResult
from services.order_import_history_service import OrderImportHistoryService


class TestRecordImport:
    """Tests for record_import()"""

    def test_records_counts(self, mock_db, mock_supabase):
        """Counters and errors are written to order_import_history."""
        result = ImportResult(created=3, updated=1, skipped=2, items_created=7, errors=["Error for A9: boom"])

        entry = OrderImportHistoryService().record_import(result, "csv", file_name="discogs.csv", source="discogs")

        row = mock_supabase.rows("order_import_history")[0]
        assert row["orders_created"] == 3
        assert row["orders_updated"] == 1
        assert row["orders_skipped"] == 2
        assert row["items_created"] == 7
        assert row["errors"] == ["Error for A9: boom"]
        assert row["source"] == "discogs"
        assert entry.id == row["id"]

    def test_failure_is_swallowed(self, mock_db, mock_supabase):
        """History failures never break the import response."""
        mock_supabase.fail("order_import_history", "insert")

        entry = OrderImportHistoryService().record_import(ImportResult(created=1), "xls")

        assert entry is None


class TestListRecent:
    """Tests for list_recent()"""

    def test_newest_first(self, mock_db, mock_supabase):
        """Entries come back newest first, limited."""
        mock_supabase.set_table_data("order_import_history", [
            {"id": "h1", "import_type": "csv", "created_at": "2024-01-01T10:00:00+00:00"},
            {"id": "h2", "import_type": "xls", "created_at": "2024-03-01T10:00:00+00:00"},
            {"id": "h3", "import_type": "csv", "created_at": "2024-02-01T10:00:00+00:00"},
        ])

        entries = OrderImportHistoryService().list_recent(limit=2)

        assert [e.id for e in entries] == ["h2", "h3"]

    def test_failure_raises(self, mock_db, mock_supabase):
        """Read errors propagate."""
        mock_supabase.fail("order_import_history", "select")

        with pytest.raises(DatabaseError):
            OrderImportHistoryService().list_recent()
