"""
Unit tests for the order file reader.

Run: pytest tests/unit/test_order_file_reader.py -v
"""

from datetime import datetime
from io import BytesIO

import pandas as pd
import pytest

from exceptions import OrderFileParseError
from parsers.order_file_reader import OrderFile, is_excel_filename, read_order_file


def _xlsx_bytes(df: pd.DataFrame) -> bytes:
    buffer = BytesIO()
    df.to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


class TestReadCsv:
    """CSV uploads."""

    def test_comma_separated(self):
        """Should read headers and rows as strings."""
        contents = b"order_number,customer_email,quantity\nA1,x@y.com,2\nA2,z@y.com,1\n"

        result = read_order_file(contents, "orders.csv")

        assert result.headers == ["order_number", "customer_email", "quantity"]
        assert result.rows[0] == {"order_number": "A1", "customer_email": "x@y.com", "quantity": "2"}
        assert len(result.rows) == 2
        assert result.import_type == "csv"

    def test_semicolon_separated_latin1(self):
        """European exports with ; and latin-1 accents are detected."""
        contents = "Numéro Commande;Email Client;Prix\nFR-1;a@b.fr;12,50\n".encode("latin-1")

        result = read_order_file(contents, "commandes.csv")

        assert result.headers == ["Numéro Commande", "Email Client", "Prix"]
        assert result.rows[0]["Prix"] == "12,50"

    def test_utf8_bom_stripped(self):
        """A BOM does not end up in the first header."""
        contents = "\ufefforder_number,customer_email\nA1,x@y.com\n".encode("utf-8")

        result = read_order_file(contents, "orders.csv")

        assert result.headers[0] == "order_number"

    def test_leading_zeros_kept(self):
        """Cells are read as text so postal codes keep their zeros."""
        contents = b"order_number,shipping_postal_code\n0001,01000\n"

        result = read_order_file(contents, "orders.csv")

        assert result.rows[0] == {"order_number": "0001", "shipping_postal_code": "01000"}

    def test_blank_cells_and_rows(self):
        """Empty cells become None and fully blank rows are dropped in place."""
        contents = b"order_number,notes\nA1,\n,\nA2,gift\n"

        result = read_order_file(contents, "orders.csv")

        assert result.rows == [
            {"order_number": "A1", "notes": None},
            {"order_number": "A2", "notes": "gift"},
        ]
        assert result.row_numbers == [2, 4]

    def test_empty_line_keeps_row_numbers(self):
        """Rows after an empty line keep their spreadsheet row number."""
        contents = b"order_number,notes\nA1,x\n\nA2,y\n"

        result = read_order_file(contents, "orders.csv")

        assert [r["order_number"] for r in result.rows] == ["A1", "A2"]
        assert result.row_numbers == [2, 4]

    def test_cp1252_euro_sign(self):
        """Windows exports decode the euro sign."""
        contents = "Numéro;Prix\nA1;€12\n".encode("cp1252")

        result = read_order_file(contents, "commandes.csv")

        assert result.headers == ["Numéro", "Prix"]
        assert result.rows[0]["Prix"] == "€12"

    def test_latin1_fallback(self):
        """Bytes cp1252 cannot decode fall back to latin-1."""
        contents = b"order_number;notes\nA1;caf\x81\n"

        result = read_order_file(contents, "orders.csv")

        assert result.rows[0]["notes"] == "caf\x81"

    def test_headers_trimmed(self):
        """Whitespace around header names is removed."""
        contents = b" order_number , customer_email \nA1,x@y.com\n"

        result = read_order_file(contents, "orders.csv")

        assert result.headers == ["order_number", "customer_email"]

    def test_empty_file(self):
        """Empty uploads give an empty OrderFile."""
        result = read_order_file(b"", "orders.csv")

        assert result == OrderFile(filename="orders.csv")


class TestReadExcel:
    """Excel uploads."""

    def test_xlsx(self):
        """Should read the first sheet of an xlsx file."""
        df = pd.DataFrame({
            "Order ID": ["D-1", "D-2"],
            "Order Date": [datetime(2024, 3, 1), datetime(2024, 3, 2)],
            "Quantity": [1, 2],
        })

        result = read_order_file(_xlsx_bytes(df), "discogs_orders.xlsx")

        assert result.headers == ["Order ID", "Order Date", "Quantity"]
        assert result.rows[1]["Order ID"] == "D-2"
        assert pd.Timestamp(result.rows[0]["Order Date"]) == pd.Timestamp("2024-03-01")
        assert result.import_type == "xls"

    def test_xlsx_missing_cells_are_none(self):
        """NaN cells come back as None."""
        df = pd.DataFrame({"Order ID": ["D-1"], "Notes": [None]})

        result = read_order_file(_xlsx_bytes(df), "orders.xlsx")

        assert result.rows[0]["Notes"] is None

    def test_xlsx_blank_row_numbers(self):
        """A blank sheet row is dropped without shifting later row numbers."""
        df = pd.DataFrame({"Order ID": ["D-1", None, "D-3"], "Notes": ["a", None, "c"]})

        result = read_order_file(_xlsx_bytes(df), "orders.xlsx")

        assert [r["Order ID"] for r in result.rows] == ["D-1", "D-3"]
        assert result.row_numbers == [2, 4]

    def test_corrupt_excel_raises(self):
        """Unreadable workbooks raise OrderFileParseError."""
        with pytest.raises(OrderFileParseError) as exc_info:
            read_order_file(b"definitely not a workbook", "orders.xlsx")

        assert exc_info.value.details["filename"] == "orders.xlsx"
        assert exc_info.value.status_code == 422


class TestIsExcelFilename:
    """Tests for is_excel_filename()"""

    @pytest.mark.parametrize("filename,expected", [
        ("orders.xlsx", True),
        ("ORDERS.XLS", True),
        ("orders.xlsm", True),
        ("orders.csv", False),
        ("", False),
        (None, False),
    ])
    def test_extensions(self, filename, expected):
        """Only Excel extensions count."""
        assert is_excel_filename(filename) is expected
