"""
Tabular reader for uploaded order files.

Loads CSV or Excel exports into a header list plus raw rows keyed by
header. No column interpretation happens here.
"""

from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Optional
import structlog

import pandas as pd

from exceptions import OrderFileParseError
from parsers.order_parser import FIRST_DATA_ROW

logger = structlog.get_logger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xlsm", ".xls")
# latin-1 decodes any byte, so it goes last
CSV_ENCODINGS = ["utf-8-sig", "cp1252", "latin-1"]
CSV_SEPARATORS = [",", ";", "\t"]


@dataclass
class OrderFile:
    """Raw content of an order export."""
    filename: str
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)
    # Spreadsheet row of each entry in rows (header is row 1)
    row_numbers: list[int] = field(default_factory=list)

    @property
    def import_type(self) -> str:
        return "xls" if is_excel_filename(self.filename) else "csv"


def is_excel_filename(filename: Optional[str]) -> bool:
    return bool(filename) and filename.lower().endswith(EXCEL_EXTENSIONS)


def read_order_file(contents: bytes, filename: str) -> OrderFile:
    """
    Read an uploaded order file.

    Args:
        contents: Raw file bytes
        filename: Original filename, used to pick CSV vs Excel

    Returns:
        OrderFile with headers, rows (blank cells as None) and the
        spreadsheet row number of each row

    Raises:
        OrderFileParseError: If the file cannot be read as a table
    """
    is_excel = is_excel_filename(filename)
    logger.info("reading_order_file", filename=filename, is_excel=is_excel, size=len(contents))

    if not contents:
        return OrderFile(filename=filename)

    try:
        df = _load_excel(contents, filename) if is_excel else _load_csv(contents)
    except OrderFileParseError:
        raise
    except Exception as e:
        logger.error("order_file_read_failed", filename=filename, error=str(e))
        raise OrderFileParseError(
            message=f"Failed to read file: {str(e)}",
            details={"filename": filename, "original_error": str(e)}
        )

    # Blank lines are kept by the loaders, so the index still counts them
    df = df.dropna(how="all")
    df.columns = [str(c).strip() for c in df.columns]
    # NaN -> None so downstream code sees a plain blank
    df = df.astype(object).where(pd.notna(df), None)

    order_file = OrderFile(
        filename=filename,
        headers=list(df.columns),
        rows=df.to_dict(orient="records"),
        row_numbers=[int(index) + FIRST_DATA_ROW for index in df.index],
    )

    logger.info(
        "order_file_read",
        filename=filename,
        columns=len(order_file.headers),
        rows=len(order_file.rows),
    )
    return order_file


def _load_csv(contents: bytes) -> pd.DataFrame:
    """Try each encoding / separator until the header row splits into columns."""
    last_error: Optional[Exception] = None

    for encoding in CSV_ENCODINGS:
        for sep in CSV_SEPARATORS:
            try:
                df = pd.read_csv(
                    BytesIO(contents),
                    sep=sep,
                    encoding=encoding,
                    dtype=str,
                    keep_default_na=False,
                    na_values=[""],
                    skip_blank_lines=False,
                )
            except Exception as e:
                last_error = e
                continue
            if len(df.columns) > 1:
                logger.debug("csv_loaded", encoding=encoding, separator=sep, columns=len(df.columns))
                return df

    if last_error is not None:
        raise OrderFileParseError(
            message=f"Could not parse CSV: {last_error}",
            details={"original_error": str(last_error)}
        )
    # Single-column file: still a table
    return pd.read_csv(BytesIO(contents), encoding="utf-8-sig", dtype=str, skip_blank_lines=False)


def _load_excel(contents: bytes, filename: str) -> pd.DataFrame:
    """First sheet, openpyxl for .xlsx and xlrd for legacy .xls. Blank rows are kept."""
    engine = "xlrd" if filename.lower().endswith(".xls") else "openpyxl"
    return pd.read_excel(BytesIO(contents), engine=engine, sheet_name=0)
