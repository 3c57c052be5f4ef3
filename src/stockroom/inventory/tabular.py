from __future__ import annotations

import csv
import io
import os
from typing import Any, List

import xlrd
from openpyxl import load_workbook

from ..errors import ValidationError
from ..logging import get_logger
from .constants import IMPORT_EXTENSIONS


LOG = get_logger("inventory-tabular")

Row = List[Any]


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def is_supported_file(filename: str) -> bool:
    return file_extension(filename) in IMPORT_EXTENSIONS


def _is_blank_row(row: Row) -> bool:
    return not any(c is not None and str(c).strip() for c in row)


def _decode_text(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        LOG.info("CSV is not valid UTF-8; decoding as latin-1")
        return content.decode("latin-1")


def read_csv_rows(content: bytes) -> List[Row]:
    text = _decode_text(content)
    return [row for row in csv.reader(io.StringIO(text, newline=""))]


def read_xlsx_rows(content: bytes) -> List[Row]:
    wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    try:
        if not wb.worksheets:
            return []
        ws = wb.worksheets[0]
        return [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def read_xls_rows(content: bytes) -> List[Row]:
    book = xlrd.open_workbook(file_contents=content)
    if book.nsheets == 0:
        return []
    sheet = book.sheet_by_index(0)
    return [sheet.row_values(r) for r in range(sheet.nrows)]


def read_table(filename: str, content: bytes) -> List[Row]:
    """Decode the first sheet of a CSV/XLS/XLSX payload into rows of cells.

    Blank rows are dropped. Raises ValidationError for unsupported or
    unreadable files.
    """
    ext = file_extension(filename)
    if ext not in IMPORT_EXTENSIONS:
        raise ValidationError("Only Excel and CSV files are allowed")
    try:
        if ext == ".csv":
            rows = read_csv_rows(content)
        elif ext == ".xlsx":
            rows = read_xlsx_rows(content)
        else:
            rows = read_xls_rows(content)
    except Exception as exc:
        # openpyxl/xlrd/csv raise a wide range of types for malformed input
        LOG.warning(f"Could not read {filename!r}: {exc}")
        raise ValidationError(f"Could not read file {filename}: {exc}") from exc
    table = [row for row in rows if not _is_blank_row(row)]
    LOG.info(f"Decoded {len(table)} non-blank row(s) from {filename!r}")
    return table
