from __future__ import annotations

import csv
import io
import json
from typing import Any, Dict, List, Sequence

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

from ..errors import UnsupportedFormatError
from .constants import EXPORT_CSV, EXPORT_EXCEL, EXPORT_JSON, EXPORT_SHEET_NAME
from .models import ExportPayload, Record

MEDIA_TYPES: Dict[str, str] = {
    EXPORT_JSON: "application/json",
    EXPORT_CSV: "text/csv",
    EXPORT_EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

FILENAMES: Dict[str, str] = {
    EXPORT_JSON: "products.json",
    EXPORT_CSV: "products.csv",
    EXPORT_EXCEL: "products.xlsx",
}

_FORMAT_ALIASES: Dict[str, str] = {
    "json": EXPORT_JSON,
    "csv": EXPORT_CSV,
    "excel": EXPORT_EXCEL,
    "xlsx": EXPORT_EXCEL,
}


def resolve_format(fmt: str) -> str:
    resolved = _FORMAT_ALIASES.get(str(fmt or "").strip().lower())
    if resolved is None:
        raise UnsupportedFormatError("Unsupported format")
    return resolved


def collect_columns(records: Sequence[Record]) -> List[str]:
    """Union of keys across records, in first-seen order."""
    seen: Dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def _cell(value: Any) -> Any:
    return "" if value is None else value


def _xlsx_cell(value: Any) -> Any:
    # Control characters are not allowed in worksheet XML.
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return _cell(value)


def to_json(records: Sequence[Record]) -> bytes:
    return json.dumps(list(records), ensure_ascii=False, indent=2).encode("utf-8")


def to_csv(records: Sequence[Record]) -> bytes:
    columns = collect_columns(records)
    buf = io.StringIO(newline="")
    writer = csv.writer(buf)
    if columns:
        writer.writerow(columns)
    for record in records:
        writer.writerow([_cell(record.get(c)) for c in columns])
    return buf.getvalue().encode("utf-8")


def to_xlsx(records: Sequence[Record]) -> bytes:
    columns = collect_columns(records)
    wb = Workbook()
    ws = wb.active
    ws.title = EXPORT_SHEET_NAME
    if columns:
        ws.append([_xlsx_cell(c) for c in columns])
    for record in records:
        ws.append([_xlsx_cell(record.get(c)) for c in columns])
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_records(records: Sequence[Record], fmt: str) -> ExportPayload:
    """Render the full record set as JSON, CSV or XLSX."""
    resolved = resolve_format(fmt)
    if resolved == EXPORT_JSON:
        content = to_json(records)
    elif resolved == EXPORT_CSV:
        content = to_csv(records)
    else:
        content = to_xlsx(records)
    return ExportPayload(content=content, media_type=MEDIA_TYPES[resolved], filename=FILENAMES[resolved])
