from __future__ import annotations

from typing import Dict, Set, Tuple

# Field kinds
KIND_TEXT = "text"
KIND_NUMERIC = "numeric"
KIND_CHOICES: Tuple[str, ...] = (KIND_TEXT, KIND_NUMERIC)

# Accepted spellings for a column type in the columns API
KIND_ALIASES: Dict[str, str] = {
    "text": KIND_TEXT,
    "string": KIND_TEXT,
    "numeric": KIND_NUMERIC,
    "number": KIND_NUMERIC,
    "real": KIND_NUMERIC,
    "float": KIND_NUMERIC,
    "integer": KIND_NUMERIC,
}

SQL_TYPES: Dict[str, str] = {
    KIND_TEXT: "TEXT",
    KIND_NUMERIC: "REAL",
}

MEMBERSHIP_CORE = "core"
MEMBERSHIP_DYNAMIC = "dynamic"

PRIMARY_KEY = "item"
CREATED_AT = "created_at"
UPDATED_AT = "updated_at"
TIMESTAMP_FIELDS: Tuple[str, ...] = (CREATED_AT, UPDATED_AT)

# Core fields in their canonical order; this is also the default column order
# for pasted text that has no header row.
CORE_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("item", KIND_TEXT),
    ("description", KIND_TEXT),
    ("grp_sect", KIND_TEXT),
    ("onhand", KIND_NUMERIC),
    ("um", KIND_TEXT),
    ("committed", KIND_NUMERIC),
    ("onorder", KIND_NUMERIC),
    ("unit_price", KIND_NUMERIC),
    ("um2", KIND_TEXT),
)

DEFAULT_IMPORT_HEADER: Tuple[str, ...] = tuple(name for name, _ in CORE_FIELDS)

MAX_LENGTHS: Dict[str, int] = {
    "item": 16,
    "grp_sect": 6,
    "um": 6,
    "um2": 6,
}

# Names a dynamic field may never take.
RESERVED_NAMES: Set[str] = {PRIMARY_KEY, *TIMESTAMP_FIELDS}

DEFAULT_DELIMITER = "\t"

# Import
IMPORT_EXTENSIONS: Tuple[str, ...] = (".csv", ".xls", ".xlsx")

# Export
EXPORT_JSON = "json"
EXPORT_CSV = "csv"
EXPORT_EXCEL = "excel"
EXPORT_FORMATS: Tuple[str, ...] = (EXPORT_JSON, EXPORT_CSV, EXPORT_EXCEL)
EXPORT_SHEET_NAME = "Products"
