"""Inventory package: a products collection with a growable field schema.

Modules:
- schema: core/dynamic field registry and column-name sanitization
- normalize: typed cell values (text or numeric)
- importer: pasted-text and spreadsheet import with header detection
- tabular: CSV/XLS/XLSX decoding into rows of cells
- store: record store contract with SQLite (db) and JSON-file (jsonfile) backends
- export: JSON/CSV/XLSX rendering
- service: wiring used by the HTTP app and the CLI
- web.app: Starlette application
"""

from .schema import SchemaRegistry, sanitize
from .store import JsonRecordStore, RecordStore, SqliteRecordStore
from .importer import RowImporter
from .service import InventoryService, open_inventory
from .web.app import create_app

__all__ = [
    "SchemaRegistry",
    "sanitize",
    "RecordStore",
    "SqliteRecordStore",
    "JsonRecordStore",
    "RowImporter",
    "InventoryService",
    "open_inventory",
    "create_app",
]
