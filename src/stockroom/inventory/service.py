from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from ..config import STORAGE_JSON, STORAGE_SQLITE
from ..errors import NotFoundError, ValidationError
from ..logging import get_logger
from .constants import DEFAULT_DELIMITER
from .db import InventoryDatabase
from .export import export_records
from .importer import RowImporter
from .jsonfile import JsonFileStorage
from .models import ExportPayload, ImportResult, Record, UpsertResult
from .schema import SchemaRegistry, sanitize
from .store import JsonRecordStore, RecordStore, SqliteRecordStore


LOG = get_logger("inventory-service")


class InventoryService:
    """Coordinates the schema registry, record store, importer and exporter."""

    def __init__(self, registry: SchemaRegistry, store: RecordStore) -> None:
        self.registry = registry
        self.store = store
        self.importer = RowImporter(registry, store)

    @property
    def location(self) -> str:
        return self.store.location

    # --------------- Products ---------------
    def list_products(self) -> List[Record]:
        return self.store.list()

    def get_product(self, item: str) -> Record:
        return self.store.get(item)

    def save_product(self, data: Mapping[str, Any]) -> UpsertResult:
        return self.store.upsert(data)

    def delete_product(self, item: str) -> None:
        if not self.store.delete(item):
            raise NotFoundError("Product not found")

    # --------------- Columns ---------------
    def describe_columns(self) -> Dict[str, Dict[str, str]]:
        return self.registry.describe()

    def add_column(self, name: Optional[str], kind: Optional[str] = None) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Column name is required")
        if not self.registry.add_dynamic(name, kind):
            raise ValidationError("Column already exists")
        return sanitize(name)

    # --------------- Import / export ---------------
    def import_paste(
        self,
        data: Optional[str],
        delimiter: Optional[str] = DEFAULT_DELIMITER,
        *,
        has_header: Optional[bool] = None,
    ) -> ImportResult:
        return self.importer.import_text(data, delimiter, has_header=has_header)

    def import_file(self, filename: str, content: bytes) -> ImportResult:
        return self.importer.import_file(filename, content)

    def export(self, fmt: str) -> ExportPayload:
        return export_records(self.store.list(), fmt)


def open_inventory(data_dir: str, storage: str = STORAGE_SQLITE) -> InventoryService:
    """Build a service over the chosen backend, loading the dynamic schema."""
    if storage == STORAGE_JSON:
        files = JsonFileStorage(data_dir)
        registry = SchemaRegistry(files)
        store: RecordStore = JsonRecordStore(files, registry)
    elif storage == STORAGE_SQLITE:
        db = InventoryDatabase(data_dir)
        registry = SchemaRegistry(db)
        store = SqliteRecordStore(db, registry)
    else:
        raise ValueError(f"Unknown storage backend: {storage}")
    LOG.info(f"Inventory ready ({storage}) at {store.location}")
    return InventoryService(registry, store)
