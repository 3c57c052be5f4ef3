from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from ..errors import NotFoundError, ValidationError
from ..logging import get_logger
from .constants import CREATED_AT, MAX_LENGTHS, PRIMARY_KEY, TIMESTAMP_FIELDS, UPDATED_AT
from .db import InventoryDatabase
from .jsonfile import JsonFileStorage
from .models import Record, UpsertResult
from .normalize import normalize_cell, to_text
from .schema import SchemaRegistry


LOG = get_logger("inventory-store")


def utc_now() -> str:
    """ISO-8601 UTC timestamp; fixed width so string order is time order."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class RecordStore:
    """Key-addressed product persistence, keyed by `item`.

    Subclasses provide `list`, `find`, `_save` and `_remove`; the merge and
    validation rules of `upsert` live here so every backend shares them.
    Mutations are serialized by a per-store lock.
    """

    def __init__(self, registry: SchemaRegistry) -> None:
        self.registry = registry
        self._lock = threading.RLock()

    # --------------- Backend hooks ---------------
    def list(self) -> List[Record]:
        raise NotImplementedError

    def find(self, item: str) -> Optional[Record]:
        raise NotImplementedError

    def _save(self, record: Record) -> None:
        raise NotImplementedError

    def _remove(self, item: str) -> bool:
        raise NotImplementedError

    @property
    def location(self) -> str:
        raise NotImplementedError

    # --------------- Contract ---------------
    def get(self, item: str) -> Record:
        record = self.find(item)
        if record is None:
            raise NotFoundError("Product not found")
        return record

    def upsert(self, data: Mapping[str, Any]) -> UpsertResult:
        """Insert a new record or shallow-merge `data` over the existing one."""
        item = self._require_item(data)
        incoming = self._prepare_fields(data)
        with self._lock:
            existing = self.find(item)
            now = utc_now()
            if existing is None:
                merged: Dict[str, Any] = {PRIMARY_KEY: item}
                created_at = now
            else:
                merged = dict(existing)
                created_at = existing.get(CREATED_AT) or now
            for key, value in incoming.items():
                if value is None:
                    merged.pop(key, None)
                else:
                    merged[key] = value
            merged[PRIMARY_KEY] = item
            merged[CREATED_AT] = created_at
            merged[UPDATED_AT] = now
            self._save(self._ordered(merged))
        LOG.debug(f"Upserted item {item!r} (created={existing is None})")
        return UpsertResult(item=item, created=existing is None)

    def delete(self, item: str) -> bool:
        with self._lock:
            deleted = self._remove(item)
        if deleted:
            LOG.info(f"Deleted item {item!r}")
        return deleted

    # --------------- Helpers ---------------
    @staticmethod
    def _require_item(data: Mapping[str, Any]) -> str:
        raw = data.get(PRIMARY_KEY) if isinstance(data, Mapping) else None
        if raw is None or isinstance(raw, (bool, dict, list)):
            raise ValidationError("Item code is required")
        item = to_text(raw)
        if not item:
            raise ValidationError("Item code is required")
        limit = MAX_LENGTHS[PRIMARY_KEY]
        if len(item) > limit:
            raise ValidationError(f"Item code must be at most {limit} characters: {item!r}")
        return item

    def _prepare_fields(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        known = self.registry.all()
        fields: Dict[str, Any] = {}
        dropped: List[str] = []
        for key, value in data.items():
            if key == PRIMARY_KEY or key in TIMESTAMP_FIELDS:
                continue
            if key not in known:
                dropped.append(key)
                continue
            if value is None:
                fields[key] = None
                continue
            if isinstance(value, (bool, dict, list)):
                raise ValidationError(f"Unsupported value for {key}: {value!r}")
            normalized = normalize_cell(key, value, self.registry)
            limit = MAX_LENGTHS.get(key)
            if limit is not None and isinstance(normalized, str) and len(normalized) > limit:
                raise ValidationError(f"{key} must be at most {limit} characters: {normalized!r}")
            fields[key] = normalized
        if dropped:
            LOG.debug(f"Ignoring unknown field(s): {dropped}")
        return fields

    def _ordered(self, record: Dict[str, Any]) -> Record:
        """Schema order first, then any leftover keys, then the timestamps."""
        out: Record = {}
        for name in self.registry.names():
            if name in record:
                out[name] = record[name]
        for key, value in record.items():
            if key not in out and key not in TIMESTAMP_FIELDS:
                out[key] = value
        for key in TIMESTAMP_FIELDS:
            if key in record:
                out[key] = record[key]
        return out


class SqliteRecordStore(RecordStore):
    def __init__(self, db: InventoryDatabase, registry: SchemaRegistry) -> None:
        super().__init__(registry)
        self.db = db

    @property
    def location(self) -> str:
        return self.db.db_path

    def list(self) -> List[Record]:
        # Table order puts ALTER-added columns after the timestamps.
        return [self._ordered(r) for r in self.db.fetch_products()]

    def find(self, item: str) -> Optional[Record]:
        record = self.db.fetch_product(item)
        return self._ordered(record) if record is not None else None

    def _save(self, record: Record) -> None:
        # Columns outside the table (stored under another schema) cannot be written.
        known = set(self.registry.names()) | set(TIMESTAMP_FIELDS)
        self.db.replace_product({k: v for k, v in record.items() if k in known})

    def _remove(self, item: str) -> bool:
        return self.db.delete_product(item)


class JsonRecordStore(RecordStore):
    def __init__(self, storage: JsonFileStorage, registry: SchemaRegistry) -> None:
        super().__init__(registry)
        self.storage = storage

    @property
    def location(self) -> str:
        return self.storage.products_path

    def list(self) -> List[Record]:
        products = self.storage.read_products()
        return sorted(products, key=lambda r: str(r.get(PRIMARY_KEY, "")))

    def find(self, item: str) -> Optional[Record]:
        for record in self.storage.read_products():
            if record.get(PRIMARY_KEY) == item:
                return record
        return None

    def _save(self, record: Record) -> None:
        products = self.storage.read_products()
        item = record[PRIMARY_KEY]
        for idx, existing in enumerate(products):
            if existing.get(PRIMARY_KEY) == item:
                products[idx] = record
                break
        else:
            products.append(record)
        self.storage.write_products(products)

    def _remove(self, item: str) -> bool:
        products = self.storage.read_products()
        remaining = [r for r in products if r.get(PRIMARY_KEY) != item]
        if len(remaining) == len(products):
            return False
        self.storage.write_products(remaining)
        return True
