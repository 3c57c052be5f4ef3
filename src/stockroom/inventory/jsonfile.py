from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Dict, List

from ..errors import StorageError
from ..logging import get_logger
from .schema import ColumnStore


LOG = get_logger("inventory-jsonfile")

PRODUCTS_FILENAME = "products.json"
COLUMNS_FILENAME = "columns.json"


class JsonFileStorage(ColumnStore):
    """Flat-file storage: a JSON array of products and a name -> kind column map.

    Every write replaces the whole file atomically (temp file + rename).
    """

    def __init__(self, data_dir: str) -> None:
        self.data_dir = os.path.abspath(data_dir)
        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create data directory {self.data_dir}: {exc}") from exc
        self.products_path = os.path.join(self.data_dir, PRODUCTS_FILENAME)
        self.columns_path = os.path.join(self.data_dir, COLUMNS_FILENAME)
        LOG.info(f"Inventory JSON store: {self.products_path}")

    def _read(self, path: str, default: Any) -> Any:
        if not os.path.exists(path):
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            LOG.exception(f"Failed to read {path}")
            raise StorageError(f"Cannot read {os.path.basename(path)}: {exc}") from exc

    def _write(self, path: str, payload: Any) -> None:
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as exc:
            LOG.exception(f"Failed to write {path}")
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StorageError(f"Cannot write {os.path.basename(path)}: {exc}") from exc

    # --------------- Column definitions ---------------
    def load_column_definitions(self) -> Dict[str, str]:
        data = self._read(self.columns_path, {})
        if not isinstance(data, dict):
            raise StorageError(f"{COLUMNS_FILENAME} must contain a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def add_column_definition(self, name: str, kind: str) -> None:
        columns = self.load_column_definitions()
        columns[name] = kind
        self._write(self.columns_path, columns)

    # --------------- Products ---------------
    def read_products(self) -> List[Dict[str, Any]]:
        data = self._read(self.products_path, [])
        if not isinstance(data, list):
            raise StorageError(f"{PRODUCTS_FILENAME} must contain a JSON array")
        return [row for row in data if isinstance(row, dict)]

    def write_products(self, products: List[Dict[str, Any]]) -> None:
        self._write(self.products_path, products)
