from __future__ import annotations

from pathlib import Path

import pytest

from stockroom.config import STORAGE_JSON, STORAGE_SQLITE
from stockroom.inventory import InventoryService, open_inventory


@pytest.fixture(params=[STORAGE_SQLITE, STORAGE_JSON])
def storage(request) -> str:
    return request.param


@pytest.fixture
def data_dir(tmp_path: Path) -> str:
    return str(tmp_path / "inventory")


@pytest.fixture
def service(storage: str, data_dir: str) -> InventoryService:
    return open_inventory(data_dir, storage)
