from __future__ import annotations

import csv
import io
import json

import pytest
from openpyxl import load_workbook

from stockroom.errors import UnsupportedFormatError
from stockroom.inventory import InventoryService
from stockroom.inventory.export import collect_columns, export_records


def _seed(service: InventoryService) -> None:
    service.add_column("color")
    service.save_product({"item": "B-2", "color": "red"})
    service.save_product({"item": "A-1", "description": "Anchor", "unit_price": 1.25})


def test_collect_columns_is_first_seen_union() -> None:
    records = [{"item": "A", "description": "x"}, {"item": "B", "color": "red"}]
    assert collect_columns(records) == ["item", "description", "color"]


def test_json_export_matches_listing(service: InventoryService) -> None:
    _seed(service)
    payload = service.export("json")

    assert payload.media_type == "application/json"
    assert payload.filename == "products.json"
    assert json.loads(payload.content.decode("utf-8")) == service.list_products()


def test_csv_export_has_union_header_and_blank_cells(service: InventoryService) -> None:
    _seed(service)
    payload = service.export("csv")

    assert payload.media_type == "text/csv"
    assert payload.filename == "products.csv"
    rows = list(csv.reader(io.StringIO(payload.content.decode("utf-8"))))
    header = rows[0]
    assert header[0] == "item"
    assert {"description", "unit_price", "color", "created_at", "updated_at"} <= set(header)
    by_item = {row[0]: dict(zip(header, row)) for row in rows[1:]}
    assert by_item["A-1"]["description"] == "Anchor"
    assert by_item["A-1"]["color"] == ""
    assert by_item["B-2"]["color"] == "red"
    assert by_item["B-2"]["description"] == ""


def test_csv_export_quotes_embedded_delimiters() -> None:
    payload = export_records([{"item": "A", "description": 'Bolt, 1/4" x 2'}], "csv")

    rows = list(csv.reader(io.StringIO(payload.content.decode("utf-8"))))
    assert rows == [["item", "description"], ["A", 'Bolt, 1/4" x 2']]


def test_excel_export_writes_products_sheet(service: InventoryService) -> None:
    _seed(service)
    payload = service.export("excel")

    assert payload.filename == "products.xlsx"
    assert payload.media_type.endswith("spreadsheetml.sheet")
    wb = load_workbook(io.BytesIO(payload.content))
    assert wb.sheetnames == ["Products"]
    rows = list(wb["Products"].iter_rows(values_only=True))
    assert rows[0][0] == "item"
    assert [r[0] for r in rows[1:]] == ["A-1", "B-2"]


def test_xlsx_is_an_alias_for_excel() -> None:
    assert export_records([], "XLSX").filename == "products.xlsx"


def test_empty_store_exports() -> None:
    assert json.loads(export_records([], "json").content) == []
    assert export_records([], "csv").content == b""


@pytest.mark.parametrize("fmt", ["pdf", "", "yaml"])
def test_unsupported_format(fmt: str) -> None:
    with pytest.raises(UnsupportedFormatError):
        export_records([], fmt)


def test_excel_export_strips_control_characters(service: InventoryService) -> None:
    service.save_product({"item": "A-1", "description": "bad\x01char"})
    payload = service.export("excel")

    wb = load_workbook(io.BytesIO(payload.content))
    rows = list(wb["Products"].iter_rows(values_only=True))
    header = list(rows[0])
    assert rows[1][header.index("description")] == "badchar"
    assert service.get_product("A-1")["description"] == "bad\x01char"
