from __future__ import annotations

import io
import json
from pathlib import Path

from openpyxl import Workbook, load_workbook
from starlette.testclient import TestClient

from stockroom.inventory import InventoryService, create_app


def _client(tmp_path: Path, service: InventoryService) -> TestClient:
    (tmp_path / "README.md").write_text("test marker", encoding="utf-8")
    app = create_app(service, root_dir=str(tmp_path), serve_static=False, allow_origins=["*"])
    return TestClient(app)


def test_health(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)

    resp = client.get("/health")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["status"] == "OK"
    assert payload["timestamp"]


def test_product_crud_round_trip(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)

    created = client.post("/api/products", json={"item": "A-1", "description": "Anchor", "onhand": "4"})
    assert created.status_code == 200
    assert created.json() == {"message": "Product created successfully", "item": "A-1", "created": True}

    updated = client.post("/api/products", json={"item": "A-1", "um": "EA"})
    assert updated.json()["message"] == "Product saved successfully"
    assert updated.json()["created"] is False

    listing = client.get("/api/products")
    assert listing.status_code == 200
    products = listing.json()
    assert len(products) == 1
    assert products[0]["onhand"] == 4
    assert products[0]["um"] == "EA"

    one = client.get("/api/products/A-1")
    assert one.status_code == 200
    assert one.json()["description"] == "Anchor"

    deleted = client.delete("/api/products/A-1")
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Product deleted successfully"}

    assert client.get("/api/products/A-1").status_code == 404
    missing = client.delete("/api/products/A-1")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Product not found"}


def test_item_codes_with_slashes(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)

    client.post("/api/products", json={"item": "AB/12", "description": "slashed"})
    resp = client.get("/api/products/AB/12")
    assert resp.status_code == 200
    assert resp.json()["item"] == "AB/12"


def test_product_validation_errors(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)

    no_item = client.post("/api/products", json={"description": "nothing"})
    assert no_item.status_code == 400
    assert no_item.json() == {"error": "Item code is required"}

    bad_json = client.post(
        "/api/products", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert bad_json.status_code == 400
    assert "error" in bad_json.json()

    not_object = client.post("/api/products", json=["A-1"])
    assert not_object.status_code == 400


def test_columns_endpoints(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)

    listing = client.get("/api/columns").json()
    assert list(listing["core"])[:2] == ["item", "description"]
    assert listing["core"]["unit_price"] == "numeric"
    assert listing["dynamic"] == {}

    added = client.post("/api/columns", json={"columnName": "Pack Qty", "columnType": "REAL"})
    assert added.status_code == 200
    assert added.json() == {"message": "Column added successfully", "columnName": "pack_qty"}
    assert client.get("/api/columns").json()["dynamic"] == {"pack_qty": "numeric"}

    dup = client.post("/api/columns", json={"columnName": "pack qty"})
    assert dup.status_code == 400
    assert dup.json() == {"error": "Column already exists"}

    empty = client.post("/api/columns", json={"columnName": ""})
    assert empty.status_code == 400
    assert empty.json() == {"error": "Column name is required"}

    core = client.post("/api/columns", json={"columnName": "Description"})
    assert core.status_code == 400


def test_paste_import(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)
    line = "CG-49779\t6 120GRIT PSA DISC\t1/3\t1600.0000\tEA\t0.0000\t0.0000\t$0.2500\tEA"

    resp = client.post("/api/import/paste", json={"data": line, "hasHeader": False})
    assert resp.status_code == 200
    assert resp.json() == {"message": "Import completed", "imported": 1, "newColumnsAdded": []}
    record = client.get("/api/products/CG-49779").json()
    assert record["unit_price"] == 0.25
    assert record["onhand"] == 1600

    with_header = client.post(
        "/api/import/paste",
        json={"data": "item;shelf\nCG-49779;B4\n;skipped", "delimiter": ";"},
    )
    assert with_header.json()["newColumnsAdded"] == ["shelf"]
    assert with_header.json()["imported"] == 1
    assert client.get("/api/products/CG-49779").json()["shelf"] == "B4"

    empty = client.post("/api/import/paste", json={"data": ""})
    assert empty.status_code == 400
    assert empty.json() == {"error": "No data provided"}


def test_file_import(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)
    wb = Workbook()
    ws = wb.active
    ws.append(["Item", "Description", "Unit Price", "Supplier"])
    ws.append(["W-1", "Washer", "$0.05", "Acme"])
    buf = io.BytesIO()
    wb.save(buf)

    resp = client.post(
        "/api/import/file",
        files={"file": ("vendor.xlsx", buf.getvalue(), "application/octet-stream")},
    )
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["imported"] == 1
    assert payload["newColumnsAdded"] == ["supplier"]
    assert client.get("/api/products/W-1").json()["unit_price"] == 0.05

    wrong_type = client.post("/api/import/file", files={"file": ("notes.txt", b"hi", "text/plain")})
    assert wrong_type.status_code == 400
    assert wrong_type.json() == {"error": "Only Excel and CSV files are allowed"}

    no_file = client.post("/api/import/file", data={"something": "else"})
    assert no_file.status_code == 400
    assert no_file.json() == {"error": "No file uploaded"}


def test_export_endpoints(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)
    client.post("/api/products", json={"item": "A-1", "description": "Anchor"})

    as_json = client.get("/api/export/json")
    assert as_json.status_code == 200
    assert as_json.headers["content-type"].startswith("application/json")
    assert as_json.headers["content-disposition"] == "attachment; filename=products.json"
    assert json.loads(as_json.content)[0]["item"] == "A-1"

    as_csv = client.get("/api/export/csv")
    assert as_csv.headers["content-type"].startswith("text/csv")
    assert as_csv.text.splitlines()[1].startswith("A-1,Anchor")

    as_excel = client.get("/api/export/excel")
    assert as_excel.status_code == 200
    assert as_excel.headers["content-disposition"] == "attachment; filename=products.xlsx"

    unsupported = client.get("/api/export/pdf")
    assert unsupported.status_code == 400
    assert unsupported.json() == {"error": "Unsupported format"}


def test_unknown_route_uses_error_shape(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)

    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert "error" in resp.json()


def test_static_directory_is_served_when_present(tmp_path: Path, data_dir: str) -> None:
    (tmp_path / "README.md").write_text("test marker", encoding="utf-8")
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text("<h1>Inventory</h1>", encoding="utf-8")

    app = create_app(root_dir=str(tmp_path), data_dir=data_dir, storage="json")
    client = TestClient(app)

    resp = client.get("/")
    assert resp.status_code == 200
    assert "Inventory" in resp.text
    assert client.get("/api/products").json() == []


def test_overflowing_numeric_cells_do_not_break_listing(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)

    resp = client.post("/api/import/paste", json={"data": "item\tonhand\nBIG-1\t1e999"})
    assert resp.status_code == 200
    assert resp.json()["imported"] == 1

    infinite = client.post(
        "/api/products",
        content=b'{"item": "BIG-2", "unit_price": Infinity, "onorder": -Infinity}',
        headers={"Content-Type": "application/json"},
    )
    assert infinite.status_code == 200

    listing = client.get("/api/products")
    assert listing.status_code == 200
    by_item = {r["item"]: r for r in listing.json()}
    assert by_item["BIG-1"]["onhand"] == 0
    assert by_item["BIG-2"]["unit_price"] == 0
    assert by_item["BIG-2"]["onorder"] == 0

    exported = client.get("/api/export/json")
    assert exported.status_code == 200
    assert len(json.loads(exported.content)) == 2


def test_paste_with_non_string_delimiter_is_a_client_error(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)

    resp = client.post("/api/import/paste", json={"data": "A-1\tx", "delimiter": 5})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Delimiter must be a non-empty string"}


def test_unexpected_errors_use_error_shape(
    tmp_path: Path, service: InventoryService, monkeypatch
) -> None:
    (tmp_path / "README.md").write_text("test marker", encoding="utf-8")

    def broken() -> list:
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(service, "list_products", broken)
    app = create_app(service, root_dir=str(tmp_path), serve_static=False)
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.get("/api/products")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_excel_export_with_control_characters(tmp_path: Path, service: InventoryService) -> None:
    client = _client(tmp_path, service)
    client.post("/api/products", json={"item": "A-1", "description": "bad\x01char"})

    resp = client.get("/api/export/excel")
    assert resp.status_code == 200
    wb = load_workbook(io.BytesIO(resp.content))
    assert wb["Products"]["B2"].value == "badchar"
