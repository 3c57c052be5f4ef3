from __future__ import annotations

from stockroom.inventory import InventoryService
from stockroom.inventory.normalize import normalize_cell, parse_number, to_text


def test_currency_is_stripped_for_numeric_fields(service: InventoryService) -> None:
    assert normalize_cell("unit_price", "$0.2500", service.registry) == 0.25
    assert normalize_cell("onhand", "1600.0000", service.registry) == 1600


def test_unparsable_or_empty_numeric_cells_become_zero(service: InventoryService) -> None:
    assert normalize_cell("onhand", "abc", service.registry) == 0
    assert normalize_cell("committed", "", service.registry) == 0
    assert normalize_cell("onorder", None, service.registry) == 0


def test_text_fields_are_trimmed_not_coerced(service: InventoryService) -> None:
    assert normalize_cell("description", "  6 120GRIT PSA DISC ", service.registry) == "6 120GRIT PSA DISC"
    assert normalize_cell("um", "$5", service.registry) == "$5"
    assert normalize_cell("grp_sect", "1/3", service.registry) == "1/3"


def test_dynamic_numeric_field_uses_numeric_rule(service: InventoryService) -> None:
    service.registry.add_dynamic("weight", "numeric")
    assert normalize_cell("weight", "$12.5", service.registry) == 12.5
    assert normalize_cell("color", "12.5", service.registry) == "12.5"


def test_parse_number_is_lenient_about_trailing_text():
    assert parse_number("12abc") == 12.0
    assert parse_number("-3.5") == -3.5
    assert parse_number(7) == 7.0
    assert parse_number(True) == 0.0
    assert parse_number("$") == 0.0


def test_spreadsheet_numbers_render_as_text_without_trailing_zero():
    assert to_text(5225.0) == "5225"
    assert to_text(0.5) == "0.5"
    assert to_text(None) == ""


def test_overflowing_or_infinite_numbers_become_zero(service: InventoryService) -> None:
    assert parse_number("1e999") == 0.0
    assert parse_number("-1e999") == 0.0
    assert parse_number("$1e999") == 0.0
    assert parse_number(float("inf")) == 0.0
    assert parse_number(float("-inf")) == 0.0
    assert parse_number(float("nan")) == 0.0
    assert normalize_cell("onhand", "1e999", service.registry) == 0
    assert parse_number("1e3") == 1000.0
