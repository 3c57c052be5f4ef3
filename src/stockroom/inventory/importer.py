from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Sequence

from ..errors import InventoryError, ValidationError
from ..logging import get_logger
from .constants import DEFAULT_DELIMITER, DEFAULT_IMPORT_HEADER, PRIMARY_KEY
from .models import ImportResult
from .normalize import normalize_cell, to_text
from .schema import SchemaRegistry, sanitize
from .store import RecordStore
from .tabular import Row, read_table


LOG = get_logger("inventory-importer")

_NUMERIC_CELL = re.compile(r"^\$?\d+\.?\d*$")
_LINE_BREAK = re.compile(r"\r?\n")


def looks_numeric(cell: str) -> bool:
    """True for plain numbers, optionally `$`-prefixed ("10", "1600.0000", "$0.25")."""
    return bool(_NUMERIC_CELL.match(cell.strip()))


def detect_header(cells: Sequence[str]) -> bool:
    """A first line is a header unless every cell looks like a number.

    The rule is a heuristic: a data row whose cells are all numeric-looking
    is read as data, any other first line (including one with a text cell
    such as "N/A") is read as a header. Callers that know better pass
    `has_header` explicitly.
    """
    return any(not looks_numeric(cell) for cell in cells)


def _json_row(row: Row) -> str:
    return json.dumps([to_text(c) if c is not None else None for c in row], ensure_ascii=False)


class RowImporter:
    """Bulk import of pasted text or spreadsheet rows into the record store.

    Unknown header names extend the schema; each row is normalized and
    upserted on its own so one bad row never aborts the batch.
    """

    def __init__(self, registry: SchemaRegistry, store: RecordStore) -> None:
        self.registry = registry
        self.store = store

    # --------------- Entry points ---------------
    def import_text(
        self,
        data: Optional[str],
        delimiter: Optional[str] = DEFAULT_DELIMITER,
        *,
        has_header: Optional[bool] = None,
    ) -> ImportResult:
        if not isinstance(data, str) or not data.strip():
            raise ValidationError("No data provided")
        if delimiter is None or delimiter == "":
            delimiter = DEFAULT_DELIMITER
        elif not isinstance(delimiter, str):
            raise ValidationError("Delimiter must be a non-empty string")

        lines = _LINE_BREAK.split(data.strip("\r\n"))
        first = lines[0].split(delimiter)
        is_header = detect_header(first) if has_header is None else bool(has_header)

        if is_header:
            headers = [sanitize(h) for h in first]
            data_lines = lines[1:]
        else:
            headers = list(DEFAULT_IMPORT_HEADER)
            data_lines = lines
        LOG.info(
            f"Paste import: {len(data_lines)} data line(s), header={'detected' if is_header else 'default'}"
        )

        result = ImportResult(new_columns=self._extend_schema(headers))

        for line_no, line in enumerate(data_lines, start=2 if is_header else 1):
            values = [v.strip() for v in line.split(delimiter)]
            if not values or not values[0]:
                continue
            try:
                row = self._build_row(headers, values)
                if not row.get(PRIMARY_KEY):
                    result.errors.append(f"Row missing item code: {line}")
                    continue
                self.store.upsert(row)
                result.imported += 1
            except InventoryError as exc:
                result.errors.append(f"Error importing line {line_no}: {exc.message}")
            except Exception as exc:
                LOG.exception(f"Unexpected failure importing line {line_no}")
                result.errors.append(f"Error importing line {line_no}: {exc}")

        self._log_result("Paste", result)
        return result

    def import_file(self, filename: str, content: bytes) -> ImportResult:
        table = read_table(filename, content)
        if len(table) < 2:
            raise ValidationError("No data found in file")
        return self.import_rows(table[0], table[1:])

    def import_rows(self, header_row: Row, rows: Sequence[Row]) -> ImportResult:
        """Import decoded spreadsheet rows; the header row is authoritative."""
        headers = [sanitize(to_text(h)) for h in header_row]
        result = ImportResult(new_columns=self._extend_schema(headers))

        for row_no, raw in enumerate(rows, start=2):
            try:
                values = [None if c is None or (isinstance(c, str) and not c.strip()) else c for c in raw]
                row = self._build_row(headers, values)
                if not row.get(PRIMARY_KEY):
                    result.errors.append(f"Row {row_no} missing item code: {_json_row(raw)}")
                    continue
                self.store.upsert(row)
                result.imported += 1
            except InventoryError as exc:
                result.errors.append(f"Error importing row {row_no}: {exc.message}")
            except Exception as exc:
                LOG.exception(f"Unexpected failure importing row {row_no}")
                result.errors.append(f"Error importing row {row_no}: {exc}")

        self._log_result("File", result)
        return result

    # --------------- Helpers ---------------
    def _extend_schema(self, headers: Sequence[str]) -> List[str]:
        added: List[str] = []
        for header in headers:
            if not header or header == PRIMARY_KEY or self.registry.has(header):
                continue
            if self.registry.add_dynamic(header):
                added.append(header)
        return added

    def _build_row(self, headers: Sequence[str], values: Sequence[Any]) -> Dict[str, Any]:
        row: Dict[str, Any] = {}
        for header, value in zip(headers, values):
            if not header or value is None:
                continue
            row[header] = normalize_cell(header, value, self.registry)
        return row

    @staticmethod
    def _log_result(kind: str, result: ImportResult) -> None:
        LOG.info(
            f"{kind} import completed: imported={result.imported}, errors={len(result.errors)}, "
            f"new_columns={result.new_columns}"
        )
