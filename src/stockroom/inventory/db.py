from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from ..errors import StorageError
from ..logging import get_logger
from .constants import CORE_FIELDS, CREATED_AT, PRIMARY_KEY, SQL_TYPES, UPDATED_AT
from .schema import ColumnStore


LOG = get_logger("inventory-db")

DEFAULT_DB_FILENAME = "products.sqlite3"


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _core_columns_sql() -> str:
    cols = []
    for name, kind in CORE_FIELDS:
        if name == PRIMARY_KEY:
            cols.append(f"  {name} TEXT PRIMARY KEY")
        else:
            cols.append(f"  {name} {SQL_TYPES[kind]}")
    return ",\n".join(cols)


SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS products (
{_core_columns_sql()},
  {CREATED_AT} TEXT,
  {UPDATED_AT} TEXT
);

-- Dynamic columns added to products at runtime
CREATE TABLE IF NOT EXISTS column_definitions (
  id           INTEGER PRIMARY KEY AUTOINCREMENT,
  column_name  TEXT UNIQUE NOT NULL,
  column_type  TEXT NOT NULL,
  created_at   TEXT DEFAULT (datetime('now'))
);
"""


class InventoryDatabase(ColumnStore):
    """SQLite-backed products table plus its dynamic column definitions.

    - Places the DB under `<data_dir>/products.sqlite3`.
    - Ensures schema on first use and re-adds any defined column missing
      from the products table.
    - Provides a context-managed connection method.
    """

    def __init__(self, data_dir: str, filename: str = DEFAULT_DB_FILENAME) -> None:
        try:
            os.makedirs(data_dir, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create data directory {data_dir}: {exc}") from exc
        self.db_path = os.path.join(os.path.abspath(data_dir), filename)
        LOG.info(f"Inventory DB path: {self.db_path}")
        self._ensure_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open database {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as exc:
            LOG.exception("Database operation failed")
            raise StorageError(f"Database error: {exc}") from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.Error:
                # Non-fatal; continue with schema creation
                LOG.debug("Could not switch journal mode to WAL")
            cur.executescript(SCHEMA_SQL)
            conn.commit()
            self._restore_missing_columns(conn)
            LOG.info("Inventory DB schema ensured.")

    def _restore_missing_columns(self, conn: sqlite3.Connection) -> None:
        existing = set(self._table_columns(conn))
        cur = conn.cursor()
        cur.execute("SELECT column_name, column_type FROM column_definitions ORDER BY id;")
        for row in cur.fetchall():
            name = row["column_name"]
            if name in existing:
                continue
            LOG.info(f"Re-adding column {name!r} missing from products table")
            sql_type = SQL_TYPES.get(row["column_type"], "TEXT")
            conn.execute(f"ALTER TABLE products ADD COLUMN {quote_ident(name)} {sql_type};")
        conn.commit()

    @staticmethod
    def _table_columns(conn: sqlite3.Connection) -> List[str]:
        cur = conn.cursor()
        cur.execute("PRAGMA table_info(products);")
        return [row[1] for row in cur.fetchall()]

    # --------------- Column definitions ---------------
    def load_column_definitions(self) -> Dict[str, str]:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT column_name, column_type FROM column_definitions ORDER BY id;")
            return {row["column_name"]: row["column_type"] for row in cur.fetchall()}

    def add_column_definition(self, name: str, kind: str) -> None:
        sql_type = SQL_TYPES[kind]
        with self.connect() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE;")
                conn.execute(f"ALTER TABLE products ADD COLUMN {quote_ident(name)} {sql_type};")
                conn.execute(
                    "INSERT INTO column_definitions (column_name, column_type) VALUES (?, ?);",
                    (name, kind),
                )
                conn.commit()
            except sqlite3.Error:
                LOG.exception(f"Failed to add column {name!r}; rolling back")
                conn.rollback()
                raise

    # --------------- Products ---------------
    @staticmethod
    def _row_to_record(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
        if row is None:
            return None
        return {key: row[key] for key in row.keys() if row[key] is not None}

    def fetch_products(self) -> List[Dict[str, Any]]:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT * FROM products ORDER BY item;")
            return [self._row_to_record(row) for row in cur.fetchall()]

    def fetch_product(self, item: str) -> Optional[Dict[str, Any]]:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT * FROM products WHERE item = ?;", (item,))
            return self._row_to_record(cur.fetchone())

    def replace_product(self, record: Dict[str, Any]) -> None:
        """Write the complete row for `record["item"]`, replacing any previous row."""
        columns: Sequence[str] = list(record.keys())
        placeholders = ", ".join("?" for _ in columns)
        column_sql = ", ".join(quote_ident(c) for c in columns)
        with self.connect() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO products ({column_sql}) VALUES ({placeholders});",
                [record[c] for c in columns],
            )
            conn.commit()

    def delete_product(self, item: str) -> bool:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM products WHERE item = ?;", (item,))
            conn.commit()
            return cur.rowcount > 0
