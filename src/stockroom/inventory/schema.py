from __future__ import annotations

import re
from typing import Dict, List, Optional

from ..errors import ValidationError
from ..logging import get_logger
from .constants import (
    CORE_FIELDS,
    KIND_ALIASES,
    KIND_NUMERIC,
    KIND_TEXT,
    MEMBERSHIP_CORE,
    MEMBERSHIP_DYNAMIC,
    RESERVED_NAMES,
)
from .models import FieldDef


LOG = get_logger("inventory-schema")

_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9_]")


def sanitize(name: str) -> str:
    """Lower-case a raw column name and replace anything outside [a-z0-9_] with `_`."""
    return _INVALID_NAME_CHARS.sub("_", str(name).strip().lower())


def coerce_kind(kind: Optional[str]) -> str:
    if kind is None or (isinstance(kind, str) and not kind.strip()):
        return KIND_TEXT
    resolved = KIND_ALIASES.get(str(kind).strip().lower())
    if resolved is None:
        raise ValidationError(f"Unsupported column type: {kind}")
    return resolved


class ColumnStore:
    """Durable home for dynamic field definitions.

    Backends implement both methods; `add_column_definition` must have
    persisted the definition by the time it returns.
    """

    def load_column_definitions(self) -> Dict[str, str]:
        raise NotImplementedError

    def add_column_definition(self, name: str, kind: str) -> None:
        raise NotImplementedError


class SchemaRegistry:
    """Core field set plus the dynamic fields discovered at runtime.

    The registry loads dynamic definitions from its column store once, at
    construction, and writes through to it on every addition. Fields are
    never removed.
    """

    def __init__(self, column_store: ColumnStore) -> None:
        self._column_store = column_store
        self._core: Dict[str, FieldDef] = {
            name: FieldDef(name=name, kind=kind, membership=MEMBERSHIP_CORE) for name, kind in CORE_FIELDS
        }
        self._dynamic: Dict[str, FieldDef] = {}
        self.reload()

    def reload(self) -> None:
        loaded = self._column_store.load_column_definitions()
        dynamic: Dict[str, FieldDef] = {}
        for raw_name, raw_kind in loaded.items():
            name = sanitize(raw_name)
            if not name or name in self._core or name in RESERVED_NAMES:
                LOG.warning(f"Ignoring stored column definition that shadows a core field: {raw_name!r}")
                continue
            try:
                kind = coerce_kind(raw_kind)
            except ValidationError:
                LOG.warning(f"Stored column {name!r} has unknown type {raw_kind!r}; treating as text")
                kind = KIND_TEXT
            dynamic[name] = FieldDef(name=name, kind=kind, membership=MEMBERSHIP_DYNAMIC)
        self._dynamic = dynamic
        LOG.info(f"Loaded {len(dynamic)} dynamic column(s): {sorted(dynamic)}")

    @staticmethod
    def sanitize(name: str) -> str:
        return sanitize(name)

    def has(self, name: str) -> bool:
        key = sanitize(name)
        return key in self._core or key in self._dynamic

    def get(self, name: str) -> Optional[FieldDef]:
        key = sanitize(name)
        return self._core.get(key) or self._dynamic.get(key)

    def kind_of(self, name: str) -> Optional[str]:
        fd = self.get(name)
        return fd.kind if fd else None

    def is_numeric(self, name: str) -> bool:
        return self.kind_of(name) == KIND_NUMERIC

    def is_reserved(self, name: str) -> bool:
        return sanitize(name) in RESERVED_NAMES

    def add_dynamic(self, name: str, kind: Optional[str] = KIND_TEXT) -> bool:
        """Register a new dynamic field; False if it exists or is reserved."""
        sanitized = sanitize(name)
        if not sanitized:
            raise ValidationError("Column name is required")
        resolved_kind = coerce_kind(kind)
        if sanitized in self._core or sanitized in self._dynamic or sanitized in RESERVED_NAMES:
            return False
        self._column_store.add_column_definition(sanitized, resolved_kind)
        self._dynamic[sanitized] = FieldDef(name=sanitized, kind=resolved_kind, membership=MEMBERSHIP_DYNAMIC)
        LOG.info(f"Added dynamic column {sanitized!r} ({resolved_kind})")
        return True

    def core(self) -> Dict[str, FieldDef]:
        return dict(self._core)

    def dynamic(self) -> Dict[str, FieldDef]:
        return dict(self._dynamic)

    def all(self) -> Dict[str, FieldDef]:
        merged = dict(self._core)
        for name, fd in self._dynamic.items():
            # core wins on collision
            merged.setdefault(name, fd)
        return merged

    def names(self) -> List[str]:
        return list(self.all())

    def describe(self) -> Dict[str, Dict[str, str]]:
        """Name -> kind maps for the columns endpoint."""
        return {
            "core": {name: fd.kind for name, fd in self._core.items()},
            "dynamic": {name: fd.kind for name, fd in self._dynamic.items()},
            "all": {name: fd.kind for name, fd in self.all().items()},
        }
