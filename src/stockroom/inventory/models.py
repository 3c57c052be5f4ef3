from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from .constants import KIND_NUMERIC

Value = Union[str, float]
# Field name -> value; insertion order is the column order on export.
Record = Dict[str, Value]


@dataclass(frozen=True)
class FieldDef:
    name: str
    kind: str
    membership: str

    @property
    def numeric(self) -> bool:
        return self.kind == KIND_NUMERIC


@dataclass
class UpsertResult:
    item: str
    created: bool


@dataclass
class ImportResult:
    imported: int = 0
    errors: List[str] = field(default_factory=list)
    new_columns: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"imported": self.imported}
        if self.errors:
            payload["errors"] = list(self.errors)
        payload["newColumnsAdded"] = list(self.new_columns)
        return payload


@dataclass
class ExportPayload:
    content: bytes
    media_type: str
    filename: str
