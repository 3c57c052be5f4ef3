from __future__ import annotations

import math
import numbers
import re
from typing import Any

from ..logging import get_logger
from .models import Value
from .schema import SchemaRegistry

_LOG = get_logger("inventory-normalize")

# Leading decimal number, the same prefix a lenient float parser would accept.
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_number(raw: Any) -> float:
    """Parse a cell as a float, stripping one leading `$`.

    Never raises: empty, unparsable or non-finite input yields 0.0. Trailing
    garbage after a leading number is ignored ("12abc" -> 12.0).
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, numbers.Real):
        value = float(raw)
        return value if math.isfinite(value) else 0.0
    s = str(raw).strip()
    if s.startswith("$"):
        s = s[1:]
    m = _LEADING_NUMBER.match(s)
    if not m:
        if s:
            _LOG.debug(f"Unparsable numeric cell {raw!r}; using 0")
        return 0.0
    try:
        value = float(m.group(0))
    except ValueError:
        return 0.0
    if not math.isfinite(value):
        _LOG.debug(f"Numeric cell {raw!r} overflows; using 0")
        return 0.0
    return value


def to_text(raw: Any) -> str:
    """Render a cell as trimmed text; spreadsheet floats lose a spurious `.0`."""
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return str(raw).upper()
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw).strip()


def normalize_cell(field: str, raw: Any, registry: SchemaRegistry) -> Value:
    """Typed value for `raw` according to the kind of `field`."""
    if registry.is_numeric(field):
        return parse_number(raw)
    return to_text(raw)

