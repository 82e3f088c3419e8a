"""
Number parsing for catalog and configuration values.

Catalog specifications and wizard fields arrive as strings, numbers or
nothing at all. Every downstream quantity formula multiplies by these values,
so parsing never raises: anything unusable becomes 0.
"""
from __future__ import annotations

import math
import re
from typing import Any

_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def parse_number(value: Any) -> float:
    """
    Parse a float, accepting both '.' and ',' as decimal separator.

    The leading number of a string is used, so unit suffixes are ignored
    ("16 A" -> 16, "2,5 mm²" -> 2.5). Returns 0.0 for None, empty strings,
    NaN/inf and anything without a leading number.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        n = float(value)
    else:
        m = _FLOAT_PREFIX.match(str(value).replace(",", ".", 1))
        if not m:
            return 0.0
        n = float(m.group(0))
    return n if math.isfinite(n) else 0.0


def parse_count(value: Any) -> int:
    """
    Parse a non-negative integer count ("12", 12.0, " 7 pcs" -> 7).

    Leading digits are used the way a form field is read; negatives and
    garbage become 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return 0
        return max(0, int(value))
    m = _INT_PREFIX.match(str(value))
    if not m:
        return 0
    return max(0, int(m.group(0)))
