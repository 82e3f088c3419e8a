"""
Layout totals for the two module-orientation groups.

Orientation A rows are laid out with the module's long side along the
profile, orientation B rows with the short side.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from pvbom.models import LayoutRow
from pvbom.parsers.numbers import parse_count


@dataclass(frozen=True)
class LayoutTotals:
    total_modules: int = 0
    total_rows: int = 0
    count_a: int = 0
    count_b: int = 0
    rows_a: int = 0
    rows_b: int = 0


def row_module_count(row: Any) -> int:
    """Module count of a row given as LayoutRow, dict or raw value."""
    if isinstance(row, LayoutRow):
        return parse_count(row.module_count)
    if isinstance(row, dict):
        for key in ("moduleCount", "module_count", "modules"):
            if key in row:
                return parse_count(row[key])
        return 0
    return parse_count(row)


def compute_layout_totals(
    orientation_a: Optional[Iterable[Any]] = None,
    orientation_b: Optional[Iterable[Any]] = None,
) -> LayoutTotals:
    rows_a = list(orientation_a or [])
    rows_b = list(orientation_b or [])
    count_a = sum(row_module_count(r) for r in rows_a)
    count_b = sum(row_module_count(r) for r in rows_b)
    return LayoutTotals(
        total_modules=count_a + count_b,
        total_rows=len(rows_a) + len(rows_b),
        count_a=count_a,
        count_b=count_b,
        rows_a=len(rows_a),
        rows_b=len(rows_b),
    )
