"""
Material catalog lookup.

The catalog is a read-only snapshot supplied by the material store. The
lookup indexes it once by id and by category and reads specification values
that different catalog sections may store under different keys.
"""
from __future__ import annotations

import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from pvbom.models import MaterialEntry
from pvbom.parsers.numbers import parse_number

logger = logging.getLogger(__name__)

__all__ = ["MaterialLookup", "parse_number", "load_catalog", "catalog_from_frame"]


class MaterialLookup:
    """Id and category index over a catalog snapshot."""

    def __init__(self, materials: Iterable[MaterialEntry | Dict[str, Any]]):
        self.materials: List[MaterialEntry] = []
        self._by_id: Dict[str, MaterialEntry] = {}
        self._by_category: Dict[str, List[MaterialEntry]] = defaultdict(list)

        for m in materials:
            entry = m if isinstance(m, MaterialEntry) else MaterialEntry.from_dict(m)
            if not entry.id:
                continue
            if entry.id in self._by_id:
                logger.debug(f"Duplicate material id {entry.id!r} in catalog; keeping first entry")
                continue
            self.materials.append(entry)
            self._by_id[entry.id] = entry
            if entry.category_id:
                self._by_category[entry.category_id].append(entry)

    def __len__(self) -> int:
        return len(self.materials)

    def by_id(self, material_id: Optional[str]) -> Optional[MaterialEntry]:
        if not material_id:
            return None
        return self._by_id.get(material_id)

    def by_category(self, category_id: Optional[str]) -> List[MaterialEntry]:
        if not category_id:
            return []
        return list(self._by_category.get(category_id, []))

    def description(self, material_id: Optional[str], fallback: str) -> str:
        """Catalog description of a material, or the rule's fallback text."""
        m = self.by_id(material_id)
        return (m.description if m else "") or fallback

    @staticmethod
    def spec(material: Optional[MaterialEntry], keys: Sequence[str]) -> Any:
        """First defined, non-empty specification value among `keys`, else None."""
        if material is None or not material.specifications:
            return None
        for key in keys:
            value = material.specifications.get(key)
            if value is None:
                continue
            if isinstance(value, str) and value == "":
                continue
            if isinstance(value, float) and value != value:  # NaN from spreadsheets
                continue
            return value
        return None

    def spec_number(self, material_id: Optional[str], keys: Sequence[str]) -> float:
        return parse_number(self.spec(self.by_id(material_id), keys))


# -------------------------------------------------------------------
# Loading
# -------------------------------------------------------------------
SPEC_PREFIX = "spec:"

_ID_COLS = ["id", "ID", "materialID", "Material ID", "material_id"]
_CATEGORY_COLS = ["categoryId", "category_id", "Category ID", "category"]
_DESC_COLS = ["description", "Description", "name", "Model Name"]
_UNIT_COLS = ["unit", "Unit"]
_STOCK_COLS = ["stockQuantity", "stock_quantity", "Stock"]


def _smart_find_col(df: pd.DataFrame, candidates: List[str]) -> Optional[str]:
    """Find a column by trying multiple candidate names (case-insensitive)."""
    cols = {str(c).lower(): c for c in df.columns}
    for cand in candidates:
        key = cand.lower()
        if key in cols:
            return cols[key]
    return None


def _cell(row: pd.Series, col: Optional[str]) -> Any:
    if not col:
        return None
    value = row.get(col)
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return value


def catalog_from_frame(df: pd.DataFrame) -> List[MaterialEntry]:
    """
    Convert a catalog sheet into entries.

    Every column named `spec:<key>` becomes a specification value; empty
    cells are left out so the key-priority lookup falls through to the next
    key.
    """
    c_id = _smart_find_col(df, _ID_COLS)
    if c_id is None:
        raise ValueError("Catalog sheet has no material id column")
    c_cat = _smart_find_col(df, _CATEGORY_COLS)
    c_desc = _smart_find_col(df, _DESC_COLS)
    c_unit = _smart_find_col(df, _UNIT_COLS)
    c_stock = _smart_find_col(df, _STOCK_COLS)
    spec_cols = [c for c in df.columns if str(c).startswith(SPEC_PREFIX)]

    entries: List[MaterialEntry] = []
    for _, row in df.iterrows():
        material_id = _cell(row, c_id)
        if material_id is None or not str(material_id).strip():
            continue
        specs = {}
        for col in spec_cols:
            value = _cell(row, col)
            if value is not None and value != "":
                specs[str(col)[len(SPEC_PREFIX):]] = value
        category = _cell(row, c_cat)
        entries.append(MaterialEntry(
            id=str(material_id).strip(),
            category_id=str(category).strip() or None if category is not None else None,
            description=str(_cell(row, c_desc) or ""),
            unit=str(_cell(row, c_unit) or ""),
            specifications=specs,
            stock_quantity=parse_number(_cell(row, c_stock)),
        ))
    return entries


def load_catalog(path: str | Path) -> List[MaterialEntry]:
    """Load a catalog snapshot from .xlsx/.xls, .csv or .json."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Catalog file not found at {p}")

    suffix = p.suffix.lower()
    if suffix == ".json":
        data = json.loads(p.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("materials", [])
        entries = [MaterialEntry.from_dict(d) for d in data if isinstance(d, dict)]
    elif suffix == ".csv":
        entries = catalog_from_frame(pd.read_csv(p, dtype=str, keep_default_na=False))
    elif suffix in (".xlsx", ".xls"):
        entries = catalog_from_frame(pd.read_excel(p, dtype=str, keep_default_na=False))
    else:
        raise ValueError(f"Unsupported catalog format: {p.suffix}")

    logger.info(f"Loaded {len(entries)} catalog materials from {p}")
    return entries
