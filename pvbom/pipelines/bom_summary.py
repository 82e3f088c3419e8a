"""
BOM summary helpers.

Operator-facing edits on a derived BOM (manual additions and quantity
changes) and the project BOM rebuilt from stock bookings. All helpers return
new lists and leave their inputs untouched.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from pvbom.catalog import MaterialLookup
from pvbom.models import LineItem, MaterialEntry
from pvbom.parsers.numbers import parse_number

logger = logging.getLogger(__name__)

OUTGOING_BOOKING_TYPES = {"ausgang", "out", "outgoing"}


def split_by_status(items: Iterable[LineItem]) -> Dict[str, List[LineItem]]:
    """Group items into configured, automatically derived and manual positions."""
    groups: Dict[str, List[LineItem]] = {"configured": [], "automatic": [], "manual": []}
    for item in items:
        if item.is_manual:
            groups["manual"].append(item)
        elif item.is_configured:
            groups["configured"].append(item)
        else:
            groups["automatic"].append(item)
    return groups


def add_manual_item(
    items: List[LineItem],
    material: MaterialEntry,
    quantity: float,
    category: str = "",
) -> List[LineItem]:
    """Append an operator-added position; non-positive quantities are ignored."""
    qty = parse_number(quantity)
    out = [replace(i) for i in items]
    if qty <= 0:
        return out
    out.append(LineItem(
        material_id=material.id,
        quantity=qty,
        description=material.description or material.id,
        category=category,
        is_manual=True,
    ))
    return out


def update_quantity(items: List[LineItem], material_id: str, quantity: float) -> List[LineItem]:
    """Set the quantity of one position; a quantity of 0 or less removes it."""
    qty = parse_number(quantity)
    out: List[LineItem] = []
    for item in items:
        if item.material_id != material_id:
            out.append(replace(item))
        elif qty > 0:
            out.append(replace(item, quantity=qty))
    return out


def _booking_material_id(entry: Dict[str, Any]) -> Optional[str]:
    for key in ("materialID", "materialId", "id"):
        value = entry.get(key)
        if value:
            return str(value)
    return None


def aggregate_bookings(
    project_id: str,
    bookings: Iterable[Dict[str, Any]],
    materials: MaterialLookup,
) -> List[LineItem]:
    """
    Project BOM from the outgoing stock bookings of a project.

    Quantities are summed per material and a position stays configured when
    any booking marked it so. Materials missing from the catalog are skipped.
    Sorted by description, then material id (case-insensitive).
    """
    merged: Dict[str, LineItem] = {}
    for booking in bookings:
        if booking.get("projectID") != project_id:
            continue
        if str(booking.get("type", "")).strip().lower() not in OUTGOING_BOOKING_TYPES:
            continue
        for entry in booking.get("materials") or []:
            material = materials.by_id(_booking_material_id(entry))
            if material is None:
                logger.debug(f"Booking references unknown material {entry!r}; skipped")
                continue
            qty = parse_number(entry.get("quantity"))
            configured = bool(entry.get("isConfigured"))
            existing = merged.get(material.id)
            if existing is None:
                merged[material.id] = LineItem(
                    material_id=material.id,
                    quantity=qty,
                    description=material.description or material.id,
                    category=str(entry.get("category") or ""),
                    is_configured=configured,
                )
            else:
                existing.quantity += qty
                existing.is_configured = existing.is_configured or configured

    return sorted(
        merged.values(),
        key=lambda i: (i.description.casefold(), i.material_id.casefold()),
    )


def bom_to_frame(items: Iterable[LineItem]) -> pd.DataFrame:
    """Tabular view of BOM positions."""
    columns = ["materialID", "quantity", "description", "category", "isConfigured", "isManual"]
    return pd.DataFrame([i.to_dict() for i in items], columns=columns)
