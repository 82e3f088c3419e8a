"""
Protection recommendations for current-carrying devices.

For the inverter, wallbox and backup-power device the rated current is read
from the catalog, sized against the ampacity table and mapped to the
company's standard breaker and feeder cable materials. The wallbox also gets
the default residual-current device.

The first configured inverter dimensions the protection of all inverters.
This is a simplification of the configurator, not a physical requirement.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from pvbom.catalog import MaterialLookup
from pvbom.defaults import PVDefaults
from pvbom.knowledge.ampacity import AmpacityBand, build_table, lookup
from pvbom.knowledge.spec_keys import DEVICE_MAX_CURRENT_KEYS
from pvbom.models import (
    Configuration,
    OverrideSet,
    Recommendation,
    RecommendationSet,
    SubsystemKind,
)

logger = logging.getLogger(__name__)


def device_max_current(materials: MaterialLookup, material_id: Optional[str]) -> float:
    """Rated current of a device in A; 0 when unknown."""
    return materials.spec_number(material_id, DEVICE_MAX_CURRENT_KEYS)


def _size(
    material_id: Optional[str],
    materials: MaterialLookup,
    defaults: PVDefaults,
    table: List[AmpacityBand],
    label: str,
) -> Recommendation:
    i_max = device_max_current(materials, material_id)
    if i_max <= 0:
        logger.debug(f"{label}: no rated current for {material_id!r}, nothing to recommend")
        return Recommendation()

    band = lookup(i_max, table)
    breaker = defaults.breaker_refs.get(band.breaker_rating_a)
    cable = defaults.cable_refs.get(band.cross_section_mm2)
    logger.debug(
        f"{label}: I={i_max:g} A -> {band.cross_section_mm2:g} mm², "
        f"{band.breaker_rating_a} A (breaker={breaker}, cable={cable})"
    )
    return Recommendation(breaker=breaker, cable=cable)


def recommend(
    configuration: Configuration,
    materials: MaterialLookup,
    defaults: PVDefaults,
) -> RecommendationSet:
    """Compute breaker / cable / RCD proposals per device class."""
    table = build_table(defaults.ampacity)

    first_inverter = configuration.inverters[0].type_ref if configuration.inverters else None
    inverter = Recommendation()
    if first_inverter:
        inverter = _size(first_inverter, materials, defaults, table, "inverter")

    wallbox = Recommendation()
    wallbox_ref = configuration.ref(SubsystemKind.WALLBOX)
    if wallbox_ref:
        sized = _size(wallbox_ref, materials, defaults, table, "wallbox")
        wallbox = Recommendation(
            breaker=sized.breaker,
            cable=sized.cable,
            rcd=defaults.wallbox_rcd_ref,
        )

    backup = Recommendation()
    backup_ref = configuration.ref(SubsystemKind.BACKUP_POWER)
    if backup_ref:
        backup = _size(backup_ref, materials, defaults, table, "backup")

    return RecommendationSet(inverter=inverter, wallbox=wallbox, backup=backup)


def _merge_one(computed: Recommendation, override: Recommendation) -> Recommendation:
    return Recommendation(
        breaker=override.breaker if override.breaker is not None else computed.breaker,
        cable=override.cable if override.cable is not None else computed.cable,
        rcd=override.rcd if override.rcd is not None else computed.rcd,
    )


def merge_overrides(
    recommendations: RecommendationSet,
    overrides: Optional[OverrideSet] = None,
) -> RecommendationSet:
    """Operator overrides win field by field; unset override fields keep the proposal."""
    if overrides is None:
        return recommendations
    return RecommendationSet(
        inverter=_merge_one(recommendations.inverter, overrides.inverter),
        wallbox=_merge_one(recommendations.wallbox, overrides.wallbox),
        backup=_merge_one(recommendations.backup, overrides.backup),
    )
