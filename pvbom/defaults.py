"""
Defaults / parameters projection.

The company defaults live in a single flat document of the parameter store.
Its field names are storage-specific (German, inconsistent casing). This
module reshapes that record into `PVDefaults`, the only form the
recommendation and derivation engines consume.

Each logical rule is a pair of a default material reference and a value
(ratio, per-device count, flat quantity or length); pairs are stored in
`PVDefaults.items` keyed by the rule name below.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from pvbom.knowledge.ampacity import CROSS_SECTIONS_MM2, BREAKER_RATINGS_A
from pvbom.models import Configuration, InverterConfig, MountingRefs, RoofType
from pvbom.parsers.numbers import parse_number

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Store field names
# -------------------------------------------------------------------
# rule name -> (material reference field, value field)
PAIRED_FIELDS: Dict[str, tuple] = {
    "dc_cable": ("defaultPvKabel", "PvKabel"),
    "bonding_substructure": ("defaultPotentialausgleich", "PotentialausgleichUK"),
    "cable_management": ("defaultKabelmanagement", "KabelmanagementUK"),
    "terminal_sleeves": ("defaultAderendhuelsen10mm2", "AderendhuelsenProGeraet"),
    "cable_lug_6_m8": ("defaultKabelschuh6M8", "Kabelschuh6M8"),
    "cable_lug_10_m6": ("defaultKabelschuh10M6", "Kabelschuh10M6"),
    "cable_lug_16_m6": ("defaultKabelschuh16M6", "Kabelschuh16M6"),
    "insulation_dowel": ("defaultDammstoffduebel", "Dammstoffduebel"),
    "scaffold_anchor_dowel": ("defaultDuebelGeruestanker", "DuebelGeruestanker"),
    "conductor_10_blue": ("defaultAdernleitung10mm2Blau", "Adernleitung10mm2Blau"),
    "conductor_10_black": ("defaultAdernleitung10mm2Schwarz", "Adernleitung10mm2Schwarz"),
    "conductor_10_green_yellow": ("defaultAdernleitung10mm2GruenGelb", "Adernleitung10mm2GruenGelb"),
    "conductor_16_blue": ("defaultAdernleitung16mm2Blau", "Adernleitung16mm2Blau"),
    "conductor_16_black": ("defaultAdernleitung16mm2Schwarz", "Adernleitung16mm2Schwarz"),
    "conductor_16_green_yellow": ("defaultAdernleitung16mm2GruenGelb", "Adernleitung16mm2GruenGelb"),
    "bonding_bar": ("defaultPotentialausgleichsschiene", "Potentialausgleichsschiene"),
    "main_line_tap_terminal": ("defaultHauptleitungsabzweigklemme", "Hauptleitungsabzweigklemme"),
    "busbar_terminal": ("defaultSammelschienenklemme", "Sammelschienenklemme"),
    "cover_strip": ("defaultAbdeckstreifen", "Abdeckstreifen"),
    "rj45_plug": ("defaultRJ45Stecker", "RJ45Stecker"),
    "bonding_fastening": ("defaultBefestigungPotentialausgleichUKUK", "BefestigungPotentialausgleichUKUK"),
    "optimizer_fastening": ("defaultBefestigungLeistungsoptimierer", "BefestigungLeistungsoptimierer"),
    # the store keeps a single length for both substructure bonding rules
    "bonding_uk_uk": ("defaultPotentialausgleichUKUK", "PotentialausgleichUK"),
    "bonding_hes_uk": ("defaultPotentialausgleichHESUK", "PotentialausgleichHESUK"),
    "protective_conductor": ("defaultSchutzleiterPV", "SchutzleiterPV"),
    "earthing_hes": ("defaultErdungHES", "ErdungHES"),
    "dowel_14mm": ("defaultDuebel14", "Duebel14"),
    "cable_duct_screws": ("defaultKabelkanalSchrauben", "KabelkanalBefestigungsmaterial"),
    "cable_duct_dowels": ("defaultKabelkanalDuebel", "KabelkanalBefestigungsmaterial"),
    "device_screws": ("defaultPvGeraeteSchrauben", "PvGeraeteBefestigungsmaterial"),
    "device_dowels": ("defaultPvGeraeteDuebel", "PvGeraeteBefestigungsmaterial"),
    "flex_conduit": ("defaultFlexrohrStandard", "Flexrohr"),
    "flex_conduit_large": ("defaultFlexrohrGross", "Flexrohr"),
    "installation_conduit": ("defaultInstallationsrohr", "Installationsrohr"),
    "pipe_clamp": ("defaultRohrschelleStandard", "Rohrschelle"),
    "pipe_clamp_large": ("defaultRohrschelleGross", "Rohrschelle"),
    "installation_conduit_outdoor": ("defaultInstallationsrohrOutdoor", "InstallationsrohrOutdoor"),
    "pipe_clamp_outdoor": ("defaultRohrschelleOutdoor", "RohrschelleOutdoor"),
    "sleeve_outdoor": ("defaultMuffeOutdoor", "MuffeOutdoor"),
    "grounding_rod_consumable": ("defaultErdungStaberder", "defaultErdungStaberderValue"),
    "decal_plain": ("defaultAufkleberPV", None),
    "decal_battery": ("defaultAufkleberPVMitSpeicher", None),
    "decal_backup": ("defaultAufkleberPVMitNotstrom", None),
}

# Values that fall back to something other than 0 when absent.
VALUE_FALLBACKS = {
    "grounding_rod_consumable": 1.0,
}

AMPACITY_FIELDS = {
    1.5: "strombelastbarkeit15",
    2.5: "strombelastbarkeit25",
    4.0: "strombelastbarkeit4",
    6.0: "strombelastbarkeit6",
    10.0: "strombelastbarkeit10",
    16.0: "strombelastbarkeit16",
}

CABLE_FIELDS = {
    1.5: "defaultKabel5x15",
    2.5: "defaultKabel5x25",
    4.0: "defaultKabel5x4",
    6.0: "defaultKabel5x6",
    10.0: "defaultKabel5x10",
    16.0: "defaultKabel5x16",
}

BREAKER_FIELDS = {amps: f"defaultSicherung{amps}A" for amps in BREAKER_RATINGS_A}

DEFAULT_CABLE_LENGTH_M = 10.0


# -------------------------------------------------------------------
# Projected defaults
# -------------------------------------------------------------------
@dataclass(frozen=True)
class DefaultPair:
    material_ref: Optional[str] = None
    value: float = 0.0


@dataclass(frozen=True)
class PVDefaults:
    """Named parameters consumed by the recommendation and derivation engines."""
    hook_ratio: float = 0.0
    default_cable_length: float = DEFAULT_CABLE_LENGTH_M
    cable_duct_length: float = 0.0
    ampacity: Dict[float, float] = field(default_factory=dict)
    cable_refs: Dict[float, Optional[str]] = field(default_factory=dict)
    breaker_refs: Dict[int, Optional[str]] = field(default_factory=dict)
    wallbox_rcd_ref: Optional[str] = None
    items: Dict[str, DefaultPair] = field(default_factory=dict)

    def item(self, name: str) -> DefaultPair:
        return self.items.get(name) or DefaultPair()

    def ref(self, name: str) -> Optional[str]:
        return self.item(name).material_ref

    def value(self, name: str) -> float:
        return self.item(name).value


def _ref(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def project_defaults(record: Optional[Dict[str, Any]]) -> PVDefaults:
    """Reshape the flat store record; a missing record yields empty defaults."""
    d = record or {}

    items: Dict[str, DefaultPair] = {}
    for name, (ref_field, value_field) in PAIRED_FIELDS.items():
        raw_value = d.get(value_field) if value_field else None
        if raw_value is None or raw_value == "":
            value = VALUE_FALLBACKS.get(name, 0.0)
        else:
            value = parse_number(raw_value)
        items[name] = DefaultPair(material_ref=_ref(d.get(ref_field)), value=value)

    cable_length = d.get("defaultCableLength")
    return PVDefaults(
        hook_ratio=parse_number(d.get("modulHakenVerhaeltnis")),
        default_cable_length=(
            DEFAULT_CABLE_LENGTH_M if cable_length is None else parse_number(cable_length)
        ),
        cable_duct_length=parse_number(d.get("KabelkanalStandard")),
        ampacity={mm2: parse_number(d.get(AMPACITY_FIELDS[mm2])) for mm2 in CROSS_SECTIONS_MM2},
        cable_refs={mm2: _ref(d.get(CABLE_FIELDS[mm2])) for mm2 in CROSS_SECTIONS_MM2},
        breaker_refs={amps: _ref(d.get(BREAKER_FIELDS[amps])) for amps in BREAKER_RATINGS_A},
        wallbox_rcd_ref=_ref(d.get("defaultFehlerstromschutzschalterWallbox")),
        items=items,
    )


def default_configuration(record: Optional[Dict[str, Any]]) -> Configuration:
    """Starting configuration pre-filled with the company's default components."""
    d = record or {}
    inverter_ref = _ref(d.get("defaultInverter"))
    return Configuration(
        module_ref=_ref(d.get("defaultModule")),
        roof_type=RoofType.parse(d.get("defaultRoofType")),
        inverters=[InverterConfig(type_ref=inverter_ref, quantity=1)],
        mounting=MountingRefs(
            system=_ref(d.get("defaultPvMountingSystem")),
            fastening=_ref(d.get("defaultBefestigungPVMountingSystem")),
            end_clamp=_ref(d.get("defaultModulEndklemmen")),
            mid_clamp=_ref(d.get("defaultModulMittelklemmen")),
            connector_male=_ref(d.get("defaultPvSteckerMale")),
            connector_female=_ref(d.get("defaultPvSteckerFemale")),
            profile=_ref(d.get("defaultProfile")),
            profile_connector=_ref(d.get("defaultVerbinder")),
            end_cap=_ref(d.get("defaultEndkappen")),
        ),
    )


# -------------------------------------------------------------------
# Loading
# -------------------------------------------------------------------
def load_defaults_record(path: str | Path | None) -> Dict[str, Any]:
    """
    Read the defaults document from a JSON file.

    A missing file is not an error: the engine then runs with empty defaults.
    A JSON list is accepted and its first document used, as the store
    returns collections.
    """
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        logger.warning(f"Defaults file not found at {p}; continuing with empty defaults")
        return {}
    data = json.loads(p.read_text(encoding="utf-8"))
    if isinstance(data, list):
        data = data[0] if data else {}
    if not isinstance(data, dict):
        raise ValueError(f"Defaults file {p} must contain a JSON object")
    logger.info(f"Loaded {len(data)} default parameters from {p}")
    return data
