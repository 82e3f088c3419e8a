"""
BOM Derivation Engine.

Turns a PV configuration into consolidated bill-of-materials line items.
Each rule either appends raw line items or a warning; a rule whose inputs are
missing or zero contributes nothing and the remaining rules still run, so a
half-filled wizard still gets a preview. Raw items are consolidated per
material at the end.

The engine is pure: inputs are never mutated and equal inputs give equal
output.
"""
from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from pvbom.catalog import MaterialLookup
from pvbom.defaults import PVDefaults
from pvbom.knowledge.spec_keys import (
    CATEGORY,
    DEFAULT_SMART_DONGLE_NAME,
    MODULE_LENGTH_MM,
    MODULE_WIDTH_MM,
    PROFILE_LENGTH_MM,
    REPLACES_SMART_DONGLE,
    SMART_DONGLE_INCLUDED,
    is_no,
    is_yes,
)
from pvbom.layout import LayoutTotals, row_module_count
from pvbom.models import (
    Configuration,
    DerivationResult,
    LineItem,
    RecommendationSet,
    RoofType,
    SubsystemKind,
)

logger = logging.getLogger(__name__)

# Profile overhang per clamp position in mm.
CLAMP_OVERHANG_MM = 50
END_CLAMPS_PER_ROW = 4
FALLBACK_CABLE_LENGTH_M = 5

# (subsystem, fallback description, category) in BOM order
CONFIGURED_DEVICES = [
    (SubsystemKind.OPTIMIZER, "Power optimizer", "Optimizer"),
    (SubsystemKind.BATTERY, "Battery storage", "Storage"),
    (SubsystemKind.WALLBOX, "Wallbox", "Wallbox"),
    (SubsystemKind.ENERGY_MANAGEMENT, "Energy management", "Energy management"),
    (SubsystemKind.SMART_DONGLE, DEFAULT_SMART_DONGLE_NAME, "Smart Dongle"),
    (SubsystemKind.SURGE_PROTECTION, "Selective main circuit breaker", "Electrical components"),
    (SubsystemKind.GROUNDING_ROD, "Grounding rod", "Electrical components"),
    (SubsystemKind.COMBINED_ARRESTER, "Combined arrester", "Electrical components"),
    (SubsystemKind.METER_CABINET, "Meter cabinet", "Electrical components"),
    (SubsystemKind.GENERATOR_JUNCTION_BOX, "Generator junction box", "Electrical components"),
    (SubsystemKind.AUXILIARY_POWER_SUPPLY, "Auxiliary power supply", "Electrical components"),
]

# (rule name, fallback description, category) for fixed quantities from defaults
FLAT_RATE_GROUP_1 = [
    ("bonding_substructure", "Equipotential bonding substructure (standard)", "Bonding"),
    ("cable_management", "Cable management substructure (standard)", "Cable management"),
]
FLAT_RATE_GROUP_2 = [
    ("insulation_dowel", "Insulation dowel (standard)", "Fastening material"),
    ("scaffold_anchor_dowel", "Scaffold anchor dowel (standard)", "Dowels"),
    ("conductor_10_blue", "Single-core conductor 10mm² blue", "Cable"),
    ("conductor_10_black", "Single-core conductor 10mm² black", "Cable"),
    ("conductor_10_green_yellow", "Single-core conductor 10mm² green/yellow", "Cable"),
    ("conductor_16_blue", "Single-core conductor 16mm² blue", "Cable"),
    ("conductor_16_black", "Single-core conductor 16mm² black", "Cable"),
    ("conductor_16_green_yellow", "Single-core conductor 16mm² green/yellow", "Cable"),
    ("bonding_bar", "Equipotential bonding bar", "Bonding"),
    ("main_line_tap_terminal", "Main line tap terminal", "Terminals"),
    ("busbar_terminal", "Busbar terminal", "Terminals"),
    ("cover_strip", "Cover strip", "Covers"),
]
CONDUITS = [
    ("flex_conduit", "Flexible conduit standard", "m"),
    ("installation_conduit", "Installation conduit", "m"),
    ("pipe_clamp", "Pipe clamp", "pcs"),
    ("flex_conduit_large", "Flexible conduit large", "m"),
    ("pipe_clamp_large", "Pipe clamp large", "pcs"),
    ("installation_conduit_outdoor", "Installation conduit outdoor", "m"),
    ("pipe_clamp_outdoor", "Pipe clamp outdoor", "pcs"),
    ("sleeve_outdoor", "Conduit sleeve outdoor", "pcs"),
]


def _ceil(value: float) -> int:
    """Ceiling that ignores float noise such as 10 * 0.7 = 7.000000000000001."""
    return int(math.ceil(round(value, 9)))


def _clean_qty(value: float) -> float | int:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def consolidate(items: List[LineItem]) -> List[LineItem]:
    """
    Merge raw items per material id, keeping first-seen order.

    Quantities are summed, the longer description wins (a heuristic: the
    longer text usually carries more context), flags are OR-ed.
    """
    merged: Dict[str, LineItem] = {}
    for item in items:
        existing = merged.get(item.material_id)
        if existing is None:
            merged[item.material_id] = replace(item)
            continue
        existing.quantity = _clean_qty(existing.quantity + item.quantity)
        if len(item.description) > len(existing.description):
            existing.description = item.description
        existing.is_configured = existing.is_configured or item.is_configured
        existing.is_manual = existing.is_manual or item.is_manual
    return list(merged.values())


class BOMEngine:
    """Applies the derivation rules for one configuration snapshot."""

    def __init__(
        self,
        configuration: Configuration,
        totals: LayoutTotals,
        materials: MaterialLookup,
        defaults: PVDefaults,
        chosen: Optional[RecommendationSet] = None,
    ):
        self.config = configuration
        self.totals = totals
        self.materials = materials
        self.defaults = defaults
        self.chosen = chosen or RecommendationSet()
        self.items: List[LineItem] = []
        self.warnings: List[str] = []

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _add(
        self,
        material_id: Optional[str],
        quantity: float,
        fallback: str,
        category: str,
        configured: bool = False,
    ) -> None:
        if not material_id or not quantity or quantity <= 0:
            return
        self.items.append(LineItem(
            material_id=material_id,
            quantity=_clean_qty(quantity),
            description=self.materials.description(material_id, fallback),
            category=category,
            is_configured=configured,
        ))

    def _add_default(
        self,
        name: str,
        quantity: float,
        fallback: str,
        category: str,
        configured: bool = False,
    ) -> None:
        self._add(self.defaults.ref(name), quantity, fallback, category, configured)

    def _qty(self, kind: SubsystemKind) -> int:
        return self.config.qty(kind)

    def _ref(self, kind: SubsystemKind) -> Optional[str]:
        return self.config.ref(kind)

    @property
    def inverter_count(self) -> int:
        return sum(
            inv.quantity for inv in self.config.inverters
            if inv.type_ref and inv.quantity > 0
        )

    @property
    def total_strings(self) -> int:
        return sum(len(inv.strings) for inv in self.config.inverters)

    def _in_category(self, material_id: Optional[str], category_key: str) -> bool:
        m = self.materials.by_id(material_id)
        return m is not None and m.category_id == CATEGORY[category_key]

    # -------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------
    def _modules(self) -> None:
        self._add(self.config.module_ref, self.totals.total_modules, "PV module", "Module", True)

    def _inverters(self) -> None:
        modules_in_strings = 0
        for idx, inv in enumerate(self.config.inverters):
            self._add(inv.type_ref, inv.quantity, f"Inverter {idx + 1}", "Inverter", True)
            modules_in_strings += sum(s.module_count for s in inv.strings)

        if modules_in_strings != self.totals.total_modules:
            self.warnings.append(
                f"Module count in strings ({modules_in_strings}) does not match "
                f"the total module count ({self.totals.total_modules})."
            )

    def _mounting(self) -> None:
        if self.config.roof_type is None:
            return
        mounting = self.config.mounting
        total_modules = self.totals.total_modules
        total_rows = self.totals.total_rows

        mounting_count = _ceil(total_modules * self.defaults.hook_ratio)
        self._add(mounting.system, mounting_count, "PV mounting system", "Mounting system", True)
        self._add(mounting.fastening, mounting_count * 2, "Mounting fastening", "Fastening", True)

        # two end clamps per row side, one mid clamp pair per gap
        end_clamps = total_rows * END_CLAMPS_PER_ROW
        mid_clamps = max(0, (total_modules - total_rows) * 2)
        self._add(mounting.end_clamp, end_clamps, "Module end clamps", "Clamps", True)
        self._add(mounting.mid_clamp, mid_clamps, "Module mid clamps", "Clamps", True)

        if self.config.roof_type == RoofType.TILE and mounting.profile:
            self._tile_profiles(end_clamps)

    def _tile_profiles(self, end_clamps: int) -> None:
        mounting = self.config.mounting
        module_width = self.materials.spec_number(self.config.module_ref, [MODULE_WIDTH_MM])
        module_length = self.materials.spec_number(self.config.module_ref, [MODULE_LENGTH_MM])
        profile_length = self.materials.spec_number(mounting.profile, [PROFILE_LENGTH_MM])
        end_clamp_width = self.materials.spec_number(mounting.end_clamp, [MODULE_WIDTH_MM])
        mid_clamp_width = self.materials.spec_number(mounting.mid_clamp, [MODULE_WIDTH_MM])

        profiles = 0
        connectors = 0
        for rows, unit_dimension in (
            (self.config.orientation_a, module_length),
            (self.config.orientation_b, module_width),
        ):
            for row in rows:
                p, c = profiles_for_row(
                    row_module_count(row), unit_dimension, profile_length,
                    end_clamp_width, mid_clamp_width,
                )
                profiles += p
                connectors += c

        self._add(mounting.profile, profiles, "Profiles", "Profiles", True)
        self._add(mounting.profile_connector, connectors, "Profile connectors", "Connectors", True)
        self._add(mounting.end_cap, end_clamps, "End caps", "End caps", True)

    def _strings(self) -> None:
        strings = self.total_strings
        mounting = self.config.mounting
        self._add(mounting.connector_male, strings, "PV connector (male)", "PV connectors", True)
        self._add(mounting.connector_female, strings, "PV connector (female)", "PV connectors", True)

        per_string = self.defaults.value("dc_cable")
        if strings > 0 and per_string > 0:
            self._add_default(
                "dc_cable", strings * per_string * 2,
                f"PV cable ({per_string:g}m × 2 × {strings} strings)", "PV cable",
            )

    def _configured_devices(self) -> None:
        for kind, fallback, category in CONFIGURED_DEVICES:
            self._add(self._ref(kind), self._qty(kind), fallback, category, True)

    def _smart_dongle(self) -> None:
        ems_ref = self._ref(SubsystemKind.ENERGY_MANAGEMENT)
        if ems_ref and self._in_category(ems_ref, "energy_management"):
            ems = self.materials.by_id(ems_ref)
            if is_yes(self.materials.spec(ems, [REPLACES_SMART_DONGLE])):
                return

        count = 0
        for inv in self.config.inverters:
            if not inv.type_ref:
                continue
            material = self.materials.by_id(inv.type_ref)
            if is_no(self.materials.spec(material, [SMART_DONGLE_INCLUDED])):
                count += inv.quantity or 1

        if count <= 0 or self._ref(SubsystemKind.SMART_DONGLE):
            return

        candidates = self.materials.by_category(CATEGORY["smart_dongle"])
        dongle = next(
            (m for m in candidates if DEFAULT_SMART_DONGLE_NAME in (m.description or "")),
            candidates[0] if candidates else None,
        )
        if dongle is None:
            logger.debug(f"{count} inverter(s) need a smart dongle but none is in the catalog")
            return
        self._add(
            dongle.id, count,
            f"{DEFAULT_SMART_DONGLE_NAME} (added for {count} inverters)", "Smart Dongle", True,
        )

    def _grounding_rod_consumables(self) -> None:
        rod_ref = self._ref(SubsystemKind.GROUNDING_ROD)
        if not self._in_category(rod_ref, "grounding_rod"):
            return
        rods = self._qty(SubsystemKind.GROUNDING_ROD) or 1
        per_rod = self.defaults.value("grounding_rod_consumable") or 1
        self._add_default(
            "grounding_rod_consumable", rods * per_rod,
            f"Grounding rod earthing ({rods} rods × {per_rod:g})", "Grounding",
        )

    def _backup_power(self) -> None:
        kind = SubsystemKind.BACKUP_POWER
        self._add(self._ref(kind), self._qty(kind), "Backup power", "Backup power", True)

    def _recommended(self) -> None:
        chosen = self.chosen
        cable_length = self.defaults.default_cable_length or FALLBACK_CABLE_LENGTH_M
        inverters = self.inverter_count
        wallboxes = self._qty(SubsystemKind.WALLBOX)
        backups = self._qty(SubsystemKind.BACKUP_POWER)

        self._add(chosen.inverter.breaker, inverters, "Circuit breaker (inverter)", "Breakers", True)
        self._add(
            chosen.inverter.cable, inverters * cable_length,
            f"Sheathed cable (inverter) - {cable_length:g}m per inverter", "Cable", True,
        )
        self._add(chosen.wallbox.breaker, wallboxes, "Circuit breaker (wallbox)", "Breakers", True)
        self._add(
            chosen.wallbox.cable, wallboxes * cable_length,
            f"Sheathed cable (wallbox) - {cable_length:g}m per wallbox", "Cable", True,
        )
        self._add(chosen.wallbox.rcd, wallboxes, "Residual current device (wallbox)", "Breakers", True)
        self._add(chosen.backup.breaker, backups, "Circuit breaker (backup power)", "Breakers", True)
        self._add(
            chosen.backup.cable, backups * cable_length,
            f"Sheathed cable (backup power) - {cable_length:g}m per device", "Cable", True,
        )

    def _flat_rate(self) -> None:
        d = self.defaults
        chosen = self.chosen
        inverters = self.inverter_count
        batteries = self._qty(SubsystemKind.BATTERY)
        wallboxes = self._qty(SubsystemKind.WALLBOX)
        backups = self._qty(SubsystemKind.BACKUP_POWER)
        has_wallbox = bool(self._ref(SubsystemKind.WALLBOX))
        has_battery = bool(self._ref(SubsystemKind.BATTERY))
        has_backup = bool(self._ref(SubsystemKind.BACKUP_POWER))

        for name, fallback, category in FLAT_RATE_GROUP_1:
            self._add_default(name, d.value(name), fallback, category)

        # terminal sleeves for every device wired through a breaker
        sleeve_devices = (
            (inverters if chosen.inverter.breaker else 0)
            + ((wallboxes or 1) if has_wallbox and chosen.wallbox.breaker else 0)
            + ((batteries or 1) if has_battery else 0)
            + (backups if has_backup and chosen.backup.breaker else 0)
        )
        per_device = d.value("terminal_sleeves")
        self._add_default(
            "terminal_sleeves", sleeve_devices * per_device,
            f"Terminal sleeves 10mm² ({sleeve_devices} devices × {per_device:g})", "Terminal sleeves",
        )

        self._add_default("cable_lug_6_m8", d.value("cable_lug_6_m8"), "Cable lug 6xM8 (flat rate)", "Cable lugs")
        lug_devices = batteries + inverters
        self._add_default(
            "cable_lug_10_m6", lug_devices * d.value("cable_lug_10_m6"),
            f"Cable lug 10xM6 ({lug_devices} devices × {d.value('cable_lug_10_m6'):g})", "Cable lugs",
        )
        if has_backup:
            self._add_default(
                "cable_lug_16_m6", backups * d.value("cable_lug_16_m6"),
                f"Cable lug 16xM6 ({backups} × {d.value('cable_lug_16_m6'):g})", "Cable lugs",
            )

        for name, fallback, category in FLAT_RATE_GROUP_2:
            self._add_default(name, d.value(name), fallback, category)

        self._add_default(
            "rj45_plug", wallboxes * d.value("rj45_plug"),
            f"RJ45 plug ({wallboxes} × {d.value('rj45_plug'):g})", "Plugs",
        )
        self._add_default(
            "bonding_fastening", d.value("bonding_fastening"),
            "Fastening material bonding UK-UK", "Fastening material",
        )
        optimizers = self._qty(SubsystemKind.OPTIMIZER)
        self._add_default(
            "optimizer_fastening", optimizers * d.value("optimizer_fastening"),
            f"Fastening power optimizer ({optimizers} × {d.value('optimizer_fastening'):g})",
            "Fastening material",
        )
        self._add_default(
            "bonding_uk_uk", d.value("bonding_uk_uk"),
            f"Equipotential bonding UK-UK ({d.value('bonding_uk_uk'):g}m)", "Bonding",
        )
        self._add_default(
            "bonding_hes_uk", d.value("bonding_hes_uk"),
            f"Equipotential bonding HES-UK ({d.value('bonding_hes_uk'):g}m)", "Earth cable",
        )

        conductor_devices = inverters + batteries
        self._add_default(
            "protective_conductor", conductor_devices * d.value("protective_conductor"),
            f"Protective conductor PV ({conductor_devices} devices × "
            f"{d.value('protective_conductor'):g}m)", "Sheathed cable",
        )
        self._add_default("earthing_hes", d.value("earthing_hes"), "Earthing HES", "Sheathed cable")
        self._add_default("dowel_14mm", d.value("dowel_14mm"), "14mm dowel (standard)", "Dowels")

        duct_fixings = d.value("cable_duct_screws")
        if duct_fixings > 0 and d.cable_duct_length > 0:
            total = _ceil(d.cable_duct_length * duct_fixings)
            desc = f"({d.cable_duct_length:g}m × {duct_fixings:g})"
            self._add_default("cable_duct_screws", total, f"Cable duct screws {desc}", "Screws")
            self._add_default("cable_duct_dowels", total, f"Cable duct dowels {desc}", "Dowels")

        device_fixings = d.value("device_screws")
        if device_fixings > 0:
            devices = inverters + batteries + (1 if has_wallbox else 0) + backups
            total = devices * device_fixings
            desc = f"({devices} × {device_fixings:g})"
            self._add_default("device_screws", total, f"PV device screws {desc}", "Screws")
            self._add_default("device_dowels", total, f"PV device dowels {desc}", "Dowels")

        for name, fallback, unit in CONDUITS:
            qty = d.value(name)
            suffix = "" if unit == "pcs" else "m"
            self._add_default(name, qty, f"{fallback} ({qty:g}{suffix})", "Cable routing")

    def _decal(self) -> None:
        has_backup = self.config.subsystem(SubsystemKind.BACKUP_POWER).is_set()
        has_battery = self.config.subsystem(SubsystemKind.BATTERY).is_set()
        d = self.defaults
        if has_backup and d.ref("decal_backup"):
            self._add_default("decal_backup", 1, "Decal PV with backup power", "Decals", True)
        elif has_battery and d.ref("decal_battery"):
            self._add_default("decal_battery", 1, "Decal PV with storage", "Decals", True)
        elif d.ref("decal_plain"):
            self._add_default("decal_plain", 1, "Decal PV", "Decals", True)

    # -------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------
    def run(self) -> DerivationResult:
        if self.totals.total_modules == 0:
            return DerivationResult()

        self._modules()
        self._inverters()
        self._mounting()
        self._strings()
        self._configured_devices()
        self._smart_dongle()
        self._grounding_rod_consumables()
        self._backup_power()
        self._recommended()
        self._flat_rate()
        self._decal()

        bom = consolidate(self.items)
        logger.debug(f"Derived {len(self.items)} raw items -> {len(bom)} BOM positions")
        return DerivationResult(bom=bom, warnings=list(self.warnings))


def profiles_for_row(
    module_count: int,
    unit_dimension: float,
    profile_length: float,
    end_clamp_width: float,
    mid_clamp_width: float,
) -> Tuple[int, int]:
    """
    Profile bars and profile connectors for one tile-roof row.

    Two rails per row; each rail carries the modules plus the overhang and
    width of four end-clamp positions and one mid-clamp pair per gap.
    """
    if not module_count or not profile_length:
        return 0, 0
    end_positions = END_CLAMPS_PER_ROW
    mid_positions = max(0, (module_count - 1) * 2)
    length_total = (
        module_count * unit_dimension * 2
        + end_positions * CLAMP_OVERHANG_MM
        + end_positions * end_clamp_width
        + mid_positions * mid_clamp_width
    )
    profiles = _ceil(length_total / profile_length)
    connectors = max(0, profiles - 1) * 2
    return profiles, connectors


def derive_bom(
    configuration: Configuration,
    totals: LayoutTotals,
    materials: MaterialLookup,
    defaults: PVDefaults,
    chosen: Optional[RecommendationSet] = None,
) -> DerivationResult:
    """Derive consolidated BOM line items and warnings for one configuration."""
    return BOMEngine(configuration, totals, materials, defaults, chosen).run()
