"""
Pytest configuration and fixtures for pvbom testing.

A small catalog, a defaults record and configuration builders shared by the
engine, pipeline and export tests.
"""

import pytest

from pvbom.catalog import MaterialLookup
from pvbom.defaults import project_defaults
from pvbom.knowledge.spec_keys import (
    CATEGORY,
    DEVICE_MAX_CURRENT_KEYS,
    MODULE_LENGTH_MM,
    MODULE_WIDTH_MM,
    PROFILE_LENGTH_MM,
    REPLACES_SMART_DONGLE,
    SMART_DONGLE_INCLUDED,
)
from pvbom.models import (
    Configuration,
    InverterConfig,
    InverterString,
    LayoutRow,
    MountingRefs,
    RoofType,
)


def _m(material_id, category, description, **specs):
    return {
        "id": material_id,
        "categoryId": CATEGORY[category] if category else None,
        "description": description,
        "specifications": specs,
    }


CATALOG = [
    _m("MOD-1", "modules", "PV module 430W", **{MODULE_WIDTH_MM: "1000", MODULE_LENGTH_MM: "1700"}),
    # rated current stored under the second key, dongle not built in
    _m("INV-1", "inverters", "Inverter 10kW", **{
        DEVICE_MAX_CURRENT_KEYS[1]: "16", SMART_DONGLE_INCLUDED: "Nein",
    }),
    _m("INV-2", "inverters", "Inverter 15kW", **{
        DEVICE_MAX_CURRENT_KEYS[0]: "25", SMART_DONGLE_INCLUDED: "Ja",
    }),
    _m("INV-BIG", "inverters", "Inverter 100kW", **{DEVICE_MAX_CURRENT_KEYS[2]: "150"}),
    _m("WB-1", "wallboxes", "Wallbox 22kW", **{DEVICE_MAX_CURRENT_KEYS[0]: "32"}),
    _m("BAT-1", "batteries", "Battery 10kWh"),
    _m("BKP-1", "backup_power", "Backup box", **{DEVICE_MAX_CURRENT_KEYS[0]: "40,0"}),
    _m("EMS-1", "energy_management", "Energy manager with dongle", **{REPLACES_SMART_DONGLE: "Ja"}),
    _m("EMS-2", "energy_management", "Energy manager basic", **{REPLACES_SMART_DONGLE: "Nein"}),
    _m("DONGLE-OTHER", "smart_dongle", "Smart Dongle-4G"),
    _m("DONGLE-1", "smart_dongle", "Huawei Smart Dongle-WLAN-FE"),
    _m("ROD-1", "grounding_rod", "Grounding rod 1.5m"),
    _m("MS-1", "pv_mounting", "Roof hook"),
    _m("FAST-1", None, "Hook screws"),
    _m("EC-1", "clamps", "End clamp", **{MODULE_WIDTH_MM: "30"}),
    _m("MC-1", "clamps", "Mid clamp", **{MODULE_WIDTH_MM: "25"}),
    _m("PVM", "connectors", "MC4 male"),
    _m("PVF", "connectors", "MC4 female"),
    _m("PROF-1", "profiles", "Profile 3m", **{PROFILE_LENGTH_MM: "3000"}),
    _m("PCON-1", "profiles", "Profile connector"),
    _m("CAP-1", "profiles", "End cap"),
    _m("DC-CABLE", "cables", "Solar cable 6mm²"),
    _m("SLEEVE", None, "Terminal sleeve 10mm²"),
    _m("RCD-1", "rcds", "RCD 40A type A"),
    _m("DECAL", None, "Decal PV"),
    _m("DECAL-BAT", None, "Decal PV storage"),
    _m("DECAL-BKP", None, "Decal PV backup"),
    _m("ROD-CONS", None, "Rod coupling set"),
    _m("RJ45", None, "RJ45 plug"),
] + [
    _m(f"CAB-{mm2}", "cables", f"NYM-J 5x{mm2}") for mm2 in ("1.5", "2.5", "4", "6", "10", "16")
] + [
    _m(f"B{amps}", "circuit_breakers", f"Breaker B{amps}") for amps in (16, 20, 25, 32, 50, 63)
]


DEFAULTS_RECORD = {
    "modulHakenVerhaeltnis": "0,7",
    "defaultCableLength": 10,
    "strombelastbarkeit15": "16",
    "strombelastbarkeit25": "20",
    "strombelastbarkeit4": "27",
    "strombelastbarkeit6": "35",
    "strombelastbarkeit10": "50",
    "strombelastbarkeit16": "63",
    "defaultKabel5x15": "CAB-1.5",
    "defaultKabel5x25": "CAB-2.5",
    "defaultKabel5x4": "CAB-4",
    "defaultKabel5x6": "CAB-6",
    "defaultKabel5x10": "CAB-10",
    "defaultKabel5x16": "CAB-16",
    "defaultSicherung16A": "B16",
    "defaultSicherung20A": "B20",
    "defaultSicherung25A": "B25",
    "defaultSicherung32A": "B32",
    "defaultSicherung50A": "B50",
    "defaultSicherung63A": "B63",
    "defaultFehlerstromschutzschalterWallbox": "RCD-1",
    "defaultPvKabel": "DC-CABLE",
    "PvKabel": "15",
    "defaultAderendhuelsen10mm2": "SLEEVE",
    "AderendhuelsenProGeraet": "4",
    "defaultRJ45Stecker": "RJ45",
    "RJ45Stecker": "2",
    "defaultErdungStaberder": "ROD-CONS",
    "defaultAufkleberPV": "DECAL",
    "defaultAufkleberPVMitSpeicher": "DECAL-BAT",
    "defaultAufkleberPVMitNotstrom": "DECAL-BKP",
}


def pytest_configure(config):
    """Configure pytest settings."""
    config.addinivalue_line(
        "markers", "integration: end-to-end pipeline and file export tests"
    )


@pytest.fixture
def catalog():
    return [dict(m) for m in CATALOG]


@pytest.fixture
def lookup(catalog):
    return MaterialLookup(catalog)


@pytest.fixture
def defaults_record():
    return dict(DEFAULTS_RECORD)


@pytest.fixture
def defaults(defaults_record):
    return project_defaults(defaults_record)


@pytest.fixture
def make_config():
    """Build a configuration: 2 rows of 5 modules on a flat roof, one INV-2 by default."""

    def _make(
        rows_a=(5, 5),
        rows_b=(),
        roof_type=RoofType.FLAT,
        inverters=None,
        mounting=None,
        subsystems=None,
    ):
        if inverters is None:
            inverters = [InverterConfig(
                type_ref="INV-2",
                quantity=1,
                strings=[InverterString("S1", 5), InverterString("S2", 5)],
            )]
        if mounting is None:
            mounting = MountingRefs(
                system="MS-1",
                fastening="FAST-1",
                end_clamp="EC-1",
                mid_clamp="MC-1",
                connector_male="PVM",
                connector_female="PVF",
            )
        return Configuration(
            module_ref="MOD-1",
            roof_type=roof_type,
            orientation_a=[LayoutRow(n) for n in rows_a],
            orientation_b=[LayoutRow(n) for n in rows_b],
            inverters=inverters,
            mounting=mounting,
            subsystems=subsystems or {},
        )

    return _make
