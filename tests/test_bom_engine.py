"""Tests for the BOM derivation engine."""

import pytest

from pvbom.catalog import MaterialLookup
from pvbom.knowledge.spec_keys import MODULE_WIDTH_MM, PROFILE_LENGTH_MM
from pvbom.layout import compute_layout_totals
from pvbom.models import (
    InverterConfig,
    InverterString,
    LineItem,
    MountingRefs,
    Recommendation,
    RecommendationSet,
    RoofType,
    SubsystemKind,
    SubsystemPair,
)
from pvbom.pipelines.bom_engine import consolidate, derive_bom, profiles_for_row
from pvbom.pipelines.recommendations import recommend


def _derive(config, lookup, defaults, chosen=None):
    totals = compute_layout_totals(config.orientation_a, config.orientation_b)
    if chosen is None:
        chosen = recommend(config, lookup, defaults)
    return derive_bom(config, totals, lookup, defaults, chosen)


def _qty(result, material_id):
    matches = [i for i in result.bom if i.material_id == material_id]
    assert len(matches) <= 1
    return matches[0].quantity if matches else 0


class TestBasicDerivation:

    def test_reference_installation(self, make_config, lookup, defaults):
        result = _derive(make_config(), lookup, defaults)

        assert result.warnings == []
        assert _qty(result, "MOD-1") == 10
        assert _qty(result, "INV-2") == 1
        assert _qty(result, "MS-1") == 7
        assert _qty(result, "FAST-1") == 14
        assert _qty(result, "EC-1") == 8
        assert _qty(result, "MC-1") == 16
        assert _qty(result, "PVM") == 2
        assert _qty(result, "PVF") == 2
        assert _qty(result, "DC-CABLE") == 60
        # 25 A inverter -> 4 mm² band
        assert _qty(result, "B25") == 1
        assert _qty(result, "CAB-4") == 10
        assert _qty(result, "SLEEVE") == 4
        assert _qty(result, "DECAL") == 1

    def test_configured_flags(self, make_config, lookup, defaults):
        result = _derive(make_config(), lookup, defaults)
        flags = {i.material_id: i.is_configured for i in result.bom}
        assert flags["MOD-1"] is True
        assert flags["B25"] is True
        assert flags["DC-CABLE"] is False
        assert flags["SLEEVE"] is False

    def test_description_from_catalog(self, make_config, lookup, defaults):
        result = _derive(make_config(), lookup, defaults)
        module = next(i for i in result.bom if i.material_id == "MOD-1")
        assert module.description == "PV module 430W"

    def test_idempotent(self, make_config, lookup, defaults):
        config = make_config(subsystems={
            SubsystemKind.WALLBOX: SubsystemPair("WB-1", 1),
            SubsystemKind.BATTERY: SubsystemPair("BAT-1", 2),
        })
        first = _derive(config, lookup, defaults)
        second = _derive(config, lookup, defaults)
        assert first.to_dict() == second.to_dict()

    def test_inputs_not_mutated(self, make_config, lookup, defaults):
        config = make_config()
        before = repr(config)
        _derive(config, lookup, defaults)
        assert repr(config) == before

    def test_no_duplicate_material_ids(self, make_config, lookup, defaults):
        config = make_config(subsystems={
            SubsystemKind.WALLBOX: SubsystemPair("WB-1", 2),
            SubsystemKind.BACKUP_POWER: SubsystemPair("BKP-1", 1),
        })
        result = _derive(config, lookup, defaults)
        ids = [i.material_id for i in result.bom]
        assert len(ids) == len(set(ids))


class TestEdgeCases:

    def test_zero_modules_gives_empty_result(self, make_config, lookup, defaults):
        config = make_config(rows_a=(0, 0), subsystems={
            SubsystemKind.WALLBOX: SubsystemPair("WB-1", 1),
        })
        result = _derive(config, lookup, defaults)
        assert result.bom == []
        assert result.warnings == []

    def test_empty_configuration(self, make_config, lookup, defaults):
        config = make_config(rows_a=(), inverters=[])
        result = _derive(config, lookup, defaults)
        assert result.bom == []
        assert result.warnings == []

    def test_string_mismatch_warning(self, make_config, lookup, defaults):
        config = make_config(inverters=[InverterConfig(
            type_ref="INV-2",
            strings=[InverterString("S1", 5), InverterString("S2", 4)],
        )])
        result = _derive(config, lookup, defaults)
        assert len(result.warnings) == 1
        assert "9" in result.warnings[0] and "10" in result.warnings[0]
        assert _qty(result, "MOD-1") == 10

    def test_unknown_material_does_not_raise(self, make_config, lookup, defaults):
        config = make_config(inverters=[InverterConfig(type_ref="NOPE", quantity=1)])
        result = _derive(config, lookup, defaults)
        # still listed, with the rule's fallback description
        inverter = next(i for i in result.bom if i.material_id == "NOPE")
        assert inverter.description == "Inverter 1"

    def test_no_roof_type_skips_mounting(self, make_config, lookup, defaults):
        result = _derive(make_config(roof_type=None), lookup, defaults)
        assert _qty(result, "MS-1") == 0
        assert _qty(result, "EC-1") == 0
        assert _qty(result, "MOD-1") == 10

    def test_missing_defaults(self, make_config, lookup):
        from pvbom.defaults import project_defaults

        result = _derive(make_config(), lookup, project_defaults(None))
        assert _qty(result, "MOD-1") == 10
        assert _qty(result, "DC-CABLE") == 0
        assert all(i.quantity > 0 for i in result.bom)


class TestClampFormulas:

    @pytest.mark.parametrize("rows", [(5, 5), (1, 1, 1), (7,), (3, 0, 2)])
    def test_clamp_quantities(self, rows, make_config, lookup, defaults):
        config = make_config(rows_a=rows)
        result = _derive(config, lookup, defaults)
        total_modules = sum(rows)
        total_rows = len(rows)
        assert _qty(result, "EC-1") == total_rows * 4
        assert _qty(result, "MC-1") == max(0, (total_modules - total_rows) * 2)

    def test_one_module_per_row_has_no_mid_clamps(self, make_config, lookup, defaults):
        result = _derive(make_config(rows_a=(1, 1, 1, 1)), lookup, defaults)
        assert _qty(result, "EC-1") == 16
        assert all(i.material_id != "MC-1" for i in result.bom)


class TestTileRoof:

    def test_profiles_for_row_reference_case(self):
        assert profiles_for_row(4, 1000, 3000, 30, 25) == (3, 4)

    def test_profiles_for_row_degenerate(self):
        assert profiles_for_row(0, 1000, 3000, 30, 25) == (0, 0)
        assert profiles_for_row(4, 1000, 0, 30, 25) == (0, 0)

    def test_tile_roof_profiles(self, make_config, lookup, defaults):
        mounting = MountingRefs(
            system="MS-1", end_clamp="EC-1", mid_clamp="MC-1",
            profile="PROF-1", profile_connector="PCON-1", end_cap="CAP-1",
        )
        config = make_config(
            rows_a=(), rows_b=(4,), roof_type=RoofType.TILE, mounting=mounting,
            inverters=[InverterConfig(type_ref="INV-2", strings=[InverterString("S1", 4)])],
        )
        result = _derive(config, lookup, defaults)
        assert _qty(result, "PROF-1") == 3
        assert _qty(result, "PCON-1") == 4
        assert _qty(result, "CAP-1") == _qty(result, "EC-1") == 4

    def test_orientation_a_uses_module_length(self, make_config, lookup, defaults):
        mounting = MountingRefs(end_clamp="EC-1", mid_clamp="MC-1", profile="PROF-1")
        config = make_config(rows_a=(4,), roof_type=RoofType.TILE, mounting=mounting)
        result = _derive(config, lookup, defaults)
        # 4*1700*2 + 200 + 120 + 150 = 14070 -> 5 profiles
        assert _qty(result, "PROF-1") == 5

    def test_dimensions_with_unit_suffix(self, make_config, defaults):
        lookup = MaterialLookup([
            {"id": "MOD-1", "specifications": {MODULE_WIDTH_MM: "1000 mm"}},
            {"id": "EC-1", "specifications": {MODULE_WIDTH_MM: "30 mm"}},
            {"id": "MC-1", "specifications": {MODULE_WIDTH_MM: "25 mm"}},
            {"id": "PROF-1", "specifications": {PROFILE_LENGTH_MM: "3000 mm"}},
        ])
        mounting = MountingRefs(
            end_clamp="EC-1", mid_clamp="MC-1", profile="PROF-1", profile_connector="PCON-1",
        )
        config = make_config(rows_a=(), rows_b=(4,), roof_type=RoofType.TILE, mounting=mounting)
        result = _derive(config, lookup, defaults)
        assert _qty(result, "PROF-1") == 3
        assert _qty(result, "PCON-1") == 4

    def test_profiles_only_on_tile_roofs(self, make_config, lookup, defaults):
        mounting = MountingRefs(end_clamp="EC-1", mid_clamp="MC-1", profile="PROF-1")
        config = make_config(rows_b=(4,), roof_type=RoofType.FLAT, mounting=mounting)
        result = _derive(config, lookup, defaults)
        assert _qty(result, "PROF-1") == 0


class TestSmartDongle:

    def test_auto_added_per_inverter(self, make_config, lookup, defaults):
        config = make_config(inverters=[InverterConfig(
            type_ref="INV-1", quantity=2,
            strings=[InverterString("S1", 5), InverterString("S2", 5)],
        )])
        result = _derive(config, lookup, defaults)
        dongles = [i for i in result.bom if i.material_id.startswith("DONGLE")]
        assert len(dongles) == 1
        assert dongles[0].material_id == "DONGLE-1"
        assert dongles[0].quantity == 2

    def test_counted_across_inverter_entries(self, make_config, lookup, defaults):
        config = make_config(inverters=[
            InverterConfig(type_ref="INV-1", strings=[InverterString("S1", 5)]),
            InverterConfig(type_ref="INV-2", strings=[InverterString("S2", 5)]),
            InverterConfig(type_ref="INV-1"),
        ])
        result = _derive(config, lookup, defaults)
        assert _qty(result, "DONGLE-1") == 2

    def test_not_added_when_built_in(self, make_config, lookup, defaults):
        result = _derive(make_config(), lookup, defaults)
        assert _qty(result, "DONGLE-1") == 0

    def test_energy_management_replaces_dongle(self, make_config, lookup, defaults):
        config = make_config(
            inverters=[InverterConfig(type_ref="INV-1", quantity=2)],
            subsystems={SubsystemKind.ENERGY_MANAGEMENT: SubsystemPair("EMS-1", 1)},
        )
        result = _derive(config, lookup, defaults)
        assert _qty(result, "DONGLE-1") == 0
        assert _qty(result, "EMS-1") == 1

    def test_basic_energy_management_keeps_dongle(self, make_config, lookup, defaults):
        config = make_config(
            inverters=[InverterConfig(type_ref="INV-1", quantity=2)],
            subsystems={SubsystemKind.ENERGY_MANAGEMENT: SubsystemPair("EMS-2", 1)},
        )
        result = _derive(config, lookup, defaults)
        assert _qty(result, "DONGLE-1") == 2

    def test_explicit_dongle_suppresses_auto_add(self, make_config, lookup, defaults):
        config = make_config(
            inverters=[InverterConfig(type_ref="INV-1", quantity=2)],
            subsystems={SubsystemKind.SMART_DONGLE: SubsystemPair("DONGLE-OTHER", 1)},
        )
        result = _derive(config, lookup, defaults)
        assert _qty(result, "DONGLE-OTHER") == 1
        assert _qty(result, "DONGLE-1") == 0


class TestSubsystems:

    def test_wallbox_recommendations(self, make_config, lookup, defaults):
        config = make_config(subsystems={SubsystemKind.WALLBOX: SubsystemPair("WB-1", 2)})
        result = _derive(config, lookup, defaults)
        assert _qty(result, "WB-1") == 2
        # 32 A wallbox -> 6 mm², B32
        assert _qty(result, "B32") == 2
        assert _qty(result, "CAB-6") == 20
        assert _qty(result, "RCD-1") == 2
        assert _qty(result, "RJ45") == 4

    def test_backup_power(self, make_config, lookup, defaults):
        config = make_config(subsystems={SubsystemKind.BACKUP_POWER: SubsystemPair("BKP-1", 1)})
        result = _derive(config, lookup, defaults)
        assert _qty(result, "BKP-1") == 1
        assert _qty(result, "B50") == 1
        assert _qty(result, "CAB-10") == 10
        assert _qty(result, "DECAL-BKP") == 1
        assert _qty(result, "DECAL") == 0

    def test_unpaired_subsystem_contributes_nothing(self, make_config, lookup, defaults):
        config = make_config(subsystems={SubsystemKind.WALLBOX: SubsystemPair("WB-1", 0)})
        result = _derive(config, lookup, defaults)
        assert _qty(result, "WB-1") == 0

    def test_grounding_rod_consumable(self, make_config, lookup, defaults):
        config = make_config(subsystems={SubsystemKind.GROUNDING_ROD: SubsystemPair("ROD-1", 3)})
        result = _derive(config, lookup, defaults)
        assert _qty(result, "ROD-1") == 3
        # per-rod value falls back to 1
        assert _qty(result, "ROD-CONS") == 3

    @pytest.mark.parametrize("subsystems, decal", [
        ({}, "DECAL"),
        ({SubsystemKind.BATTERY: SubsystemPair("BAT-1", 1)}, "DECAL-BAT"),
        ({
            SubsystemKind.BATTERY: SubsystemPair("BAT-1", 1),
            SubsystemKind.BACKUP_POWER: SubsystemPair("BKP-1", 1),
        }, "DECAL-BKP"),
    ])
    def test_exactly_one_decal(self, subsystems, decal, make_config, lookup, defaults):
        result = _derive(make_config(subsystems=subsystems), lookup, defaults)
        decals = [i.material_id for i in result.bom if i.material_id.startswith("DECAL")]
        assert decals == [decal]


class TestConsolidation:

    def test_sums_and_keeps_first_seen_order(self):
        items = [
            LineItem("A", 2, "short"),
            LineItem("B", 1, "b"),
            LineItem("A", 3, "a longer text", is_configured=True),
        ]
        out = consolidate(items)
        assert [i.material_id for i in out] == ["A", "B"]
        assert out[0].quantity == 5
        assert out[0].description == "a longer text"
        assert out[0].is_configured is True

    def test_does_not_mutate_input(self):
        items = [LineItem("A", 2, "x"), LineItem("A", 3, "y")]
        consolidate(items)
        assert items[0].quantity == 2

    def test_shared_default_material_is_merged(self, make_config, lookup, defaults_record):
        from pvbom.defaults import project_defaults

        defaults_record.update({
            "defaultPotentialausgleich": "SHARED",
            "PotentialausgleichUK": "3",
            "defaultKabelmanagement": "SHARED",
            "KabelmanagementUK": "2",
        })
        result = _derive(make_config(), lookup, project_defaults(defaults_record))
        assert _qty(result, "SHARED") == 5

    def test_overridden_cable_merges_with_dc_cable(self, make_config, lookup, defaults):
        chosen = RecommendationSet(inverter=Recommendation(cable="DC-CABLE"))
        result = _derive(make_config(), lookup, defaults, chosen=chosen)
        # 60 m DC cable + 10 m feeder for one inverter
        assert _qty(result, "DC-CABLE") == 70
