"""Tests for the defaults projection and loader."""

import json

import pytest

from pvbom.defaults import (
    DEFAULT_CABLE_LENGTH_M,
    default_configuration,
    load_defaults_record,
    project_defaults,
)
from pvbom.models import RoofType


class TestProjectDefaults:

    def test_none_gives_empty_defaults(self):
        d = project_defaults(None)
        assert d.hook_ratio == 0.0
        assert d.default_cable_length == DEFAULT_CABLE_LENGTH_M
        assert d.wallbox_rcd_ref is None
        assert d.ref("dc_cable") is None
        assert d.value("dc_cable") == 0.0
        assert d.value("grounding_rod_consumable") == 1.0

    def test_store_fields_are_renamed(self, defaults):
        assert defaults.hook_ratio == pytest.approx(0.7)
        assert defaults.ref("dc_cable") == "DC-CABLE"
        assert defaults.value("dc_cable") == 15.0
        assert defaults.ref("rj45_plug") == "RJ45"
        assert defaults.cable_refs[2.5] == "CAB-2.5"
        assert defaults.breaker_refs[63] == "B63"
        assert defaults.ampacity[4.0] == 27.0

    def test_bonding_rules_share_one_length(self):
        d = project_defaults({
            "defaultPotentialausgleich": "PA-1",
            "defaultPotentialausgleichUKUK": "PA-2",
            "PotentialausgleichUK": "12,5",
        })
        assert d.value("bonding_substructure") == 12.5
        assert d.value("bonding_uk_uk") == 12.5

    def test_garbage_numbers_become_zero(self):
        d = project_defaults({"modulHakenVerhaeltnis": "abc", "PvKabel": None, "RJ45Stecker": "NaN"})
        assert d.hook_ratio == 0.0
        assert d.value("dc_cable") == 0.0
        assert d.value("rj45_plug") == 0.0

    def test_blank_refs_are_none(self):
        d = project_defaults({"defaultPvKabel": "  ", "defaultFehlerstromschutzschalterWallbox": ""})
        assert d.ref("dc_cable") is None
        assert d.wallbox_rcd_ref is None

    def test_explicit_cable_length(self):
        assert project_defaults({"defaultCableLength": "15"}).default_cable_length == 15.0

    def test_defaults_are_frozen(self, defaults):
        with pytest.raises(AttributeError):
            defaults.hook_ratio = 2


class TestDefaultConfiguration:

    def test_projects_default_components(self):
        config = default_configuration({
            "defaultModule": "MOD-1",
            "defaultRoofType": "Ziegel",
            "defaultInverter": "INV-1",
            "defaultModulEndklemmen": "EC-1",
            "defaultProfile": "PROF-1",
        })
        assert config.module_ref == "MOD-1"
        assert config.roof_type == RoofType.TILE
        assert config.inverters[0].type_ref == "INV-1"
        assert config.inverters[0].quantity == 1
        assert config.mounting.end_clamp == "EC-1"
        assert config.mounting.profile == "PROF-1"

    def test_empty_record(self):
        config = default_configuration(None)
        assert config.module_ref is None
        assert config.roof_type is None


class TestLoadDefaultsRecord:

    def test_missing_file_gives_empty_record(self, tmp_path):
        assert load_defaults_record(tmp_path / "missing.json") == {}
        assert load_defaults_record(None) == {}

    def test_list_document_uses_first_entry(self, tmp_path):
        p = tmp_path / "defaults.json"
        p.write_text(json.dumps([{"PvKabel": 15}, {"PvKabel": 20}]), encoding="utf-8")
        assert load_defaults_record(p) == {"PvKabel": 15}

    def test_non_object_is_rejected(self, tmp_path):
        p = tmp_path / "defaults.json"
        p.write_text("42", encoding="utf-8")
        with pytest.raises(ValueError):
            load_defaults_record(p)
