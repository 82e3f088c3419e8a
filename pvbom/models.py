from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pvbom.knowledge.spec_keys import ROOF_TYPE_ALIASES
from pvbom.parsers.numbers import parse_count, parse_number


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key wins; configuration files use camelCase or snake_case."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _ref(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class RoofType(str, Enum):
    TILE = "tile"
    TRAPEZOIDAL = "trapezoidal"
    FLAT = "flat"

    @classmethod
    def parse(cls, value: Any) -> Optional["RoofType"]:
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        alias = ROOF_TYPE_ALIASES.get(str(value).strip().lower())
        return cls(alias) if alias else None


class SubsystemKind(str, Enum):
    """Optional subsystems that are configured as (material, quantity) pairs."""
    OPTIMIZER = "optimizer"
    BATTERY = "battery"
    WALLBOX = "wallbox"
    ENERGY_MANAGEMENT = "energy_management"
    BACKUP_POWER = "backup_power"
    SURGE_PROTECTION = "surge_protection"
    GROUNDING_ROD = "grounding_rod"
    COMBINED_ARRESTER = "combined_arrester"
    METER_CABINET = "meter_cabinet"
    GENERATOR_JUNCTION_BOX = "generator_junction_box"
    AUXILIARY_POWER_SUPPLY = "auxiliary_power_supply"
    SMART_DONGLE = "smart_dongle"


# camelCase names used by configuration files
SUBSYSTEM_ALIASES = {
    "optimizer": SubsystemKind.OPTIMIZER,
    "battery": SubsystemKind.BATTERY,
    "wallbox": SubsystemKind.WALLBOX,
    "energyManagement": SubsystemKind.ENERGY_MANAGEMENT,
    "backupPower": SubsystemKind.BACKUP_POWER,
    "surgeProtection": SubsystemKind.SURGE_PROTECTION,
    "groundingRod": SubsystemKind.GROUNDING_ROD,
    "combinedArrester": SubsystemKind.COMBINED_ARRESTER,
    "meterCabinet": SubsystemKind.METER_CABINET,
    "generatorJunctionBox": SubsystemKind.GENERATOR_JUNCTION_BOX,
    "auxiliaryPowerSupply": SubsystemKind.AUXILIARY_POWER_SUPPLY,
    "smartDongle": SubsystemKind.SMART_DONGLE,
}


@dataclass(frozen=True)
class MaterialEntry:
    """One entry of the material catalog snapshot."""
    id: str
    category_id: Optional[str] = None
    description: str = ""
    unit: str = ""
    specifications: Dict[str, Any] = field(default_factory=dict)
    stock_quantity: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MaterialEntry":
        specs = _pick(data, "specifications", "specs", default={}) or {}
        return cls(
            id=str(_pick(data, "id", "materialID", "material_id", default="")),
            category_id=_ref(_pick(data, "categoryId", "category_id")),
            description=str(_pick(data, "description", "name", default="") or ""),
            unit=str(_pick(data, "unit", default="") or ""),
            specifications=dict(specs),
            stock_quantity=parse_number(_pick(data, "stockQuantity", "stock_quantity")),
        )


@dataclass(frozen=True)
class LayoutRow:
    module_count: int = 0


@dataclass(frozen=True)
class InverterString:
    name: str = ""
    module_count: int = 0


@dataclass(frozen=True)
class InverterConfig:
    type_ref: Optional[str] = None
    quantity: int = 1
    strings: List[InverterString] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InverterConfig":
        strings = [
            InverterString(
                name=str(_pick(s, "name", default="")),
                module_count=parse_count(_pick(s, "moduleCount", "module_count", "modules")),
            )
            for s in (_pick(data, "strings", default=[]) or [])
            if isinstance(s, dict)
        ]
        return cls(
            type_ref=_ref(_pick(data, "typeRef", "type_ref", "type")),
            quantity=parse_count(_pick(data, "quantity", default=1)),
            strings=strings,
        )


@dataclass(frozen=True)
class MountingRefs:
    system: Optional[str] = None
    fastening: Optional[str] = None
    end_clamp: Optional[str] = None
    mid_clamp: Optional[str] = None
    connector_male: Optional[str] = None
    connector_female: Optional[str] = None
    # tile roofs only
    profile: Optional[str] = None
    profile_connector: Optional[str] = None
    end_cap: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MountingRefs":
        return cls(
            system=_ref(_pick(data, "system")),
            fastening=_ref(_pick(data, "fastening")),
            end_clamp=_ref(_pick(data, "endClamp", "end_clamp")),
            mid_clamp=_ref(_pick(data, "midClamp", "mid_clamp")),
            connector_male=_ref(_pick(data, "connectorMale", "connector_male")),
            connector_female=_ref(_pick(data, "connectorFemale", "connector_female")),
            profile=_ref(_pick(data, "profile")),
            profile_connector=_ref(_pick(data, "profileConnector", "profile_connector")),
            end_cap=_ref(_pick(data, "endCap", "end_cap")),
        )


@dataclass(frozen=True)
class SubsystemPair:
    material_ref: Optional[str] = None
    quantity: int = 0

    def is_set(self) -> bool:
        return bool(self.material_ref) and self.quantity > 0

    def is_paired(self) -> bool:
        """Either both reference and quantity are set, or neither is."""
        return bool(self.material_ref) == (self.quantity > 0)


@dataclass(frozen=True)
class Configuration:
    """Planned installation as authored by the configurator wizard."""
    module_ref: Optional[str] = None
    roof_type: Optional[RoofType] = None
    orientation_a: List[LayoutRow] = field(default_factory=list)
    orientation_b: List[LayoutRow] = field(default_factory=list)
    inverters: List[InverterConfig] = field(default_factory=list)
    mounting: MountingRefs = field(default_factory=MountingRefs)
    subsystems: Dict[SubsystemKind, SubsystemPair] = field(default_factory=dict)

    def subsystem(self, kind: SubsystemKind) -> SubsystemPair:
        return self.subsystems.get(kind) or SubsystemPair()

    def ref(self, kind: SubsystemKind) -> Optional[str]:
        return self.subsystem(kind).material_ref

    def qty(self, kind: SubsystemKind) -> int:
        return self.subsystem(kind).quantity

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Configuration":
        """Build a configuration from wizard JSON; any subset of fields may be missing."""
        data = data or {}

        def rows(key_a: str, key_b: str) -> List[LayoutRow]:
            out = []
            for r in _pick(data, key_a, key_b, default=[]) or []:
                raw = _pick(r, "moduleCount", "module_count", "modules") if isinstance(r, dict) else r
                out.append(LayoutRow(module_count=parse_count(raw)))
            return out

        subsystems: Dict[SubsystemKind, SubsystemPair] = {}
        for name, raw in (_pick(data, "subsystems", default={}) or {}).items():
            kind = SUBSYSTEM_ALIASES.get(name)
            if kind is None:
                try:
                    kind = SubsystemKind(name)
                except ValueError:
                    continue
            raw = raw or {}
            subsystems[kind] = SubsystemPair(
                material_ref=_ref(_pick(raw, "materialRef", "material_ref")),
                quantity=parse_count(_pick(raw, "quantity", default=0)),
            )

        return cls(
            module_ref=_ref(_pick(data, "module", "moduleRef", "module_ref")),
            roof_type=RoofType.parse(_pick(data, "roofType", "roof_type")),
            orientation_a=rows("orientationA", "orientation_a"),
            orientation_b=rows("orientationB", "orientation_b"),
            inverters=[
                InverterConfig.from_dict(i)
                for i in (_pick(data, "inverters", default=[]) or [])
                if isinstance(i, dict)
            ],
            mounting=MountingRefs.from_dict(_pick(data, "mounting", default={}) or {}),
            subsystems=subsystems,
        )


@dataclass
class LineItem:
    """One BOM position."""
    material_id: str
    quantity: float
    description: str = ""
    category: str = ""
    is_configured: bool = False
    is_manual: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "materialID": self.material_id,
            "quantity": self.quantity,
            "description": self.description,
            "category": self.category,
            "isConfigured": self.is_configured,
            "isManual": self.is_manual,
        }


@dataclass(frozen=True)
class Recommendation:
    """Protection components proposed for one device class."""
    breaker: Optional[str] = None
    cable: Optional[str] = None
    rcd: Optional[str] = None


@dataclass(frozen=True)
class RecommendationSet:
    inverter: Recommendation = field(default_factory=Recommendation)
    wallbox: Recommendation = field(default_factory=Recommendation)
    backup: Recommendation = field(default_factory=Recommendation)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecommendationSet":
        """Parse an override file: {"wallbox": {"cable": "MAT-1"}, ...}."""
        data = data or {}

        def one(key: str) -> Recommendation:
            raw = data.get(key) or {}
            return Recommendation(
                breaker=_ref(raw.get("breaker")),
                cable=_ref(raw.get("cable")),
                rcd=_ref(raw.get("rcd")),
            )

        return cls(inverter=one("inverter"), wallbox=one("wallbox"), backup=one("backup"))


# Same shape as RecommendationSet; owned by the caller across derivations.
OverrideSet = RecommendationSet


@dataclass
class DerivationResult:
    bom: List[LineItem] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bom": [item.to_dict() for item in self.bom],
            "warnings": list(self.warnings),
        }


@dataclass
class Issue:
    code: str
    severity: str  # "CRITICAL" | "MAJOR" | "MINOR"
    title: str
    description: str
    evidence: Optional[Dict[str, Any]] = None
