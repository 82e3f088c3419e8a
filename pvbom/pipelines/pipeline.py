"""
End-to-end BOM pipeline: configuration + catalog + defaults -> BOM.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pvbom.catalog import MaterialLookup
from pvbom.checks.configuration import check_string_totals, check_subsystem_pairs
from pvbom.defaults import project_defaults
from pvbom.layout import LayoutTotals, compute_layout_totals
from pvbom.models import (
    Configuration,
    DerivationResult,
    Issue,
    MaterialEntry,
    OverrideSet,
    RecommendationSet,
)
from pvbom.pipelines.bom_engine import derive_bom
from pvbom.pipelines.recommendations import merge_overrides, recommend

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything one derivation run produces."""
    result: DerivationResult = field(default_factory=DerivationResult)
    totals: LayoutTotals = field(default_factory=LayoutTotals)
    recommendations: RecommendationSet = field(default_factory=RecommendationSet)
    chosen: RecommendationSet = field(default_factory=RecommendationSet)
    issues: List[Issue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        def rec(r: RecommendationSet) -> Dict[str, Any]:
            return {
                name: {"breaker": getattr(r, name).breaker,
                       "cable": getattr(r, name).cable,
                       "rcd": getattr(r, name).rcd}
                for name in ("inverter", "wallbox", "backup")
            }

        out = self.result.to_dict()
        out["totals"] = {
            "totalModules": self.totals.total_modules,
            "totalRows": self.totals.total_rows,
        }
        out["recommendations"] = rec(self.recommendations)
        out["chosen"] = rec(self.chosen)
        out["issues"] = [
            {"code": i.code, "severity": i.severity, "title": i.title, "description": i.description}
            for i in self.issues
        ]
        return out


def load_json(path: str | Path) -> Any:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found at {p}")
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{p} is not valid JSON: {e}") from e


def load_configuration(path: str | Path) -> Configuration:
    data = load_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a JSON object")
    return Configuration.from_dict(data)


def load_overrides(path: Optional[str | Path]) -> Optional[OverrideSet]:
    if not path:
        return None
    data = load_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"Overrides file {path} must contain a JSON object")
    return OverrideSet.from_dict(data)


def run_bom_pipeline(
    configuration: Configuration,
    materials: Iterable[MaterialEntry | Dict[str, Any]] | MaterialLookup,
    defaults_record: Optional[Dict[str, Any]] = None,
    overrides: Optional[OverrideSet] = None,
) -> PipelineResult:
    """Run layout totals, recommendations, derivation and configuration checks."""
    lookup = materials if isinstance(materials, MaterialLookup) else MaterialLookup(materials)
    defaults = project_defaults(defaults_record)

    totals = compute_layout_totals(configuration.orientation_a, configuration.orientation_b)
    logger.info(f"Layout: {totals.total_modules} modules in {totals.total_rows} rows")

    recommendations = recommend(configuration, lookup, defaults)
    chosen = merge_overrides(recommendations, overrides)

    result = derive_bom(configuration, totals, lookup, defaults, chosen)
    issues = check_subsystem_pairs(configuration) + check_string_totals(configuration, totals)

    logger.info(
        f"BOM derived: {len(result.bom)} positions, {len(result.warnings)} warnings, "
        f"{len(issues)} configuration issues"
    )
    for w in result.warnings:
        logger.warning(w)

    return PipelineResult(
        result=result,
        totals=totals,
        recommendations=recommendations,
        chosen=chosen,
        issues=issues,
    )
