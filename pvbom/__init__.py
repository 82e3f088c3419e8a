"""
PV bill-of-materials derivation and component recommendation.
"""
from pvbom.catalog import MaterialLookup, load_catalog
from pvbom.defaults import PVDefaults, default_configuration, load_defaults_record, project_defaults
from pvbom.layout import LayoutTotals, compute_layout_totals
from pvbom.models import Configuration, DerivationResult, LineItem, RecommendationSet
from pvbom.pipelines import derive_bom, merge_overrides, recommend, run_bom_pipeline

__all__ = [
    "MaterialLookup",
    "load_catalog",
    "PVDefaults",
    "default_configuration",
    "load_defaults_record",
    "project_defaults",
    "LayoutTotals",
    "compute_layout_totals",
    "Configuration",
    "DerivationResult",
    "LineItem",
    "RecommendationSet",
    "derive_bom",
    "merge_overrides",
    "recommend",
    "run_bom_pipeline",
]
