"""
PV BOM Pipelines Package.
"""
from pvbom.pipelines.recommendations import (
    recommend,
    merge_overrides,
    device_max_current,
)

from pvbom.pipelines.bom_engine import (
    BOMEngine,
    derive_bom,
    consolidate,
    profiles_for_row,
)

from pvbom.pipelines.bom_summary import (
    split_by_status,
    add_manual_item,
    update_quantity,
    aggregate_bookings,
    bom_to_frame,
)

from pvbom.pipelines.bom_generator import generate_bom_file

from pvbom.pipelines.pipeline import (
    run_bom_pipeline,
    load_configuration,
    load_overrides,
    PipelineResult,
)

__all__ = [
    # Recommendations
    "recommend",
    "merge_overrides",
    "device_max_current",
    # Derivation
    "BOMEngine",
    "derive_bom",
    "consolidate",
    "profiles_for_row",
    # Summary
    "split_by_status",
    "add_manual_item",
    "update_quantity",
    "aggregate_bookings",
    "bom_to_frame",
    # Export
    "generate_bom_file",
    # End-to-end
    "run_bom_pipeline",
    "load_configuration",
    "load_overrides",
    "PipelineResult",
]
