import argparse
import json
import logging
import sys
from typing import List, Optional

from pvbom.catalog import load_catalog
from pvbom.config import get_settings
from pvbom.defaults import load_defaults_record
from pvbom.pipelines.bom_generator import generate_bom_file
from pvbom.pipelines.pipeline import load_configuration, load_overrides, run_bom_pipeline

logger = logging.getLogger("pvbom")


# -------------------------------------------------------------------
# Arguments
# -------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="pvbom",
        description="Derive the bill of materials for a PV installation configuration.",
    )
    parser.add_argument("--config", required=True, help="Configuration JSON file")
    parser.add_argument(
        "--catalog",
        default=settings.catalog_path,
        help="Material catalog (.xlsx, .csv or .json); defaults to PVBOM_CATALOG_PATH",
    )
    parser.add_argument(
        "--defaults",
        default=settings.defaults_path,
        help="Defaults record JSON; defaults to PVBOM_DEFAULTS_PATH",
    )
    parser.add_argument("--overrides", help="Recommendation overrides JSON")
    parser.add_argument("--output", help="Write the BOM as an Excel file")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--log-level", default=settings.log_level)
    return parser


def _print_table(items) -> None:
    if not items:
        print("BOM is empty.")
        return
    width = max(len(i.material_id) for i in items)
    for item in items:
        flag = "*" if item.is_configured else " "
        print(f"{flag} {item.material_id:<{width}}  {item.quantity:>8g}  {item.description}")


# -------------------------------------------------------------------
# Entry point
# -------------------------------------------------------------------
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.catalog:
        logger.error("No catalog given (use --catalog or set PVBOM_CATALOG_PATH)")
        return 2

    try:
        configuration = load_configuration(args.config)
        materials = load_catalog(args.catalog)
        defaults_record = load_defaults_record(args.defaults)
        overrides = load_overrides(args.overrides)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    run = run_bom_pipeline(configuration, materials, defaults_record, overrides)

    if args.output:
        generate_bom_file(run.result.bom, args.output, warnings=run.result.warnings)
        logger.info(f"BOM written to {args.output}")

    if args.json:
        print(json.dumps(run.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_table(run.result.bom)
        for issue in run.issues:
            print(f"[{issue.severity}] {issue.title}: {issue.description}")
        for w in run.result.warnings:
            print(f"WARNING: {w}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
