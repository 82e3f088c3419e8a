from typing import List

from pvbom.layout import LayoutTotals
from pvbom.models import Configuration, Issue, SubsystemKind


def check_subsystem_pairs(configuration: Configuration) -> List[Issue]:
    issues: List[Issue] = []

    for kind in SubsystemKind:
        pair = configuration.subsystem(kind)
        if pair.is_paired():
            continue
        missing = "quantity" if pair.material_ref else "material"
        issues.append(Issue(
            code="PAIR_INCOMPLETE",
            severity="MAJOR",
            title=f"Incomplete {kind.value.replace('_', ' ')} selection",
            description=(
                f"{kind.value} has a {'material' if pair.material_ref else 'quantity'} "
                f"but no {missing}. The subsystem is left out of the BOM."
            ),
            evidence={
                "subsystem": kind.value,
                "materialRef": pair.material_ref,
                "quantity": pair.quantity,
            },
        ))

    return issues


def check_string_totals(configuration: Configuration, totals: LayoutTotals) -> List[Issue]:
    in_strings = sum(
        s.module_count for inv in configuration.inverters for s in inv.strings
    )
    if totals.total_modules == 0 or in_strings == totals.total_modules:
        return []

    return [Issue(
        code="STRING_COUNT_MISMATCH",
        severity="MINOR",
        title="String module count differs from layout",
        description=(
            f"Inverter strings hold {in_strings} modules, the roof layout "
            f"{totals.total_modules}. The BOM is based on the layout."
        ),
        evidence={"modulesInStrings": in_strings, "totalModules": totals.total_modules},
    )]
