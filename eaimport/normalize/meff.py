"""MEFF-specific normalization, run before the generic pass."""

from __future__ import annotations

from eaimport.ir.models import IRModel
from eaimport.ir.report import ImportReport
from eaimport.normalize.shared import ExtensionTagLimits, normalize_format_ir

FORMAT_LABEL = "MEFF"


def normalize_meff_ir(
    ir: IRModel,
    report: ImportReport | None = None,
    limits: ExtensionTagLimits | None = None,
    drop_dangling_relationships: bool = True,
) -> IRModel:
    return normalize_format_ir(
        ir, report, FORMAT_LABEL, limits, drop_dangling_relationships=drop_dangling_relationships
    )
