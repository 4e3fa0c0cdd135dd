"""BPMN2-specific normalization, run before the generic pass."""

from __future__ import annotations

from eaimport.ir.models import IRModel
from eaimport.ir.report import ImportReport
from eaimport.normalize.shared import ExtensionTagLimits, normalize_format_ir

FORMAT_LABEL = "BPMN2"


def normalize_bpmn2_ir(
    ir: IRModel,
    report: ImportReport | None = None,
    limits: ExtensionTagLimits | None = None,
    drop_dangling_relationships: bool = True,
) -> IRModel:
    """Default names, clean documentation, lift extension tags and drop dangling references.

    Ends by binding unlabelled diagram edges to relationships.
    """
    return normalize_format_ir(
        ir,
        report,
        FORMAT_LABEL,
        limits,
        view_name_fallback="Imported BPMN diagram",
        drop_dangling_relationships=drop_dangling_relationships,
    )
