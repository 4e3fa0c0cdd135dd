"""Import pipeline — sniff, parse, then the two normalization passes.

import_model() stops at a normalized IR; import_and_apply() carries it on
into a ModelSink. Structural failures raise, everything else lands in the
ImportReport that travels with the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from eaimport.apply.applier import ApplyOptions, ApplyResult, apply_import_ir
from eaimport.apply.sink import ModelSink
from eaimport.config import ImportSettings
from eaimport.errors import UnsupportedImportFormatError
from eaimport.importers.context import build_import_context
from eaimport.importers.registry import Importer, pick_importer
from eaimport.ir.models import ImportFormat, IRModel
from eaimport.ir.report import ImportReport
from eaimport.normalize.bpmn2 import normalize_bpmn2_ir
from eaimport.normalize.ea_xmi import normalize_ea_xmi_ir
from eaimport.normalize.generic import normalize_import_ir
from eaimport.normalize.meff import normalize_meff_ir

logger = logging.getLogger(__name__)

FORMAT_NORMALIZERS = {
    ImportFormat.BPMN2.value: normalize_bpmn2_ir,
    ImportFormat.ARCHIMATE_MEFF.value: normalize_meff_ir,
    ImportFormat.EA_XMI_UML.value: normalize_ea_xmi_ir,
}


@dataclass
class ImportResult:
    importer: Importer
    ir: IRModel
    report: ImportReport


def detect_importer(data: bytes, file_name: str, mime_type: str = "", settings: ImportSettings | None = None) -> Importer:
    settings = settings or ImportSettings()
    ctx = build_import_context(data, file_name, mime_type=mime_type, max_bytes=settings.sniff_bytes)
    importer = pick_importer(ctx)
    if importer is None:
        raise UnsupportedImportFormatError(
            file_name, f'Unsupported file format: "{file_name}" is not BPMN 2.0, ArchiMate MEFF or EA XMI'
        )
    return importer


def normalize_ir(ir: IRModel, report: ImportReport, settings: ImportSettings | None = None) -> IRModel:
    """Format-specific pass (chosen by ir.meta["format"]) followed by the generic pass."""
    settings = settings or ImportSettings()
    format_normalizer = FORMAT_NORMALIZERS.get(ir.format)
    if format_normalizer is not None:
        ir = format_normalizer(
            ir,
            report,
            limits=settings.extension_tags,
            drop_dangling_relationships=settings.drop_dangling_relationships,
        )
    return normalize_import_ir(
        ir,
        report,
        source=report.source or ir.format or "import",
        drop_dangling_relationships=settings.drop_dangling_relationships,
    )


def import_model(
    data: bytes,
    file_name: str,
    mime_type: str = "",
    settings: ImportSettings | None = None,
) -> ImportResult:
    settings = settings or ImportSettings()
    importer = detect_importer(data, file_name, mime_type, settings)
    logger.info("Importing %s with %s", file_name, importer.display_name)

    ir, report = importer.parse(data)
    report.max_samples = settings.max_issue_samples
    ir = normalize_ir(ir, report, settings)

    logger.info(
        "Imported %s: %s (%d warning(s))",
        file_name,
        ", ".join(f"{count} {name}" for name, count in ir.counts().items()),
        len(report.warnings),
    )
    return ImportResult(importer=importer, ir=ir, report=report)


def import_file(path: str | Path, settings: ImportSettings | None = None) -> ImportResult:
    path = Path(path)
    return import_model(path.read_bytes(), path.name, settings=settings)


def import_and_apply(
    data: bytes,
    file_name: str,
    sink: ModelSink,
    settings: ImportSettings | None = None,
) -> tuple[ImportResult, ApplyResult]:
    settings = settings or ImportSettings()
    result = import_model(data, file_name, settings=settings)
    options = ApplyOptions(source_system=settings.source_system, unknown_type_policy=settings.unknown_type_policy)
    applied = apply_import_ir(result.ir, sink, report=result.report, options=options)
    return result, applied
