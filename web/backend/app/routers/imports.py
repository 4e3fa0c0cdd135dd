"""Imports router -- sniff, parse and apply uploaded model files."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from eaimport.apply.memory_sink import InMemoryModelSink
from eaimport.apply.sink import ModelSink
from eaimport.errors import StructuralParseError, UnsupportedImportFormatError
from eaimport.importers.pipeline import detect_importer, import_and_apply, import_model
from eaimport.ir.report import ImportReport

from web.backend.app.models.api import (
    ApplyResponse,
    ImportReportResponse,
    ParseResponse,
    SniffResponse,
)

router = APIRouter(prefix="/api/import", tags=["import"])

def get_sink() -> ModelSink:
    """A fresh sink per request; the applied model is released with the response."""
    return InMemoryModelSink()


def _report_to_response(report: ImportReport) -> ImportReportResponse:
    return ImportReportResponse(**report.to_dict())


async def _read_upload(file: UploadFile) -> tuple[bytes, str]:
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return data, file.filename or "upload.xml"


@router.post("/sniff", response_model=SniffResponse, summary="Detect the format of a model file")
async def sniff_upload(file: UploadFile = File(...)):
    data, name = await _read_upload(file)
    try:
        importer = detect_importer(data, name, mime_type=file.content_type or "")
    except UnsupportedImportFormatError as exc:
        raise HTTPException(status_code=415, detail=str(exc))

    return SniffResponse(importer_id=importer.id, format=importer.format.value, display_name=importer.display_name)


@router.post("/parse", response_model=ParseResponse, summary="Parse and normalize a model file")
async def parse_upload(file: UploadFile = File(...)):
    """Run sniff, parse and both normalization passes; return IR counts and the report."""
    data, name = await _read_upload(file)
    try:
        result = import_model(data, name, mime_type=file.content_type or "")
    except UnsupportedImportFormatError as exc:
        raise HTTPException(status_code=415, detail=str(exc))
    except StructuralParseError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    return ParseResponse(
        importer_id=result.importer.id,
        format=result.importer.format.value,
        model_name=str(result.ir.meta.get("model_name") or ""),
        counts=result.ir.counts(),
        report=_report_to_response(result.report),
    )


@router.post("/apply", response_model=ApplyResponse, summary="Import a model file end to end")
async def apply_upload(file: UploadFile = File(...), sink: ModelSink = Depends(get_sink)):
    """Import the file into a new in-memory model and return its id and id-mapping counts."""
    data, name = await _read_upload(file)
    try:
        result, applied = import_and_apply(data, name, sink)
    except UnsupportedImportFormatError as exc:
        raise HTTPException(status_code=415, detail=str(exc))
    except StructuralParseError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    return ApplyResponse(
        importer_id=result.importer.id,
        format=result.importer.format.value,
        model_id=applied.model_id,
        mapping_counts=applied.mappings.counts(),
        report=_report_to_response(applied.report),
    )
