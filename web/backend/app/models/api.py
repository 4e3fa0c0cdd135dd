"""Pydantic models for API request/response serialization.

These models mirror the eaimport dataclasses (ImportReport, ImportIssue,
IdMappings) and provide JSON serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Report models
# ---------------------------------------------------------------------------


class ImportIssueResponse(BaseModel):
    """Mirrors eaimport.ir.report.ImportIssue."""

    level: str
    code: str
    message: str
    count: int = 1
    samples: list[dict[str, Any]] = Field(default_factory=list)


class ImportReportResponse(BaseModel):
    """Mirrors eaimport.ir.report.ImportReport."""

    source: str = ""
    warnings: list[str] = Field(default_factory=list)
    issues: list[ImportIssueResponse] = Field(default_factory=list)
    unknown_element_types: dict[str, int] = Field(default_factory=dict)
    unknown_relationship_types: dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Import models
# ---------------------------------------------------------------------------


class SniffResponse(BaseModel):
    importer_id: str
    format: str
    display_name: str = ""


class ParseResponse(BaseModel):
    importer_id: str
    format: str
    model_name: str = ""
    counts: dict[str, int] = Field(default_factory=dict)
    report: ImportReportResponse = Field(default_factory=ImportReportResponse)


class ApplyResponse(BaseModel):
    importer_id: str
    format: str
    model_id: str
    mapping_counts: dict[str, int] = Field(default_factory=dict)
    report: ImportReportResponse = Field(default_factory=ImportReportResponse)
