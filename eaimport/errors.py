"""Exceptions raised by the import pipeline.

Only structural failures abort an import. Everything else is recorded in the
ImportReport and the pipeline continues with a partial model.
"""

from __future__ import annotations


class EaImportError(Exception):
    """Base class for fatal import failures."""


class StructuralParseError(EaImportError):
    """The document is unparseable or lacks its required root element."""

    def __init__(self, message: str, format: str = ""):
        super().__init__(message)
        self.format = format


class UnsupportedImportFormatError(EaImportError):
    """No registered importer recognized the file."""

    def __init__(self, file_name: str, message: str):
        super().__init__(message)
        self.file_name = file_name


class ModelAllocationError(EaImportError):
    """The model sink could not allocate a new model."""
