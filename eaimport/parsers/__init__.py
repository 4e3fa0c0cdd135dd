"""Format parsers — dialect XML to IR.

Each parser returns an (IRModel, ImportReport) pair and raises
StructuralParseError only when the document cannot be read at all.
"""
