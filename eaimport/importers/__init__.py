"""Format detection and the end-to-end import pipeline.

The pipeline is:
1. Sniff — cheap prefix-based detection picks an importer
2. Parse — the importer turns XML into an unnormalized IR
3. Normalize — the format-specific pass, then the generic pass
"""
