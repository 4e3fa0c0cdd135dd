"""Intermediate Representation (IR) shared by every import stage.

Parsers build an IR from a dialect-specific XML document, normalizers repair
it, and the apply stage consumes it exactly once. The IR normalizes:
- Model structure (folders, elements, relationships)
- Diagrams (views, nodes, connections, geometry)
- Provenance (external ids, tagged values, source metadata)
"""
