"""View-connection relationship resolver.

Some exports draw a connection between two nodes without saying which
relationship it depicts. When the endpoints identify exactly one relationship
(in either direction) the connection is bound to it; when they identify
several it is left alone and reported.
"""

from __future__ import annotations

import copy

from eaimport.ir.models import IRModel, IRRelationship, IRView, IRViewConnection
from eaimport.ir.report import ImportReport


def endpoint_key(source_id: str, target_id: str) -> str:
    return f"{source_id}→{target_id}"


def build_relationship_index(relationships: list[IRRelationship]) -> dict[str, list[str]]:
    index: dict[str, list[str]] = {}
    for rel in relationships:
        if rel.id and rel.source_id and rel.target_id:
            index.setdefault(endpoint_key(rel.source_id, rel.target_id), []).append(rel.id)
    return index


def connection_endpoints(conn: IRViewConnection, view: IRView) -> tuple[str | None, str | None]:
    """Element endpoints of a connection, falling back to the elements its nodes show."""
    source = conn.source_element_id
    target = conn.target_element_id
    if not source:
        node = view.node_by_id(conn.source_node_id)
        source = node.element_id if node else None
    if not target:
        node = view.node_by_id(conn.target_node_id)
        target = node.element_id if node else None
    return source, target


def resolve_view_connection_relationship_ids(
    ir: IRModel, report: ImportReport | None = None, label: str = "Import"
) -> IRModel:
    """Return a copy of the model with unambiguous connections bound to relationships."""
    result = copy.deepcopy(ir)
    if not result.views:
        return result

    index = build_relationship_index(result.relationships)
    for view in result.views:
        for conn in view.connections:
            if conn.relationship_id:
                continue
            source, target = connection_endpoints(conn, view)
            if not source or not target:
                continue

            forward = index.get(endpoint_key(source, target), [])
            reverse = index.get(endpoint_key(target, source), [])
            if len(forward) == 1:
                conn.relationship_id = forward[0]
            elif not forward and len(reverse) == 1:
                conn.relationship_id = reverse[0]
                conn.source_node_id, conn.target_node_id = conn.target_node_id, conn.source_node_id
                conn.source_element_id, conn.target_element_id = target, source
                conn.meta["reversed"] = True
            elif len(forward) + len(reverse) > 1 and report is not None:
                report.add_warning(
                    f'{label}: Diagram connection "{conn.id}" could not be mapped to a single relationship '
                    f'between "{source}" and "{target}" (matches: {len(forward) + len(reverse)}).',
                    code="view-connection-ambiguous",
                )
    return result
