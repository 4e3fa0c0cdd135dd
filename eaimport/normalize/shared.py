"""Repairs shared by the format-specific normalizers."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, TypeVar

from eaimport.ir.models import IRModel, IRTaggedValue, IRView
from eaimport.ir.report import ImportReport
from eaimport.normalize.view_connections import resolve_view_connection_relationship_ids

T = TypeVar("T")


@dataclass
class ExtensionTagLimits:
    """Bounds on tagged values lifted from vendor extension elements."""

    max_tags: int = 50
    max_key_length: int = 80
    max_value_length: int = 500


def normalize_doc_text(text: str | None) -> str:
    return (text or "").replace("\r\n", "\n").replace("\r", "\n").strip()


def sort_by_id(items: list[T]) -> list[T]:
    # sorted() is stable, so duplicate ids keep their input order.
    return sorted(items, key=lambda item: item.id)


def extract_extension_tags(meta: dict[str, Any], limits: ExtensionTagLimits) -> list[IRTaggedValue]:
    """meta["extension_elements"]["tags"] -> bounded 'ext:'-prefixed tagged values.

    Tags may be a list of {"key", "value"} dicts or a plain mapping.
    """
    ext = meta.get("extension_elements")
    if not isinstance(ext, dict):
        return []
    raw = ext.get("tags", ext)
    if isinstance(raw, dict):
        pairs = list(raw.items())
    elif isinstance(raw, list):
        pairs = [(t.get("key"), t.get("value")) for t in raw if isinstance(t, dict)]
    else:
        return []

    out: list[IRTaggedValue] = []
    for key, value in pairs:
        if len(out) >= limits.max_tags:
            break
        key = "" if key is None else str(key).strip()
        value = "" if value is None else str(value).strip()
        if not key or not value:
            continue
        if len(key) > limits.max_key_length or len(value) > limits.max_value_length:
            continue
        out.append(IRTaggedValue(f"ext:{key}", value))
    return out


def merge_tagged_values(base: list[IRTaggedValue], extra: list[IRTaggedValue]) -> list[IRTaggedValue]:
    """Concatenate, trimming keys/values and dropping repeats of the same key=value."""
    out: list[IRTaggedValue] = []
    seen: set[str] = set()
    for tv in base + extra:
        key, value = (tv.key or "").strip(), (tv.value or "").strip()
        if not key or f"{key}={value}" in seen:
            continue
        seen.add(f"{key}={value}")
        out.append(IRTaggedValue(key, value))
    return out


def _warn(report: ImportReport | None, label: str, message: str) -> None:
    if report is not None:
        report.add_warning(f"{label} normalize: {message}", code="normalize")


def normalize_format_ir(
    ir: IRModel,
    report: ImportReport | None,
    label: str,
    limits: ExtensionTagLimits | None = None,
    view_name_fallback: str = "",
    drop_dangling_relationships: bool = True,
) -> IRModel:
    """The common format pass: names, docs, extension tags, dangling refs, ordering, then connection resolution.

    Every defaulted name and every dropped item adds one warning. With
    drop_dangling_relationships=False, relationships whose endpoints are
    missing are kept as they are.
    """
    limits = limits or ExtensionTagLimits()
    model = copy.deepcopy(ir)

    def with_tags(item) -> None:
        item.tagged_values = merge_tagged_values(item.tagged_values, extract_extension_tags(item.meta, limits))

    for folder in model.folders:
        folder.name = (folder.name or "").strip()
        if not folder.name:
            folder.name = "Imported folder"
            _warn(report, label, f'Folder "{folder.id}" had no name; defaulted to "{folder.name}".')
        folder.documentation = normalize_doc_text(folder.documentation)
        with_tags(folder)

    for element in model.elements:
        element.name = (element.name or "").strip()
        if not element.name:
            element.name = f"Unnamed ({element.type})"
            _warn(report, label, f'Element "{element.id}" had no name; defaulted to "{element.name}".')
        element.documentation = normalize_doc_text(element.documentation)
        with_tags(element)
    element_ids = {e.id for e in model.elements}

    relationships = []
    for rel in sort_by_id(model.relationships):
        rel.source_id = (rel.source_id or "").strip()
        rel.target_id = (rel.target_id or "").strip()
        dangling = rel.source_id not in element_ids or rel.target_id not in element_ids
        if dangling and drop_dangling_relationships:
            _warn(
                report,
                label,
                f'Dropped relationship "{rel.id}" referencing missing element(s) '
                f'(source: "{rel.source_id}", target: "{rel.target_id}").',
            )
            continue
        rel.name = (rel.name or "").strip()
        rel.documentation = normalize_doc_text(rel.documentation)
        with_tags(rel)
        relationships.append(rel)
    relationship_ids = {r.id for r in relationships}

    for view in model.views:
        view.name = (view.name or "").strip()
        if not view.name:
            view.name = view_name_fallback or f"Imported {label} diagram"
            _warn(report, label, f'View "{view.id}" had no name; defaulted to "{view.name}".')
        view.documentation = normalize_doc_text(view.documentation)
        with_tags(view)
        _normalize_view(view, element_ids, relationship_ids, report, label, with_tags)

    model.folders = sort_by_id(model.folders)
    model.elements = sort_by_id(model.elements)
    model.relationships = relationships
    model.views = sort_by_id(model.views)
    return resolve_view_connection_relationship_ids(model, report=report, label=label)


def _normalize_view(view: IRView, element_ids, relationship_ids, report, label, with_tags) -> None:
    nodes = []
    for node in view.nodes:
        if node.element_id and node.element_id not in element_ids:
            _warn(report, label, f'Dropped view node "{node.id}" referencing missing element_id "{node.element_id}".')
            continue
        node.label = (node.label or "").strip()
        with_tags(node)
        nodes.append(node)
    node_ids = {n.id for n in nodes}

    connections = []
    for conn in view.connections:
        problem = None
        if conn.relationship_id and conn.relationship_id not in relationship_ids:
            problem = f'relationship_id "{conn.relationship_id}"'
        elif conn.source_node_id and conn.source_node_id not in node_ids:
            problem = f'source_node_id "{conn.source_node_id}"'
        elif conn.target_node_id and conn.target_node_id not in node_ids:
            problem = f'target_node_id "{conn.target_node_id}"'
        elif conn.source_element_id and conn.source_element_id not in element_ids:
            problem = f'source_element_id "{conn.source_element_id}"'
        elif conn.target_element_id and conn.target_element_id not in element_ids:
            problem = f'target_element_id "{conn.target_element_id}"'
        if problem:
            _warn(report, label, f'Dropped view connection "{conn.id}" referencing missing {problem}.')
            continue
        conn.label = (conn.label or "").strip()
        with_tags(conn)
        connections.append(conn)

    view.nodes = sort_by_id(nodes)
    view.connections = sort_by_id(connections)
