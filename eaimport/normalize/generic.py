"""Generic normalizer — format-agnostic structural repair of an IR model.

The goal is an IR that is safe to apply: unique ids, resolvable references,
no containment cycles, usable geometry. It makes no semantic decisions
(those belong to the apply stage) and is idempotent: a second pass over its
own output changes nothing and reports nothing.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, TypeVar

from eaimport.ir.models import (
    IRBounds,
    IRExternalId,
    IRModel,
    IRTaggedValue,
    IRView,
    ViewNodeKind,
)
from eaimport.ir.report import ImportReport
from eaimport.mapping.types import UNKNOWN_TYPE

T = TypeVar("T")


@dataclass
class _Warner:
    report: ImportReport | None
    source: str

    def __call__(self, message: str) -> None:
        if self.report is not None:
            self.report.add_warning(f"{self.source}: Normalize: {message}", code="normalize")


def _clean(value: object) -> str:
    return "" if value is None else str(value).strip()


def dedupe_by_id(items: list[T], kind: str, warn: _Warner) -> list[T]:
    seen: set[str] = set()
    out = []
    for item in items:
        item_id = _clean(item.id)
        if not item_id:
            warn(f"Dropped {kind} with empty id.")
            continue
        if item_id in seen:
            warn(f'Dropped duplicate {kind} id "{item_id}".')
            continue
        seen.add(item_id)
        item.id = item_id
        out.append(item)
    return out


def normalize_tagged_values(values: list[IRTaggedValue]) -> list[IRTaggedValue]:
    out: list[IRTaggedValue] = []
    seen: set[tuple[str, str]] = set()
    for tv in values:
        key, value = _clean(tv.key), _clean(tv.value)
        if not key or (key, value) in seen:
            continue
        seen.add((key, value))
        out.append(IRTaggedValue(key, value))
    return out


def normalize_external_ids(values: list[IRExternalId]) -> list[IRExternalId]:
    out: list[IRExternalId] = []
    seen: set[tuple[str, str, str]] = set()
    for ext in values:
        ext_id, system, kind = _clean(ext.id), _clean(ext.system), _clean(ext.kind)
        if not ext_id or (system, ext_id, kind) in seen:
            continue
        seen.add((system, ext_id, kind))
        out.append(IRExternalId(id=ext_id, system=system, kind=kind))
    return out


def valid_bounds(bounds: IRBounds | None) -> bool:
    if bounds is None:
        return False
    values = (bounds.x, bounds.y, bounds.width, bounds.height)
    return all(isinstance(v, (int, float)) and math.isfinite(v) for v in values) and (
        bounds.width > 0 and bounds.height > 0
    )


def _ensure_name(kind: str, item_id: str, name: str, fallback: str, warn: _Warner) -> str:
    cleaned = _clean(name)
    if cleaned:
        return cleaned
    warn(f'{kind} "{item_id}" missing name; using "{fallback}".')
    return fallback


def break_cycles(
    items: list[T],
    get_parent: Callable[[T], str | None],
    clear_parent: Callable[[T], None],
    on_break: Callable[[T], None],
) -> None:
    """Clear the parent link of every item that turns out to sit on a cycle.

    Items are visited in order, so the first item of each cycle loses its
    parent and the rest of the cycle then reaches a root.
    """
    by_id = {item.id: item for item in items}
    for item in items:
        seen = {item.id}
        parent_id = get_parent(item)
        while parent_id:
            if parent_id in seen:
                if parent_id == item.id:
                    on_break(item)
                    clear_parent(item)
                break
            seen.add(parent_id)
            parent = by_id.get(parent_id)
            parent_id = get_parent(parent) if parent is not None else None


def normalize_import_ir(
    ir: IRModel,
    report: ImportReport | None = None,
    source: str = "import",
    drop_dangling_relationships: bool = True,
) -> IRModel:
    """Return a structurally safe copy of the model, reporting every repair."""
    warn = _Warner(report, source)
    model = copy.deepcopy(ir)

    # --- Folders ---
    folders = dedupe_by_id(model.folders, "folder", warn)
    folder_ids = {f.id for f in folders}
    for folder in folders:
        folder.name = _ensure_name("Folder", folder.id, folder.name, "Unnamed folder", warn)
        parent_id = _clean(folder.parent_id) or None
        if parent_id and (parent_id not in folder_ids or parent_id == folder.id):
            warn(f'Folder "{folder.id}" had invalid parent_id "{parent_id}"; moved to root.')
            parent_id = None
        folder.parent_id = parent_id
        folder.documentation = _clean(folder.documentation)
        folder.tagged_values = normalize_tagged_values(folder.tagged_values)
        folder.external_ids = normalize_external_ids(folder.external_ids)
    break_cycles(
        folders,
        lambda f: f.parent_id,
        lambda f: setattr(f, "parent_id", None),
        lambda f: warn(f'Folder "{f.id}" is part of a parent cycle; moved to root.'),
    )
    model.folders = folders

    # --- Elements ---
    elements = dedupe_by_id(model.elements, "element", warn)
    element_ids = {e.id for e in elements}
    for element in elements:
        element.name = _ensure_name("Element", element.id, element.name, "Unnamed element", warn)
        element.type = _clean(element.type)
        if not element.type:
            warn(f'Element "{element.id}" had an empty type; using "{UNKNOWN_TYPE}".')
            element.type = UNKNOWN_TYPE
        folder_id = _clean(element.folder_id) or None
        if folder_id and folder_id not in folder_ids:
            warn(f'Element "{element.id}" referenced missing folder_id "{folder_id}"; moved to root.')
            folder_id = None
        element.folder_id = folder_id
        parent_id = _clean(element.parent_element_id) or None
        if parent_id and (parent_id not in element_ids or parent_id == element.id):
            warn(f'Element "{element.id}" had invalid parent_element_id "{parent_id}"; cleared.')
            parent_id = None
        element.parent_element_id = parent_id
        element.documentation = _clean(element.documentation)
        element.tagged_values = normalize_tagged_values(element.tagged_values)
        element.external_ids = normalize_external_ids(element.external_ids)
    break_cycles(
        elements,
        lambda e: e.parent_element_id,
        lambda e: setattr(e, "parent_element_id", None),
        lambda e: warn(f'Element "{e.id}" is part of a containment cycle; parent_element_id cleared.'),
    )
    model.elements = elements

    # --- Relationships ---
    relationships = []
    for rel in dedupe_by_id(model.relationships, "relationship", warn):
        rel.source_id, rel.target_id = _clean(rel.source_id), _clean(rel.target_id)
        dangling = rel.source_id not in element_ids or rel.target_id not in element_ids
        if dangling and drop_dangling_relationships:
            warn(
                f'Dropped relationship "{rel.id}" because it references missing element(s) '
                f'(source: "{rel.source_id}", target: "{rel.target_id}").'
            )
            continue
        rel.type = _clean(rel.type)
        if not rel.type:
            warn(f'Relationship "{rel.id}" had an empty type; using "{UNKNOWN_TYPE}".')
            rel.type = UNKNOWN_TYPE
        rel.name = _clean(rel.name)
        rel.documentation = _clean(rel.documentation)
        rel.tagged_values = normalize_tagged_values(rel.tagged_values)
        rel.external_ids = normalize_external_ids(rel.external_ids)
        relationships.append(rel)
    model.relationships = relationships
    relationship_ids = {r.id for r in relationships}

    # --- Views ---
    views = dedupe_by_id(model.views, "view", warn)
    for view in views:
        view.name = _ensure_name("View", view.id, view.name, "Unnamed view", warn)
        folder_id = _clean(view.folder_id) or None
        if folder_id and folder_id not in folder_ids:
            warn(f'View "{view.id}" referenced missing folder_id "{folder_id}"; moved to root.')
            folder_id = None
        view.folder_id = folder_id
        view.viewpoint = _clean(view.viewpoint)
        view.documentation = _clean(view.documentation)
        view.tagged_values = normalize_tagged_values(view.tagged_values)
        view.external_ids = normalize_external_ids(view.external_ids)
        _normalize_view_contents(view, element_ids, relationship_ids, warn)
    model.views = views

    if not _clean(model.meta.get("imported_at_iso")):
        model.meta["imported_at_iso"] = datetime.now(timezone.utc).isoformat()
    return model


def _normalize_view_contents(
    view: IRView, element_ids: set[str], relationship_ids: set[str], warn: _Warner
) -> None:
    nodes = dedupe_by_id(view.nodes, f'view node in view "{view.id}"', warn)
    node_ids = {n.id for n in nodes}
    for node in nodes:
        element_id = _clean(node.element_id) or None
        if element_id and element_id not in element_ids:
            warn(f'ViewNode "{node.id}" referenced missing element_id "{element_id}"; cleared.')
            element_id = None
        node.element_id = element_id
        parent_id = _clean(node.parent_node_id) or None
        if parent_id and (parent_id not in node_ids or parent_id == node.id):
            warn(f'ViewNode "{node.id}" had invalid parent_node_id "{parent_id}"; cleared.')
            parent_id = None
        node.parent_node_id = parent_id
        if node.bounds is not None and not valid_bounds(node.bounds):
            warn(f'ViewNode "{node.id}" had invalid bounds; dropped.')
            node.bounds = None
        if not isinstance(node.kind, ViewNodeKind):
            node.kind = ViewNodeKind.OTHER
        node.label = _clean(node.label)
        node.tagged_values = normalize_tagged_values(node.tagged_values)
    break_cycles(
        nodes,
        lambda n: n.parent_node_id,
        lambda n: setattr(n, "parent_node_id", None),
        lambda n: warn(f'ViewNode "{n.id}" is part of a nesting cycle; parent_node_id cleared.'),
    )
    view.nodes = nodes

    connections = dedupe_by_id(view.connections, f'view connection in view "{view.id}"', warn)
    for conn in connections:
        rel_id = _clean(conn.relationship_id) or None
        if rel_id and rel_id not in relationship_ids:
            warn(f'ViewConnection "{conn.id}" referenced missing relationship_id "{rel_id}"; cleared.')
            rel_id = None
        conn.relationship_id = rel_id
        for attr_name, known in (
            ("source_node_id", node_ids),
            ("target_node_id", node_ids),
            ("source_element_id", element_ids),
            ("target_element_id", element_ids),
        ):
            value = _clean(getattr(conn, attr_name)) or None
            if value and value not in known:
                warn(f'ViewConnection "{conn.id}" had invalid {attr_name} "{value}"; cleared.')
                value = None
            setattr(conn, attr_name, value)
        conn.points = [p for p in conn.points if math.isfinite(p.x) and math.isfinite(p.y)]
        conn.label = _clean(conn.label)
        conn.tagged_values = normalize_tagged_values(conn.tagged_values)
    view.connections = connections
