"""ArchiMate Model Exchange File (MEFF) parser.

Reads elements, relationships, the <organizations> folder tree and
<views>. Tag matching goes by local name, so documents with ns0:/archimate:
prefixes parse the same as unprefixed ones.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from xml.etree.ElementTree import Element

from eaimport.ir.models import (
    IRBounds,
    IRElement,
    IRFolder,
    IRModel,
    IRPoint,
    IRRelationship,
    IRTaggedValue,
    IRView,
    IRViewConnection,
    IRViewNode,
    ImportFormat,
    ViewNodeKind,
)
from eaimport.ir.report import ImportReport
from eaimport.mapping.archimate import (
    is_used_by_relationship,
    map_element_type,
    map_relationship_type,
    strip_namespace,
)
from eaimport.mapping.types import UNKNOWN_TYPE
from eaimport.utils.xmlscan import (
    attr_any,
    child_text,
    children,
    children_by_local_name,
    descendants,
    find_first,
    get_type,
    has_descendant,
    local_name,
    parse_number,
    parse_xml,
    stripped_attr,
    text_of,
)

logger = logging.getLogger(__name__)

SYSTEM = "archimate-meff"
FORMAT_LABEL = "MEFF"

FOLDER_TAGS = ("item", "organization", "folder")
REF_ATTRS = ["identifierRef", "ref", "idref", "elementRef"]
ID_ATTRS = ["identifier", "id"]


@dataclass
class OrganizationIndex:
    """Folders plus the lookups derived from the organizations tree."""

    folders: list[IRFolder] = field(default_factory=list)
    ref_to_folder: dict[str, str] = field(default_factory=dict)
    # Element/view id -> id of the element whose organization item wraps it
    ref_to_parent_ref: dict[str, str] = field(default_factory=dict)


def parse_meff_xml(data: bytes | str) -> tuple[IRModel, ImportReport]:
    """Parse a MEFF document into IR. Only unreadable XML is fatal."""
    root = parse_xml(data, FORMAT_LABEL)
    report = ImportReport(source=SYSTEM)

    property_names = _property_definition_names(root)
    orgs = parse_organizations(root, report, property_names)
    elements = parse_elements(root, report, orgs, property_names)
    relationships = parse_relationships(root, report, property_names)
    views = parse_views(root, report, orgs, property_names)

    meta: dict = {"format": ImportFormat.ARCHIMATE_MEFF.value, "source_system": SYSTEM}
    model_name = child_text(root, "name")
    if model_name:
        meta["model_name"] = model_name
    model_doc = child_text(root, "documentation")
    if model_doc:
        meta["model_documentation"] = model_doc

    model = IRModel(
        folders=orgs.folders,
        elements=elements,
        relationships=relationships,
        views=views,
        meta=meta,
    )
    logger.debug("Parsed MEFF: %s", model.counts())
    return model, report


# --- Properties and tagged values ---


def _property_definition_names(root: Element) -> dict[str, str]:
    names: dict[str, str] = {}
    defs_root = find_first(root, ["propertyDefinitions", "propertyDefs"])
    if defs_root is None:
        return names
    for definition in children(defs_root):
        def_id = stripped_attr(definition, ID_ATTRS)
        name = child_text(definition, "name") or stripped_attr(definition, "name")
        if def_id and name:
            names[def_id] = name
    return names


def parse_properties(el: Element, property_names: dict[str, str] | None = None) -> dict[str, str]:
    """Collect <properties><property/></properties> (and bare <property/>) into a dict.

    propertyDefinitionRef keys are replaced by the definition's name when known.
    """
    property_names = property_names or {}
    props: dict[str, str] = {}

    def collect(p: Element) -> None:
        key = (
            stripped_attr(p, ["key", "name", "propertyDefinitionRef", "ref", "identifierRef"])
            or child_text(p, "key")
            or child_text(p, "name")
        )
        value = stripped_attr(p, "value") or child_text(p, "value") or text_of(p)
        if key and value:
            props[property_names.get(key, key)] = value

    for child in children(el):
        name = local_name(child)
        if name == "properties":
            for p in children_by_local_name(child, "property"):
                collect(p)
        elif name == "property":
            collect(child)
    return props


def parse_tagged_values(el: Element) -> list[IRTaggedValue]:
    out: list[IRTaggedValue] = []

    def add(tv: Element) -> None:
        key = (stripped_attr(tv, ["key", "name"]) or "").strip()
        value = stripped_attr(tv, "value") or text_of(tv)
        if key and value:
            out.append(IRTaggedValue(key=key, value=value))

    for child in children(el):
        name = local_name(child)
        if name == "taggedvalues":
            for tv in children_by_local_name(child, "taggedValue"):
                add(tv)
        elif name == "taggedvalue":
            add(child)
    return out


# --- Organizations ---


def _ref_of(el: Element) -> str | None:
    return stripped_attr(el, REF_ATTRS) or child_text(el, "identifierRef") or child_text(el, "ref")


def _has_label(el: Element) -> bool:
    return bool(child_text(el, "label") or child_text(el, "name") or stripped_attr(el, ["label", "name"]))


def _nested_items(el: Element) -> list[Element]:
    return [c for c in children(el) if local_name(c) in FOLDER_TAGS]


def parse_organizations(
    root: Element,
    report: ImportReport,
    property_names: dict[str, str] | None = None,
) -> OrganizationIndex:
    """Turn the organizations tree into folders.

    Labelled items become folders. Items that only carry an identifierRef
    assign that reference to the enclosing folder; when such an item wraps
    further references, the wrapped ones are contained by the wrapping one.
    """
    index = OrganizationIndex()
    org_root = find_first(root, ["organizations", "organization"])
    if org_root is None:
        return index

    auto_id = 0

    def make_folder_id(raw: str | None) -> str:
        nonlocal auto_id
        if raw:
            return raw
        auto_id += 1
        return f"org-auto-{auto_id}"

    def assign_ref(ref: str, folder_id: str | None, parent_ref: str | None) -> None:
        if folder_id and ref not in index.ref_to_folder:
            index.ref_to_folder[ref] = folder_id
        if parent_ref and ref != parent_ref and ref not in index.ref_to_parent_ref:
            index.ref_to_parent_ref[ref] = parent_ref

    def walk_refs(item: Element, folder_id: str | None, parent_ref: str | None) -> None:
        ref = _ref_of(item)
        if ref:
            assign_ref(ref, folder_id, parent_ref)
        for nested in _nested_items(item):
            if _has_label(nested):
                walk_folder(nested, folder_id)
            else:
                walk_refs(nested, folder_id, ref or parent_ref)

    def walk_folder(item: Element, parent_id: str | None) -> None:
        folder = IRFolder(
            id=make_folder_id(stripped_attr(item, ID_ATTRS)),
            name=child_text(item, "label") or child_text(item, "name") or stripped_attr(item, ["label", "name"]) or "Group",
            parent_id=parent_id,
            documentation=child_text(item, "documentation") or "",
            properties=parse_properties(item, property_names),
            tagged_values=parse_tagged_values(item),
        )
        index.folders.append(folder)

        for child in children(item):
            if local_name(child) not in FOLDER_TAGS:
                # Some exporters put bare reference tags directly under the folder.
                ref = _ref_of(child)
                if ref:
                    assign_ref(ref, folder.id, None)
                continue
            if _has_label(child):
                walk_folder(child, folder.id)
            else:
                walk_refs(child, folder.id, None)

    top_items = _nested_items(org_root)
    if top_items:
        for item in top_items:
            if _has_label(item):
                walk_folder(item, None)
            else:
                walk_refs(item, None, None)
    elif children(org_root):
        # Folder-like attributes on <organizations> itself; its children are refs.
        pseudo_id = make_folder_id(stripped_attr(org_root, ID_ATTRS))
        pseudo_name = child_text(org_root, "label") or child_text(org_root, "name") or "Organization"
        index.folders.append(IRFolder(id=pseudo_id, name=pseudo_name))
        for child in children(org_root):
            ref = _ref_of(child)
            if ref:
                assign_ref(ref, pseudo_id, None)
    else:
        report.add_warning("MEFF: Found <organizations> section, but could not interpret its structure.")

    return index


# --- Elements and relationships ---


def parse_elements(
    root: Element,
    report: ImportReport,
    orgs: OrganizationIndex,
    property_names: dict[str, str] | None = None,
) -> list[IRElement]:
    elements_root = find_first(root, "elements")
    if elements_root is None:
        report.add_warning("MEFF: No <elements> section found.", code="meff:no-elements")
        return []

    elements: list[IRElement] = []
    for el in children_by_local_name(elements_root, "element"):
        element_id = stripped_attr(el, ID_ATTRS)
        if not element_id:
            report.add_warning("MEFF: Skipping an <element> without identifier.")
            continue

        raw_type = (get_type(el) or "").strip()
        mapped = map_element_type(raw_type)
        meta: dict = {"source": SYSTEM}
        if not mapped.known:
            report.record_unknown_element_type(SYSTEM, mapped.name)
            meta["source_type"] = mapped.name

        name = child_text(el, "name") or stripped_attr(el, "name")
        if not name:
            report.add_warning(
                f'MEFF: Element "{element_id}" is missing a name; using "(unnamed)".',
                code="meff:missing-name",
            )
            name = "(unnamed)"

        elements.append(
            IRElement(
                id=element_id,
                type=mapped.type if mapped.known else UNKNOWN_TYPE,
                name=name,
                folder_id=orgs.ref_to_folder.get(element_id),
                documentation=child_text(el, "documentation") or "",
                parent_element_id=orgs.ref_to_parent_ref.get(element_id),
                properties=parse_properties(el, property_names),
                tagged_values=parse_tagged_values(el),
                meta=meta,
            )
        )
    return elements


def parse_relationships(
    root: Element,
    report: ImportReport,
    property_names: dict[str, str] | None = None,
) -> list[IRRelationship]:
    rel_root = find_first(root, "relationships")
    if rel_root is None:
        report.add_warning("MEFF: No <relationships> section found.", code="meff:no-relationships")
        return []

    relationships: list[IRRelationship] = []
    for el in children_by_local_name(rel_root, "relationship"):
        rel_id = stripped_attr(el, ID_ATTRS)
        if not rel_id:
            report.add_warning("MEFF: Skipping a <relationship> without identifier.")
            continue

        raw_type = (get_type(el) or "").strip()
        meta: dict = {"source": SYSTEM}
        used_by = is_used_by_relationship(raw_type)
        if used_by:
            # A UsedBy B is imported as B Serving A.
            rel_type = "Serving"
            meta["original_type"] = strip_namespace(raw_type) or raw_type
        else:
            mapped = map_relationship_type(raw_type)
            rel_type = mapped.type if mapped.known else UNKNOWN_TYPE
            if not mapped.known:
                report.record_unknown_relationship_type(SYSTEM, mapped.name)
                meta["source_type"] = mapped.name

        source = stripped_attr(el, ["source", "sourceRef", "from"]) or child_text(el, "source") or child_text(el, "sourceRef")
        target = stripped_attr(el, ["target", "targetRef", "to"]) or child_text(el, "target") or child_text(el, "targetRef")
        if used_by:
            source, target = target, source
        if not source or not target:
            report.add_warning(f'MEFF: Relationship "{rel_id}" is missing source/target; skipped.')
            continue

        relationships.append(
            IRRelationship(
                id=rel_id,
                type=rel_type,
                source_id=source,
                target_id=target,
                name=child_text(el, "name") or stripped_attr(el, "name") or "",
                documentation=child_text(el, "documentation") or "",
                properties=parse_properties(el, property_names),
                tagged_values=parse_tagged_values(el),
                meta=meta,
            )
        )
    return relationships


# --- Views ---


def parse_bounds(el: Element) -> IRBounds | None:
    """Bounds from x/y/w/h attributes on the node, else from a bounds-like child."""

    def from_attrs(e: Element) -> IRBounds | None:
        x = parse_number(attr_any(e, ["x", "left", "posX"]))
        y = parse_number(attr_any(e, ["y", "top", "posY"]))
        w = parse_number(attr_any(e, ["width", "w"]))
        h = parse_number(attr_any(e, ["height", "h"]))
        if x is None or y is None or w is None or h is None:
            return None
        return IRBounds(x=x, y=y, width=w, height=h)

    direct = from_attrs(el)
    if direct is not None:
        return direct
    for child in descendants(el, ["bounds", "geometry", "rect"]):
        bounds = from_attrs(child)
        if bounds is not None:
            return bounds
    return None


def parse_points(el: Element) -> list[IRPoint]:
    points = []
    for p in descendants(el, ["point", "bendpoint", "waypoint"]):
        x = parse_number(attr_any(p, ["x", "posX"]))
        y = parse_number(attr_any(p, ["y", "posY"]))
        if x is not None and y is not None:
            points.append(IRPoint(x=x, y=y))
    return points


def node_kind_from_type(raw_type: str | None) -> tuple[ViewNodeKind, str]:
    """Node kind and diagram object type for a node without elementRef."""
    t = (raw_type or "").lower()
    if "note" in t:
        return ViewNodeKind.NOTE, "Note"
    if "group" in t or "container" in t:
        return ViewNodeKind.GROUP, "GroupBox"
    if "label" in t:
        return ViewNodeKind.SHAPE, "Label"
    return ViewNodeKind.OTHER, "Label"


def _is_view_candidate(el: Element) -> bool:
    if local_name(el) not in ("view", "diagram"):
        return False
    return has_descendant(el, ["node", "connection", "edge"])


def _parse_view(
    view_el: Element,
    view_id: str,
    orgs: OrganizationIndex,
    property_names: dict[str, str] | None,
) -> IRView:
    nodes: list[IRViewNode] = []
    auto_node = 0

    def parse_node(node_el: Element, parent_node_id: str | None) -> None:
        nonlocal auto_node
        element_ref = stripped_attr(node_el, ["elementRef", "conceptRef", "element"]) or child_text(node_el, "elementRef")
        node_id = stripped_attr(node_el, ID_ATTRS) or element_ref
        if not node_id:
            auto_node += 1
            node_id = f"node-auto-{auto_node}"

        label = stripped_attr(node_el, ["label", "name"]) or child_text(node_el, "label") or child_text(node_el, "name") or ""
        meta: dict = {"source": SYSTEM}
        z_index = parse_number(attr_any(node_el, ["z", "zIndex", "order"]))
        if z_index is not None:
            meta["z_index"] = z_index

        if element_ref:
            kind = ViewNodeKind.ELEMENT
        else:
            kind, object_type = node_kind_from_type(get_type(node_el))
            meta["object_type"] = object_type

        nodes.append(
            IRViewNode(
                id=node_id,
                kind=kind,
                element_id=element_ref,
                parent_node_id=parent_node_id,
                label=label,
                bounds=parse_bounds(node_el),
                properties=parse_properties(node_el, property_names),
                tagged_values=parse_tagged_values(node_el),
                meta=meta,
            )
        )
        for child in children_by_local_name(node_el, "node"):
            parse_node(child, node_id)

    for child in children(view_el):
        if local_name(child) == "node":
            parse_node(child, None)
        elif local_name(child) == "nodes":
            for nested in children_by_local_name(child, "node"):
                parse_node(nested, None)

    connections: list[IRViewConnection] = []
    auto_conn = 0
    for conn_el in descendants(view_el, ["connection", "edge"]):
        relationship_ref = stripped_attr(conn_el, ["relationshipRef", "relationRef", "ref"]) or child_text(
            conn_el, "relationshipRef"
        )
        source_node = stripped_attr(conn_el, ["sourceNode", "sourceNodeRef", "sourceRef", "source"])
        target_node = stripped_attr(conn_el, ["targetNode", "targetNodeRef", "targetRef", "target"])
        if not relationship_ref and not source_node and not target_node:
            continue

        conn_id = stripped_attr(conn_el, ID_ATTRS)
        if not conn_id:
            auto_conn += 1
            conn_id = f"{relationship_ref}#{auto_conn}" if relationship_ref else f"conn-auto-{auto_conn}"

        connections.append(
            IRViewConnection(
                id=conn_id,
                relationship_id=relationship_ref,
                source_node_id=source_node,
                target_node_id=target_node,
                source_element_id=stripped_attr(conn_el, "sourceElementRef"),
                target_element_id=stripped_attr(conn_el, "targetElementRef"),
                label=child_text(conn_el, "label") or stripped_attr(conn_el, ["label", "name"]) or "",
                points=parse_points(conn_el),
                properties=parse_properties(conn_el, property_names),
                tagged_values=parse_tagged_values(conn_el),
                meta={"source": SYSTEM},
            )
        )

    meta: dict = {"source": SYSTEM}
    owner = orgs.ref_to_parent_ref.get(view_id)
    if owner:
        meta["owning_element_id"] = owner

    return IRView(
        id=view_id,
        name=stripped_attr(view_el, ["name", "label"]) or child_text(view_el, "name") or child_text(view_el, "label") or "View",
        folder_id=orgs.ref_to_folder.get(view_id),
        viewpoint=stripped_attr(view_el, ["viewpoint", "viewpointRef"]) or child_text(view_el, "viewpoint") or "",
        documentation=child_text(view_el, "documentation") or "",
        nodes=nodes,
        connections=connections,
        properties=parse_properties(view_el, property_names),
        tagged_values=parse_tagged_values(view_el),
        meta=meta,
    )


def parse_views(
    root: Element,
    report: ImportReport,
    orgs: OrganizationIndex,
    property_names: dict[str, str] | None = None,
) -> list[IRView]:
    views_root = find_first(root, ["views", "diagrams"])
    if views_root is None:
        return []

    views: list[IRView] = []
    seen: set[str] = set()
    auto_view = 0
    for view_el in descendants(views_root):
        if not _is_view_candidate(view_el):
            continue
        view_id = stripped_attr(view_el, ID_ATTRS)
        if not view_id:
            auto_view += 1
            view_id = f"view-auto-{auto_view}"
        if view_id in seen:
            continue
        seen.add(view_id)
        views.append(_parse_view(view_el, view_id, orgs, property_names))

    if not views:
        report.add_warning("MEFF: Found <views> section, but did not recognize any <view> / <diagram> entries.")
    return views
