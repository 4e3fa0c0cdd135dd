"""BPMN 2.0 parser — builds IR from BPMN XML.

Flow nodes, flows and global definitions are collected anywhere under
<definitions>, so collaboration, process and subProcess nesting all work.
BPMNDI shapes and edges become views. When a file has no DI at all, a
simple grid layout view is generated so the import stays visible.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from xml.etree.ElementTree import Element

from eaimport.errors import StructuralParseError
from eaimport.ir.models import (
    IRBounds,
    IRElement,
    IRExternalId,
    IRModel,
    IRPoint,
    IRRelationship,
    IRView,
    IRViewConnection,
    IRViewNode,
    ImportFormat,
    ViewNodeKind,
)
from eaimport.ir.report import ImportReport
from eaimport.utils.xmlscan import (
    ancestors,
    attr,
    child_by_local_name,
    children,
    children_by_local_name,
    descendants,
    local_name,
    number_attr,
    parent_map,
    parse_xml,
    raw_local_name,
    stripped_attr,
    text_of,
)

logger = logging.getLogger(__name__)

SYSTEM = "bpmn2"
FORMAT_LABEL = "BPMN2"

NODE_TYPES = {
    # Global definitions referenced by events and flows
    "message": "bpmn.message",
    "signal": "bpmn.signal",
    "error": "bpmn.error",
    "escalation": "bpmn.escalation",
    # Containers
    "participant": "bpmn.pool",
    "lane": "bpmn.lane",
    # Activities
    "task": "bpmn.task",
    "usertask": "bpmn.userTask",
    "servicetask": "bpmn.serviceTask",
    "scripttask": "bpmn.scriptTask",
    "manualtask": "bpmn.manualTask",
    "callactivity": "bpmn.callActivity",
    "subprocess": "bpmn.subProcess",
    # Events
    "startevent": "bpmn.startEvent",
    "endevent": "bpmn.endEvent",
    "intermediatecatchevent": "bpmn.intermediateCatchEvent",
    "intermediatethrowevent": "bpmn.intermediateThrowEvent",
    "boundaryevent": "bpmn.boundaryEvent",
    # Gateways
    "exclusivegateway": "bpmn.gatewayExclusive",
    "parallelgateway": "bpmn.gatewayParallel",
    "inclusivegateway": "bpmn.gatewayInclusive",
    "eventbasedgateway": "bpmn.gatewayEventBased",
    # Artifacts
    "textannotation": "bpmn.textAnnotation",
    "dataobjectreference": "bpmn.dataObjectReference",
    "datastorereference": "bpmn.dataStoreReference",
    "group": "bpmn.group",
}

RELATIONSHIP_TYPES = {
    "sequenceflow": "bpmn.sequenceFlow",
    "messageflow": "bpmn.messageFlow",
    "association": "bpmn.association",
    "datainputassociation": "bpmn.dataInputAssociation",
    "dataoutputassociation": "bpmn.dataOutputAssociation",
}

# Present in real exports but not imported yet; reported once per type.
UNSUPPORTED_NODE_NAMES = [
    "sendTask",
    "receiveTask",
    "businessRuleTask",
    "complexGateway",
    "transaction",
    "eventSubProcess",
]

EVENT_KINDS = {
    "bpmn.startEvent": "start",
    "bpmn.endEvent": "end",
    "bpmn.intermediateCatchEvent": "intermediateCatch",
    "bpmn.intermediateThrowEvent": "intermediateThrow",
    "bpmn.boundaryEvent": "boundary",
}

# (definition local name, kind, ref attribute)
EVENT_DEFINITIONS = [
    ("timerEventDefinition", "timer", None),
    ("messageEventDefinition", "message", "messageRef"),
    ("signalEventDefinition", "signal", "signalRef"),
    ("errorEventDefinition", "error", "errorRef"),
    ("escalationEventDefinition", "escalation", "escalationRef"),
    ("conditionalEventDefinition", "conditional", None),
    ("linkEventDefinition", "link", None),
    ("terminateEventDefinition", "terminate", None),
]

CONTAINER_TYPES = {"bpmn.pool", "bpmn.lane"}

# Fallback grid for files without BPMNDI
AUTO_VIEW_ID = "bpmn2:auto"
AUTO_GRID_COLUMNS = 8
AUTO_CELL_WIDTH = 220
AUTO_CELL_HEIGHT = 140
AUTO_NODE_WIDTH = 140
AUTO_NODE_HEIGHT = 80


@dataclass
class _ParseState:
    defs: Element
    report: ImportReport
    parents: dict[Element, Element]
    elements: list[IRElement] = field(default_factory=list)
    relationships: list[IRRelationship] = field(default_factory=list)
    views: list[IRView] = field(default_factory=list)
    element_by_id: dict[str, IRElement] = field(default_factory=dict)
    relationship_by_id: dict[str, IRRelationship] = field(default_factory=dict)
    number_warnings: list[str] = field(default_factory=list)


def parse_bpmn2_xml(data: bytes | str) -> tuple[IRModel, ImportReport]:
    """Parse BPMN 2.0 XML into IR.

    Raises StructuralParseError for unreadable XML or a root other than <definitions>.
    """
    root = parse_xml(data, FORMAT_LABEL)
    if local_name(root) != "definitions":
        raise StructuralParseError(
            f"Not a BPMN 2.0 XML document: root element is <{local_name(root)}>, expected <definitions>.",
            format=FORMAT_LABEL,
        )

    report = ImportReport(source=SYSTEM)
    state = _ParseState(defs=root, report=report, parents=parent_map(root))

    _parse_elements(state)
    _parse_relationships(state)
    _parse_views(state)
    if not state.views:
        _add_auto_layout_view(state)

    for message in state.number_warnings:
        report.add_warning(f"{FORMAT_LABEL}: {message}", code="bpmn2:invalid-number")

    model = IRModel(
        elements=state.elements,
        relationships=state.relationships,
        views=state.views,
        meta={"format": ImportFormat.BPMN2.value, "source_system": SYSTEM},
    )
    logger.debug("Parsed BPMN2: %s", model.counts())
    return model, report


# --- Helpers ---


def default_name(type_id: str, element_id: str) -> str:
    short = type_id[len("bpmn.") :] if type_id.startswith("bpmn.") else type_id
    return f"{short} ({element_id})"


def extract_extension_tags(el: Element) -> list[dict[str, str]]:
    """Flatten <extensionElements> into key/value pairs.

    Vendor properties usually look like <x:property name=".." value=".."/>;
    anything else contributes its local name and text.
    """
    ext = child_by_local_name(el, "extensionElements")
    if ext is None:
        return []
    tags: list[dict[str, str]] = []
    for node in descendants(ext):
        name = stripped_attr(node, ["name", "key"])
        value = stripped_attr(node, "value")
        if name and value is not None:
            tags.append({"key": name, "value": value})
            continue
        if children(node):
            continue
        text = (node.text or "").strip()
        if text:
            tags.append({"key": raw_local_name(node), "value": text})
    return tags


def _meta_for(el: Element) -> dict:
    meta: dict = {"source_local_name": local_name(el)}
    tags = extract_extension_tags(el)
    if tags:
        meta["extension_elements"] = {"tags": tags}
    return meta


def _first_definition(el: Element, name: str) -> Element | None:
    return next(descendants(el, name), None)


def parse_event_attrs(el: Element, type_id: str) -> dict | None:
    """eventKind and eventDefinition attrs for event elements, else None."""
    event_kind = EVENT_KINDS.get(type_id)
    if event_kind is None:
        return None

    definition: dict = {"kind": "none"}
    for def_name, kind, ref_attr in EVENT_DEFINITIONS:
        def_el = _first_definition(el, def_name)
        if def_el is None:
            continue
        definition = {"kind": kind}
        if kind == "timer":
            for timer_field in ("timeDate", "timeDuration", "timeCycle"):
                value = text_of(child_by_local_name(def_el, timer_field))
                if value:
                    definition[timer_field] = value
        elif kind == "conditional":
            expr = child_by_local_name(def_el, "condition")
            if expr is None:
                expr = child_by_local_name(def_el, "conditionExpression")
            condition = text_of(expr)
            if condition:
                definition["conditionExpression"] = condition
        elif kind == "link":
            link_name = stripped_attr(def_el, "name")
            if link_name:
                definition["linkName"] = link_name
        elif ref_attr:
            ref = stripped_attr(def_el, ref_attr)
            if ref:
                definition[ref_attr] = ref
        break

    attrs: dict = {"eventKind": event_kind, "eventDefinition": definition}
    if event_kind == "boundary":
        # BPMN default is interrupting
        attrs["cancelActivity"] = (attr(el, "cancelActivity") or "").strip().lower() != "false"
        attached = stripped_attr(el, "attachedToRef")
        if attached:
            attrs["attachedToRef"] = attached
    return attrs


def _element_attrs(el: Element, type_id: str) -> dict:
    attrs = parse_event_attrs(el, type_id)
    if attrs is not None:
        return attrs

    attrs = {}
    if type_id == "bpmn.error":
        attrs = {"errorCode": stripped_attr(el, "errorCode"), "structureRef": stripped_attr(el, "structureRef")}
    elif type_id == "bpmn.escalation":
        attrs = {"escalationCode": stripped_attr(el, "escalationCode")}
    elif type_id == "bpmn.message":
        attrs = {"itemRef": stripped_attr(el, "itemRef")}
    elif type_id == "bpmn.pool":
        attrs = {"processRef": stripped_attr(el, "processRef")}
    elif type_id == "bpmn.lane":
        refs = [text_of(r) for r in children_by_local_name(el, "flowNodeRef")]
        attrs = {"flowNodeRefs": [r for r in refs if r]}
    elif type_id == "bpmn.dataObjectReference":
        attrs = {"dataObjectRef": stripped_attr(el, "dataObjectRef")}
    elif type_id == "bpmn.dataStoreReference":
        attrs = {"dataStoreRef": stripped_attr(el, "dataStoreRef")}
    return {k: v for k, v in attrs.items() if v}


def _enclosing_subprocess(el: Element, parents: dict[Element, Element]) -> str | None:
    for ancestor in ancestors(el, parents):
        if local_name(ancestor) == "subprocess":
            return stripped_attr(ancestor, "id")
    return None


# --- Elements ---


def _parse_elements(state: _ParseState) -> None:
    report = state.report
    for el in descendants(state.defs, NODE_TYPES.keys()):
        type_id = NODE_TYPES[local_name(el)]
        element_id = stripped_attr(el, "id")
        if not element_id:
            report.add_warning(f"Skipping BPMN element without @id (<{raw_local_name(el)}>)")
            continue
        if element_id in state.element_by_id:
            continue

        name = stripped_attr(el, "name") or default_name(type_id, element_id)
        element = IRElement(
            id=element_id,
            type=type_id,
            name=name,
            documentation=text_of(child_by_local_name(el, "documentation")),
            parent_element_id=_enclosing_subprocess(el, state.parents),
            attrs=_element_attrs(el, type_id),
            external_ids=[IRExternalId(id=element_id, system=SYSTEM, kind="element")],
            meta=_meta_for(el),
        )
        state.elements.append(element)
        state.element_by_id[element_id] = element

    for name in UNSUPPORTED_NODE_NAMES:
        if next(descendants(state.defs, name), None) is not None:
            report.add_warning(
                f"BPMN node type <{name}> is present but not supported yet (will be skipped).",
                code="bpmn2:unsupported-node",
            )


# --- Relationships ---


def _relationship_endpoints(el: Element, type_id: str, state: _ParseState) -> tuple[str, str]:
    source = stripped_attr(el, "sourceRef") or ""
    target = stripped_attr(el, "targetRef") or ""
    if source or type_id not in ("bpmn.dataInputAssociation", "bpmn.dataOutputAssociation"):
        return source, target

    # Data associations nest <sourceRef>/<targetRef> text instead of attributes.
    source = text_of(child_by_local_name(el, "sourceRef"))
    target = text_of(child_by_local_name(el, "targetRef"))
    owner = state.parents.get(el)
    owner_id = stripped_attr(owner, "id") if owner is not None else None
    if type_id == "bpmn.dataInputAssociation" and not target and owner_id:
        target = owner_id
    if type_id == "bpmn.dataOutputAssociation" and not source and owner_id:
        source = owner_id
    return source, target


def _parse_relationships(state: _ParseState) -> None:
    report = state.report
    reported_missing: set[str] = set()

    for el in descendants(state.defs, RELATIONSHIP_TYPES.keys()):
        type_id = RELATIONSHIP_TYPES[local_name(el)]
        rel_id = stripped_attr(el, "id")
        if not rel_id:
            report.add_warning(f"Skipping BPMN relationship without @id (<{raw_local_name(el)}>)")
            continue
        if rel_id in state.relationship_by_id:
            continue

        source, target = _relationship_endpoints(el, type_id, state)
        if not source or not target:
            report.add_warning(f"Skipping {type_id} ({rel_id}) because sourceRef/targetRef is missing.")
            continue

        if source not in state.element_by_id or target not in state.element_by_id:
            key = f"{type_id}:{source}->{target}"
            if key not in reported_missing:
                reported_missing.add(key)
                report.add_warning(
                    f"Skipping {type_id} ({rel_id}) because endpoint(s) were not imported "
                    f"(source={source}, target={target})."
                )
            continue

        attrs: dict = {}
        if type_id == "bpmn.sequenceFlow":
            condition = text_of(child_by_local_name(el, "conditionExpression"))
            if condition:
                attrs["conditionExpression"] = condition
        elif type_id == "bpmn.messageFlow":
            message_ref = stripped_attr(el, "messageRef")
            if message_ref:
                attrs["messageRef"] = message_ref

        relationship = IRRelationship(
            id=rel_id,
            type=type_id,
            source_id=source,
            target_id=target,
            name=stripped_attr(el, "name") or "",
            documentation=text_of(child_by_local_name(el, "documentation")),
            attrs=attrs,
            external_ids=[IRExternalId(id=rel_id, system=SYSTEM, kind="relationship")],
            meta=_meta_for(el),
        )
        state.relationships.append(relationship)
        state.relationship_by_id[rel_id] = relationship


# --- Views (BPMNDI) ---


def apply_z_order(nodes: list[IRViewNode], element_by_id: dict[str, IRElement]) -> list[IRViewNode]:
    """Pools and lanes first (larger behind smaller), then everything else by key.

    The resulting position is also kept in meta["z_order"] so later stages can
    restore it after reordering.
    """

    def sort_key(node: IRViewNode):
        element = element_by_id.get(node.element_id or "")
        is_container = element is not None and element.type in CONTAINER_TYPES
        area = 0.0
        if node.bounds is not None:
            area = max(0.0, node.bounds.width) * max(0.0, node.bounds.height)
        key = node.element_id or node.id
        if is_container:
            return (0, -area, key)
        return (1, 0.0, key)

    ordered = sorted(nodes, key=sort_key)
    for z, node in enumerate(ordered):
        node.meta["z_order"] = z
    return ordered


def _parse_bounds(shape: Element, context: str, warnings: list[str]) -> IRBounds | None:
    bounds_el = next(descendants(shape, "Bounds"), None)
    if bounds_el is None:
        return None
    values = [number_attr(bounds_el, n, warnings, context) for n in ("x", "y", "width", "height")]
    if any(v is None for v in values):
        return None
    x, y, width, height = values
    return IRBounds(x=x, y=y, width=width, height=height)


def _parse_waypoints(edge: Element, context: str, warnings: list[str]) -> list[IRPoint]:
    points = []
    for i, wp in enumerate(children_by_local_name(edge, "waypoint")):
        x = number_attr(wp, "x", warnings, f"{context} waypoint[{i}]")
        y = number_attr(wp, "y", warnings, f"{context} waypoint[{i}]")
        if x is None or y is None:
            continue
        points.append(IRPoint(x=x, y=y))
    return points if len(points) >= 2 else []


def _di_ref(edge: Element, name: str, node_ids: set[str]) -> str | None:
    # sourceElement/targetElement name the DI shape, not the model element.
    ref = stripped_attr(edge, name)
    return ref if ref in node_ids else None


def _parse_views(state: _ParseState) -> None:
    report = state.report
    warnings = state.number_warnings

    for index, diagram in enumerate(descendants(state.defs, "BPMNDiagram"), start=1):
        diagram_id = stripped_attr(diagram, "id")
        plane = child_by_local_name(diagram, "BPMNPlane")
        if plane is None:
            report.add_warning(f"BPMNDiagram {diagram_id or index} is missing BPMNPlane (skipped).")
            continue

        plane_ref = stripped_attr(plane, "bpmnElement")
        if diagram_id:
            view_id = diagram_id
        elif plane_ref:
            view_id = f"bpmndi:{plane_ref}"
        else:
            view_id = f"bpmndi:diagram:{index}"

        planed = state.element_by_id.get(plane_ref or "")
        name = stripped_attr(diagram, "name") or (planed.name if planed else "")
        if not name:
            name = f"Diagram ({plane_ref})" if plane_ref else f"Diagram {index}"

        nodes: list[IRViewNode] = []
        for shape in descendants(plane, "BPMNShape"):
            shape_id = stripped_attr(shape, "id")
            element_ref = stripped_attr(shape, "bpmnElement")
            bounds = _parse_bounds(shape, f"BPMNShape {shape_id or element_ref or '(no-id)'}", warnings)

            if not element_ref:
                # Not bound to a model element; keep it as a view-local note.
                if bounds is not None:
                    nodes.append(
                        IRViewNode(
                            id=shape_id or f"shape:{index}:{len(nodes) + 1}",
                            kind=ViewNodeKind.NOTE,
                            bounds=bounds,
                        )
                    )
                continue

            if element_ref not in state.element_by_id:
                report.add_warning(f"BPMNShape references unknown element '{element_ref}' (skipped).")
                continue

            nodes.append(
                IRViewNode(
                    id=shape_id or f"shape:{element_ref}",
                    kind=ViewNodeKind.ELEMENT,
                    element_id=element_ref,
                    bounds=bounds,
                )
            )

        node_ids = {n.id for n in nodes}
        connections: list[IRViewConnection] = []
        for edge in descendants(plane, "BPMNEdge"):
            edge_id = stripped_attr(edge, "id")
            rel_ref = stripped_attr(edge, "bpmnElement")
            if not rel_ref:
                continue
            if rel_ref not in state.relationship_by_id:
                report.add_warning(f"BPMNEdge references unknown relationship '{rel_ref}' (skipped).")
                continue
            connections.append(
                IRViewConnection(
                    id=edge_id or f"edge:{rel_ref}",
                    relationship_id=rel_ref,
                    source_node_id=_di_ref(edge, "sourceElement", node_ids),
                    target_node_id=_di_ref(edge, "targetElement", node_ids),
                    points=_parse_waypoints(edge, f"BPMNEdge {edge_id or rel_ref}", warnings),
                )
            )

        meta: dict = {"source_local_name": local_name(diagram)}
        if plane_ref:
            meta["plane_ref"] = plane_ref
        state.views.append(
            IRView(
                id=view_id,
                name=name,
                viewpoint="bpmn-process",
                nodes=apply_z_order(nodes, state.element_by_id),
                connections=connections,
                external_ids=[IRExternalId(id=view_id, system=SYSTEM, kind="diagram")],
                meta=meta,
            )
        )


def _add_auto_layout_view(state: _ParseState) -> None:
    if not state.elements:
        return

    nodes = [
        IRViewNode(
            id=f"auto:{e.id}",
            kind=ViewNodeKind.ELEMENT,
            element_id=e.id,
            bounds=IRBounds(
                x=(i % AUTO_GRID_COLUMNS) * AUTO_CELL_WIDTH,
                y=(i // AUTO_GRID_COLUMNS) * AUTO_CELL_HEIGHT,
                width=AUTO_NODE_WIDTH,
                height=AUTO_NODE_HEIGHT,
            ),
        )
        for i, e in enumerate(state.elements)
    ]
    connections = [IRViewConnection(id=f"auto:{r.id}", relationship_id=r.id) for r in state.relationships]

    state.views.append(
        IRView(
            id=AUTO_VIEW_ID,
            name="BPMN (auto layout)",
            viewpoint="bpmn-process",
            nodes=apply_z_order(nodes, state.element_by_id),
            connections=connections,
            external_ids=[IRExternalId(id=AUTO_VIEW_ID, system=SYSTEM, kind="diagram")],
            meta={"auto_layout": True},
        )
    )
