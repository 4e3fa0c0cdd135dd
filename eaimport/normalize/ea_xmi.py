"""EA XMI-specific normalization, run before the generic pass.

On top of the shared format repairs it links association classes to their
association relationship and tidies association end attributes. Diagram
node subjects given as EA GUIDs are resolved to element ids, and unbound
diagram connectors are bound to their relationship or to a stub. Activity diagrams assign
activity nodes to their activity; pools and lanes nest the BPMN nodes drawn
inside them.
"""

from __future__ import annotations

import copy
import math
import re

from eaimport.ir.models import IRBounds, IRModel, IRRelationship, IRViewNode
from eaimport.ir.report import ImportReport
from eaimport.normalize.shared import ExtensionTagLimits, normalize_format_ir

FORMAT_LABEL = "EA XMI"

ASSOCIATION_TYPES = {"uml.association", "uml.aggregation", "uml.composition"}
END_TEXT_ATTRS = ("source_role", "target_role", "source_multiplicity", "target_multiplicity")
END_BOOL_ATTRS = ("source_navigable", "target_navigable")

ACTIVITY_TYPE = "uml.activity"
ACTIVITY_NODE_TYPES = {
    "uml.action",
    "uml.initialNode",
    "uml.activityFinalNode",
    "uml.flowFinalNode",
    "uml.decisionNode",
    "uml.mergeNode",
    "uml.forkNode",
    "uml.joinNode",
    "uml.objectNode",
}


def coerce_bool(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    text = str(value or "").strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    return None


def ref_variants(ref: str) -> list[str]:
    """'{ABC-1}' -> ['{ABC-1}', 'ABC-1', '{abc-1}', 'abc-1'] (and the same from the unbraced side)."""
    raw = ref.strip()
    bare = raw[1:-1] if raw.startswith("{") and raw.endswith("}") else raw
    variants = []
    for candidate in (raw, bare, f"{{{bare}}}"):
        for v in (candidate, candidate.lower()):
            if v and v not in variants:
                variants.append(v)
    return variants


def link_association_classes(ir: IRModel) -> None:
    relationships = {r.id: r for r in ir.relationships}
    for element in ir.elements:
        if element.type != "uml.associationClass":
            continue
        rel = relationships.get(f"{element.id}__association")
        if rel is None:
            continue
        element.attrs["associationRelationshipId"] = rel.id
        rel.attrs["associationClassElementId"] = element.id


def normalize_association_ends(ir: IRModel) -> None:
    for rel in ir.relationships:
        if rel.type not in ASSOCIATION_TYPES:
            continue
        for key in END_TEXT_ATTRS:
            if key in rel.attrs:
                text = str(rel.attrs[key] or "").strip()
                if text:
                    rel.attrs[key] = text
                else:
                    del rel.attrs[key]
        for key in END_BOOL_ATTRS:
            if key in rel.attrs:
                value = coerce_bool(rel.attrs[key])
                if value is None:
                    del rel.attrs[key]
                else:
                    rel.attrs[key] = value


def resolve_node_element_refs(ir: IRModel) -> None:
    """Rewrite node element_ids that name an element by GUID or external id."""
    element_ids = {e.id for e in ir.elements}
    index: dict[str, str] = {}
    for element in ir.elements:
        for key in [element.id] + [ext.id for ext in element.external_ids if ext.id]:
            for variant in ref_variants(key):
                index.setdefault(variant, element.id)

    for view in ir.views:
        for node in view.nodes:
            if not node.element_id or node.element_id in element_ids:
                continue
            for variant in ref_variants(node.element_id):
                if variant in index:
                    node.element_id = index[variant]
                    break


# --- Diagram connector stubs ---

_EA_REF = re.compile(r"^(EAID_|\{?[0-9a-f]{8}-|[0-9a-f]{8,}$)", re.IGNORECASE)


def looks_like_ea_ref(ref: str) -> bool:
    """EAID_..., a bare hex id, or a GUID; generic strings never get a stub."""
    return bool(_EA_REF.match(ref))


def materialize_relationship_stubs(ir: IRModel, report: ImportReport | None = None) -> int:
    """Bind unbound diagram connectors to their relationship, adding a uml.dependency stub when it is missing.

    A stub needs an EA-style connector id and both endpoints on element
    nodes. When exactly one relationship already joins those elements the
    connector is left for endpoint resolution instead.
    """
    parsed = list(ir.relationships)
    index: dict[str, str] = {}
    for rel in parsed:
        for variant in ref_variants(rel.id):
            index.setdefault(variant, rel.id)
    element_ids = {e.id for e in ir.elements}

    added = 0
    for view in ir.views:
        node_elements = {n.id: n.element_id for n in view.nodes if n.element_id in element_ids}
        for conn in view.connections:
            subject = str(conn.meta.get("ea_subject") or "").strip()
            if conn.relationship_id or not subject:
                continue
            known = next((index[v] for v in ref_variants(subject) if v in index), None)
            if known:
                conn.relationship_id = known
                continue

            source = node_elements.get(conn.source_node_id or "")
            target = node_elements.get(conn.target_node_id or "")
            if not source or not target or not looks_like_ea_ref(subject):
                continue
            if len([r for r in parsed if r.source_id == source and r.target_id == target]) == 1:
                continue

            ir.relationships.append(
                IRRelationship(
                    id=subject,
                    type="uml.dependency",
                    source_id=source,
                    target_id=target,
                    meta={
                        "source": "diagram-connector-stub",
                        "stub": True,
                        "view_id": view.id,
                        "connection_id": conn.id,
                    },
                )
            )
            for variant in ref_variants(subject):
                index.setdefault(variant, subject)
            conn.relationship_id = subject
            added += 1

    if added and report is not None:
        report.add_info(
            f"{FORMAT_LABEL} normalize: Materialized {added} relationship stub(s) from diagram connectors.",
            code="ea-xmi:diagram-relationship-stubs",
        )
    return added


# --- UML activities ---


def _area(bounds: IRBounds | None) -> float:
    if bounds is None:
        return 0.0
    area = bounds.width * bounds.height
    return area if math.isfinite(area) else 0.0


def apply_activity_containment(ir: IRModel) -> None:
    """On activity diagrams, the largest uml.activity owns the activity nodes drawn with it.

    Nodes get attrs["activityId"] (first owner wins); the activity gets
    attrs["ownedNodeRefs"].
    """
    elements = {e.id: e for e in ir.elements}
    owned_by: dict[str, list[str]] = {}

    for view in ir.views:
        if "activity" not in (view.viewpoint or "").lower():
            continue
        candidates = [
            (n, elements[n.element_id])
            for n in view.nodes
            if n.element_id in elements and elements[n.element_id].type == ACTIVITY_TYPE
        ]
        if not candidates:
            continue
        # max() keeps the first of equal areas.
        activity = max(candidates, key=lambda pair: _area(pair[0].bounds))[1]

        owned = owned_by.setdefault(activity.id, [])
        for node in view.nodes:
            element = elements.get(node.element_id or "")
            if element is not None and element.type in ACTIVITY_NODE_TYPES and element.id not in owned:
                owned.append(element.id)

    for activity_id, owned in owned_by.items():
        if not owned:
            continue
        elements[activity_id].attrs["ownedNodeRefs"] = list(owned)
        for element_id in owned:
            elements[element_id].attrs.setdefault("activityId", activity_id)


# --- BPMN pools and lanes ---


def _contains(outer: IRBounds, inner: IRBounds) -> bool:
    return (
        outer.x <= inner.x
        and outer.y <= inner.y
        and outer.x + outer.width >= inner.x + inner.width
        and outer.y + outer.height >= inner.y + inner.height
    )


def _smallest_container(node: IRViewNode, containers: list[IRViewNode]) -> IRViewNode | None:
    best = None
    for container in containers:
        if container is node or not _contains(container.bounds, node.bounds):
            continue
        if best is None or _area(container.bounds) < _area(best.bounds):
            best = container
    return best


def apply_bpmn_containment(ir: IRModel) -> None:
    """Nest BPMN nodes in EA diagrams by geometry.

    A lane's parent is the smallest pool around it; other BPMN nodes sit in
    the smallest enclosing lane, else pool. Paint order (meta["z_order"])
    puts pools, then lanes, then other BPMN nodes before the rest.
    """
    types = {e.id: e.type for e in ir.elements}

    for view in ir.views:
        typed = [(n, types[n.element_id]) for n in view.nodes if n.bounds is not None and n.element_id in types]
        pools = [n for n, t in typed if t == "bpmn.pool"]
        lanes = [n for n, t in typed if t == "bpmn.lane"]
        if not pools and not lanes:
            continue

        for node, type_id in typed:
            if type_id == "bpmn.lane":
                parent = _smallest_container(node, pools)
            elif type_id.startswith("bpmn.") and type_id != "bpmn.pool":
                parent = _smallest_container(node, lanes) or _smallest_container(node, pools)
            else:
                continue
            if parent is not None:
                node.parent_node_id = parent.id

        def rank(node: IRViewNode) -> int:
            type_id = types.get(node.element_id or "", "")
            if type_id == "bpmn.pool":
                return 0
            if type_id == "bpmn.lane":
                return 1
            return 2 if type_id.startswith("bpmn.") else 3

        view.nodes = sorted(view.nodes, key=rank)
        for z, node in enumerate(view.nodes):
            node.meta["z_order"] = z


def normalize_ea_xmi_ir(
    ir: IRModel,
    report: ImportReport | None = None,
    limits: ExtensionTagLimits | None = None,
    drop_dangling_relationships: bool = True,
) -> IRModel:
    model = copy.deepcopy(ir)
    link_association_classes(model)
    normalize_association_ends(model)
    resolve_node_element_refs(model)
    materialize_relationship_stubs(model, report)
    apply_activity_containment(model)
    apply_bpmn_containment(model)
    return normalize_format_ir(
        model, report, FORMAT_LABEL, limits, drop_dangling_relationships=drop_dangling_relationships
    )
