"""Small conversions from IR records to domain records."""

from __future__ import annotations

from eaimport.apply.sink import ExternalIdRef, TaggedValue
from eaimport.ir.models import IRExternalId, IRTaggedValue, IRViewNode, ViewNodeKind

DEFAULT_VIEWPOINT = "layered"
BPMN_VIEWPOINT = "bpmn-process"

# Keyword -> UML diagram kind, checked in order.
UML_VIEWPOINT_KEYWORDS = [
    ("usecase", "usecase"),
    ("use case", "usecase"),
    ("sequence", "sequence"),
    ("activity", "activity"),
    ("statechart", "state"),
    ("state", "state"),
    ("component", "component"),
    ("deployment", "deployment"),
    ("package", "package"),
    ("object", "object"),
    ("logical", "class"),
    ("class", "class"),
]

ARCHIMATE_VIEWPOINTS = {
    "layered",
    "application cooperation",
    "application usage",
    "business process cooperation",
    "capability map",
    "goal realization",
    "implementation and deployment",
    "information structure",
    "motivation",
    "organization",
    "physical",
    "product",
    "requirements realization",
    "service realization",
    "stakeholder",
    "strategy",
    "technology",
    "technology usage",
}

OBJECT_TYPES = {"Label", "Note", "GroupBox"}


def to_external_ids(values: list[IRExternalId], source_system: str, ir_id: str) -> list[ExternalIdRef]:
    """IR external ids plus the (source_system, IR id) pair, which is always present."""
    out: list[ExternalIdRef] = []
    seen: set[tuple[str, str]] = set()
    for ext in values:
        ext_id = (ext.id or "").strip()
        if not ext_id:
            continue
        system = (ext.system or "").strip() or source_system
        if (system, ext_id) in seen:
            continue
        seen.add((system, ext_id))
        out.append(ExternalIdRef(system=system, id=ext_id))
    if ir_id and (source_system, ir_id) not in seen:
        out.append(ExternalIdRef(system=source_system, id=ir_id))
    return out


def to_tagged_values(values: list[IRTaggedValue], ns: str) -> list[TaggedValue]:
    return [TaggedValue(ns=ns, key=tv.key, value=tv.value) for tv in values if (tv.key or "").strip()]


def resolve_viewpoint(raw: str | None, model_kind: str = "archimate") -> str:
    """Map a source viewpoint/diagram type to a viewpoint id.

    'BPMN Process' -> 'bpmn-process', 'Logical' -> 'uml-class',
    'Application Cooperation' -> 'application-cooperation'. Anything
    unrecognised falls back to the notation default.
    """
    text = (raw or "").strip().lower()
    if text:
        if "bpmn" in text or text == "process" or "collaboration" in text or "choreography" in text:
            return BPMN_VIEWPOINT
        if text.startswith("uml-"):
            return text
        spaced = text.replace("_", " ").replace("-", " ")
        if spaced in ARCHIMATE_VIEWPOINTS:
            return spaced.replace(" ", "-")
        for keyword, kind in UML_VIEWPOINT_KEYWORDS:
            if keyword in spaced:
                return f"uml-{kind}"
    if model_kind == "bpmn":
        return BPMN_VIEWPOINT
    if model_kind == "uml":
        return "uml-class"
    return DEFAULT_VIEWPOINT


def object_type_for_node(node: IRViewNode) -> str:
    explicit = str(node.meta.get("object_type") or "").strip()
    if explicit in OBJECT_TYPES:
        return explicit
    if node.kind == ViewNodeKind.GROUP:
        return "GroupBox"
    if node.kind == ViewNodeKind.NOTE:
        return "Note"
    if node.kind in (ViewNodeKind.SHAPE, ViewNodeKind.IMAGE):
        return "Label"
    return "Label" if node.label else "Note"
