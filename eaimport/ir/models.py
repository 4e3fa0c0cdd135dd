"""IR data models — the format-agnostic shape every import stage shares.

A parser produces an IRModel that may be malformed (source exports are
frequently defective). Normalizers return repaired copies, and the apply
stage reads the final copy to create domain objects.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ViewNodeKind(Enum):
    ELEMENT = "element"  # Bound to a model element
    GROUP = "group"
    NOTE = "note"
    IMAGE = "image"
    SHAPE = "shape"
    OTHER = "other"


class ImportFormat(Enum):
    BPMN2 = "bpmn2"
    ARCHIMATE_MEFF = "archimate-meff"
    EA_XMI_UML = "ea-xmi-uml"


# --- Leaf value objects ---


@dataclass
class IRTaggedValue:
    key: str
    value: str


@dataclass
class IRExternalId:
    """An identifier for the same object in another system."""

    id: str
    system: str = ""
    kind: str = ""


@dataclass
class IRBounds:
    x: float
    y: float
    width: float
    height: float


@dataclass
class IRPoint:
    x: float
    y: float


# --- Core IR Nodes ---


@dataclass
class IRFolder:
    """A folder (package, organization item) in the model tree."""

    id: str
    name: str = ""
    parent_id: str | None = None
    documentation: str = ""
    properties: dict[str, str] = field(default_factory=dict)
    tagged_values: list[IRTaggedValue] = field(default_factory=list)
    external_ids: list[IRExternalId] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class IRElement:
    """A model element. `type` is the dialect token, not yet resolved."""

    id: str
    type: str
    name: str = ""
    folder_id: str | None = None
    documentation: str = ""
    parent_element_id: str | None = None  # Containment (subProcess, organizations)
    attrs: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, str] = field(default_factory=dict)
    tagged_values: list[IRTaggedValue] = field(default_factory=list)
    external_ids: list[IRExternalId] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class IRRelationship:
    """A directed relationship between two elements."""

    id: str
    type: str
    source_id: str
    target_id: str
    name: str = ""
    documentation: str = ""
    attrs: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, str] = field(default_factory=dict)
    tagged_values: list[IRTaggedValue] = field(default_factory=list)
    external_ids: list[IRExternalId] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class IRViewNode:
    """A shape on a diagram, optionally bound to an element."""

    id: str
    kind: ViewNodeKind = ViewNodeKind.OTHER
    element_id: str | None = None
    parent_node_id: str | None = None
    label: str = ""
    bounds: IRBounds | None = None
    properties: dict[str, str] = field(default_factory=dict)
    tagged_values: list[IRTaggedValue] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class IRViewConnection:
    """An edge on a diagram, optionally bound to a relationship."""

    id: str
    relationship_id: str | None = None
    source_node_id: str | None = None
    target_node_id: str | None = None
    source_element_id: str | None = None
    target_element_id: str | None = None
    label: str = ""
    points: list[IRPoint] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)
    tagged_values: list[IRTaggedValue] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class IRView:
    """A diagram with its nodes and connections."""

    id: str
    name: str = ""
    folder_id: str | None = None
    viewpoint: str = ""
    documentation: str = ""
    nodes: list[IRViewNode] = field(default_factory=list)
    connections: list[IRViewConnection] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)
    tagged_values: list[IRTaggedValue] = field(default_factory=list)
    external_ids: list[IRExternalId] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    def node_by_id(self, node_id: str | None) -> IRViewNode | None:
        if not node_id:
            return None
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


@dataclass
class IRModel:
    """The complete intermediate representation of one imported file."""

    folders: list[IRFolder] = field(default_factory=list)
    elements: list[IRElement] = field(default_factory=list)
    relationships: list[IRRelationship] = field(default_factory=list)
    views: list[IRView] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def format(self) -> str:
        return str(self.meta.get("format", "") or "")

    @property
    def element_ids(self) -> set[str]:
        return {e.id for e in self.elements}

    def element_by_id(self, element_id: str) -> IRElement | None:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def counts(self) -> dict[str, int]:
        return {
            "folders": len(self.folders),
            "elements": len(self.elements),
            "relationships": len(self.relationships),
            "views": len(self.views),
            "nodes": sum(len(v.nodes) for v in self.views),
            "connections": sum(len(v.connections) for v in self.views),
        }


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def model_to_dict(ir: IRModel) -> dict[str, Any]:
    """JSON-ready dict of the whole model (enums as their values)."""
    return _plain(asdict(ir))
