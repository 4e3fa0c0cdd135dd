"""Model sink — the port the apply stage writes domain objects through.

The apply stage never touches a concrete store. It receives a ModelSink,
allocates one model with create_model(), and addresses every later call to
that model id. Implementations decide how ids are minted and where records
live; InMemoryModelSink is the reference implementation used by the CLI,
the web API and the tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable

from eaimport.ir.models import IRPoint

# --- Domain records ---


@dataclass
class ModelMetadata:
    name: str = "Imported model"
    description: str = ""


@dataclass
class ExternalIdRef:
    system: str
    id: str


@dataclass
class TaggedValue:
    ns: str
    key: str
    value: str


@dataclass
class UnknownType:
    """The original token of a type the palette does not know."""

    ns: str
    name: str


@dataclass
class FolderRecord:
    name: str
    documentation: str = ""
    external_ids: list[ExternalIdRef] = field(default_factory=list)
    tagged_values: list[TaggedValue] = field(default_factory=list)


@dataclass
class ElementRecord:
    name: str
    type: str  # ArchiMate palette name, bpmn.*/uml.* token, or "Unknown"
    layer: str | None = None
    documentation: str = ""
    parent_element_id: str | None = None
    attrs: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, str] = field(default_factory=dict)
    external_ids: list[ExternalIdRef] = field(default_factory=list)
    tagged_values: list[TaggedValue] = field(default_factory=list)
    unknown_type: UnknownType | None = None


@dataclass
class RelationshipRecord:
    type: str
    source_id: str
    target_id: str
    name: str = ""
    documentation: str = ""
    attrs: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, str] = field(default_factory=dict)
    external_ids: list[ExternalIdRef] = field(default_factory=list)
    tagged_values: list[TaggedValue] = field(default_factory=list)
    unknown_type: UnknownType | None = None


@dataclass
class OwnerRef:
    kind: str
    id: str


@dataclass
class ViewRecord:
    name: str
    kind: str  # archimate | bpmn | uml
    viewpoint_id: str = "layered"
    documentation: str = ""
    owner_ref: OwnerRef | None = None
    external_ids: list[ExternalIdRef] = field(default_factory=list)
    tagged_values: list[TaggedValue] = field(default_factory=list)


@dataclass
class NodeLayout:
    x: float
    y: float
    width: float
    height: float
    z_index: int | None = None


@dataclass
class ViewObjectRecord:
    type: str  # Label | Note | GroupBox
    text: str = ""


@dataclass
class RelationshipRoute:
    relationship_id: str
    points: list[IRPoint] = field(default_factory=list)


# --- Port ---


class ModelSink(ABC):
    """Abstract write interface for the domain model store."""

    @abstractmethod
    def create_model(self, metadata: ModelMetadata) -> str:
        """Allocate a new empty model and return its id.

        Raises any exception on failure; the caller treats that as fatal.
        """

    @abstractmethod
    def root_folder_id(self, model_id: str) -> str:
        """Id of the model's root folder."""

    @abstractmethod
    def add_folder(self, model_id: str, record: FolderRecord, parent_id: str) -> str:
        ...

    @abstractmethod
    def add_element(self, model_id: str, record: ElementRecord, folder_id: str) -> str:
        ...

    @abstractmethod
    def update_element(
        self,
        model_id: str,
        element_id: str,
        parent_element_id: str | None = None,
        attrs: dict[str, Any] | None = None,
    ) -> None:
        """Set containment and/or replace attrs on an existing element."""

    @abstractmethod
    def add_relationship(self, model_id: str, record: RelationshipRecord) -> str:
        ...

    @abstractmethod
    def update_relationship(self, model_id: str, relationship_id: str, attrs: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def add_view(self, model_id: str, record: ViewRecord, folder_id: str) -> str:
        ...

    @abstractmethod
    def add_element_to_view(
        self, model_id: str, view_id: str, element_id: str, layout: NodeLayout | None = None
    ) -> str:
        """Place an element on a view and return the id of the new node."""

    @abstractmethod
    def add_view_object(
        self, model_id: str, view_id: str, obj: ViewObjectRecord, layout: NodeLayout | None = None
    ) -> str:
        """Add a free-standing object (label, note, group box) and return its id."""

    @abstractmethod
    def set_relationship_routing(self, model_id: str, view_id: str, routes: list[RelationshipRoute]) -> None:
        """Replace the explicit relationship routing of a view in one batch."""

    @abstractmethod
    def elements(self, model_id: str) -> Iterable[ElementRecord]:
        ...

    @abstractmethod
    def relationships(self, model_id: str) -> Iterable[RelationshipRecord]:
        ...
