"""In-memory ModelSink — keeps each created model as plain records in a dict."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from eaimport.apply.sink import (
    ElementRecord,
    FolderRecord,
    ModelMetadata,
    ModelSink,
    NodeLayout,
    RelationshipRecord,
    RelationshipRoute,
    ViewObjectRecord,
    ViewRecord,
)


@dataclass
class StoredFolder:
    id: str
    record: FolderRecord
    parent_id: str | None = None


@dataclass
class StoredNode:
    id: str
    element_id: str | None = None
    object: ViewObjectRecord | None = None
    layout: NodeLayout | None = None


@dataclass
class StoredView:
    id: str
    record: ViewRecord
    folder_id: str
    nodes: list[StoredNode] = field(default_factory=list)
    routes: list[RelationshipRoute] = field(default_factory=list)


@dataclass
class StoredModel:
    id: str
    metadata: ModelMetadata
    root_folder_id: str
    folders: dict[str, StoredFolder] = field(default_factory=dict)
    elements: dict[str, ElementRecord] = field(default_factory=dict)
    element_folders: dict[str, str] = field(default_factory=dict)
    relationships: dict[str, RelationshipRecord] = field(default_factory=dict)
    views: dict[str, StoredView] = field(default_factory=dict)


class InMemoryModelSink(ModelSink):
    """Reference sink. Ids are sequential per kind: 'model-1', 'el-3', ..."""

    def __init__(self):
        self.models: dict[str, StoredModel] = {}
        self._counters: dict[str, int] = {}

    def _next_id(self, prefix: str) -> str:
        self._counters[prefix] = self._counters.get(prefix, 0) + 1
        return f"{prefix}-{self._counters[prefix]}"

    def model(self, model_id: str) -> StoredModel:
        try:
            return self.models[model_id]
        except KeyError:
            raise KeyError(f"Unknown model: {model_id}") from None

    def _view(self, model_id: str, view_id: str) -> StoredView:
        views = self.model(model_id).views
        if view_id not in views:
            raise KeyError(f"Unknown view: {view_id}")
        return views[view_id]

    # --- Model ---

    def create_model(self, metadata: ModelMetadata) -> str:
        model_id = self._next_id("model")
        root = StoredFolder(id=self._next_id("folder"), record=FolderRecord(name="Model"))
        stored = StoredModel(id=model_id, metadata=copy.deepcopy(metadata), root_folder_id=root.id)
        stored.folders[root.id] = root
        self.models[model_id] = stored
        return model_id

    def root_folder_id(self, model_id: str) -> str:
        return self.model(model_id).root_folder_id

    def add_folder(self, model_id: str, record: FolderRecord, parent_id: str) -> str:
        model = self.model(model_id)
        if parent_id not in model.folders:
            raise KeyError(f"Unknown folder: {parent_id}")
        folder = StoredFolder(id=self._next_id("folder"), record=copy.deepcopy(record), parent_id=parent_id)
        model.folders[folder.id] = folder
        return folder.id

    # --- Elements and relationships ---

    def add_element(self, model_id: str, record: ElementRecord, folder_id: str) -> str:
        model = self.model(model_id)
        if folder_id not in model.folders:
            raise KeyError(f"Unknown folder: {folder_id}")
        element_id = self._next_id("el")
        model.elements[element_id] = copy.deepcopy(record)
        model.element_folders[element_id] = folder_id
        return element_id

    def update_element(
        self,
        model_id: str,
        element_id: str,
        parent_element_id: str | None = None,
        attrs: dict[str, Any] | None = None,
    ) -> None:
        model = self.model(model_id)
        if element_id not in model.elements:
            raise KeyError(f"Unknown element: {element_id}")
        element = model.elements[element_id]
        if parent_element_id is not None:
            if parent_element_id not in model.elements:
                raise KeyError(f"Unknown element: {parent_element_id}")
            element.parent_element_id = parent_element_id
        if attrs is not None:
            element.attrs = copy.deepcopy(attrs)

    def add_relationship(self, model_id: str, record: RelationshipRecord) -> str:
        model = self.model(model_id)
        for endpoint in (record.source_id, record.target_id):
            if endpoint not in model.elements:
                raise KeyError(f"Unknown element: {endpoint}")
        rel_id = self._next_id("rel")
        model.relationships[rel_id] = copy.deepcopy(record)
        return rel_id

    def update_relationship(self, model_id: str, relationship_id: str, attrs: dict[str, Any]) -> None:
        model = self.model(model_id)
        if relationship_id not in model.relationships:
            raise KeyError(f"Unknown relationship: {relationship_id}")
        model.relationships[relationship_id].attrs = copy.deepcopy(attrs)

    # --- Views ---

    def add_view(self, model_id: str, record: ViewRecord, folder_id: str) -> str:
        model = self.model(model_id)
        if folder_id not in model.folders:
            raise KeyError(f"Unknown folder: {folder_id}")
        view = StoredView(id=self._next_id("view"), record=copy.deepcopy(record), folder_id=folder_id)
        model.views[view.id] = view
        return view.id

    def add_element_to_view(
        self, model_id: str, view_id: str, element_id: str, layout: NodeLayout | None = None
    ) -> str:
        view = self._view(model_id, view_id)
        if element_id not in self.model(model_id).elements:
            raise KeyError(f"Unknown element: {element_id}")
        node = StoredNode(id=self._next_id("node"), element_id=element_id, layout=copy.deepcopy(layout))
        view.nodes.append(node)
        return node.id

    def add_view_object(
        self, model_id: str, view_id: str, obj: ViewObjectRecord, layout: NodeLayout | None = None
    ) -> str:
        view = self._view(model_id, view_id)
        node = StoredNode(id=self._next_id("obj"), object=copy.deepcopy(obj), layout=copy.deepcopy(layout))
        view.nodes.append(node)
        return node.id

    def set_relationship_routing(self, model_id: str, view_id: str, routes: list[RelationshipRoute]) -> None:
        view = self._view(model_id, view_id)
        relationships = self.model(model_id).relationships
        for route in routes:
            if route.relationship_id not in relationships:
                raise KeyError(f"Unknown relationship: {route.relationship_id}")
        view.routes = copy.deepcopy(routes)

    # --- Queries ---

    def elements(self, model_id: str) -> list[ElementRecord]:
        return list(self.model(model_id).elements.values())

    def relationships(self, model_id: str) -> list[RelationshipRecord]:
        return list(self.model(model_id).relationships.values())
