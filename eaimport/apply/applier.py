"""Apply stage — writes a normalized IR model into a ModelSink.

The IR keeps the ids of the source file; the sink mints its own. Every IR id
that gets applied ends up in IdMappings, and every IR reference (folder,
parent element, relationship endpoint, BPMN attribute ref, view node) is
translated through those mappings. Anything that cannot be translated is
skipped or cleared with an 'apply-import' warning. Only the failure to
allocate the model itself is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from eaimport.apply.helpers import object_type_for_node, resolve_viewpoint, to_external_ids, to_tagged_values
from eaimport.apply.sink import (
    ElementRecord,
    FolderRecord,
    ModelMetadata,
    ModelSink,
    NodeLayout,
    OwnerRef,
    RelationshipRecord,
    RelationshipRoute,
    UnknownType,
    ViewObjectRecord,
    ViewRecord,
)
from eaimport.errors import ModelAllocationError
from eaimport.ir.models import IRElement, IRFolder, IRModel, IRView, IRViewNode
from eaimport.ir.report import ImportReport
from eaimport.mapping.types import (
    UNKNOWN_TYPE,
    ResolvedType,
    TypeCategory,
    TypeKind,
    guess_layer,
    infer_model_kind,
    resolve_type,
)

logger = logging.getLogger(__name__)

APPLY_CODE = "apply-import"
UNKNOWN_TYPE_POLICIES = ("import-as-unknown", "skip")

# BPMN attrs holding element ids, rewritten to sink ids.
BPMN_REF_FIELDS = ("attachedToRef", "dataObjectRef", "dataStoreRef", "processRef")
BPMN_REF_LIST_FIELDS = ("flowNodeRefs",)
BPMN_EVENT_DEFINITION_REFS = ("messageRef", "signalRef", "errorRef", "escalationRef")

UML_MEMBER_TYPES = {"uml.class", "uml.associationClass", "uml.interface", "uml.datatype"}


@dataclass
class ApplyOptions:
    metadata: ModelMetadata | None = None
    source_system: str | None = None
    unknown_type_policy: str = "import-as-unknown"


@dataclass
class ViewNodeRef:
    kind: str  # "element" | "object"
    id: str


@dataclass
class IdMappings:
    """IR id -> sink id, per collection. view_nodes is keyed by IR view id first."""

    folders: dict[str, str] = field(default_factory=dict)
    elements: dict[str, str] = field(default_factory=dict)
    relationships: dict[str, str] = field(default_factory=dict)
    views: dict[str, str] = field(default_factory=dict)
    view_nodes: dict[str, dict[str, ViewNodeRef]] = field(default_factory=dict)

    def counts(self) -> dict[str, int]:
        return {
            "folders": len(self.folders),
            "elements": len(self.elements),
            "relationships": len(self.relationships),
            "views": len(self.views),
            "view_nodes": sum(len(nodes) for nodes in self.view_nodes.values()),
        }


@dataclass
class ApplyResult:
    model_id: str
    mappings: IdMappings
    report: ImportReport


def apply_import_ir(
    ir: IRModel,
    sink: ModelSink,
    report: ImportReport | None = None,
    options: ApplyOptions | None = None,
) -> ApplyResult:
    """Create a new model in the sink and populate it from the IR."""
    options = options or ApplyOptions()
    if options.unknown_type_policy not in UNKNOWN_TYPE_POLICIES:
        raise ValueError(f"Unknown type policy must be one of {UNKNOWN_TYPE_POLICIES}")
    report = report if report is not None else ImportReport(source=ir.format or "import")
    source_system = (
        (options.source_system or "").strip()
        or str(ir.meta.get("source_system") or "").strip()
        or ir.format
        or "import"
    )
    metadata = options.metadata or ModelMetadata(name=str(ir.meta.get("model_name") or "").strip() or "Imported model")

    try:
        model_id = sink.create_model(metadata)
        root_folder_id = sink.root_folder_id(model_id)
    except Exception as e:
        raise ModelAllocationError(f"Could not create model: {e}") from e

    applier = _Applier(ir, sink, model_id, root_folder_id, report, source_system, options.unknown_type_policy)
    applier.run()

    logger.info(
        "Applied import into %s: %s",
        model_id,
        ", ".join(f"{count} {name}" for name, count in applier.mappings.counts().items()),
    )
    return ApplyResult(model_id=model_id, mappings=applier.mappings, report=report)


class _Applier:
    def __init__(
        self,
        ir: IRModel,
        sink: ModelSink,
        model_id: str,
        root_folder_id: str,
        report: ImportReport,
        source_system: str,
        unknown_type_policy: str,
    ):
        self.ir = ir
        self.sink = sink
        self.model_id = model_id
        self.root_folder_id = root_folder_id
        self.report = report
        self.source_system = source_system
        self.unknown_type_policy = unknown_type_policy
        self.mappings = IdMappings()
        self.folders_by_id: dict[str, IRFolder] = {f.id: f for f in ir.folders if f.id}
        self.element_kinds: dict[str, str] = {}
        self.model_kind = infer_model_kind([e.meta.get("source_type") or e.type for e in ir.elements])

    def warn(self, message: str, error: Exception | None = None) -> None:
        if error is not None:
            logger.debug("%s", message, exc_info=error)
        self.report.add_warning(message, code=APPLY_CODE)

    def run(self) -> None:
        for folder in self.ir.folders:
            if folder.id:
                self.ensure_folder(folder.id)
        self.apply_elements()
        self.apply_relationships()
        self.apply_views()
        self.finalize()

    # --- Folders ---

    def ensure_folder(self, ir_id: str, visiting: frozenset[str] = frozenset()) -> str:
        """Sink id of an IR folder, creating it (and its ancestors) on first use."""
        if ir_id in self.mappings.folders:
            return self.mappings.folders[ir_id]

        folder = self.folders_by_id.get(ir_id)
        if folder is None:
            self.warn(f'Import: folder "{ir_id}" is referenced as a parent but not defined (placeholder created at root)')
            record = FolderRecord(
                name=ir_id,
                external_ids=to_external_ids([], self.source_system, ir_id),
            )
            parent_id = self.root_folder_id
        else:
            parent_id = self.root_folder_id
            if folder.parent_id and folder.parent_id != ir_id and folder.parent_id not in visiting:
                parent_id = self.ensure_folder(folder.parent_id, visiting | {ir_id})
            record = FolderRecord(
                name=folder.name,
                documentation=folder.documentation,
                external_ids=to_external_ids(folder.external_ids, self.source_system, folder.id),
                tagged_values=to_tagged_values(folder.tagged_values, self.source_system),
            )

        try:
            created = self.sink.add_folder(self.model_id, record, parent_id)
        except Exception as e:
            self.warn(f'Failed to add folder "{record.name}": {e}', e)
            created = self.root_folder_id
        self.mappings.folders[ir_id] = created
        return created

    def folder_for(self, ir_folder_id: str | None, owner: str) -> str:
        if not ir_folder_id:
            return self.root_folder_id
        if ir_folder_id in self.mappings.folders:
            return self.mappings.folders[ir_folder_id]
        self.warn(f'{owner} references missing folder "{ir_folder_id}" (placed at root)')
        return self.root_folder_id

    # --- Elements ---

    def apply_elements(self) -> None:
        created: list[IRElement] = []

        # First pass: every element gets its sink id before any reference is mapped.
        for element in self.ir.elements:
            if not element.id:
                continue
            token = str(element.meta.get("source_type") or element.type or "")
            resolved = resolve_type(token, TypeCategory.ELEMENT)
            if resolved.is_unknown and self.unknown_type_policy == "skip":
                self.warn(f'Skipped element with unknown type "{token or UNKNOWN_TYPE}": {element.name or element.id}')
                continue

            attrs = dict(element.attrs)
            members = element.meta.get("uml_members")
            if resolved.type in UML_MEMBER_TYPES and isinstance(members, dict):
                attrs.update(members)

            record = ElementRecord(
                name=element.name,
                type=resolved.type,
                layer=self.layer_for(resolved, token),
                documentation=element.documentation,
                attrs=attrs,
                properties=dict(element.properties),
                external_ids=to_external_ids(element.external_ids, self.source_system, element.id),
                tagged_values=to_tagged_values(element.tagged_values, self.source_system),
                unknown_type=UnknownType(ns=self.source_system, name=token or UNKNOWN_TYPE)
                if resolved.is_unknown
                else None,
            )
            folder_id = self.folder_for(element.folder_id, f'Element "{element.name}"')
            try:
                self.mappings.elements[element.id] = self.sink.add_element(self.model_id, record, folder_id)
            except Exception as e:
                self.warn(f'Failed to add element "{element.name or element.id}": {e}', e)
                continue
            self.element_kinds[element.id] = resolved.kind.value
            created.append(element)

        # Second pass: containment and attribute refs.
        for element in created:
            parent_id = self.map_parent(element)
            attrs = None
            if self.element_kinds[element.id] == TypeKind.BPMN.value:
                attrs = self.rewrite_bpmn_attrs(element)
            if parent_id is None and attrs is None:
                continue
            try:
                self.sink.update_element(
                    self.model_id, self.mappings.elements[element.id], parent_element_id=parent_id, attrs=attrs
                )
            except Exception as e:
                self.warn(f'Failed to update element "{element.name or element.id}": {e}', e)

    def layer_for(self, resolved: ResolvedType, token: str) -> str | None:
        if resolved.kind == TypeKind.ARCHIMATE:
            return guess_layer(resolved.type)
        if resolved.kind == TypeKind.UNKNOWN:
            return guess_layer(token)
        return None

    def map_parent(self, element: IRElement) -> str | None:
        ref = element.parent_element_id
        if not ref:
            return None
        mapped = self.mappings.elements.get(ref)
        if mapped is None:
            self.warn(f'Import: element "{element.name}" references missing parentElementId "{ref}" (cleared)')
        return mapped

    def rewrite_bpmn_attrs(self, element: IRElement) -> dict[str, Any] | None:
        """Copy of the element's attrs with element refs mapped; None when there is nothing to map."""
        attrs = dict(element.attrs)
        unresolved: dict[str, Any] = {}
        changed = False

        def map_ref(field_name: str, ref: Any) -> str | None:
            text = str(ref).strip() if ref is not None else ""
            if not text:
                return None
            mapped = self.mappings.elements.get(text)
            if mapped is None:
                self.warn(f'BPMN: element "{element.name}" has unresolved reference {field_name}="{text}" (cleared)')
                unresolved[field_name] = text
            return mapped

        for name in BPMN_REF_FIELDS:
            if attrs.get(name):
                changed = True
                mapped = map_ref(name, attrs[name])
                if mapped is None:
                    del attrs[name]
                else:
                    attrs[name] = mapped

        for name in BPMN_REF_LIST_FIELDS:
            refs = attrs.get(name)
            if isinstance(refs, list):
                changed = True
                mapped_refs = []
                missing = []
                for ref in refs:
                    mapped = self.mappings.elements.get(str(ref).strip())
                    if mapped is None:
                        missing.append(ref)
                    else:
                        mapped_refs.append(mapped)
                attrs[name] = mapped_refs
                if missing:
                    self.warn(
                        f'BPMN: element "{element.name}" has unresolved reference {name}="{", ".join(map(str, missing))}" '
                        "(cleared)"
                    )
                    unresolved[name] = missing

        definition = attrs.get("eventDefinition")
        if isinstance(definition, dict):
            definition = dict(definition)
            for name in BPMN_EVENT_DEFINITION_REFS:
                if definition.get(name):
                    changed = True
                    mapped = map_ref(f"eventDefinition.{name}", definition[name])
                    if mapped is None:
                        del definition[name]
                    else:
                        definition[name] = mapped
            attrs["eventDefinition"] = definition

        if not changed:
            return None
        if unresolved:
            attrs["unresolvedRefs"] = unresolved
        return attrs

    # --- Relationships ---

    def apply_relationships(self) -> None:
        association_classes: list[tuple[str, str]] = []
        for rel in self.ir.relationships:
            if not rel.id:
                continue
            token = str(rel.meta.get("source_type") or rel.type or "")
            resolved = resolve_type(token, TypeCategory.RELATIONSHIP)
            if resolved.is_unknown and self.unknown_type_policy == "skip":
                self.warn(f'Skipped relationship with unknown type "{token or UNKNOWN_TYPE}": {rel.name or rel.id}')
                continue

            source = self.mappings.elements.get(rel.source_id)
            target = self.mappings.elements.get(rel.target_id)
            if source is None or target is None:
                self.warn(
                    f'Skipped relationship "{rel.name or rel.id}" because an endpoint was not imported '
                    f'(source: "{rel.source_id}", target: "{rel.target_id}")'
                )
                continue

            attrs = dict(rel.attrs)
            class_ref = attrs.get("associationClassElementId")
            if class_ref:
                mapped = self.mappings.elements.get(str(class_ref))
                if mapped is None:
                    del attrs["associationClassElementId"]
                else:
                    attrs["associationClassElementId"] = mapped

            record = RelationshipRecord(
                type=resolved.type,
                source_id=source,
                target_id=target,
                name=rel.name,
                documentation=rel.documentation,
                attrs=attrs,
                properties=dict(rel.properties),
                external_ids=to_external_ids(rel.external_ids, self.source_system, rel.id),
                tagged_values=to_tagged_values(rel.tagged_values, self.source_system),
                unknown_type=UnknownType(ns=self.source_system, name=token or UNKNOWN_TYPE)
                if resolved.is_unknown
                else None,
            )
            try:
                self.mappings.relationships[rel.id] = self.sink.add_relationship(self.model_id, record)
            except Exception as e:
                self.warn(f'Failed to add relationship "{rel.name or rel.id}": {e}', e)

        for element in self.ir.elements:
            ref = element.attrs.get("associationRelationshipId")
            if ref and element.id in self.mappings.elements:
                association_classes.append((element.id, str(ref)))
        for element_id, rel_ref in association_classes:
            self.link_association_class(element_id, rel_ref)

    def link_association_class(self, element_id: str, rel_ref: str) -> None:
        element = self.ir.element_by_id(element_id)
        attrs = dict(element.attrs) if element is not None else {}
        if element is not None and element.type in UML_MEMBER_TYPES and isinstance(element.meta.get("uml_members"), dict):
            attrs.update(element.meta["uml_members"])
        mapped = self.mappings.relationships.get(rel_ref)
        if mapped is None:
            attrs.pop("associationRelationshipId", None)
        else:
            attrs["associationRelationshipId"] = mapped
        try:
            self.sink.update_element(self.model_id, self.mappings.elements[element_id], attrs=attrs)
        except Exception as e:
            self.warn(f'Failed to link association class "{element_id}": {e}', e)

    # --- Views ---

    def apply_views(self) -> None:
        for view in self.ir.views:
            if not view.id:
                continue
            try:
                self.apply_view(view)
            except Exception as e:
                self.warn(f'Failed to add view "{view.name or view.id}": {e}', e)

    def view_kind(self, view: IRView) -> str:
        kinds = [self.element_kinds[n.element_id] for n in view.nodes if n.element_id in self.element_kinds]
        for kind in (TypeKind.BPMN.value, TypeKind.UML.value, TypeKind.ARCHIMATE.value):
            if kind in kinds:
                return kind
        return self.model_kind

    def apply_view(self, view: IRView) -> None:
        kind = self.view_kind(view)
        owner_ref = None
        owner = str(view.meta.get("owning_element_id") or "").strip()
        if owner:
            if owner in self.mappings.elements:
                owner_ref = OwnerRef(kind=self.element_kinds.get(owner, kind), id=self.mappings.elements[owner])
            else:
                self.warn(f'View "{view.name}" references missing owning element "{owner}" (cleared)')

        record = ViewRecord(
            name=view.name,
            kind=kind,
            viewpoint_id=resolve_viewpoint(view.viewpoint, kind),
            documentation=view.documentation,
            owner_ref=owner_ref,
            external_ids=to_external_ids(view.external_ids, self.source_system, view.id),
            tagged_values=to_tagged_values(view.tagged_values, self.source_system),
        )
        view_id = self.sink.add_view(self.model_id, record, self.folder_for(view.folder_id, f'View "{view.name}"'))
        self.mappings.views[view.id] = view_id
        node_refs = self.mappings.view_nodes.setdefault(view.id, {})

        for z_index, node in enumerate(ordered_nodes(view.nodes)):
            ref = self.apply_node(view, view_id, node, z_index)
            if ref is not None:
                node_refs[node.id] = ref

        routes: list[RelationshipRoute] = []
        for conn in view.connections:
            if not conn.relationship_id:
                continue
            mapped = self.mappings.relationships.get(conn.relationship_id)
            if mapped is None:
                self.warn(f'View "{view.name}" references missing relationship "{conn.relationship_id}" (skipped connection)')
                continue
            routes.append(RelationshipRoute(relationship_id=mapped, points=list(conn.points)))
        if routes:
            try:
                self.sink.set_relationship_routing(self.model_id, view_id, routes)
            except Exception as e:
                self.warn(f'Failed to set connection routing for view "{view.name}": {e}', e)

    def apply_node(self, view: IRView, view_id: str, node: IRViewNode, z_index: int) -> ViewNodeRef | None:
        layout = None
        if node.bounds is not None:
            b = node.bounds
            layout = NodeLayout(x=b.x, y=b.y, width=b.width, height=b.height, z_index=z_index)

        try:
            if node.element_id:
                element_id = self.mappings.elements.get(node.element_id)
                if element_id is None:
                    self.warn(f'View "{view.name}" references missing element "{node.element_id}" (skipped node)')
                    return None
                return ViewNodeRef(
                    kind="element", id=self.sink.add_element_to_view(self.model_id, view_id, element_id, layout)
                )
            obj = ViewObjectRecord(type=object_type_for_node(node), text=node.label)
            return ViewNodeRef(kind="object", id=self.sink.add_view_object(self.model_id, view_id, obj, layout))
        except Exception as e:
            self.warn(f'Failed to add node "{node.id}" to view "{view.name}": {e}', e)
            return None

    # --- Finalize ---

    def finalize(self) -> None:
        element_counts: dict[str, int] = {}
        relationship_counts: dict[str, int] = {}
        for records, counts in (
            (self.sink.elements(self.model_id), element_counts),
            (self.sink.relationships(self.model_id), relationship_counts),
        ):
            for record in records:
                if record.type != UNKNOWN_TYPE:
                    continue
                unknown = record.unknown_type or UnknownType(ns=self.source_system, name=UNKNOWN_TYPE)
                key = f"{unknown.ns}:{unknown.name}"
                counts[key] = counts.get(key, 0) + 1
        self.report.merge_unknown_counts(element_counts, relationship_counts)


def ordered_nodes(nodes: list[IRViewNode]) -> list[IRViewNode]:
    """Nodes in paint order: by meta["z_order"] where given, otherwise as listed."""
    indexed = list(enumerate(nodes))

    def key(item: tuple[int, IRViewNode]) -> tuple[int, int]:
        position, node = item
        z = node.meta.get("z_order")
        return (z if isinstance(z, int) else position, position)

    return [node for _, node in sorted(indexed, key=key)]
