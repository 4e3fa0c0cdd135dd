"""Shared XMI lookups for the EA parser modules.

XmiDocument indexes a parsed export once (xmi:id index, parent map, the EA
<xmi:Extension> records) so each parsing step can resolve references without
rescanning the tree.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from xml.etree.ElementTree import Element

from eaimport.utils.xmlscan import (
    ancestors,
    attr,
    attr_any,
    child_by_local_name,
    child_text,
    children,
    children_by_local_name,
    descendants,
    local_name,
    namespace_uri,
    parent_map,
    stripped_attr,
    text_of,
)

SYSTEM = "sparx-ea"
FORMAT_LABEL = "EA XMI"

EA_GUID_ATTRS = ["ea_guid", "ea:guid", "guid"]
STEREOTYPE_ATTRS = ["stereotype", "stereotypes", "xmi:stereotype"]
DOC_ATTRS = ["documentation", "doc", "notes", "note"]
ARCHIMATE_PROFILE_URI = "sparxsystems.com/profiles/archimate"
BPMN_PROFILE_URI = "sparxsystems.com/profiles/bpmn"
PROFILE_URI = "sparxsystems.com/profiles/"

UML_ELEMENT_TYPES = {
    "Class": "uml.class",
    "Interface": "uml.interface",
    "Enumeration": "uml.enum",
    "Enum": "uml.enum",
    "DataType": "uml.datatype",
    "PrimitiveType": "uml.primitiveType",
    "Package": "uml.package",
    "Component": "uml.component",
    "Artifact": "uml.artifact",
    "Node": "uml.node",
    "Device": "uml.device",
    "ExecutionEnvironment": "uml.executionEnvironment",
    "Actor": "uml.actor",
    "UseCase": "uml.usecase",
    "Comment": "uml.note",
    "Note": "uml.note",
    "AssociationClass": "uml.associationClass",
    # Activities
    "Activity": "uml.activity",
    "Action": "uml.action",
    "OpaqueAction": "uml.action",
    "CallBehaviorAction": "uml.action",
    "SendSignalAction": "uml.action",
    "AcceptEventAction": "uml.action",
    "InitialNode": "uml.initialNode",
    "ActivityFinalNode": "uml.activityFinalNode",
    "FlowFinalNode": "uml.flowFinalNode",
    "DecisionNode": "uml.decisionNode",
    "MergeNode": "uml.mergeNode",
    "ForkNode": "uml.forkNode",
    "JoinNode": "uml.joinNode",
    "ObjectNode": "uml.objectNode",
    "CentralBufferNode": "uml.objectNode",
    "DataStoreNode": "uml.objectNode",
}

UML_RELATIONSHIP_TYPES = {
    "Association": "uml.association",
    "Dependency": "uml.dependency",
    "Generalization": "uml.generalization",
    "Realization": "uml.realization",
    "InterfaceRealization": "uml.realization",
    "Include": "uml.include",
    "Extend": "uml.extend",
    "Deployment": "uml.deployment",
    "CommunicationPath": "uml.communicationPath",
    "ControlFlow": "uml.controlFlow",
    "ObjectFlow": "uml.objectFlow",
}

_METACLASS_BY_LOWER = {k.lower(): k for k in list(UML_ELEMENT_TYPES) + list(UML_RELATIONSHIP_TYPES)}

_HREF_FRAGMENT = re.compile(r"#(.+)$")


@dataclass
class EaConnector:
    """A connector record from the EA extension (<connectors><connector>)."""

    id: str
    source: str | None = None
    target: str | None = None
    ea_type: str = ""
    stereotype: str = ""
    name: str = ""


@dataclass
class XmiDocument:
    root: Element
    parents: dict[Element, Element]
    by_id: dict[str, Element] = field(default_factory=dict)
    extensions: list[Element] = field(default_factory=list)
    in_extension: set[int] = field(default_factory=set)
    # EA extension <element xmi:idref> -> documentation / stereotype
    ea_docs: dict[str, str] = field(default_factory=dict)
    ea_stereotypes: dict[str, str] = field(default_factory=dict)
    connectors: dict[str, EaConnector] = field(default_factory=dict)
    # id() of a package element -> its folder id
    package_folders: dict[int, str] = field(default_factory=dict)

    def is_in_extension(self, el: Element) -> bool:
        return id(el) in self.in_extension

    def owning_package_folder(self, el: Element) -> str | None:
        """Folder of the nearest enclosing UML package, if any."""
        for ancestor in ancestors(el, self.parents):
            folder = self.package_folders.get(id(ancestor))
            if folder:
                return folder
        return None

    def model_elements(self):
        """Every element outside <xmi:Extension>."""
        for el in descendants(self.root):
            if not self.is_in_extension(el):
                yield el


def build_xmi_document(root: Element) -> XmiDocument:
    doc = XmiDocument(root=root, parents=parent_map(root))

    for el in root.iter():
        if not isinstance(el.tag, str):
            continue
        el_id = xmi_id(el)
        if el_id and el_id not in doc.by_id:
            doc.by_id[el_id] = el
        if local_name(el) == "extension" and ea_extender(el):
            doc.extensions.append(el)

    for ext in descendants(root, "extension"):
        for inner in ext.iter():
            doc.in_extension.add(id(inner))

    for ext in doc.extensions:
        _index_extension(doc, ext)
    return doc


def _index_extension(doc: XmiDocument, ext: Element) -> None:
    for record in descendants(ext, "element"):
        ref = stripped_attr(record, ["xmi:idref", "idref"])
        if not ref:
            continue
        props = child_by_local_name(record, "properties")
        if props is None:
            continue
        documentation = stripped_attr(props, "documentation")
        if documentation and ref not in doc.ea_docs:
            doc.ea_docs[ref] = documentation
        stereotype = stripped_attr(props, "stereotype")
        if stereotype and ref not in doc.ea_stereotypes:
            doc.ea_stereotypes[ref] = stereotype

    for connectors in descendants(ext, "connectors"):
        for record in children_by_local_name(connectors, "connector"):
            ref = stripped_attr(record, ["xmi:idref", "idref", "xmi:id"])
            if not ref or ref in doc.connectors:
                continue
            props = child_by_local_name(record, "properties")
            source = child_by_local_name(record, "source")
            target = child_by_local_name(record, "target")
            doc.connectors[ref] = EaConnector(
                id=ref,
                source=stripped_attr(source, ["xmi:idref", "idref"]) if source is not None else None,
                target=stripped_attr(target, ["xmi:idref", "idref"]) if target is not None else None,
                ea_type=(stripped_attr(props, "ea_type") or "") if props is not None else "",
                stereotype=(stripped_attr(props, "stereotype") or "") if props is not None else "",
                name=stripped_attr(record, "name") or "",
            )
            if props is not None and ref not in doc.ea_docs:
                documentation = stripped_attr(props, "documentation")
                if documentation:
                    doc.ea_docs[ref] = documentation


# --- Attribute helpers ---


def xmi_id(el: Element) -> str | None:
    return stripped_attr(el, "xmi:id")


def xmi_idref(el: Element) -> str | None:
    return stripped_attr(el, "xmi:idref")


def xmi_type(el: Element) -> str | None:
    return stripped_attr(el, "xmi:type")


def ea_guid(el: Element) -> str | None:
    return stripped_attr(el, EA_GUID_ATTRS)


def ea_extender(el: Element) -> bool:
    return "enterprise architect" in (attr(el, "extender") or "").lower()


def metaclass_of(el: Element) -> str | None:
    """UML metaclass from xmi:type ('uml:Class' -> 'Class'), else from the tag name."""
    raw = xmi_type(el)
    if raw:
        _, _, tail = raw.rpartition(":")
        return tail.strip() or None
    if is_sparx_profile(el):
        return None
    return _METACLASS_BY_LOWER.get(local_name(el))


def is_archimate_profile(el: Element) -> bool:
    return ARCHIMATE_PROFILE_URI in namespace_uri(el).lower()


def is_bpmn_profile(el: Element) -> bool:
    return BPMN_PROFILE_URI in namespace_uri(el).lower()


def is_sparx_profile(el: Element) -> bool:
    """Any EA stereotype application (ArchiMate, BPMN, ...); never a plain UML metaclass."""
    return PROFILE_URI in namespace_uri(el).lower()


def stereotype_of(el: Element, doc: XmiDocument | None = None) -> str | None:
    direct = stripped_attr(el, STEREOTYPE_ATTRS)
    if direct:
        return direct
    props = child_by_local_name(el, "properties")
    if props is not None:
        nested = stripped_attr(props, STEREOTYPE_ATTRS)
        if nested:
            return nested
    el_id = xmi_id(el)
    if doc is None or not el_id:
        return None
    if el_id in doc.ea_stereotypes:
        return doc.ea_stereotypes[el_id]
    connector = doc.connectors.get(el_id)
    return connector.stereotype if connector and connector.stereotype else None


def documentation_of(el: Element, doc: XmiDocument | None = None) -> str:
    """ownedComment/body, a direct <body>, a doc attribute, then the EA extension record."""
    for child in children(el):
        name = local_name(child)
        if name == "body":
            body = text_of(child)
            if body:
                return body
        if name in ("ownedcomment", "comment"):
            body = child_text(child, "body") or stripped_attr(child, "body")
            if body:
                return body

    attr_doc = stripped_attr(el, DOC_ATTRS)
    if attr_doc:
        return attr_doc
    props = child_by_local_name(el, "properties")
    if props is not None:
        prop_doc = stripped_attr(props, "documentation")
        if prop_doc:
            return prop_doc
    if doc is not None:
        el_id = xmi_id(el)
        if el_id and el_id in doc.ea_docs:
            return doc.ea_docs[el_id]
    return ""


def parse_id_ref_list(raw: str | None) -> list[str]:
    return [part for part in (raw or "").split() if part]


def href_fragment(href: str | None) -> str | None:
    match = _HREF_FRAGMENT.search((href or "").strip())
    return match.group(1) if match else None


def resolve_ref_ids(el: Element, key: str) -> list[str]:
    """Ids referenced by `key`: an attribute id list, or <key xmi:idref>/<key href="#id"> children."""
    direct = attr(el, key)
    if direct and direct.strip():
        return parse_id_ref_list(direct)

    refs = []
    for child in children_by_local_name(el, key):
        ref = xmi_idref(child) or href_fragment(attr(child, "href"))
        if ref:
            refs.append(ref)
    return refs


def type_ref_of(el: Element) -> str | None:
    """Classifier referenced by a typed element (type attribute or <type> child)."""
    direct = stripped_attr(el, "type")
    if direct:
        return href_fragment(direct) or direct
    child = child_by_local_name(el, "type")
    if child is not None:
        return xmi_idref(child) or href_fragment(attr(child, "href"))
    return None


def multiplicity_of(el: Element) -> str | None:
    """'lower' or 'lower..upper' from lowerValue/upperValue children."""

    def bound(name: str) -> str:
        child = child_by_local_name(el, name)
        if child is None:
            return ""
        return (attr_any(child, ["value", "body"]) or "").strip()

    lower, upper = bound("lowerValue"), bound("upperValue")
    if upper == "-1":
        upper = "*"
    if not lower and not upper:
        return None
    if not upper or lower == upper:
        return lower or upper
    return f"{lower or '0'}..{upper}"


def parse_bool(raw: str | None) -> bool | None:
    value = (raw or "").strip().lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    return None


def base_ref_of(el: Element) -> str | None:
    """The base_* reference of a stereotype application."""
    for key, value in el.attrib.items():
        name = key.rpartition("}")[2].lower()
        if (name == "base" or name.startswith("base_")) and value.strip():
            return value.strip()
    return None


def slug(text: str) -> str:
    s = re.sub(r"\s+", "-", (text or "").lower())
    return re.sub(r"[^a-z0-9_-]", "", s)[:40]


def is_uml_type(type_token: str) -> bool:
    return type_token.startswith("uml.")
