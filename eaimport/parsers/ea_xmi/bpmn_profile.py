"""EA BPMN 2.0 profile applications -> bpmn.* elements and relationships.

EA keeps BPMN modelling as stereotype applications in its BPMN profile
namespace, e.g. <BPMN2.0:Activity base_Activity="EAID_..."/>. The tag's local
name gives the type, using the BPMN 2.0 parser's tables plus the names only
EA uses (Pool, Gateway, DataObject, ...).
"""

from __future__ import annotations

from xml.etree.ElementTree import Element

from eaimport.ir.models import IRElement, IRExternalId, IRRelationship, IRTaggedValue
from eaimport.ir.report import ImportReport
from eaimport.mapping.types import UNKNOWN_TYPE
from eaimport.parsers.bpmn2 import NODE_TYPES, RELATIONSHIP_TYPES
from eaimport.parsers.ea_xmi.common import (
    SYSTEM,
    XmiDocument,
    base_ref_of,
    documentation_of,
    ea_guid,
    is_bpmn_profile,
    resolve_ref_ids,
    stereotype_of,
    xmi_id,
)
from eaimport.parsers.ea_xmi.relationships import Endpoints
from eaimport.utils.xmlscan import local_name, namespace_uri, raw_local_name, stripped_attr

EA_ELEMENT_TAGS = {
    "activity": "bpmn.task",
    "pool": "bpmn.pool",
    "intermediateevent": "bpmn.intermediateCatchEvent",
    "gateway": "bpmn.gatewayExclusive",
    "dataobject": "bpmn.dataObjectReference",
    "datastore": "bpmn.dataStoreReference",
}

EA_RELATIONSHIP_TAGS = {
    "dataassociation": "bpmn.dataInputAssociation",
}

SOURCE_KEYS = ["source", "client", "from", "src", "start"]
TARGET_KEYS = ["target", "supplier", "to", "tgt", "end"]


def bpmn_element_type(el: Element) -> str | None:
    name = local_name(el)
    return NODE_TYPES.get(name) or EA_ELEMENT_TAGS.get(name)


def bpmn_relationship_type(el: Element) -> str | None:
    name = local_name(el)
    return RELATIONSHIP_TYPES.get(name) or EA_RELATIONSHIP_TAGS.get(name)


def _profile_meta(el: Element) -> dict:
    return {"bpmn_profile_uri": namespace_uri(el), "bpmn_profile_tag": raw_local_name(el)}


def _tagged_values(el: Element, base: Element | None, doc: XmiDocument) -> list[IRTaggedValue]:
    tagged_values = [IRTaggedValue("profileTag", raw_local_name(el))]
    stereotype = stereotype_of(el, doc) or (stereotype_of(base, doc) if base is not None else None)
    if stereotype:
        tagged_values.append(IRTaggedValue("stereotype", stereotype))
    return tagged_values


def _external_ids(own_id: str | None, base_id: str | None, guid: str | None, guid_kind: str) -> list[IRExternalId]:
    out = []
    if own_id:
        out.append(IRExternalId(id=own_id, system="xmi", kind="xmi-id"))
    if base_id:
        out.append(IRExternalId(id=base_id, system="xmi", kind="xmi-base-id"))
    if guid:
        out.append(IRExternalId(id=guid, system=SYSTEM, kind=guid_kind))
    return out


def parse_bpmn_profile_elements(doc: XmiDocument, report: ImportReport) -> list[IRElement]:
    """BPMN element tags; relationship tags are left to parse_bpmn_profile_relationships."""
    elements: list[IRElement] = []
    seen: set[str] = set()
    synthetic = 0

    for el in doc.model_elements():
        if not is_bpmn_profile(el) or bpmn_relationship_type(el):
            continue

        own_id = xmi_id(el)
        base_id = base_ref_of(el)
        el_id = base_id or own_id
        if not el_id:
            synthetic += 1
            el_id = f"eaBpmnEl_synth_{synthetic}"
            report.add_warning(
                f'EA XMI: BPMN element missing xmi:id; generated synthetic element id "{el_id}" '
                f'(profileTag="{raw_local_name(el)}", name="{stripped_attr(el, "name") or ""}").',
                code="ea-xmi:synthetic-id",
            )
        if el_id in seen:
            report.add_warning(f'EA XMI: Duplicate BPMN element id "{el_id}" encountered; skipping subsequent occurrence.')
            continue
        seen.add(el_id)

        base = doc.by_id.get(base_id) if base_id else None
        name = stripped_attr(el, "name") or ""
        documentation = documentation_of(el, doc)
        folder_id = doc.owning_package_folder(el)
        if base is not None:
            name = name or stripped_attr(base, "name") or ""
            documentation = documentation or documentation_of(base, doc)
            folder_id = folder_id or doc.owning_package_folder(base)

        token = raw_local_name(el)
        el_type = bpmn_element_type(el)
        meta = _profile_meta(el)
        if el_type is None:
            meta["source_type"] = token
            report.record_unknown_element_type(SYSTEM, token)

        guid = ea_guid(el) or (ea_guid(base) if base is not None else None)
        elements.append(
            IRElement(
                id=el_id,
                type=el_type or UNKNOWN_TYPE,
                name=name or token or "Element",
                folder_id=folder_id,
                documentation=documentation,
                tagged_values=_tagged_values(el, base, doc),
                external_ids=_external_ids(own_id, base_id, guid, "element-guid"),
                meta=meta,
            )
        )

    return elements


def _endpoint(el: Element, keys: list[str]) -> str | None:
    for key in keys:
        refs = resolve_ref_ids(el, key)
        if refs:
            return refs[0]
    return None


def parse_bpmn_profile_relationships(
    doc: XmiDocument, report: ImportReport, known_endpoints: Endpoints
) -> list[IRRelationship]:
    """BPMN flow tags (SequenceFlow, MessageFlow, Association, ...).

    Endpoints come from the tag, then its base connector element, then the EA
    connector record or a relationship already parsed under the same id.
    """
    relationships: list[IRRelationship] = []
    seen: set[str] = set()
    synthetic = 0

    for el in doc.model_elements():
        if not is_bpmn_profile(el):
            continue
        rel_type = bpmn_relationship_type(el)
        if rel_type is None:
            continue

        own_id = xmi_id(el)
        base_id = base_ref_of(el)
        rel_id = base_id or own_id
        if not rel_id:
            synthetic += 1
            rel_id = f"eaBpmnRel_synth_{synthetic}"
            report.add_warning(
                f'EA XMI: BPMN relationship missing xmi:id; generated synthetic relationship id "{rel_id}" '
                f'(profileTag="{raw_local_name(el)}").',
                code="ea-xmi:synthetic-id",
            )
        if rel_id in seen:
            report.add_warning(
                f'EA XMI: Duplicate BPMN relationship id "{rel_id}" encountered; skipping subsequent occurrence.'
            )
            continue
        seen.add(rel_id)

        base = doc.by_id.get(base_id) if base_id else None
        source = _endpoint(el, SOURCE_KEYS)
        target = _endpoint(el, TARGET_KEYS)
        if base is not None:
            source = source or _endpoint(base, SOURCE_KEYS)
            target = target or _endpoint(base, TARGET_KEYS)
        connector = doc.connectors.get(rel_id)
        if connector is not None:
            source = source or connector.source
            target = target or connector.target
        if (not source or not target) and rel_id in known_endpoints:
            source = source or known_endpoints[rel_id][0]
            target = target or known_endpoints[rel_id][1]

        if not source or not target:
            report.add_warning(
                f'EA XMI: Skipped BPMN relationship "{rel_id}" ({rel_type}) because endpoints could not be resolved '
                f"(source={source or '∅'}, target={target or '∅'}).",
                code="ea-xmi:unresolved-endpoints",
            )
            continue

        guid = ea_guid(el) or (ea_guid(base) if base is not None else None)
        name = stripped_attr(el, "name") or (stripped_attr(base, "name") if base is not None else None) or ""
        documentation = documentation_of(el, doc) or (documentation_of(base, doc) if base is not None else "")
        relationships.append(
            IRRelationship(
                id=rel_id,
                type=rel_type,
                source_id=source,
                target_id=target,
                name=name,
                documentation=documentation,
                tagged_values=_tagged_values(el, base, doc),
                external_ids=_external_ids(own_id, base_id, guid, "relationship-guid"),
                meta=_profile_meta(el),
            )
        )

    return relationships
