"""UML directed relationships and ArchiMate connector relationships -> IR relationships."""

from __future__ import annotations

from xml.etree.ElementTree import Element

from eaimport.ir.models import IRExternalId, IRRelationship, IRTaggedValue
from eaimport.ir.report import ImportReport
from eaimport.mapping.archimate import map_relationship_type
from eaimport.parsers.ea_xmi.common import (
    SYSTEM,
    UML_RELATIONSHIP_TYPES,
    XmiDocument,
    base_ref_of,
    documentation_of,
    ea_guid,
    is_uml_type,
    metaclass_of,
    resolve_ref_ids,
    stereotype_of,
    xmi_id,
    xmi_idref,
    xmi_type,
)
from eaimport.parsers.ea_xmi.elements import (
    classifier_type,
    is_profile_application,
    is_profile_relationship,
    profile_source_token,
)
from eaimport.parsers.ea_xmi.packages import is_uml_package
from eaimport.utils.xmlscan import (
    ancestors,
    child_by_local_name,
    children_by_local_name,
    descendants,
    local_name,
    raw_local_name,
    stripped_attr,
    text_of,
)

DIRECTED_METACLASSES = {
    "Generalization",
    "Dependency",
    "Realization",
    "InterfaceRealization",
    "Include",
    "Extend",
    "ControlFlow",
    "ObjectFlow",
}
FLOW_METACLASSES = {"ControlFlow", "ObjectFlow"}

# (source keys, target keys) per metaclass, tried in order.
ENDPOINT_KEYS = {
    "Generalization": (["specific"], ["general"]),
    "Dependency": (["client"], ["supplier"]),
    "Realization": (["client"], ["supplier"]),
    "InterfaceRealization": (["client", "implementingClassifier"], ["supplier", "contract"]),
    "Include": (["includingCase", "client"], ["addition", "supplier"]),
    "Extend": (["extension", "client"], ["extendedCase", "supplier"]),
    "ControlFlow": (["source", "client"], ["target", "supplier"]),
    "ObjectFlow": (["source", "client"], ["target", "supplier"]),
}

STEREOTYPE_RETYPES = {
    "include": "uml.include",
    "extend": "uml.extend",
    "deployment": "uml.deployment",
}

Endpoints = dict[str, tuple[str, str]]


def _first_refs(el: Element, keys: list[str]) -> list[str]:
    for key in keys:
        refs = resolve_ref_ids(el, key)
        if refs:
            return refs
    return []


def guard_text(el: Element) -> str | None:
    """Guard of an activity edge: attribute, EA <properties>, or a <guard> expression body."""
    direct = stripped_attr(el, "guard")
    if direct:
        return direct
    props = child_by_local_name(el, "properties")
    if props is not None:
        nested = stripped_attr(props, ["guard", "condition"])
        if nested:
            return nested
    for guard in children_by_local_name(el, "guard"):
        own = stripped_attr(guard, "body")
        if own:
            return own
        for spec in descendants(guard, ["specification", "body"]):
            body = stripped_attr(spec, "body") or (text_of(spec) if local_name(spec) == "body" else "")
            if body:
                return body
    return None


def owning_classifier_id(el: Element, doc: XmiDocument) -> str | None:
    for ancestor in ancestors(el, doc.parents):
        if is_uml_package(ancestor):
            return None
        if classifier_type(ancestor) is not None:
            return xmi_id(ancestor)
    return None


def _format_ids(ids: list[str]) -> str:
    return " ".join(ids) or "∅"


def parse_uml_relationships(doc: XmiDocument, report: ImportReport) -> list[IRRelationship]:
    relationships: list[IRRelationship] = []
    seen: set[str] = set()
    synthetic = 0

    for el in doc.model_elements():
        metaclass = metaclass_of(el)
        if metaclass not in DIRECTED_METACLASSES:
            continue

        rel_type = UML_RELATIONSHIP_TYPES[metaclass]
        stereotype = stereotype_of(el, doc)
        if metaclass == "Dependency" and stereotype:
            rel_type = STEREOTYPE_RETYPES.get(stereotype.lower(), rel_type)

        source_keys, target_keys = ENDPOINT_KEYS[metaclass]
        sources = _first_refs(el, source_keys)
        targets = _first_refs(el, target_keys)
        if not sources and metaclass not in FLOW_METACLASSES:
            owner = owning_classifier_id(el, doc)
            if owner:
                sources = [owner]

        if not sources or not targets:
            report.add_warning(
                f"EA XMI: Skipped relationship (metaclass={metaclass}) because endpoints could not be resolved "
                f"(sources={_format_ids(sources)}, targets={_format_ids(targets)}).",
                code="ea-xmi:unresolved-endpoints",
            )
            continue

        base_id = xmi_id(el) or xmi_idref(el)
        fan_out = len(sources) > 1 or len(targets) > 1
        external_ids = []
        if xmi_id(el):
            external_ids.append(IRExternalId(id=xmi_id(el), system="xmi", kind="xmi-id"))
        guid = ea_guid(el)
        if guid:
            external_ids.append(IRExternalId(id=guid, system=SYSTEM, kind="relationship-guid"))
        meta = {"metaclass": metaclass}
        if xmi_type(el):
            meta["xmi_type"] = xmi_type(el)
        guard = guard_text(el) if metaclass in FLOW_METACLASSES else None

        pair = 0
        for source in sources:
            for target in targets:
                pair += 1
                if base_id:
                    rel_id = f"{base_id}_{pair}" if fan_out else base_id
                else:
                    synthetic += 1
                    rel_id = f"eaRel_synth_{synthetic}"
                if rel_id in seen:
                    report.add_warning(
                        f'EA XMI: Duplicate relationship id "{rel_id}" encountered; skipping subsequent occurrence.'
                    )
                    continue
                seen.add(rel_id)
                relationships.append(
                    IRRelationship(
                        id=rel_id,
                        type=rel_type,
                        source_id=source,
                        target_id=target,
                        name=stripped_attr(el, "name") or "",
                        documentation=documentation_of(el, doc),
                        tagged_values=[IRTaggedValue("stereotype", stereotype)] if stereotype else [],
                        attrs={"guard": guard} if guard else {},
                        external_ids=list(external_ids),
                        meta=dict(meta),
                    )
                )

    return relationships


# --- ArchiMate ---


def _is_archimate_stereotype(stereotype: str) -> bool:
    return stereotype.lower().startswith("archimate") and map_relationship_type(stereotype).known


def parse_connector_relationships(doc: XmiDocument, report: ImportReport) -> list[IRRelationship]:
    """EA <connectors> whose stereotype names an ArchiMate relationship (ArchiMate_Serving, ...)."""
    relationships: list[IRRelationship] = []
    for connector in doc.connectors.values():
        if not _is_archimate_stereotype(connector.stereotype):
            continue
        if not connector.source or not connector.target:
            report.add_warning(
                f'EA XMI: Skipped connector relationship "{connector.id}" because endpoints could not be resolved '
                f"(source={connector.source or '∅'}, target={connector.target or '∅'}).",
                code="ea-xmi:unresolved-endpoints",
            )
            continue
        meta = {"ea_connector": True, "ea_stereotype": connector.stereotype}
        if connector.ea_type:
            meta["ea_type"] = connector.ea_type
        relationships.append(
            IRRelationship(
                id=connector.id,
                type=map_relationship_type(connector.stereotype).type,
                source_id=connector.source,
                target_id=connector.target,
                name=connector.name,
                documentation=doc.ea_docs.get(connector.id, ""),
                tagged_values=[IRTaggedValue("stereotype", connector.stereotype)],
                external_ids=[IRExternalId(id=connector.id, system="xmi", kind="xmi-id")],
                meta=meta,
            )
        )
    return relationships


def parse_profile_relationships(
    doc: XmiDocument, report: ImportReport, known_endpoints: Endpoints
) -> list[IRRelationship]:
    """Relationship stereotype applications (<ArchiMate_Serving base_Dependency="...">).

    Endpoints come from the EA connector record for the base id, else from
    the UML relationship or association already parsed under that id.
    """
    relationships: list[IRRelationship] = []
    seen: set[str] = set()
    synthetic = 0

    for el in doc.model_elements():
        if not is_profile_application(el) or not is_profile_relationship(el):
            continue
        token = profile_source_token(el)
        base_id = base_ref_of(el)
        rel_id = base_id or xmi_id(el)
        if not rel_id:
            synthetic += 1
            rel_id = f"eaArchRel_synth_{synthetic}"
        if rel_id in seen:
            continue
        seen.add(rel_id)

        endpoints = None
        connector = doc.connectors.get(rel_id)
        if connector is not None and connector.source and connector.target:
            endpoints = (connector.source, connector.target)
        elif rel_id in known_endpoints:
            endpoints = known_endpoints[rel_id]
        if endpoints is None:
            report.add_warning(
                f'EA XMI: Skipped ArchiMate relationship "{rel_id}" ({token}) because endpoints could not be resolved.',
                code="ea-xmi:unresolved-endpoints",
            )
            continue

        base = doc.by_id.get(base_id) if base_id else None
        name = stripped_attr(el, "name") or (stripped_attr(base, "name") if base is not None else None) or ""
        documentation = documentation_of(el, doc) or (documentation_of(base, doc) if base is not None else "")
        external_ids = [IRExternalId(id=base_id, system="xmi", kind="xmi-base-id")] if base_id else []
        guid = ea_guid(el) or (ea_guid(base) if base is not None else None)
        if guid:
            external_ids.append(IRExternalId(id=guid, system=SYSTEM, kind="relationship-guid"))

        relationships.append(
            IRRelationship(
                id=rel_id,
                type=map_relationship_type(token).type,
                source_id=endpoints[0],
                target_id=endpoints[1],
                name=name,
                documentation=documentation,
                tagged_values=[IRTaggedValue("profileTag", raw_local_name(el))],
                external_ids=external_ids,
                meta={"archimate_profile_tag": raw_local_name(el)},
            )
        )

    return relationships


def endpoints_by_id(relationships: list[IRRelationship]) -> Endpoints:
    """Endpoint lookup for profile relationships; fanned-out ids also register their base id."""
    out: Endpoints = {}
    for rel in relationships:
        out.setdefault(rel.id, (rel.source_id, rel.target_id))
        base, sep, suffix = rel.id.rpartition("_")
        if sep and suffix == "1":
            out.setdefault(base, (rel.source_id, rel.target_id))
    return out


def merge_relationships(groups: list[list[IRRelationship]], report: ImportReport) -> list[IRRelationship]:
    """Merge in precedence order.

    A repeated id keeps the first occurrence, except that a non-UML relationship
    replaces a UML one. A relationship with the same endpoints, type and name
    as one already kept is dropped.
    """
    merged: dict[str, IRRelationship] = {}
    signatures: set[str] = set()

    def signature(rel: IRRelationship) -> str:
        return f"{rel.source_id}→{rel.target_id}|{rel.type}|{rel.name}"

    for group in groups:
        for rel in group:
            existing = merged.get(rel.id)
            if existing is not None:
                if is_uml_type(existing.type) != is_uml_type(rel.type):
                    kept = existing if is_uml_type(rel.type) else rel
                    merged[rel.id] = kept
                    signatures.add(signature(kept))
                    report.add_info(
                        f'EA XMI: Relationship id "{rel.id}" is defined as both {existing.type} and {rel.type}; '
                        f"keeping {kept.type}.",
                        code="ea-xmi:relationship-id-collision",
                    )
                else:
                    report.add_info(
                        f'EA XMI: Duplicate relationship id "{rel.id}" across parsers; keeping the first occurrence.',
                        code="ea-xmi:duplicate-relationship-id",
                    )
                continue
            sig = signature(rel)
            if sig in signatures:
                continue
            signatures.add(sig)
            merged[rel.id] = rel
    return list(merged.values())
