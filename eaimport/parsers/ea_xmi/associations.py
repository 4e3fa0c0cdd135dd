"""UML associations (and association classes) -> IR relationships with end metadata."""

from __future__ import annotations

from dataclasses import dataclass
from xml.etree.ElementTree import Element

from eaimport.ir.models import IRExternalId, IRRelationship, IRTaggedValue
from eaimport.ir.report import ImportReport
from eaimport.parsers.ea_xmi.common import (
    SYSTEM,
    XmiDocument,
    documentation_of,
    ea_guid,
    href_fragment,
    is_sparx_profile,
    multiplicity_of,
    parse_bool,
    parse_id_ref_list,
    resolve_ref_ids,
    stereotype_of,
    type_ref_of,
    xmi_id,
    xmi_idref,
    xmi_type,
)
from eaimport.utils.xmlscan import attr, children_by_local_name, local_name, stripped_attr


@dataclass
class AssociationEnd:
    end_id: str
    classifier_id: str | None = None
    role: str | None = None
    multiplicity: str | None = None
    navigable: bool | None = None
    aggregation: str = "none"  # none | shared | composite


def _association_kind(el: Element) -> str | None:
    t = (xmi_type(el) or "").lower()
    if t == "uml:associationclass":
        return "AssociationClass"
    if t == "uml:association" or (not t and local_name(el) == "association" and not is_sparx_profile(el)):
        return "Association"
    return None


def _navigable_owned_ends(el: Element) -> set[str]:
    out = set(parse_id_ref_list(attr(el, "navigableOwnedEnd")))
    for child in children_by_local_name(el, "navigableOwnedEnd"):
        ref = xmi_idref(child) or href_fragment(attr(child, "href"))
        if ref:
            out.add(ref)
    return out


def _properties_by_association(doc: XmiDocument) -> dict[str, list[Element]]:
    """Properties that point back at their association via association="...". """
    out: dict[str, list[Element]] = {}
    for el in doc.model_elements():
        assoc = stripped_attr(el, "association")
        if not assoc:
            continue
        is_property = (xmi_type(el) or "").lower() == "uml:property" or local_name(el) in ("ownedattribute", "ownedend")
        if is_property:
            out.setdefault(assoc, []).append(el)
    return out


def _end_id(el: Element) -> str | None:
    return xmi_id(el) or xmi_idref(el)


def parse_end(el: Element, navigable_owned: set[str]) -> AssociationEnd | None:
    end_id = _end_id(el)
    if not end_id:
        return None
    aggregation = (stripped_attr(el, "aggregation") or "").lower()
    navigable = parse_bool(attr(el, "isNavigable"))
    if navigable is None:
        navigable = end_id in navigable_owned
    return AssociationEnd(
        end_id=end_id,
        classifier_id=type_ref_of(el),
        role=stripped_attr(el, "name"),
        multiplicity=multiplicity_of(el),
        navigable=navigable,
        aggregation=aggregation if aggregation in ("shared", "composite") else "none",
    )


def _collect_ends(el: Element, doc: XmiDocument, by_association: dict[str, list[Element]], kind: str) -> list[Element]:
    candidates = []
    for ref in resolve_ref_ids(el, "memberEnd"):
        if ref in doc.by_id:
            candidates.append(doc.by_id[ref])
    candidates.extend(children_by_local_name(el, "ownedEnd"))
    if kind == "AssociationClass" and xmi_id(el):
        candidates.extend(by_association.get(xmi_id(el), []))

    unique: dict[str, Element] = {}
    for end in candidates:
        end_id = _end_id(end)
        if end_id and end_id not in unique:
            unique[end_id] = end
    ends = list(unique.values())

    # EA names ends EAID_src.../EAID_dst...; the src end is typed by the source classifier.
    if any(_end_id(e).startswith("EAID_src") for e in ends):
        ends.sort(key=lambda e: 0 if _end_id(e).startswith("EAID_src") else 1)
    return ends


def _relationship_type(a: AssociationEnd, b: AssociationEnd) -> str:
    aggregations = {a.aggregation, b.aggregation}
    if "composite" in aggregations:
        return "uml.composition"
    if "shared" in aggregations:
        return "uml.aggregation"
    return "uml.association"


def parse_associations(doc: XmiDocument, report: ImportReport) -> list[IRRelationship]:
    relationships: list[IRRelationship] = []
    seen: set[str] = set()
    synthetic = 0
    by_association = _properties_by_association(doc)

    for el in doc.model_elements():
        kind = _association_kind(el)
        if kind is None:
            continue

        end_els = _collect_ends(el, doc, by_association, kind)
        if len(end_els) < 2:
            report.add_warning("EA XMI: Skipped Association because fewer than 2 ends could be resolved.")
            continue
        if len(end_els) > 2:
            report.add_warning(
                f"EA XMI: Association has {len(end_els)} ends; only the first 2 will be imported as a binary association."
            )

        navigable_owned = _navigable_owned_ends(el)
        source, target = parse_end(end_els[0], navigable_owned), parse_end(end_els[1], navigable_owned)
        if not source.classifier_id or not target.classifier_id:
            report.add_warning(
                "EA XMI: Skipped Association because classifier endpoints could not be resolved "
                f"(endA={source.classifier_id or '∅'}, endB={target.classifier_id or '∅'}).",
                code="ea-xmi:unresolved-endpoints",
            )
            continue

        rel_id = _end_id(el)
        if not rel_id:
            synthetic += 1
            rel_id = f"eaAssoc_synth_{synthetic}"
        if kind == "AssociationClass":
            rel_id = f"{rel_id}__association"
        if rel_id in seen:
            report.add_warning(f'EA XMI: Duplicate association id "{rel_id}" encountered; skipping.')
            continue
        seen.add(rel_id)

        attrs = {}
        for prefix, end in (("source", source), ("target", target)):
            if end.role:
                attrs[f"{prefix}_role"] = end.role
            if end.multiplicity:
                attrs[f"{prefix}_multiplicity"] = end.multiplicity
            if end.navigable is not None:
                attrs[f"{prefix}_navigable"] = end.navigable

        external_ids = []
        if xmi_id(el):
            external_ids.append(IRExternalId(id=xmi_id(el), system="xmi", kind="xmi-id"))
        guid = ea_guid(el)
        if guid:
            external_ids.append(IRExternalId(id=guid, system=SYSTEM, kind="relationship-guid"))
        stereotype = stereotype_of(el, doc)
        meta = {"metaclass": kind}
        if xmi_type(el):
            meta["xmi_type"] = xmi_type(el)

        relationships.append(
            IRRelationship(
                id=rel_id,
                type=_relationship_type(source, target),
                source_id=source.classifier_id,
                target_id=target.classifier_id,
                name=stripped_attr(el, "name") or "",
                documentation=documentation_of(el, doc),
                attrs=attrs,
                tagged_values=[IRTaggedValue("stereotype", stereotype)] if stereotype else [],
                external_ids=external_ids,
                meta=meta,
            )
        )

    return relationships
