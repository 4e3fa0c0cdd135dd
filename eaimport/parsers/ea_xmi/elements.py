"""UML classifiers and ArchiMate profile applications -> IR elements."""

from __future__ import annotations

import re
from xml.etree.ElementTree import Element

from eaimport.ir.models import IRElement, IRExternalId, IRTaggedValue
from eaimport.ir.report import ImportReport
from eaimport.mapping.archimate import map_element_type, map_relationship_type
from eaimport.mapping.types import UNKNOWN_TYPE
from eaimport.parsers.ea_xmi.common import (
    SYSTEM,
    UML_ELEMENT_TYPES,
    XmiDocument,
    base_ref_of,
    documentation_of,
    ea_guid,
    is_archimate_profile,
    is_uml_type,
    metaclass_of,
    stereotype_of,
    xmi_id,
    xmi_type,
)
from eaimport.parsers.ea_xmi.members import parse_classifier_members
from eaimport.parsers.ea_xmi.packages import is_uml_model, is_uml_package
from eaimport.utils.xmlscan import namespace_uri, raw_local_name, stripped_attr

MEMBER_BEARING_TYPES = {"uml.class", "uml.interface", "uml.datatype", "uml.associationClass"}

_PROFILE_TAG = re.compile(r"^archimate\d*_", re.IGNORECASE)


def classifier_type(el: Element) -> tuple[str, str] | None:
    """(metaclass, uml.* type) of a classifier candidate, or None. Packages are folders."""
    metaclass = metaclass_of(el)
    if not metaclass:
        return None
    qualified = UML_ELEMENT_TYPES.get(metaclass)
    if not qualified or qualified == "uml.package":
        return None
    return metaclass, qualified


def _is_owned_comment(el: Element, doc: XmiDocument) -> bool:
    parent = doc.parents.get(el)
    if parent is None or parent is doc.root:
        return False
    return not (is_uml_package(parent) or is_uml_model(parent))


def _note_name(documentation: str) -> str:
    first_line = documentation.splitlines()[0] if documentation else ""
    return first_line[:60].strip() or "Note"


def parse_uml_elements(doc: XmiDocument, report: ImportReport) -> list[IRElement]:
    elements: list[IRElement] = []
    seen: set[str] = set()
    synthetic = 0

    for el in doc.model_elements():
        typed = classifier_type(el)
        if typed is None:
            continue
        metaclass, qualified = typed
        if qualified == "uml.note" and _is_owned_comment(el, doc):
            continue

        el_id = xmi_id(el)
        raw_name = stripped_attr(el, "name") or ""
        if not el_id:
            synthetic += 1
            el_id = f"eaEl_synth_{synthetic}"
            report.add_warning(
                f'EA XMI: Element missing xmi:id; generated synthetic element id "{el_id}" '
                f'(metaclass="{metaclass}", name="{raw_name}").',
                code="ea-xmi:synthetic-id",
            )
        if el_id in seen:
            report.add_warning(f'EA XMI: Duplicate element id "{el_id}" encountered; skipping subsequent occurrence.')
            continue
        seen.add(el_id)

        documentation = documentation_of(el, doc)
        name = raw_name
        if not name:
            name = _note_name(documentation) if qualified == "uml.note" and documentation else metaclass

        external_ids = []
        if xmi_id(el):
            external_ids.append(IRExternalId(id=xmi_id(el), system="xmi", kind="xmi-id"))
        guid = ea_guid(el)
        if guid:
            external_ids.append(IRExternalId(id=guid, system=SYSTEM, kind="element-guid"))

        stereotype = stereotype_of(el, doc)
        meta = {"metaclass": metaclass}
        if xmi_type(el):
            meta["xmi_type"] = xmi_type(el)
        if qualified in MEMBER_BEARING_TYPES:
            meta["uml_members"] = parse_classifier_members(el, doc)
        attrs = {"actionKind": metaclass} if qualified == "uml.action" and metaclass != "Action" else {}

        elements.append(
            IRElement(
                id=el_id,
                type=qualified,
                name=name,
                folder_id=doc.owning_package_folder(el),
                documentation=documentation,
                attrs=attrs,
                tagged_values=[IRTaggedValue("stereotype", stereotype)] if stereotype else [],
                external_ids=external_ids,
                meta=meta,
            )
        )

    return elements


# --- ArchiMate profile ---


def is_profile_application(el: Element) -> bool:
    return is_archimate_profile(el) or bool(_PROFILE_TAG.match(raw_local_name(el)))


def profile_source_token(el: Element) -> str:
    """'ArchiMate_BusinessActor' -> 'BusinessActor'."""
    return _PROFILE_TAG.sub("", raw_local_name(el)) or raw_local_name(el)


def is_profile_relationship(el: Element) -> bool:
    token = profile_source_token(el)
    return map_relationship_type(token).known and not map_element_type(token).known


def parse_archimate_profile_elements(doc: XmiDocument, report: ImportReport) -> list[IRElement]:
    """Stereotype applications such as <ArchiMate3:ArchiMate_BusinessActor base_Class="...">.

    The element id is the base_* reference, so the profile element lines up
    with (and later replaces) the UML classifier it decorates.
    """
    elements: list[IRElement] = []
    seen: set[str] = set()
    synthetic = 0

    for el in doc.model_elements():
        if not is_profile_application(el) or is_profile_relationship(el):
            continue

        token = profile_source_token(el)
        own_id = xmi_id(el)
        base_id = base_ref_of(el)
        el_id = base_id or own_id
        if not el_id:
            synthetic += 1
            el_id = f"eaArchEl_synth_{synthetic}"
            report.add_warning(
                f'EA XMI: ArchiMate element missing xmi:id; generated synthetic element id "{el_id}" '
                f'(profileTag="{raw_local_name(el)}", name="{stripped_attr(el, "name") or ""}").',
                code="ea-xmi:synthetic-id",
            )
        if el_id in seen:
            report.add_warning(
                f'EA XMI: Duplicate ArchiMate element id "{el_id}" encountered; skipping subsequent occurrence.'
            )
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

        external_ids = []
        if own_id:
            external_ids.append(IRExternalId(id=own_id, system="xmi", kind="xmi-id"))
        if base_id:
            external_ids.append(IRExternalId(id=base_id, system="xmi", kind="xmi-base-id"))
        guid = ea_guid(el) or (ea_guid(base) if base is not None else None)
        if guid:
            external_ids.append(IRExternalId(id=guid, system=SYSTEM, kind="element-guid"))

        tagged_values = [IRTaggedValue("profileTag", raw_local_name(el))]
        stereotype = stereotype_of(el, doc) or (stereotype_of(base, doc) if base is not None else None)
        if stereotype:
            tagged_values.append(IRTaggedValue("stereotype", stereotype))

        mapped = map_element_type(token)
        meta = {
            "archimate_profile_uri": namespace_uri(el),
            "archimate_profile_tag": raw_local_name(el),
        }
        if not mapped.known:
            meta["source_type"] = token
            report.record_unknown_element_type(SYSTEM, token)

        elements.append(
            IRElement(
                id=el_id,
                type=mapped.type if mapped.known else UNKNOWN_TYPE,
                name=name or token or "Element",
                folder_id=folder_id,
                documentation=documentation,
                tagged_values=tagged_values,
                external_ids=external_ids,
                meta=meta,
            )
        )

    return elements


def merge_elements(primary: list[IRElement], secondary: list[IRElement], report: ImportReport) -> list[IRElement]:
    """Combine element lists. On an id clash a non-UML element replaces a UML one; otherwise the first wins."""
    merged: dict[str, IRElement] = {}
    for element in primary + secondary:
        existing = merged.get(element.id)
        if existing is None:
            merged[element.id] = element
            continue
        if is_uml_type(existing.type) != is_uml_type(element.type):
            kept = existing if is_uml_type(element.type) else element
            merged[element.id] = kept
            report.add_info(
                f'EA XMI: Element id "{element.id}" is defined as both {existing.type} and {element.type}; '
                f"keeping {kept.type}.",
                code="ea-xmi:element-id-collision",
            )
            continue
        report.add_info(
            f'EA XMI: Duplicate element id "{element.id}" across parsers; keeping the first occurrence.',
            code="ea-xmi:duplicate-element-id",
        )
    return list(merged.values())
