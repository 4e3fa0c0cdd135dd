"""UML classifier members (attributes, operations, literals) -> meta.uml_members."""

from __future__ import annotations

from typing import Any
from xml.etree.ElementTree import Element

from eaimport.parsers.ea_xmi.common import (
    XmiDocument,
    href_fragment,
    multiplicity_of,
    parse_bool,
    type_ref_of,
    xmi_id,
    xmi_idref,
)
from eaimport.utils.xmlscan import attr_any, child_by_local_name, children_by_local_name, stripped_attr, text_of

VISIBILITIES = {"public", "private", "protected", "package"}
INTERNAL_ID_PREFIXES = ("_", "EAID_", "EAPK_", "eaEl_synth_")


def type_name(doc: XmiDocument, type_ref: str | None) -> str | None:
    """Readable name of a referenced type.

    Internal-looking ids (EAID_..., _abc) that do not resolve are dropped
    rather than shown to users.
    """
    ref = (type_ref or "").strip()
    if not ref:
        return None
    ref = href_fragment(ref) or ref
    target = doc.by_id.get(ref)
    if target is not None:
        name = stripped_attr(target, "name")
        if name:
            return name
    if ref.startswith(INTERNAL_ID_PREFIXES) or len(ref) > 80:
        return None
    return ref


def _visibility(el: Element) -> str | None:
    value = stripped_attr(el, "visibility")
    return value if value in VISIBILITIES else None


def _default_value(el: Element) -> str | None:
    dv = child_by_local_name(el, "defaultValue")
    if dv is None:
        return None
    value = (attr_any(dv, ["value", "body"]) or "").strip()
    return value or text_of(dv) or None


def parse_attribute(el: Element, doc: XmiDocument) -> dict[str, Any] | None:
    name = stripped_attr(el, "name")
    if not name:
        return None
    out: dict[str, Any] = {"name": name}
    ref = type_ref_of(el)
    if ref:
        out["type_ref"] = ref
    resolved = type_name(doc, ref)
    if resolved:
        out["type_name"] = resolved
    multiplicity = multiplicity_of(el)
    if multiplicity:
        out["multiplicity"] = multiplicity
    visibility = _visibility(el)
    if visibility:
        out["visibility"] = visibility
    if parse_bool(attr_any(el, ["isStatic", "static"])):
        out["is_static"] = True
    default = _default_value(el)
    if default:
        out["default_value"] = default
    return out


def parse_operation(el: Element, doc: XmiDocument) -> dict[str, Any] | None:
    name = stripped_attr(el, "name")
    if not name:
        return None
    out: dict[str, Any] = {"name": name}
    params = []
    for param in children_by_local_name(el, "ownedParameter"):
        param_type = type_name(doc, type_ref_of(param))
        if stripped_attr(param, "direction") == "return":
            if param_type:
                out["return_type"] = param_type
            continue
        param_name = stripped_attr(param, "name")
        if not param_name:
            continue
        params.append({"name": param_name, **({"type": param_type} if param_type else {})})
    if params:
        out["params"] = params
    visibility = _visibility(el)
    if visibility:
        out["visibility"] = visibility
    if parse_bool(attr_any(el, ["isStatic", "static"])):
        out["is_static"] = True
    if parse_bool(attr_any(el, ["isAbstract", "abstract"])):
        out["is_abstract"] = True
    return out


def parse_classifier_members(el: Element, doc: XmiDocument) -> dict[str, list]:
    attributes = []
    seen: set[str] = set()
    for owned in children_by_local_name(el, "ownedAttribute"):
        # Association ends are imported as relationships, not attributes.
        if stripped_attr(owned, "association"):
            continue
        owned_id = xmi_id(owned)
        if owned_id:
            seen.add(owned_id)
        parsed = parse_attribute(owned, doc)
        if parsed:
            attributes.append(parsed)

    # EA sometimes lists attributes by reference in an <attributes> wrapper.
    for wrapper in children_by_local_name(el, "attributes"):
        for ref_el in children_by_local_name(wrapper, "attribute"):
            ref = xmi_idref(ref_el)
            if not ref or ref in seen or ref not in doc.by_id:
                continue
            seen.add(ref)
            parsed = parse_attribute(doc.by_id[ref], doc)
            if parsed:
                attributes.append(parsed)

    operations = [op for op in (parse_operation(o, doc) for o in children_by_local_name(el, "ownedOperation")) if op]
    literals = [
        name for name in (stripped_attr(lit, "name") for lit in children_by_local_name(el, "ownedLiteral")) if name
    ]

    members: dict[str, list] = {"attributes": attributes, "operations": operations}
    if literals:
        members["literals"] = literals
    return members
