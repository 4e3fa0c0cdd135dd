"""Namespace-tolerant XML helpers used by every parser.

BPMN2, XMI and MEFF exports vary wildly in namespace prefixes (bpmn2:, xmi:,
uml:, ns0: ...). These helpers match elements by lowercased local name and
match prefixed attributes (xmi:id, xsi:type) regardless of the namespace URI
the exporter bound the prefix to.
"""

from __future__ import annotations

import math
from typing import Iterable, Iterator
from xml.etree.ElementTree import Element

import defusedxml
import defusedxml.ElementTree as ET  # noqa: N817

from eaimport.errors import StructuralParseError

XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"

# Substrings that identify the namespace URI usually bound to a prefix.
_PREFIX_URI_HINTS = {
    "xmi": "xmi",
    "xsi": "xmlschema-instance",
    "xml": "xml/1998/namespace",
    "uml": "uml",
}


def parse_xml(data: bytes | str, format_label: str = "XML") -> Element:
    """Parse a document and return its root element.

    Raises StructuralParseError when the bytes are not well-formed XML or
    contain constructs defusedxml refuses to expand.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        return ET.fromstring(data)
    except ET.ParseError as exc:
        raise StructuralParseError(f"{format_label}: Failed to parse XML: {exc}", format=format_label) from exc
    except defusedxml.DefusedXmlException as exc:
        raise StructuralParseError(f"{format_label}: Refused unsafe XML: {exc}", format=format_label) from exc


def is_element(node: object) -> bool:
    # Comments and processing instructions carry a callable tag.
    return isinstance(node, Element) and isinstance(node.tag, str)


def split_tag(tag: str) -> tuple[str, str]:
    """Split '{uri}local' into (uri, local). Unqualified tags get an empty uri."""
    if tag.startswith("{"):
        uri, _, local = tag[1:].partition("}")
        return uri, local
    if ":" in tag:
        prefix, _, local = tag.partition(":")
        return prefix, local
    return "", tag


def local_name(el: Element) -> str:
    """Lowercased local name of an element ('' for comments/PIs)."""
    if not is_element(el):
        return ""
    return split_tag(el.tag)[1].lower()


def raw_local_name(el: Element) -> str:
    """Local name with the exporter's original casing."""
    if not is_element(el):
        return ""
    return split_tag(el.tag)[1]


def namespace_uri(el: Element) -> str:
    if not is_element(el) or not el.tag.startswith("{"):
        return ""
    return split_tag(el.tag)[0]


def children(el: Element) -> list[Element]:
    return [c for c in el if is_element(c)]


def children_by_local_name(el: Element, name: str) -> list[Element]:
    want = name.lower()
    return [c for c in el if local_name(c) == want]


def child_by_local_name(el: Element, name: str) -> Element | None:
    want = name.lower()
    for c in el:
        if local_name(c) == want:
            return c
    return None


def descendants(root: Element, names: str | Iterable[str] | None = None) -> Iterator[Element]:
    """Depth-first descendants of root (root excluded), optionally filtered by local name."""
    wanted = None
    if names is not None:
        wanted = {names.lower()} if isinstance(names, str) else {n.lower() for n in names}
    for el in root.iter():
        if el is root or not is_element(el):
            continue
        if wanted is None or local_name(el) in wanted:
            yield el


def find_first(root: Element, names: str | Iterable[str]) -> Element | None:
    """First element (root included) whose local name is in names."""
    wanted = {names.lower()} if isinstance(names, str) else {n.lower() for n in names}
    if local_name(root) in wanted:
        return root
    return next(descendants(root, wanted), None)


def has_descendant(root: Element, names: str | Iterable[str]) -> bool:
    return next(descendants(root, names), None) is not None


def attr(el: Element, name: str) -> str | None:
    """Attribute value, tolerant of namespaces and casing.

    'xmi:id' matches any '{uri}id' attribute (preferring a uri that looks like
    the xmi namespace). Unprefixed names only match unqualified attributes.
    """
    direct = el.get(name)
    if direct is not None:
        return direct

    prefix, _, local = name.rpartition(":")
    needle = local.lower()

    if not prefix:
        for key, value in el.attrib.items():
            if not key.startswith("{") and key.lower() == needle:
                return value
        return None

    hint = _PREFIX_URI_HINTS.get(prefix.lower(), prefix.lower())
    fallback = None
    for key, value in el.attrib.items():
        uri, key_local = split_tag(key)
        if key_local.lower() != needle or not uri:
            continue
        if hint in uri.lower():
            return value
        if fallback is None:
            fallback = value
    return fallback


def attr_any(el: Element, names: Iterable[str]) -> str | None:
    for name in names:
        value = attr(el, name)
        if value is not None:
            return value
    return None


def stripped_attr(el: Element, names: str | Iterable[str]) -> str | None:
    """First matching attribute, stripped; None when absent or blank."""
    value = attr(el, names) if isinstance(names, str) else attr_any(el, names)
    value = (value or "").strip()
    return value or None


def parse_number(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw.strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def number_attr(el: Element, name: str, warnings: list[str] | None = None, context: str = "") -> float | None:
    raw = attr(el, name)
    if raw is None or not raw.strip():
        return None
    value = parse_number(raw)
    if value is None and warnings is not None:
        suffix = f" ({context})" if context else ""
        warnings.append(f"Invalid number in attribute '{name}': '{raw}'{suffix}.")
    return value


def text_of(el: Element | None) -> str:
    if el is None:
        return ""
    return "".join(el.itertext()).strip()


def child_text(el: Element, name: str) -> str | None:
    """Text of the first direct child with the local name, preferring xml:lang="en".

    Returns None when there is no such child or its text is blank.
    """
    matches = children_by_local_name(el, name)
    if not matches:
        return None
    picked = matches[0]
    for m in matches:
        lang = (m.get(XML_LANG) or m.get("lang") or "").lower()
        if lang.startswith("en"):
            picked = m
            break
    value = text_of(picked)
    return value or None


def get_type(el: Element) -> str | None:
    """Type token expressed as xsi:type (or a plain type attribute)."""
    return attr_any(el, ["xsi:type", "type"])


def parent_map(root: Element) -> dict[Element, Element]:
    return {child: parent for parent in root.iter() for child in parent}


def ancestors(el: Element, parents: dict[Element, Element]) -> Iterator[Element]:
    current = parents.get(el)
    while current is not None:
        yield current
        current = parents.get(current)
