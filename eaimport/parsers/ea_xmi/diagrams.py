"""EA diagram catalog (<xmi:Extension><diagrams>) -> IR views.

EA keeps diagrams only in its extension block:

    <diagram xmi:id="EAID_D1">
      <model package="EAPK_1" owner="EAPK_1"/>
      <properties name="Overview" type="Logical"/>
      <elements>
        <element subject="EAID_A" seqno="1" geometry="Left=10;Top=20;Right=110;Bottom=80;" style="DUID=1A2B;"/>
        <element subject="EAID_R" geometry="SX=0;SY=0;EX=0;EY=0;EDGE=2;" style="SOID=1A2B;EOID=3C4D;"/>
      </elements>
    </diagram>

Node subjects are left as raw EA references here; the EA normalizer resolves
them against element ids and external ids.
"""

from __future__ import annotations

import re
from xml.etree.ElementTree import Element

from eaimport.ir.models import IRBounds, IRExternalId, IRView, IRViewConnection, IRViewNode, ViewNodeKind
from eaimport.ir.report import ImportReport
from eaimport.parsers.ea_xmi.common import EA_GUID_ATTRS, SYSTEM, XmiDocument, slug, xmi_id
from eaimport.utils.xmlscan import (
    child_by_local_name,
    children_by_local_name,
    descendants,
    parse_number,
    stripped_attr,
)

_KEY_VALUE = re.compile(r"([A-Za-z$]+)\s*=\s*([^;]*)")


def parse_style(raw: str | None) -> dict[str, str]:
    """'Left=10;Top=20;' -> {'left': '10', 'top': '20'}."""
    return {k.lower(): v.strip() for k, v in _KEY_VALUE.findall(raw or "")}


def bounds_from_geometry(geometry: dict[str, str]) -> IRBounds | None:
    left, top = parse_number(geometry.get("left")), parse_number(geometry.get("top"))
    right, bottom = parse_number(geometry.get("right")), parse_number(geometry.get("bottom"))
    if None in (left, top, right, bottom):
        return None
    width, height = right - left, bottom - top
    if width <= 0 or height <= 0:
        return None
    return IRBounds(x=left, y=top, width=width, height=height)


def is_connection_entry(geometry: dict[str, str], style: dict[str, str]) -> bool:
    return "soid" in style or "eoid" in style or "sx" in geometry or "edge" in geometry


def _diagram_id(el: Element) -> str | None:
    return stripped_attr(el, EA_GUID_ATTRS) or xmi_id(el) or stripped_attr(el, "id")


def _diagram_records(doc: XmiDocument) -> list[Element]:
    records = []
    for ext in doc.extensions:
        for block in descendants(ext, "diagrams"):
            records.extend(children_by_local_name(block, "diagram"))
    return records


def parse_diagrams(doc: XmiDocument, report: ImportReport, relationship_ids: set[str]) -> list[IRView]:
    if not doc.extensions:
        report.add_warning(
            "EA XMI: No Enterprise Architect <xmi:Extension> element found; skipping diagram import.",
            code="ea-xmi:no-extension",
        )
        return []

    views: list[IRView] = []
    seen: set[str] = set()
    folder_ids = set(doc.package_folders.values())

    for index, record in enumerate(_diagram_records(doc), start=1):
        props = child_by_local_name(record, "properties")
        model = child_by_local_name(record, "model")
        name = (stripped_attr(props, "name") if props is not None else None) or stripped_attr(record, "name") or ""
        diagram_type = (stripped_attr(props, "type") if props is not None else None) or ""
        package = (stripped_attr(model, "package") if model is not None else None) or stripped_attr(
            record, ["package", "owner"]
        )

        view_id = _diagram_id(record) or f"eaDiagram_synth_{index}_{slug(name)}"
        if view_id in seen:
            report.add_warning(f'EA XMI: Duplicate diagram id "{view_id}" encountered; skipping subsequent occurrence.')
            continue
        seen.add(view_id)

        external_ids = []
        guid = stripped_attr(record, EA_GUID_ATTRS)
        if guid:
            external_ids.append(IRExternalId(id=guid, system=SYSTEM, kind="diagram-guid"))
        if xmi_id(record):
            external_ids.append(IRExternalId(id=xmi_id(record), system="xmi", kind="xmi-id"))

        view = IRView(
            id=view_id,
            name=name,
            folder_id=package if package in folder_ids else None,
            viewpoint=diagram_type,
            documentation=(stripped_attr(props, "documentation") if props is not None else None) or "",
            external_ids=external_ids,
            meta={"ea_diagram_type": diagram_type} if diagram_type else {},
        )
        _parse_diagram_entries(record, view, relationship_ids)
        views.append(view)

    return views


def _parse_diagram_entries(record: Element, view: IRView, relationship_ids: set[str]) -> None:
    node_by_duid: dict[str, str] = {}
    pending: list[tuple[Element, dict[str, str]]] = []

    block = child_by_local_name(record, "elements")
    entries = children_by_local_name(block, "element") if block is not None else []
    for position, entry in enumerate(entries, start=1):
        geometry = parse_style(stripped_attr(entry, "geometry"))
        style = parse_style(stripped_attr(entry, "style"))
        if is_connection_entry(geometry, style):
            pending.append((entry, style))
            continue

        subject = stripped_attr(entry, "subject")
        node = IRViewNode(
            id=f"{view.id}:{subject}" if subject else f"{view.id}:n{position}",
            kind=ViewNodeKind.ELEMENT if subject else ViewNodeKind.OTHER,
            element_id=subject,
            bounds=bounds_from_geometry(geometry),
        )
        if view.node_by_id(node.id) is not None:
            node.id = f"{node.id}#{position}"
        seqno = stripped_attr(entry, "seqno")
        if seqno:
            node.meta["seqno"] = seqno
        if subject:
            node.meta["ea_subject"] = subject
        view.nodes.append(node)
        if style.get("duid"):
            node_by_duid[style["duid"]] = node.id

    for position, (entry, style) in enumerate(pending, start=1):
        subject = stripped_attr(entry, "subject")
        conn_id = f"{view.id}:{subject}" if subject else f"{view.id}:c{position}"
        if any(c.id == conn_id for c in view.connections):
            conn_id = f"{conn_id}#{position}"
        view.connections.append(
            IRViewConnection(
                id=conn_id,
                relationship_id=subject if subject in relationship_ids else None,
                source_node_id=node_by_duid.get(style.get("soid", "")),
                target_node_id=node_by_duid.get(style.get("eoid", "")),
                meta={"ea_subject": subject} if subject else {},
            )
        )
