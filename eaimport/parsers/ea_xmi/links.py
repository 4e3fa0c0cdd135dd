"""Legacy EA <links> blocks -> fallback IR relationships.

Older exports (and some exporter settings) carry connectors only as
<links><Dependency xmi:id start end/></links> records. They are merged after
the primary XMI relationships, so they never override them.
"""

from __future__ import annotations

from eaimport.ir.models import IRExternalId, IRRelationship
from eaimport.ir.report import ImportReport
from eaimport.parsers.ea_xmi.common import EA_GUID_ATTRS, SYSTEM, XmiDocument, xmi_id
from eaimport.utils.xmlscan import children, descendants, local_name, stripped_attr

LINK_ID_ATTRS = ["xmi:id", "id", "ea_guid", "ea:guid", "guid", "uuid"]
LINK_NAME_ATTRS = ["name", "label", "role"]
LINK_START_ATTRS = ["start", "startid", "start_id", "source", "sourceid", "source_id", "client", "from"]
LINK_END_ATTRS = ["end", "endid", "end_id", "target", "targetid", "target_id", "supplier", "to"]

LINK_TYPES = {
    "notelink": "uml.noteLink",
    "informationflow": "uml.informationFlow",
    "dependency": "uml.dependency",
    "abstraction": "uml.abstraction",
    "realization": "uml.realization",
    "realisation": "uml.realization",
    "association": "uml.association",
    "aggregation": "uml.aggregation",
    "composition": "uml.composition",
}


def link_relationship_type(link_name: str) -> str:
    name = link_name.lower()
    return LINK_TYPES.get(name, f"uml.{name}")


def parse_links(doc: XmiDocument, report: ImportReport) -> list[IRRelationship]:
    by_id: dict[str, IRRelationship] = {}
    for block in descendants(doc.root, "links"):
        for link in children(block):
            link_id = stripped_attr(link, LINK_ID_ATTRS)
            start = stripped_attr(link, LINK_START_ATTRS)
            end = stripped_attr(link, LINK_END_ATTRS)
            if not link_id or not start or not end or link_id in by_id:
                continue

            external_ids = []
            own_xmi_id = xmi_id(link)
            if own_xmi_id and own_xmi_id != link_id:
                external_ids.append(IRExternalId(id=own_xmi_id, system="xmi", kind="xmi-id"))
            guid = stripped_attr(link, EA_GUID_ATTRS + ["uuid"])
            if guid and guid != link_id:
                external_ids.append(IRExternalId(id=guid, system=SYSTEM, kind="guid"))

            by_id[link_id] = IRRelationship(
                id=link_id,
                type=link_relationship_type(local_name(link)),
                source_id=start,
                target_id=end,
                name=stripped_attr(link, LINK_NAME_ATTRS) or "",
                external_ids=external_ids,
                meta={"source": "links", "ea_link_type": local_name(link)},
            )

    if by_id:
        report.add_info(f"EA XMI: Parsed {len(by_id)} relationship(s) from <links> blocks.", code="ea-xmi:links-parsed")
    return list(by_id.values())
