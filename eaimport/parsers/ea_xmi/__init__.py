"""Sparx Enterprise Architect XMI parser.

Parsing runs in fixed steps over one indexed document: packages become
folders, classifiers and ArchiMate or BPMN profile applications become
elements, then relationships are collected from several sources and merged
in precedence order, and finally the EA diagram catalog becomes views.
"""

from __future__ import annotations

import logging

from eaimport.errors import StructuralParseError
from eaimport.ir.models import ImportFormat, IRModel
from eaimport.ir.report import ImportReport
from eaimport.parsers.ea_xmi.associations import parse_associations
from eaimport.parsers.ea_xmi.bpmn_profile import parse_bpmn_profile_elements, parse_bpmn_profile_relationships
from eaimport.parsers.ea_xmi.common import FORMAT_LABEL, SYSTEM, build_xmi_document
from eaimport.parsers.ea_xmi.diagrams import parse_diagrams
from eaimport.parsers.ea_xmi.elements import merge_elements, parse_archimate_profile_elements, parse_uml_elements
from eaimport.parsers.ea_xmi.links import parse_links
from eaimport.parsers.ea_xmi.packages import parse_packages
from eaimport.parsers.ea_xmi.relationships import (
    endpoints_by_id,
    merge_relationships,
    parse_connector_relationships,
    parse_profile_relationships,
    parse_uml_relationships,
)
from eaimport.utils.xmlscan import local_name, parse_xml, raw_local_name, stripped_attr

logger = logging.getLogger(__name__)

__all__ = ["parse_ea_xmi"]


def parse_ea_xmi(data: bytes | str) -> tuple[IRModel, ImportReport]:
    """Parse an EA XMI export into a (not yet normalized) IR model."""
    report = ImportReport(source="ea-xmi-uml")
    root = parse_xml(data, FORMAT_LABEL)
    if "xmi" not in local_name(root):
        raise StructuralParseError(
            f"EA XMI: Expected XMI root element (<xmi:XMI ...>), but found <{raw_local_name(root)}>.",
            format=FORMAT_LABEL,
        )

    doc = build_xmi_document(root)

    folders, model_el = parse_packages(doc, report)
    if not folders:
        report.add_warning(
            "EA XMI: Parsed 0 UML packages into folders. The file may not be a UML XMI export, "
            "or it may use an uncommon structure.",
            code="ea-xmi:no-folders",
        )

    profile_elements = merge_elements(
        parse_archimate_profile_elements(doc, report), parse_bpmn_profile_elements(doc, report), report
    )
    elements = merge_elements(profile_elements, parse_uml_elements(doc, report), report)

    uml_relationships = parse_uml_relationships(doc, report)
    associations = parse_associations(doc, report)
    known_endpoints = endpoints_by_id(uml_relationships + associations)
    profile_relationships = parse_profile_relationships(doc, report, known_endpoints)
    relationships = merge_relationships(
        [
            parse_connector_relationships(doc, report),
            profile_relationships,
            parse_bpmn_profile_relationships(doc, report, known_endpoints),
            uml_relationships,
            associations,
            parse_links(doc, report),
        ],
        report,
    )

    views = parse_diagrams(doc, report, {r.id for r in relationships})

    meta = {
        "format": ImportFormat.EA_XMI_UML.value,
        "tool": "Sparx Enterprise Architect",
        "source_system": SYSTEM,
    }
    model_name = stripped_attr(model_el, "name") if model_el is not None else None
    if model_name:
        meta["model_name"] = model_name

    ir = IRModel(folders=folders, elements=elements, relationships=relationships, views=views, meta=meta)
    logger.debug("Parsed EA XMI: %s", ir.counts())
    return ir, report
