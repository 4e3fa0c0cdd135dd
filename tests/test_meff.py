"""Tests for the ArchiMate Model Exchange File parser."""

import re

import pytest

from eaimport.errors import StructuralParseError
from eaimport.importers.context import build_import_context
from eaimport.importers.sniffers import sniff_meff
from eaimport.ir.models import ViewNodeKind
from eaimport.parsers.meff import node_kind_from_type, parse_meff_xml

from samples import MEFF


def parsed():
    return parse_meff_xml(MEFF)


# --- Elements ---


def test_elements():
    ir, _ = parsed()
    assert [e.id for e in ir.elements] == ["a1", "a2", "a3", "a4", "a5"]
    a3 = ir.element_by_id("a3")
    assert a3.type == "ApplicationComponent"
    assert a3.name == "Shop"
    assert a3.documentation == "Web shop"
    assert ir.meta["model_name"] == "Enterprise"
    assert ir.meta["format"] == "archimate-meff"


def test_property_definition_names_are_resolved():
    ir, _ = parsed()
    assert ir.element_by_id("a3").properties == {"Tier": "Gold"}


def test_unknown_element_type_is_counted():
    ir, report = parsed()
    a4 = ir.element_by_id("a4")
    assert a4.type == "Unknown"
    assert a4.meta["source_type"] == "Widget"
    assert report.unknown_element_types == {"archimate-meff:Widget": 1}


def test_missing_name_is_defaulted():
    ir, report = parsed()
    assert ir.element_by_id("a5").name == "(unnamed)"
    assert report.issues_with_code("meff:missing-name")


# --- Relationships ---


def test_used_by_becomes_inverted_serving():
    ir, _ = parsed()
    r2 = next(r for r in ir.relationships if r.id == "r2")
    assert r2.type == "Serving"
    assert (r2.source_id, r2.target_id) == ("a1", "a3")
    assert r2.meta["original_type"] == "UsedBy"


def test_relationship_without_target_is_skipped():
    ir, report = parsed()
    assert [r.id for r in ir.relationships] == ["r1", "r2"]
    assert any('"r3"' in w for w in report.warnings)


# --- Organizations ---


def test_organizations_become_folders():
    ir, _ = parsed()
    assert [(f.id, f.name) for f in ir.folders] == [("org-auto-1", "Business"), ("org-auto-2", "Views")]
    assert ir.element_by_id("a1").folder_id == "org-auto-1"
    assert ir.views[0].folder_id == "org-auto-2"


def test_wrapping_item_contains_nested_refs():
    ir, _ = parsed()
    a2 = ir.element_by_id("a2")
    assert a2.parent_element_id == "a3"
    assert a2.folder_id == "org-auto-1"
    assert ir.element_by_id("a3").parent_element_id is None


def test_wrapped_view_gets_owning_element():
    doc = MEFF.replace(b'<item identifierRef="v1"/>', b'<item identifierRef="a3"><item identifierRef="v1"/></item>')
    ir, _ = parse_meff_xml(doc)
    assert ir.views[0].meta["owning_element_id"] == "a3"


# --- Views ---


def test_view_nodes_and_connections():
    ir, _ = parsed()
    view = ir.views[0]
    assert view.id == "v1"
    assert view.name == "Overview"
    assert view.viewpoint == "Layered"

    n1 = view.node_by_id("n1")
    assert n1.kind == ViewNodeKind.ELEMENT
    assert (n1.bounds.x, n1.bounds.width, n1.bounds.height) == (10.0, 120.0, 55.0)

    n3 = view.node_by_id("n3")
    assert n3.kind == ViewNodeKind.SHAPE
    assert n3.label == "Read me"
    assert n3.meta["object_type"] == "Label"

    conn = view.connections[0]
    assert (conn.relationship_id, conn.source_node_id, conn.target_node_id) == ("r1", "n1", "n2")
    assert [(p.x, p.y) for p in conn.points] == [(150.0, 40.0)]


def test_node_kind_from_type():
    assert node_kind_from_type("Note") == (ViewNodeKind.NOTE, "Note")
    assert node_kind_from_type("Container") == (ViewNodeKind.GROUP, "GroupBox")
    assert node_kind_from_type(None) == (ViewNodeKind.OTHER, "Label")


# --- Degenerate documents ---


def test_empty_model_warns():
    ir, report = parse_meff_xml(b'<model xmlns="http://www.opengroup.org/xsd/archimate/3.0/"/>')
    assert ir.elements == []
    assert report.issues_with_code("meff:no-elements")
    assert report.issues_with_code("meff:no-relationships")


def test_malformed_xml_raises():
    with pytest.raises(StructuralParseError) as exc:
        parse_meff_xml(b"<model><elements>")
    assert exc.value.format == "MEFF"


# --- Prefixed namespace ---

NS0_MEFF = re.sub(rb"<(/?)(?=[A-Za-z])", rb"<\1ns0:", MEFF).replace(b'xmlns="', b'xmlns:ns0="')


def test_ns0_prefixed_document_is_sniffed_and_parsed():
    assert b"<ns0:model" in NS0_MEFF and b"</ns0:elements>" in NS0_MEFF
    assert sniff_meff(build_import_context(NS0_MEFF, "model.xml"))

    prefixed, report = parse_meff_xml(NS0_MEFF)
    plain, _ = parsed()
    assert prefixed == plain
    assert report.unknown_element_types == {"archimate-meff:Widget": 1}
