"""Tests for the generic and format-specific normalizers."""

import math

from eaimport.ir.models import (
    IRBounds,
    IRElement,
    IRExternalId,
    IRFolder,
    IRModel,
    IRRelationship,
    IRTaggedValue,
    IRView,
    IRViewConnection,
    IRViewNode,
    ViewNodeKind,
)
from eaimport.ir.report import ImportReport
from eaimport.normalize.bpmn2 import normalize_bpmn2_ir
from eaimport.normalize.ea_xmi import (
    coerce_bool,
    looks_like_ea_ref,
    materialize_relationship_stubs,
    normalize_ea_xmi_ir,
    ref_variants,
)
from eaimport.normalize.generic import normalize_import_ir
from eaimport.normalize.meff import normalize_meff_ir
from eaimport.normalize.shared import ExtensionTagLimits, extract_extension_tags, normalize_doc_text


def messy_model() -> IRModel:
    return IRModel(
        folders=[
            IRFolder(id="f1", name="One", parent_id="f2"),
            IRFolder(id="f2", name="Two", parent_id="f1"),
            IRFolder(id="f3", name="", parent_id="missing"),
        ],
        elements=[
            IRElement(id=" e1 ", type="BusinessActor", name="A", folder_id="nope"),
            IRElement(id="e1", type="BusinessRole", name="Duplicate"),
            IRElement(id="e2", type="", name="B", parent_element_id="e3"),
            IRElement(id="e3", type="Node", name="C", parent_element_id="e2"),
            IRElement(id="", type="Node", name="no id"),
        ],
        relationships=[
            IRRelationship(id="r1", type="Serving", source_id="e1", target_id="e2"),
            IRRelationship(id="r2", type="Flow", source_id="e1", target_id="ghost"),
        ],
        views=[
            IRView(
                id="v1",
                name="",
                folder_id="f1",
                nodes=[
                    IRViewNode(id="n1", kind=ViewNodeKind.ELEMENT, element_id="e1", bounds=IRBounds(0, 0, 10, 10)),
                    IRViewNode(id="n2", element_id="ghost", bounds=IRBounds(0, 0, 0, 10)),
                    IRViewNode(id="n3", parent_node_id="n3", bounds=IRBounds(math.nan, 0, 10, 10)),
                ],
                connections=[
                    IRViewConnection(id="c1", relationship_id="r2", source_node_id="n1", target_node_id="zz"),
                ],
            )
        ],
    )


# --- Generic normalizer ---


def test_duplicate_and_empty_ids_are_dropped():
    report = ImportReport()
    ir = normalize_import_ir(messy_model(), report)
    assert [e.id for e in ir.elements] == ["e1", "e2", "e3"]
    assert ir.element_by_id("e1").name == "A"
    assert any('duplicate element id "e1"' in w for w in report.warnings)
    assert any("element with empty id" in w for w in report.warnings)


def test_folder_repairs():
    report = ImportReport()
    ir = normalize_import_ir(messy_model(), report)
    folders = {f.id: f for f in ir.folders}
    # The first folder on the cycle loses its parent.
    assert folders["f1"].parent_id is None
    assert folders["f2"].parent_id == "f1"
    assert folders["f3"].parent_id is None
    assert folders["f3"].name == "Unnamed folder"


def test_element_repairs():
    ir = normalize_import_ir(messy_model())
    e1, e2, e3 = ir.elements
    assert e1.folder_id is None
    assert e2.type == "Unknown"
    assert e2.parent_element_id is None
    assert e3.parent_element_id == "e2"


def test_dangling_relationship_dropped_or_kept():
    assert [r.id for r in normalize_import_ir(messy_model()).relationships] == ["r1"]
    kept = normalize_import_ir(messy_model(), drop_dangling_relationships=False)
    assert [r.id for r in kept.relationships] == ["r1", "r2"]


def test_view_repairs():
    ir = normalize_import_ir(messy_model())
    view = ir.views[0]
    assert view.name == "Unnamed view"
    nodes = {n.id: n for n in view.nodes}
    assert nodes["n1"].bounds is not None
    assert nodes["n2"].element_id is None
    assert nodes["n2"].bounds is None
    assert nodes["n3"].parent_node_id is None
    assert nodes["n3"].bounds is None

    conn = view.connections[0]
    assert conn.relationship_id is None
    assert conn.source_node_id == "n1"
    assert conn.target_node_id is None


def test_warnings_carry_source_prefix():
    report = ImportReport()
    normalize_import_ir(messy_model(), report, source="archimate-meff")
    assert report.warnings
    assert all(w.startswith("archimate-meff: Normalize: ") for w in report.warnings)
    assert {i.code for i in report.issues} == {"normalize"}


def test_input_is_not_mutated():
    original = messy_model()
    normalize_import_ir(original)
    assert original.elements[0].id == " e1 "
    assert len(original.elements) == 5


def test_normalizer_is_idempotent():
    once = normalize_import_ir(messy_model())
    report = ImportReport()
    twice = normalize_import_ir(once, report)
    assert twice == once
    assert report.warnings == []


def test_tagged_values_and_external_ids_deduped():
    ir = IRModel(
        elements=[
            IRElement(
                id="e",
                type="Node",
                name="E",
                tagged_values=[IRTaggedValue(" k ", "v"), IRTaggedValue("k", "v"), IRTaggedValue("", "x")],
                external_ids=[IRExternalId("1", "sys"), IRExternalId(" 1", "sys"), IRExternalId("", "sys")],
            )
        ]
    )
    element = normalize_import_ir(ir).elements[0]
    assert element.tagged_values == [IRTaggedValue("k", "v")]
    assert element.external_ids == [IRExternalId("1", "sys")]


def test_imported_at_is_stamped_once():
    ir = normalize_import_ir(IRModel())
    stamp = ir.meta["imported_at_iso"]
    assert normalize_import_ir(ir).meta["imported_at_iso"] == stamp


# --- Shared format pass ---


def test_extension_tags_are_bounded():
    limits = ExtensionTagLimits(max_tags=2, max_key_length=5, max_value_length=5)
    meta = {"extension_elements": {"tags": [
        {"key": "toolong", "value": "v"},
        {"key": "a", "value": "1"},
        {"key": "b", "value": ""},
        {"key": "c", "value": "3"},
        {"key": "d", "value": "4"},
    ]}}
    tags = extract_extension_tags(meta, limits)
    assert [(t.key, t.value) for t in tags] == [("ext:a", "1"), ("ext:c", "3")]
    assert extract_extension_tags({"extension_elements": {"tags": {"x": "y"}}}, limits)[0].key == "ext:x"


def test_doc_text_line_endings():
    assert normalize_doc_text(" a\r\nb\rc ") == "a\nb\nc"


def test_format_pass_sorts_and_drops_dangling():
    ir = IRModel(
        elements=[IRElement(id="b", type="Node", name=" B "), IRElement(id="a", type="Node", name="")],
        relationships=[IRRelationship(id="r", type="Flow", source_id="a", target_id="zz")],
        views=[IRView(id="v", nodes=[IRViewNode(id="n", element_id="zz")])],
    )
    report = ImportReport()
    out = normalize_meff_ir(ir, report)
    assert [e.id for e in out.elements] == ["a", "b"]
    assert out.element_by_id("a").name == "Unnamed (Node)"
    assert out.element_by_id("b").name == "B"
    assert out.relationships == []
    assert out.views[0].nodes == []
    assert out.views[0].name == "Imported MEFF diagram"
    assert all(w.startswith("MEFF normalize: ") for w in report.warnings)


def test_each_defaulted_name_warns_once():
    report = ImportReport()
    ir = IRModel(
        folders=[IRFolder(id="f", name=" ")],
        elements=[IRElement(id="x", type="bpmn.task", name="")],
        views=[IRView(id="v")],
    )
    out = normalize_bpmn2_ir(ir, report)
    assert out.element_by_id("x").name == "Unnamed (bpmn.task)"
    assert report.warnings == [
        'BPMN2 normalize: Folder "f" had no name; defaulted to "Imported folder".',
        'BPMN2 normalize: Element "x" had no name; defaulted to "Unnamed (bpmn.task)".',
        'BPMN2 normalize: View "v" had no name; defaulted to "Imported BPMN diagram".',
    ]


def test_format_pass_can_keep_dangling_relationships():
    ir = IRModel(
        elements=[IRElement(id="a", type="Node", name="A")],
        relationships=[IRRelationship(id="r", type="Flow", source_id="a", target_id="zz")],
        views=[IRView(id="v", name="V", connections=[IRViewConnection(id="c", relationship_id="r")])],
    )
    report = ImportReport()
    out = normalize_meff_ir(ir, report, drop_dangling_relationships=False)
    assert [r.id for r in out.relationships] == ["r"]
    assert [c.id for c in out.views[0].connections] == ["c"]
    assert report.warnings == []


# --- EA XMI pass ---


def test_ea_normalizer_links_association_class_and_ends():
    ir = IRModel(
        elements=[
            IRElement(id="AC", type="uml.associationClass", name="Enrollment"),
            IRElement(id="S", type="uml.class", name="Student"),
            IRElement(id="C", type="uml.class", name="Course"),
        ],
        relationships=[
            IRRelationship(
                id="AC__association",
                type="uml.association",
                source_id="S",
                target_id="C",
                attrs={"source_role": " ", "target_role": " courses ", "source_navigable": "yes", "target_navigable": "?"},
            )
        ],
    )
    out = normalize_ea_xmi_ir(ir)
    assert out.element_by_id("AC").attrs["associationRelationshipId"] == "AC__association"
    rel = out.relationships[0]
    assert rel.attrs == {"associationClassElementId": "AC", "target_role": "courses", "source_navigable": True}


def test_ea_normalizer_resolves_guid_subjects():
    ir = IRModel(
        elements=[
            IRElement(id="EAID_1", type="uml.class", name="A", external_ids=[IRExternalId("{ABC-1}", "sparx-ea")])
        ],
        views=[IRView(id="v", name="V", nodes=[IRViewNode(id="n", element_id="abc-1")])],
    )
    out = normalize_ea_xmi_ir(ir)
    assert out.views[0].nodes[0].element_id == "EAID_1"


def test_ref_variants_and_bools():
    assert ref_variants("{AB}") == ["{AB}", "{ab}", "AB", "ab"]
    assert coerce_bool("No") is False
    assert coerce_bool("maybe") is None


def connector_model(subject: str, relationships=()) -> IRModel:
    return IRModel(
        elements=[IRElement(id="A", type="uml.class", name="A"), IRElement(id="B", type="uml.class", name="B")],
        relationships=list(relationships),
        views=[
            IRView(
                id="v",
                name="V",
                nodes=[IRViewNode(id="na", element_id="A"), IRViewNode(id="nb", element_id="B")],
                connections=[
                    IRViewConnection(id="c", source_node_id="na", target_node_id="nb", meta={"ea_subject": subject})
                ],
            )
        ],
    )


def test_connector_stub_needs_an_ea_reference():
    ir = connector_model("just-a-name")
    assert materialize_relationship_stubs(ir) == 0
    assert ir.relationships == []
    assert ir.views[0].connections[0].relationship_id is None

    assert looks_like_ea_ref("EAID_0A1B")
    assert looks_like_ea_ref("{3F2504E0-4F89-11D3-9A0C-0305E82C3301}")
    assert not looks_like_ea_ref("connector 1")


def test_connector_stub_skipped_when_one_relationship_joins_the_ends():
    existing = IRRelationship(id="EAID_R1", type="uml.association", source_id="A", target_id="B")
    ir = connector_model("EAID_OTHER", [existing])
    report = ImportReport(source="ea-xmi-uml")
    assert materialize_relationship_stubs(ir, report) == 0
    assert [r.id for r in ir.relationships] == ["EAID_R1"]
    assert not report.issues_with_code("ea-xmi:diagram-relationship-stubs")


def test_connector_bound_by_guid_variant():
    existing = IRRelationship(id="{AB12CD34-0000}", type="uml.dependency", source_id="A", target_id="B")
    ir = connector_model("ab12cd34-0000", [existing])
    assert materialize_relationship_stubs(ir) == 0
    assert ir.views[0].connections[0].relationship_id == "{AB12CD34-0000}"
