"""Tests for the Sparx EA XMI parser."""

import pytest

from eaimport.errors import StructuralParseError
from eaimport.normalize.ea_xmi import normalize_ea_xmi_ir
from eaimport.parsers.ea_xmi import parse_ea_xmi
from eaimport.parsers.ea_xmi.common import multiplicity_of
from eaimport.parsers.ea_xmi.diagrams import bounds_from_geometry, parse_style
from eaimport.utils.xmlscan import parse_xml

from samples import EA_XMI

LINKS_ONLY = b"""<xmi:XMI xmlns:xmi="http://www.omg.org/spec/XMI/20131001" xmlns:uml="http://www.omg.org/spec/UML/20131001">
  <uml:Model xmi:type="uml:Model" name="M">
    <packagedElement xmi:type="uml:Package" xmi:id="EAPK_1" name="P">
      <packagedElement xmi:type="uml:Class" xmi:id="EAID_A" name="A">
        <links>
          <NoteLink xmi:id="EAID_L1" start="EAID_A" end="EAID_B"/>
        </links>
      </packagedElement>
      <packagedElement xmi:type="uml:Class" xmi:id="EAID_B" name="B"/>
    </packagedElement>
  </uml:Model>
</xmi:XMI>"""

PROCESS_XMI = b"""<xmi:XMI xmlns:xmi="http://www.omg.org/spec/XMI/20131001" xmlns:uml="http://www.omg.org/spec/UML/20131001"
    xmlns:BPMN2.0="http://www.sparxsystems.com/profiles/BPMN2.0/1.0">
  <uml:Model xmi:type="uml:Model" name="Processes">
    <packagedElement xmi:type="uml:Package" name="Loose">
      <packagedElement xmi:type="uml:Class" xmi:id="EAID_K1" name="Student"/>
      <packagedElement xmi:type="uml:Class" xmi:id="EAID_K2" name="Course"/>
      <packagedElement xmi:type="uml:AssociationClass" xmi:id="EAID_AC" name="Enrollment">
        <ownedEnd xmi:type="uml:Property" xmi:id="EAID_dst2" association="EAID_AC"><type xmi:idref="EAID_K2"/></ownedEnd>
        <ownedEnd xmi:type="uml:Property" xmi:id="EAID_src2" association="EAID_AC"><type xmi:idref="EAID_K1"/></ownedEnd>
      </packagedElement>
    </packagedElement>
    <packagedElement xmi:type="uml:Package" xmi:id="EAPK_P" name="Flows">
      <packagedElement xmi:type="uml:Activity" xmi:id="EAID_ACT" name="Handle order">
        <node xmi:type="uml:InitialNode" xmi:id="EAID_N0"/>
        <node xmi:type="uml:OpaqueAction" xmi:id="EAID_N1" name="Check stock"/>
        <node xmi:type="uml:ActivityFinalNode" xmi:id="EAID_N2"/>
        <edge xmi:type="uml:ControlFlow" xmi:id="EAID_CF1" source="EAID_N0" target="EAID_N1"/>
        <edge xmi:type="uml:ControlFlow" xmi:id="EAID_CF2" source="EAID_N1" target="EAID_N2">
          <guard xmi:type="uml:OpaqueExpression" xmi:id="EAID_GD1" body="in stock"/>
        </edge>
      </packagedElement>
      <packagedElement xmi:type="uml:Class" xmi:id="EAID_POOL" name="Shop"/>
      <packagedElement xmi:type="uml:Class" xmi:id="EAID_LANE" name="Sales"/>
      <packagedElement xmi:type="uml:Activity" xmi:id="EAID_T1" name="Take order"/>
      <packagedElement xmi:type="uml:Activity" xmi:id="EAID_T2" name="Ship"/>
      <packagedElement xmi:type="uml:Dependency" xmi:id="EAID_SF1" client="EAID_T1" supplier="EAID_T2"/>
    </packagedElement>
  </uml:Model>
  <BPMN2.0:Pool base_Class="EAID_POOL"/>
  <BPMN2.0:Lane base_Class="EAID_LANE"/>
  <BPMN2.0:Activity base_Activity="EAID_T1"/>
  <BPMN2.0:Activity base_Activity="EAID_T2"/>
  <BPMN2.0:SequenceFlow base_Dependency="EAID_SF1"/>
  <BPMN2.0:Choreography xmi:id="EAID_CH"/>
  <BPMN2.0:MessageFlow xmi:id="EAID_MF"/>
  <xmi:Extension extender="Enterprise Architect" extenderID="6.5">
    <diagrams>
      <diagram xmi:id="EAID_DA">
        <model package="EAPK_P"/>
        <properties name="Handle order" type="Activity"/>
        <elements>
          <element subject="EAID_ACT" geometry="Left=0;Top=0;Right=400;Bottom=300;" style="DUID=A0;"/>
          <element subject="EAID_N0" geometry="Left=20;Top=20;Right=40;Bottom=40;" style="DUID=A1;"/>
          <element subject="EAID_N1" geometry="Left=100;Top=20;Right=200;Bottom=60;" style="DUID=A2;"/>
          <element subject="EAID_N2" geometry="Left=300;Top=20;Right=320;Bottom=40;" style="DUID=A3;"/>
          <element subject="EAID_CX1" geometry="SX=0;SY=0;EX=0;EY=0;EDGE=2;" style="SOID=A1;EOID=A3;"/>
        </elements>
      </diagram>
      <diagram xmi:id="EAID_DB">
        <model package="EAPK_P"/>
        <properties name="Order process" type="BPMN"/>
        <elements>
          <element subject="EAID_T1" seqno="1" geometry="Left=120;Top=30;Right=200;Bottom=80;" style="DUID=B1;"/>
          <element subject="EAID_LANE" seqno="2" geometry="Left=20;Top=0;Right=600;Bottom=100;" style="DUID=B2;"/>
          <element subject="EAID_POOL" seqno="3" geometry="Left=0;Top=0;Right=600;Bottom=200;" style="DUID=B3;"/>
          <element subject="EAID_T2" seqno="4" geometry="Left=300;Top=130;Right=380;Bottom=180;" style="DUID=B4;"/>
        </elements>
      </diagram>
    </diagrams>
  </xmi:Extension>
</xmi:XMI>"""


def parsed():
    return parse_ea_xmi(EA_XMI)


def view_of(ir, view_id):
    return next(v for v in ir.views if v.id == view_id)


# --- Packages ---


def test_packages_become_folders():
    ir, _ = parsed()
    assert [(f.id, f.name, f.parent_id) for f in ir.folders] == [
        ("EAPK_1", "Domain", None),
        ("EAPK_2", "Orders", "EAPK_1"),
    ]
    assert ir.meta["model_name"] == "EA_Model"
    assert ir.meta["format"] == "ea-xmi-uml"


# --- Elements ---


def test_uml_classifiers():
    ir, _ = parsed()
    types = {e.id: e.type for e in ir.elements}
    assert types["EAID_C1"] == "uml.class"
    assert types["EAID_C3"] == "uml.class"
    assert ir.element_by_id("EAID_C1").folder_id == "EAPK_1"


def test_extension_documentation_and_stereotype():
    ir, _ = parsed()
    order = ir.element_by_id("EAID_C2")
    assert order.documentation == "An order."
    assert [(tv.key, tv.value) for tv in order.tagged_values] == [("stereotype", "entity")]


def test_classifier_members():
    ir, _ = parsed()
    members = ir.element_by_id("EAID_C1").meta["uml_members"]
    assert members["attributes"] == [
        {"name": "email", "type_ref": "EAID_C2", "type_name": "Order", "visibility": "private"}
    ]
    assert members["operations"] == [{"name": "rename", "return_type": "Order", "params": [{"name": "newName"}]}]


def test_profile_application_replaces_uml_class():
    ir, report = parsed()
    clerk = [e for e in ir.elements if e.id == "EAID_B1"]
    assert len(clerk) == 1
    assert clerk[0].type == "BusinessActor"
    assert clerk[0].name == "Clerk"
    assert clerk[0].folder_id == "EAPK_1"
    assert report.issues_with_code("ea-xmi:element-id-collision")


# --- Relationships ---


def test_relationship_sources_are_merged():
    ir, _ = parsed()
    by_id = {r.id: r for r in ir.relationships}
    assert set(by_id) == {"EAID_X1", "EAID_G1", "EAID_D1", "EAID_AS1"}

    assert by_id["EAID_X1"].type == "Assignment"
    assert (by_id["EAID_X1"].source_id, by_id["EAID_X1"].target_id) == ("EAID_B1", "EAID_C3")

    generalization = by_id["EAID_G1"]
    assert generalization.type == "uml.generalization"
    assert (generalization.source_id, generalization.target_id) == ("EAID_C1", "EAID_C3")

    assert by_id["EAID_D1"].name == "uses"


def test_unresolved_dependency_is_skipped():
    ir, report = parsed()
    assert "EAID_D2" not in {r.id for r in ir.relationships}
    assert report.issues_with_code("ea-xmi:unresolved-endpoints")


def test_association_ends():
    ir, _ = parsed()
    assoc = next(r for r in ir.relationships if r.id == "EAID_AS1")
    assert assoc.type == "uml.composition"
    assert (assoc.source_id, assoc.target_id) == ("EAID_C1", "EAID_C2")
    assert assoc.attrs == {
        "source_role": "customer",
        "source_multiplicity": "1",
        "source_navigable": False,
        "target_role": "orders",
        "target_multiplicity": "0..*",
        "target_navigable": True,
    }


def test_links_are_a_fallback_source():
    ir, report = parse_ea_xmi(LINKS_ONLY)
    link = next(r for r in ir.relationships if r.id == "EAID_L1")
    assert link.type == "uml.noteLink"
    assert report.issues_with_code("ea-xmi:links-parsed")


# --- Diagrams ---


def test_diagram_becomes_view():
    ir, _ = parsed()
    view = ir.views[0]
    assert view.id == "EAID_DG1"
    assert view.name == "Class Model"
    assert view.viewpoint == "Logical"
    assert view.folder_id == "EAPK_1"

    node = view.node_by_id("EAID_DG1:EAID_C1")
    assert node.element_id == "EAID_C1"
    assert (node.bounds.x, node.bounds.y, node.bounds.width, node.bounds.height) == (10, 20, 100, 60)


def test_diagram_links_resolve_through_duid():
    ir, _ = parsed()
    conn = ir.views[0].connections[0]
    assert conn.relationship_id == "EAID_AS1"
    assert conn.source_node_id == "EAID_DG1:EAID_C1"
    assert conn.target_node_id == "EAID_DG1:EAID_C2"


def test_style_and_geometry_helpers():
    assert parse_style("Left=1; Top=2;DUID=X;") == {"left": "1", "top": "2", "duid": "X"}
    assert bounds_from_geometry({"left": "10", "top": "10", "right": "5", "bottom": "20"}) is None


def test_diagram_types_survive_as_viewpoints():
    ir, _ = parse_ea_xmi(PROCESS_XMI)
    assert {v.id: v.viewpoint for v in ir.views} == {"EAID_DA": "Activity", "EAID_DB": "BPMN"}
    stub = ir.views[0].connections[0]
    assert stub.relationship_id is None
    assert stub.meta == {"ea_subject": "EAID_CX1"}


# --- Packages without ids ---


def test_package_without_id_gets_synthetic_folder():
    ir, report = parse_ea_xmi(PROCESS_XMI)
    assert [(f.id, f.name) for f in ir.folders] == [("eaPkg_synth_1", "Loose"), ("EAPK_P", "Flows")]
    assert ir.element_by_id("EAID_K1").folder_id == "eaPkg_synth_1"
    warnings = [i.message for i in report.issues_with_code("ea-xmi:synthetic-id")]
    assert warnings == ['EA XMI: Package missing xmi:id; generated synthetic folder id "eaPkg_synth_1" (name="Loose").']


# --- Association classes ---


def test_association_class_yields_element_and_relationship():
    ir, _ = parse_ea_xmi(PROCESS_XMI)
    assert ir.element_by_id("EAID_AC").type == "uml.associationClass"
    rel = next(r for r in ir.relationships if r.id == "EAID_AC__association")
    assert rel.type == "uml.association"
    assert (rel.source_id, rel.target_id) == ("EAID_K1", "EAID_K2")
    assert rel.meta["metaclass"] == "AssociationClass"


def test_association_class_back_references_after_normalize():
    ir, report = parse_ea_xmi(PROCESS_XMI)
    normalized = normalize_ea_xmi_ir(ir, report)
    assert normalized.element_by_id("EAID_AC").attrs["associationRelationshipId"] == "EAID_AC__association"
    rel = next(r for r in normalized.relationships if r.id == "EAID_AC__association")
    assert rel.attrs["associationClassElementId"] == "EAID_AC"


# --- UML activities ---


def test_activity_nodes_and_control_flows():
    ir, _ = parse_ea_xmi(PROCESS_XMI)
    types = {e.id: e.type for e in ir.elements}
    assert types["EAID_ACT"] == "uml.activity"
    assert (types["EAID_N0"], types["EAID_N1"], types["EAID_N2"]) == (
        "uml.initialNode",
        "uml.action",
        "uml.activityFinalNode",
    )
    assert ir.element_by_id("EAID_N1").attrs == {"actionKind": "OpaqueAction"}
    assert not any(e.id.startswith("eaEl_synth") for e in ir.elements)

    flows = {r.id: r for r in ir.relationships if r.type == "uml.controlFlow"}
    assert set(flows) == {"EAID_CF1", "EAID_CF2"}
    assert (flows["EAID_CF1"].source_id, flows["EAID_CF1"].target_id) == ("EAID_N0", "EAID_N1")
    assert flows["EAID_CF2"].attrs == {"guard": "in stock"}
    assert "guard" not in flows["EAID_CF1"].attrs


def test_activity_owns_the_nodes_on_its_diagram():
    ir, report = parse_ea_xmi(PROCESS_XMI)
    normalized = normalize_ea_xmi_ir(ir, report)
    activity = normalized.element_by_id("EAID_ACT")
    assert activity.attrs["ownedNodeRefs"] == ["EAID_N0", "EAID_N1", "EAID_N2"]
    assert normalized.element_by_id("EAID_N1").attrs["activityId"] == "EAID_ACT"


def test_unbound_diagram_connector_becomes_stub():
    ir, report = parse_ea_xmi(PROCESS_XMI)
    normalized = normalize_ea_xmi_ir(ir, report)
    stub = next(r for r in normalized.relationships if r.id == "EAID_CX1")
    assert stub.type == "uml.dependency"
    assert (stub.source_id, stub.target_id) == ("EAID_N0", "EAID_N2")
    assert stub.meta["stub"] is True
    conn = view_of(normalized, "EAID_DA").connections[0]
    assert conn.relationship_id == "EAID_CX1"
    assert report.issues_with_code("ea-xmi:diagram-relationship-stubs")


# --- BPMN profile ---


def test_bpmn_profile_elements_replace_uml_classifiers():
    ir, report = parse_ea_xmi(PROCESS_XMI)
    types = {e.id: e.type for e in ir.elements}
    assert types["EAID_POOL"] == "bpmn.pool"
    assert types["EAID_LANE"] == "bpmn.lane"
    assert types["EAID_T1"] == types["EAID_T2"] == "bpmn.task"

    task = ir.element_by_id("EAID_T1")
    assert task.name == "Take order"
    assert task.folder_id == "EAPK_P"
    assert task.meta["bpmn_profile_tag"] == "Activity"
    assert report.issues_with_code("ea-xmi:element-id-collision")


def test_unknown_bpmn_profile_tag_is_counted():
    ir, report = parse_ea_xmi(PROCESS_XMI)
    choreography = ir.element_by_id("EAID_CH")
    assert choreography.type == "Unknown"
    assert choreography.meta["source_type"] == "Choreography"
    assert report.unknown_element_types["sparx-ea:Choreography"] == 1


def test_bpmn_profile_relationships():
    ir, report = parse_ea_xmi(PROCESS_XMI)
    flow = next(r for r in ir.relationships if r.id == "EAID_SF1")
    assert flow.type == "bpmn.sequenceFlow"
    assert (flow.source_id, flow.target_id) == ("EAID_T1", "EAID_T2")

    assert "EAID_MF" not in {r.id for r in ir.relationships}
    skipped = [i.message for i in report.issues_with_code("ea-xmi:unresolved-endpoints")]
    assert any('"EAID_MF" (bpmn.messageFlow)' in m for m in skipped)


def test_pools_and_lanes_nest_bpmn_nodes():
    ir, report = parse_ea_xmi(PROCESS_XMI)
    view = view_of(normalize_ea_xmi_ir(ir, report), "EAID_DB")
    parents = {n.element_id: n.parent_node_id for n in view.nodes}
    assert parents == {
        "EAID_POOL": None,
        "EAID_LANE": "EAID_DB:EAID_POOL",
        "EAID_T1": "EAID_DB:EAID_LANE",
        "EAID_T2": "EAID_DB:EAID_POOL",
    }
    z_order = {n.element_id: n.meta["z_order"] for n in view.nodes}
    assert z_order == {"EAID_POOL": 0, "EAID_LANE": 1, "EAID_T1": 2, "EAID_T2": 3}


def test_multiplicity():
    el = parse_xml(b'<end><lowerValue value="1"/><upperValue value="-1"/></end>')
    assert multiplicity_of(el) == "1..*"
    assert multiplicity_of(parse_xml(b"<end/>")) is None


# --- Degenerate documents ---


def test_missing_extension_warns():
    ir, report = parse_ea_xmi(LINKS_ONLY)
    assert ir.views == []
    assert report.issues_with_code("ea-xmi:no-extension")


def test_non_xmi_root_raises():
    with pytest.raises(StructuralParseError):
        parse_ea_xmi(b"<model/>")
