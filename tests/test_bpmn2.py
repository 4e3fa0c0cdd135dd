"""Tests for the BPMN 2.0 parser."""

import pytest

from eaimport.errors import StructuralParseError
from eaimport.ir.models import ViewNodeKind
from eaimport.parsers.bpmn2 import AUTO_VIEW_ID, default_name, parse_bpmn2_xml

from samples import BPMN

NO_DI = b"""<definitions xmlns="http://www.omg.org/spec/BPMN/20100524/MODEL">
  <process id="P">
    <task id="T1" name="One"/>
    <task id="T2" name="Two"/>
    <sequenceFlow id="F" sourceRef="T1" targetRef="T2"/>
  </process>
</definitions>"""


def parsed():
    return parse_bpmn2_xml(BPMN)


# --- Elements ---


def test_elements_and_types():
    ir, _ = parsed()
    types = {e.id: e.type for e in ir.elements}
    assert types == {
        "Msg1": "bpmn.message",
        "Pool1": "bpmn.pool",
        "Lane1": "bpmn.lane",
        "Start": "bpmn.startEvent",
        "Task1": "bpmn.userTask",
        "Timer1": "bpmn.boundaryEvent",
        "End": "bpmn.endEvent",
    }
    assert ir.meta["format"] == "bpmn2"


def test_default_names():
    ir, _ = parsed()
    assert ir.element_by_id("End").name == "endEvent (End)"
    assert default_name("bpmn.task", "X") == "task (X)"


def test_event_attrs():
    ir, _ = parsed()
    start = ir.element_by_id("Start")
    assert start.attrs == {"eventKind": "start", "eventDefinition": {"kind": "message", "messageRef": "Msg1"}}

    timer = ir.element_by_id("Timer1")
    assert timer.attrs["eventKind"] == "boundary"
    assert timer.attrs["cancelActivity"] is False
    assert timer.attrs["attachedToRef"] == "Task1"
    assert timer.attrs["eventDefinition"] == {"kind": "timer", "timeDuration": "PT1H"}

    end = ir.element_by_id("End")
    assert end.attrs["eventDefinition"] == {"kind": "none"}


def test_container_attrs():
    ir, _ = parsed()
    assert ir.element_by_id("Pool1").attrs == {"processRef": "Proc1"}
    assert ir.element_by_id("Lane1").attrs == {"flowNodeRefs": ["Start", "Task1"]}


def test_documentation_and_extension_tags():
    ir, _ = parsed()
    task = ir.element_by_id("Task1")
    assert task.documentation == "Check the\norder."
    assert task.meta["extension_elements"] == {"tags": [{"key": "owner", "value": "sales"}]}
    assert task.external_ids[0].system == "bpmn2"


def test_unsupported_node_is_reported():
    ir, report = parsed()
    assert ir.element_by_id("Send1") is None
    issues = report.issues_with_code("bpmn2:unsupported-node")
    assert len(issues) == 1
    assert "sendTask" in issues[0].message


# --- Relationships ---


def test_sequence_flows():
    ir, report = parsed()
    assert [r.id for r in ir.relationships] == ["F1", "F2"]
    f2 = ir.relationships[1]
    assert f2.name == "ok"
    assert f2.attrs == {"conditionExpression": "approved"}
    assert any("(F3)" in w and "target=Ghost" in w for w in report.warnings)


# --- Views ---


def test_diagram_view():
    ir, _ = parsed()
    assert len(ir.views) == 1
    view = ir.views[0]
    assert view.id == "D1"
    assert view.name == "Main"
    assert view.viewpoint == "bpmn-process"
    assert view.meta["plane_ref"] == "Collab"

    conn = view.connections[0]
    assert conn.relationship_id == "F1"
    assert [(p.x, p.y) for p in conn.points] == [(136.0, 120.0), (200.0, 120.0)]


def test_z_order_puts_containers_behind():
    ir, _ = parsed()
    nodes = ir.views[0].nodes
    assert [n.element_id for n in nodes] == ["Pool1", "Lane1", "Start", "Task1"]
    assert [n.meta["z_order"] for n in nodes] == [0, 1, 2, 3]
    assert nodes[0].bounds.width == 800


def test_auto_layout_without_di():
    ir, _ = parse_bpmn2_xml(NO_DI)
    assert len(ir.views) == 1
    view = ir.views[0]
    assert view.id == AUTO_VIEW_ID
    assert view.meta["auto_layout"] is True
    assert all(n.kind == ViewNodeKind.ELEMENT for n in view.nodes)
    assert [c.relationship_id for c in view.connections] == ["F"]


def test_invalid_bounds_number_is_reported():
    doc = NO_DI.replace(
        b"</definitions>",
        b"""<BPMNDiagram id="D"><BPMNPlane bpmnElement="P">
        <BPMNShape id="S" bpmnElement="T1"><Bounds x="abc" y="0" width="10" height="10"/></BPMNShape>
        </BPMNPlane></BPMNDiagram></definitions>""",
    )
    ir, report = parse_bpmn2_xml(doc)
    assert ir.views[0].nodes[0].bounds is None
    assert report.issues_with_code("bpmn2:invalid-number")


def test_edge_endpoints_come_from_di_shapes():
    doc = NO_DI.replace(
        b"</definitions>",
        b"""<BPMNDiagram id="D"><BPMNPlane bpmnElement="P">
        <BPMNShape id="S1" bpmnElement="T1"><Bounds x="0" y="0" width="10" height="10"/></BPMNShape>
        <BPMNShape id="S2" bpmnElement="T2"><Bounds x="50" y="0" width="10" height="10"/></BPMNShape>
        <BPMNEdge id="E" bpmnElement="F" sourceElement="S1" targetElement="nowhere"/>
        </BPMNPlane></BPMNDiagram></definitions>""",
    )
    ir, _ = parse_bpmn2_xml(doc)
    conn = ir.views[0].connections[0]
    assert conn.relationship_id == "F"
    assert conn.source_node_id == "S1"
    assert conn.target_node_id is None


# --- Failures ---


def test_missing_definitions_raises():
    with pytest.raises(StructuralParseError):
        parse_bpmn2_xml(b"<process id='P'/>")


def test_nested_definitions_is_not_a_bpmn_document():
    with pytest.raises(StructuralParseError) as exc:
        parse_bpmn2_xml(b"<wrapper>" + NO_DI + b"</wrapper>")
    assert "<wrapper>" in str(exc.value)


def test_malformed_xml_raises():
    with pytest.raises(StructuralParseError) as exc:
        parse_bpmn2_xml(b"<definitions><process>")
    assert exc.value.format == "BPMN2"
