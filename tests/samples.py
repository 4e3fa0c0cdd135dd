"""Small but complete sample documents shared by the test modules."""

BPMN = b"""<?xml version="1.0" encoding="UTF-8"?>
<bpmn:definitions xmlns:bpmn="http://www.omg.org/spec/BPMN/20100524/MODEL"
    xmlns:bpmndi="http://www.omg.org/spec/BPMN/20100524/DI"
    xmlns:dc="http://www.omg.org/spec/DD/20100524/DC"
    xmlns:di="http://www.omg.org/spec/DD/20100524/DI"
    xmlns:camunda="http://camunda.org/schema/1.0/bpmn"
    id="Defs" targetNamespace="http://example.com/bpmn">
  <bpmn:message id="Msg1" name="Order received"/>
  <bpmn:collaboration id="Collab">
    <bpmn:participant id="Pool1" name="Sales" processRef="Proc1"/>
  </bpmn:collaboration>
  <bpmn:process id="Proc1" isExecutable="false">
    <bpmn:laneSet id="LS1">
      <bpmn:lane id="Lane1" name="Clerk">
        <bpmn:flowNodeRef>Start</bpmn:flowNodeRef>
        <bpmn:flowNodeRef>Task1</bpmn:flowNodeRef>
      </bpmn:lane>
    </bpmn:laneSet>
    <bpmn:startEvent id="Start" name="Order in">
      <bpmn:messageEventDefinition id="MED1" messageRef="Msg1"/>
    </bpmn:startEvent>
    <bpmn:userTask id="Task1" name="Check order">
      <bpmn:documentation>Check the
order.</bpmn:documentation>
      <bpmn:extensionElements>
        <camunda:properties>
          <camunda:property name="owner" value="sales"/>
        </camunda:properties>
      </bpmn:extensionElements>
    </bpmn:userTask>
    <bpmn:boundaryEvent id="Timer1" attachedToRef="Task1" cancelActivity="false">
      <bpmn:timerEventDefinition id="TED1">
        <bpmn:timeDuration>PT1H</bpmn:timeDuration>
      </bpmn:timerEventDefinition>
    </bpmn:boundaryEvent>
    <bpmn:sendTask id="Send1" name="Notify"/>
    <bpmn:endEvent id="End"/>
    <bpmn:sequenceFlow id="F1" sourceRef="Start" targetRef="Task1"/>
    <bpmn:sequenceFlow id="F2" name="ok" sourceRef="Task1" targetRef="End">
      <bpmn:conditionExpression>approved</bpmn:conditionExpression>
    </bpmn:sequenceFlow>
    <bpmn:sequenceFlow id="F3" sourceRef="Task1" targetRef="Ghost"/>
  </bpmn:process>
  <bpmndi:BPMNDiagram id="D1" name="Main">
    <bpmndi:BPMNPlane id="Plane1" bpmnElement="Collab">
      <bpmndi:BPMNShape id="S_Task1" bpmnElement="Task1">
        <dc:Bounds x="200" y="80" width="100" height="80"/>
      </bpmndi:BPMNShape>
      <bpmndi:BPMNShape id="S_Lane1" bpmnElement="Lane1">
        <dc:Bounds x="30" y="0" width="770" height="300"/>
      </bpmndi:BPMNShape>
      <bpmndi:BPMNShape id="S_Pool1" bpmnElement="Pool1">
        <dc:Bounds x="0" y="0" width="800" height="300"/>
      </bpmndi:BPMNShape>
      <bpmndi:BPMNShape id="S_Start" bpmnElement="Start">
        <dc:Bounds x="100" y="102" width="36" height="36"/>
      </bpmndi:BPMNShape>
      <bpmndi:BPMNEdge id="E_F1" bpmnElement="F1">
        <di:waypoint x="136" y="120"/>
        <di:waypoint x="200" y="120"/>
      </bpmndi:BPMNEdge>
    </bpmndi:BPMNPlane>
  </bpmndi:BPMNDiagram>
</bpmn:definitions>
"""

MEFF = b"""<?xml version="1.0" encoding="UTF-8"?>
<model xmlns="http://www.opengroup.org/xsd/archimate/3.0/"
    xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
    identifier="m1">
  <name xml:lang="en">Enterprise</name>
  <documentation xml:lang="en">Sample landscape</documentation>
  <elements>
    <element identifier="a1" xsi:type="BusinessActor">
      <name xml:lang="en">Customer</name>
    </element>
    <element identifier="a2" xsi:type="BusinessRole">
      <name xml:lang="en">Buyer</name>
    </element>
    <element identifier="a3" xsi:type="ApplicationComponent">
      <name xml:lang="en">Shop</name>
      <documentation xml:lang="en">Web shop</documentation>
      <properties>
        <property propertyDefinitionRef="pd1">
          <value xml:lang="en">Gold</value>
        </property>
      </properties>
    </element>
    <element identifier="a4" xsi:type="Widget">
      <name xml:lang="en">Gadget</name>
    </element>
    <element identifier="a5" xsi:type="Goal"/>
  </elements>
  <relationships>
    <relationship identifier="r1" xsi:type="Assignment" source="a1" target="a2"/>
    <relationship identifier="r2" xsi:type="UsedBy" source="a3" target="a1"/>
    <relationship identifier="r3" xsi:type="Flow" source="a1"/>
  </relationships>
  <organizations>
    <item>
      <label xml:lang="en">Business</label>
      <item identifierRef="a1"/>
      <item identifierRef="a3">
        <item identifierRef="a2"/>
      </item>
    </item>
    <item>
      <label xml:lang="en">Views</label>
      <item identifierRef="v1"/>
    </item>
  </organizations>
  <propertyDefinitions>
    <propertyDefinition identifier="pd1" type="string">
      <name xml:lang="en">Tier</name>
    </propertyDefinition>
  </propertyDefinitions>
  <views>
    <diagrams>
      <view identifier="v1" xsi:type="Diagram" viewpoint="Layered">
        <name xml:lang="en">Overview</name>
        <node identifier="n1" elementRef="a1" xsi:type="Element" x="10" y="10" w="120" h="55"/>
        <node identifier="n2" elementRef="a2" xsi:type="Element" x="200" y="10" w="120" h="55"/>
        <node identifier="n3" xsi:type="Label" x="10" y="100" w="200" h="40">
          <label xml:lang="en">Read me</label>
        </node>
        <connection identifier="c1" relationshipRef="r1" xsi:type="Relationship" source="n1" target="n2">
          <bendpoint x="150" y="40"/>
        </connection>
      </view>
    </diagrams>
  </views>
</model>
"""

EA_XMI = b"""<?xml version="1.0" encoding="UTF-8"?>
<xmi:XMI xmlns:xmi="http://www.omg.org/spec/XMI/20131001"
    xmlns:uml="http://www.omg.org/spec/UML/20131001"
    xmlns:ArchiMate3="http://www.sparxsystems.com/profiles/ArchiMate3/1.0">
  <uml:Model xmi:type="uml:Model" name="EA_Model" xmi:id="MX_1">
    <packagedElement xmi:type="uml:Package" xmi:id="EAPK_1" name="Domain">
      <packagedElement xmi:type="uml:Package" xmi:id="EAPK_2" name="Orders"/>
      <packagedElement xmi:type="uml:Class" xmi:id="EAID_C1" name="Customer">
        <ownedAttribute xmi:type="uml:Property" xmi:id="EAID_A1" name="email" visibility="private">
          <type xmi:idref="EAID_C2"/>
        </ownedAttribute>
        <ownedOperation xmi:id="EAID_O1" name="rename">
          <ownedParameter xmi:id="EAID_P1" name="newName"/>
          <ownedParameter xmi:id="EAID_P2" direction="return" type="EAID_C2"/>
        </ownedOperation>
        <generalization xmi:type="uml:Generalization" xmi:id="EAID_G1" general="EAID_C3"/>
      </packagedElement>
      <packagedElement xmi:type="uml:Class" xmi:id="EAID_C2" name="Order"/>
      <packagedElement xmi:type="uml:Class" xmi:id="EAID_C3" name="Party"/>
      <packagedElement xmi:type="uml:Class" xmi:id="EAID_B1" name="Clerk"/>
      <packagedElement xmi:type="uml:Association" xmi:id="EAID_AS1" name="places">
        <memberEnd xmi:idref="EAID_dst1"/>
        <memberEnd xmi:idref="EAID_src1"/>
        <ownedEnd xmi:type="uml:Property" xmi:id="EAID_src1" association="EAID_AS1" name="customer" aggregation="composite">
          <type xmi:idref="EAID_C1"/>
          <lowerValue xmi:type="uml:LiteralInteger" xmi:id="EAID_LV1" value="1"/>
          <upperValue xmi:type="uml:LiteralUnlimitedNatural" xmi:id="EAID_UV1" value="1"/>
        </ownedEnd>
        <ownedEnd xmi:type="uml:Property" xmi:id="EAID_dst1" association="EAID_AS1" name="orders" isNavigable="true">
          <type xmi:idref="EAID_C2"/>
          <lowerValue xmi:type="uml:LiteralInteger" xmi:id="EAID_LV2" value="0"/>
          <upperValue xmi:type="uml:LiteralUnlimitedNatural" xmi:id="EAID_UV2" value="-1"/>
        </ownedEnd>
      </packagedElement>
      <packagedElement xmi:type="uml:Dependency" xmi:id="EAID_D1" name="uses" client="EAID_C2" supplier="EAID_C3"/>
      <packagedElement xmi:type="uml:Dependency" xmi:id="EAID_D2" client="EAID_C1"/>
    </packagedElement>
  </uml:Model>
  <ArchiMate3:ArchiMate_BusinessActor base_Class="EAID_B1" xmi:id="EAID_PA1"/>
  <xmi:Extension extender="Enterprise Architect" extenderID="6.5">
    <elements>
      <element xmi:idref="EAID_C2" xmi:type="uml:Class" name="Order">
        <properties documentation="An order." stereotype="entity"/>
      </element>
    </elements>
    <connectors>
      <connector xmi:idref="EAID_X1">
        <source xmi:idref="EAID_B1"/>
        <target xmi:idref="EAID_C3"/>
        <properties ea_type="Association" stereotype="ArchiMate_Assignment"/>
      </connector>
    </connectors>
    <diagrams>
      <diagram xmi:id="EAID_DG1">
        <model package="EAPK_1" owner="EAPK_1"/>
        <properties name="Class Model" type="Logical"/>
        <elements>
          <element subject="EAID_C1" seqno="1" geometry="Left=10;Top=20;Right=110;Bottom=80;" style="DUID=AAA;"/>
          <element subject="EAID_C2" seqno="2" geometry="Left=200;Top=20;Right=300;Bottom=80;" style="DUID=BBB;"/>
          <element subject="EAID_AS1" geometry="SX=0;SY=0;EX=0;EY=0;EDGE=2;" style="SOID=AAA;EOID=BBB;"/>
        </elements>
      </diagram>
    </diagrams>
  </xmi:Extension>
</xmi:XMI>
"""
