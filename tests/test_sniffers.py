"""Tests for format sniffing and importer selection."""

from eaimport.importers.context import build_import_context
from eaimport.importers.registry import get_importer, pick_importer
from eaimport.importers.sniffers import sniff_bpmn2, sniff_ea_xmi, sniff_meff

BPMN = b"""<?xml version="1.0" encoding="UTF-8"?>
<bpmn:definitions xmlns:bpmn="http://www.omg.org/spec/BPMN/20100524/MODEL" id="d1">
  <bpmn:process id="P1"/>
</bpmn:definitions>"""

MEFF = b"""<?xml version="1.0" encoding="UTF-8"?>
<model xmlns="http://www.opengroup.org/xsd/archimate/3.0/" identifier="m1"/>"""

EA_XMI = b"""<?xml version="1.0" encoding="windows-1252"?>
<xmi:XMI xmlns:xmi="http://www.omg.org/spec/XMI/20131001" xmlns:uml="http://www.omg.org/spec/UML/20131001">
  <uml:Model xmi:type="uml:Model" name="EA_Model">
    <packagedElement xmi:type="uml:Package" xmi:id="EAPK_1" name="Pkg"/>
  </uml:Model>
  <xmi:Extension extender="Enterprise Architect" extenderID="6.5"/>
</xmi:XMI>"""

GENERIC_UML_XMI = b"""<xmi:XMI xmlns:xmi="http://www.omg.org/spec/XMI/20131001" xmlns:uml="http://www.omg.org/spec/UML/20131001">
  <uml:Model name="M"/>
</xmi:XMI>"""


def ctx(data: bytes, name: str = "model.xml"):
    return build_import_context(data, name)


def test_context_is_bounded_and_lowercased():
    c = build_import_context(b"\xef\xbb\xbf<a/>" + b" " * 100, "Model.BPMN", max_bytes=10)
    assert len(c.sniff_bytes) == 10
    assert c.file_name == "model.bpmn"
    assert c.extension == "bpmn"
    assert c.sniff_text.startswith("<a/>")


def test_bpmn_sniffer():
    assert sniff_bpmn2(ctx(BPMN))
    assert not sniff_bpmn2(ctx(MEFF))
    assert sniff_bpmn2(ctx(b"", "diagram.bpmn"))


def test_meff_sniffer():
    assert sniff_meff(ctx(MEFF))
    assert not sniff_meff(ctx(BPMN))


def test_ea_xmi_sniffer_requires_ea_hint():
    assert sniff_ea_xmi(ctx(EA_XMI))
    assert not sniff_ea_xmi(ctx(GENERIC_UML_XMI))
    assert sniff_ea_xmi(ctx(GENERIC_UML_XMI, "export.xmi"))


# --- Registry ---


def test_pick_importer_by_content():
    assert pick_importer(ctx(BPMN)).id == "bpmn2"
    assert pick_importer(ctx(MEFF)).id == "meff"
    assert pick_importer(ctx(EA_XMI)).id == "ea-xmi-uml"
    assert pick_importer(ctx(b"<html/>", "page.html")) is None


def test_pick_importer_skips_raising_sniffers():
    from dataclasses import replace

    def broken(_ctx):
        raise RuntimeError("boom")

    bad = replace(get_importer("bpmn2"), id="broken", priority=999, sniff=broken)
    assert pick_importer(ctx(MEFF), [bad, get_importer("meff")]).id == "meff"
