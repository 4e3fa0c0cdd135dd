"""Prefix-based format detectors.

A sniffer only looks at the ImportContext (a bounded, lossily decoded
prefix), never raises, and answers whether its parser should be tried.
"""

from __future__ import annotations

import re

from eaimport.importers.context import ImportContext

BPMN_MODEL_NS = "http://www.omg.org/spec/BPMN/20100524/MODEL"
ARCHIMATE_NS = "http://www.opengroup.org/xsd/archimate"

_BPMN_DEFINITIONS = re.compile(r"<\s*(?:[\w.-]+:)?definitions\b", re.IGNORECASE)
_BPMN_PREFIXED_DEFINITIONS = re.compile(r"<\s*bpmn2?\s*:\s*definitions\b", re.IGNORECASE)

_MEFF_MODEL = re.compile(r"<\s*(?:[\w.-]+:)?model\b", re.IGNORECASE)

_XMI_ROOT = re.compile(r"<\s*(?:[\w.-]+:)?xmi\s*:\s*xmi\b", re.IGNORECASE)
_XMI_ROOT_UNPREFIXED = re.compile(r"<\s*xmi\b[^>]*xmlns", re.IGNORECASE)
_UML_MARKERS = [
    re.compile(r"xmlns\s*:\s*uml\s*=", re.IGNORECASE),
    re.compile(r"http://www\.omg\.org/spec/uml", re.IGNORECASE),
    re.compile(r"\buml\s*:\s*model\b", re.IGNORECASE),
    re.compile(r"\bxmi\s*:\s*type\s*=\s*\"\s*uml\s*:\s*(?:package|class)\b", re.IGNORECASE),
    re.compile(r"\bpackagedelement\b", re.IGNORECASE),
]
_EA_MARKERS = [
    re.compile(r"\bea_guid\b", re.IGNORECASE),
    re.compile(r"\beaid[_:]", re.IGNORECASE),
    re.compile(r"enterprise architect", re.IGNORECASE),
    re.compile(r"<\s*(?:[\w.-]+:)?xmi\s*:\s*extension\b", re.IGNORECASE),
    re.compile(r"xmlns\s*:\s*ea\s*=", re.IGNORECASE),
]

_BYTE_SNIFF_LIMIT = 64 * 1024


def sniff_bpmn2(ctx: ImportContext) -> bool:
    text = ctx.sniff_text
    if text:
        if _BPMN_DEFINITIONS.search(text) and BPMN_MODEL_NS.lower() in text.lower():
            return True
        if _BPMN_PREFIXED_DEFINITIONS.search(text):
            return True
    return ctx.extension == "bpmn"


def sniff_meff(ctx: ImportContext) -> bool:
    text = ctx.sniff_text
    if text and _MEFF_MODEL.search(text) and ARCHIMATE_NS in text.lower():
        return True
    return ctx.extension in ("archimate", "meff") and "archimate" in text.lower()


def detect_ea_xmi_text(text: str) -> bool:
    if not text or "<" not in text:
        return False
    if not (_XMI_ROOT.search(text) or _XMI_ROOT_UNPREFIXED.search(text)):
        return False
    if not any(p.search(text) for p in _UML_MARKERS):
        return False
    # Require an EA hint so generic UML XMI from other tools is not claimed.
    return any(p.search(text) for p in _EA_MARKERS)


def detect_ea_xmi_bytes(data: bytes) -> bool:
    printable = "".join(chr(b) if 0x20 <= b <= 0x7E else " " for b in data[:_BYTE_SNIFF_LIMIT])
    return detect_ea_xmi_text(printable)


def sniff_ea_xmi(ctx: ImportContext) -> bool:
    if ctx.extension == "xmi":
        return True
    if detect_ea_xmi_text(ctx.sniff_text):
        return True
    return detect_ea_xmi_bytes(ctx.sniff_bytes)
