"""Importer registry — pick the parser for a file by sniffing it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from eaimport.importers.context import ImportContext
from eaimport.importers.sniffers import sniff_bpmn2, sniff_ea_xmi, sniff_meff
from eaimport.ir.models import IRModel, ImportFormat
from eaimport.ir.report import ImportReport

logger = logging.getLogger(__name__)

ParseFn = Callable[[bytes], tuple[IRModel, ImportReport]]


@dataclass
class Importer:
    """A registered format: how to detect it and how to parse it."""

    id: str
    format: ImportFormat
    display_name: str
    priority: int  # Higher is tried first
    sniff: Callable[[ImportContext], bool]
    parse: ParseFn
    extensions: list[str] = field(default_factory=list)


def _parse_bpmn2(data: bytes) -> tuple[IRModel, ImportReport]:
    from eaimport.parsers.bpmn2 import parse_bpmn2_xml

    return parse_bpmn2_xml(data)


def _parse_meff(data: bytes) -> tuple[IRModel, ImportReport]:
    from eaimport.parsers.meff import parse_meff_xml

    return parse_meff_xml(data)


def _parse_ea_xmi(data: bytes) -> tuple[IRModel, ImportReport]:
    from eaimport.parsers.ea_xmi import parse_ea_xmi

    return parse_ea_xmi(data)


BUILTIN_IMPORTERS: list[Importer] = [
    Importer(
        id="bpmn2",
        format=ImportFormat.BPMN2,
        display_name="BPMN 2.0 XML",
        priority=110,
        sniff=sniff_bpmn2,
        parse=_parse_bpmn2,
        extensions=["bpmn", "xml"],
    ),
    Importer(
        id="ea-xmi-uml",
        format=ImportFormat.EA_XMI_UML,
        display_name="Sparx EA UML XMI",
        priority=105,
        sniff=sniff_ea_xmi,
        parse=_parse_ea_xmi,
        extensions=["xmi"],
    ),
    Importer(
        id="meff",
        format=ImportFormat.ARCHIMATE_MEFF,
        display_name="ArchiMate Model Exchange File",
        priority=100,
        sniff=sniff_meff,
        parse=_parse_meff,
        extensions=["xml", "archimate", "meff"],
    ),
]


def pick_importer(ctx: ImportContext, importers: list[Importer] | None = None) -> Importer | None:
    """Return the highest-priority importer whose sniffer accepts the context."""
    candidates = sorted(importers if importers is not None else BUILTIN_IMPORTERS, key=lambda i: -i.priority)
    for importer in candidates:
        try:
            matched = importer.sniff(ctx)
        except Exception:
            logger.debug("Sniffer %s raised; treating as no match", importer.id, exc_info=True)
            continue
        if matched:
            return importer
    return None


def get_importer(importer_id: str) -> Importer | None:
    for importer in BUILTIN_IMPORTERS:
        if importer.id == importer_id:
            return importer
    return None
