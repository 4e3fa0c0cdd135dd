"""UML package hierarchy -> IR folders."""

from __future__ import annotations

from xml.etree.ElementTree import Element

from eaimport.ir.models import IRExternalId, IRFolder
from eaimport.ir.report import ImportReport
from eaimport.parsers.ea_xmi.common import SYSTEM, XmiDocument, documentation_of, ea_guid, xmi_id, xmi_type
from eaimport.utils.xmlscan import children, local_name, stripped_attr


def is_uml_model(el: Element) -> bool:
    t = (xmi_type(el) or "").lower()
    return t == "uml:model" or t.endswith(":model") or local_name(el) == "model"


def is_uml_package(el: Element) -> bool:
    name = local_name(el)
    if name == "package":
        return True
    if name != "packagedelement":
        return False
    t = (xmi_type(el) or "").lower()
    return t == "package" or t.endswith(":package")


def package_name(el: Element) -> str:
    return stripped_attr(el, ["name", "xmi:label", "label"]) or "Package"


def find_model_element(doc: XmiDocument) -> Element | None:
    return next((el for el in doc.model_elements() if is_uml_model(el)), None)


def parse_packages(doc: XmiDocument, report: ImportReport) -> tuple[list[IRFolder], Element | None]:
    """Walk packages below the uml:Model into folders.

    Also records each package's folder in doc.package_folders so later steps
    can find the owning folder of any element.
    """
    folders: list[IRFolder] = []
    seen: set[str] = set()
    synthetic = 0

    def visit(pkg: Element, parent_id: str | None) -> None:
        nonlocal synthetic
        folder_id = xmi_id(pkg)
        if not folder_id:
            synthetic += 1
            folder_id = f"eaPkg_synth_{synthetic}"
            report.add_warning(
                f'EA XMI: Package missing xmi:id; generated synthetic folder id "{folder_id}" '
                f'(name="{package_name(pkg)}").',
                code="ea-xmi:synthetic-id",
            )
        if folder_id in seen:
            report.add_warning(f'EA XMI: Duplicate package id "{folder_id}" encountered; skipping subsequent occurrence.')
            return
        seen.add(folder_id)
        doc.package_folders[id(pkg)] = folder_id

        guid = ea_guid(pkg)
        meta = {}
        if xmi_type(pkg):
            meta["xmi_type"] = xmi_type(pkg)
        folders.append(
            IRFolder(
                id=folder_id,
                name=package_name(pkg),
                parent_id=parent_id,
                documentation=documentation_of(pkg, doc),
                external_ids=[IRExternalId(id=guid, system=SYSTEM, kind="package-guid")] if guid else [],
                meta=meta,
            )
        )
        for child in children(pkg):
            if is_uml_package(child):
                visit(child, folder_id)

    model_el = find_model_element(doc)
    if model_el is None:
        report.add_warning("EA XMI: Could not find a UML Model root; scanning document for top-level packages.")
        start = doc.root
    else:
        start = model_el

    for child in children(start):
        if is_uml_package(child):
            visit(child, None)

    return folders, model_el
