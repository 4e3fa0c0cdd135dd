"""ArchiMate palette and token mapping.

Exporters spell ArchiMate types in many ways: "BusinessActor",
"Business Actor", "archimate:BusinessActor", "AssociationRelationship",
"ArchiMate_Realisation". Every spelling is reduced to a lookup key so it
resolves to the one canonical palette name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

ELEMENT_TYPES_BY_LAYER: dict[str, list[str]] = {
    "Strategy": ["Capability", "CourseOfAction", "Resource", "Outcome", "ValueStream"],
    "Motivation": [
        "Stakeholder",
        "Driver",
        "Assessment",
        "Constraint",
        "Principle",
        "Value",
        "Meaning",
        "Goal",
        "Requirement",
    ],
    "Business": [
        "BusinessActor",
        "BusinessRole",
        "BusinessCollaboration",
        "BusinessInterface",
        "BusinessProcess",
        "BusinessFunction",
        "BusinessInteraction",
        "BusinessEvent",
        "BusinessService",
        "BusinessObject",
        "Contract",
        "Representation",
        "Product",
        "Grouping",
    ],
    "Application": [
        "ApplicationComponent",
        "ApplicationCollaboration",
        "ApplicationInterface",
        "ApplicationProcess",
        "ApplicationFunction",
        "ApplicationInteraction",
        "ApplicationEvent",
        "ApplicationService",
        "DataObject",
    ],
    "Technology": [
        "Node",
        "Device",
        "SystemSoftware",
        "TechnologyCollaboration",
        "TechnologyInterface",
        "TechnologyProcess",
        "TechnologyFunction",
        "TechnologyInteraction",
        "TechnologyEvent",
        "TechnologyService",
        "Path",
        "CommunicationNetwork",
        "Artifact",
    ],
    "Physical": ["Facility", "Equipment", "DistributionNetwork", "Material", "Location"],
    "ImplementationMigration": ["WorkPackage", "ImplementationEvent", "Deliverable", "Plateau", "Gap"],
}

RELATIONSHIP_TYPES: list[str] = [
    "Association",
    "Realization",
    "Serving",
    "Flow",
    "Composition",
    "Aggregation",
    "Assignment",
    "Access",
    "Influence",
    "Triggering",
    "Specialization",
]

ELEMENT_TYPES: list[str] = [t for types in ELEMENT_TYPES_BY_LAYER.values() for t in types]

LAYER_BY_ELEMENT_TYPE: dict[str, str] = {t: layer for layer, types in ELEMENT_TYPES_BY_LAYER.items() for t in types}

# British spellings used by Sparx EA profile stereotypes.
_SPELLING_ALIASES = {
    "realisation": "realization",
    "specialisation": "specialization",
}

_EA_PROFILE_PREFIX = re.compile(r"^archimate\d*_", re.IGNORECASE)
_TRAILING_SUFFIX = re.compile(r"(relationship|element)$", re.IGNORECASE)
_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)


@dataclass
class TypeMappingResult:
    """Outcome of mapping one raw token. `name` keeps the original for unknowns."""

    known: bool
    type: str  # Canonical palette name, or "Unknown"
    name: str = ""


def strip_namespace(raw: str) -> str:
    """Keep the last segment after ':', '.' or '#'."""
    s = raw.strip()
    cut = max(s.rfind(":"), s.rfind("."), s.rfind("#"))
    return s[cut + 1 :] if cut >= 0 else s


def normalize_type_token(raw: str) -> str:
    s = strip_namespace(raw)
    s = _EA_PROFILE_PREFIX.sub("", s)
    s = _TRAILING_SUFFIX.sub("", s)
    key = _NON_ALNUM.sub("", s).lower()
    return _SPELLING_ALIASES.get(key, key)


_ELEMENT_LOOKUP = {normalize_type_token(t): t for t in ELEMENT_TYPES}
_RELATIONSHIP_LOOKUP = {normalize_type_token(t): t for t in RELATIONSHIP_TYPES}


def _map(raw_type: str, known: list[str], lookup: dict[str, str]) -> TypeMappingResult:
    raw = (raw_type or "").strip()
    if not raw:
        return TypeMappingResult(known=False, type="Unknown", name="MissingType")
    if raw in known:
        return TypeMappingResult(known=True, type=raw, name=raw)
    mapped = lookup.get(normalize_type_token(raw))
    if mapped:
        return TypeMappingResult(known=True, type=mapped, name=raw)
    return TypeMappingResult(known=False, type="Unknown", name=raw)


def map_element_type(raw_type: str) -> TypeMappingResult:
    """Map an ArchiMate element token to its canonical palette name."""
    return _map(raw_type, ELEMENT_TYPES, _ELEMENT_LOOKUP)


def map_relationship_type(raw_type: str) -> TypeMappingResult:
    """Map an ArchiMate relationship token to its canonical palette name."""
    return _map(raw_type, RELATIONSHIP_TYPES, _RELATIONSHIP_LOOKUP)


def is_used_by_relationship(raw_type: str) -> bool:
    """Legacy 'UsedByRelationship' (imported as an inverted Serving)."""
    return _NON_ALNUM.sub("", strip_namespace(raw_type)).lower() in ("usedbyrelationship", "usedby")


def guess_layer(type_string: str) -> str:
    """Best-effort layer for a type token, by keyword. Defaults to Business."""
    mapped = map_element_type(type_string)
    if mapped.known:
        return LAYER_BY_ELEMENT_TYPE[mapped.type]

    t = (type_string or "").lower()
    if "strategy" in t or "capability" in t:
        return "Strategy"
    if "motivation" in t or "goal" in t or "requirement" in t:
        return "Motivation"
    if "application" in t:
        return "Application"
    if "technology" in t or "system" in t or "device" in t:
        return "Technology"
    if "physical" in t or "equipment" in t or "facility" in t:
        return "Physical"
    if "implementation" in t or "migration" in t or "workpackage" in t:
        return "ImplementationMigration"
    return "Business"
