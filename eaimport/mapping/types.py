"""Cross-taxonomy type resolution.

Every element and relationship type token goes through resolve_type(), which
returns a single tagged result instead of scattered prefix checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from eaimport.mapping.archimate import guess_layer, map_element_type, map_relationship_type

UNKNOWN_TYPE = "Unknown"


class TypeKind(Enum):
    ARCHIMATE = "archimate"
    BPMN = "bpmn"
    UML = "uml"
    UNKNOWN = "unknown"


class TypeCategory(Enum):
    ELEMENT = "element"
    RELATIONSHIP = "relationship"


@dataclass
class ResolvedType:
    """A resolved type token.

    For UNKNOWN, `type` is "Unknown" and `original` keeps the token verbatim
    so it can be repaired later.
    """

    kind: TypeKind
    type: str
    original: str = ""

    @property
    def is_unknown(self) -> bool:
        return self.kind == TypeKind.UNKNOWN


QUALIFIED_PREFIXES = {
    "bpmn.": TypeKind.BPMN,
    "uml.": TypeKind.UML,
}


def qualified_kind(token: str) -> TypeKind | None:
    """Kind of a qualified (non-ArchiMate) token such as 'bpmn.task'."""
    lowered = (token or "").strip().lower()
    for prefix, kind in QUALIFIED_PREFIXES.items():
        if lowered.startswith(prefix) and len(lowered) > len(prefix):
            return kind
    return None


def resolve_type(token: str | None, category: TypeCategory) -> ResolvedType:
    """Resolve a raw token against BPMN, UML and the ArchiMate palette, in that order."""
    raw = (token or "").strip()

    kind = qualified_kind(raw)
    if kind is not None:
        return ResolvedType(kind=kind, type=raw, original=raw)

    if raw and raw != UNKNOWN_TYPE:
        mapped = map_element_type(raw) if category == TypeCategory.ELEMENT else map_relationship_type(raw)
        if mapped.known:
            return ResolvedType(kind=TypeKind.ARCHIMATE, type=mapped.type, original=raw)

    return ResolvedType(kind=TypeKind.UNKNOWN, type=UNKNOWN_TYPE, original=raw or UNKNOWN_TYPE)


def infer_model_kind(type_tokens: list[str]) -> str:
    """Dominant notation of a set of element types: 'bpmn', 'uml' or 'archimate'."""
    counts = {TypeKind.BPMN: 0, TypeKind.UML: 0, TypeKind.ARCHIMATE: 0}
    for token in type_tokens:
        resolved = resolve_type(token, TypeCategory.ELEMENT)
        if resolved.kind in counts:
            counts[resolved.kind] += 1
    best = max(counts, key=lambda k: counts[k])
    if counts[best] == 0:
        return TypeKind.ARCHIMATE.value
    return best.value


__all__ = [
    "ResolvedType",
    "TypeCategory",
    "TypeKind",
    "UNKNOWN_TYPE",
    "guess_layer",
    "infer_model_kind",
    "qualified_kind",
    "resolve_type",
]
