"""Apply stage — IR model into a domain model, through a ModelSink."""

from eaimport.apply.applier import ApplyOptions, ApplyResult, IdMappings, ViewNodeRef, apply_import_ir
from eaimport.apply.memory_sink import InMemoryModelSink
from eaimport.apply.sink import ModelMetadata, ModelSink

__all__ = [
    "ApplyOptions",
    "ApplyResult",
    "IdMappings",
    "InMemoryModelSink",
    "ModelMetadata",
    "ModelSink",
    "ViewNodeRef",
    "apply_import_ir",
]
