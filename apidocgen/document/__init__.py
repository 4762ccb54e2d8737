"""Document Model, its builder and the reference resolver."""

from .builder import BuildContext, DocumentBuilder, apply_overrides
from .model import DocumentModel, FrozenModelError, Reference, Schema
from .resolver import ReferenceResolver

__all__ = [
    "BuildContext",
    "DocumentBuilder",
    "DocumentModel",
    "FrozenModelError",
    "Reference",
    "ReferenceResolver",
    "Schema",
    "apply_overrides",
]
