"""Annotation grammar, AST and parser."""

from .ast import (
    AnnotationNode,
    ParsedBlock,
    UnitAnnotations,
    UnresolvedConstant,
    Value,
    ValueKind,
)
from .parser import AnnotationParser

__all__ = [
    "AnnotationNode",
    "AnnotationParser",
    "ParsedBlock",
    "UnitAnnotations",
    "UnresolvedConstant",
    "Value",
    "ValueKind",
]
