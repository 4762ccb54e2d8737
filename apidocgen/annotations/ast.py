"""Typed annotation tree produced by the parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import Diagnostic
from ..models import SourceLocation, Symbol


class ValueKind(str, Enum):
    """Discriminant of an attribute value."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    ARRAY = "array"
    MAPPING = "mapping"
    TAG = "tag"
    CONSTANT = "constant"


@dataclass(frozen=True)
class UnresolvedConstant:
    """Marker for a bare identifier missing from the constant table."""

    name: str
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        return f"<unresolved constant {self.name}>"


@dataclass(frozen=True)
class Value:
    """Closed sum type for annotation attribute values.

    ``data`` holds, per kind: ``str`` (STRING and CONSTANT name), ``int`` or
    ``float`` (NUMBER), ``bool`` (BOOLEAN), ``None`` (NULL), a tuple of Values
    (ARRAY), a tuple of ``(key, Value)`` pairs (MAPPING) or an AnnotationNode (TAG).
    """

    kind: ValueKind
    data: Any = None

    @classmethod
    def string(cls, text: str) -> "Value":
        return cls(ValueKind.STRING, text)

    @classmethod
    def constant(cls, name: str) -> "Value":
        return cls(ValueKind.CONSTANT, name)

    @classmethod
    def from_python(cls, value: Any) -> "Value":
        """Lift a constant-table value into the value sum type."""
        if value is None:
            return cls(ValueKind.NULL)
        if isinstance(value, bool):
            return cls(ValueKind.BOOLEAN, value)
        if isinstance(value, (int, float)):
            return cls(ValueKind.NUMBER, value)
        if isinstance(value, str):
            return cls(ValueKind.STRING, value)
        if isinstance(value, dict):
            return cls(
                ValueKind.MAPPING,
                tuple((str(key), cls.from_python(item)) for key, item in value.items()),
            )
        if isinstance(value, (list, tuple)):
            return cls(ValueKind.ARRAY, tuple(cls.from_python(item) for item in value))
        raise TypeError(f"Unsupported constant value type: {type(value).__name__}")

    def to_python(self, location: Optional[SourceLocation] = None) -> Any:
        """Return the plain Python value; constants become UnresolvedConstant markers."""
        if self.kind is ValueKind.ARRAY:
            return [item.to_python(location) for item in self.data]
        if self.kind is ValueKind.MAPPING:
            return {key: item.to_python(location) for key, item in self.data}
        if self.kind is ValueKind.CONSTANT:
            return UnresolvedConstant(self.data, location)
        if self.kind is ValueKind.TAG:
            raise TypeError("nested annotations have no plain value")
        return self.data

    def to_dict(self) -> Dict[str, Any]:
        if self.kind is ValueKind.ARRAY:
            data: Any = [item.to_dict() for item in self.data]
        elif self.kind is ValueKind.MAPPING:
            data = [[key, item.to_dict()] for key, item in self.data]
        elif self.kind is ValueKind.TAG:
            data = self.data.to_dict()
        else:
            data = self.data
        return {"kind": self.kind.value, "data": data}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Value":
        kind = ValueKind(payload["kind"])
        data = payload.get("data")
        if kind is ValueKind.ARRAY:
            return cls(kind, tuple(cls.from_dict(item) for item in data))
        if kind is ValueKind.MAPPING:
            return cls(kind, tuple((key, cls.from_dict(item)) for key, item in data))
        if kind is ValueKind.TAG:
            return cls(kind, AnnotationNode.from_dict(data))
        return cls(kind, data)


@dataclass(frozen=True)
class AnnotationNode:
    """One ``@Tag(...)`` occurrence: attributes plus positional nested tags."""

    tag: str
    attributes: Tuple[Tuple[str, Value], ...] = ()
    children: Tuple["AnnotationNode", ...] = ()
    line: int = 0
    column: int = 0

    def get(self, name: str) -> Optional[Value]:
        for key, value in self.attributes:
            if key == name:
                return value
        return None

    def attribute_names(self) -> List[str]:
        return [key for key, _ in self.attributes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "line": self.line,
            "column": self.column,
            "attributes": [[key, value.to_dict()] for key, value in self.attributes],
            "children": [child.to_dict() for child in self.children],
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AnnotationNode":
        return cls(
            tag=payload["tag"],
            attributes=tuple(
                (key, Value.from_dict(value)) for key, value in payload.get("attributes", [])
            ),
            children=tuple(cls.from_dict(child) for child in payload.get("children", [])),
            line=int(payload.get("line", 0)),
            column=int(payload.get("column", 0)),
        )


@dataclass(frozen=True)
class ParsedBlock:
    """Top-level annotation trees of one doc block with their owning symbol."""

    symbol: Symbol
    nodes: Tuple[AnnotationNode, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol.to_dict(),
            "nodes": [node.to_dict() for node in self.nodes],
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ParsedBlock":
        return cls(
            symbol=Symbol.from_dict(payload["symbol"]),
            nodes=tuple(AnnotationNode.from_dict(node) for node in payload.get("nodes", [])),
        )


@dataclass(frozen=True)
class UnitAnnotations:
    """Everything the Builder needs from one source unit; the cached artefact."""

    identity: str
    fingerprint: str
    blocks: Tuple[ParsedBlock, ...] = field(default_factory=tuple)
    diagnostics: Tuple[Diagnostic, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "blocks": [block.to_dict() for block in self.blocks],
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
        }

    @classmethod
    def from_dict(cls, identity: str, payload: Dict[str, Any]) -> "UnitAnnotations":
        return cls(
            identity=identity,
            fingerprint=str(payload["fingerprint"]),
            blocks=tuple(ParsedBlock.from_dict(block) for block in payload.get("blocks", [])),
            diagnostics=tuple(
                Diagnostic.from_dict(item) for item in payload.get("diagnostics", [])
            ),
        )


__all__ = [
    "AnnotationNode",
    "ParsedBlock",
    "UnitAnnotations",
    "UnresolvedConstant",
    "Value",
    "ValueKind",
]
