"""Core data models shared across apidocgen components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


class SymbolKind(str, Enum):
    """Kind of declaration owning an annotation block."""

    FILE = "file"
    TYPE = "type"
    METHOD = "method"
    FIELD = "field"


@dataclass(frozen=True)
class SourceLocation:
    """Position inside a source unit used for diagnostics."""

    path: str
    line: Optional[int] = None
    column: Optional[int] = None

    def __str__(self) -> str:
        if self.line is None:
            return self.path
        if self.column is None:
            return f"{self.path}:{self.line}"
        return f"{self.path}:{self.line}:{self.column}"

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "line": self.line, "column": self.column}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SourceLocation":
        return cls(
            path=str(payload.get("path", "")),
            line=payload.get("line"),
            column=payload.get("column"),
        )


@dataclass(frozen=True)
class Symbol:
    """Declaration an annotation block is attached to."""

    kind: SymbolKind
    name: str
    qualified_name: str
    parent: Optional[str] = None
    declared_type: Optional[str] = None

    @classmethod
    def file_level(cls, identity: str) -> "Symbol":
        return cls(kind=SymbolKind.FILE, name=identity, qualified_name=identity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "name": self.name,
            "qualified_name": self.qualified_name,
            "parent": self.parent,
            "declared_type": self.declared_type,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Symbol":
        return cls(
            kind=SymbolKind(payload["kind"]),
            name=payload["name"],
            qualified_name=payload["qualified_name"],
            parent=payload.get("parent"),
            declared_type=payload.get("declared_type"),
        )


@dataclass(frozen=True)
class LocatedSource:
    """A candidate source file discovered under the configured roots."""

    identity: str
    path: Path


@dataclass(frozen=True)
class Span:
    """Line/column range of a doc block inside its unit."""

    start_line: int
    start_column: int
    end_line: int


@dataclass(frozen=True)
class RawAnnotationBlock:
    """Cleaned text of one doc comment and the symbol it documents.

    ``line_columns`` holds, per line of ``text``, the 1-based source column its
    first character came from once the ``*`` decoration is stripped.
    """

    source: str
    symbol: Symbol
    span: Span
    text: str
    line_columns: Tuple[int, ...] = ()

    def location(self, offset: int = 0) -> SourceLocation:
        """Translate an offset inside ``text`` into a source location."""
        line_index = self.text.count("\n", 0, offset)
        column = offset - (self.text.rfind("\n", 0, offset) + 1)
        if line_index < len(self.line_columns):
            column += self.line_columns[line_index]
        elif line_index == 0:
            column += self.span.start_column + 3
        else:
            column += 1
        return SourceLocation(self.source, self.span.start_line + line_index, column)


@dataclass(frozen=True)
class SourceUnit:
    """One source file with its fingerprint and extracted doc blocks."""

    identity: str
    fingerprint: str
    blocks: Tuple[RawAnnotationBlock, ...] = field(default_factory=tuple)
