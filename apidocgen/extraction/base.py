"""Base classes for declaration boundary detectors."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, List, Optional, Pattern, Sequence

from ..models import SymbolKind


@dataclass(frozen=True)
class Declaration:
    """A declaration found directly after a doc block."""

    kind: SymbolKind
    name: str
    offset: int
    declared_type: Optional[str] = None


@dataclass(frozen=True)
class TypeSpan:
    """Extent of a type declaration's body inside the unit text."""

    name: str
    start: int
    end: int

    def contains(self, offset: int) -> bool:
        return self.start < offset < self.end


class BoundaryDetector(ABC):
    """Contract for detectors that locate declaration boundaries in one source format."""

    name: ClassVar[str] = ""
    suffixes: ClassVar[Sequence[str]] = ()

    def supports(self, path: str) -> bool:
        """Return True when this detector understands the given file."""
        return path.lower().endswith(tuple(self.suffixes))

    @abstractmethod
    def declaration_at(self, text: str, offset: int) -> Optional[Declaration]:
        """Return the declaration starting at ``offset``, if any."""

    @abstractmethod
    def type_spans(self, text: str) -> List[TypeSpan]:
        """Return the body extents of every type declared in ``text``."""

    def skip_prefixes(self, text: str, offset: int) -> int:
        """Advance past attributes/decorators placed between a doc block and its declaration."""
        return offset


class RegexBoundaryDetector(BoundaryDetector):
    """Table-driven detector for brace-delimited languages.

    Subclasses provide the declaration patterns; each must expose a ``name``
    group and may expose a ``type`` group (declared type of a field).
    """

    type_pattern: ClassVar[Pattern[str]]
    method_pattern: ClassVar[Pattern[str]]
    field_pattern: ClassVar[Pattern[str]]
    prefix_pattern: ClassVar[Optional[Pattern[str]]] = None
    line_comment: ClassVar[str] = "//"

    def declaration_at(self, text: str, offset: int) -> Optional[Declaration]:
        for kind, pattern in (
            (SymbolKind.TYPE, self.type_pattern),
            (SymbolKind.METHOD, self.method_pattern),
            (SymbolKind.FIELD, self.field_pattern),
        ):
            match = pattern.match(text, offset)
            if match is None:
                continue
            declared = match.groupdict().get("type")
            return Declaration(
                kind=kind,
                name=match.group("name"),
                offset=offset,
                declared_type=declared.strip() if declared else None,
            )
        return None

    def type_spans(self, text: str) -> List[TypeSpan]:
        anchored = re.compile(r"^[ \t]*(?:" + self.type_pattern.pattern + ")", re.MULTILINE)
        spans: List[TypeSpan] = []
        for match in anchored.finditer(text):
            brace = text.find("{", match.end())
            if brace == -1:
                continue
            end = self._match_brace(text, brace)
            spans.append(TypeSpan(name=match.group("name"), start=match.start(), end=end))
        return spans

    def skip_prefixes(self, text: str, offset: int) -> int:
        if self.prefix_pattern is None:
            return offset
        while True:
            match = self.prefix_pattern.match(text, offset)
            if match is None:
                return offset
            end = match.end()
            if end < len(text) and text[end - 1] in "([":
                end = self._match_brace(text, end - 1)
            offset = _skip_whitespace(text, end)

    def _match_brace(self, text: str, open_index: int) -> int:
        """Return the index just past the bracket closing ``text[open_index]``."""
        opening = text[open_index]
        closing = {"{": "}", "(": ")", "[": "]"}[opening]
        depth = 0
        index = open_index
        length = len(text)
        while index < length:
            char = text[index]
            if char in "\"'":
                index = _skip_string(text, index)
                continue
            if text.startswith("/*", index):
                end = text.find("*/", index + 2)
                index = length if end == -1 else end + 2
                continue
            if text.startswith(self.line_comment, index):
                end = text.find("\n", index)
                index = length if end == -1 else end + 1
                continue
            if char == opening:
                depth += 1
            elif char == closing:
                depth -= 1
                if depth == 0:
                    return index + 1
            index += 1
        return length


def _skip_string(text: str, start: int) -> int:
    quote = text[start]
    index = start + 1
    while index < len(text):
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == quote or char == "\n":
            return index + 1
        index += 1
    return len(text)


def _skip_whitespace(text: str, offset: int) -> int:
    while offset < len(text) and text[offset].isspace():
        offset += 1
    return offset


__all__ = [
    "BoundaryDetector",
    "Declaration",
    "RegexBoundaryDetector",
    "TypeSpan",
]
