"""Doc block extraction and symbol association."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from ..errors import Diagnostic, ExtractionError
from ..models import RawAnnotationBlock, SourceLocation, SourceUnit, Span, Symbol, SymbolKind
from .base import BoundaryDetector, Declaration, TypeSpan

# "/**" opens a doc block; "/**/" and "/***" banners do not.
_DOC_OPEN = re.compile(r"/\*\*(?![*/])")
_DECORATION = re.compile(r"^[ \t]*\*(?![*/])[ ]?")


def line_of(text: str, index: int) -> int:
    """Return 1-based line number for a character index."""
    return text.count("\n", 0, index) + 1


def column_of(text: str, index: int) -> int:
    """Return 1-based column for a character index."""
    return index - (text.rfind("\n", 0, index) + 1) + 1


def clean_block(inner: str) -> str:
    """Strip the leading ``*`` decoration while keeping the line structure."""
    return _clean(inner, 1)[0]


def _clean(inner: str, first_column: int) -> Tuple[str, Tuple[int, ...]]:
    """Return the cleaned text and the source column each cleaned line starts at."""
    lines = inner.split("\n")
    head = lines[0].lstrip()
    cleaned = [head.rstrip()]
    columns = [first_column + len(lines[0]) - len(head)]
    for line in lines[1:]:
        decoration = _DECORATION.match(line)
        width = decoration.end() if decoration else 0
        cleaned.append(line[width:].rstrip())
        columns.append(width + 1)
    return "\n".join(cleaned), tuple(columns)


class AnnotationExtractor:
    """Lifts doc blocks out of a unit and attaches them to their declarations."""

    def extract(
        self, identity: str, text: str, detector: Optional[BoundaryDetector]
    ) -> Tuple[List[RawAnnotationBlock], List[Diagnostic]]:
        """Return the unit's doc blocks in source order and any extraction errors."""
        blocks: List[RawAnnotationBlock] = []
        diagnostics: List[Diagnostic] = []
        spans = detector.type_spans(text) if detector is not None else []

        position = 0
        while True:
            match = _DOC_OPEN.search(text, position)
            if match is None:
                break
            start = match.start()
            end = text.find("*/", match.end())
            if end == -1:
                error = ExtractionError(
                    "unterminated doc comment",
                    SourceLocation(identity, line_of(text, start), column_of(text, start)),
                )
                diagnostics.append(error.to_diagnostic())
                break

            close = end + 2
            symbol = self._associate(identity, text, close, detector, spans)
            cleaned, columns = _clean(text[match.end() : end], column_of(text, match.end()))
            blocks.append(
                RawAnnotationBlock(
                    source=identity,
                    symbol=symbol,
                    span=Span(
                        start_line=line_of(text, start),
                        start_column=column_of(text, start),
                        end_line=line_of(text, close),
                    ),
                    text=cleaned,
                    line_columns=columns,
                )
            )
            position = close
        return blocks, diagnostics

    def extract_unit(
        self, identity: str, fingerprint: str, text: str, detector: Optional[BoundaryDetector]
    ) -> Tuple[SourceUnit, List[Diagnostic]]:
        """Like :meth:`extract`, bundling the blocks into a :class:`SourceUnit`."""
        blocks, diagnostics = self.extract(identity, text, detector)
        return SourceUnit(identity, fingerprint, tuple(blocks)), diagnostics

    def _associate(
        self,
        identity: str,
        text: str,
        offset: int,
        detector: Optional[BoundaryDetector],
        spans: Sequence[TypeSpan],
    ) -> Symbol:
        if detector is None:
            return Symbol.file_level(identity)
        offset = _skip_whitespace(text, offset)
        offset = detector.skip_prefixes(text, offset)
        declaration = detector.declaration_at(text, offset)
        if declaration is None:
            return Symbol.file_level(identity)
        return _symbol_for(declaration, spans)


def _symbol_for(declaration: Declaration, spans: Sequence[TypeSpan]) -> Symbol:
    parent: Optional[str] = None
    if declaration.kind is not SymbolKind.TYPE:
        enclosing = [span for span in spans if span.contains(declaration.offset)]
        if enclosing:
            # Innermost span starts last.
            parent = max(enclosing, key=lambda span: span.start).name
    qualified = f"{parent}.{declaration.name}" if parent else declaration.name
    return Symbol(
        kind=declaration.kind,
        name=declaration.name,
        qualified_name=qualified,
        parent=parent,
        declared_type=declaration.declared_type,
    )


def _skip_whitespace(text: str, offset: int) -> int:
    while offset < len(text) and text[offset].isspace():
        offset += 1
    return offset


__all__ = ["AnnotationExtractor", "clean_block", "column_of", "line_of"]
