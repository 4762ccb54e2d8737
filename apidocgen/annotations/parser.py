"""Recursive-descent parser for the ``@Tag(attr=value, ...)`` grammar."""

from __future__ import annotations

import re
from typing import Any, Callable, List, Mapping, Optional, Set, Tuple

from ..errors import ParseError
from ..models import RawAnnotationBlock, SourceLocation
from .ast import AnnotationNode, Value, ValueKind
from .grammar import KNOWN_TAGS, NESTED_ONLY_TAGS, TOP_LEVEL_TAGS

_CANDIDATE = re.compile(
    r"^(?P<indent>[ \t]*)@(?P<name>[A-Za-z_]\w*(?:\\[A-Za-z_]\w*)*)", re.MULTILINE
)
_NAME = re.compile(r"[A-Za-z_]\w*(?:\\[A-Za-z_]\w*)*")
_KEY = re.compile(r"[A-Za-z_]\w*")
_IDENTIFIER = re.compile(r"\\?[A-Za-z_][\w\\]*(?:(?:::|\.)[A-Za-z_]\w*)*")
_NUMBER = re.compile(r"[-+]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][-+]?\d+)?")
_KEYWORDS = {"true": True, "false": False}
# Tags and braces nested deeper than this are rejected.
MAX_NESTING = 64


class _SyntaxFailure(Exception):
    """Structural error that makes the rest of a tag unreadable."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset


class _TagReader:
    """Cursor over one block's text reading a single tag and everything nested in it."""

    def __init__(
        self,
        text: str,
        start: int,
        constants: Mapping[str, Any],
        locate: Callable[[int], SourceLocation],
    ) -> None:
        self.text = text
        self.pos = start
        self.constants = constants
        self.locate = locate
        self.depth = 0
        # Problems that do not break the structure; the tag is still read to its end.
        self.problems: List[Tuple[str, int]] = []

    def tag(self, *, nested: bool = False) -> AnnotationNode:
        start = self.pos
        self._enter(start)
        try:
            return self._tag(start, nested)
        finally:
            self.depth -= 1

    def _tag(self, start: int, nested: bool) -> AnnotationNode:
        self._expect("@")
        match = _NAME.match(self.text, self.pos)
        if match is None:
            raise _SyntaxFailure("expected an annotation name after '@'", start)
        self.pos = match.end()
        tag = match.group(0).rsplit("\\", 1)[-1]
        if nested and tag not in KNOWN_TAGS:
            self.problems.append((f"unknown annotation @{tag}", start))

        attributes: List[Tuple[str, Value]] = []
        children: List[AnnotationNode] = []
        after = _skip_inline_whitespace(self.text, self.pos)
        if after < len(self.text) and self.text[after] == "(":
            self.pos = after
            self._arguments(tag, attributes, children)

        location = self.locate(start)
        return AnnotationNode(
            tag=tag,
            attributes=tuple(attributes),
            children=tuple(children),
            line=location.line or 0,
            column=location.column or 0,
        )

    def _arguments(
        self,
        tag: str,
        attributes: List[Tuple[str, Value]],
        children: List[AnnotationNode],
    ) -> None:
        open_offset = self.pos
        self.pos += 1
        seen: Set[str] = set()
        self._skip_whitespace()
        if self._peek() == ")":
            self.pos += 1
            return
        while True:
            self._item(tag, attributes, children, seen)
            self._skip_whitespace()
            char = self._peek()
            if char == ",":
                self.pos += 1
                self._skip_whitespace()
                if self._peek() == ")":
                    self.pos += 1
                    return
                continue
            if char == ")":
                self.pos += 1
                return
            if char == "":
                raise _SyntaxFailure(f"unmatched '(' in @{tag}", open_offset)
            raise _SyntaxFailure(f"expected ',' or ')' in @{tag}, found {char!r}", self.pos)

    def _item(
        self,
        tag: str,
        attributes: List[Tuple[str, Value]],
        children: List[AnnotationNode],
        seen: Set[str],
    ) -> None:
        start = self.pos
        if self._peek() == "@":
            children.append(self.tag(nested=True))
            return
        key = _KEY.match(self.text, self.pos)
        if key is not None:
            after = _skip_whitespace(self.text, key.end())
            if self.text.startswith("=", after):
                name = key.group(0)
                self.pos = after + 1
                self._skip_whitespace()
                value = self._value()
                if name in seen:
                    self.problems.append((f"duplicate attribute '{name}' in @{tag}", start))
                else:
                    seen.add(name)
                    attributes.append((name, value))
                return
        self._value()
        self.problems.append(
            (f"positional values are not allowed in @{tag}; use name=value", start)
        )

    def _value(self) -> Value:
        char = self._peek()
        if char == "":
            raise _SyntaxFailure("unexpected end of annotation", self.pos)
        if char == '"':
            return Value.string(self._string())
        if char == "{":
            return self._braces()
        if char == "@":
            return Value(ValueKind.TAG, self.tag(nested=True))

        number = _NUMBER.match(self.text, self.pos)
        if number is not None:
            self.pos = number.end()
            literal = number.group(0)
            if any(mark in literal for mark in ".eE"):
                return Value(ValueKind.NUMBER, float(literal))
            return Value(ValueKind.NUMBER, int(literal))

        identifier = _IDENTIFIER.match(self.text, self.pos)
        if identifier is not None:
            self.pos = identifier.end()
            word = identifier.group(0)
            lowered = word.lower()
            if lowered in _KEYWORDS:
                return Value(ValueKind.BOOLEAN, _KEYWORDS[lowered])
            if lowered == "null":
                return Value(ValueKind.NULL)
            if word in self.constants:
                try:
                    return Value.from_python(self.constants[word])
                except TypeError as exc:
                    raise _SyntaxFailure(f"constant {word}: {exc}", identifier.start()) from exc
            return Value.constant(word)

        raise _SyntaxFailure(f"unexpected character {char!r}", self.pos)

    def _string(self) -> str:
        start = self.pos
        self.pos += 1
        parts: List[str] = []
        text = self.text
        while True:
            if self.pos >= len(text):
                raise _SyntaxFailure("unterminated string", start)
            char = text[self.pos]
            if char == "\\" and text[self.pos + 1 : self.pos + 2] in ('"', "\\"):
                parts.append(text[self.pos + 1])
                self.pos += 2
                continue
            if char == '"':
                if text[self.pos + 1 : self.pos + 2] == '"':
                    parts.append('"')
                    self.pos += 2
                    continue
                self.pos += 1
                return "".join(parts)
            parts.append(char)
            self.pos += 1

    def _braces(self) -> Value:
        open_offset = self.pos
        self._enter(open_offset)
        try:
            return self._brace_items(open_offset)
        finally:
            self.depth -= 1

    def _brace_items(self, open_offset: int) -> Value:
        self.pos += 1
        items: List[Value] = []
        entries: List[Tuple[str, Value]] = []
        self._skip_whitespace()
        if self._peek() == "}":
            self.pos += 1
            return Value(ValueKind.ARRAY, ())
        while True:
            self._skip_whitespace()
            key = self._entry_key()
            self._skip_whitespace()
            value = self._value()
            if key is None:
                items.append(value)
            else:
                entries.append((key, value))
            self._skip_whitespace()
            char = self._peek()
            if char == ",":
                self.pos += 1
                self._skip_whitespace()
                if self._peek() == "}":
                    self.pos += 1
                    break
                continue
            if char == "}":
                self.pos += 1
                break
            if char == "":
                raise _SyntaxFailure("unmatched '{'", open_offset)
            raise _SyntaxFailure(f"expected ',' or '}}', found {char!r}", self.pos)

        if items and entries:
            self.problems.append(("cannot mix keyed and positional entries in braces", open_offset))
        if entries:
            return Value(ValueKind.MAPPING, tuple(entries))
        return Value(ValueKind.ARRAY, tuple(items))

    def _entry_key(self) -> Optional[str]:
        """Consume ``key:`` / ``key=`` when present, returning the key."""
        saved = self.pos
        if self._peek() == '"':
            key = self._string()
        else:
            match = _KEY.match(self.text, self.pos)
            if match is None:
                return None
            key = match.group(0)
            self.pos = match.end()
        after = _skip_whitespace(self.text, self.pos)
        if after < len(self.text) and self.text[after] in ":=" and not self.text.startswith("::", after):
            self.pos = after + 1
            return key
        self.pos = saved
        return None

    def _enter(self, offset: int) -> None:
        if self.depth >= MAX_NESTING:
            raise _SyntaxFailure("annotation nested too deeply", offset)
        self.depth += 1

    def _expect(self, char: str) -> None:
        if self._peek() != char:
            raise _SyntaxFailure(f"expected {char!r}", self.pos)
        self.pos += 1

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _skip_whitespace(self) -> None:
        self.pos = _skip_whitespace(self.text, self.pos)


class AnnotationParser:
    """Parses the cleaned text of a doc block into top-level annotation trees."""

    def __init__(self, constants: Mapping[str, Any] | None = None) -> None:
        self._constants = dict(constants or {})

    def parse(self, block: RawAnnotationBlock) -> Tuple[List[AnnotationNode], List[ParseError]]:
        """Return every well-formed top-level tag and one error per malformed tag."""
        text = block.text
        nodes: List[AnnotationNode] = []
        errors: List[ParseError] = []
        resume_at = 0
        max_indent: Optional[int] = None

        for candidate in _CANDIDATE.finditer(text):
            start = candidate.start("name") - 1
            if start < resume_at:
                continue
            indent = len(candidate.group("indent"))
            if max_indent is not None and indent > max_indent:
                continue
            tag = candidate.group("name").rsplit("\\", 1)[-1]

            after = _skip_inline_whitespace(text, candidate.end())
            if after >= len(text) or text[after] != "(":
                # "@param"-style doc tags are not annotations.
                if tag in TOP_LEVEL_TAGS or tag in NESTED_ONLY_TAGS:
                    reader = _TagReader(text, start, self._constants, block.location)
                    node = reader.tag()
                    if tag in NESTED_ONLY_TAGS:
                        errors.append(
                            ParseError(
                                f"@{tag} is only valid inside another annotation",
                                block.location(start),
                            )
                        )
                    else:
                        nodes.append(node)
                resume_at = candidate.end()
                max_indent = None
                continue

            reader = _TagReader(text, start, self._constants, block.location)
            try:
                node = reader.tag()
            except _SyntaxFailure as exc:
                errors.append(ParseError(exc.message, block.location(exc.offset)))
                resume_at = _next_line(text, start)
                max_indent = indent
                continue

            resume_at = reader.pos
            max_indent = None
            problems = list(reader.problems)
            if tag not in KNOWN_TAGS:
                problems.insert(0, (f"unknown annotation @{tag}", start))
            elif tag in NESTED_ONLY_TAGS:
                problems.insert(0, (f"@{tag} is only valid inside another annotation", start))
            if problems:
                errors.extend(
                    ParseError(message, block.location(offset)) for message, offset in problems
                )
                continue
            nodes.append(node)

        return nodes, errors


def _skip_whitespace(text: str, offset: int) -> int:
    while offset < len(text) and text[offset].isspace():
        offset += 1
    return offset


def _skip_inline_whitespace(text: str, offset: int) -> int:
    while offset < len(text) and text[offset] in " \t":
        offset += 1
    return offset


def _next_line(text: str, offset: int) -> int:
    newline = text.find("\n", offset)
    return len(text) if newline == -1 else newline + 1


__all__ = ["AnnotationParser"]
