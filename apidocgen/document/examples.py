"""Example synthesis over an emitted OpenAPI document."""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Iterator, Optional

_FORMAT_EXAMPLES = {
    "date": "2024-01-01",
    "date-time": "2024-01-01T00:00:00Z",
    "email": "user@example.com",
    "uuid": "00000000-0000-0000-0000-000000000000",
    "uri": "https://example.com",
    "url": "https://example.com",
}


def resolve_pointer(document: Dict[str, Any], pointer: str) -> Optional[Any]:
    """Return the node a local ``#/...`` pointer addresses, or ``None``."""
    if not pointer.startswith("#/"):
        return None
    node: Any = document
    for part in pointer[2:].split("/"):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def example_for(
    schema: Dict[str, Any], document: Dict[str, Any], _seen: FrozenSet[str] = frozenset()
) -> Any:
    """Build a representative value for ``schema``.

    ``$ref`` targets are followed at most once per branch, so recursive schemas
    stop at the first repeated pointer instead of expanding forever.
    """
    pointer = schema.get("$ref")
    if isinstance(pointer, str):
        if pointer in _seen:
            return None
        target = resolve_pointer(document, pointer)
        if not isinstance(target, dict):
            return None
        return example_for(target, document, _seen | {pointer})
    if "example" in schema:
        return schema["example"]
    if schema.get("default") is not None:
        return schema["default"]
    if schema.get("enum"):
        return schema["enum"][0]

    kind = schema.get("type")
    if kind == "object" or "properties" in schema:
        result = {}
        for name, prop in (schema.get("properties") or {}).items():
            if isinstance(prop, dict):
                value = example_for(prop, document, _seen)
                if value is not None:
                    result[name] = value
        return result
    if kind == "array":
        items = schema.get("items")
        value = example_for(items, document, _seen) if isinstance(items, dict) else None
        return [] if value is None else [value]
    if kind == "string":
        return _FORMAT_EXAMPLES.get(schema.get("format") or "", "string")
    if kind == "integer":
        return int(schema.get("minimum") or 0)
    if kind == "number":
        return float(schema.get("minimum") or 0)
    if kind == "boolean":
        return True
    return None


def _media_types(document: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    for methods in (document.get("paths") or {}).values():
        for operation in methods.values():
            body = operation.get("requestBody") or {}
            yield from (body.get("content") or {}).values()
            for response in (operation.get("responses") or {}).values():
                yield from (response.get("content") or {}).values()
    components = document.get("components") or {}
    for collection in ("requestBodies", "responses"):
        for entry in (components.get(collection) or {}).values():
            yield from (entry.get("content") or {}).values()


def attach_examples(document: Dict[str, Any]) -> int:
    """Fill ``example`` on every media type that has a schema but no example."""
    attached = 0
    for media in _media_types(document):
        if "example" in media or not isinstance(media.get("schema"), dict):
            continue
        value = example_for(media["schema"], document)
        if value is not None:
            media["example"] = value
            attached += 1
    return attached


__all__ = ["attach_examples", "example_for", "resolve_pointer"]
