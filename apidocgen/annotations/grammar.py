"""Known annotation tags and the attributes each one accepts."""

from __future__ import annotations

from typing import Dict, FrozenSet

HTTP_METHODS = ("Get", "Post", "Put", "Patch", "Delete", "Head", "Options", "Trace")

GLOBAL_TAGS = frozenset({"Info", "Contact", "License", "Server", "Tag"})

PARAMETER_LOCATIONS: Dict[str, str] = {
    "PathParameter": "path",
    "QueryParameter": "query",
    "HeaderParameter": "header",
    "CookieParameter": "cookie",
}
PARAMETER_TAGS = frozenset({"Parameter", *PARAMETER_LOCATIONS})

CONTENT_TAGS: Dict[str, str] = {
    "JsonContent": "application/json",
    "XmlContent": "application/xml",
}

_SCHEMA_ATTRIBUTES = frozenset(
    {
        "ref",
        "schema",
        "title",
        "description",
        "type",
        "format",
        "required",
        "properties",
        "items",
        "example",
        "enum",
        "nullable",
        "default",
        "minimum",
        "maximum",
        "readOnly",
        "writeOnly",
    }
)
_OPERATION_ATTRIBUTES = frozenset(
    {
        "path",
        "operationId",
        "tags",
        "summary",
        "description",
        "deprecated",
        "security",
        "parameters",
        "requestBody",
        "responses",
    }
)
_PARAMETER_ATTRIBUTES = frozenset(
    {"ref", "parameter", "name", "in", "description", "required", "deprecated", "schema", "example"}
)

TAG_ATTRIBUTES: Dict[str, FrozenSet[str]] = {
    "Info": frozenset({"title", "version", "description", "termsOfService", "contact", "license"}),
    "Contact": frozenset({"name", "email", "url"}),
    "License": frozenset({"name", "url", "identifier"}),
    "Server": frozenset({"url", "description"}),
    "Tag": frozenset({"name", "description"}),
    **{method: _OPERATION_ATTRIBUTES for method in HTTP_METHODS},
    "Schema": _SCHEMA_ATTRIBUTES,
    "Property": _SCHEMA_ATTRIBUTES | {"property"},
    "Items": _SCHEMA_ATTRIBUTES,
    "JsonContent": _SCHEMA_ATTRIBUTES,
    "XmlContent": _SCHEMA_ATTRIBUTES,
    "MediaType": frozenset({"mediaType", "schema", "example"}),
    **{tag: _PARAMETER_ATTRIBUTES for tag in PARAMETER_TAGS},
    "RequestBody": frozenset({"ref", "request", "description", "required", "content"}),
    "Response": frozenset({"ref", "response", "description", "content"}),
    "SecurityScheme": frozenset(
        {"securityScheme", "type", "scheme", "bearerFormat", "in", "name", "description"}
    ),
}

KNOWN_TAGS = frozenset(TAG_ATTRIBUTES)

# Tags that only make sense inside another annotation.
NESTED_ONLY_TAGS = frozenset({"Items", "JsonContent", "XmlContent", "MediaType"})

TOP_LEVEL_TAGS = KNOWN_TAGS - NESTED_ONLY_TAGS


__all__ = [
    "CONTENT_TAGS",
    "GLOBAL_TAGS",
    "HTTP_METHODS",
    "KNOWN_TAGS",
    "NESTED_ONLY_TAGS",
    "PARAMETER_LOCATIONS",
    "PARAMETER_TAGS",
    "TAG_ATTRIBUTES",
    "TOP_LEVEL_TAGS",
]
