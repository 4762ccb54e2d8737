"""Canonical rendering of a validated Document Model."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

from .annotations.ast import UnresolvedConstant
from .config import OUTPUT_FORMATS
from .document.examples import attach_examples
from .document.model import (
    DocumentModel,
    Info,
    MediaType,
    Operation,
    Parameter,
    Reference,
    RequestBody,
    Response,
    Schema,
    SecurityScheme,
)
from .logging import get_logger

METHOD_ORDER = ("get", "put", "post", "delete", "options", "head", "patch", "trace")


def _plain(value: Any) -> Any:
    if isinstance(value, UnresolvedConstant):
        return str(value)
    if isinstance(value, dict):
        return {str(_plain(key)): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def _compact(pairs: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """Build a mapping in the given order, dropping ``None`` values."""
    return {key: _plain(value) for key, value in pairs if value is not None}


class DocumentSerializer:
    """Renders a DocumentModel into a deterministically ordered OpenAPI document."""

    def __init__(self, openapi_version: str = "3.0.3", *, generate_examples: bool = False) -> None:
        self.openapi_version = openapi_version
        self.generate_examples = generate_examples
        self.logger = get_logger("serializer")

    def to_dict(self, model: DocumentModel) -> Dict[str, Any]:
        components = model.components
        component_map: Dict[str, Any] = {
            "schemas": {name: self._schema(node) for name, node in components.schemas.items()},
            "parameters": {name: self._parameter(node) for name, node in components.parameters.items()},
            "requestBodies": {
                name: self._request_body(node) for name, node in components.request_bodies.items()
            },
            "responses": {name: self._response(node) for name, node in components.responses.items()},
        }
        if components.security_schemes:
            component_map["securitySchemes"] = {
                name: self._security_scheme(node) for name, node in components.security_schemes.items()
            }

        document: Dict[str, Any] = {
            "openapi": self.openapi_version,
            "info": self._info(model.info),
            "servers": [
                _compact((("url", server.url), ("description", server.description)))
                for server in model.servers
            ],
            "tags": [
                _compact((("name", tag.name), ("description", tag.description)))
                for tag in model.tags.values()
            ],
            "paths": self._paths(model),
            "components": component_map,
        }
        if self.generate_examples:
            attached = attach_examples(document)
            self.logger.debug("Synthesized %d media type examples", attached)
        return document

    def dumps(self, model: DocumentModel, fmt: str = "json") -> str:
        return self.render(self.to_dict(model), fmt)

    @staticmethod
    def render(document: Dict[str, Any], fmt: str = "json") -> str:
        """Encode an emitted document; JSON output ends with a newline."""
        if fmt not in OUTPUT_FORMATS:
            raise ValueError(f"Unsupported output format '{fmt}'")
        if fmt == "yaml":
            return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"

    def _info(self, info: Info) -> Dict[str, Any]:
        contact = license_ = None
        if info.contact is not None:
            contact = _compact(
                (("name", info.contact.name), ("url", info.contact.url), ("email", info.contact.email))
            )
        if info.license is not None:
            license_ = _compact(
                (
                    ("name", info.license.name),
                    ("identifier", info.license.identifier),
                    ("url", info.license.url),
                )
            )
        return _compact(
            (
                ("title", info.title),
                ("description", info.description),
                ("termsOfService", info.terms_of_service),
                ("contact", contact),
                ("license", license_),
                ("version", info.version),
            )
        )

    def _paths(self, model: DocumentModel) -> Dict[str, Any]:
        paths: Dict[str, Any] = {}
        for path in sorted(model.paths):
            methods = model.paths[path]
            ordered = sorted(methods, key=lambda method: METHOD_ORDER.index(method))
            paths[path] = {method: self._operation(methods[method]) for method in ordered}
        return paths

    def _operation(self, operation: Operation) -> Dict[str, Any]:
        parameters: Optional[List[Any]] = None
        if operation.parameters:
            parameters = [self._parameter(node) for node in operation.parameters]
        request_body = None
        if operation.request_body is not None:
            request_body = self._request_body(operation.request_body)
        return _compact(
            (
                ("tags", list(operation.tags) or None),
                ("summary", operation.summary),
                ("description", operation.description),
                ("operationId", operation.operation_id),
                ("parameters", parameters),
                ("requestBody", request_body),
                (
                    "responses",
                    {str(status): self._response(node) for status, node in operation.responses.items()},
                ),
                ("deprecated", operation.deprecated),
                ("security", operation.security),
            )
        )

    @staticmethod
    def _reference(node: Reference) -> Dict[str, str]:
        return {"$ref": node.pointer}

    def _schema(self, node: Union[Schema, Reference]) -> Dict[str, Any]:
        if isinstance(node, Reference):
            return self._reference(node)
        properties = None
        if node.properties:
            properties = {name: self._schema(prop) for name, prop in node.properties.items()}
        return _compact(
            (
                ("type", node.type),
                ("format", node.format),
                ("title", node.title),
                ("description", node.description),
                ("required", list(node.required) or None),
                ("properties", properties),
                ("items", self._schema(node.items) if node.items is not None else None),
                ("enum", node.enum),
                ("default", node.default),
                ("minimum", node.minimum),
                ("maximum", node.maximum),
                ("nullable", node.nullable),
                ("readOnly", node.read_only),
                ("writeOnly", node.write_only),
                ("example", node.example),
            )
        )

    def _parameter(self, node: Union[Parameter, Reference]) -> Dict[str, Any]:
        if isinstance(node, Reference):
            return self._reference(node)
        return _compact(
            (
                ("name", node.name),
                ("in", node.in_),
                ("description", node.description),
                ("required", node.required),
                ("deprecated", node.deprecated),
                ("schema", self._schema(node.schema) if node.schema is not None else None),
                ("example", node.example),
            )
        )

    def _content(self, content: Dict[str, MediaType]) -> Optional[Dict[str, Any]]:
        if not content:
            return None
        return {
            media_type: _compact(
                (
                    ("schema", self._schema(media.schema) if media.schema is not None else None),
                    ("example", media.example),
                )
            )
            for media_type, media in content.items()
        }

    def _request_body(self, node: Union[RequestBody, Reference]) -> Dict[str, Any]:
        if isinstance(node, Reference):
            return self._reference(node)
        return _compact(
            (
                ("description", node.description),
                ("content", self._content(node.content) or {}),
                ("required", node.required),
            )
        )

    def _response(self, node: Union[Response, Reference]) -> Dict[str, Any]:
        if isinstance(node, Reference):
            return self._reference(node)
        # OpenAPI requires a description on every response object.
        return _compact((("description", node.description or ""), ("content", self._content(node.content))))

    @staticmethod
    def _security_scheme(node: SecurityScheme) -> Dict[str, Any]:
        return _compact(
            (
                ("type", node.type),
                ("description", node.description),
                ("name", node.name),
                ("in", node.in_),
                ("scheme", node.scheme),
                ("bearerFormat", node.bearer_format),
            )
        )


__all__ = ["DocumentSerializer", "METHOD_ORDER"]
