"""In-memory Document Model assembled from annotations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from ..annotations.ast import UnresolvedConstant
from ..models import SourceLocation

Text = Union[str, UnresolvedConstant]

COLLECTIONS = ("schemas", "parameters", "requestBodies", "responses")
POINTER_PREFIX = "#/components/"


@dataclass(eq=False)
class Reference:
    """Symbolic pointer to a named Components entry."""

    collection: str
    name: Text
    expected: str
    location: Optional[SourceLocation] = None
    target: Optional[object] = None
    recursive: bool = False

    @property
    def pointer(self) -> str:
        return f"{POINTER_PREFIX}{self.collection}/{self.name}"

    @property
    def resolved(self) -> bool:
        return self.target is not None


@dataclass(eq=False)
class Schema:
    name: Optional[str] = None
    title: Optional[Text] = None
    description: Optional[Text] = None
    type: Optional[Text] = None
    format: Optional[Text] = None
    properties: Dict[str, "SchemaOrRef"] = field(default_factory=dict)
    required: List[Text] = field(default_factory=list)
    items: Optional["SchemaOrRef"] = None
    example: Any = None
    enum: Optional[List[Any]] = None
    default: Any = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    nullable: Optional[bool] = None
    read_only: Optional[bool] = None
    write_only: Optional[bool] = None
    location: Optional[SourceLocation] = None


SchemaOrRef = Union[Schema, Reference]


@dataclass(eq=False)
class MediaType:
    schema: Optional[SchemaOrRef] = None
    example: Any = None


@dataclass(eq=False)
class Parameter:
    name: Text = ""
    in_: Text = ""
    description: Optional[Text] = None
    required: Optional[bool] = None
    deprecated: Optional[bool] = None
    schema: Optional[SchemaOrRef] = None
    example: Any = None
    location: Optional[SourceLocation] = None


@dataclass(eq=False)
class RequestBody:
    description: Optional[Text] = None
    required: Optional[bool] = None
    content: Dict[str, MediaType] = field(default_factory=dict)
    location: Optional[SourceLocation] = None


@dataclass(eq=False)
class Response:
    description: Optional[Text] = None
    content: Dict[str, MediaType] = field(default_factory=dict)
    location: Optional[SourceLocation] = None


@dataclass(eq=False)
class SecurityScheme:
    type: Text = ""
    scheme: Optional[Text] = None
    bearer_format: Optional[Text] = None
    in_: Optional[Text] = None
    name: Optional[Text] = None
    description: Optional[Text] = None
    location: Optional[SourceLocation] = None


@dataclass(eq=False)
class Operation:
    method: str
    path: Text
    operation_id: Text
    tags: List[Text] = field(default_factory=list)
    summary: Optional[Text] = None
    description: Optional[Text] = None
    deprecated: Optional[bool] = None
    security: Optional[List[Any]] = None
    parameters: List[Union[Parameter, Reference]] = field(default_factory=list)
    request_body: Optional[Union[RequestBody, Reference]] = None
    responses: Dict[str, Union[Response, Reference]] = field(default_factory=dict)
    location: Optional[SourceLocation] = None


@dataclass(eq=False)
class Contact:
    name: Optional[Text] = None
    email: Optional[Text] = None
    url: Optional[Text] = None


@dataclass(eq=False)
class License:
    name: Optional[Text] = None
    url: Optional[Text] = None
    identifier: Optional[Text] = None


@dataclass(eq=False)
class Info:
    title: Optional[Text] = None
    version: Optional[Text] = None
    description: Optional[Text] = None
    terms_of_service: Optional[Text] = None
    contact: Optional[Contact] = None
    license: Optional[License] = None
    location: Optional[SourceLocation] = None


@dataclass(eq=False)
class Server:
    url: Text
    description: Optional[Text] = None


@dataclass(eq=False)
class Tag:
    name: Text
    description: Optional[Text] = None


@dataclass
class Components:
    schemas: Dict[str, SchemaOrRef] = field(default_factory=dict)
    parameters: Dict[str, Union[Parameter, Reference]] = field(default_factory=dict)
    request_bodies: Dict[str, Union[RequestBody, Reference]] = field(default_factory=dict)
    responses: Dict[str, Union[Response, Reference]] = field(default_factory=dict)
    security_schemes: Dict[str, SecurityScheme] = field(default_factory=dict)

    def collection(self, name: str) -> Optional[Dict[str, Any]]:
        """Return the registry addressed by a pointer collection name."""
        return {
            "schemas": self.schemas,
            "parameters": self.parameters,
            "requestBodies": self.request_bodies,
            "responses": self.responses,
        }.get(name)

    def collections(self) -> Iterator[Tuple[str, Dict[str, Any]]]:
        for name in COLLECTIONS:
            yield name, self.collection(name)  # type: ignore[misc]


class FrozenModelError(RuntimeError):
    """Raised when a frozen Document Model is mutated."""


@dataclass
class DocumentModel:
    """Root aggregate of the API description."""

    info: Info = field(default_factory=Info)
    servers: List[Server] = field(default_factory=list)
    tags: Dict[str, Tag] = field(default_factory=dict)
    paths: Dict[str, Dict[str, Operation]] = field(default_factory=dict)
    components: Components = field(default_factory=Components)
    frozen: bool = False

    def freeze(self) -> None:
        self.frozen = True

    def _check_mutable(self) -> None:
        if self.frozen:
            raise FrozenModelError("document model is frozen")

    def add_operation(self, operation: Operation) -> None:
        self._check_mutable()
        self.paths.setdefault(str(operation.path), {})[operation.method] = operation

    def add_server(self, server: Server, *, first: bool = False) -> None:
        self._check_mutable()
        if first:
            self.servers.insert(0, server)
        else:
            self.servers.append(server)

    def add_tag(self, tag: Tag) -> None:
        self._check_mutable()
        self.tags[str(tag.name)] = tag

    def register(self, collection: str, name: str, node: Any) -> None:
        self._check_mutable()
        if collection == "securitySchemes":
            self.components.security_schemes[name] = node
            return
        registry = self.components.collection(collection)
        if registry is None:
            raise KeyError(f"unknown components collection '{collection}'")
        registry[name] = node

    def operations(self) -> Iterator[Operation]:
        for methods in self.paths.values():
            yield from methods.values()


def walk(model: DocumentModel) -> Iterator[Tuple[str, object]]:
    """Yield ``(entity path, node)`` for every node of the model, in document order."""
    yield "info", model.info
    if model.info.contact is not None:
        yield "info.contact", model.info.contact
    if model.info.license is not None:
        yield "info.license", model.info.license
    for index, server in enumerate(model.servers):
        yield f"servers[{index}]", server
    for name, tag in model.tags.items():
        yield f"tags.{name}", tag
    for path, methods in model.paths.items():
        for method, operation in methods.items():
            base = f"paths.{path}.{method}"
            yield base, operation
            for index, parameter in enumerate(operation.parameters):
                yield from walk_node(f"{base}.parameters[{index}]", parameter)
            if operation.request_body is not None:
                yield from walk_node(f"{base}.requestBody", operation.request_body)
            for status, response in operation.responses.items():
                yield from walk_node(f"{base}.responses.{status}", response)
    for collection, entries in model.components.collections():
        for name, node in entries.items():
            yield from walk_node(f"components.{collection}.{name}", node)
    for name, scheme in model.components.security_schemes.items():
        yield f"components.securitySchemes.{name}", scheme


def walk_node(path: str, node: object) -> Iterator[Tuple[str, object]]:
    """Yield ``node`` and its nested schema-bearing children; stops at references."""
    yield path, node
    if isinstance(node, Schema):
        for name, prop in node.properties.items():
            yield from walk_node(f"{path}.properties.{name}", prop)
        if node.items is not None:
            yield from walk_node(f"{path}.items", node.items)
    elif isinstance(node, Parameter):
        if node.schema is not None:
            yield from walk_node(f"{path}.schema", node.schema)
    elif isinstance(node, (RequestBody, Response)):
        for media_type, media in node.content.items():
            yield f"{path}.content.{media_type}", media
            if media.schema is not None:
                yield from walk_node(f"{path}.content.{media_type}.schema", media.schema)


def location_of(node: object) -> Optional[SourceLocation]:
    """Best-effort source location of a model node."""
    value = getattr(node, "location", None)
    return value if isinstance(value, SourceLocation) else None


__all__ = [
    "COLLECTIONS",
    "Components",
    "Contact",
    "DocumentModel",
    "FrozenModelError",
    "Info",
    "License",
    "MediaType",
    "Operation",
    "Parameter",
    "Reference",
    "RequestBody",
    "Response",
    "Schema",
    "SchemaOrRef",
    "SecurityScheme",
    "Server",
    "Tag",
    "walk",
    "walk_node",
    "location_of",
]
