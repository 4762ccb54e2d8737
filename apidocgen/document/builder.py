"""Folds parsed annotation trees into one Document Model."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Collection, Dict, Iterable, List, Optional, Tuple

from ..annotations.ast import AnnotationNode, UnitAnnotations, UnresolvedConstant, Value, ValueKind
from ..annotations.grammar import (
    CONTENT_TAGS,
    HTTP_METHODS,
    PARAMETER_LOCATIONS,
    PARAMETER_TAGS,
    TAG_ATTRIBUTES,
)
from ..errors import ApiDocError, BuildError, Diagnostic, Phase, warning
from ..logging import get_logger
from ..models import SourceLocation, Symbol, SymbolKind
from .model import (
    Contact,
    DocumentModel,
    Info,
    License,
    MediaType,
    Operation,
    Parameter,
    Reference,
    RequestBody,
    Response,
    Schema,
    SchemaOrRef,
    SecurityScheme,
    Server,
    Tag,
    Text,
)

_POINTER = re.compile(r"^(?:#/components/)?(?:(?P<collection>[A-Za-z]+)/)?(?P<name>[^/\s]+)$")

_PARAM_PATTERNS = [
    (re.compile(r"/:([A-Za-z_][A-Za-z0-9_]*)"), r"/{\1}"),
    (re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\s*:\s*[^}]+\}"), r"{\1}"),
]

# Declared field types (PHP, Java, TypeScript spellings) mapped to OpenAPI types.
_DECLARED_TYPES = {
    "int": "integer",
    "integer": "integer",
    "long": "integer",
    "short": "integer",
    "byte": "integer",
    "bigint": "integer",
    "biginteger": "integer",
    "float": "number",
    "double": "number",
    "number": "number",
    "decimal": "number",
    "bigdecimal": "number",
    "string": "string",
    "char": "string",
    "character": "string",
    "uuid": "string",
    "bool": "boolean",
    "boolean": "boolean",
    "array": "array",
    "list": "array",
    "set": "array",
    "collection": "array",
    "iterable": "array",
    "object": "object",
    "map": "object",
    "stdclass": "object",
}


def normalize_path(path: str) -> str:
    """Return the canonical form of an operation path."""
    if not path:
        return "/"
    result = path.strip()
    if not result.startswith("/"):
        result = "/" + result
    for pattern, replacement in _PARAM_PATTERNS:
        result = pattern.sub(replacement, result)
    result = re.sub(r"/{2,}", "/", result)
    if len(result) > 1 and result.endswith("/"):
        result = result[:-1]
    return result


def infer_type(declared: Optional[str], example: Any) -> Tuple[Optional[str], bool]:
    """Return ``(openapi type, nullable)`` from a field's declared type or example."""
    nullable = False
    if declared:
        candidates = [part.strip() for part in declared.split("|") if part.strip()]
        if "null" in (candidate.lower() for candidate in candidates):
            nullable = True
            candidates = [candidate for candidate in candidates if candidate.lower() != "null"]
        first = candidates[0] if candidates else ""
        if first.startswith("?"):
            nullable = True
            first = first[1:]
        if first.endswith("[]"):
            return "array", nullable
        base = first.split("<", 1)[0].rsplit("\\", 1)[-1].rsplit(".", 1)[-1].lower()
        if base in _DECLARED_TYPES:
            return _DECLARED_TYPES[base], nullable
    if isinstance(example, bool):
        return "boolean", nullable
    if isinstance(example, int):
        return "integer", nullable
    if isinstance(example, float):
        return "number", nullable
    if isinstance(example, str):
        return "string", nullable
    if isinstance(example, list):
        return "array", nullable
    if isinstance(example, dict):
        return "object", nullable
    return None, nullable


@dataclass
class BuildContext:
    """Explicit state threaded through the fold."""

    model: DocumentModel = field(default_factory=DocumentModel)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    origins: Dict[Tuple[str, ...], SourceLocation] = field(default_factory=dict)
    type_schemas: Dict[Tuple[str, str], str] = field(default_factory=dict)

    def claim(self, key: Tuple[str, ...], location: SourceLocation, description: str) -> None:
        """Record the first declaration of ``key``; a second one is a BuildError."""
        first = self.origins.get(key)
        if first is not None:
            raise BuildError(
                f"{description}: first declared at {first}, redeclared at {location}", location
            )
        self.origins[key] = location

    def report(self, error: ApiDocError) -> None:
        self.diagnostics.append(error.to_diagnostic())

    def warn(self, message: str, location: SourceLocation) -> None:
        self.diagnostics.append(warning(Phase.BUILD, message, location))


class _Reader:
    """Typed attribute access for one annotation node."""

    def __init__(self, node: AnnotationNode, unit: str, context: BuildContext) -> None:
        self.node = node
        self.location = SourceLocation(unit, node.line or None, node.column or None)
        self._accepted: set[str] = set()
        allowed = TAG_ATTRIBUTES.get(node.tag, frozenset())
        for name in node.attribute_names():
            if name not in allowed:
                context.warn(f"unknown attribute '{name}' on @{node.tag} ignored", self.location)

    def _fail(self, name: str, expected: str, value: Value) -> BuildError:
        return BuildError(
            f"attribute '{name}' of @{self.node.tag} expects {expected}, got {value.kind.value}",
            self.location,
        )

    def _get(self, name: str) -> Optional[Value]:
        value = self.node.get(name)
        if value is None or value.kind is ValueKind.NULL:
            return None
        return value

    def text(self, name: str) -> Optional[Text]:
        value = self._get(name)
        if value is None:
            return None
        if value.kind is ValueKind.STRING:
            return value.data
        if value.kind is ValueKind.CONSTANT:
            return UnresolvedConstant(value.data, self.location)
        raise self._fail(name, "a string", value)

    def text_or_number(self, name: str) -> Optional[Text]:
        value = self._get(name)
        if value is not None and value.kind is ValueKind.NUMBER:
            return str(value.data)
        return self.text(name)

    def flag(self, name: str) -> Optional[bool]:
        value = self._get(name)
        if value is None:
            return None
        if value.kind is ValueKind.BOOLEAN:
            return value.data
        if value.kind is ValueKind.CONSTANT:
            return UnresolvedConstant(value.data, self.location)  # type: ignore[return-value]
        raise self._fail(name, "a boolean", value)

    def number(self, name: str) -> Optional[float]:
        value = self._get(name)
        if value is None:
            return None
        if value.kind is ValueKind.NUMBER:
            return value.data
        if value.kind is ValueKind.CONSTANT:
            return UnresolvedConstant(value.data, self.location)  # type: ignore[return-value]
        raise self._fail(name, "a number", value)

    def texts(self, name: str) -> List[Text]:
        value = self._get(name)
        if value is None:
            return []
        items = value.data if value.kind is ValueKind.ARRAY else (value,)
        result: List[Text] = []
        for item in items:
            if item.kind is ValueKind.STRING:
                result.append(item.data)
            elif item.kind is ValueKind.CONSTANT:
                result.append(UnresolvedConstant(item.data, self.location))
            else:
                raise self._fail(name, "an array of strings", item)
        return result

    def literal(self, name: str) -> Any:
        value = self._get(name)
        if value is None:
            return None
        try:
            return value.to_python(self.location)
        except TypeError:
            raise self._fail(name, "a literal value", value) from None

    def nested(self, tags: Collection[str], attribute: Optional[str] = None) -> List[AnnotationNode]:
        """Return nested tags of the given names from children and ``attribute``."""
        self._accepted.update(tags)
        found = [child for child in self.node.children if child.tag in tags]
        if attribute is None:
            return found
        value = self._get(attribute)
        if value is None:
            return found
        items = value.data if value.kind is ValueKind.ARRAY else (value,)
        for item in items:
            if item.kind is not ValueKind.TAG or item.data.tag not in tags:
                expected = " or ".join(f"@{tag}" for tag in sorted(tags))
                raise self._fail(attribute, expected, item)
            found.append(item.data)
        return found

    def check_children(self) -> None:
        for child in self.node.children:
            if child.tag not in self._accepted:
                raise BuildError(
                    f"@{child.tag} is not valid inside @{self.node.tag}",
                    SourceLocation(self.location.path, child.line or None, child.column or None),
                )


Handler = Callable[[BuildContext, str, Symbol, AnnotationNode], None]


class DocumentBuilder:
    """Dispatch-by-tag fold of annotation trees into a DocumentModel."""

    def __init__(self) -> None:
        self.logger = get_logger("builder")
        self._handlers: Dict[str, Handler] = {
            "Info": self._info,
            "Contact": self._contact,
            "License": self._license,
            "Server": self._server,
            "Tag": self._tag,
            "Schema": self._schema_component,
            "RequestBody": self._request_body_component,
            "Response": self._response_component,
            "SecurityScheme": self._security_scheme_component,
        }
        for method in HTTP_METHODS:
            self._handlers[method] = self._operation
        for tag in PARAMETER_TAGS:
            self._handlers[tag] = self._parameter_component

    def build(
        self, units: Iterable[UnitAnnotations], context: Optional[BuildContext] = None
    ) -> BuildContext:
        """Fold every unit in identity order; field properties are attached after all schemas."""
        ctx = context or BuildContext()
        deferred: List[Tuple[str, Symbol, AnnotationNode]] = []
        trees = 0
        for unit in sorted(units, key=lambda item: item.identity):
            for block in unit.blocks:
                for node in block.nodes:
                    trees += 1
                    if node.tag == "Property":
                        deferred.append((unit.identity, block.symbol, node))
                        continue
                    self._fold(ctx, unit.identity, block.symbol, node)
        for identity, symbol, node in deferred:
            self._guard(ctx, self._field_property, identity, symbol, node)
        self.logger.debug(
            "Folded %d annotation trees into %d paths and %d schemas",
            trees,
            len(ctx.model.paths),
            len(ctx.model.components.schemas),
        )
        return ctx

    def _fold(self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode) -> None:
        handler = self._handlers.get(node.tag)
        if handler is None:
            ctx.report(
                BuildError(
                    f"@{node.tag} cannot be used at the top level",
                    SourceLocation(unit, node.line or None, node.column or None),
                )
            )
            return
        self._guard(ctx, handler, unit, symbol, node)

    @staticmethod
    def _guard(
        ctx: BuildContext, handler: Handler, unit: str, symbol: Symbol, node: AnnotationNode
    ) -> None:
        try:
            handler(ctx, unit, symbol, node)
        except BuildError as exc:
            ctx.report(exc)

    # ------------------------------------------------------------------
    # Global declarations

    @staticmethod
    def _require_global_scope(symbol: Symbol, node: AnnotationNode, location: SourceLocation) -> None:
        if symbol.kind in (SymbolKind.METHOD, SymbolKind.FIELD):
            raise BuildError(
                f"@{node.tag} is a global declaration and cannot annotate "
                f"{symbol.kind.value} {symbol.qualified_name}",
                location,
            )

    def _info(self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode) -> None:
        r = _Reader(node, unit, ctx)
        self._require_global_scope(symbol, node, r.location)
        ctx.claim(("global", "Info"), r.location, "duplicate global declaration @Info")
        info: Info = ctx.model.info
        info.title = r.text("title")
        info.version = r.text_or_number("version")
        info.description = r.text("description")
        info.terms_of_service = r.text("termsOfService")
        info.location = r.location
        contacts = r.nested({"Contact"}, attribute="contact")
        licenses = r.nested({"License"}, attribute="license")
        r.check_children()
        for child in contacts:
            self._guard(ctx, self._contact, unit, symbol, child)
        for child in licenses:
            self._guard(ctx, self._license, unit, symbol, child)

    def _contact(self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode) -> None:
        r = _Reader(node, unit, ctx)
        self._require_global_scope(symbol, node, r.location)
        ctx.claim(("global", "Contact"), r.location, "duplicate global declaration @Contact")
        ctx.model.info.contact = Contact(name=r.text("name"), email=r.text("email"), url=r.text("url"))

    def _license(self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode) -> None:
        r = _Reader(node, unit, ctx)
        self._require_global_scope(symbol, node, r.location)
        ctx.claim(("global", "License"), r.location, "duplicate global declaration @License")
        ctx.model.info.license = License(
            name=r.text("name"), url=r.text("url"), identifier=r.text("identifier")
        )

    def _server(self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode) -> None:
        r = _Reader(node, unit, ctx)
        self._require_global_scope(symbol, node, r.location)
        url = r.text("url")
        if url is None:
            raise BuildError("@Server requires a 'url' attribute", r.location)
        ctx.claim(("server", str(url)), r.location, f"duplicate global declaration @Server({url})")
        ctx.model.add_server(Server(url=url, description=r.text("description")))

    def _tag(self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode) -> None:
        r = _Reader(node, unit, ctx)
        self._require_global_scope(symbol, node, r.location)
        name = r.text("name")
        if name is None:
            raise BuildError("@Tag requires a 'name' attribute", r.location)
        ctx.claim(("tag", str(name)), r.location, f"duplicate global declaration @Tag({name})")
        ctx.model.add_tag(Tag(name=name, description=r.text("description")))

    # ------------------------------------------------------------------
    # Operations

    def _operation(self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode) -> None:
        r = _Reader(node, unit, ctx)
        if symbol.kind is not SymbolKind.METHOD:
            raise BuildError(
                f"@{node.tag} must annotate a method, not {symbol.kind.value} {symbol.qualified_name}",
                r.location,
            )
        raw_path = r.text("path")
        if raw_path is None:
            raise BuildError(f"@{node.tag} requires a 'path' attribute", r.location)
        path = normalize_path(raw_path) if isinstance(raw_path, str) else raw_path
        method = node.tag.lower()
        label = f"{method.upper()} {path}"

        operation = Operation(
            method=method,
            path=path,
            operation_id=r.text("operationId") or symbol.qualified_name,
            tags=r.texts("tags"),
            summary=r.text("summary"),
            description=r.text("description"),
            deprecated=r.flag("deprecated"),
            security=r.literal("security"),
            location=r.location,
        )
        for child in r.nested(PARAMETER_TAGS, attribute="parameters"):
            operation.parameters.append(self._parameter(ctx, unit, child))
        bodies = r.nested({"RequestBody"}, attribute="requestBody")
        if len(bodies) > 1:
            raise BuildError(f"{label} declares more than one request body", r.location)
        if bodies:
            operation.request_body = self._request_body(ctx, unit, bodies[0])
        for child in r.nested({"Response"}, attribute="responses"):
            status, response = self._operation_response(ctx, unit, child)
            if status in operation.responses:
                raise BuildError(
                    f"duplicate response {status} in {label}",
                    SourceLocation(unit, child.line or None, child.column or None),
                )
            operation.responses[status] = response
        r.check_children()

        ctx.claim(("operation", str(path), method), r.location, f"duplicate operation {label}")
        ctx.model.add_operation(operation)

    def _operation_response(
        self, ctx: BuildContext, unit: str, node: AnnotationNode
    ) -> Tuple[Text, Any]:
        r = _Reader(node, unit, ctx)
        status = r.text_or_number("response")
        if status is None:
            raise BuildError(
                "@Response inside an operation requires 'response' (a status code or \"default\")",
                r.location,
            )
        ref = r.text("ref")
        if ref is not None:
            r.check_children()
            return status, self._reference(ref, "responses", r.location)
        return status, self._response_body(ctx, unit, r)

    # ------------------------------------------------------------------
    # Shared fragments

    def _parameter(
        self, ctx: BuildContext, unit: str, node: AnnotationNode, reader: Optional[_Reader] = None
    ) -> Any:
        r = reader or _Reader(node, unit, ctx)
        ref = r.text("ref")
        if ref is not None:
            r.check_children()
            return self._reference(ref, "parameters", r.location)
        location = PARAMETER_LOCATIONS.get(node.tag) or r.text("in") or ""
        schemas = r.nested({"Schema"}, attribute="schema")
        r.check_children()
        if len(schemas) > 1:
            raise BuildError(f"@{node.tag} declares more than one schema", r.location)
        required = r.flag("required")
        if required is None and location == "path":
            required = True
        return Parameter(
            name=r.text("name") or "",
            in_=location,
            description=r.text("description"),
            required=required,
            deprecated=r.flag("deprecated"),
            schema=self._schema(ctx, unit, schemas[0]) if schemas else None,
            example=r.literal("example"),
            location=r.location,
        )

    def _request_body(
        self, ctx: BuildContext, unit: str, node: AnnotationNode, reader: Optional[_Reader] = None
    ) -> Any:
        r = reader or _Reader(node, unit, ctx)
        ref = r.text("ref")
        if ref is not None:
            r.check_children()
            return self._reference(ref, "requestBodies", r.location)
        content = self._content(ctx, unit, r)
        r.check_children()
        return RequestBody(
            description=r.text("description"),
            required=r.flag("required"),
            content=content,
            location=r.location,
        )

    def _response_body(self, ctx: BuildContext, unit: str, r: _Reader) -> Response:
        content = self._content(ctx, unit, r)
        r.check_children()
        return Response(description=r.text("description"), content=content, location=r.location)

    def _content(self, ctx: BuildContext, unit: str, r: _Reader) -> Dict[str, MediaType]:
        content: Dict[str, MediaType] = {}
        for child in r.nested({*CONTENT_TAGS, "MediaType"}, attribute="content"):
            if child.tag in CONTENT_TAGS:
                media_type: Text = CONTENT_TAGS[child.tag]
                media = MediaType(schema=self._schema(ctx, unit, child))
            else:
                mr = _Reader(child, unit, ctx)
                media_type = mr.text("mediaType") or ""
                if not media_type:
                    raise BuildError("@MediaType requires a 'mediaType' attribute", mr.location)
                schemas = mr.nested({"Schema"}, attribute="schema")
                mr.check_children()
                media = MediaType(
                    schema=self._schema(ctx, unit, schemas[0]) if schemas else None,
                    example=mr.literal("example"),
                )
            key = str(media_type)
            if key in content:
                raise BuildError(f"duplicate media type {key}", r.location)
            content[key] = media
        return content

    def _schema(
        self, ctx: BuildContext, unit: str, node: AnnotationNode, reader: Optional[_Reader] = None
    ) -> SchemaOrRef:
        r = reader or _Reader(node, unit, ctx)
        ref = r.text("ref")
        if ref is not None:
            r.check_children()
            return self._reference(ref, "schemas", r.location)

        properties: Dict[str, SchemaOrRef] = {}
        for child in r.nested({"Property"}, attribute="properties"):
            name = _property_name(child, unit)
            if name in properties:
                raise BuildError(f"duplicate property '{name}' in @{node.tag}", r.location)
            properties[name] = self._schema(ctx, unit, child)
        items_nodes = r.nested({"Items"}, attribute="items")
        r.check_children()
        if len(items_nodes) > 1:
            raise BuildError(f"@{node.tag} declares more than one @Items", r.location)
        items = self._schema(ctx, unit, items_nodes[0]) if items_nodes else None

        schema_type = r.text("type")
        if schema_type is None:
            if properties:
                schema_type = "object"
            elif items is not None:
                schema_type = "array"
        enum = r.literal("enum")
        if enum is not None and not isinstance(enum, list):
            raise BuildError(f"attribute 'enum' of @{node.tag} expects an array", r.location)
        return Schema(
            title=r.text("title"),
            description=r.text("description"),
            type=schema_type,
            format=r.text("format"),
            properties=properties,
            required=r.texts("required"),
            items=items,
            example=r.literal("example"),
            enum=enum,
            default=r.literal("default"),
            minimum=r.number("minimum"),
            maximum=r.number("maximum"),
            nullable=r.flag("nullable"),
            read_only=r.flag("readOnly"),
            write_only=r.flag("writeOnly"),
            location=r.location,
        )

    @staticmethod
    def _reference(raw: Text, expected: str, location: SourceLocation) -> Reference:
        if isinstance(raw, UnresolvedConstant):
            return Reference(collection=expected, name=raw, expected=expected, location=location)
        match = _POINTER.match(raw.strip())
        if match is None:
            raise BuildError(f"malformed reference '{raw}'", location)
        return Reference(
            collection=match.group("collection") or expected,
            name=match.group("name"),
            expected=expected,
            location=location,
        )

    # ------------------------------------------------------------------
    # Components

    @staticmethod
    def _component_name(r: _Reader, attribute: str) -> str:
        name = r.text(attribute)
        if name is None:
            raise BuildError(
                f"top-level @{r.node.tag} must name a component with {attribute}=\"Name\"",
                r.location,
            )
        if isinstance(name, UnresolvedConstant):
            raise BuildError(f"component name {name} must be a literal string", r.location)
        return name

    def _schema_component(
        self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode
    ) -> None:
        r = _Reader(node, unit, ctx)
        if symbol.kind in (SymbolKind.METHOD, SymbolKind.FIELD):
            raise BuildError(
                f"@Schema must annotate a type or the file, not {symbol.kind.value} {symbol.qualified_name}",
                r.location,
            )
        if r.text("schema") is None and symbol.kind is SymbolKind.TYPE:
            name = symbol.name
        else:
            name = self._component_name(r, "schema")
        ctx.claim(("schemas", name), r.location, f"duplicate component schemas/{name}")
        schema = self._schema(ctx, unit, node, reader=r)
        if isinstance(schema, Schema):
            schema.name = name
        ctx.model.register("schemas", name, schema)
        if symbol.kind is SymbolKind.TYPE:
            ctx.type_schemas[(unit, symbol.name)] = name

    def _field_property(
        self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode
    ) -> None:
        r = _Reader(node, unit, ctx)
        if symbol.kind is not SymbolKind.FIELD:
            raise BuildError(
                f"@Property must annotate a field or be nested in @Schema, not "
                f"{symbol.kind.value} {symbol.qualified_name}",
                r.location,
            )
        schema_name = ctx.type_schemas.get((unit, symbol.parent or ""))
        if schema_name is None:
            raise BuildError(f"property {symbol.qualified_name} has no enclosing @Schema", r.location)
        owner = ctx.model.components.schemas.get(schema_name)
        if not isinstance(owner, Schema):
            raise BuildError(f"schema {schema_name} is a reference and cannot declare properties", r.location)

        name = r.text("property") or symbol.name
        if not isinstance(name, str):
            raise BuildError(f"property name {name} must be a literal string", r.location)
        if name in owner.properties:
            raise BuildError(f"duplicate property '{name}' in schema {schema_name}", r.location)

        prop = self._schema(ctx, unit, node, reader=r)
        if isinstance(prop, Schema) and prop.type is None:
            inferred, nullable = infer_type(symbol.declared_type, prop.example)
            prop.type = inferred
            if nullable and prop.nullable is None:
                prop.nullable = True
        owner.properties[name] = prop
        if owner.type is None:
            owner.type = "object"

    def _parameter_component(
        self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode
    ) -> None:
        r = _Reader(node, unit, ctx)
        name = self._component_name(r, "parameter")
        ctx.claim(("parameters", name), r.location, f"duplicate component parameters/{name}")
        ctx.model.register("parameters", name, self._parameter(ctx, unit, node, reader=r))

    def _request_body_component(
        self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode
    ) -> None:
        r = _Reader(node, unit, ctx)
        name = self._component_name(r, "request")
        ctx.claim(("requestBodies", name), r.location, f"duplicate component requestBodies/{name}")
        ctx.model.register("requestBodies", name, self._request_body(ctx, unit, node, reader=r))

    def _response_component(
        self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode
    ) -> None:
        r = _Reader(node, unit, ctx)
        key = node.get("response")
        if key is not None and key.kind is ValueKind.NUMBER:
            raise BuildError(
                f"@Response({key.data}) must be nested in an operation; top-level responses "
                "need response=\"Name\"",
                r.location,
            )
        name = self._component_name(r, "response")
        ctx.claim(("responses", name), r.location, f"duplicate component responses/{name}")
        ref = r.text("ref")
        if ref is not None:
            r.check_children()
            response: Any = self._reference(ref, "responses", r.location)
        else:
            response = self._response_body(ctx, unit, r)
        ctx.model.register("responses", name, response)

    def _security_scheme_component(
        self, ctx: BuildContext, unit: str, symbol: Symbol, node: AnnotationNode
    ) -> None:
        r = _Reader(node, unit, ctx)
        name = self._component_name(r, "securityScheme")
        scheme_type = r.text("type")
        if scheme_type is None:
            raise BuildError("@SecurityScheme requires a 'type' attribute", r.location)
        r.check_children()
        ctx.claim(("securitySchemes", name), r.location, f"duplicate component securitySchemes/{name}")
        ctx.model.register(
            "securitySchemes",
            name,
            SecurityScheme(
                type=scheme_type,
                scheme=r.text("scheme"),
                bearer_format=r.text("bearerFormat"),
                in_=r.text("in"),
                name=r.text("name"),
                description=r.text("description"),
                location=r.location,
            ),
        )


def _property_name(node: AnnotationNode, unit: str) -> str:
    value = node.get("property")
    if value is None or value.kind is not ValueKind.STRING:
        raise BuildError(
            "@Property nested in a schema requires property=\"name\"",
            SourceLocation(unit, node.line or None, node.column or None),
        )
    return value.data


def apply_overrides(
    model: DocumentModel,
    *,
    title: Optional[str] = None,
    version: Optional[str] = None,
    description: Optional[str] = None,
    base_url: Optional[str] = None,
) -> None:
    """Apply externally supplied metadata on top of the annotated values."""
    if title:
        model.info.title = title
    if version:
        model.info.version = version
    if description:
        model.info.description = description
    if base_url:
        model.servers = [server for server in model.servers if server.url != base_url]
        model.add_server(Server(url=base_url), first=True)


__all__ = [
    "BuildContext",
    "DocumentBuilder",
    "apply_overrides",
    "infer_type",
    "normalize_path",
]
