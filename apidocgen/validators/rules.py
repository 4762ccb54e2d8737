"""Document consistency rules, run in a fixed order."""

from __future__ import annotations

import dataclasses
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..annotations.ast import UnresolvedConstant
from ..document.model import (
    Contact,
    Info,
    License,
    MediaType,
    Operation,
    Parameter,
    Reference,
    RequestBody,
    Response,
    Schema,
    SecurityScheme,
    Server,
    Tag,
    location_of,
)
from .base import ValidationContext, ValidationIssue, Validator

_PLACEHOLDER = re.compile(r"\{([^{}/]+)\}")
_STATUS = re.compile(r"^[1-5]\d\d$")
_PARAMETER_LOCATIONS = ("path", "query", "header", "cookie")
_MODEL_NODES = (
    Contact,
    Info,
    License,
    MediaType,
    Operation,
    Parameter,
    Reference,
    RequestBody,
    Response,
    Schema,
    SecurityScheme,
    Server,
    Tag,
)


def _operations(context: ValidationContext) -> Iterator[Tuple[str, Operation]]:
    return context.of_type(Operation)


def _dereference(node: object) -> object:
    seen = set()
    while isinstance(node, Reference) and node.target is not None and id(node) not in seen:
        seen.add(id(node))
        node = node.target
    return node


class OperationResponsesValidator(Validator):
    name = "operation-responses"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        return [
            ValidationIssue(
                self.name,
                entity,
                f"{operation.method.upper()} {operation.path} declares no responses",
                operation.location,
            )
            for entity, operation in _operations(context)
            if not operation.responses
        ]


class UniqueOperationIdValidator(Validator):
    name = "unique-operation-id"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        seen: Dict[str, Tuple[str, Operation]] = {}
        for entity, operation in _operations(context):
            op_id = operation.operation_id
            if isinstance(op_id, UnresolvedConstant):
                continue
            if not op_id:
                issues.append(ValidationIssue(self.name, entity, "operationId is empty", operation.location))
                continue
            if op_id in seen:
                first_entity, first = seen[op_id]
                issues.append(
                    ValidationIssue(
                        self.name,
                        entity,
                        f"operationId '{op_id}' is already used by {first.method.upper()} "
                        f"{first.path} ({first.location or first_entity})",
                        operation.location,
                    )
                )
                continue
            seen[op_id] = (entity, operation)
        return issues


class ParameterShapeValidator(Validator):
    name = "parameter-shape"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for entity, parameter in context.of_type(Parameter):
            if not parameter.name:
                issues.append(ValidationIssue(self.name, entity, "parameter has no name", parameter.location))
            location = parameter.in_
            if isinstance(location, UnresolvedConstant):
                continue
            if location not in _PARAMETER_LOCATIONS:
                shown = f"'{location}'" if location else "missing"
                issues.append(
                    ValidationIssue(
                        self.name,
                        entity,
                        f"parameter '{parameter.name}' location is {shown}; "
                        f"expected one of {', '.join(_PARAMETER_LOCATIONS)}",
                        parameter.location,
                    )
                )
            elif location == "path" and parameter.required is False:
                issues.append(
                    ValidationIssue(
                        self.name,
                        entity,
                        f"path parameter '{parameter.name}' must be required",
                        parameter.location,
                    )
                )
        return issues


class PathParametersValidator(Validator):
    """Path placeholders and ``in=path`` parameters must match both ways."""

    name = "path-parameters"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for entity, operation in _operations(context):
            if isinstance(operation.path, UnresolvedConstant):
                continue
            placeholders = _PLACEHOLDER.findall(operation.path)
            declared: List[str] = []
            for raw in operation.parameters:
                parameter = _dereference(raw)
                if isinstance(parameter, Parameter) and parameter.in_ == "path":
                    declared.append(str(parameter.name))
            for name in placeholders:
                if name not in declared:
                    issues.append(
                        ValidationIssue(
                            self.name,
                            entity,
                            f"path placeholder {{{name}}} in {operation.path} has no path parameter",
                            operation.location,
                        )
                    )
            for name in declared:
                if name not in placeholders:
                    issues.append(
                        ValidationIssue(
                            self.name,
                            entity,
                            f"path parameter '{name}' does not appear in {operation.path}",
                            operation.location,
                        )
                    )
        return issues


class RequiredPropertiesValidator(Validator):
    name = "required-properties"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for entity, schema in context.of_type(Schema):
            for name in schema.required:
                if isinstance(name, UnresolvedConstant) or name in schema.properties:
                    continue
                issues.append(
                    ValidationIssue(
                        self.name,
                        entity,
                        f"required property '{name}' is not declared",
                        schema.location,
                    )
                )
        return issues


class StatusCodesValidator(Validator):
    name = "status-codes"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for entity, operation in _operations(context):
            for status, response in operation.responses.items():
                if isinstance(status, UnresolvedConstant) or status == "default":
                    continue
                if _STATUS.match(status) and 100 <= int(status) <= 599:
                    continue
                issues.append(
                    ValidationIssue(
                        self.name,
                        f"{entity}.responses.{status}",
                        f"'{status}' is not a valid status code; use 100-599 or \"default\"",
                        location_of(response) or operation.location,
                    )
                )
        return issues


class UnresolvedConstantsValidator(Validator):
    """No constant marker may survive into an emitted document."""

    name = "unresolved-constants"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for entity, node in context.nodes:
            for attribute, marker in _markers(node):
                issues.append(
                    ValidationIssue(
                        self.name,
                        entity,
                        f"constant '{marker.name}' used for {attribute} is not defined",
                        marker.location or location_of(node),
                    )
                )
        return issues


class InfoMetadataValidator(Validator):
    name = "info-metadata"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        info = context.model.info
        issues: List[ValidationIssue] = []
        for attribute in ("title", "version"):
            if not getattr(info, attribute):
                issues.append(
                    ValidationIssue(
                        self.name,
                        "info",
                        f"document has no {attribute}; declare it in @Info or the info "
                        "section of the configuration",
                        info.location,
                    )
                )
        return issues


def _markers(node: object) -> Iterator[Tuple[str, UnresolvedConstant]]:
    if not dataclasses.is_dataclass(node):
        return
    for field in dataclasses.fields(node):
        if field.name in ("location", "target"):
            continue
        for marker in _scan(getattr(node, field.name)):
            yield field.name, marker


def _scan(value: Any) -> Iterator[UnresolvedConstant]:
    if isinstance(value, UnresolvedConstant):
        yield value
    elif isinstance(value, _MODEL_NODES):
        return
    elif isinstance(value, dict):
        for key, item in value.items():
            yield from _scan(key)
            yield from _scan(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _scan(item)


def default_validators() -> List[Validator]:
    return [
        OperationResponsesValidator(),
        UniqueOperationIdValidator(),
        ParameterShapeValidator(),
        PathParametersValidator(),
        RequiredPropertiesValidator(),
        StatusCodesValidator(),
        UnresolvedConstantsValidator(),
        InfoMetadataValidator(),
    ]


__all__ = [
    "InfoMetadataValidator",
    "OperationResponsesValidator",
    "ParameterShapeValidator",
    "PathParametersValidator",
    "RequiredPropertiesValidator",
    "StatusCodesValidator",
    "UniqueOperationIdValidator",
    "UnresolvedConstantsValidator",
    "default_validators",
]
