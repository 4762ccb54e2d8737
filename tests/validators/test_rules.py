"""Unit tests for the document consistency rules."""

from __future__ import annotations

from typing import List

from apidocgen.annotations import UnresolvedConstant
from apidocgen.document import DocumentModel, Reference, Schema
from apidocgen.document.model import Info, Operation, Parameter, Response
from apidocgen.errors import Phase
from apidocgen.models import SourceLocation
from apidocgen.validators import ValidationContext, default_validators, run_validators
from apidocgen.validators.rules import PathParametersValidator, UnresolvedConstantsValidator


def _model(*operations: Operation) -> DocumentModel:
    model = DocumentModel(info=Info(title="Pets", version="1.0.0"))
    for operation in operations:
        model.add_operation(operation)
    return model


def _operation(path: str = "/pets", method: str = "get", **kwargs) -> Operation:
    kwargs.setdefault("operation_id", f"{method}{path}")
    kwargs.setdefault("responses", {"200": Response(description="ok")})
    return Operation(method=method, path=path, location=SourceLocation("app/Pets.php", 3), **kwargs)


def _rules(model: DocumentModel) -> List[str]:
    return [issue.rule for issue in run_validators(model)]


def test_valid_model_has_no_issues() -> None:
    model = _model(
        _operation(
            "/pets/{id}",
            parameters=[Parameter(name="id", in_="path", required=True)],
        )
    )

    assert run_validators(model) == []


def test_rules_run_in_fixed_order() -> None:
    assert [validator.name for validator in default_validators()] == [
        "operation-responses",
        "unique-operation-id",
        "parameter-shape",
        "path-parameters",
        "required-properties",
        "status-codes",
        "unresolved-constants",
        "info-metadata",
    ]


def test_all_issues_are_collected() -> None:
    model = _model(
        _operation("/a", operation_id="same", responses={}),
        _operation("/b", operation_id="same", responses={"abc": Response(description="?")}),
    )
    model.info.title = None

    assert _rules(model) == [
        "operation-responses",
        "unique-operation-id",
        "status-codes",
        "info-metadata",
    ]


def test_duplicate_operation_id_names_first_use() -> None:
    model = _model(_operation("/a", operation_id="list"), _operation("/b", operation_id="list"))

    [issue] = run_validators(model)

    assert issue.entity == "paths./b.get"
    assert "operationId 'list' is already used by GET /a (app/Pets.php:3)" == issue.message


def test_parameter_shape() -> None:
    model = _model(
        _operation(
            "/pets/{id}",
            parameters=[
                Parameter(name="id", in_="path", required=False),
                Parameter(name="", in_="body"),
            ],
        )
    )

    messages = [issue.message for issue in run_validators(model) if issue.rule == "parameter-shape"]

    assert messages == [
        "path parameter 'id' must be required",
        "parameter has no name",
        "parameter '' location is 'body'; expected one of path, query, header, cookie",
    ]


def test_path_placeholders_and_parameters_must_match() -> None:
    shared = Parameter(name="owner", in_="path", required=True)
    alias = Reference("parameters", "Owner", "parameters", target=shared)
    model = _model(
        _operation(
            "/owners/{owner}/pets/{id}",
            parameters=[alias, Parameter(name="petId", in_="path", required=True)],
        )
    )

    issues = PathParametersValidator().validate(ValidationContext.for_model(model))

    assert [issue.message for issue in issues] == [
        "path placeholder {id} in /owners/{owner}/pets/{id} has no path parameter",
        "path parameter 'petId' does not appear in /owners/{owner}/pets/{id}",
    ]


def test_required_properties_must_be_declared() -> None:
    model = _model(_operation())
    model.register(
        "schemas",
        "Pet",
        Schema(name="Pet", type="object", required=["name", "age"], properties={"name": Schema(type="string")}),
    )

    [issue] = run_validators(model)

    assert issue.rule == "required-properties"
    assert issue.entity == "components.schemas.Pet"
    assert issue.message == "required property 'age' is not declared"


def test_status_codes_accept_default_and_ranges() -> None:
    model = _model(
        _operation(
            responses={
                "200": Response(description="ok"),
                "default": Response(description="error"),
                "600": Response(description="nope"),
            }
        )
    )

    [issue] = run_validators(model)

    assert issue.rule == "status-codes"
    assert issue.entity == "paths./pets.get.responses.600"


def test_unresolved_constants_are_reported_per_use() -> None:
    marker_location = SourceLocation("app/Pets.php", 7, 40)
    model = _model(
        _operation(summary=UnresolvedConstant("PET_SUMMARY", marker_location), tags=[UnresolvedConstant("TAG")])
    )

    issues = UnresolvedConstantsValidator().validate(ValidationContext.for_model(model))

    assert [(issue.message, issue.location) for issue in issues] == [
        ("constant 'TAG' used for tags is not defined", SourceLocation("app/Pets.php", 3)),
        ("constant 'PET_SUMMARY' used for summary is not defined", marker_location),
    ]


def test_missing_title_and_version() -> None:
    model = DocumentModel()

    issues = run_validators(model)

    assert [issue.rule for issue in issues] == ["info-metadata", "info-metadata"]
    assert issues[0].message.startswith("document has no title")
    assert issues[1].message.startswith("document has no version")


def test_issue_converts_to_validate_diagnostic() -> None:
    model = DocumentModel()

    diagnostic = run_validators(model)[0].to_diagnostic()

    assert diagnostic.phase is Phase.VALIDATE
    assert diagnostic.rule == "info-metadata"
    assert diagnostic.entity == "info"
    assert diagnostic.fatal
