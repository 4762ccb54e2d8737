"""Serializer ordering and format tests."""

from __future__ import annotations

import json

import pytest
import yaml

from apidocgen.document.model import (
    DocumentModel,
    FrozenModelError,
    Info,
    MediaType,
    Operation,
    Parameter,
    Reference,
    Response,
    Schema,
    SecurityScheme,
    Server,
    Tag,
)
from apidocgen.serializer import DocumentSerializer


def _model() -> DocumentModel:
    model = DocumentModel(info=Info(title="Pets", version="2.0.0"))
    model.add_server(Server(url="https://pets.example.com"))
    model.add_tag(Tag(name="pets"))
    pet_ref = Reference("schemas", "Pet", "schemas")
    for method in ("delete", "post", "get"):
        model.add_operation(
            Operation(
                method=method,
                path="/pets/{id}",
                operation_id=f"{method}Pet",
                parameters=[
                    Parameter(name="id", in_="path", required=True, schema=Schema(type="integer"))
                ],
                responses={"200": Response(content={"application/json": MediaType(schema=pet_ref)})},
            )
        )
    model.add_operation(
        Operation(
            method="get",
            path="/animals",
            operation_id="listAnimals",
            responses={"204": Response(description="empty")},
        )
    )
    model.register(
        "schemas",
        "Pet",
        Schema(
            name="Pet",
            type="object",
            required=["name"],
            properties={"name": Schema(type="string", example="Rex"), "id": Schema(type="integer")},
        ),
    )
    return model


def test_paths_and_methods_are_canonically_ordered() -> None:
    document = DocumentSerializer().to_dict(_model())

    assert list(document["paths"]) == ["/animals", "/pets/{id}"]
    assert list(document["paths"]["/pets/{id}"]) == ["get", "post", "delete"]


def test_top_level_and_component_keys_are_fixed() -> None:
    document = DocumentSerializer().to_dict(_model())

    assert list(document) == ["openapi", "info", "servers", "tags", "paths", "components"]
    assert list(document["components"]) == ["schemas", "parameters", "requestBodies", "responses"]
    assert document["openapi"] == "3.0.3"


def test_security_schemes_emitted_only_when_declared() -> None:
    model = _model()
    model.register("securitySchemes", "bearer", SecurityScheme(type="http", scheme="bearer", bearer_format="JWT"))

    components = DocumentSerializer().to_dict(model)["components"]

    assert components["securitySchemes"] == {
        "bearer": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
    }


def test_operation_and_schema_fields_follow_openapi_order() -> None:
    document = DocumentSerializer().to_dict(_model())

    operation = document["paths"]["/pets/{id}"]["get"]
    assert list(operation) == ["operationId", "parameters", "responses"]
    assert operation["parameters"] == [
        {"name": "id", "in": "path", "required": True, "schema": {"type": "integer"}}
    ]
    response = operation["responses"]["200"]
    assert response == {
        "description": "",
        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}},
    }
    pet = document["components"]["schemas"]["Pet"]
    assert list(pet) == ["type", "required", "properties"]
    assert list(pet["properties"]) == ["name", "id"]


def test_empty_response_content_is_omitted() -> None:
    document = DocumentSerializer().to_dict(_model())

    assert document["paths"]["/animals"]["get"]["responses"]["204"] == {"description": "empty"}


def test_json_and_yaml_encode_the_same_document() -> None:
    serializer = DocumentSerializer()
    model = _model()

    as_json = serializer.dumps(model, "json")
    as_yaml = serializer.dumps(model, "yaml")

    assert as_json.endswith("}\n")
    assert json.loads(as_json) == yaml.safe_load(as_yaml)
    assert serializer.dumps(model, "json") == as_json


def test_render_rejects_unknown_format() -> None:
    with pytest.raises(ValueError):
        DocumentSerializer.render({}, "xml")


def test_frozen_model_rejects_mutation() -> None:
    model = _model()
    model.freeze()

    with pytest.raises(FrozenModelError):
        model.add_tag(Tag(name="late"))
