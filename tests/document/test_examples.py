from __future__ import annotations

import copy

import pytest

from apidocgen.document.examples import attach_examples, example_for, resolve_pointer

DOCUMENT = {
    "paths": {
        "/pets": {
            "get": {
                "responses": {
                    "200": {
                        "description": "",
                        "content": {
                            "application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}
                        },
                    },
                    "204": {"description": "empty"},
                }
            },
            "post": {
                "requestBody": {
                    "content": {
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/Pet"},
                            "example": {"name": "given"},
                        }
                    }
                },
                "responses": {"201": {"description": "created"}},
            },
        }
    },
    "components": {
        "schemas": {
            "Pet": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "example": "Rex"},
                    "born": {"type": "string", "format": "date"},
                    "parent": {"$ref": "#/components/schemas/Pet"},
                    "tags": {"type": "array", "items": {"type": "string", "enum": ["a", "b"]}},
                },
            }
        },
        "responses": {
            "Count": {
                "description": "count",
                "content": {"application/json": {"schema": {"type": "integer", "minimum": 1}}},
            }
        },
    },
}


@pytest.mark.parametrize(
    "schema, expected",
    [
        ({"type": "string"}, "string"),
        ({"type": "string", "format": "uuid"}, "00000000-0000-0000-0000-000000000000"),
        ({"type": "integer", "minimum": 5}, 5),
        ({"type": "number"}, 0.0),
        ({"type": "boolean"}, True),
        ({"type": "string", "default": "x", "enum": ["y"]}, "x"),
        ({"type": "array"}, []),
        ({}, None),
    ],
)
def test_example_for_scalars(schema, expected) -> None:
    assert example_for(schema, {}) == expected


def test_example_for_follows_references_once() -> None:
    value = example_for({"$ref": "#/components/schemas/Pet"}, DOCUMENT)

    assert value == {"name": "Rex", "born": "2024-01-01", "tags": ["a"]}


def test_resolve_pointer() -> None:
    assert resolve_pointer(DOCUMENT, "#/components/schemas/Pet")["type"] == "object"
    assert resolve_pointer(DOCUMENT, "#/components/schemas/Missing") is None
    assert resolve_pointer(DOCUMENT, "https://example.com/pet.json") is None


def test_attach_examples_fills_only_missing_examples() -> None:
    document = copy.deepcopy(DOCUMENT)

    attached = attach_examples(document)

    assert attached == 2
    listing = document["paths"]["/pets"]["get"]["responses"]["200"]["content"]["application/json"]
    assert listing["example"]["name"] == "Rex"
    created = document["paths"]["/pets"]["post"]["requestBody"]["content"]["application/json"]
    assert created["example"] == {"name": "given"}
    count = document["components"]["responses"]["Count"]["content"]["application/json"]
    assert count["example"] == 1
