"""End-to-end compiler behaviour."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest
import yaml

from apidocgen.compiler import Compiler
from apidocgen.config import ApiDocConfig
from apidocgen.errors import (
    CompilationCancelled,
    CompilationError,
    ConfigurationError,
    Phase,
    Severity,
)
from apidocgen.extraction import AnnotationExtractor
from tests._fixtures.project_builder import PROJECTS_API, ProjectBuilder


def _errors(result, phase: Phase):
    return [d for d in result.diagnostics if d.phase is phase and d.severity is Severity.ERROR]


def test_projects_scenario_emits_resolved_document(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)

    result = project_builder.compile()

    assert result.ok, [d.format() for d in result.diagnostics]
    document = result.document
    assert list(document) == ["openapi", "info", "servers", "tags", "paths", "components"]
    assert document["info"] == {
        "title": "Projects API",
        "description": "Manage projects",
        "version": "1.0.0",
    }
    assert document["servers"] == [{"url": "https://api.example.com"}]
    assert document["tags"] == [{"name": "Projects", "description": "Project management"}]

    listing = document["paths"]["/projects"]["get"]
    assert listing["operationId"] == "listProjects"
    assert listing["tags"] == ["Projects"]
    content = listing["responses"]["200"]["content"]["application/json"]
    assert content["schema"] == {"$ref": "#/components/schemas/ProjectResource"}

    schemas = document["components"]["schemas"]
    items = schemas["ProjectResource"]["properties"]["data"]["items"]
    assert items == {"$ref": "#/components/schemas/Project"}
    project = schemas[items["$ref"].rsplit("/", 1)[-1]]
    assert list(project["properties"]) == ["id", "name"]
    assert project["properties"]["id"] == {"type": "integer", "example": 1}
    assert project["properties"]["name"] == {"type": "string", "example": "Apollo"}
    assert project["required"] == ["name"]


def test_show_operation_carries_path_parameter(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)

    document = project_builder.compile().document

    show = document["paths"]["/projects/{id}"]["get"]
    assert show["parameters"] == [
        {"name": "id", "in": "path", "required": True, "schema": {"type": "integer"}}
    ]
    assert list(show["responses"]) == ["200", "404"]
    assert show["responses"]["404"] == {"description": "Not found"}


def test_required_fields_survive_external_reparse(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)

    result = project_builder.compile()

    reparsed = json.loads(result.text)
    project = reparsed["components"]["schemas"]["Project"]
    assert project["required"] == ["name"]
    assert set(project["properties"]) == {"id", "name"}


def test_serializing_twice_is_byte_identical(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)

    first = project_builder.compile(workers=1).text
    second = project_builder.compile(workers=4).text

    assert first == second
    assert first.endswith("\n")


def test_build_writes_document_atomically(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)

    result = project_builder.compile(write=True)

    target = project_builder.path() / "api-docs.json"
    assert result.output_path == target
    assert target.read_text(encoding="utf-8") == result.text
    leftovers = [p.name for p in target.parent.iterdir() if p.name.endswith(".tmp")]
    assert leftovers == []


def test_yaml_output_uses_configured_format(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    project_builder.configure({"output": {"format": "yaml"}})

    result = project_builder.compile(write=True)

    assert result.output_path == project_builder.path() / "api-docs.yaml"
    loaded = yaml.safe_load(result.output_path.read_text(encoding="utf-8"))
    assert loaded["openapi"] == "3.0.3"
    assert list(loaded["paths"]) == ["/projects", "/projects/{id}"]


def test_cache_transparency(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    fresh = project_builder.compile(use_cache=False)

    warm = project_builder.compile(use_cache=True)
    cached = project_builder.compile(use_cache=True)

    assert warm.stats.cache_hits == 0
    assert cached.stats.cache_hits == cached.stats.units == len(PROJECTS_API)
    assert cached.stats.cache_misses == 0
    assert cached.text == fresh.text == warm.text


def test_cache_invalidates_changed_units(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    project_builder.compile(use_cache=True)

    project_builder.write(
        {
            "app/Http/Controllers/Controller.php": r"""
                <?php
                /**
                 * @OA\Info(title="Renamed API", version="2.0.0")
                 */
                abstract class Controller {}
            """
        }
    )
    result = project_builder.compile(use_cache=True)

    assert result.stats.cache_misses == 1
    assert result.document["info"]["title"] == "Renamed API"


def test_changed_constants_invalidate_the_cache(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "app/HealthController.php": r"""
                <?php
                /**
                 * @OA\Info(title="Health", version=API_VERSION)
                 */
                class HealthController
                {
                    /**
                     * @OA\Get(path="/health", @OA\Response(response=200, description="ok"))
                     */
                    public function health() {}
                }
            """
        }
    )
    project_builder.configure({"constants": {"API_VERSION": "1.0.0"}})
    assert project_builder.compile(use_cache=True).document["info"]["version"] == "1.0.0"

    project_builder.configure({"constants": {"API_VERSION": "1.1.0"}})
    result = project_builder.compile(use_cache=True)

    assert result.stats.cache_hits == 0
    assert result.document["info"]["version"] == "1.1.0"


def test_dangling_reference_reports_one_error_and_no_document(
    project_builder: ProjectBuilder,
) -> None:
    files = dict(PROJECTS_API)
    files["app/Http/Controllers/ProjectController.php"] = r"""
        <?php
        class ProjectController
        {
            /**
             * @OA\Get(
             *     path="/projects",
             *     @OA\Response(response=200, description="ok", @OA\JsonContent(ref="#/components/schemas/Missing"))
             * )
             */
            public function index() {}
        }
    """
    project_builder.write(files)

    result = project_builder.compile(write=True)

    errors = _errors(result, Phase.RESOLVE)
    assert len(errors) == 1
    assert "#/components/schemas/Missing" in errors[0].message
    assert errors[0].location.path == "app/Http/Controllers/ProjectController.php"
    assert errors[0].entity == "paths./projects.get.responses.200.content.application/json.schema"
    assert result.document is None
    assert not (project_builder.path() / "api-docs.json").exists()
    with pytest.raises(CompilationError):
        result.raise_for_errors()


def test_duplicate_operation_names_both_locations(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    project_builder.write(
        {
            "app/Http/Controllers/LegacyController.php": r"""
                <?php
                class LegacyController
                {
                    /**
                     * @OA\Get(path="/projects/", operationId="legacyProjects", @OA\Response(response=200, description="ok"))
                     */
                    public function index() {}

                    /**
                     * @OA\Schema(schema="Legacy")
                     */
                    public function unrelated() {}
                }
            """
        }
    )

    result = project_builder.compile()

    errors = _errors(result, Phase.BUILD)
    duplicates = [e for e in errors if "duplicate operation GET /projects" in e.message]
    assert len(duplicates) == 1
    message = duplicates[0].message
    assert "app/Http/Controllers/LegacyController.php" in message
    assert "app/Http/Controllers/ProjectController.php" in message
    # Diagnostics collection continued past the duplicate.
    assert any("@Schema must annotate a type" in e.message for e in errors)
    assert result.document is None


def test_unresolved_constant_refuses_document(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    project_builder.write(
        {
            "app/Http/Controllers/HealthController.php": r"""
                <?php
                class HealthController
                {
                    /**
                     * @OA\Get(path="/health", @OA\Response(response=200, description=HEALTH_TEXT))
                     */
                    public function health() {}
                }
            """
        }
    )

    result = project_builder.compile()

    errors = _errors(result, Phase.VALIDATE)
    assert [e.rule for e in errors] == ["unresolved-constants"]
    assert "HEALTH_TEXT" in errors[0].message
    assert result.document is None


def test_constant_table_supplies_values(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    project_builder.write(
        {
            "app/Http/Controllers/HealthController.php": r"""
                <?php
                class HealthController
                {
                    /**
                     * @OA\Get(path="/health", @OA\Response(response=200, description=HEALTH_TEXT))
                     */
                    public function health() {}
                }
            """
        }
    )
    project_builder.configure({"constants": {"HEALTH_TEXT": "Service is healthy"}})

    result = project_builder.compile()

    assert result.ok
    health = result.document["paths"]["/health"]["get"]
    assert health["operationId"] == "HealthController.health"
    assert health["responses"]["200"]["description"] == "Service is healthy"


def test_parse_errors_do_not_block_other_units(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    project_builder.write(
        {
            "app/Broken.php": r"""
                <?php
                /**
                 * @OA\Get(path="/broken"
                 */
                class Broken {}
            """
        }
    )

    result = project_builder.compile()

    assert result.ok
    assert [d.phase for d in result.diagnostics] == [Phase.PARSE]
    assert "/broken" not in result.document["paths"]


def test_config_overrides_info_and_servers(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    project_builder.configure(
        {"info": {"title": "Public API", "base_url": "https://api.example.com/v1"}}
    )

    document = project_builder.compile().document

    assert document["info"]["title"] == "Public API"
    assert document["info"]["version"] == "1.0.0"
    assert [server["url"] for server in document["servers"]] == [
        "https://api.example.com/v1",
        "https://api.example.com",
    ]


def test_generate_examples_fills_media_types(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    project_builder.configure({"output": {"generate_examples": True}})

    document = project_builder.compile().document

    media = document["paths"]["/projects"]["get"]["responses"]["200"]["content"]["application/json"]
    assert media["example"] == {"data": [{"id": 1, "name": "Apollo"}]}


def test_cancel_discards_run(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)

    class CancellingExtractor(AnnotationExtractor):
        def extract(self, identity, text, detector):
            compiler.cancel()
            return super().extract(identity, text, detector)

    compiler = Compiler(extractor=CancellingExtractor())

    with pytest.raises(CompilationCancelled):
        project_builder.compile(compiler, write=True)
    assert not (project_builder.path() / "api-docs.json").exists()


def test_missing_root_is_a_warning_when_another_resolves(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    project_builder.configure({"sources": {"roots": ["app", "missing"]}})

    result = project_builder.compile()

    assert result.ok
    assert [d.phase for d in result.diagnostics] == [Phase.LOCATE]
    assert result.diagnostics[0].severity is Severity.WARNING


def test_lock_held_by_another_run_disables_cache(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    lock = project_builder.path() / ".apidocgen" / "cache.json.lock"
    lock.parent.mkdir(parents=True)
    lock.write_text("12345", encoding="utf-8")

    result = project_builder.compile(use_cache=True)

    assert result.ok
    assert not (project_builder.path() / ".apidocgen" / "cache.json").exists()
    assert lock.exists()


def test_result_keeps_paths_relative(tmp_path: Path) -> None:
    builder = ProjectBuilder(tmp_path)
    builder.write(PROJECTS_API)

    result = builder.compile()

    locations = {str(node.location.path) for node in result.model.operations()}
    assert locations == {"app/Http/Controllers/ProjectController.php"}


def test_constant_with_unsupported_value_is_rejected_by_config(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    project_builder.configure({"constants": {"RELEASED": date(2024, 1, 1)}})

    with pytest.raises(ConfigurationError, match="RELEASED"):
        project_builder.compile()


def test_constant_with_unsupported_value_is_a_unit_parse_error(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    project_builder.write(
        {
            "app/Http/Controllers/ReleaseController.php": r"""
                <?php
                class ReleaseController
                {
                    /**
                     * @OA\Get(path="/release", summary=RELEASED, @OA\Response(response=200, description="ok"))
                     */
                    public function show() {}
                }
            """
        }
    )
    config = ApiDocConfig(root=project_builder.path(), constants={"RELEASED": date(2024, 1, 1)})

    result = project_builder.compile(config=config)

    assert result.ok
    [error] = _errors(result, Phase.PARSE)
    assert error.location.path == "app/Http/Controllers/ReleaseController.php"
    assert "RELEASED" in error.message
    assert "/release" not in result.document["paths"]
    assert "/projects" in result.document["paths"]


def test_deeply_nested_unit_does_not_abort_the_run(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    depth = 3000
    project_builder.write(
        {
            "app/Deep.php": "<?php\n/**\n * @OA\\Tag(name=\"deep\", description="
            + "{" * depth
            + "}" * depth
            + ")\n */\nclass Deep {}\n"
        }
    )

    result = project_builder.compile()

    assert result.ok
    assert [(d.phase, d.message) for d in result.diagnostics] == [
        (Phase.PARSE, "annotation nested too deeply")
    ]
    assert result.diagnostics[0].location.path == "app/Deep.php"
    assert "/projects" in result.document["paths"]


def test_unexpected_failure_is_reported_for_its_unit_only(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)

    class FailingExtractor(AnnotationExtractor):
        def extract(self, identity, text, detector):
            if identity == "app/Http/Controllers/Controller.php":
                raise RuntimeError("detector crashed")
            return super().extract(identity, text, detector)

    result = project_builder.compile(Compiler(extractor=FailingExtractor()))

    [error] = _errors(result, Phase.EXTRACT)
    assert error.location.path == "app/Http/Controllers/Controller.php"
    assert error.message == "cannot process source unit: RuntimeError: detector crashed"
    assert set(result.model.paths) == {"/projects", "/projects/{id}"}


def test_invalid_utf8_unit_is_reported_and_skipped(project_builder: ProjectBuilder) -> None:
    project_builder.write(PROJECTS_API)
    (project_builder.path() / "app" / "Latin1.php").write_bytes(
        b'<?php\n/**\n * @OA\\Tag(name="caf\xe9")\n */\nclass Latin1 {}\n'
    )

    result = project_builder.compile()

    assert result.ok
    [error] = _errors(result, Phase.EXTRACT)
    assert error.location.path == "app/Latin1.php"
    assert error.location.line == 3
    assert "not valid UTF-8" in error.message
    assert [tag["name"] for tag in result.document["tags"]] == ["Projects"]
