from pathlib import Path

import pytest

from apidocgen.config import CONFIG_FILENAME, load_config
from apidocgen.errors import ConfigurationError


def _write_config(root: Path, text: str) -> Path:
    path = root / CONFIG_FILENAME
    path.write_text(text, encoding="utf-8")
    return path


def test_load_config_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config.root == tmp_path.resolve()
    assert config.sources.roots == ["."]
    assert config.sources.respect_gitignore is True
    assert config.output.path == tmp_path.resolve() / "api-docs.json"
    assert config.output.format == "json"
    assert config.output.generate_examples is False
    assert config.cache.enabled is True
    assert config.cache.path == tmp_path.resolve() / ".apidocgen" / "cache.json"
    assert config.constants == {}
    assert config.workers is None


def test_load_config_reads_all_sections(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
sources:
  roots: [app, src]
  include: ["*.php"]
  exclude: ["tests/"]
  respect_gitignore: false
constants:
  API_VERSION: "2.1.0"
  MAX_PAGE: 50
info:
  title: Projects API
  version: 1.0
  base_url: https://api.example.com
output:
  path: public/openapi.json
  generate_examples: true
cache:
  enabled: false
  path: build/cache.json
detectors: [php-docblock]
workers: 2
""".lstrip(),
    )

    config = load_config(tmp_path)
    root = tmp_path.resolve()

    assert config.sources.roots == ["app", "src"]
    assert config.sources.include == ["*.php"]
    assert config.sources.exclude == ["tests/"]
    assert config.sources.respect_gitignore is False
    assert config.constants == {"API_VERSION": "2.1.0", "MAX_PAGE": 50}
    assert config.info.title == "Projects API"
    assert config.info.version == "1.0"
    assert config.info.base_url == "https://api.example.com"
    assert config.output.path == root / "public" / "openapi.json"
    assert config.output.generate_examples is True
    assert config.cache.enabled is False
    assert config.cache.path == root / "build" / "cache.json"
    assert config.detectors == ["php-docblock"]
    assert config.workers == 2


def test_yaml_format_changes_default_output_name(tmp_path: Path) -> None:
    _write_config(tmp_path, "output:\n  format: YAML\n")

    config = load_config(tmp_path)

    assert config.output.format == "yaml"
    assert config.output.path == tmp_path.resolve() / "api-docs.yaml"


def test_load_config_accepts_explicit_file(tmp_path: Path) -> None:
    path = tmp_path / "docs.yaml"
    path.write_text("info:\n  title: Explicit\n", encoding="utf-8")

    config = load_config(path)

    assert config.info.title == "Explicit"
    assert config.root == tmp_path.resolve()


def test_empty_config_uses_defaults(tmp_path: Path) -> None:
    _write_config(tmp_path, "\n")

    config = load_config(tmp_path)

    assert config.sources.roots == ["."]


@pytest.mark.parametrize(
    "text, fragment",
    [
        ("- just\n- a list\n", "mapping at the root"),
        ("output:\n  format: xml\n", "Unsupported output format 'xml'"),
        ("constants: [A, B]\n", "'constants' must be a mapping"),
        ("constants:\n  RELEASED: 2024-01-01\n", "constant 'RELEASED' must be a string"),
        ("constants:\n  TAGS: [pets, 2024-01-01]\n", "constant 'TAGS' must be a string"),
        ("workers: 0\n", "'workers' must be a positive integer"),
        ("sources: [unclosed\n", "Failed to parse"),
    ],
)
def test_invalid_config_raises(tmp_path: Path, text: str, fragment: str) -> None:
    _write_config(tmp_path, text)

    with pytest.raises(ConfigurationError) as excinfo:
        load_config(tmp_path)

    assert fragment in str(excinfo.value)
