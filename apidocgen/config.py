"""Configuration loading for apidocgen (.apidocgen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigurationError

CONFIG_FILENAME = ".apidocgen.yml"
OUTPUT_FORMATS = ("json", "yaml")


@dataclass
class SourceConfig:
    """Where annotated sources are looked up."""

    roots: List[str] = field(default_factory=lambda: ["."])
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    respect_gitignore: bool = True


@dataclass
class InfoOverrides:
    """Document metadata supplied outside the annotations."""

    title: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    base_url: Optional[str] = None


@dataclass
class OutputConfig:
    """Emitted document location and format."""

    path: Path
    format: str = "json"
    generate_examples: bool = False


@dataclass
class CacheConfig:
    """Incremental cache settings."""

    enabled: bool = True
    path: Optional[Path] = None


@dataclass
class ApiDocConfig:
    """Represents the settings defined in .apidocgen.yml."""

    root: Path
    sources: SourceConfig = field(default_factory=SourceConfig)
    constants: Dict[str, Any] = field(default_factory=dict)
    info: InfoOverrides = field(default_factory=InfoOverrides)
    output: Optional[OutputConfig] = None
    cache: CacheConfig = field(default_factory=CacheConfig)
    detectors: List[str] = field(default_factory=list)
    workers: Optional[int] = None

    def __post_init__(self) -> None:
        if self.output is None:
            self.output = OutputConfig(path=self.root / "api-docs.json")
        if self.cache.path is None:
            self.cache.path = self.root / ".apidocgen" / "cache.json"


def load_config(config_path: Path) -> ApiDocConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ApiDocConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    sources_data = _as_dict(data.get("sources"))
    sources = SourceConfig()
    if sources_data:
        roots = _as_str_list(sources_data.get("roots"))
        if roots:
            sources.roots = roots
        sources.include = _as_str_list(sources_data.get("include"))
        sources.exclude = _as_str_list(sources_data.get("exclude"))
        respect = _as_bool(sources_data.get("respect_gitignore"))
        if respect is not None:
            sources.respect_gitignore = respect

    constants_raw = data.get("constants")
    if constants_raw is not None and not isinstance(constants_raw, dict):
        raise ConfigurationError("'constants' must be a mapping of names to values")
    constants = {str(key): value for key, value in (constants_raw or {}).items()}
    for name, value in constants.items():
        if not _is_constant_value(value):
            raise ConfigurationError(
                f"constant '{name}' must be a string, number, boolean, null, list or mapping "
                f"(got {type(value).__name__})"
            )

    info_data = _as_dict(data.get("info"))
    info = InfoOverrides(
        title=_as_str(info_data.get("title")),
        version=_as_str(info_data.get("version")),
        description=_as_str(info_data.get("description")),
        base_url=_as_str(info_data.get("base_url")),
    )

    output_data = _as_dict(data.get("output"))
    output_format = (_as_str(output_data.get("format")) or "json").lower()
    if output_format not in OUTPUT_FORMATS:
        raise ConfigurationError(
            f"Unsupported output format '{output_format}' (expected one of: {', '.join(OUTPUT_FORMATS)})"
        )
    output_path_str = _as_str(output_data.get("path"))
    default_name = "api-docs.yaml" if output_format == "yaml" else "api-docs.json"
    output = OutputConfig(
        path=root / (output_path_str or default_name),
        format=output_format,
        generate_examples=_as_bool(output_data.get("generate_examples")) or False,
    )

    cache_data = _as_dict(data.get("cache"))
    cache = CacheConfig()
    if cache_data:
        enabled = _as_bool(cache_data.get("enabled"))
        if enabled is not None:
            cache.enabled = enabled
        cache_path_str = _as_str(cache_data.get("path"))
        if cache_path_str:
            cache.path = root / cache_path_str

    workers = _as_int(data.get("workers"))
    if workers is not None and workers < 1:
        raise ConfigurationError("'workers' must be a positive integer")

    return ApiDocConfig(
        root=root,
        sources=sources,
        constants=constants,
        info=info,
        output=output,
        cache=cache,
        detectors=_as_str_list(data.get("detectors")),
        workers=workers,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME and config_path.suffix not in {".yml", ".yaml"}:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return str(value).lower()
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _is_constant_value(value: Any) -> bool:
    if value is None or isinstance(value, (str, int, float, bool)):
        return True
    if isinstance(value, list):
        return all(_is_constant_value(item) for item in value)
    if isinstance(value, dict):
        return all(_is_constant_value(item) for item in value.values())
    return False


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "ApiDocConfig",
    "CacheConfig",
    "CONFIG_FILENAME",
    "InfoOverrides",
    "OutputConfig",
    "SourceConfig",
    "load_config",
]
