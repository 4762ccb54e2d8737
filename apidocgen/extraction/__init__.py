"""Boundary detectors, detector discovery and doc block extraction."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, List, Optional, Sequence, Set

from .base import BoundaryDetector, Declaration, RegexBoundaryDetector, TypeSpan
from .detectors import JavaDetector, PhpDetector, TypeScriptDetector
from .extractor import AnnotationExtractor

_ENTRY_POINT_GROUP = "apidocgen.detectors"

_BUILTIN_FACTORIES: dict[str, Callable[[], BoundaryDetector]] = {
    "php": PhpDetector,
    "java": JavaDetector,
    "typescript": TypeScriptDetector,
}


def discover_detectors(enabled: Sequence[str] | None = None) -> List[BoundaryDetector]:
    """Return instantiated detectors, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled:
        enabled_set = {name.lower() for name in enabled}

    detectors: List[BoundaryDetector] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], BoundaryDetector]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        if not isinstance(instance, BoundaryDetector):
            raise TypeError(f"Detector factory for '{name}' did not return a BoundaryDetector")
        detectors.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:
            raise RuntimeError(f"Failed to load detector entry point '{entry.name}': {exc}") from exc

        def _factory(obj: object = loaded) -> BoundaryDetector:
            return _coerce_detector(obj)

        _add(entry.name, _factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown detectors requested: {missing}")

    return detectors


def detector_for(path: str, detectors: Sequence[BoundaryDetector]) -> Optional[BoundaryDetector]:
    """Return the first detector supporting ``path``."""
    for detector in detectors:
        if detector.supports(path):
            return detector
    return None


def _coerce_detector(obj: object) -> BoundaryDetector:
    if isinstance(obj, BoundaryDetector):
        return obj
    if isinstance(obj, type) and issubclass(obj, BoundaryDetector):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, BoundaryDetector):
            return instance
    raise TypeError("Detector entry point must be a BoundaryDetector subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "AnnotationExtractor",
    "BoundaryDetector",
    "Declaration",
    "JavaDetector",
    "PhpDetector",
    "RegexBoundaryDetector",
    "TypeScriptDetector",
    "TypeSpan",
    "detector_for",
    "discover_detectors",
]
