"""Pipeline orchestration: locate, extract, parse, build, resolve, validate, emit."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
import hashlib
import json
import os
from pathlib import Path
import threading
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .annotations import AnnotationParser, ParsedBlock, UnitAnnotations
from .config import ApiDocConfig, load_config
from .document import DocumentBuilder, ReferenceResolver, apply_overrides
from .document.model import DocumentModel
from .errors import (
    CompilationCancelled,
    CompilationError,
    ConfigurationError,
    Diagnostic,
    ExtractionError,
)
from .extraction import AnnotationExtractor, BoundaryDetector, detector_for, discover_detectors
from .locator import SourceLocator, fingerprint
from .logging import get_logger
from .models import LocatedSource, SourceLocation
from .serializer import DocumentSerializer
from .stores import AnnotationCache, CacheLock, atomic_write
from .stores.annotation_cache import CACHE_VERSION
from .validators import Validator, run_validators

_OUTPUT_SUFFIXES = {"json": ".json", "yaml": ".yaml"}


@dataclass
class CompileStats:
    """Counters describing one compiler run."""

    units: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    blocks: int = 0
    operations: int = 0
    schemas: int = 0


@dataclass
class CompileResult:
    """Outcome of a run: the document, or the diagnostics explaining its refusal."""

    document: Optional[Dict[str, Any]]
    text: Optional[str]
    diagnostics: List[Diagnostic] = field(default_factory=list)
    output_path: Optional[Path] = None
    stats: CompileStats = field(default_factory=CompileStats)
    model: Optional[DocumentModel] = None

    @property
    def ok(self) -> bool:
        return self.document is not None

    @property
    def errors(self) -> List[Diagnostic]:
        return [diagnostic for diagnostic in self.diagnostics if diagnostic.fatal]

    def raise_for_errors(self) -> None:
        if not self.ok:
            count = len(self.errors)
            raise CompilationError(
                f"document refused: {count} error{'s' if count != 1 else ''}", self.diagnostics
            )


class Compiler:
    """Coordinates the annotation-to-document pipeline."""

    def __init__(
        self,
        locator: SourceLocator | None = None,
        extractor: AnnotationExtractor | None = None,
        builder: DocumentBuilder | None = None,
        resolver: ReferenceResolver | None = None,
        detectors: Optional[Iterable[BoundaryDetector]] = None,
        validators: Optional[Iterable[Validator]] = None,
    ) -> None:
        self.locator = locator or SourceLocator()
        self.extractor = extractor or AnnotationExtractor()
        self.builder = builder or DocumentBuilder()
        self.resolver = resolver or ReferenceResolver()
        self.logger = get_logger("compiler")
        self._detector_overrides = list(detectors) if detectors is not None else None
        self._validator_overrides = list(validators) if validators is not None else None
        self._cancelled = threading.Event()
        self._cache_lock = threading.Lock()

    def cancel(self) -> None:
        """Discard the in-flight run; nothing is written."""
        self._cancelled.set()

    def compile(
        self,
        path: str | Path = ".",
        *,
        config: ApiDocConfig | None = None,
        write: bool = True,
        use_cache: Optional[bool] = None,
        output_format: Optional[str] = None,
        output_path: Optional[Path] = None,
        workers: Optional[int] = None,
    ) -> CompileResult:
        """Compile the project at ``path`` and return the document or its diagnostics."""
        self._cancelled.clear()
        repo_path = Path(path).expanduser().resolve()
        cfg = config or load_config(repo_path)
        self.logger.info("Compiling API documentation for %s", cfg.root)

        detectors = self._select_detectors(cfg)
        stats = CompileStats()
        located, diagnostics = self.locator.locate(
            cfg.root,
            cfg.sources,
            supported=lambda identity: detector_for(identity, detectors) is not None,
        )
        stats.units = len(located)

        caching = cfg.cache.enabled if use_cache is None else use_cache
        cache: Optional[AnnotationCache] = None
        lock: Optional[CacheLock] = None
        if caching and cfg.cache.path is not None:
            lock = CacheLock(cfg.cache.path.with_name(cfg.cache.path.name + ".lock"))
            if lock.acquire():
                cache = AnnotationCache(
                    cfg.cache.path, signature=self._cache_signature(detectors, cfg.constants)
                )
            else:
                self.logger.warning("Cache is locked by another run; continuing without it")
                lock = None

        try:
            units = self._process_units(
                located,
                detectors,
                AnnotationParser(cfg.constants),
                cache,
                workers or cfg.workers or min(8, os.cpu_count() or 1),
                stats,
            )
            if cache is not None:
                self._update_cache(cache, units, located)
        finally:
            if lock is not None:
                lock.release()

        for unit in units:
            diagnostics.extend(unit.diagnostics)
            stats.blocks += len(unit.blocks)

        self._check_cancelled()
        context = self.builder.build(units)
        model = context.model
        apply_overrides(
            model,
            title=cfg.info.title,
            version=cfg.info.version,
            description=cfg.info.description,
            base_url=cfg.info.base_url,
        )
        model.freeze()
        diagnostics.extend(context.diagnostics)
        stats.operations = sum(1 for _ in model.operations())
        stats.schemas = len(model.components.schemas)

        diagnostics.extend(self.resolver.resolve(model))
        issues = run_validators(model, self._validator_overrides)
        diagnostics.extend(issue.to_diagnostic() for issue in issues)

        fmt = (output_format or cfg.output.format).lower()
        target = self._output_target(output_path or cfg.output.path, fmt)
        if any(diagnostic.fatal for diagnostic in diagnostics):
            refused = sum(1 for diagnostic in diagnostics if diagnostic.fatal)
            self.logger.error("Document refused: %d error(s)", refused)
            return CompileResult(None, None, diagnostics, None, stats, model)

        serializer = DocumentSerializer(generate_examples=cfg.output.generate_examples)
        document = serializer.to_dict(model)
        text = serializer.render(document, fmt)

        self._check_cancelled()
        written: Optional[Path] = None
        if write:
            atomic_write(target, text)
            written = target
            self.logger.info("Wrote %s", target)
        self.logger.debug(
            "Compiled %d units (%d from cache) into %d operations and %d schemas",
            stats.units,
            stats.cache_hits,
            stats.operations,
            stats.schemas,
        )
        return CompileResult(document, text, diagnostics, written, stats, model)

    # ------------------------------------------------------------------
    # Per-unit phase

    def _process_units(
        self,
        located: Sequence[LocatedSource],
        detectors: Sequence[BoundaryDetector],
        parser: AnnotationParser,
        cache: Optional[AnnotationCache],
        workers: int,
        stats: CompileStats,
    ) -> List[UnitAnnotations]:
        results: Dict[str, UnitAnnotations] = {}
        if not located:
            return []
        with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
            futures: Dict[Future[Tuple[UnitAnnotations, bool]], str] = {
                pool.submit(self._process_unit, source, detectors, parser, cache): source.identity
                for source in located
            }
            for future in as_completed(futures):
                if self._cancelled.is_set():
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise CompilationCancelled("compilation cancelled")
                unit, from_cache = future.result()
                results[futures[future]] = unit
                if from_cache:
                    stats.cache_hits += 1
                else:
                    stats.cache_misses += 1
        # Completion order is arbitrary; the fold must see identity order.
        return [results[identity] for identity in sorted(results)]

    def _process_unit(
        self,
        source: LocatedSource,
        detectors: Sequence[BoundaryDetector],
        parser: AnnotationParser,
        cache: Optional[AnnotationCache],
    ) -> Tuple[UnitAnnotations, bool]:
        self._check_cancelled()
        try:
            return self._read_unit(source, detectors, parser, cache)
        except Exception as exc:
            self.logger.exception("Failed to process %s", source.identity)
            error = ExtractionError(
                f"cannot process source unit: {type(exc).__name__}: {exc}",
                SourceLocation(source.identity),
            )
            return UnitAnnotations(source.identity, "", diagnostics=(error.to_diagnostic(),)), False

    def _read_unit(
        self,
        source: LocatedSource,
        detectors: Sequence[BoundaryDetector],
        parser: AnnotationParser,
        cache: Optional[AnnotationCache],
    ) -> Tuple[UnitAnnotations, bool]:
        identity = source.identity
        try:
            data = source.path.read_bytes()
        except OSError as exc:
            error = ExtractionError(f"cannot read source unit: {exc}", SourceLocation(identity))
            return UnitAnnotations(identity, "", diagnostics=(error.to_diagnostic(),)), False

        digest = fingerprint(data)
        if cache is not None:
            with self._cache_lock:
                cached = cache.get(identity, fingerprint=digest)
            if cached is not None:
                self.logger.debug("Using cached annotations for %s", identity)
                return cached, True

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            error = ExtractionError(
                f"source unit is not valid UTF-8 ({exc.reason}); skipped",
                SourceLocation(identity, data.count(b"\n", 0, exc.start) + 1),
            )
            return UnitAnnotations(identity, digest, diagnostics=(error.to_diagnostic(),)), False

        unit, diagnostics = self.extractor.extract_unit(
            identity, digest, text, detector_for(identity, detectors)
        )
        parsed: List[ParsedBlock] = []
        for block in unit.blocks:
            nodes, errors = parser.parse(block)
            diagnostics.extend(error.to_diagnostic() for error in errors)
            if nodes:
                parsed.append(ParsedBlock(symbol=block.symbol, nodes=tuple(nodes)))
        return UnitAnnotations(unit.identity, unit.fingerprint, tuple(parsed), tuple(diagnostics)), False

    # ------------------------------------------------------------------
    # Helpers

    def _select_detectors(self, config: ApiDocConfig) -> List[BoundaryDetector]:
        if self._detector_overrides is not None:
            return list(self._detector_overrides)
        try:
            return discover_detectors(config.detectors or None)
        except (ValueError, RuntimeError, TypeError) as exc:
            raise ConfigurationError(str(exc)) from exc

    def _update_cache(
        self, cache: AnnotationCache, units: Sequence[UnitAnnotations], located: Sequence[LocatedSource]
    ) -> None:
        for unit in units:
            if unit.fingerprint:
                cache.store(unit)
        cache.prune(source.identity for source in located)
        cache.persist()
        self.logger.debug(
            "Annotation cache: %d entries, %d hits, %d misses", len(cache), cache.hits, cache.misses
        )

    @staticmethod
    def _cache_signature(detectors: Sequence[BoundaryDetector], constants: Dict[str, Any]) -> str:
        payload = {
            "format": CACHE_VERSION,
            "detectors": sorted(
                f"{detector.name}:{type(detector).__module__}.{type(detector).__qualname__}:"
                f"{getattr(detector, 'cache_version', '1')}"
                for detector in detectors
            ),
            "constants": constants,
        }
        encoded = json.dumps(payload, sort_keys=True, default=str)
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()

    @staticmethod
    def _output_target(path: Path, fmt: str) -> Path:
        suffix = _OUTPUT_SUFFIXES.get(fmt)
        if suffix and path.suffix.lower() in {".json", ".yaml", ".yml"} and path.suffix.lower() != suffix:
            if not (fmt == "yaml" and path.suffix.lower() == ".yml"):
                return path.with_suffix(suffix)
        return path

    def _check_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise CompilationCancelled("compilation cancelled")


__all__ = ["CompileResult", "CompileStats", "Compiler"]
