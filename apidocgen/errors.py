"""Error types and diagnostic records produced by compiler phases."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from .models import SourceLocation


class Phase(str, Enum):
    """Pipeline phase that reported a diagnostic."""

    CONFIG = "config"
    LOCATE = "locate"
    EXTRACT = "extract"
    PARSE = "parse"
    BUILD = "build"
    RESOLVE = "resolve"
    VALIDATE = "validate"
    EMIT = "emit"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


# Errors from these phases refuse document emission.
FATAL_PHASES = frozenset({Phase.BUILD, Phase.RESOLVE, Phase.VALIDATE, Phase.EMIT})


@dataclass(frozen=True)
class Diagnostic:
    """A single non-fatal or fatal issue surfaced by a compiler phase."""

    phase: Phase
    severity: Severity
    message: str
    location: Optional[SourceLocation] = None
    rule: Optional[str] = None
    entity: Optional[str] = None
    target: Optional[str] = None

    @property
    def fatal(self) -> bool:
        return self.severity is Severity.ERROR and self.phase in FATAL_PHASES

    def format(self) -> str:
        where = str(self.location) if self.location is not None else "<document>"
        label = f"{self.phase.value} {self.severity.value}"
        if self.rule:
            label += f" [{self.rule}]"
        return f"{where}: {label}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "severity": self.severity.value,
            "message": self.message,
            "location": self.location.to_dict() if self.location else None,
            "rule": self.rule,
            "entity": self.entity,
            "target": self.target,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Diagnostic":
        location = payload.get("location")
        return cls(
            phase=Phase(payload["phase"]),
            severity=Severity(payload["severity"]),
            message=str(payload["message"]),
            location=SourceLocation.from_dict(location) if isinstance(location, dict) else None,
            rule=payload.get("rule"),
            entity=payload.get("entity"),
            target=payload.get("target"),
        )


class ApiDocError(RuntimeError):
    """Base class for errors raised by apidocgen phases."""

    phase: Phase = Phase.BUILD
    severity: Severity = Severity.ERROR

    def __init__(self, message: str, location: Optional[SourceLocation] = None) -> None:
        super().__init__(message)
        self.message = message
        self.location = location

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            phase=self.phase,
            severity=self.severity,
            message=self.message,
            location=self.location,
        )


class ConfigurationError(ApiDocError):
    """Raised when configuration is unusable (e.g. no source root resolves)."""

    phase = Phase.CONFIG


class ExtractionError(ApiDocError):
    """Raised for malformed comment delimiters inside a source unit."""

    phase = Phase.EXTRACT


class ParseError(ApiDocError):
    """Raised for malformed annotation grammar."""

    phase = Phase.PARSE


class BuildError(ApiDocError):
    """Raised when annotations cannot be folded into the document model."""

    phase = Phase.BUILD


class ResolutionError(ApiDocError):
    """Raised for dangling references or illegal reference cycles."""

    phase = Phase.RESOLVE

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        *,
        entity: Optional[str] = None,
        target: Optional[str] = None,
    ) -> None:
        super().__init__(message, location)
        self.entity = entity
        self.target = target

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            phase=self.phase,
            severity=self.severity,
            message=self.message,
            location=self.location,
            entity=self.entity,
            target=self.target,
        )


class ValidationError(ApiDocError):
    """Raised when the resolved model violates a consistency rule."""

    phase = Phase.VALIDATE

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        *,
        rule: str,
        entity: str,
    ) -> None:
        super().__init__(message, location)
        self.rule = rule
        self.entity = entity

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            phase=self.phase,
            severity=self.severity,
            message=self.message,
            location=self.location,
            rule=self.rule,
            entity=self.entity,
        )


class CompilationError(ApiDocError):
    """Raised when a run finished without producing a document."""

    phase = Phase.EMIT

    def __init__(self, message: str, diagnostics: Sequence[Diagnostic]) -> None:
        super().__init__(message)
        self.diagnostics = list(diagnostics)


class CompilationCancelled(ApiDocError):
    """Raised when a run is cancelled before the document is emitted."""

    phase = Phase.EMIT


def warning(phase: Phase, message: str, location: Optional[SourceLocation] = None) -> Diagnostic:
    return Diagnostic(phase=phase, severity=Severity.WARNING, message=message, location=location)


__all__ = [
    "ApiDocError",
    "BuildError",
    "CompilationCancelled",
    "CompilationError",
    "ConfigurationError",
    "Diagnostic",
    "ExtractionError",
    "FATAL_PHASES",
    "ParseError",
    "Phase",
    "ResolutionError",
    "Severity",
    "ValidationError",
    "warning",
]
