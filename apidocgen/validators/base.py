"""Core validation data structures and helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Protocol, Sequence, Tuple, Type, TypeVar

from ..document.model import DocumentModel, walk
from ..errors import Diagnostic, ValidationError
from ..models import SourceLocation

T = TypeVar("T")


@dataclass
class ValidationIssue:
    """Represents a single rule violation in the resolved model."""

    rule: str
    entity: str
    message: str
    location: Optional[SourceLocation] = None

    def to_error(self) -> ValidationError:
        return ValidationError(self.message, self.location, rule=self.rule, entity=self.entity)

    def to_diagnostic(self) -> Diagnostic:
        return self.to_error().to_diagnostic()


class Validator(Protocol):
    """Protocol implemented by document consistency rules."""

    name: str

    def validate(self, context: "ValidationContext") -> List[ValidationIssue]:
        """Run validation and return any issues."""


@dataclass
class ValidationContext:
    """Context shared with validators when checking a frozen model."""

    model: DocumentModel
    nodes: List[Tuple[str, object]] = field(default_factory=list)

    @classmethod
    def for_model(cls, model: DocumentModel) -> "ValidationContext":
        return cls(model=model, nodes=list(walk(model)))

    def of_type(self, kind: Type[T]) -> Iterator[Tuple[str, T]]:
        return ((entity, node) for entity, node in self.nodes if isinstance(node, kind))


def run_validators(
    model: DocumentModel, validators: Optional[Sequence[Validator]] = None
) -> List[ValidationIssue]:
    """Run every rule in order and return all issues; never stops at the first."""
    from .rules import default_validators

    context = ValidationContext.for_model(model)
    issues: List[ValidationIssue] = []
    for validator in validators if validators is not None else default_validators():
        issues.extend(validator.validate(context))
    return issues


__all__ = ["ValidationContext", "ValidationIssue", "Validator", "run_validators"]
