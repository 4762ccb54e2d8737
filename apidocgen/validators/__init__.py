"""Validation package for the resolved Document Model."""

from .base import ValidationContext, ValidationIssue, Validator, run_validators
from .rules import default_validators

__all__ = [
    "ValidationContext",
    "ValidationIssue",
    "Validator",
    "default_validators",
    "run_validators",
]
