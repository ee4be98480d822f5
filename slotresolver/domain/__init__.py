"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability_resolver import AvailabilityResolver
from .models import AvailabilityRule, ResolvedSlot, RuleKind
from .validation import RuleWarning, ValidationReport, rules_from_rows, validate_rules

__all__ = [
    "AvailabilityResolver",
    "AvailabilityRule",
    "ResolvedSlot",
    "RuleKind",
    "RuleWarning",
    "ValidationReport",
    "rules_from_rows",
    "validate_rules",
]
