"""Rules domain value objects."""

from budgetbuddy.domain.rules.value_objects.pattern import PatternType, TargetField
from budgetbuddy.domain.rules.value_objects.rule import Rule, RuleCreateRequest

__all__ = [
    "PatternType",
    "Rule",
    "RuleCreateRequest",
    "TargetField",
]
