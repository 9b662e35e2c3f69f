"""Rules domain services."""

from budgetbuddy.domain.rules.services.rule_matcher import get_match_text, rule_matches

__all__ = [
    "get_match_text",
    "rule_matches",
]
