"""Rules domain ports."""

from budgetbuddy.domain.rules.ports.rule_port import RulePort

__all__ = ["RulePort"]
