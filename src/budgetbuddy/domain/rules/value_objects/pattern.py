"""Pattern kinds and match targets for categorization rules."""

from enum import Enum


class PatternType(str, Enum):
    """How a rule pattern is compared against the transaction text."""

    CONTAINS = "contains"
    EXACT = "exact"
    REGEX = "regex"


class TargetField(str, Enum):
    """Which transaction text a rule pattern is matched against."""

    PAYEE = "payee"
    MEMO = "memo"
    COMBINED = "combined"  # "{payee} {memo}"
