"""Local rule matching used to preview which transactions a new rule hits.

Authoritative rule application happens on the backend while transactions
are fetched. This matcher only decides which pending transactions to send
to a bulk categorization right after a rule was created, so it must give
the same answer as the backend for the same input.
"""

import logging
import re

from budgetbuddy.domain.banking.value_objects import BankTransaction
from budgetbuddy.domain.rules.value_objects import PatternType, Rule, TargetField

logger = logging.getLogger(__name__)


def get_match_text(transaction: BankTransaction, target_field: TargetField) -> str:
    """Return the transaction text a rule with ``target_field`` looks at."""
    payee = transaction.payee or ""
    if target_field == TargetField.PAYEE:
        return payee
    if target_field == TargetField.MEMO:
        return transaction.memo
    return f"{payee} {transaction.memo}"


def rule_matches(rule: Rule, transaction: BankTransaction) -> bool:
    """Check whether ``rule`` matches ``transaction``.

    Contains and Exact compare lower-cased text. Regex patterns are applied
    case-insensitively to the original text; a pattern that fails to compile
    or evaluate never matches.
    """
    if not rule.enabled:
        return False

    text = get_match_text(transaction, rule.target_field)

    if rule.pattern_type == PatternType.CONTAINS:
        return rule.pattern.lower() in text.lower()

    if rule.pattern_type == PatternType.EXACT:
        return text.lower() == rule.pattern.lower()

    try:
        return re.search(rule.pattern, text, re.IGNORECASE) is not None
    except (re.error, OverflowError) as e:
        logger.debug("Rule %s has an unusable pattern %r: %s", rule.id, rule.pattern, e)
        return False
