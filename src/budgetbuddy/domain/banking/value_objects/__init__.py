"""Banking domain value objects."""

from budgetbuddy.domain.banking.value_objects.bank_transaction import BankTransaction
from budgetbuddy.domain.banking.value_objects.money import Money

__all__ = [
    "BankTransaction",
    "Money",
]
