"""Banking domain ports."""

from budgetbuddy.domain.banking.ports.bank_connection_port import BankConnectionPort

__all__ = ["BankConnectionPort"]
