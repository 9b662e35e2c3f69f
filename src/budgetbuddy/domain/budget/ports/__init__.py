"""Budget domain ports."""

from budgetbuddy.domain.budget.ports.budget_port import (
    BudgetImportPort,
    BudgetPort,
    SettingsPort,
)

__all__ = [
    "BudgetImportPort",
    "BudgetPort",
    "SettingsPort",
]
