"""BudgetBuddy: review bank transactions and import them into YNAB."""

__version__ = "0.1.0"
