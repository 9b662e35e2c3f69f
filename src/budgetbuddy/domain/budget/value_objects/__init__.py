"""Budget domain value objects."""

from budgetbuddy.domain.budget.value_objects.category import BudgetCategory

__all__ = ["BudgetCategory"]
