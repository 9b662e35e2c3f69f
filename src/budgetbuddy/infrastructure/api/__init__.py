"""HTTP adapter for the BudgetBuddy backend."""

from budgetbuddy.infrastructure.api.budgetbuddy_api_client import (
    BudgetBuddyApiClient,
    error_from_response,
)

__all__ = [
    "BudgetBuddyApiClient",
    "error_from_response",
]
