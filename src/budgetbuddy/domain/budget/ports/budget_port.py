"""Budgeting system port interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from budgetbuddy.domain.budget.value_objects import BudgetCategory
    from budgetbuddy.domain.sync.value_objects import ImportResult, SyncTransaction


class BudgetPort(ABC):
    """Read access to the budget's categories."""

    @abstractmethod
    async def get_categories(self, budget_id: str) -> list[BudgetCategory]:
        """
        List the categories of a budget.

        Raises
        ------
        BudgetNotFoundError
            If the budget does not exist
        BudgetUnauthorizedError
            If the token is rejected
        """


class SettingsPort(ABC):
    """Lookup of user settings needed by the review flow."""

    @abstractmethod
    async def get_default_budget_id(self) -> str | None:
        """Return the configured default budget, or None if not set up."""


class BudgetImportPort(ABC):
    """
    Write access to the budget, used when a session is imported.

    Only the server side of a sync session calls this port.
    """

    @abstractmethod
    async def list_categories(self, budget_id: str) -> list[BudgetCategory]:
        """List the categories of a budget."""

    @abstractmethod
    async def import_transactions(
        self,
        session_id: UUID,
        transactions: list[SyncTransaction],
    ) -> ImportResult:
        """
        Create the given transactions in the budget.

        Transactions the budget already knows are not created; their ids are
        reported back in ``ImportResult.duplicate_transaction_ids``.
        """

    @abstractmethod
    async def force_import(
        self,
        session_id: UUID,
        transactions: list[SyncTransaction],
    ) -> int:
        """Create the given transactions even if they look like duplicates."""
