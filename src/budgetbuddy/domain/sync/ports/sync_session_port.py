"""Sync session port interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional
from uuid import UUID

if TYPE_CHECKING:
    from budgetbuddy.domain.sync.value_objects import (
        ImportResult,
        SyncSession,
        SyncTransaction,
        TransactionSplit,
    )


class SyncSessionPort(ABC):
    """
    Interface to the backend that owns sync sessions and their transactions.

    The backend is the source of truth: every mutating call returns the
    full, canonical record, which callers use to replace their local copy.
    """

    @abstractmethod
    async def get_current_session(self) -> Optional[SyncSession]:
        """Return the active session, or None if no sync is in progress."""

    @abstractmethod
    async def start_sync(self) -> SyncSession:
        """Create a new session, replacing any previous one."""

    @abstractmethod
    async def initiate_bank_auth(self, session_id: UUID) -> str:
        """
        Start the bank login for a session.

        Returns
        -------
        Reference of the push-TAN challenge
        """

    @abstractmethod
    async def confirm_tan(self, session_id: UUID) -> None:
        """
        Confirm that the push-TAN was approved and fetch the transactions.

        Raises
        ------
        TanTimeoutError
            If the bank reports that the approval timed out
        """

    @abstractmethod
    async def get_transactions(self, session_id: UUID) -> list[SyncTransaction]:
        """Return all transactions of a session."""

    @abstractmethod
    async def categorize_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
        category_id: Optional[str],
        payee_override: Optional[str] = None,
    ) -> SyncTransaction:
        """Assign (or clear, with None) the category of one transaction.

        A payee override sent with the unchanged category only renames the
        payee; an empty string removes the override.
        """

    @abstractmethod
    async def skip_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
    ) -> SyncTransaction:
        """Exclude one transaction from the import."""

    @abstractmethod
    async def unskip_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
    ) -> SyncTransaction:
        """Include a previously skipped transaction again."""

    @abstractmethod
    async def split_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
        splits: list[TransactionSplit],
    ) -> SyncTransaction:
        """Replace the category of a transaction with a split breakdown."""

    @abstractmethod
    async def clear_split(
        self,
        session_id: UUID,
        transaction_id: str,
    ) -> SyncTransaction:
        """Remove the split breakdown of a transaction."""

    @abstractmethod
    async def bulk_categorize(
        self,
        session_id: UUID,
        transaction_ids: list[str],
        category_id: str,
    ) -> list[SyncTransaction]:
        """Assign one category to several transactions at once."""

    @abstractmethod
    async def import_to_ynab(self, session_id: UUID) -> ImportResult:
        """Import every eligible transaction of the session into the budget."""

    @abstractmethod
    async def force_import_duplicates(
        self,
        session_id: UUID,
        transaction_ids: list[str],
    ) -> int:
        """
        Import the given transactions even though they look like duplicates.

        Returns
        -------
        Number of transactions created
        """

    @abstractmethod
    async def cancel_sync(self, session_id: UUID) -> None:
        """Discard the session."""
