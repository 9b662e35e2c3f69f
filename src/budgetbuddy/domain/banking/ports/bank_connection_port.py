"""Bank connection port interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from budgetbuddy.domain.banking.value_objects import BankTransaction


class BankConnectionPort(ABC):
    """
    Interface for the banking API with push-TAN authorization.

    Only the server side of a sync session talks to the bank; the review
    flow never calls this port directly.
    """

    @abstractmethod
    async def start_auth(self, session_id: UUID) -> str:
        """
        Start the login and trigger the push-TAN on the user's device.

        Parameters
        ----------
        session_id
            Sync session the login belongs to

        Returns
        -------
        Reference of the TAN challenge that was sent

        Raises
        ------
        BankAuthFailedError
            If the bank rejects the login
        """

    @abstractmethod
    async def confirm_tan(self, session_id: UUID) -> None:
        """
        Wait until the user approved the push-TAN.

        Raises
        ------
        TanTimeoutError
            If the approval did not happen in time
        BankAuthFailedError
            If the challenge was rejected
        """

    @abstractmethod
    async def fetch_transactions(self, session_id: UUID) -> list[BankTransaction]:
        """
        Download the transactions of the configured date range.

        Raises
        ------
        TransactionFetchFailedError
            If the download fails
        """
