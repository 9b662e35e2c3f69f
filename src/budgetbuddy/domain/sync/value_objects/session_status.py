"""Sync session status and its legal transitions."""

from __future__ import annotations

from enum import Enum


class SyncSessionStatus(str, Enum):
    """Lifecycle stage of a sync session as reported by the backend."""

    AWAITING_BANK_AUTH = "awaiting_bank_auth"
    AWAITING_TAN = "awaiting_tan"
    FETCHING_TRANSACTIONS = "fetching_transactions"
    REVIEWING_TRANSACTIONS = "reviewing_transactions"
    IMPORTING_TO_YNAB = "importing_to_ynab"
    COMPLETED = "completed"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        return self in (SyncSessionStatus.COMPLETED, SyncSessionStatus.FAILED)

    def can_transition_to(self, target: SyncSessionStatus) -> bool:
        if self.is_terminal():
            return False
        if target == SyncSessionStatus.FAILED:
            return True
        return _NEXT_STATUS.get(self) == target

    @property
    def label(self) -> str:
        return _LABELS[self]


_NEXT_STATUS: dict[SyncSessionStatus, SyncSessionStatus] = {
    SyncSessionStatus.AWAITING_BANK_AUTH: SyncSessionStatus.AWAITING_TAN,
    SyncSessionStatus.AWAITING_TAN: SyncSessionStatus.FETCHING_TRANSACTIONS,
    SyncSessionStatus.FETCHING_TRANSACTIONS: SyncSessionStatus.REVIEWING_TRANSACTIONS,
    SyncSessionStatus.REVIEWING_TRANSACTIONS: SyncSessionStatus.IMPORTING_TO_YNAB,
    SyncSessionStatus.IMPORTING_TO_YNAB: SyncSessionStatus.COMPLETED,
}

_LABELS: dict[SyncSessionStatus, str] = {
    SyncSessionStatus.AWAITING_BANK_AUTH: "Awaiting bank login",
    SyncSessionStatus.AWAITING_TAN: "Awaiting TAN approval",
    SyncSessionStatus.FETCHING_TRANSACTIONS: "Fetching transactions",
    SyncSessionStatus.REVIEWING_TRANSACTIONS: "Reviewing transactions",
    SyncSessionStatus.IMPORTING_TO_YNAB: "Importing to YNAB",
    SyncSessionStatus.COMPLETED: "Completed",
    SyncSessionStatus.FAILED: "Failed",
}
