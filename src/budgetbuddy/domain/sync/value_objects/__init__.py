"""Sync domain value objects."""

from budgetbuddy.domain.sync.value_objects.duplicate_status import (
    DuplicateKind,
    DuplicateStatus,
)
from budgetbuddy.domain.sync.value_objects.import_result import ImportResult
from budgetbuddy.domain.sync.value_objects.session_status import SyncSessionStatus
from budgetbuddy.domain.sync.value_objects.sync_session import SyncSession
from budgetbuddy.domain.sync.value_objects.sync_transaction import SyncTransaction
from budgetbuddy.domain.sync.value_objects.transaction_split import (
    ExternalLink,
    TransactionSplit,
)
from budgetbuddy.domain.sync.value_objects.transaction_status import (
    TransactionStatus,
)

__all__ = [
    # Duplicate detection
    "DuplicateKind",
    "DuplicateStatus",
    # Import
    "ImportResult",
    # Session
    "SyncSession",
    "SyncSessionStatus",
    # Transactions
    "ExternalLink",
    "SyncTransaction",
    "TransactionSplit",
    "TransactionStatus",
]
