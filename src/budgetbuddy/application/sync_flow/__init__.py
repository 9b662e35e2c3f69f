"""Sync session orchestration and transaction reconciliation."""

from budgetbuddy.application.sync_flow.flow import SyncFlow, SyncFlowSnapshot
from budgetbuddy.application.sync_flow.inline_rule import (
    InlineRuleCreator,
    InlineRuleFormState,
)
from budgetbuddy.application.sync_flow.notifications import (
    Notification,
    NotificationLevel,
    Notifier,
)
from budgetbuddy.application.sync_flow.projection import (
    TransactionFilter,
    TransactionSummary,
    count_by_status,
    count_duplicates,
    filter_transactions,
    ready_to_import_count,
    summarize,
)
from budgetbuddy.application.sync_flow.reconciliation import (
    DuplicateTracking,
    KnownDuplicates,
    NoDuplicatesKnown,
    TransactionReconciliationStore,
)
from budgetbuddy.application.sync_flow.remote_data import RemoteData, RemoteState
from budgetbuddy.application.sync_flow.session import SessionStateMachine
from budgetbuddy.application.sync_flow.split_editor import (
    SplitAllocation,
    SplitEditor,
    SplitEditState,
)

__all__ = [
    # Composition
    "SyncFlow",
    "SyncFlowSnapshot",
    # Components
    "InlineRuleCreator",
    "InlineRuleFormState",
    "SessionStateMachine",
    "SplitAllocation",
    "SplitEditState",
    "SplitEditor",
    "TransactionReconciliationStore",
    # Duplicate tracking
    "DuplicateTracking",
    "KnownDuplicates",
    "NoDuplicatesKnown",
    # Notifications
    "Notification",
    "NotificationLevel",
    "Notifier",
    # Load state
    "RemoteData",
    "RemoteState",
    # Projection
    "TransactionFilter",
    "TransactionSummary",
    "count_by_status",
    "count_duplicates",
    "filter_transactions",
    "ready_to_import_count",
    "summarize",
]
