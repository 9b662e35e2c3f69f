"""Composition root of the sync review flow.

``SyncFlow`` wires the session state machine, the reconciliation store and
the two editors over the collaborator ports, and exposes one coroutine per
user command. A UI either awaits the commands directly or schedules them
with ``dispatch`` and renders ``snapshot()`` whenever it likes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Coroutine, Optional, Set

from budgetbuddy.application.sync_flow.inline_rule import (
    InlineRuleCreator,
    InlineRuleFormState,
)
from budgetbuddy.application.sync_flow.notifications import (
    Notification,
    NotificationSink,
    Notifier,
)
from budgetbuddy.application.sync_flow.projection import (
    TransactionFilter,
    TransactionSummary,
    summarize,
)
from budgetbuddy.application.sync_flow.reconciliation import (
    DuplicateTracking,
    TransactionReconciliationStore,
)
from budgetbuddy.application.sync_flow.remote_data import RemoteData
from budgetbuddy.application.sync_flow.session import SessionStateMachine
from budgetbuddy.application.sync_flow.split_editor import (
    AmountLike,
    SplitEditor,
    SplitEditState,
)
from budgetbuddy.domain.budget.ports import BudgetPort, SettingsPort
from budgetbuddy.domain.budget.value_objects import BudgetCategory
from budgetbuddy.domain.rules.ports import RulePort
from budgetbuddy.domain.rules.value_objects import PatternType, Rule, TargetField
from budgetbuddy.domain.sync.ports import SyncSessionPort
from budgetbuddy.domain.sync.value_objects import (
    ImportResult,
    SyncSession,
    SyncSessionStatus,
    SyncTransaction,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncFlowSnapshot:
    """Everything a view needs to render the sync flow, frozen in time."""

    session: RemoteData[Optional[SyncSession]]
    transactions: RemoteData[list[SyncTransaction]]
    categories: RemoteData[list[BudgetCategory]]
    last_import: RemoteData[ImportResult]
    duplicate_tracking: DuplicateTracking
    manually_categorized_ids: frozenset[str] = frozenset()
    selected_ids: frozenset[str] = frozenset()
    pending_transaction_ids: frozenset[str] = frozenset()
    split_edit: Optional[SplitEditState] = None
    inline_rule: Optional[InlineRuleFormState] = None
    is_confirming_tan: bool = False
    notifications: tuple[Notification, ...] = field(default_factory=tuple)

    @property
    def current_session(self) -> Optional[SyncSession]:
        return self.session.with_default(None)

    @property
    def summary(self) -> TransactionSummary:
        return summarize(self.transactions.with_default([]))


class SyncFlow:
    """Command surface over one user's sync session."""

    def __init__(
        self,
        sync_port: SyncSessionPort,
        budget_port: BudgetPort,
        settings_port: SettingsPort,
        rule_port: RulePort,
        notification_sink: Optional[NotificationSink] = None,
    ):
        self._notifier = Notifier(notification_sink)
        self._session = SessionStateMachine(sync_port, self._notifier)
        self._store = TransactionReconciliationStore(
            port=sync_port,
            budget_port=budget_port,
            settings_port=settings_port,
            notifier=self._notifier,
            session_id_provider=lambda: self._session.session_id,
        )
        self._split_editor = SplitEditor(self._store, self._notifier)
        self._inline_rule = InlineRuleCreator(rule_port, self._store, self._notifier)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def session(self) -> SessionStateMachine:
        return self._session

    @property
    def store(self) -> TransactionReconciliationStore:
        return self._store

    @property
    def split_editor(self) -> SplitEditor:
        return self._split_editor

    @property
    def inline_rule(self) -> InlineRuleCreator:
        return self._inline_rule

    def snapshot(self) -> SyncFlowSnapshot:
        return SyncFlowSnapshot(
            session=self._session.session,
            transactions=self._store.transactions.map(list),
            categories=self._store.categories.map(list),
            last_import=self._store.last_import,
            duplicate_tracking=self._store.duplicate_tracking,
            manually_categorized_ids=self._store.manually_categorized_ids,
            selected_ids=self._store.selected_ids,
            pending_transaction_ids=self._store.pending_transaction_ids,
            split_edit=self._split_editor.state,
            inline_rule=self._inline_rule.form,
            is_confirming_tan=self._session.is_confirming_tan,
            notifications=self._notifier.notifications,
        )

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def dispatch(self, command: Coroutine) -> asyncio.Task:
        """Run a command in the background and keep a reference to it."""
        task = asyncio.create_task(command)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait until every dispatched command has finished."""
        while self._tasks:
            results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(
                        "Dispatched command failed: %s", result, exc_info=result
                    )

    # ------------------------------------------------------------------
    # Session commands
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load the current session (and its rows, if in review) plus categories."""
        session = await self._session.load_current_session()
        if (
            session is not None
            and session.status == SyncSessionStatus.REVIEWING_TRANSACTIONS
        ):
            await self._store.load_transactions()
        await self._store.load_categories()

    async def start_sync(self) -> Optional[SyncSession]:
        self._discard_working_set()
        return await self._session.start_sync()

    async def initiate_bank_auth(self) -> Optional[str]:
        return await self._session.initiate_bank_auth()

    async def confirm_tan(self) -> bool:
        if not await self._session.confirm_tan():
            return False
        await self._store.load_transactions()
        return True

    async def cancel_sync(self) -> bool:
        if not await self._session.cancel_sync():
            return False
        self._discard_working_set()
        return True

    async def load_transactions(self) -> None:
        await self._store.load_transactions()

    async def load_categories(self) -> list[BudgetCategory]:
        return await self._store.load_categories()

    # ------------------------------------------------------------------
    # Review commands
    # ------------------------------------------------------------------

    async def categorize(
        self,
        transaction_id: str,
        category_id: Optional[str],
        payee_override: Optional[str] = None,
    ) -> Optional[SyncTransaction]:
        if not self._in_review("categorize"):
            return None
        return await self._store.categorize(transaction_id, category_id, payee_override)

    async def set_payee_override(
        self,
        transaction_id: str,
        payee: Optional[str],
    ) -> Optional[SyncTransaction]:
        if not self._in_review("payee override"):
            return None
        return await self._store.set_payee_override(transaction_id, payee)

    async def skip(self, transaction_id: str) -> Optional[SyncTransaction]:
        if not self._in_review("skip"):
            return None
        return await self._store.skip(transaction_id)

    async def unskip(self, transaction_id: str) -> Optional[SyncTransaction]:
        if not self._in_review("unskip"):
            return None
        return await self._store.unskip(transaction_id)

    async def clear_split(self, transaction_id: str) -> Optional[SyncTransaction]:
        if not self._in_review("clear split"):
            return None
        return await self._store.clear_split(transaction_id)

    def toggle_selection(self, transaction_id: str) -> None:
        self._store.toggle_selection(transaction_id)

    def select_all(self) -> None:
        self._store.select_all()

    def deselect_all(self) -> None:
        self._store.deselect_all()

    async def bulk_categorize_selected(
        self,
        category_id: str,
    ) -> Optional[list[SyncTransaction]]:
        if not self._in_review("bulk categorize"):
            return None
        return await self._store.bulk_categorize_selected(category_id)

    async def skip_all_visible(
        self,
        transaction_filter: TransactionFilter = TransactionFilter.ALL,
    ) -> list[SyncTransaction]:
        if not self._in_review("skip all"):
            return []
        return await self._store.skip_all_visible(transaction_filter)

    async def unskip_all_visible(
        self,
        transaction_filter: TransactionFilter = TransactionFilter.ALL,
    ) -> list[SyncTransaction]:
        if not self._in_review("unskip all"):
            return []
        return await self._store.unskip_all_visible(transaction_filter)

    # ------------------------------------------------------------------
    # Split editor
    # ------------------------------------------------------------------

    def start_split_edit(self, transaction_id: str) -> Optional[SplitEditState]:
        return self._split_editor.start(transaction_id)

    def cancel_split_edit(self) -> None:
        self._split_editor.cancel()

    def add_split(
        self,
        category_id: str,
        amount: AmountLike,
        category_name: str = "",
        memo: Optional[str] = None,
    ) -> None:
        self._split_editor.add_split(category_id, amount, category_name, memo)

    def remove_split(self, index: int) -> None:
        self._split_editor.remove_split(index)

    def update_split_amount(self, index: int, amount: AmountLike) -> None:
        self._split_editor.update_amount(index, amount)

    def update_split_memo(self, index: int, memo: Optional[str]) -> None:
        self._split_editor.update_memo(index, memo)

    async def save_splits(self) -> Optional[SyncTransaction]:
        if self._split_editor.state is None or not self._in_review("split"):
            return None
        return await self._split_editor.save()

    # ------------------------------------------------------------------
    # Inline rule creator
    # ------------------------------------------------------------------

    def open_inline_rule(self, transaction_id: str) -> Optional[InlineRuleFormState]:
        return self._inline_rule.open(transaction_id)

    def close_inline_rule(self) -> None:
        self._inline_rule.close()

    def update_inline_rule(
        self,
        pattern: Optional[str] = None,
        pattern_type: Optional[PatternType] = None,
        target_field: Optional[TargetField] = None,
        rule_name: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> None:
        if pattern is not None:
            self._inline_rule.update_pattern(pattern)
        if pattern_type is not None:
            self._inline_rule.update_pattern_type(pattern_type)
        if target_field is not None:
            self._inline_rule.update_target_field(target_field)
        if rule_name is not None:
            self._inline_rule.update_rule_name(rule_name)
        if category_id is not None:
            self._inline_rule.update_category(category_id)

    async def save_inline_rule(self) -> Optional[Rule]:
        return await self._inline_rule.save()

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def import_to_ynab(self) -> Optional[ImportResult]:
        session = self._session.ensure_status(
            "import", SyncSessionStatus.REVIEWING_TRANSACTIONS
        )
        if session is None:
            return None

        result = await self._store.import_to_ynab()
        await self._session.reload_session(session.id)
        return result

    async def force_import_duplicates(self) -> Optional[int]:
        session = self._session.ensure_status(
            "force import",
            SyncSessionStatus.REVIEWING_TRANSACTIONS,
            SyncSessionStatus.COMPLETED,
        )
        if session is None:
            return None

        count = await self._store.force_import_duplicates()
        if count is not None:
            await self._session.reload_session(session.id)
        return count

    # ------------------------------------------------------------------

    def _in_review(self, operation: str) -> bool:
        session = self._session.ensure_status(
            operation, SyncSessionStatus.REVIEWING_TRANSACTIONS
        )
        return session is not None

    def _discard_working_set(self) -> None:
        self._store.reset()
        self._split_editor.cancel()
        self._inline_rule.close()
