"""Working set of the transactions fetched for the active session.

Every row operation follows the same discipline:

1. If the list is loaded, apply the expected result locally right away.
2. Send the authoritative call to the backend.
3. On success replace the row with the backend's canonical copy.
4. On failure notify once and reload the whole list, so a bad local guess
   never outlives an error.

A row with an operation in flight carries a pending marker; a second edit
to the same row is rejected until the first one has returned.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union
from uuid import UUID, uuid4

from budgetbuddy.application.sync_flow.notifications import Notifier
from budgetbuddy.application.sync_flow.projection import (
    TransactionFilter,
    filter_transactions,
)
from budgetbuddy.application.sync_flow.remote_data import RemoteData
from budgetbuddy.domain.budget.ports import BudgetPort, SettingsPort
from budgetbuddy.domain.budget.value_objects import BudgetCategory
from budgetbuddy.domain.sync.exceptions import SplitValidationError
from budgetbuddy.domain.sync.ports import SyncSessionPort
from budgetbuddy.domain.sync.value_objects import (
    ImportResult,
    SyncTransaction,
    TransactionSplit,
    TransactionStatus,
)

logger = logging.getLogger(__name__)

SessionIdProvider = Callable[[], Optional[UUID]]
Optimistic = Callable[[SyncTransaction], SyncTransaction]

ROW_BUSY = "This transaction is still being saved, please wait"


@dataclass(frozen=True)
class NoDuplicatesKnown:
    """No import has reported duplicates (or they were already resubmitted)."""


@dataclass(frozen=True)
class KnownDuplicates:
    """Ids the last import refused because the budget already has them."""

    transaction_ids: tuple[str, ...]


DuplicateTracking = Union[NoDuplicatesKnown, KnownDuplicates]


class TransactionReconciliationStore:
    """Holds ``RemoteData`` slices for transactions and categories."""

    def __init__(
        self,
        port: SyncSessionPort,
        budget_port: BudgetPort,
        settings_port: SettingsPort,
        notifier: Notifier,
        session_id_provider: SessionIdProvider,
    ):
        self._port = port
        self._budget_port = budget_port
        self._settings_port = settings_port
        self._notifier = notifier
        self._session_id_provider = session_id_provider

        self._transactions: RemoteData[list[SyncTransaction]] = RemoteData.not_asked()
        self._categories: RemoteData[list[BudgetCategory]] = RemoteData.not_asked()
        self._import: RemoteData[ImportResult] = RemoteData.not_asked()
        self._manually_categorized: set[str] = set()
        self._selected: set[str] = set()
        self._pending_rows: dict[str, UUID] = {}
        self._duplicates: DuplicateTracking = NoDuplicatesKnown()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def transactions(self) -> RemoteData[list[SyncTransaction]]:
        return self._transactions

    @property
    def categories(self) -> RemoteData[list[BudgetCategory]]:
        return self._categories

    @property
    def last_import(self) -> RemoteData[ImportResult]:
        return self._import

    @property
    def manually_categorized_ids(self) -> frozenset[str]:
        return frozenset(self._manually_categorized)

    @property
    def selected_ids(self) -> frozenset[str]:
        return frozenset(self._selected)

    @property
    def pending_transaction_ids(self) -> frozenset[str]:
        return frozenset(self._pending_rows)

    @property
    def duplicate_tracking(self) -> DuplicateTracking:
        return self._duplicates

    def get_transaction(self, transaction_id: str) -> Optional[SyncTransaction]:
        for transaction in self._transactions.with_default([]):
            if transaction.id == transaction_id:
                return transaction
        return None

    def category_name(self, category_id: Optional[str]) -> Optional[str]:
        if category_id is None:
            return None
        for category in self._categories.with_default([]):
            if category.id == category_id:
                return category.name
        return None

    def reset(self) -> None:
        """Forget everything tied to the previous session."""
        self._transactions = RemoteData.not_asked()
        self._import = RemoteData.not_asked()
        self._manually_categorized.clear()
        self._selected.clear()
        self._pending_rows.clear()
        self._duplicates = NoDuplicatesKnown()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_transactions(self) -> None:
        session_id = self._session_id_provider()
        if session_id is None:
            logger.debug("Not loading transactions: no active session")
            return

        self._transactions = RemoteData.loading()
        try:
            transactions = await self._port.get_transactions(session_id)
        except Exception as e:
            if self._is_stale(session_id):
                return
            error = self._notifier.report("loading transactions", e)
            self._transactions = RemoteData.failure(error.message)
            return

        if self._is_stale(session_id):
            logger.debug("Ignoring transactions of discarded session %s", session_id)
            return

        self._transactions = RemoteData.success(list(transactions))
        known = {transaction.id for transaction in transactions}
        self._selected &= known
        logger.info("Loaded %d transactions for session %s", len(known), session_id)

    async def load_categories(self) -> list[BudgetCategory]:
        self._categories = RemoteData.loading()
        try:
            budget_id = await self._settings_port.get_default_budget_id()
            if budget_id is None:
                logger.info("No default budget configured, no categories to load")
                self._categories = RemoteData.success([])
                return []
            categories = await self._budget_port.get_categories(budget_id)
        except Exception as e:
            error = self._notifier.report("loading categories", e)
            self._categories = RemoteData.failure(error.message)
            return []

        self._categories = RemoteData.success(list(categories))
        logger.debug("Loaded %d categories for budget %s", len(categories), budget_id)
        return list(categories)

    # ------------------------------------------------------------------
    # Row operations
    # ------------------------------------------------------------------

    async def categorize(
        self,
        transaction_id: str,
        category_id: Optional[str],
        payee_override: Optional[str] = None,
    ) -> Optional[SyncTransaction]:
        was_manual = transaction_id in self._manually_categorized
        category_name = self.category_name(category_id)

        def mark_manual() -> None:
            if category_id is not None:
                self._manually_categorized.add(transaction_id)
            else:
                self._manually_categorized.discard(transaction_id)

        def revert_manual() -> None:
            if was_manual:
                self._manually_categorized.add(transaction_id)
            else:
                self._manually_categorized.discard(transaction_id)

        return await self._run_row_operation(
            "categorize",
            transaction_id,
            lambda session_id: self._port.categorize_transaction(
                session_id, transaction_id, category_id, payee_override
            ),
            optimistic=lambda tx: tx.with_category(
                category_id, category_name, payee_override
            ),
            on_start=mark_manual,
            on_failure=revert_manual,
        )

    async def set_payee_override(
        self,
        transaction_id: str,
        payee: Optional[str],
    ) -> Optional[SyncTransaction]:
        current = self.get_transaction(transaction_id)
        category_id = current.category_id if current is not None else None
        payee = payee.strip() if payee else ""

        return await self._run_row_operation(
            "payee override",
            transaction_id,
            lambda session_id: self._port.categorize_transaction(
                session_id, transaction_id, category_id, payee
            ),
            optimistic=lambda tx: tx.with_payee_override(payee),
        )

    async def skip(self, transaction_id: str) -> Optional[SyncTransaction]:
        return await self._run_row_operation(
            "skip",
            transaction_id,
            lambda session_id: self._port.skip_transaction(session_id, transaction_id),
            optimistic=lambda tx: tx.skipped(),
        )

    async def unskip(self, transaction_id: str) -> Optional[SyncTransaction]:
        # Unskip never restores a previous category.
        return await self._run_row_operation(
            "unskip",
            transaction_id,
            lambda session_id: self._port.unskip_transaction(
                session_id, transaction_id
            ),
            optimistic=lambda tx: tx.unskipped(),
        )

    async def split(
        self,
        transaction_id: str,
        splits: list[TransactionSplit],
    ) -> Optional[SyncTransaction]:
        if len(splits) < 2:
            error = SplitValidationError()
            logger.debug("Rejected split of %s: %s", transaction_id, error)
            self._notifier.warning(error.message)
            return None

        allocations = list(splits)
        updated = await self._run_row_operation(
            "split",
            transaction_id,
            lambda session_id: self._port.split_transaction(
                session_id, transaction_id, allocations
            ),
            optimistic=lambda tx: tx.with_splits(allocations),
        )
        if updated is not None:
            self._notifier.success("Transaction split saved")
        return updated

    async def clear_split(self, transaction_id: str) -> Optional[SyncTransaction]:
        updated = await self._run_row_operation(
            "clear split",
            transaction_id,
            lambda session_id: self._port.clear_split(session_id, transaction_id),
            optimistic=lambda tx: tx.without_splits(),
        )
        if updated is not None:
            self._notifier.info("Split cleared")
        return updated

    async def bulk_categorize(
        self,
        transaction_ids: list[str],
        category_id: str,
    ) -> Optional[list[SyncTransaction]]:
        """Categorize several rows in one authoritative call, no local guess."""
        session_id = self._session_id_provider()
        if session_id is None:
            self._notifier.warning("No active sync session")
            return None
        if not transaction_ids:
            logger.debug("Bulk categorize called without transactions")
            return []

        try:
            updated = await self._port.bulk_categorize(
                session_id, list(transaction_ids), category_id
            )
        except Exception as e:
            if self._is_stale(session_id):
                return None
            self._notifier.report("bulk categorize", e)
            await self.load_transactions()
            return None

        if self._is_stale(session_id):
            logger.debug("Ignoring bulk result for discarded session %s", session_id)
            return None

        for transaction in updated:
            self._replace_row(transaction)
        logger.info("Bulk categorized %d transactions", len(updated))
        return list(updated)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def toggle_selection(self, transaction_id: str) -> None:
        if transaction_id in self._selected:
            self._selected.discard(transaction_id)
        else:
            self._selected.add(transaction_id)

    def select_all(self) -> None:
        if self._transactions.is_success:
            self._selected = {tx.id for tx in self._transactions.value or []}

    def deselect_all(self) -> None:
        self._selected.clear()

    async def bulk_categorize_selected(
        self,
        category_id: str,
    ) -> Optional[list[SyncTransaction]]:
        if not self._selected:
            self._notifier.warning("No transactions selected")
            return None

        updated = await self.bulk_categorize(sorted(self._selected), category_id)
        if updated is not None:
            self._selected.clear()
        return updated

    # ------------------------------------------------------------------
    # Skip / unskip all visible rows
    # ------------------------------------------------------------------

    async def skip_all_visible(
        self,
        transaction_filter: TransactionFilter = TransactionFilter.ALL,
    ) -> list[SyncTransaction]:
        """Skip every visible row that is neither skipped nor imported."""
        targets = [
            tx.id
            for tx in self._visible(transaction_filter)
            if tx.status not in (TransactionStatus.SKIPPED, TransactionStatus.IMPORTED)
        ]
        return await self._for_each_row("skip all", targets, self.skip)

    async def unskip_all_visible(
        self,
        transaction_filter: TransactionFilter = TransactionFilter.ALL,
    ) -> list[SyncTransaction]:
        """Return every visible skipped row to review."""
        targets = [tx.id for tx in self._visible(transaction_filter) if tx.is_skipped]
        return await self._for_each_row("unskip all", targets, self.unskip)

    def _visible(self, transaction_filter: TransactionFilter) -> list[SyncTransaction]:
        if not self._transactions.is_success:
            return []
        rows = filter_transactions(self._transactions.value or [], transaction_filter)
        return [tx for tx in rows if tx.id not in self._pending_rows]

    async def _for_each_row(
        self,
        operation: str,
        transaction_ids: list[str],
        row_operation: Callable[[str], Awaitable[Optional[SyncTransaction]]],
    ) -> list[SyncTransaction]:
        if not transaction_ids:
            logger.debug("%s: nothing to do", operation)
            return []
        results = await asyncio.gather(
            *(row_operation(tx_id) for tx_id in transaction_ids)
        )
        updated = [tx for tx in results if tx is not None]
        logger.info(
            "%s: %d of %d rows updated",
            operation,
            len(updated),
            len(transaction_ids),
        )
        return updated

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def import_to_ynab(self) -> Optional[ImportResult]:
        session_id = self._session_id_provider()
        if session_id is None:
            self._notifier.warning("No active sync session")
            return None

        self._import = RemoteData.loading()
        try:
            result = await self._port.import_to_ynab(session_id)
        except Exception as e:
            if self._is_stale(session_id):
                return None
            error = self._notifier.report("import", e)
            self._import = RemoteData.failure(error.message)
            return None

        if self._is_stale(session_id):
            logger.debug("Ignoring import result for discarded session %s", session_id)
            return None

        self._import = RemoteData.success(result)
        if result.has_duplicates:
            self._duplicates = KnownDuplicates(tuple(result.duplicate_transaction_ids))
            duplicate_count = len(result.duplicate_transaction_ids)
            logger.info(
                "Imported %d transactions, %d duplicates refused",
                result.created_count,
                duplicate_count,
            )
            self._notifier.warning(
                f"{result.created_count} imported, {duplicate_count} already exist "
                "in YNAB. Use force import to import them anyway."
            )
        else:
            self._duplicates = NoDuplicatesKnown()
            logger.info("Imported %d transactions", result.created_count)
            self._notifier.success(
                f"Successfully imported {result.created_count} transaction(s) to YNAB!"
            )

        await self.load_transactions()
        return result

    async def force_import_duplicates(self) -> Optional[int]:
        """Resubmit the refused duplicates, or every importable row if none known."""
        session_id = self._session_id_provider()
        if session_id is None:
            self._notifier.warning("No active sync session")
            return None

        tracking = self._duplicates
        self._duplicates = NoDuplicatesKnown()

        if isinstance(tracking, KnownDuplicates):
            transaction_ids = list(tracking.transaction_ids)
        else:
            transaction_ids = [
                tx.id for tx in self._transactions.with_default([]) if tx.is_importable
            ]
            if not transaction_ids:
                logger.debug("Force import found nothing to resubmit")
                self._notifier.warning("No transactions available to force import")
                return None

        try:
            count = await self._port.force_import_duplicates(
                session_id, transaction_ids
            )
        except Exception as e:
            if self._is_stale(session_id):
                return None
            self._notifier.report("force import", e)
            await self.load_transactions()
            return None

        if self._is_stale(session_id):
            return None

        logger.info("Force imported %d of %d transactions", count, len(transaction_ids))
        self._notifier.success(f"Force imported {count} transaction(s) to YNAB")
        await self.load_transactions()
        return count

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run_row_operation(
        self,
        operation: str,
        transaction_id: str,
        call: Callable[[UUID], Awaitable[SyncTransaction]],
        optimistic: Optional[Optimistic] = None,
        on_start: Optional[Callable[[], None]] = None,
        on_failure: Optional[Callable[[], None]] = None,
    ) -> Optional[SyncTransaction]:
        session_id = self._session_id_provider()
        if session_id is None:
            logger.debug(
                "Rejected %s of %s: no active session", operation, transaction_id
            )
            self._notifier.warning("No active sync session")
            return None

        if transaction_id in self._pending_rows:
            logger.debug("Rejected %s of %s: row busy", operation, transaction_id)
            self._notifier.warning(ROW_BUSY)
            return None

        token = uuid4()
        self._pending_rows[transaction_id] = token
        if on_start is not None:
            on_start()
        if optimistic is not None:
            self._apply_locally(transaction_id, optimistic)

        try:
            updated = await call(session_id)
        except Exception as e:
            self._release_row(transaction_id, token)
            if self._is_stale(session_id):
                return None
            if on_failure is not None:
                on_failure()
            self._notifier.report(operation, e)
            await self.load_transactions()
            return None

        self._release_row(transaction_id, token)
        if self._is_stale(session_id):
            logger.debug(
                "Ignoring %s result for discarded session %s", operation, session_id
            )
            return None

        self._replace_row(updated)
        return updated

    def _apply_locally(self, transaction_id: str, optimistic: Optimistic) -> None:
        if not self._transactions.is_success:
            return
        self._transactions = self._transactions.map(
            lambda rows: [
                optimistic(row) if row.id == transaction_id else row for row in rows
            ]
        )

    def _replace_row(self, updated: SyncTransaction) -> None:
        if not self._transactions.is_success:
            return
        self._transactions = self._transactions.map(
            lambda rows: [updated if row.id == updated.id else row for row in rows]
        )

    def _release_row(self, transaction_id: str, token: UUID) -> None:
        if self._pending_rows.get(transaction_id) == token:
            del self._pending_rows[transaction_id]

    def _is_stale(self, session_id: UUID) -> bool:
        return self._session_id_provider() != session_id
