"""Unit tests for TransactionReconciliationStore."""

import asyncio
from typing import Optional
from unittest.mock import AsyncMock
from uuid import UUID

import pytest

from budgetbuddy.application.sync_flow import (
    KnownDuplicates,
    NoDuplicatesKnown,
    NotificationLevel,
    Notifier,
    TransactionFilter,
    TransactionReconciliationStore,
)
from budgetbuddy.application.sync_flow.reconciliation import ROW_BUSY
from budgetbuddy.domain.budget.exceptions import BudgetNotFoundError
from budgetbuddy.domain.sync.exceptions import ImportFailedError
from budgetbuddy.domain.sync.value_objects import ImportResult, TransactionStatus
from tests.shared.fixtures import (
    TestCategoryFactory,
    TestSessionFactory,
    TestTransactionFactory,
)

SESSION_ID = TestSessionFactory.DEFAULT_ID


class SessionHolder:
    """Stands in for the session state machine's current id."""

    def __init__(self, session_id: Optional[UUID] = SESSION_ID):
        self.session_id = session_id

    def __call__(self) -> Optional[UUID]:
        return self.session_id


def gated(release: asyncio.Event, result):
    """Port side effect that waits for ``release`` before answering."""

    async def call(*args):
        await release.wait()
        if isinstance(result, Exception):
            raise result
        return result

    return call


def messages(notifier: Notifier, level: NotificationLevel) -> list[str]:
    return [n.message for n in notifier.notifications if n.level == level]


@pytest.fixture
def port() -> AsyncMock:
    port = AsyncMock()
    port.get_transactions = AsyncMock(
        return_value=[
            TestTransactionFactory.pending("t1"),
            TestTransactionFactory.pending("t2", payee="Netflix"),
        ]
    )
    return port


@pytest.fixture
def budget_port() -> AsyncMock:
    budget_port = AsyncMock()
    budget_port.get_categories = AsyncMock(return_value=TestCategoryFactory.all())
    return budget_port


@pytest.fixture
def settings_port() -> AsyncMock:
    settings_port = AsyncMock()
    settings_port.get_default_budget_id = AsyncMock(return_value="b1")
    return settings_port


@pytest.fixture
def holder() -> SessionHolder:
    return SessionHolder()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def store(port, budget_port, settings_port, notifier, holder):
    return TransactionReconciliationStore(
        port=port,
        budget_port=budget_port,
        settings_port=settings_port,
        notifier=notifier,
        session_id_provider=holder,
    )


def row(store: TransactionReconciliationStore, tx_id: str):
    return store.get_transaction(tx_id)


class TestLoading:
    @pytest.mark.asyncio
    async def test_load_transactions(self, store, port):
        await store.load_transactions()

        port.get_transactions.assert_awaited_once_with(SESSION_ID)
        assert [tx.id for tx in store.transactions.value] == ["t1", "t2"]

    @pytest.mark.asyncio
    async def test_load_without_session_does_nothing(self, store, port, holder):
        holder.session_id = None

        await store.load_transactions()

        port.get_transactions.assert_not_awaited()
        assert store.transactions.is_not_asked

    @pytest.mark.asyncio
    async def test_reload_drops_unknown_ids_from_selection(self, store):
        store.toggle_selection("t1")
        store.toggle_selection("gone")

        await store.load_transactions()

        assert store.selected_ids == frozenset({"t1"})

    @pytest.mark.asyncio
    async def test_load_failure(self, store, port, notifier):
        port.get_transactions.side_effect = RuntimeError("timeout")

        await store.load_transactions()

        assert store.transactions.is_failure
        assert messages(notifier, NotificationLevel.ERROR) == [
            "Error during loading transactions: timeout"
        ]

    @pytest.mark.asyncio
    async def test_load_categories_uses_default_budget(self, store, budget_port):
        categories = await store.load_categories()

        budget_port.get_categories.assert_awaited_once_with("b1")
        assert [c.id for c in categories] == ["c1", "c2", "c3"]
        assert store.category_name("c2") == "Dining"

    @pytest.mark.asyncio
    async def test_no_default_budget_is_empty_success(
        self, store, budget_port, settings_port, notifier
    ):
        settings_port.get_default_budget_id.return_value = None

        categories = await store.load_categories()

        assert categories == []
        assert store.categories.is_success
        budget_port.get_categories.assert_not_awaited()
        assert notifier.notifications == ()

    @pytest.mark.asyncio
    async def test_category_load_failure(self, store, budget_port, notifier):
        budget_port.get_categories.side_effect = BudgetNotFoundError("b1")

        await store.load_categories()

        assert store.categories.is_failure
        assert messages(notifier, NotificationLevel.ERROR) == ["Budget not found: b1"]


class TestCategorize:
    """Tests for the optimistic update and reconcile discipline."""

    @pytest.mark.asyncio
    async def test_applies_locally_then_takes_backend_copy(self, store, port):
        # Arrange
        await store.load_transactions()
        await store.load_categories()
        server_copy = TestTransactionFactory.categorized(
            "t1", category_id="c1", category_name="Groceries (budget)"
        )
        release = asyncio.Event()
        port.categorize_transaction.side_effect = gated(release, server_copy)

        # Act
        pending = asyncio.create_task(store.categorize("t1", "c1"))
        await asyncio.sleep(0)

        # Assert - optimistic state while the call is outstanding
        local = row(store, "t1")
        assert local.category_id == "c1"
        assert local.category_name == "Groceries"
        assert local.status == TransactionStatus.MANUAL_CATEGORIZED
        assert store.pending_transaction_ids == frozenset({"t1"})
        assert "t1" in store.manually_categorized_ids

        release.set()
        result = await pending

        # Assert - canonical copy replaces the guess
        assert result == server_copy
        assert row(store, "t1") == server_copy
        assert store.pending_transaction_ids == frozenset()
        port.categorize_transaction.assert_awaited_once_with(
            SESSION_ID, "t1", "c1", None
        )

    @pytest.mark.asyncio
    async def test_failure_reloads_and_reverts(self, store, port, notifier):
        # Arrange
        await store.load_transactions()
        port.categorize_transaction.side_effect = RuntimeError("db down")

        # Act
        result = await store.categorize("t1", "c1")

        # Assert
        assert result is None
        assert row(store, "t1").status == TransactionStatus.PENDING
        assert row(store, "t1").category_id is None
        assert "t1" not in store.manually_categorized_ids
        assert store.pending_transaction_ids == frozenset()
        assert port.get_transactions.await_count == 2
        assert messages(notifier, NotificationLevel.ERROR) == [
            "Error during categorize: db down"
        ]

    @pytest.mark.asyncio
    async def test_second_edit_on_busy_row_is_rejected(self, store, port, notifier):
        # Arrange
        await store.load_transactions()
        release = asyncio.Event()
        port.categorize_transaction.side_effect = gated(
            release, TestTransactionFactory.categorized("t1")
        )
        first = asyncio.create_task(store.categorize("t1", "c1"))
        await asyncio.sleep(0)

        # Act
        second = await store.skip("t1")
        release.set()
        await first

        # Assert
        assert second is None
        port.skip_transaction.assert_not_awaited()
        assert messages(notifier, NotificationLevel.WARNING) == [ROW_BUSY]

    @pytest.mark.asyncio
    async def test_other_rows_stay_editable(self, store, port):
        await store.load_transactions()
        release = asyncio.Event()
        port.categorize_transaction.side_effect = gated(
            release, TestTransactionFactory.categorized("t1")
        )
        port.skip_transaction.return_value = TestTransactionFactory.skipped(
            "t2", payee="Netflix"
        )
        first = asyncio.create_task(store.categorize("t1", "c1"))
        await asyncio.sleep(0)

        skipped = await store.skip("t2")
        release.set()
        await first

        assert skipped.status == TransactionStatus.SKIPPED
        assert row(store, "t2").status == TransactionStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_skipped_row_stays_skipped(self, store, port):
        port.get_transactions.return_value = [TestTransactionFactory.skipped("t1")]
        await store.load_transactions()
        release = asyncio.Event()
        port.categorize_transaction.side_effect = gated(
            release,
            TestTransactionFactory.skipped("t1").with_category("c1", "Groceries"),
        )

        pending = asyncio.create_task(store.categorize("t1", "c1"))
        await asyncio.sleep(0)
        local = row(store, "t1")
        release.set()
        await pending

        assert local.status == TransactionStatus.SKIPPED
        assert local.category_id == "c1"

    @pytest.mark.asyncio
    async def test_clearing_category_removes_manual_mark(self, store, port):
        await store.load_transactions()
        port.categorize_transaction.return_value = TestTransactionFactory.categorized(
            "t1"
        )
        await store.categorize("t1", "c1")
        assert "t1" in store.manually_categorized_ids

        port.categorize_transaction.return_value = TestTransactionFactory.pending("t1")
        await store.categorize("t1", None)

        assert "t1" not in store.manually_categorized_ids
        assert row(store, "t1").status == TransactionStatus.PENDING

    @pytest.mark.asyncio
    async def test_late_response_for_discarded_session_is_ignored(
        self, store, port, holder, notifier
    ):
        await store.load_transactions()
        release = asyncio.Event()
        port.categorize_transaction.side_effect = gated(
            release, TestTransactionFactory.categorized("t1")
        )
        pending = asyncio.create_task(store.categorize("t1", "c1"))
        await asyncio.sleep(0)

        holder.session_id = TestSessionFactory.OTHER_ID
        release.set()
        result = await pending

        assert result is None
        assert notifier.notifications == ()
        assert port.get_transactions.await_count == 1

    @pytest.mark.asyncio
    async def test_edit_without_session_is_rejected(self, store, port, holder):
        holder.session_id = None

        assert await store.categorize("t1", "c1") is None
        port.categorize_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_payee_override_keeps_current_category(self, store, port):
        port.get_transactions.return_value = [
            TestTransactionFactory.categorized("t1", category_id="c2")
        ]
        await store.load_transactions()
        port.categorize_transaction.return_value = TestTransactionFactory.categorized(
            "t1", category_id="c2"
        ).model_copy(update={"payee_override": "REWE"})

        await store.set_payee_override("t1", "  REWE ")

        port.categorize_transaction.assert_awaited_once_with(
            SESSION_ID, "t1", "c2", "REWE"
        )
        assert row(store, "t1").payee_override == "REWE"

    @pytest.mark.asyncio
    async def test_payee_override_on_split_row_keeps_split(self, store, port):
        split_row = TestTransactionFactory.pending("t1").with_splits(
            [
                TestTransactionFactory.split("c1", "-4.00"),
                TestTransactionFactory.split("c2", "-6.00"),
            ]
        )
        port.get_transactions.return_value = [split_row]
        await store.load_transactions()
        port.categorize_transaction.return_value = split_row.with_payee_override(
            "Nice Name"
        )

        await store.set_payee_override("t1", "Nice Name")

        port.categorize_transaction.assert_awaited_once_with(
            SESSION_ID, "t1", None, "Nice Name"
        )
        updated = row(store, "t1")
        assert updated.payee_override == "Nice Name"
        assert updated.splits == split_row.splits

    @pytest.mark.asyncio
    async def test_blank_payee_override_removes_it(self, store, port):
        named = TestTransactionFactory.pending("t1").with_payee_override("REWE")
        port.get_transactions.return_value = [named]
        await store.load_transactions()
        port.categorize_transaction.return_value = named.with_payee_override("")

        await store.set_payee_override("t1", "   ")

        port.categorize_transaction.assert_awaited_once_with(
            SESSION_ID, "t1", None, ""
        )
        assert row(store, "t1").payee_override is None


class TestSkipAndSplit:
    @pytest.mark.asyncio
    async def test_unskip_keeps_category(self, store, port):
        skipped = TestTransactionFactory.categorized("t1").skipped()
        port.get_transactions.return_value = [skipped]
        await store.load_transactions()
        release = asyncio.Event()
        port.unskip_transaction.side_effect = gated(release, skipped.unskipped())

        pending = asyncio.create_task(store.unskip("t1"))
        await asyncio.sleep(0)
        local = row(store, "t1")
        release.set()
        await pending

        assert local.status == TransactionStatus.PENDING
        assert local.category_id == "c1"

    @pytest.mark.asyncio
    async def test_split_needs_two_allocations(self, store, port, notifier):
        await store.load_transactions()

        result = await store.split(
            "t1", [TestTransactionFactory.split("c1", "-10.00")]
        )

        assert result is None
        port.split_transaction.assert_not_awaited()
        assert messages(notifier, NotificationLevel.WARNING) == [
            "At least 2 splits are required"
        ]

    @pytest.mark.asyncio
    async def test_split_success(self, store, port, notifier):
        await store.load_transactions()
        splits = [
            TestTransactionFactory.split("c1", "-4.00"),
            TestTransactionFactory.split("c2", "-6.00"),
        ]
        port.split_transaction.return_value = TestTransactionFactory.pending(
            "t1"
        ).with_splits(splits)

        result = await store.split("t1", splits)

        assert result.is_split
        assert row(store, "t1").is_split
        port.split_transaction.assert_awaited_once_with(SESSION_ID, "t1", splits)
        assert messages(notifier, NotificationLevel.SUCCESS) == [
            "Transaction split saved"
        ]

    @pytest.mark.asyncio
    async def test_clear_split(self, store, port, notifier):
        await store.load_transactions()
        port.clear_split.return_value = TestTransactionFactory.pending("t1")

        await store.clear_split("t1")

        port.clear_split.assert_awaited_once_with(SESSION_ID, "t1")
        assert messages(notifier, NotificationLevel.INFO) == ["Split cleared"]


class TestBulkAndSelection:
    @pytest.mark.asyncio
    async def test_empty_selection_warns(self, store, port, notifier):
        await store.load_transactions()

        result = await store.bulk_categorize_selected("c1")

        assert result is None
        port.bulk_categorize.assert_not_awaited()
        assert messages(notifier, NotificationLevel.WARNING) == [
            "No transactions selected"
        ]

    @pytest.mark.asyncio
    async def test_bulk_categorize_selected(self, store, port):
        await store.load_transactions()
        store.select_all()
        port.bulk_categorize.return_value = [
            TestTransactionFactory.categorized("t1"),
            TestTransactionFactory.categorized("t2", payee="Netflix"),
        ]

        updated = await store.bulk_categorize_selected("c1")

        port.bulk_categorize.assert_awaited_once_with(SESSION_ID, ["t1", "t2"], "c1")
        assert len(updated) == 2
        assert store.selected_ids == frozenset()
        assert all(tx.category_id == "c1" for tx in store.transactions.value)

    @pytest.mark.asyncio
    async def test_bulk_failure_reloads_and_keeps_selection(
        self, store, port, notifier
    ):
        await store.load_transactions()
        store.toggle_selection("t2")
        port.bulk_categorize.side_effect = RuntimeError("conflict")

        result = await store.bulk_categorize_selected("c1")

        assert result is None
        assert store.selected_ids == frozenset({"t2"})
        assert port.get_transactions.await_count == 2
        assert messages(notifier, NotificationLevel.ERROR) == [
            "Error during bulk categorize: conflict"
        ]

    def test_toggle_and_deselect(self, store):
        store.toggle_selection("t1")
        store.toggle_selection("t2")
        store.toggle_selection("t1")
        assert store.selected_ids == frozenset({"t2"})

        store.deselect_all()
        assert store.selected_ids == frozenset()


class TestSkipAllVisible:
    """Tests for skipping and unskipping the filtered list."""

    @pytest.fixture
    def rows(self):
        return [
            TestTransactionFactory.pending("t1"),
            TestTransactionFactory.categorized("t2"),
            TestTransactionFactory.skipped("t3"),
            TestTransactionFactory.imported("t4"),
        ]

    @pytest.mark.asyncio
    async def test_skip_all_takes_rows_not_skipped_or_imported(
        self, store, port, rows
    ):
        # Arrange
        port.get_transactions.return_value = rows
        await store.load_transactions()
        by_id = {tx.id: tx for tx in rows}
        port.skip_transaction.side_effect = lambda _, tx_id: by_id[tx_id].skipped()

        # Act
        updated = await store.skip_all_visible()

        # Assert
        assert [tx.id for tx in updated] == ["t1", "t2"]
        assert [c.args[1] for c in port.skip_transaction.await_args_list] == [
            "t1",
            "t2",
        ]
        assert [row(store, tx.id).status for tx in rows] == [
            TransactionStatus.SKIPPED,
            TransactionStatus.SKIPPED,
            TransactionStatus.SKIPPED,
            TransactionStatus.IMPORTED,
        ]

    @pytest.mark.asyncio
    async def test_skip_all_only_touches_the_filtered_rows(self, store, port, rows):
        port.get_transactions.return_value = rows
        await store.load_transactions()
        port.skip_transaction.return_value = rows[0].skipped()

        updated = await store.skip_all_visible(TransactionFilter.UNCATEGORIZED)

        assert [tx.id for tx in updated] == ["t1"]
        port.skip_transaction.assert_awaited_once_with(SESSION_ID, "t1")

    @pytest.mark.asyncio
    async def test_unskip_all_takes_skipped_rows(self, store, port, rows):
        port.get_transactions.return_value = rows
        await store.load_transactions()
        port.unskip_transaction.return_value = rows[2].unskipped()

        updated = await store.unskip_all_visible()

        assert [tx.id for tx in updated] == ["t3"]
        port.unskip_transaction.assert_awaited_once_with(SESSION_ID, "t3")
        assert row(store, "t3").status == TransactionStatus.PENDING

    @pytest.mark.asyncio
    async def test_nothing_visible_makes_no_call(self, store, port, rows, notifier):
        port.get_transactions.return_value = rows
        await store.load_transactions()

        updated = await store.unskip_all_visible(TransactionFilter.IMPORTED)

        assert updated == []
        port.unskip_transaction.assert_not_awaited()
        assert notifier.notifications == ()

    @pytest.mark.asyncio
    async def test_busy_rows_are_left_out(self, store, port, notifier):
        # Arrange
        port.get_transactions.return_value = [
            TestTransactionFactory.pending("t1"),
            TestTransactionFactory.pending("t2"),
        ]
        await store.load_transactions()
        release = asyncio.Event()
        port.categorize_transaction.side_effect = gated(
            release, TestTransactionFactory.categorized("t1")
        )
        pending = asyncio.create_task(store.categorize("t1", "c1"))
        await asyncio.sleep(0)
        port.skip_transaction.return_value = TestTransactionFactory.skipped("t2")

        # Act
        updated = await store.skip_all_visible()
        release.set()
        await pending

        # Assert
        assert [tx.id for tx in updated] == ["t2"]
        port.skip_transaction.assert_awaited_once_with(SESSION_ID, "t2")
        assert messages(notifier, NotificationLevel.WARNING) == []


class TestImport:
    """Tests for import results and duplicate tracking."""

    @pytest.mark.asyncio
    async def test_import_with_duplicates_tracks_them(self, store, port, notifier):
        # Arrange
        await store.load_transactions()
        port.import_to_ynab.return_value = ImportResult(
            created_count=5, duplicate_transaction_ids=["t7", "t9"]
        )

        # Act
        result = await store.import_to_ynab()

        # Assert
        assert result.created_count == 5
        assert store.last_import.is_success
        assert store.duplicate_tracking == KnownDuplicates(("t7", "t9"))
        assert messages(notifier, NotificationLevel.WARNING) == [
            "5 imported, 2 already exist in YNAB. "
            "Use force import to import them anyway."
        ]
        assert port.get_transactions.await_count == 2

    @pytest.mark.asyncio
    async def test_import_without_duplicates(self, store, port, notifier):
        port.import_to_ynab.return_value = ImportResult(created_count=3)

        await store.import_to_ynab()

        assert store.duplicate_tracking == NoDuplicatesKnown()
        assert messages(notifier, NotificationLevel.SUCCESS) == [
            "Successfully imported 3 transaction(s) to YNAB!"
        ]

    @pytest.mark.asyncio
    async def test_import_failure(self, store, port, notifier):
        port.import_to_ynab.side_effect = ImportFailedError(3, "YNAB down")

        result = await store.import_to_ynab()

        assert result is None
        assert store.last_import.is_failure
        assert messages(notifier, NotificationLevel.ERROR) == [
            "Failed to import 3 transactions: YNAB down"
        ]

    @pytest.mark.asyncio
    async def test_force_import_resubmits_known_duplicates(
        self, store, port, notifier
    ):
        port.import_to_ynab.return_value = ImportResult(
            created_count=5, duplicate_transaction_ids=["t7", "t9"]
        )
        await store.import_to_ynab()
        port.force_import_duplicates.return_value = 2

        count = await store.force_import_duplicates()

        assert count == 2
        port.force_import_duplicates.assert_awaited_once_with(
            SESSION_ID, ["t7", "t9"]
        )
        assert store.duplicate_tracking == NoDuplicatesKnown()
        assert messages(notifier, NotificationLevel.SUCCESS) == [
            "Force imported 2 transaction(s) to YNAB"
        ]

    @pytest.mark.asyncio
    async def test_force_import_falls_back_to_importable_rows(self, store, port):
        port.get_transactions.return_value = [
            TestTransactionFactory.categorized("t1"),
            TestTransactionFactory.pending("t2"),
            TestTransactionFactory.skipped("t3"),
            TestTransactionFactory.imported("t4"),
        ]
        await store.load_transactions()
        port.force_import_duplicates.return_value = 1

        await store.force_import_duplicates()

        port.force_import_duplicates.assert_awaited_once_with(SESSION_ID, ["t1"])

    @pytest.mark.asyncio
    async def test_force_import_with_nothing_to_send_warns(
        self, store, port, notifier
    ):
        await store.load_transactions()

        count = await store.force_import_duplicates()

        assert count is None
        port.force_import_duplicates.assert_not_awaited()
        assert messages(notifier, NotificationLevel.WARNING) == [
            "No transactions available to force import"
        ]

    @pytest.mark.asyncio
    async def test_failed_force_import_still_clears_tracking(
        self, store, port, notifier
    ):
        port.import_to_ynab.return_value = ImportResult(
            created_count=0, duplicate_transaction_ids=["t1"]
        )
        await store.import_to_ynab()
        port.force_import_duplicates.side_effect = RuntimeError("rate limited")

        count = await store.force_import_duplicates()

        assert count is None
        assert store.duplicate_tracking == NoDuplicatesKnown()
        assert messages(notifier, NotificationLevel.ERROR) == [
            "Error during force import: rate limited"
        ]

    @pytest.mark.asyncio
    async def test_reset_forgets_session_state(self, store, port):
        await store.load_transactions()
        port.import_to_ynab.return_value = ImportResult(
            created_count=0, duplicate_transaction_ids=["t1"]
        )
        await store.import_to_ynab()
        store.toggle_selection("t1")

        store.reset()

        assert store.transactions.is_not_asked
        assert store.last_import.is_not_asked
        assert store.selected_ids == frozenset()
        assert store.duplicate_tracking == NoDuplicatesKnown()
