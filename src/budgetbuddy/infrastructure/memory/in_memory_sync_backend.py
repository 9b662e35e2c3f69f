"""In-process sync backend for a single user.

Holds one active session and its transactions, replaced by every new sync.
Bank login, TAN and download go through a ``BankConnectionPort``; imports
go through a ``BudgetImportPort``. Used by the CLI demo mode and by tests.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional
from uuid import UUID, uuid4

from budgetbuddy.domain.banking.exceptions import (
    BankAuthFailedError,
    TransactionFetchFailedError,
)
from budgetbuddy.domain.banking.ports import BankConnectionPort
from budgetbuddy.domain.budget.exceptions import CategoryNotFoundError
from budgetbuddy.domain.budget.ports import BudgetImportPort
from budgetbuddy.domain.budget.value_objects import BudgetCategory
from budgetbuddy.domain.shared.exceptions import DomainException
from budgetbuddy.domain.shared.time import utc_now
from budgetbuddy.domain.sync.exceptions import (
    ImportFailedError,
    InvalidSessionStateError,
    SessionNotFoundError,
    SplitValidationError,
    TransactionNotFoundError,
)
from budgetbuddy.domain.sync.ports import SyncSessionPort
from budgetbuddy.domain.sync.value_objects import (
    DuplicateStatus,
    ImportResult,
    SyncSession,
    SyncSessionStatus,
    SyncTransaction,
    TransactionSplit,
    TransactionStatus,
)

logger = logging.getLogger(__name__)


class InMemorySyncBackend(SyncSessionPort):
    """Single-user session store that validates every call like the server."""

    def __init__(
        self,
        bank: BankConnectionPort,
        budget: BudgetImportPort,
        budget_id: Optional[str] = None,
    ):
        self._bank = bank
        self._budget = budget
        self._budget_id = budget_id
        self._session: Optional[SyncSession] = None
        self._transactions: dict[str, SyncTransaction] = {}
        self._categories: Optional[dict[str, BudgetCategory]] = None

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    async def get_current_session(self) -> Optional[SyncSession]:
        return self._session

    async def start_sync(self) -> SyncSession:
        self._session = SyncSession(id=uuid4(), started_at=utc_now())
        self._transactions = {}
        logger.info("Started sync session %s", self._session.id)
        return self._session

    async def initiate_bank_auth(self, session_id: UUID) -> str:
        self._validate_status(session_id, SyncSessionStatus.AWAITING_BANK_AUTH)
        try:
            challenge = await self._bank.start_auth(session_id)
        except DomainException as e:
            self._fail(e.message)
            raise
        except Exception as e:
            error = BankAuthFailedError(str(e))
            self._fail(error.message)
            raise error from e

        self._transition(SyncSessionStatus.AWAITING_TAN)
        return challenge

    async def confirm_tan(self, session_id: UUID) -> None:
        self._validate_status(session_id, SyncSessionStatus.AWAITING_TAN)
        try:
            await self._bank.confirm_tan(session_id)
        except DomainException as e:
            self._fail(e.message)
            raise
        except Exception as e:
            error = BankAuthFailedError(str(e))
            self._fail(error.message)
            raise error from e

        self._transition(SyncSessionStatus.FETCHING_TRANSACTIONS)
        try:
            bank_transactions = await self._bank.fetch_transactions(session_id)
        except DomainException as e:
            self._fail(e.message)
            raise
        except Exception as e:
            error = TransactionFetchFailedError(str(e))
            self._fail(error.message)
            raise error from e

        self._transactions = {
            tx.id: SyncTransaction(transaction=tx) for tx in bank_transactions
        }
        self._session = self._session.model_copy(
            update={"transaction_count": len(self._transactions)}
        )
        self._transition(SyncSessionStatus.REVIEWING_TRANSACTIONS)
        logger.info(
            "Fetched %d transactions for session %s",
            len(self._transactions),
            session_id,
        )

    async def cancel_sync(self, session_id: UUID) -> None:
        self._validate_session(session_id)
        logger.info("Cancelled sync session %s", session_id)
        self._session = None
        self._transactions = {}

    # -------------------------------------------------------------------------
    # Review
    # -------------------------------------------------------------------------

    async def get_transactions(self, session_id: UUID) -> list[SyncTransaction]:
        self._validate_session(session_id)
        return list(self._transactions.values())

    async def categorize_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
        category_id: Optional[str],
        payee_override: Optional[str] = None,
    ) -> SyncTransaction:
        transaction = self._reviewable(session_id, transaction_id)
        if payee_override is not None and category_id == transaction.category_id:
            return self._store(transaction.with_payee_override(payee_override))
        category_name = await self._category_name(category_id)
        return self._store(
            transaction.with_category(category_id, category_name, payee_override)
        )

    async def skip_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
    ) -> SyncTransaction:
        transaction = self._reviewable(session_id, transaction_id)
        return self._store(transaction.skipped())

    async def unskip_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
    ) -> SyncTransaction:
        transaction = self._reviewable(session_id, transaction_id)
        return self._store(transaction.unskipped())

    async def split_transaction(
        self,
        session_id: UUID,
        transaction_id: str,
        splits: list[TransactionSplit],
    ) -> SyncTransaction:
        transaction = self._reviewable(session_id, transaction_id)
        if len(splits) < 2:
            raise SplitValidationError()

        named = [
            split.model_copy(
                update={
                    "category_name": await self._category_name(split.category_id)
                    or split.category_name
                }
            )
            for split in splits
        ]
        return self._store(transaction.with_splits(named))

    async def clear_split(
        self,
        session_id: UUID,
        transaction_id: str,
    ) -> SyncTransaction:
        transaction = self._reviewable(session_id, transaction_id)
        return self._store(transaction.without_splits())

    async def bulk_categorize(
        self,
        session_id: UUID,
        transaction_ids: list[str],
        category_id: str,
    ) -> list[SyncTransaction]:
        self._validate_status(session_id, SyncSessionStatus.REVIEWING_TRANSACTIONS)
        category_name = await self._category_name(category_id)
        transactions = [self._get(tx_id) for tx_id in transaction_ids]
        return [
            self._store(transaction.with_category(category_id, category_name))
            for transaction in transactions
        ]

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    async def import_to_ynab(self, session_id: UUID) -> ImportResult:
        self._validate_status(session_id, SyncSessionStatus.REVIEWING_TRANSACTIONS)
        self._transition(SyncSessionStatus.IMPORTING_TO_YNAB)

        importable = [tx for tx in self._transactions.values() if tx.is_importable]
        try:
            result = await self._budget.import_transactions(session_id, importable)
        except DomainException as e:
            error = ImportFailedError(len(importable), e.message)
            self._fail(error.message)
            raise error from e
        except Exception as e:
            error = ImportFailedError(len(importable), str(e))
            self._fail(error.message)
            raise error from e

        duplicates = set(result.duplicate_transaction_ids)
        for transaction in importable:
            if transaction.id in duplicates:
                self._store(
                    transaction.model_copy(
                        update={
                            "duplicate_status": DuplicateStatus.confirmed(
                                transaction.transaction.reference or transaction.id
                            )
                        }
                    )
                )
            else:
                self._store(transaction.imported())

        self._complete()
        logger.info(
            "Imported %d transactions for session %s, %d duplicates",
            result.created_count,
            session_id,
            len(duplicates),
        )
        return result

    async def force_import_duplicates(
        self,
        session_id: UUID,
        transaction_ids: list[str],
    ) -> int:
        self._validate_status(
            session_id,
            SyncSessionStatus.REVIEWING_TRANSACTIONS,
            SyncSessionStatus.COMPLETED,
        )
        transactions = [self._get(tx_id) for tx_id in transaction_ids]
        try:
            count = await self._budget.force_import(session_id, transactions)
        except DomainException as e:
            raise ImportFailedError(len(transactions), e.message) from e
        except Exception as e:
            raise ImportFailedError(len(transactions), str(e)) from e

        for transaction in transactions:
            self._store(transaction.imported())
        self._update_counts()
        logger.info("Force imported %d transactions for session %s", count, session_id)
        return count

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _validate_session(self, session_id: UUID) -> SyncSession:
        if self._session is None or self._session.id != session_id:
            raise SessionNotFoundError(session_id)
        return self._session

    def _validate_status(
        self,
        session_id: UUID,
        *expected: SyncSessionStatus,
    ) -> SyncSession:
        session = self._validate_session(session_id)
        if session.status not in expected:
            raise InvalidSessionStateError(
                expected=" or ".join(status.value for status in expected),
                actual=session.status.value,
            )
        return session

    def _transition(self, target: SyncSessionStatus) -> None:
        current = self._session.status
        if not current.can_transition_to(target):
            raise InvalidSessionStateError(expected=target.value, actual=current.value)
        self._session = self._session.model_copy(update={"status": target})
        logger.info(
            "Session %s: %s -> %s", self._session.id, current.value, target.value
        )

    def _fail(self, reason: str) -> None:
        if self._session is None or self._session.is_terminal:
            return
        logger.warning("Session %s failed: %s", self._session.id, reason)
        self._session = self._session.model_copy(
            update={
                "status": SyncSessionStatus.FAILED,
                "failure_reason": reason,
                "completed_at": utc_now(),
            }
        )

    def _complete(self) -> None:
        self._update_counts()
        self._transition(SyncSessionStatus.COMPLETED)
        self._session = self._session.model_copy(update={"completed_at": utc_now()})

    def _update_counts(self) -> None:
        statuses = [tx.status for tx in self._transactions.values()]
        self._session = self._session.model_copy(
            update={
                "imported_count": statuses.count(TransactionStatus.IMPORTED),
                "skipped_count": statuses.count(TransactionStatus.SKIPPED),
            }
        )

    def _reviewable(self, session_id: UUID, transaction_id: str) -> SyncTransaction:
        self._validate_status(session_id, SyncSessionStatus.REVIEWING_TRANSACTIONS)
        return self._get(transaction_id)

    def _get(self, transaction_id: str) -> SyncTransaction:
        try:
            return self._transactions[transaction_id]
        except KeyError:
            raise TransactionNotFoundError(transaction_id) from None

    def _store(self, transaction: SyncTransaction) -> SyncTransaction:
        self._transactions[transaction.id] = transaction
        return transaction

    async def _category_name(self, category_id: Optional[str]) -> Optional[str]:
        if category_id is None:
            return None
        categories = await self._load_categories()
        if not categories:
            return None
        if category_id not in categories:
            raise CategoryNotFoundError(category_id)
        return categories[category_id].name

    async def _load_categories(self) -> dict[str, BudgetCategory]:
        if self._categories is None:
            if self._budget_id is None:
                self._categories = {}
            else:
                listed: Iterable[BudgetCategory] = await self._budget.list_categories(
                    self._budget_id
                )
                self._categories = {category.id: category for category in listed}
        return self._categories
