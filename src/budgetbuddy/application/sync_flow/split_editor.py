"""Editor for dividing one transaction across several categories."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional, Union

from budgetbuddy.application.sync_flow.notifications import Notifier
from budgetbuddy.application.sync_flow.reconciliation import (
    TransactionReconciliationStore,
)
from budgetbuddy.domain.banking.value_objects import Money
from budgetbuddy.domain.sync.exceptions import SplitValidationError
from budgetbuddy.domain.sync.value_objects import SyncTransaction, TransactionSplit

logger = logging.getLogger(__name__)

AmountLike = Union[Decimal, int, str]


def _to_decimal(value: AmountLike) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class SplitAllocation:
    """One editable row of the split editor."""

    category_id: str
    amount: Decimal
    category_name: str = ""
    memo: Optional[str] = None


@dataclass(frozen=True)
class SplitEditState:
    """Split breakdown under edit for a single transaction.

    ``remaining_amount`` is the transaction amount minus the sum of all
    allocations. It is kept up to date incrementally and is only advisory:
    an unbalanced split can still be saved.
    """

    transaction_id: str
    splits: tuple[SplitAllocation, ...]
    remaining_amount: Decimal
    currency: str

    @property
    def allocated_amount(self) -> Decimal:
        return sum((split.amount for split in self.splits), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return self.remaining_amount == 0

    @property
    def can_save(self) -> bool:
        return len(self.splits) >= 2

    def to_transaction_splits(self) -> list[TransactionSplit]:
        return [
            TransactionSplit(
                category_id=split.category_id,
                category_name=split.category_name,
                amount=Money(amount=split.amount, currency=self.currency),
                memo=split.memo,
            )
            for split in self.splits
        ]


class SplitEditor:
    """Holds at most one ``SplitEditState`` and folds it back into the store."""

    def __init__(self, store: TransactionReconciliationStore, notifier: Notifier):
        self._store = store
        self._notifier = notifier
        self._state: Optional[SplitEditState] = None

    @property
    def state(self) -> Optional[SplitEditState]:
        return self._state

    def start(self, transaction_id: str) -> Optional[SplitEditState]:
        transaction = self._store.get_transaction(transaction_id)
        if transaction is None:
            logger.debug("Cannot split unknown transaction %s", transaction_id)
            return None

        self._state = self._seed(transaction)
        return self._state

    def cancel(self) -> None:
        self._state = None

    def add_split(
        self,
        category_id: str,
        amount: AmountLike,
        category_name: str = "",
        memo: Optional[str] = None,
    ) -> None:
        if self._state is None:
            return

        value = _to_decimal(amount)
        allocation = SplitAllocation(
            category_id=category_id,
            amount=value,
            category_name=category_name or self._store.category_name(category_id) or "",
            memo=memo,
        )
        self._state = replace(
            self._state,
            splits=self._state.splits + (allocation,),
            remaining_amount=self._state.remaining_amount - value,
        )

    def remove_split(self, index: int) -> None:
        if not self._has_index(index):
            return

        splits = list(self._state.splits)
        removed = splits.pop(index)
        self._state = replace(
            self._state,
            splits=tuple(splits),
            remaining_amount=self._state.remaining_amount + removed.amount,
        )

    def update_amount(self, index: int, amount: AmountLike) -> None:
        if not self._has_index(index):
            return

        value = _to_decimal(amount)
        splits = list(self._state.splits)
        old_amount = splits[index].amount
        splits[index] = replace(splits[index], amount=value)
        self._state = replace(
            self._state,
            splits=tuple(splits),
            remaining_amount=self._state.remaining_amount + (old_amount - value),
        )

    def update_memo(self, index: int, memo: Optional[str]) -> None:
        if not self._has_index(index):
            return

        splits = list(self._state.splits)
        splits[index] = replace(splits[index], memo=memo or None)
        self._state = replace(self._state, splits=tuple(splits))

    async def save(self) -> Optional[SyncTransaction]:
        """Submit the split; the editor stays open if the save fails."""
        state = self._state
        if state is None:
            return None

        if not state.can_save:
            error = SplitValidationError()
            logger.debug("Rejected split save for %s: %s", state.transaction_id, error)
            self._notifier.warning(error.message)
            return None

        if not state.is_balanced:
            logger.debug(
                "Saving unbalanced split for %s, remaining %s",
                state.transaction_id,
                state.remaining_amount,
            )

        updated = await self._store.split(
            state.transaction_id,
            state.to_transaction_splits(),
        )
        if updated is not None and self._state is state:
            self._state = None
        return updated

    def _has_index(self, index: int) -> bool:
        return self._state is not None and 0 <= index < len(self._state.splits)

    @staticmethod
    def _seed(transaction: SyncTransaction) -> SplitEditState:
        existing = tuple(
            SplitAllocation(
                category_id=split.category_id,
                amount=split.amount.amount,
                category_name=split.category_name,
                memo=split.memo,
            )
            for split in transaction.splits or []
        )
        allocated = sum((split.amount for split in existing), Decimal("0"))
        return SplitEditState(
            transaction_id=transaction.id,
            splits=existing,
            remaining_amount=transaction.transaction.amount.amount - allocated,
            currency=transaction.transaction.amount.currency,
        )
