"""Sync transaction value object."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from budgetbuddy.domain.banking.value_objects import BankTransaction
from budgetbuddy.domain.sync.value_objects.duplicate_status import DuplicateStatus
from budgetbuddy.domain.sync.value_objects.transaction_split import (
    ExternalLink,
    TransactionSplit,
)
from budgetbuddy.domain.sync.value_objects.transaction_status import (
    TransactionStatus,
)


class SyncTransaction(BaseModel):
    """A bank transaction together with its review state in one session.

    ``transaction`` is immutable bank data. The review fields are replaced
    wholesale by the backend's canonical copy after every row operation;
    locally they only change through optimistic ``model_copy`` updates.
    """

    transaction: BankTransaction
    status: TransactionStatus = TransactionStatus.PENDING
    category_id: str | None = None
    category_name: str | None = None
    matched_rule_id: UUID | None = None
    payee_override: str | None = None
    external_links: list[ExternalLink] = Field(default_factory=list)
    user_notes: str | None = None
    duplicate_status: DuplicateStatus = Field(default_factory=DuplicateStatus)
    splits: list[TransactionSplit] | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def id(self) -> str:
        return self.transaction.id

    @property
    def is_split(self) -> bool:
        return bool(self.splits)

    @property
    def is_skipped(self) -> bool:
        return self.status == TransactionStatus.SKIPPED

    @property
    def is_categorized(self) -> bool:
        return self.category_id is not None or self.is_split

    @property
    def import_category_id(self) -> str | None:
        # A split is imported as one posting per allocation.
        if self.is_split:
            return None
        return self.category_id

    @property
    def is_importable(self) -> bool:
        return (
            self.status not in (TransactionStatus.SKIPPED, TransactionStatus.IMPORTED)
            and self.is_categorized
        )

    def with_category(
        self,
        category_id: str | None,
        category_name: str | None = None,
        payee_override: str | None = None,
    ) -> "SyncTransaction":
        """Assign or clear the category. Skipped rows stay skipped.

        Clearing the category also clears any split.
        """
        if self.is_skipped:
            status = TransactionStatus.SKIPPED
        elif category_id is not None:
            status = TransactionStatus.MANUAL_CATEGORIZED
        else:
            status = TransactionStatus.PENDING

        update: dict = {
            "category_id": category_id,
            "category_name": category_name if category_id is not None else None,
            "status": status,
        }
        if category_id is None:
            update["splits"] = None
        if payee_override is not None:
            update["payee_override"] = payee_override or None
        return self.model_copy(update=update)

    def with_payee_override(self, payee: str | None) -> "SyncTransaction":
        """Rename the payee only; category, splits and status are kept."""
        return self.model_copy(update={"payee_override": payee or None})

    def skipped(self) -> "SyncTransaction":
        return self.model_copy(update={"status": TransactionStatus.SKIPPED})

    def unskipped(self) -> "SyncTransaction":
        # The category is kept, the row goes back to review.
        return self.model_copy(update={"status": TransactionStatus.PENDING})

    def with_splits(self, splits: list[TransactionSplit]) -> "SyncTransaction":
        status = (
            TransactionStatus.SKIPPED
            if self.is_skipped
            else TransactionStatus.MANUAL_CATEGORIZED
        )
        return self.model_copy(update={"splits": list(splits), "status": status})

    def without_splits(self) -> "SyncTransaction":
        status = self.status
        if not self.is_skipped and self.category_id is None:
            status = TransactionStatus.PENDING
        return self.model_copy(update={"splits": None, "status": status})

    def imported(self) -> "SyncTransaction":
        return self.model_copy(update={"status": TransactionStatus.IMPORTED})
