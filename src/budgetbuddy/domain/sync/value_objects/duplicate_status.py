"""Duplicate classification of a transaction against the budget."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class DuplicateKind(str, Enum):
    NOT_DUPLICATE = "not_duplicate"
    POSSIBLE_DUPLICATE = "possible_duplicate"  # date/amount/payee match
    CONFIRMED_DUPLICATE = "confirmed_duplicate"  # reference or import id match


class DuplicateStatus(BaseModel):
    """Whether the budget already holds a transaction.

    Always set by the backend; the client only displays and counts it.
    """

    kind: DuplicateKind = DuplicateKind.NOT_DUPLICATE
    reason: str | None = None
    reference: str | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def not_duplicate(cls) -> DuplicateStatus:
        return cls()

    @classmethod
    def possible(cls, reason: str) -> DuplicateStatus:
        return cls(kind=DuplicateKind.POSSIBLE_DUPLICATE, reason=reason)

    @classmethod
    def confirmed(cls, reference: str) -> DuplicateStatus:
        return cls(kind=DuplicateKind.CONFIRMED_DUPLICATE, reference=reference)

    @property
    def is_duplicate(self) -> bool:
        return self.kind != DuplicateKind.NOT_DUPLICATE
