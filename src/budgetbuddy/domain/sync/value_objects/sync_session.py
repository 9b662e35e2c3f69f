"""Sync session value object."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from budgetbuddy.domain.shared.time import ensure_tz_aware
from budgetbuddy.domain.sync.value_objects.session_status import SyncSessionStatus


class SyncSession(BaseModel):
    """One banking-to-budget reconciliation attempt.

    Instances are snapshots of the backend's record. The review flow never
    edits them; it replaces them with whatever the backend returns next.
    """

    id: UUID
    started_at: datetime
    completed_at: datetime | None = None
    status: SyncSessionStatus = SyncSessionStatus.AWAITING_BANK_AUTH
    failure_reason: str | None = Field(
        default=None,
        description="Set when status is FAILED",
    )
    transaction_count: int = Field(default=0, ge=0)
    imported_count: int = Field(default=0, ge=0)
    skipped_count: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @field_validator("started_at", "completed_at")
    @classmethod
    def _tz_aware(cls, value: datetime | None) -> datetime | None:
        return ensure_tz_aware(value) if value is not None else None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal()

    @property
    def is_failed(self) -> bool:
        return self.status == SyncSessionStatus.FAILED

    def describe_status(self) -> str:
        if self.is_failed and self.failure_reason:
            return f"{self.status.label}: {self.failure_reason}"
        return self.status.label
