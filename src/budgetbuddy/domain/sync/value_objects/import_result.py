"""Result of importing a session into the budget."""

from pydantic import BaseModel, ConfigDict, Field


class ImportResult(BaseModel):
    """Partial-success outcome of an import.

    ``created_count`` transactions were created; the ids listed in
    ``duplicate_transaction_ids`` were refused because the budget already
    holds them and can be re-submitted with a forced import.
    """

    created_count: int = Field(default=0, ge=0)
    duplicate_transaction_ids: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicate_transaction_ids)
