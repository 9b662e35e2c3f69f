"""Split allocation and external link value objects."""

from pydantic import BaseModel, ConfigDict, Field

from budgetbuddy.domain.banking.value_objects import Money


class TransactionSplit(BaseModel):
    """One category allocation of a split transaction."""

    category_id: str = Field(..., min_length=1)
    category_name: str = ""
    amount: Money
    memo: str | None = None

    model_config = ConfigDict(frozen=True)


class ExternalLink(BaseModel):
    """Read-only deep link shown next to a transaction (e.g. order history)."""

    label: str
    url: str

    model_config = ConfigDict(frozen=True)
