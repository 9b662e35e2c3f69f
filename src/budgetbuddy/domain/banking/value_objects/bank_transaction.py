"""Bank transaction value object."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from budgetbuddy.domain.banking.value_objects.money import Money


class BankTransaction(BaseModel):
    """Value object representing a transaction as booked by the bank."""

    id: str = Field(..., min_length=1, description="Bank-assigned identifier")
    booking_date: date = Field(..., description="When transaction was booked")
    amount: Money
    payee: str | None = Field(default=None, description="Name of counterparty")
    memo: str = Field(default="", description="Remittance information")
    reference: str = Field(default="", description="Bank reference for dedup")

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    @field_serializer("booking_date")
    def serialize_date(self, value: date) -> str:
        return value.isoformat()

    def is_credit(self) -> bool:
        return self.amount.amount > 0

    def is_debit(self) -> bool:
        return self.amount.amount < 0

    def __str__(self) -> str:
        direction = "+" if self.is_credit() else ""
        return (
            f"{self.booking_date}: {direction}{self.amount} "
            f"- {(self.payee or self.memo)[:50]}"
        )
