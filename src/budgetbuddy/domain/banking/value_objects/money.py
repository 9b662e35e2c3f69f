"""Money value object."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class Money(BaseModel):
    """A signed amount together with its ISO 4217 currency code."""

    amount: Decimal = Field(..., description="Negative for expenses")
    currency: str = Field(default="EUR", min_length=3, max_length=3)

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> str:
        return str(value)

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"
