"""YNAB budget category value object."""

from pydantic import BaseModel, ConfigDict, Field


class BudgetCategory(BaseModel):
    """A category of the user's YNAB budget."""

    id: str = Field(..., min_length=1)
    name: str
    group_name: str = ""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @property
    def display_name(self) -> str:
        if self.group_name:
            return f"{self.group_name}: {self.name}"
        return self.name
