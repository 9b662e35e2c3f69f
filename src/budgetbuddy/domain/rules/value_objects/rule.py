"""Categorization rule value objects."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from budgetbuddy.domain.rules.value_objects.pattern import PatternType, TargetField


class Rule(BaseModel):
    """A saved pattern-to-category mapping (read model)."""

    id: UUID
    name: str
    pattern: str
    pattern_type: PatternType = PatternType.CONTAINS
    target_field: TargetField = TargetField.COMBINED
    category_id: str
    category_name: str = ""
    payee_override: str | None = None
    priority: int = 100
    enabled: bool = True

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        status = "ACTIVE" if self.enabled else "INACTIVE"
        return (
            f"Rule[{status}] {self.name}: "
            f"{self.target_field.value} {self.pattern_type.value} '{self.pattern}' "
            f"-> {self.category_name or self.category_id}"
        )


class RuleCreateRequest(BaseModel):
    """Payload for creating a rule."""

    name: str = Field(..., min_length=1, max_length=100)
    pattern: str = Field(..., min_length=1, max_length=500)
    pattern_type: PatternType = PatternType.CONTAINS
    target_field: TargetField = TargetField.COMBINED
    category_id: str = Field(..., min_length=1)
    payee_override: str | None = Field(default=None, max_length=200)
    priority: int = Field(default=100, ge=0, le=10000)

    model_config = ConfigDict(frozen=True)

    @field_validator("name", "category_id", mode="before")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v
