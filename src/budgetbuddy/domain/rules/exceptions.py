"""Rules domain exceptions."""

from budgetbuddy.domain.shared.exceptions import ErrorCode, ValidationError


class RuleValidationError(ValidationError):
    """Raised locally when a rule form cannot be submitted."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code=ErrorCode.INVALID_RULE)
