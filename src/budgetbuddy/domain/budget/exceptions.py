"""Budgeting system (YNAB) exceptions.

These represent failures reported by the budgeting API or by the
transport in front of it.
"""

from budgetbuddy.domain.shared.exceptions import (
    DomainException,
    EntityNotFoundError,
    ErrorCode,
)


class BudgetError(DomainException):
    """Base exception for budgeting system errors."""


class BudgetUnauthorizedError(BudgetError):
    """Raised when the personal access token is rejected."""

    def __init__(self, message: str = "invalid or expired token") -> None:
        super().__init__(
            message=f"YNAB authorization failed: {message}",
            code=ErrorCode.BUDGET_UNAUTHORIZED,
        )


class BudgetNotFoundError(EntityNotFoundError):
    """Raised when the configured budget does not exist."""

    def __init__(self, budget_id: str) -> None:
        super().__init__(
            message=f"Budget not found: {budget_id}",
            code=ErrorCode.BUDGET_NOT_FOUND,
            details={"budget_id": budget_id},
        )


class BudgetAccountNotFoundError(EntityNotFoundError):
    """Raised when the budget has no account to import into."""

    def __init__(self, account_id: str) -> None:
        super().__init__(
            message=f"Budget account not found: {account_id}",
            code=ErrorCode.ACCOUNT_NOT_FOUND,
            details={"account_id": account_id},
        )


class CategoryNotFoundError(EntityNotFoundError):
    """Raised when a category id is unknown to the budget."""

    def __init__(self, category_id: str) -> None:
        super().__init__(
            message=f"Category not found: {category_id}",
            code=ErrorCode.CATEGORY_NOT_FOUND,
            details={"category_id": category_id},
        )


class RateLimitedError(BudgetError):
    """Raised when YNAB throttles requests."""

    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__(
            message=(
                f"YNAB rate limit exceeded. Retry after {retry_after_seconds} seconds"
            ),
            code=ErrorCode.RATE_LIMITED,
            details={"retry_after_seconds": retry_after_seconds},
        )
        self.retry_after_seconds = retry_after_seconds


class BudgetNetworkError(BudgetError):
    """Raised when the remote service cannot be reached."""

    def __init__(self, message: str) -> None:
        super().__init__(
            message=f"Network error: {message}",
            code=ErrorCode.NETWORK_ERROR,
        )


class InvalidResponseError(BudgetError):
    """Raised when a response cannot be decoded."""

    def __init__(self, message: str) -> None:
        super().__init__(
            message=f"Invalid response: {message}",
            code=ErrorCode.INVALID_RESPONSE,
        )
