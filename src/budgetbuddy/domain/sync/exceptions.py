"""Sync domain exceptions.

Errors about the sync session itself and about the review operations
performed on its transactions. Banking failures live in
``budgetbuddy.domain.banking.exceptions``; the sync flow treats both
families as session-level failures.
"""

from uuid import UUID

from budgetbuddy.domain.shared.exceptions import (
    BusinessRuleViolation,
    DomainException,
    EntityNotFoundError,
    ErrorCode,
    ValidationError,
)


class SyncError(DomainException):
    """Base exception for sync-related errors."""


class SessionNotFoundError(EntityNotFoundError):
    """Raised when the referenced session is not the active one."""

    def __init__(self, session_id: UUID | str) -> None:
        super().__init__(
            message=f"Session not found: {session_id}",
            code=ErrorCode.SESSION_NOT_FOUND,
            details={"session_id": str(session_id)},
        )


class TransactionNotFoundError(EntityNotFoundError):
    """Raised when a transaction id is not part of the active session."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(
            message=f"Transaction not found: {transaction_id}",
            code=ErrorCode.TRANSACTION_NOT_FOUND,
            details={"transaction_id": transaction_id},
        )


class InvalidSessionStateError(BusinessRuleViolation):
    """Raised when an operation is not allowed in the session's status."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            message=f"Invalid session state. Expected: {expected}, Actual: {actual}",
            code=ErrorCode.INVALID_SESSION_STATE,
            details={"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


class ImportFailedError(SyncError):
    """Raised when importing into the budget fails."""

    def __init__(self, failed_count: int, reason: str) -> None:
        super().__init__(
            message=f"Failed to import {failed_count} transactions: {reason}",
            code=ErrorCode.IMPORT_FAILED,
            details={"failed_count": failed_count, "reason": reason},
        )
        self.failed_count = failed_count


class StoreError(SyncError):
    """Raised when the session store fails or an unexpected error surfaces."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(
            message=f"Error during {operation}: {detail}",
            code=ErrorCode.STORE_ERROR,
            details={"operation": operation, "detail": detail},
        )
        self.operation = operation


class SplitValidationError(ValidationError):
    """Raised locally when a split cannot be submitted."""

    def __init__(self, message: str = "At least 2 splits are required") -> None:
        super().__init__(message=message, code=ErrorCode.INVALID_SPLIT)
