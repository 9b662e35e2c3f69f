"""Banking domain exceptions.

Errors raised while talking to the bank: the OAuth login, the push-TAN
approval and the transaction download. The sync flow treats all of them
as session-level failures.
"""

from budgetbuddy.domain.shared.exceptions import DomainException, ErrorCode


class BankingDomainError(DomainException):
    """Base exception for banking domain errors."""


class BankAuthFailedError(BankingDomainError):
    """Raised when the bank rejects or cannot start the login."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Bank authentication failed: {reason}",
            code=ErrorCode.BANK_AUTHENTICATION_FAILED,
            details={"reason": reason},
        )
        self.reason = reason


class TanTimeoutError(BankingDomainError):
    """Raised when the push-TAN was not approved in time.

    There is no client-side timer; the bank signals the timeout.
    """

    def __init__(self, message: str = "TAN confirmation timed out") -> None:
        super().__init__(message=message, code=ErrorCode.TAN_TIMEOUT)


class TransactionFetchFailedError(BankingDomainError):
    """Raised when fetching transactions from the bank fails."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Failed to fetch transactions: {reason}",
            code=ErrorCode.BANK_TRANSACTION_FETCH_FAILED,
            details={"reason": reason},
        )
        self.reason = reason
