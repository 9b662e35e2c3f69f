"""Review status of a transaction within a sync session."""

from enum import Enum


class TransactionStatus(str, Enum):
    """Status of a bank transaction during review."""

    PENDING = "pending"
    AUTO_CATEGORIZED = "auto_categorized"
    MANUAL_CATEGORIZED = "manual_categorized"
    NEEDS_ATTENTION = "needs_attention"  # Amazon, PayPal and similar
    SKIPPED = "skipped"
    IMPORTED = "imported"

    def is_categorized(self) -> bool:
        return self in (
            TransactionStatus.AUTO_CATEGORIZED,
            TransactionStatus.MANUAL_CATEGORIZED,
        )
