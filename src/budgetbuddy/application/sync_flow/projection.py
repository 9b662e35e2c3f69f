"""Read-only views over the transaction working set."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from budgetbuddy.domain.sync.value_objects import (
    DuplicateKind,
    SyncTransaction,
    TransactionStatus,
)


class TransactionFilter(str, Enum):
    ALL = "all"
    CATEGORIZED = "categorized"
    UNCATEGORIZED = "uncategorized"
    PENDING = "pending"
    NEEDS_ATTENTION = "needs_attention"
    SKIPPED = "skipped"
    IMPORTED = "imported"
    CONFIRMED_DUPLICATES = "confirmed_duplicates"
    DUPLICATES = "duplicates"


def _is_open(tx: SyncTransaction) -> bool:
    return tx.status not in (TransactionStatus.SKIPPED, TransactionStatus.IMPORTED)


def matches_filter(tx: SyncTransaction, transaction_filter: TransactionFilter) -> bool:
    if transaction_filter == TransactionFilter.ALL:
        return True
    if transaction_filter == TransactionFilter.CATEGORIZED:
        return tx.category_id is not None and _is_open(tx)
    if transaction_filter == TransactionFilter.UNCATEGORIZED:
        return tx.category_id is None and _is_open(tx)
    if transaction_filter == TransactionFilter.PENDING:
        return tx.status == TransactionStatus.PENDING
    if transaction_filter == TransactionFilter.NEEDS_ATTENTION:
        return tx.status == TransactionStatus.NEEDS_ATTENTION
    if transaction_filter == TransactionFilter.SKIPPED:
        return tx.status == TransactionStatus.SKIPPED
    if transaction_filter == TransactionFilter.IMPORTED:
        return tx.status == TransactionStatus.IMPORTED
    if transaction_filter == TransactionFilter.CONFIRMED_DUPLICATES:
        return tx.duplicate_status.kind == DuplicateKind.CONFIRMED_DUPLICATE
    return tx.duplicate_status.is_duplicate


def filter_transactions(
    transactions: Iterable[SyncTransaction],
    transaction_filter: TransactionFilter = TransactionFilter.ALL,
) -> list[SyncTransaction]:
    return [tx for tx in transactions if matches_filter(tx, transaction_filter)]


def count_by_status(
    transactions: Iterable[SyncTransaction],
) -> dict[TransactionStatus, int]:
    """Count rows per status; every status is present, zero if unused."""
    counts = Counter(tx.status for tx in transactions)
    return {status: counts.get(status, 0) for status in TransactionStatus}


def count_duplicates(
    transactions: Iterable[SyncTransaction],
) -> dict[DuplicateKind, int]:
    counts = Counter(tx.duplicate_status.kind for tx in transactions)
    return {kind: counts.get(kind, 0) for kind in DuplicateKind}


def ready_to_import_count(transactions: Iterable[SyncTransaction]) -> int:
    return sum(1 for tx in transactions if tx.is_importable)


@dataclass(frozen=True)
class TransactionSummary:
    total: int = 0
    categorized: int = 0
    uncategorized: int = 0
    skipped: int = 0
    imported: int = 0
    needs_attention: int = 0
    confirmed_duplicates: int = 0
    possible_duplicates: int = 0
    ready_to_import: int = 0


def summarize(transactions: Iterable[SyncTransaction]) -> TransactionSummary:
    """All list counters in a single pass."""
    total = categorized = uncategorized = skipped = imported = 0
    needs_attention = confirmed = possible = ready = 0

    for tx in transactions:
        total += 1
        if _is_open(tx):
            if tx.category_id is not None:
                categorized += 1
            else:
                uncategorized += 1
        if tx.status == TransactionStatus.SKIPPED:
            skipped += 1
        elif tx.status == TransactionStatus.IMPORTED:
            imported += 1
        elif tx.status == TransactionStatus.NEEDS_ATTENTION:
            needs_attention += 1
        if tx.duplicate_status.kind == DuplicateKind.CONFIRMED_DUPLICATE:
            confirmed += 1
        elif tx.duplicate_status.kind == DuplicateKind.POSSIBLE_DUPLICATE:
            possible += 1
        if tx.is_importable:
            ready += 1

    return TransactionSummary(
        total=total,
        categorized=categorized,
        uncategorized=uncategorized,
        skipped=skipped,
        imported=imported,
        needs_attention=needs_attention,
        confirmed_duplicates=confirmed,
        possible_duplicates=possible,
        ready_to_import=ready,
    )
