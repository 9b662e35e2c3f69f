"""Shared test fixtures."""

from tests.shared.fixtures.factories import (
    TestCategoryFactory,
    TestSessionFactory,
    TestTransactionFactory,
)

__all__ = [
    "TestCategoryFactory",
    "TestSessionFactory",
    "TestTransactionFactory",
]
