"""In-process implementation of the sync backend."""

from budgetbuddy.infrastructure.memory.in_memory_sync_backend import (
    InMemorySyncBackend,
)

__all__ = ["InMemorySyncBackend"]
