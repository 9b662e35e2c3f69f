"""Sync domain ports."""

from budgetbuddy.domain.sync.ports.sync_session_port import SyncSessionPort

__all__ = ["SyncSessionPort"]
