"""User-facing notifications emitted by the sync flow.

The sync flow is the only place where exceptions from collaborators turn
into messages for the user. ``Notifier.report`` does that conversion, logs
the failure once and emits exactly one ERROR notification for it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional
from uuid import UUID, uuid4

from budgetbuddy.domain.shared.exceptions import DomainException
from budgetbuddy.domain.sync.exceptions import StoreError

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A transient message for the toast layer."""

    message: str
    level: NotificationLevel
    id: UUID = field(default_factory=uuid4)


NotificationSink = Callable[[Notification], None]


def to_domain_error(operation: str, error: Exception) -> DomainException:
    """Return ``error`` as a domain exception, wrapping unexpected ones."""
    if isinstance(error, DomainException):
        return error
    return StoreError(operation, str(error) or error.__class__.__name__)


class Notifier:
    """Collects notifications and forwards each one to an optional sink."""

    def __init__(self, sink: Optional[NotificationSink] = None):
        self._sink = sink
        self._notifications: list[Notification] = []

    @property
    def notifications(self) -> tuple[Notification, ...]:
        return tuple(self._notifications)

    def notify(self, message: str, level: NotificationLevel) -> Notification:
        notification = Notification(message=message, level=level)
        self._notifications.append(notification)
        if self._sink is not None:
            self._sink(notification)
        return notification

    def success(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.SUCCESS)

    def info(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.INFO)

    def warning(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.WARNING)

    def error(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.ERROR)

    def report(self, operation: str, error: Exception) -> DomainException:
        """Log and notify a failed collaborator call.

        Returns
        -------
        The failure as a domain exception, so callers can store its message
        """
        domain_error = to_domain_error(operation, error)
        logger.warning(
            "%s failed: %s (code=%s)",
            operation,
            domain_error.message,
            domain_error.code.value,
        )
        self.error(domain_error.message)
        return domain_error

    def dismiss(self, notification_id: UUID) -> None:
        self._notifications = [
            n for n in self._notifications if n.id != notification_id
        ]

    def clear(self) -> None:
        self._notifications.clear()
