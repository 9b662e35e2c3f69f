"""Load state of a value fetched from a collaborator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")


class RemoteState(str, Enum):
    NOT_ASKED = "not_asked"
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class RemoteData(Generic[T]):
    """A value that is not requested yet, loading, loaded, or failed.

    ``value`` is only meaningful for SUCCESS and ``error`` only for FAILURE.
    """

    state: RemoteState = RemoteState.NOT_ASKED
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def not_asked(cls) -> RemoteData[T]:
        return cls()

    @classmethod
    def loading(cls) -> RemoteData[T]:
        return cls(state=RemoteState.LOADING)

    @classmethod
    def success(cls, value: T) -> RemoteData[T]:
        return cls(state=RemoteState.SUCCESS, value=value)

    @classmethod
    def failure(cls, error: str) -> RemoteData[T]:
        return cls(state=RemoteState.FAILURE, error=error)

    @property
    def is_not_asked(self) -> bool:
        return self.state == RemoteState.NOT_ASKED

    @property
    def is_loading(self) -> bool:
        return self.state == RemoteState.LOADING

    @property
    def is_success(self) -> bool:
        return self.state == RemoteState.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.state == RemoteState.FAILURE

    def map(self, fn: Callable[[T], U]) -> RemoteData[U]:
        if self.is_success:
            return RemoteData.success(fn(self.value))  # type: ignore[arg-type]
        return RemoteData(state=self.state, error=self.error)

    def with_default(self, default: T) -> T:
        if self.is_success:
            return self.value  # type: ignore[return-value]
        return default
