"""Two-branch result type for calls that degrade instead of raising."""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def degraded(self) -> bool:
        return False


@dataclass(frozen=True)
class Degraded(Generic[T]):
    """A fallback value returned in place of a failed call.

    Attributes:
        value: The safe default the caller should use.
        reason: Human-readable explanation of what failed.
    """

    value: T
    reason: str

    @property
    def degraded(self) -> bool:
        return True


Outcome = Union[Ok[T], Degraded[T]]
