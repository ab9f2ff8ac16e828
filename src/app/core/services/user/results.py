"""Outcomes returned by the user service.

Callers branch on the variant instead of catching exceptions:

    result = service.get_by_id(user_id)
    if isinstance(result, NotFound):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Conflict:
    """A business rule rejected the write; the caller can retry with other values."""

    message: str


@dataclass(frozen=True)
class NotFound:
    user_id: int

    @property
    def message(self) -> str:
        return f"User with ID {self.user_id} not found"


@dataclass(frozen=True)
class Failure:
    """The store raised something the service does not interpret.

    ``cause`` is the original exception object, unchanged.
    """

    cause: Exception
