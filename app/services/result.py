from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from app.errors import RelayError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an upstream call whose failure the caller may choose to tolerate."""

    value: Optional[T] = None
    error: Optional[RelayError] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def err(cls, error: RelayError) -> "Result[T]":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value
