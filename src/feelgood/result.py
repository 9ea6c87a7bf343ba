"""Outcome type returned by operations that talk to external services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Either a value or a human-readable error message.

    Failures are terminal for the operation that produced them; nothing in the
    application retries automatically.
    """

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return ``True`` when the operation succeeded."""
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        """Build a successful result."""
        return cls(value=value)

    @classmethod
    def failure(cls, message: str) -> "Result[T]":
        """Build a failed result carrying ``message``."""
        return cls(error=message)


__all__ = ["Result"]
