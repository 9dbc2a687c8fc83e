"""
Result type threaded through rules, preparation and fill stages.

A stage either succeeds with data or fails with a human-readable error and
an optional machine-readable reason code. Stages return results; they do
not raise to signal an expected rejection.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar


T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Tagged success/failure outcome of one stage."""
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "Result[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, reason: Optional[str] = None) -> "Result[T]":
        return cls(success=False, error=error, reason=reason)

    def __bool__(self) -> bool:
        return self.success
