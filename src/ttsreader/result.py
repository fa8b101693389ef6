"""Explicit success-or-error values returned by caller-facing operations."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from .errors import TTSReaderError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation: either a value or a classified error.

    Exactly one of value/error is meaningful; check ``ok`` first. A
    successful result may legitimately carry ``None`` as its value.
    """

    value: T | None = None
    error: TTSReaderError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: TTSReaderError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value, raising the stored error on failure."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
