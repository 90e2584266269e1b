"""
Result Monad for Domain Operations
Represents success or failure without exceptions
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


class ErrorKind(str, Enum):
    """Broad category of an expected failure."""

    FAILURE = "failure"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Error:
    """
    Typed error carried by a Failure.

    Attributes:
        code: Stable machine-readable code (e.g. "EXHAUSTED")
        message: Human-readable description
        kind: Category used by callers to decide how to react
    """

    code: str
    message: str
    kind: ErrorKind = ErrorKind.FAILURE

    @classmethod
    def failure(cls, code: str, message: str) -> Error:
        return cls(code, message, ErrorKind.FAILURE)

    @classmethod
    def not_found(cls, code: str, message: str) -> Error:
        return cls(code, message, ErrorKind.NOT_FOUND)

    @classmethod
    def validation(cls, code: str, message: str) -> Error:
        return cls(code, message, ErrorKind.VALIDATION)

    @classmethod
    def conflict(cls, code: str, message: str) -> Error:
        return cls(code, message, ErrorKind.CONFLICT)

    @classmethod
    def forbidden(cls, code: str, message: str) -> Error:
        return cls(code, message, ErrorKind.FORBIDDEN)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


@dataclass(frozen=True)
class Success(Generic[T]):
    """
    Represents a successful operation result.

    Attributes:
        value: The successful result value
    """

    value: T

    def is_success(self) -> bool:
        """Always returns True for Success."""
        return True

    def is_failure(self) -> bool:
        """Always returns False for Success."""
        return False

    def map(self, func: Callable[[T], Any]) -> Success[Any]:
        """Transform the success value using the provided function."""
        return Success(func(self.value))

    def flat_map(self, func: Callable[[T], Success[Any] | Failure[Any]]) -> Success[Any] | Failure[Any]:
        """
        Chain operations that return Results.

        Args:
            func: Function that returns a Result

        Returns:
            Result from applying func to the value
        """
        return func(self.value)

    def or_else(self, default: T) -> T:
        """Return the value (ignores default)."""
        return self.value

    def unwrap(self) -> T:
        """Return the value."""
        return self.value


@dataclass(frozen=True)
class Failure(Generic[E]):
    """
    Represents a failed operation result.

    Attributes:
        error: The Error describing what went wrong
    """

    error: E

    def is_success(self) -> bool:
        """Always returns False for Failure."""
        return False

    def is_failure(self) -> bool:
        """Always returns True for Failure."""
        return True

    def map(self, func: Callable[[Any], Any]) -> Failure[E]:
        """Does nothing for Failure (error propagates)."""
        return self

    def flat_map(self, func: Callable[[Any], Any]) -> Failure[E]:
        """Does nothing for Failure (error propagates)."""
        return self

    def or_else(self, default: Any) -> Any:
        """Return the default value instead of error."""
        return default

    def unwrap(self) -> None:
        """
        Raise an exception with the error.

        Raises:
            ValueError: With the error message
        """
        raise ValueError(f"Attempted to unwrap a Failure: {self.error}")


# Type alias for Result
Result = Success[T] | Failure[E]


def ok(value: T = True) -> Success[T]:  # type: ignore[assignment]
    """Shorthand for ``Success(value)``; defaults to ``True`` for step-style results."""
    return Success(value)


def fail(error: Error) -> Failure[Error]:
    """Shorthand for ``Failure(error)``."""
    return Failure(error)
