"""
Error taxonomy and the tagged Result type returned by execution strategies.

Strategies never raise across their public boundary: hard validation
problems come back as ``Result.failure(ValidationError(...))`` and unexpected
exceptions are wrapped in ``InfrastructureError``. Advisory anomalies are
logged as warnings and never reach this module.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class ExecutionError(Exception):
    """Base class for every failure reported by the engine."""

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(ExecutionError):
    """Raised (or returned) when input data blocks progression."""

    pass


class InfrastructureError(ExecutionError):
    """An unexpected exception inside a strategy or one of its dependencies."""

    pass


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Success/failure container.

    Exactly one of ``value`` and ``error`` is meaningful: ``error is None``
    marks a success.
    """

    value: T | None = None
    error: ExecutionError | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ExecutionError | str) -> "Result[T]":
        if isinstance(error, str):
            error = ExecutionError(error)
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    def unwrap(self) -> T:
        """Return the value, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
