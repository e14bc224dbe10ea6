"""
Outcome type for per-patient evaluations.

Expected failures (a fetch that errors, a patient that times out) travel as
values so a sweep can keep going; only programming errors raise.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


@dataclass(frozen=True, slots=True)
class Result(Generic[ValueT, ErrorT]):
    """Either an evaluation outcome or the error that prevented it, never both."""

    value: ValueT | None = None
    error: ErrorT | None = None

    def __post_init__(self) -> None:
        if (self.value is None) == (self.error is None):
            raise ValueError("Result needs exactly one of value or error")

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self.error is None

    def is_err(self) -> bool:
        return self.error is not None

    def unwrap(self) -> ValueT:
        """Return the value, re-raising the stored error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def unwrap_err(self) -> ErrorT:
        if self.error is None:
            raise ValueError(f"Expected an error, got value {self.value!r}")
        return self.error

    def __repr__(self) -> str:
        if self.error is not None:
            return f"Result.err({self.error!r})"
        return f"Result.ok({self.value!r})"
