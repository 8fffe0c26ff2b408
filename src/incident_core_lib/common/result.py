"""Result algebra for exception-free error propagation.

A ``Result`` is either a ``Failure`` carrying an error value or a ``Success``
carrying a value. Every fallible boundary in the library (collaborator calls,
parsing, validation) returns one of the two instead of raising, so pipelines can
be composed with ``map``/``chain`` and eliminated with ``fold``.

Example:
    ```python
    result = validate(submission).chain(lambda _: normalize(submission))
    message = result.fold(
        lambda errors: f"rejected: {errors}",
        lambda incident: f"accepted: {incident.title}",
    )
    ```
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

F = TypeVar("F")
S = TypeVar("S")
T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Failure(Generic[F]):
    """Failure variant: holds the error, ignores success-side combinators."""

    error: F

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_failure(self) -> bool:
        return True

    def map(self, f: Callable[[Any], Any]) -> "Failure[F]":
        return self

    def map_failure(self, f: Callable[[F], U]) -> "Failure[U]":
        return Failure(f(self.error))

    def chain(self, f: Callable[[Any], "Result[F, Any]"]) -> "Failure[F]":
        return self

    def fold(self, on_failure: Callable[[F], T], on_success: Callable[[Any], T]) -> T:
        return on_failure(self.error)

    def get_or_none(self) -> None:
        return None

    def get_or_else(self, default: T) -> T:
        return default

    def failure_or_none(self) -> F:
        return self.error

    def on_success(self, action: Callable[[Any], Any]) -> "Failure[F]":
        return self

    def on_failure(self, action: Callable[[F], Any]) -> "Failure[F]":
        action(self.error)
        return self


@dataclass(frozen=True)
class Success(Generic[S]):
    """Success variant: holds the value, ignores failure-side combinators."""

    value: S

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_failure(self) -> bool:
        return False

    def map(self, f: Callable[[S], U]) -> "Success[U]":
        return Success(f(self.value))

    def map_failure(self, f: Callable[[Any], Any]) -> "Success[S]":
        return self

    def chain(self, f: Callable[[S], "Result[Any, U]"]) -> "Result[Any, U]":
        return f(self.value)

    def fold(self, on_failure: Callable[[Any], T], on_success: Callable[[S], T]) -> T:
        return on_success(self.value)

    def get_or_none(self) -> S:
        return self.value

    def get_or_else(self, default: Any) -> S:
        return self.value

    def failure_or_none(self) -> None:
        return None

    def on_success(self, action: Callable[[S], Any]) -> "Success[S]":
        action(self.value)
        return self

    def on_failure(self, action: Callable[[Any], Any]) -> "Success[S]":
        return self


# Closed sum: nothing else is a Result.
Result = Union[Failure[F], Success[S]]


def attempt(fn: Callable[[], S], on_error: Callable[[Exception], F]) -> "Result[F, S]":
    """Run ``fn`` and wrap its outcome, converting a raised exception with ``on_error``."""
    try:
        return Success(fn())
    except Exception as e:
        return Failure(on_error(e))


async def attempt_async(
    fn: Callable[[], Awaitable[S]],
    on_error: Callable[[Exception], F],
) -> "Result[F, S]":
    """Async counterpart of :func:`attempt` for collaborator coroutines."""
    try:
        return Success(await fn())
    except Exception as e:
        return Failure(on_error(e))


def from_optional(value: Optional[S], if_none: Callable[[], F]) -> "Result[F, S]":
    """Lift an optional lookup result; ``None`` becomes ``Failure(if_none())``."""
    if value is None:
        return Failure(if_none())
    return Success(value)
