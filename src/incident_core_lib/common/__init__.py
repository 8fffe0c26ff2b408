"""Common building blocks shared by every component."""

from incident_core_lib.common.result import (
    Failure,
    Result,
    Success,
    attempt,
    attempt_async,
    from_optional,
)

__all__ = [
    "Failure",
    "Result",
    "Success",
    "attempt",
    "attempt_async",
    "from_optional",
]
