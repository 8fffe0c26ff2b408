"""Retry policies for collaborator start-up.

Core operations never retry on their own; failures are returned to the
caller as ``Result`` values. These policies are only for waiting until a
collaborator service (incident store, model gateway) becomes reachable.
"""

import logging
from typing import Callable, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_custom_retry(
    max_attempts: int = 5,
    min_wait: float = 2,
    max_wait: float = 32,
    multiplier: float = 1,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Create a retry decorator with exponential backoff.

    The last exception is re-raised once attempts are exhausted.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait between attempts (seconds)
        max_wait: Maximum wait between attempts (seconds)
        multiplier: Exponential backoff multiplier

    Example:
        ```python
        quick_retry = create_custom_retry(max_attempts=3, min_wait=0, max_wait=1)

        @quick_retry
        async def ping():
            ...
        ```
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=multiplier, min=min_wait, max=max_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


# Standard start-up policy: 5 attempts, waits of 2s, 4s, 8s, 16s (capped at 32s)
service_startup_retry = create_custom_retry()
