"""Bounded retry for operations against eventually consistent services.

The directory service behind user provisioning propagates new accounts
asynchronously, so a freshly created user may fail to log in for a short
while. `retry` runs an awaitable factory under an explicit `RetryPolicy`
instead of ad hoc sleep loops at each call site.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

import anyio

from gateway_e2e.exceptions import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (attempt, base_delay) -> seconds to wait after that failed attempt
BackoffFn = Callable[[int, float], float]


def constant_backoff(attempt: int, delay: float) -> float:
    return delay


def exponential_backoff(attempt: int, delay: float) -> float:
    return delay * (2 ** (attempt - 1))


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try and how long to wait in between."""

    max_attempts: int = 5
    delay: float = 0.5
    backoff: BackoffFn = constant_backoff

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.delay < 0:
            raise ValueError(f"delay must not be negative, got {self.delay}")

    def delay_after(self, attempt: int) -> float:
        return max(0.0, self.backoff(attempt, self.delay))


# 5 x 500ms covers directory propagation on the reference stack
DEFAULT_AUTH_RETRY = RetryPolicy(max_attempts=5, delay=0.5)

# Error logs are written asynchronously by the gateway middleware
DEFAULT_POLL_POLICY = RetryPolicy(max_attempts=20, delay=0.5)


async def retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_AUTH_RETRY,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    operation: Optional[str] = None,
) -> T:
    """Await `fn()` until it succeeds or the policy is exhausted.

    Args:
        fn: Zero-argument callable returning a fresh awaitable per attempt
        policy: Attempt bound and delay schedule
        retry_on: Exception types treated as transient; anything else propagates
        operation: Human-readable name used in log lines and the final error

    Returns:
        The first successful result

    Raises:
        RetryExhaustedError: After `policy.max_attempts` failures, chained to
            and naming the last underlying error
    """
    name = operation or getattr(fn, "__name__", "operation")
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await fn()
        except retry_on as exc:
            last_error = exc
            if attempt < policy.max_attempts:
                wait = policy.delay_after(attempt)
                logger.debug("%s attempt %d/%d failed (%s), retrying in %.2fs",
                             name, attempt, policy.max_attempts, exc, wait)
                await anyio.sleep(wait)

    assert last_error is not None
    logger.warning("%s failed after %d attempts: %s", name, policy.max_attempts, last_error)
    raise RetryExhaustedError(policy.max_attempts, last_error, name) from last_error
