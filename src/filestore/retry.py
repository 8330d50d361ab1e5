"""Retry/backoff harness for filestore operations.

Implements exponential backoff with full jitter, following the AWS SDK
retry behaviour guide:

    sleep = min(u * R**n, max_backoff)

where u is a uniform [0, 1) draw, n is the zero-based attempt counter and
R is the exponential base (usually 2).

Design:
- Opt-in: backends never retry on their own; wrap a call to retry it
- Generic over the result type of the wrapped callable
- Bounded: the callable runs at most max_attempts + 2 times (the counter
  starts at zero and retries stop once it exceeds max_attempts)
- Sleep and random sources are injectable (deterministic for testing)
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Final, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS: Final[int] = 3
DEFAULT_MAX_BACKOFF_SECONDS: Final[float] = 20.0
DEFAULT_BASE: Final[float] = 2.0


def compute_backoff_seconds(
    attempt_index: int,
    base: float = DEFAULT_BASE,
    max_backoff: float = DEFAULT_MAX_BACKOFF_SECONDS,
    jitter: float | None = None,
) -> float:
    """Compute the full-jitter backoff delay for an attempt.

    Args:
        attempt_index: Zero-based attempt counter.
        base: Exponential base R.
        max_backoff: Upper bound on the delay in seconds.
        jitter: Uniform draw in [0, 1). If None, a fresh draw is taken.

    Returns:
        Delay in seconds, never above max_backoff.

    Example:
        >>> compute_backoff_seconds(3, jitter=0.5)
        4.0
        >>> compute_backoff_seconds(10, jitter=0.5, max_backoff=20.0)
        20.0
    """
    if attempt_index < 0:
        return 0.0
    if jitter is None:
        jitter = random.random()
    return float(min(jitter * (base**attempt_index), max_backoff))


@dataclass
class Retryer(Generic[T]):
    """Runs a callable with bounded retries and exponential backoff.

    Attributes:
        max_attempts: Highest attempt counter that is still retried; the
            callable runs at most max_attempts + 2 times.
        max_backoff: Cap on a single sleep, in seconds.
        base: Exponential base R for the backoff.
        retry_on: Exception types that trigger a retry; anything else propagates.
        sleep: Sleep function (injectable for tests).
        rand: Uniform [0, 1) source (injectable for tests).
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    max_backoff: float = DEFAULT_MAX_BACKOFF_SECONDS
    base: float = DEFAULT_BASE
    retry_on: tuple[type[BaseException], ...] = (Exception,)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    rand: Callable[[], float] = field(default=random.random, repr=False)

    def send(self, send_function: Callable[[], T]) -> T:
        """Call send_function until it succeeds or attempts run out.

        Returns:
            Whatever send_function returns on its first successful call.

        Raises:
            The exception from the last attempt once retries are exhausted.
        """
        attempts = 0
        while True:
            try:
                return send_function()
            except self.retry_on as e:
                if attempts > self.max_attempts:
                    logger.debug("Retry attempts exhausted after %d calls: %s", attempts + 1, e)
                    raise
                delay = compute_backoff_seconds(
                    attempts,
                    base=self.base,
                    max_backoff=self.max_backoff,
                    jitter=self.rand(),
                )
                logger.debug(
                    "Attempt %d failed (%s); retrying in %.3fs",
                    attempts + 1,
                    type(e).__name__,
                    delay,
                )
                self.sleep(delay)
                attempts += 1
