"""
Generic retry wrapper for network-bound coroutines.

Classification comes from ``peerproof.errors.classify_error``:

    - transport failure (NetworkError, httpx.TransportError):
        retry after ``base_delay + jitter``
    - rate limited (status 429):
        retry after ``base_delay * 2**attempt + jitter``
    - anything else:
        raised immediately, no further attempts

``timeout`` bounds each individual attempt, not the whole budget. An
attempt that overruns fails with NetworkError and is retried like any
other transport failure. When attempts run out the last error is raised
unchanged.

Jitter is uniform in ``[0, min(max_jitter, base))``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from peerproof.errors import NetworkError, ValidationError, classify_error, is_rate_limited

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Per-call retry budget.

    Attributes:
        max_attempts: Total attempts including the first (>= 1).
        base_delay_s: Base backoff delay in seconds.
        timeout_s: Optional per-attempt timeout in seconds.
        max_jitter_s: Upper bound on random jitter added to each delay.
    """

    max_attempts: int = 3
    base_delay_s: float = 1.0
    timeout_s: float | None = None
    max_jitter_s: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValidationError(
                f"max_attempts must be >= 1, got {self.max_attempts}", field="max_attempts"
            )
        if self.base_delay_s < 0:
            raise ValidationError(
                f"base_delay_s must be >= 0, got {self.base_delay_s}", field="base_delay_s"
            )
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ValidationError(
                f"timeout_s must be > 0, got {self.timeout_s}", field="timeout_s"
            )

    def backoff(self, attempt: int, *, rate_limited: bool, rand: Callable[[], float] = random.random) -> float:
        """Delay in seconds before the attempt after ``attempt`` (0-based)."""
        base = self.base_delay_s * (2**attempt) if rate_limited else self.base_delay_s
        return base + rand() * min(self.max_jitter_s, base)


async def _run_attempt(operation: Callable[[], Awaitable[T]], timeout_s: float | None) -> T:
    if timeout_s is None:
        return await operation()
    try:
        return await asyncio.wait_for(operation(), timeout=timeout_s)
    except asyncio.TimeoutError as e:
        raise NetworkError(
            f"Operation timed out after {timeout_s}s",
            details={"timeout_s": timeout_s},
        ) from e


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    timeout: float | None = None,
    *,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """Run ``operation`` until it succeeds or the budget is spent.

    Args:
        operation: Zero-argument coroutine factory. Called once per attempt.
        max_attempts: Total attempts. Ignored when ``policy`` is given.
        base_delay: Base delay in seconds. Ignored when ``policy`` is given.
        timeout: Per-attempt timeout in seconds. Ignored when ``policy`` is given.
        policy: Full RetryPolicy; overrides the positional knobs.
        sleep: Awaitable sleep. Inject for tests.
        rand: Source of jitter in [0, 1). Inject for tests.

    Returns:
        The first successful result.

    Raises:
        The first non-retryable error, or the last retryable one once
        attempts are exhausted.
    """
    if policy is None:
        policy = RetryPolicy(max_attempts=max_attempts, base_delay_s=base_delay, timeout_s=timeout)

    attempt = 0
    while True:
        try:
            return await _run_attempt(operation, policy.timeout_s)
        except Exception as exc:
            if not classify_error(exc):
                raise
            if attempt + 1 >= policy.max_attempts:
                logger.warning("giving up after %d attempts: %s", attempt + 1, exc)
                raise
            delay = policy.backoff(attempt, rate_limited=is_rate_limited(exc), rand=rand)
            logger.debug(
                "attempt %d/%d failed (%s), retrying in %.3fs",
                attempt + 1,
                policy.max_attempts,
                exc,
                delay,
            )
            await sleep(delay)
            attempt += 1
