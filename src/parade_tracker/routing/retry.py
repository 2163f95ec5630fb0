"""Retry with exponential backoff and a per-attempt timeout."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx

from parade_tracker.errors import UpstreamError

_logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE: tuple[type[BaseException], ...] = (
    UpstreamError,
    httpx.HTTPError,
    asyncio.TimeoutError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt ceiling, backoff schedule and timeout for one upstream call.

    Args:
        attempts: Maximum number of attempts (>= 1).
        base_delay_s: Delay after the first failed attempt; doubles each time.
        timeout_s: Upper bound on a single attempt.
    """

    attempts: int = 4
    base_delay_s: float = 0.5
    timeout_s: float = 12.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before retrying after failed attempt number *attempt* (0-based)."""
        return self.base_delay_s * (2 ** attempt)


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    retry_on: tuple[type[BaseException], ...] = RETRYABLE,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Await ``fn()`` until it succeeds or *policy* runs out of attempts.

    Exceptions outside *retry_on* propagate immediately.  There is no delay
    after the last attempt.

    Raises:
        UpstreamError: Wrapping the last retryable failure.
    """
    last_exc: BaseException | None = None
    for attempt in range(policy.attempts):
        try:
            return await asyncio.wait_for(fn(), timeout=policy.timeout_s)
        except retry_on as exc:
            last_exc = exc
            _logger.debug(
                "Attempt %d/%d failed: %s", attempt + 1, policy.attempts, _describe(exc)
            )
        if attempt + 1 < policy.attempts:
            await sleep(policy.delay_for(attempt))

    if isinstance(last_exc, UpstreamError):
        raise last_exc
    raise UpstreamError(_describe(last_exc)) from last_exc


def _describe(exc: BaseException | None) -> str:
    if exc is None:
        return "no attempts made"
    if isinstance(exc, asyncio.TimeoutError):
        return "timed out"
    return str(exc) or type(exc).__name__
