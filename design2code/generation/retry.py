"""Bounded exponential backoff shared by the Figma and generation clients."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, TypeVar

from design2code import settings
from design2code.errors import GenerationFailure, RateLimitError, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """delay(n) = min(base_delay * factor ** n, max_delay) before retry n+1.

    A RateLimitError's retry_after raises the delay floor (still capped).
    Delays never decrease from one retry to the next.
    """
    max_retries: int = settings.GENERATION_MAX_RETRIES
    base_delay: float = settings.GENERATION_RETRY_BASE_DELAY
    factor: float = settings.GENERATION_RETRY_FACTOR
    max_delay: float = settings.GENERATION_RETRY_MAX_DELAY

    @property
    def max_attempts(self) -> int:
        return 1 + max(0, self.max_retries)

    def delay_for(self, retry_index: int, error: Optional[BaseException] = None) -> float:
        delay = self.base_delay * (self.factor ** retry_index)
        if isinstance(error, RateLimitError) and error.retry_after:
            delay = max(delay, error.retry_after)
        return min(delay, self.max_delay)


NO_RETRY = RetryPolicy(max_retries=0)


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
    caller: str = "retry",
    wrap_exhausted: bool = True,
) -> T:
    """Call ``fn`` until it succeeds or ``policy.max_attempts`` are used.

    Non-retryable errors propagate immediately. On exhaustion raises
    GenerationFailure carrying every attempt's error, or re-raises the last
    error when ``wrap_exhausted`` is False. Backoff sleeps are cancellable.
    """
    causes: List[BaseException] = []
    previous_delay = 0.0

    for attempt in range(policy.max_attempts):
        if attempt > 0:
            delay = max(previous_delay, policy.delay_for(attempt - 1, causes[-1]))
            previous_delay = delay
            logger.warning(
                "%s: retry %d/%d after %.1fs%s (previous error: %s)",
                caller, attempt, policy.max_retries, delay,
                " [rate-limited]" if isinstance(causes[-1], RateLimitError) else "",
                causes[-1],
            )
            await sleep(delay)

        try:
            return await fn()
        except Exception as e:
            if not is_retryable(e):
                raise
            causes.append(e)

    logger.error("%s: giving up after %d attempts (last error: %s)", caller, len(causes), causes[-1])
    if not wrap_exhausted:
        raise causes[-1]
    raise GenerationFailure(
        f"{caller}: failed after {len(causes)} attempts: {causes[-1]}",
        attempts=len(causes),
        causes=causes,
    )
