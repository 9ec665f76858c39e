"""Retry policy for generative provider calls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient_provider_error(exc: BaseException) -> bool:
    """Rate limits (429) and server-side failures (5xx) are worth retrying."""
    status = getattr(exc, "status", None)
    if not isinstance(status, int):
        return False
    return status == 429 or status >= 500


def exponential_delay(attempt: int) -> float:
    """Seconds to wait before retry number ``attempt`` (1-indexed): 2, 4, 8, ..."""
    return float(2**attempt)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with backoff.

    ``max_attempts`` counts the initial call. A failure the classifier rejects
    propagates at once; a retryable failure on the last attempt propagates as
    well.
    """

    max_attempts: int = 3
    is_retryable: Callable[[BaseException], bool] = is_transient_provider_error
    delay: Callable[[int], float] = exponential_delay
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    async def run(self, operation: Callable[[], Awaitable[T]], *, label: str = "request") -> T:
        attempts = 0
        while True:
            try:
                return await operation()
            except Exception as exc:
                attempts += 1
                if attempts >= self.max_attempts or not self.is_retryable(exc):
                    raise
                wait_time = self.delay(attempts)
                logger.warning(
                    f"Retrying {label} in {wait_time}s "
                    f"(attempt {attempts}/{self.max_attempts}): {exc}"
                )
                await self.sleep(wait_time)


DEFAULT_PROVIDER_RETRY = RetryPolicy()
