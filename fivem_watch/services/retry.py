"""
Bounded retry with exponential backoff for async requests.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry with exponential backoff."""

    max_attempts: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: int = 10000


def backoff_delay_ms(attempt: int, config: RetryConfig) -> int:
    """
    Delay to wait before ``attempt`` (0-indexed).

    The first attempt runs immediately; attempt n waits
    ``initial_delay_ms * 2 ** (n - 1)``, capped at ``max_delay_ms``.
    """
    if attempt <= 0:
        return 0
    return min(config.initial_delay_ms * 2 ** (attempt - 1), config.max_delay_ms)


async def fetch_with_retry(
    request_fn: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    description: str = "request",
) -> T:
    """
    Call ``request_fn`` until it succeeds or ``max_attempts`` is exhausted.

    The last failure is re-raised as-is. Backoff sleeps only suspend the
    calling task.
    """
    config = config or RetryConfig()
    attempts = max(1, config.max_attempts)

    attempt = 0
    while True:
        try:
            return await request_fn()
        except Exception as e:
            attempt += 1
            if attempt >= attempts:
                raise
            delay_ms = backoff_delay_ms(attempt, config)
            logger.warning(
                f"{description} attempt {attempt}/{attempts} failed, "
                f"retrying in {delay_ms}ms: {e}"
            )
            await asyncio.sleep(delay_ms / 1000)
