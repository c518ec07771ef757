"""Retry and backoff utilities for outbound calls.

Publish channels and worker notifications talk to third-party HTTP APIs
that fail transiently. Only transport-level errors are retried by default;
an HTTP error response is an answer, not a transient failure.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx

from autoblog.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    backoff_base: float = 0.5
    backoff_max: float = 10.0
    jitter: bool = True
    retryable_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (httpx.TransportError,)
    )


async def retry_with_backoff[T](
    fn: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
) -> T:
    """
    Execute an async callable with exponential backoff retry.

    Each retry waits min(backoff_base * 2^attempt, backoff_max) seconds,
    scaled by a random factor in [0.5, 1.5) when jitter is enabled.

    Args:
        fn: Async function to execute (no arguments)
        config: Retry configuration, uses defaults if not provided
        operation_name: Name for logging purposes

    Returns:
        Result of fn()

    Raises:
        Exception: The last exception if all attempts are exhausted
    """
    config = config or RetryConfig()

    for attempt in range(config.max_attempts):
        try:
            return await fn()
        except config.retryable_exceptions as e:
            if attempt + 1 >= config.max_attempts:
                logger.bind(
                    operation=operation_name,
                    attempts=config.max_attempts,
                    error=str(e),
                ).error("retry_exhausted")
                raise

            delay = min(config.backoff_base * (2**attempt), config.backoff_max)
            if config.jitter:
                delay *= 0.5 + random.random()

            logger.bind(
                operation=operation_name,
                attempt=attempt + 1,
                delay_seconds=round(delay, 2),
                error=str(e),
            ).warning("retry_attempt")
            await asyncio.sleep(delay)

    raise RuntimeError(f"retry_with_backoff called with max_attempts={config.max_attempts}")
