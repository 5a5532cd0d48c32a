"""Retry logic for transient storage failures.

Only connection-level failures are retried. Domain errors (every
``CampusFixError``) and integrity violations are never retried.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError

from campusfix.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _sanitize_error_for_logging(error: Exception) -> str:
    """Describe an error without leaking connection strings or SQL."""
    error_type = type(error).__name__

    safe_messages = {
        "ConnectionError": "Database connection failed",
        "TimeoutError": "Operation timed out",
        "OSError": "System I/O error",
        "OperationalError": "Database operational error",
        "InterfaceError": "Database interface error",
    }

    return safe_messages.get(error_type, f"Error of type {error_type}")


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Total attempts, including the first one
        base_delay: Base delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential backoff
        jitter: Whether to add random jitter to delay
        retryable_exceptions: Exception types that should trigger retry
    """

    max_attempts: int = 3
    base_delay: float = 0.1
    max_delay: float = 2.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (
            OperationalError,
            InterfaceError,
            ConnectionError,
            TimeoutError,
        )
    )

    def calculate_delay(self, attempt: int) -> float:
        """Delay in seconds before retrying after the given 0-indexed attempt."""
        delay = min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay,
        )
        if self.jitter:
            delay = delay * (0.5 + random.random())
        return delay


async def run_with_retry(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    name: str | None = None,
) -> T:
    """Run ``func`` and retry it on transient storage errors.

    ``func`` must be safe to re-run from scratch: it should open its own unit
    of work so a failed attempt leaves nothing behind.
    """
    _config = config or RetryConfig()
    name = name or getattr(func, "__name__", "operation")

    for attempt in range(_config.max_attempts):
        try:
            return await func()
        except _config.retryable_exceptions as e:
            if attempt + 1 >= _config.max_attempts:
                logger.error(
                    "retry_exhausted",
                    function=name,
                    max_attempts=_config.max_attempts,
                    error_type=type(e).__name__,
                    error_msg=_sanitize_error_for_logging(e),
                )
                raise
            delay = _config.calculate_delay(attempt)
            logger.warning(
                "retry_attempt",
                function=name,
                attempt=attempt + 1,
                max_attempts=_config.max_attempts,
                delay=round(delay, 3),
                error_type=type(e).__name__,
                error_msg=_sanitize_error_for_logging(e),
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Retry loop exited without a result")


__all__ = [
    "RetryConfig",
    "run_with_retry",
]
