"""
Retry wrapper for outbound network calls.

Provides:
- Server-directed waits on rate limits (with exponential fallback)
- Linear backoff on transient failures
- A hard cap on attempts
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from loguru import logger

from replybot.auto_reply.errors import PermanentError, RateLimited, RetryExhausted

Sleeper = Callable[[float], Awaitable[Any]]


@dataclass
class RetryConfig:
    """Configuration for the retry wrapper."""
    max_retries: int = 5  # Retries after the first attempt
    jitter_seconds: float = 0.25  # Added to every rate-limit wait
    backoff_cap_seconds: float = 60.0
    backoff_base: float = 2.0
    retry_step_seconds: float = 0.5  # Transient wait = attempt * step


class RetryPolicy:
    """
    Runs an async operation, retrying on rate limits and transient errors.

    Any exception that is not a PermanentError is treated as transient.
    """

    def __init__(self, config: RetryConfig | None = None, sleep: Sleeper | None = None):
        self.config = config or RetryConfig()
        self._sleep = sleep or asyncio.sleep

    def rate_limit_wait(self, error: RateLimited, attempt: int) -> float:
        """Seconds to wait before retrying after a rate limit (without jitter)."""
        if error.retry_after is not None and error.retry_after >= 0:
            return float(error.retry_after)
        return min(self.config.backoff_cap_seconds, self.config.backoff_base ** attempt)

    def transient_wait(self, attempt: int) -> float:
        return attempt * self.config.retry_step_seconds

    async def run(self, operation: Callable[[], Awaitable[Any]], label: str = "request") -> Any:
        """
        Execute ``operation`` until it succeeds or retries run out.

        Args:
            operation: Zero-argument coroutine factory performing one call.
            label: Name used in log lines.

        Returns:
            Whatever the operation returns.

        Raises:
            PermanentError: Non-retryable failures, unchanged.
            RetryExhausted: Retries ran out (chained from the last error).
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except PermanentError as e:
                logger.critical(f"{label} failed permanently: {e}")
                raise
            except RateLimited as e:
                attempt += 1
                wait = self.rate_limit_wait(e, attempt)
                logger.critical(f"Rate limit hit on {label}. Retrying after {wait}s...")
                if attempt > self.config.max_retries:
                    raise RetryExhausted(attempt, e) from e
                await self._sleep(wait + self.config.jitter_seconds)
            except Exception as e:
                attempt += 1
                if attempt > self.config.max_retries:
                    logger.critical(f"{label} failed after {attempt} attempts: {e}")
                    raise RetryExhausted(attempt, e) from e
                wait = self.transient_wait(attempt)
                logger.critical(f"{label} failed, attempt {attempt}: {e}. Retrying in {wait}s.")
                await self._sleep(wait)
