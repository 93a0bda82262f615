"""
Resilience Patterns for the Inference Gateway

Bounded retry with jittered exponential backoff and a hard per-attempt timeout.
Fallback content is the caller's concern once retries are exhausted.
"""

import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable

from .exceptions import RequestFailed, RequestTimeout
from .models import ResilienceConfig

logger = logging.getLogger(__name__)

Attempt = Callable[[], Awaitable[Any]]


def is_retryable(error: BaseException) -> bool:
    """Only request failures that declare themselves transient are retried"""
    return isinstance(error, RequestFailed) and error.retryable


class RetryManager:
    """Re-runs an attempt while it fails transiently"""

    def __init__(self, config: ResilienceConfig):
        self.config = config

    @property
    def max_attempts(self) -> int:
        return self.config.max_retries + 1

    async def execute_with_retry(self, attempt: Attempt) -> Any:
        for number in range(1, self.max_attempts + 1):
            try:
                return await attempt()
            except RequestFailed as e:
                if not is_retryable(e):
                    logger.warning(f"Attempt {number} failed permanently: {e}")
                    raise
                if number == self.max_attempts:
                    logger.error(f"Giving up after {number} attempts: {e}")
                    raise

                delay = self._calculate_delay(number - 1)
                logger.warning(f"Attempt {number} failed: {e}. Retrying in {delay}ms")
                await asyncio.sleep(delay / 1000.0)

    def _calculate_delay(self, retry_index: int) -> int:
        """Backoff in ms before retry number ``retry_index + 1``"""
        base = self.config.retry_delay_ms * self.config.retry_exponential_base**retry_index
        # +-20% jitter
        return int(base * random.uniform(0.8, 1.2))


class TimeoutManager:
    """Hard wall-clock limit on a single attempt"""

    def __init__(self, config: ResilienceConfig):
        self.config = config

    async def execute_with_timeout(self, attempt: Attempt) -> Any:
        limit = self.config.timeout_ms / 1000.0
        try:
            return await asyncio.wait_for(attempt(), timeout=limit)
        except asyncio.TimeoutError:
            logger.error(f"Attempt exceeded {self.config.timeout_ms}ms")
            raise RequestTimeout(
                f"Request timed out after {self.config.timeout_ms}ms",
                timeout_duration=limit,
            )


class ResilienceManager:
    """Timeout per attempt, retry across attempts"""

    def __init__(self, config: ResilienceConfig, provider_name: str = "provider"):
        self.config = config
        self.provider_name = provider_name
        self.retry_manager = RetryManager(config)
        self.timeout_manager = TimeoutManager(config)

    async def execute(self, attempt: Attempt) -> Any:
        """
        Run ``attempt`` until it succeeds, fails permanently or the retry
        budget runs out. ``attempt`` is re-invoked from scratch each time, so
        anything single-use (signed headers) must be produced inside it.
        """
        started = time.monotonic()

        async def bounded():
            return await self.timeout_manager.execute_with_timeout(attempt)

        try:
            result = await self.retry_manager.execute_with_retry(bounded)
        except Exception as e:
            logger.error(
                f"{self.provider_name} request failed after "
                f"{(time.monotonic() - started) * 1000:.0f}ms: {e}"
            )
            raise

        logger.debug(
            f"{self.provider_name} request succeeded in "
            f"{(time.monotonic() - started) * 1000:.0f}ms"
        )
        return result
