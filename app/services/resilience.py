"""Retry, timeout and rate limiting for calls to external services.

Every model call goes through a :class:`ResilientCaller`: requests are spaced
by a minimum interval, each attempt carries a timeout, and failed attempts
(timeouts included) are retried with bounded exponential backoff. When the
attempts are exhausted a ServiceUnavailableError is raised so the caller can
fall back.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from app.config import Settings
from app.domain.errors import ServiceUnavailableError
from app.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RateLimiter:
    """Enforces a minimum spacing between consecutive requests."""

    def __init__(self, min_interval_seconds: float):
        self.min_interval_seconds = min_interval_seconds
        self._lock = asyncio.Lock()
        self._last_request = 0.0

    async def acquire(self) -> None:
        async with self._lock:
            wait = self._last_request + self.min_interval_seconds - time.monotonic()
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request = time.monotonic()


class ResilientCaller:
    """Wraps an async call with rate limiting, timeout and retry.

    Example:
        >>> caller = ResilientCaller(name="gemini", max_attempts=3)
        >>> text = await caller.call(lambda: client.generate("prompt"))
    """

    def __init__(
        self,
        name: str,
        max_attempts: int = 3,
        backoff_base_seconds: float = 1.0,
        backoff_max_seconds: float = 10.0,
        min_interval_seconds: float = 0.0,
        timeout_seconds: float = 30.0,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    ):
        self.name = name
        self.max_attempts = max_attempts
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_max_seconds = backoff_max_seconds
        self.timeout_seconds = timeout_seconds
        self.retry_on = retry_on
        self.rate_limiter = RateLimiter(min_interval_seconds)

    @classmethod
    def for_generator(cls, settings: Settings, name: str = "question-generator") -> "ResilientCaller":
        return cls(
            name=name,
            max_attempts=settings.generator_max_attempts,
            backoff_base_seconds=settings.generator_backoff_base_seconds,
            backoff_max_seconds=settings.generator_backoff_max_seconds,
            min_interval_seconds=settings.generator_min_interval_seconds,
            timeout_seconds=settings.generator_timeout_seconds,
        )

    def _backoff(self, attempt: int) -> float:
        return min(self.backoff_base_seconds * (2 ** (attempt - 1)), self.backoff_max_seconds)

    async def call(self, fn: Callable[[], Awaitable[T]], timeout_seconds: Optional[float] = None) -> T:
        """Invoke ``fn`` until it succeeds or attempts run out.

        Args:
            fn: Zero-argument callable returning a fresh awaitable per attempt
            timeout_seconds: Per-attempt timeout overriding the default

        Returns:
            Result of the first successful attempt

        Raises:
            ServiceUnavailableError: If every attempt failed or timed out
        """
        timeout = timeout_seconds or self.timeout_seconds
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            await self.rate_limiter.acquire()
            try:
                return await asyncio.wait_for(fn(), timeout=timeout)
            except asyncio.TimeoutError as e:
                last_error = e
            except self.retry_on as e:
                last_error = e

            if attempt < self.max_attempts:
                wait = self._backoff(attempt)
                logger.warning(
                    f"{self.name} attempt {attempt}/{self.max_attempts} failed: "
                    f"{last_error!r}; retrying in {wait:.1f}s"
                )
                await asyncio.sleep(wait)

        logger.error(
            f"{self.name} unavailable after {self.max_attempts} attempts: {last_error!r}"
        )
        raise ServiceUnavailableError(
            f"{self.name} is unavailable after {self.max_attempts} attempts"
        ) from last_error
