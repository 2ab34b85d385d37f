"""
Retry policy for page fetches.

Transient failures (dropped connections, throttling, 5xx answers) are
retried with exponential backoff; everything else surfaces on the first
attempt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config.models import FetchConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_WAIT_SECONDS = 30.0


@dataclass(frozen=True)
class RetryConfig:
    """How many times a call is attempted and how long to wait in between.

    Waits grow as ``backoff``, ``2 * backoff``, ``4 * backoff`` ... capped at
    ``max_wait``. A backoff of 0 retries immediately.
    """

    max_attempts: int = 3
    backoff: float = 2.0
    max_wait: float = MAX_WAIT_SECONDS
    retry_exceptions: tuple[type[BaseException], ...] = (Exception,)

    @classmethod
    def for_fetch(
        cls,
        config: FetchConfig,
        retry_exceptions: tuple[type[BaseException], ...],
    ) -> "RetryConfig":
        return cls(
            max_attempts=config.max_retries,
            backoff=config.retry_backoff,
            retry_exceptions=retry_exceptions,
        )

    def retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, max=self.max_wait),
            retry=retry_if_exception_type(self.retry_exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )


async def retry_async(
    coro_func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> T:
    """Await ``coro_func(*args, **kwargs)`` under ``config``.

    The last exception is re-raised once attempts run out.
    """
    async for attempt in (config or RetryConfig()).retrying():
        with attempt:
            return await coro_func(*args, **kwargs)
