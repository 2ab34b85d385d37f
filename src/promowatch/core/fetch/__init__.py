"""Fetch utilities - HTTP fetching and retries."""

from .http import FetchError, RetryableStatusError, fetch_content
from .retries import RetryConfig, retry_async

__all__ = [
    "FetchError",
    "RetryableStatusError",
    "fetch_content",
    "RetryConfig",
    "retry_async",
]
