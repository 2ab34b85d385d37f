"""
HTTP page fetching using httpx.

Fetches a target page's HTML with:
- Browser-like headers and a configurable user agent
- Retry with exponential backoff on transport errors, 429 and 5xx
- Content-type checking (HTML only)
"""

from __future__ import annotations

import logging

import httpx

from ..config.models import FetchConfig
from .retries import RetryConfig, retry_async


logger = logging.getLogger(__name__)

# Status codes that should trigger retry
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}


class FetchError(Exception):
    """Page could not be fetched."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RetryableStatusError(FetchError):
    """Server answered with a status worth retrying (throttling or 5xx)."""


def build_headers(config: FetchConfig) -> dict[str, str]:
    return {"User-Agent": config.user_agent, **DEFAULT_HEADERS}


async def fetch_content(
    url: str,
    *,
    config: FetchConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Fetch the HTML of a page.

    Args:
        url: Page URL
        config: Timeout, retry, and user agent settings
        client: Shared client (a private one is created and closed if omitted)

    Returns:
        Response body as text

    Raises:
        FetchError: On non-2xx status, non-HTML content, timeout, or
            transport failure after all retries
    """
    config = config or FetchConfig()
    retry_config = RetryConfig.for_fetch(
        config, retry_exceptions=(httpx.TransportError, RetryableStatusError)
    )

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_seconds),
            follow_redirects=True,
        )

    try:
        return await retry_async(_fetch_once, client, url, config, config=retry_config)
    except httpx.TimeoutException as e:
        raise FetchError(
            f"Request timeout after {config.timeout_seconds:g}s", url=url
        ) from e
    except httpx.TransportError as e:
        raise FetchError(f"Fetch failed: {e}", url=url) from e
    finally:
        if owns_client:
            await client.aclose()


async def _fetch_once(client: httpx.AsyncClient, url: str, config: FetchConfig) -> str:
    response = await client.get(
        url,
        headers=build_headers(config),
        timeout=config.timeout_seconds,
    )

    if response.status_code in RETRY_STATUS_CODES:
        raise RetryableStatusError(
            f"HTTP {response.status_code}: {response.reason_phrase}",
            url=url,
            status_code=response.status_code,
        )
    if not response.is_success:
        raise FetchError(
            f"HTTP {response.status_code}: {response.reason_phrase}",
            url=url,
            status_code=response.status_code,
        )

    content_type = response.headers.get("content-type", "")
    if "text/html" not in content_type:
        raise FetchError(f"Unexpected content type: {content_type}", url=url)

    logger.debug("Fetched %s (%d bytes)", url, len(response.content))
    return response.text
