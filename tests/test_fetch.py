"""Tests for HTTP fetching and retries."""

import asyncio

import httpx
import pytest

from promowatch.core.config.models import FetchConfig
from promowatch.core.fetch import FetchError, RetryableStatusError, fetch_content
from promowatch.core.fetch.retries import RetryConfig, retry_async


URL = "https://deals.example.com/offers"
FAST = FetchConfig(retry_backoff=0, max_retries=3)


def _fetch(handler, config: FetchConfig = FAST) -> str:
    async def run() -> str:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_content(URL, config=config, client=client)

    return asyncio.run(run())


class TestFetchContent:
    def test_returns_html(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["user_agent"] = request.headers["user-agent"]
            return httpx.Response(200, html="<p>Deals</p>")

        assert _fetch(handler) == "<p>Deals</p>"
        assert seen["user_agent"] == FAST.user_agent

    def test_client_error_is_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        with pytest.raises(FetchError) as excinfo:
            _fetch(handler)
        assert excinfo.value.status_code == 404
        assert not isinstance(excinfo.value, RetryableStatusError)
        assert len(calls) == 1

    def test_server_error_is_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        with pytest.raises(RetryableStatusError) as excinfo:
            _fetch(handler)
        assert excinfo.value.status_code == 503
        assert len(calls) == FAST.max_retries

    def test_recovers_after_transient_failure(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429)
            return httpx.Response(200, html="<p>ok</p>")

        assert _fetch(handler) == "<p>ok</p>"
        assert len(calls) == 2

    def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError, match="Fetch failed"):
            _fetch(handler)

    def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(FetchError, match="timeout"):
            _fetch(handler)

    def test_non_html_content(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"deals": []})

        with pytest.raises(FetchError, match="content type"):
            _fetch(handler)


class TestRetryAsync:
    def test_retries_listed_exceptions(self):
        attempts = []

        async def flaky() -> str:
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("boom")
            return "done"

        config = RetryConfig(max_attempts=3, backoff=0, retry_exceptions=(ConnectionError,))
        assert asyncio.run(retry_async(flaky, config=config)) == "done"
        assert len(attempts) == 3

    def test_other_exceptions_propagate(self):
        attempts = []

        async def broken() -> None:
            attempts.append(1)
            raise KeyError("nope")

        config = RetryConfig(max_attempts=3, backoff=0, retry_exceptions=(ConnectionError,))
        with pytest.raises(KeyError):
            asyncio.run(retry_async(broken, config=config))
        assert len(attempts) == 1
