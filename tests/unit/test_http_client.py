# ABOUTME: Unit tests for the async HTTP client abstraction.
# ABOUTME: Tests the HttpClient protocol, ShelfHttpClient retries, backoff, and error handling.

import asyncio
import time

import httpx
import pytest

from shelfmeta.metadata.http import (
    HttpClient,
    MetadataFetchError,
    ShelfHttpClient,
)
from shelfmeta.metadata.ratelimit import RateLimiter


class FakeTransport(httpx.AsyncBaseTransport):
    """Fake async transport for httpx that returns canned responses."""

    def __init__(self, responses: list[httpx.Response | Exception] | None = None) -> None:
        self._responses = list(responses or [])
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._responses:
            response = self._responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return httpx.Response(200, json={"ok": True})

    @property
    def call_count(self) -> int:
        return len(self.requests)


def _client(transport: FakeTransport, **kwargs) -> ShelfHttpClient:
    kwargs.setdefault("retry_delay", 0.01)
    return ShelfHttpClient(transport=transport, **kwargs)


async def _get(client: ShelfHttpClient, url: str, **kwargs):
    try:
        return await client.get_json(url, **kwargs)
    finally:
        await client.aclose()


class TestHttpClientProtocol:
    def test_shelf_client_satisfies_protocol(self) -> None:
        """ShelfHttpClient satisfies the HttpClient protocol."""
        assert isinstance(ShelfHttpClient(), HttpClient)


class TestShelfHttpClient:
    def test_get_returns_json(self) -> None:
        transport = FakeTransport()
        result = asyncio.run(_get(_client(transport), "https://example.com/api"))
        assert result == {"ok": True}

    def test_sends_params_user_agent_and_extra_headers(self) -> None:
        transport = FakeTransport()
        client = _client(transport, user_agent="TestBot/1.0")
        asyncio.run(
            _get(
                client,
                "https://example.com/api",
                params={"q": "dune"},
                headers={"Accept": "application/sparql-results+json"},
            )
        )
        request = transport.requests[0]
        assert request.url.params["q"] == "dune"
        assert request.headers["user-agent"] == "TestBot/1.0"
        assert request.headers["accept"] == "application/sparql-results+json"

    def test_rate_limiter_spaces_requests(self) -> None:
        transport = FakeTransport()
        client = _client(transport, rate_limiter=RateLimiter(min_delay_ms=150, jitter_ms=0))

        async def run() -> None:
            await client.get_json("https://example.com/1")
            await client.get_json("https://example.com/2")
            await client.aclose()

        start = time.monotonic()
        asyncio.run(run())
        assert time.monotonic() - start >= 0.15
        assert transport.call_count == 2

    def test_http_error_raises_metadata_fetch_error(self) -> None:
        """Non-retryable HTTP errors raise immediately with the status code."""
        transport = FakeTransport([httpx.Response(404, json={"error": "not found"})])
        with pytest.raises(MetadataFetchError, match="404") as excinfo:
            asyncio.run(_get(_client(transport), "https://example.com/missing"))
        assert excinfo.value.status_code == 404
        assert transport.call_count == 1

    def test_retry_on_429(self) -> None:
        transport = FakeTransport(
            [
                httpx.Response(429, json={"error": "rate limited"}),
                httpx.Response(200, json={"ok": True}),
            ]
        )
        assert asyncio.run(_get(_client(transport), "https://example.com/api")) == {"ok": True}
        assert transport.call_count == 2

    def test_retry_on_transport_error(self) -> None:
        transport = FakeTransport(
            [httpx.ConnectError("connection refused"), httpx.Response(200, json=[1])]
        )
        assert asyncio.run(_get(_client(transport), "https://example.com/api")) == [1]

    def test_retry_exhausted_raises(self) -> None:
        transport = FakeTransport([httpx.Response(500, json={"error": "server error"})] * 4)
        client = _client(transport, max_retries=3)
        with pytest.raises(MetadataFetchError, match="after 4 attempts"):
            asyncio.run(_get(client, "https://example.com/api"))
        assert transport.call_count == 4  # 1 initial + 3 retries

    def test_invalid_json_is_not_retried(self) -> None:
        transport = FakeTransport([httpx.Response(200, content=b"<html>nope</html>")])
        with pytest.raises(MetadataFetchError, match="invalid JSON"):
            asyncio.run(_get(_client(transport), "https://example.com/api"))
        assert transport.call_count == 1

    def test_failed_attempts_are_reported(self) -> None:
        transport = FakeTransport(
            [httpx.Response(503), httpx.Response(503), httpx.Response(200, json={})]
        )
        failures: list[tuple[int, str]] = []
        asyncio.run(
            _get(
                _client(transport),
                "https://example.com/api",
                on_failed_attempt=lambda n, reason: failures.append((n, reason)),
            )
        )
        assert [n for n, _ in failures] == [1, 2]
        assert all("503" in reason for _, reason in failures)

    def test_retry_logs_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        transport = FakeTransport(
            [httpx.Response(502), httpx.Response(502), httpx.Response(200, json={})]
        )
        with caplog.at_level("WARNING", logger="shelfmeta.metadata.http"):
            asyncio.run(_get(_client(transport), "https://example.com/api"))
        assert "retrying" in caplog.text
        assert "(attempt 1/3)" in caplog.text
        assert "(attempt 2/3)" in caplog.text


class TestBackoff:
    def test_backoff_grows_and_is_capped(self) -> None:
        client = ShelfHttpClient(retry_delay=1.0, backoff_factor=2.0, max_retry_delay=5.0)
        assert [client.backoff_delay(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]
