# ABOUTME: Async HTTP client abstraction for metadata adapters and harvest clients.
# ABOUTME: Provides per-source rate limiting, capped exponential backoff, and injectable transport.

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import httpx

from shelfmeta.metadata.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

FailedAttemptCallback = Callable[[int, str], None]


class MetadataFetchError(Exception):
    """Raised when an HTTP request to a metadata source fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for JSON GET operations against metadata APIs."""

    async def get_json(
        self,
        url: str,
        params: dict[str, str] | None = None,
        *,
        headers: dict[str, str] | None = None,
        on_failed_attempt: FailedAttemptCallback | None = None,
    ) -> Any: ...


class ShelfHttpClient:
    """Async HTTP client with rate limiting and retry for one external source.

    Wraps httpx.AsyncClient. Every attempt, retries included, first waits on
    the source's RateLimiter. Transport errors and 429/5xx responses are
    retried up to `max_retries` times with exponential backoff capped at
    `max_retry_delay`; other non-200 statuses fail immediately.
    """

    def __init__(
        self,
        *,
        rate_limiter: RateLimiter | None = None,
        user_agent: str = "shelfmeta/0.1.0",
        max_retries: int = 2,
        retry_delay: float = 1.0,
        backoff_factor: float = 1.5,
        max_retry_delay: float = 30.0,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_kwargs: dict[str, Any] = {
            "headers": {"User-Agent": user_agent, "Accept": "application/json"},
            "timeout": timeout,
        }
        if transport is not None:
            self._client_kwargs["transport"] = transport
        self._client: httpx.AsyncClient | None = None
        self._limiter = rate_limiter or RateLimiter(0, 0)
        self._max_retries = max(0, max_retries)
        self._retry_delay = retry_delay
        self._backoff_factor = backoff_factor
        self._max_retry_delay = max_retry_delay

    @property
    def user_agent(self) -> str:
        return self._client_kwargs["headers"]["User-Agent"]

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def _http(self) -> httpx.AsyncClient:
        # Created lazily so the client binds to the loop that first uses it.
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(**self._client_kwargs)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "ShelfHttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number `attempt` (0-based), capped."""
        return min(self._max_retry_delay, self._retry_delay * (self._backoff_factor**attempt))

    async def get_json(
        self,
        url: str,
        params: dict[str, str] | None = None,
        *,
        headers: dict[str, str] | None = None,
        on_failed_attempt: FailedAttemptCallback | None = None,
    ) -> Any:
        """Send a rate-limited GET and return the parsed JSON body.

        Args:
            url: The URL to request.
            params: Optional query parameters.
            headers: Extra headers merged over the client defaults.
            on_failed_attempt: Called with (attempt number, reason) after
                every failed attempt, including the final one.

        Returns:
            Parsed JSON response body.

        Raises:
            MetadataFetchError: On non-retryable HTTP errors or exhausted retries.
        """
        attempts = 1 + self._max_retries
        last_error = ""
        last_status: int | None = None
        for attempt in range(attempts):
            await self._limiter.wait()
            retryable = True
            try:
                response = await self._http().get(url, params=params, headers=headers)
            except httpx.HTTPError as exc:
                last_error = f"request failed: {exc}"
                last_status = None
            else:
                last_status = response.status_code
                if response.status_code == 200:
                    try:
                        return response.json()
                    except ValueError as exc:
                        last_error = f"invalid JSON from {url}: {exc}"
                        retryable = False
                else:
                    last_error = f"HTTP {response.status_code} from {url}"
                    retryable = response.status_code in _RETRYABLE_STATUS_CODES

            if on_failed_attempt is not None:
                on_failed_attempt(attempt + 1, last_error)

            if not retryable:
                raise MetadataFetchError(last_error, status_code=last_status)

            if attempt < attempts - 1:
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "%s, retrying in %.1fs (attempt %d/%d)",
                    last_error,
                    delay,
                    attempt + 1,
                    attempts,
                )
                await asyncio.sleep(delay)

        raise MetadataFetchError(
            f"{last_error} after {attempts} attempts", status_code=last_status
        )
