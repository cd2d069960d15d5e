# ABOUTME: Shared request helper for harvest clients: rate-limited GET that returns None on failure.
# ABOUTME: A 404 is an ordinary "not found"; other failures are logged as warnings.

import logging
from typing import Any

from shelfmeta.metadata.http import HttpClient, MetadataFetchError, ShelfHttpClient
from shelfmeta.metadata.ratelimit import RateLimiter

logger = logging.getLogger(__name__)


class HarvestClient:
    """Base for the fetch-and-map harvest clients.

    Each subclass gets its own HTTP client and rate limiter unless one is
    injected.
    """

    name = "harvest"

    def __init__(
        self,
        user_agent: str,
        *,
        min_delay_ms: int,
        jitter_ms: int,
        http_client: HttpClient | None = None,
    ) -> None:
        self._owns_http = http_client is None
        self._http: HttpClient = http_client or ShelfHttpClient(
            rate_limiter=RateLimiter(min_delay_ms, jitter_ms),
            user_agent=user_agent,
        )

    async def aclose(self) -> None:
        if self._owns_http and isinstance(self._http, ShelfHttpClient):
            await self._http.aclose()

    async def _get(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            return await self._http.get_json(url, params, headers=headers)
        except MetadataFetchError as exc:
            if exc.status_code == 404:
                logger.debug("[%s] not found: %s", self.name, url)
            else:
                logger.warning("[%s] request failed: %s", self.name, exc)
            return None
