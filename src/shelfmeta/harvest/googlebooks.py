# ABOUTME: Google Books evidence client.
# ABOUTME: Fetches a volume's description and categories by ISBN or volume id.

from typing import Any
from urllib.parse import quote

from shelfmeta.config import DEFAULT_HARVEST_USER_AGENT
from shelfmeta.harvest.client import HarvestClient
from shelfmeta.harvest.types import GoogleBooksVolume
from shelfmeta.metadata.http import HttpClient

GOOGLE_BOOKS_API = "https://www.googleapis.com/books/v1/volumes"


def parse_volume(volume: Any) -> GoogleBooksVolume | None:
    """Map a volume resource; None when it has no title."""
    if not isinstance(volume, dict):
        return None
    info = volume.get("volumeInfo")
    if not isinstance(info, dict) or not info.get("title"):
        return None
    return GoogleBooksVolume(
        volume_id=str(volume.get("id") or ""),
        title=info["title"],
        authors=list(info.get("authors") or []),
        description=info.get("description"),
        categories=list(info.get("categories") or []),
        published_date=info.get("publishedDate"),
        language=info.get("language"),
        page_count=info.get("pageCount"),
        preview_link=info.get("previewLink"),
        info_link=info.get("infoLink"),
    )


class GoogleBooksClient(HarvestClient):
    name = "googlebooks"

    def __init__(
        self,
        user_agent: str = DEFAULT_HARVEST_USER_AGENT,
        *,
        http_client: HttpClient | None = None,
    ) -> None:
        super().__init__(user_agent, min_delay_ms=200, jitter_ms=150, http_client=http_client)

    async def fetch_by_isbn(self, isbn: str) -> GoogleBooksVolume | None:
        """First volume matching the ISBN, or None."""
        data = await self._get(GOOGLE_BOOKS_API, {"q": f"isbn:{isbn}", "maxResults": "3"})
        if not isinstance(data, dict) or not data.get("items"):
            return None
        return parse_volume(data["items"][0])

    async def fetch_by_id(self, volume_id: str) -> GoogleBooksVolume | None:
        data = await self._get(f"{GOOGLE_BOOKS_API}/{quote(volume_id, safe='')}")
        return parse_volume(data)
