# ABOUTME: Open Library evidence client.
# ABOUTME: Looks up an edition by ISBN, follows it to the work, and searches works by text.

import logging

from shelfmeta.config import DEFAULT_HARVEST_USER_AGENT
from shelfmeta.harvest.client import HarvestClient
from shelfmeta.harvest.openlibrary_parser import (
    OL_BASE,
    dedupe_strings,
    normalize_work_key,
    parse_edition,
    parse_search_results,
    parse_work,
    work_cover,
)
from shelfmeta.harvest.types import (
    OpenLibraryEvidence,
    OpenLibrarySearchResult,
    OpenLibraryWork,
)
from shelfmeta.metadata.http import HttpClient
from shelfmeta.metadata.queries import normalize_isbn

logger = logging.getLogger(__name__)

_SEARCH_FIELDS = "key,title,author_name,first_publish_year,subject"


class OpenLibraryClient(HarvestClient):
    """Evidence client backed by the Open Library API.

    Uses dependency-injected HttpClient for testability.
    """

    name = "openlibrary"

    def __init__(
        self,
        user_agent: str = DEFAULT_HARVEST_USER_AGENT,
        *,
        http_client: HttpClient | None = None,
    ) -> None:
        super().__init__(user_agent, min_delay_ms=250, jitter_ms=150, http_client=http_client)

    async def lookup_by_isbn(self, isbn: str) -> OpenLibraryEvidence | None:
        """Look up an edition by ISBN and enrich it from its work.

        Returns None for a malformed ISBN or when Open Library has no edition.
        Subjects are the de-duplicated union of edition and work subjects.
        """
        normalized = normalize_isbn(isbn)
        if not normalized or len(normalized) not in (10, 13):
            return None

        edition_raw = await self._get(f"{OL_BASE}/isbn/{normalized}.json")
        if not isinstance(edition_raw, dict):
            return None
        edition = parse_edition(edition_raw)

        work_raw = None
        works = edition_raw.get("works") or []
        if works and isinstance(works[0], dict) and works[0].get("key"):
            work_raw = await self._get(f"{OL_BASE}{normalize_work_key(works[0]['key'])}.json")
        work = parse_work(work_raw) if isinstance(work_raw, dict) else None

        subjects = dedupe_strings(
            edition.subjects,
            work.subjects if work else None,
            work.subject_places if work else None,
            work.subject_times if work else None,
        )
        cover = edition.cover_image or work_cover(work_raw if isinstance(work_raw, dict) else None)
        return OpenLibraryEvidence(edition=edition, work=work, subjects=subjects, cover_image=cover)

    async def fetch_work(self, work_key: str) -> OpenLibraryWork | None:
        data = await self._get(f"{OL_BASE}{normalize_work_key(work_key)}.json")
        return parse_work(data) if isinstance(data, dict) else None

    async def search_works(self, query: str, limit: int = 5) -> list[OpenLibrarySearchResult]:
        if not query.strip():
            return []
        params = {"q": query, "limit": str(limit), "fields": _SEARCH_FIELDS}
        data = await self._get(f"{OL_BASE}/search.json", params)
        if not isinstance(data, dict):
            return []
        return parse_search_results(data, limit)
