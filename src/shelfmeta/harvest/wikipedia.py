# ABOUTME: Wikipedia evidence client over the MediaWiki action=query API.
# ABOUTME: Fetches plain-text intro extracts with categories, and searches page titles.

import html
import re
from typing import Any
from urllib.parse import quote

from shelfmeta.config import DEFAULT_HARVEST_USER_AGENT
from shelfmeta.harvest.client import HarvestClient
from shelfmeta.harvest.types import WikipediaPage, WikipediaSearchResult
from shelfmeta.metadata.http import HttpClient

_TAG_RE = re.compile(r"<[^>]+>")
_CATEGORY_PREFIX_RE = re.compile(r"^Category:", re.IGNORECASE)
_BASE_PARAMS = {"action": "query", "format": "json", "formatversion": "2", "utf8": "1"}


def api_url(lang: str) -> str:
    return f"https://{lang}.wikipedia.org/w/api.php"


def page_url(title: str, lang: str) -> str:
    return f"https://{lang}.wikipedia.org/wiki/{quote(title.replace(' ', '_'), safe='')}"


def strip_html(text: str | None) -> str:
    """Drop tags from a search snippet and unescape entities."""
    if not text:
        return ""
    return html.unescape(_TAG_RE.sub("", text)).strip()


def normalize_categories(categories: Any) -> list[str]:
    """Visible category names without the "Category:" prefix, de-duplicated."""
    if not isinstance(categories, list):
        return []
    names: dict[str, None] = {}
    for category in categories:
        if not isinstance(category, dict) or category.get("hidden"):
            continue
        name = _CATEGORY_PREFIX_RE.sub("", str(category.get("title") or "")).strip()
        if name:
            names.setdefault(name, None)
    return list(names)


def _query_part(data: Any, key: str) -> Any:
    if not isinstance(data, dict):
        return None
    query = data.get("query")
    if not isinstance(query, dict):
        return None
    return query.get(key)


def first_page(data: Any) -> dict[str, Any] | None:
    """First page of a query response, as a list or keyed by page id."""
    pages = _query_part(data, "pages")
    if isinstance(pages, dict):
        pages = list(pages.values())
    if not isinstance(pages, list) or not pages or not isinstance(pages[0], dict):
        return None
    return pages[0]


class WikipediaClient(HarvestClient):
    name = "wikipedia"

    def __init__(
        self,
        user_agent: str = DEFAULT_HARVEST_USER_AGENT,
        *,
        default_lang: str = "en",
        http_client: HttpClient | None = None,
    ) -> None:
        super().__init__(user_agent, min_delay_ms=200, jitter_ms=150, http_client=http_client)
        self._default_lang = default_lang

    async def _query(self, lang: str, params: dict[str, str]) -> Any:
        return await self._get(api_url(lang), {**_BASE_PARAMS, **params})

    async def fetch_extract(
        self,
        title: str,
        lang: str | None = None,
        intro_only: bool = True,
        char_limit: int = 1200,
    ) -> WikipediaPage | None:
        """Plain-text extract of one page; None when missing or empty."""
        lang = lang or self._default_lang
        params = {
            "prop": "extracts|revisions|categories|info",
            "titles": title,
            "exlimit": "1",
            "redirects": "1",
            "exchars": str(char_limit),
            "exsectionformat": "plain",
            "explaintext": "1",
            "rvprop": "ids|timestamp",
            "rvlimit": "1",
            "cllimit": "20",
            "inprop": "url",
        }
        if intro_only:
            params["exintro"] = "1"

        data = await self._query(lang, params)
        page = first_page(data)
        if page is None or page.get("missing"):
            return None
        extract = (page.get("extract") or "").strip()
        if not extract:
            return None

        revisions = page.get("revisions")
        revision: dict[str, Any] = {}
        if isinstance(revisions, list) and revisions and isinstance(revisions[0], dict):
            revision = revisions[0]
        page_title = page.get("title") or title
        return WikipediaPage(
            title=page_title,
            page_id=int(page.get("pageid") or 0),
            lang=lang,
            url=page.get("fullurl") or page_url(page_title, lang),
            extract=extract,
            revision_id=str(revision["revid"]) if revision.get("revid") else None,
            last_modified=revision.get("timestamp"),
            description=page.get("description"),
            categories=normalize_categories(page.get("categories")),
        )

    async def search_pages(
        self, query: str, lang: str | None = None, limit: int = 5
    ) -> list[WikipediaSearchResult]:
        if not query.strip():
            return []
        lang = lang or self._default_lang
        data = await self._query(
            lang, {"list": "search", "srsearch": query, "srlimit": str(limit), "srprop": "snippet"}
        )
        results = _query_part(data, "search")
        if not isinstance(results, list):
            return []
        return [
            WikipediaSearchResult(
                page_id=int(item.get("pageid") or 0),
                title=item.get("title", ""),
                snippet=strip_html(item.get("snippet")),
                url=page_url(item.get("title", ""), lang),
            )
            for item in results
            if isinstance(item, dict)
        ]
