# ABOUTME: Parsing functions for Open Library API JSON responses.
# ABOUTME: Converts OL editions, works, and search docs into harvest dataclasses.

from typing import Any

from shelfmeta.harvest.types import (
    OpenLibraryEdition,
    OpenLibrarySearchResult,
    OpenLibraryWork,
)

OL_BASE = "https://openlibrary.org"
_COVERS_BASE_URL = "https://covers.openlibrary.org/b"

# Search docs can carry hundreds of subjects; keep the head of the list.
_SEARCH_SUBJECT_LIMIT = 10


def read_text(value: Any) -> str | None:
    """Read an OL text field.

    Handles the OL quirk where text can be either a plain string or a dict
    with {"type": ..., "value": "actual text"}.
    """
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, str):
        return value.strip() or None
    return None


def dedupe_strings(*lists: Any) -> list[str]:
    """Trimmed, non-empty strings from every list, first occurrence kept."""
    seen: dict[str, None] = {}
    for values in lists:
        if not isinstance(values, list):
            continue
        for value in values:
            if isinstance(value, str) and value.strip():
                seen.setdefault(value.strip(), None)
    return list(seen)


def normalize_work_key(work_key: str) -> str:
    """Accept "OL1W", "works/OL1W" or "/works/OL1W" and return "/works/OL1W"."""
    if work_key.startswith("/works/"):
        return work_key
    trimmed = work_key.lstrip("/")
    if trimmed.startswith("works/"):
        return f"/{trimmed}"
    return f"/works/{trimmed}"


def build_cover_url(
    *, cover_id: int | None = None, isbn: str | None = None, size: str = "L"
) -> str:
    """Build an Open Library cover image URL from a cover id or an ISBN.

    Args:
        cover_id: Numeric cover id, preferred when present.
        isbn: ISBN used when there is no cover id.
        size: Image size: "S" (small), "M" (medium), or "L" (large).
    """
    if cover_id is not None:
        return f"{_COVERS_BASE_URL}/id/{cover_id}-{size}.jpg"
    return f"{_COVERS_BASE_URL}/isbn/{isbn}-{size}.jpg"


def _first_cover(data: dict[str, Any]) -> int | None:
    covers = data.get("covers")
    if isinstance(covers, list) and covers and isinstance(covers[0], int) and covers[0] > 0:
        return covers[0]
    return None


def _strings(value: Any) -> list[str]:
    return [v for v in value if isinstance(v, str)] if isinstance(value, list) else []


def _last_modified(data: dict[str, Any]) -> str | None:
    modified = data.get("last_modified")
    if isinstance(modified, dict) and isinstance(modified.get("value"), str):
        return modified["value"]
    return None


def edition_cover(data: dict[str, Any]) -> str | None:
    cover_id = _first_cover(data)
    if cover_id is not None:
        return build_cover_url(cover_id=cover_id)
    for field_name in ("isbn_13", "isbn_10"):
        isbns = _strings(data.get(field_name))
        if isbns:
            return build_cover_url(isbn=isbns[0])
    return None


def work_cover(data: dict[str, Any] | None) -> str | None:
    if not data:
        return None
    cover_id = _first_cover(data)
    return build_cover_url(cover_id=cover_id) if cover_id is not None else None


def parse_edition(data: dict[str, Any]) -> OpenLibraryEdition:
    """Parse an Open Library ISBN/edition endpoint response."""
    key = str(data.get("key") or "")
    languages = []
    for entry in data.get("languages") or []:
        lang_key = entry.get("key", "") if isinstance(entry, dict) else ""
        if lang_key:
            languages.append(lang_key.rsplit("/", 1)[-1])

    return OpenLibraryEdition(
        edition_id=key.replace("/books/", "") or key,
        title=str(data.get("title") or "Unknown"),
        url=f"{OL_BASE}{key}",
        publish_date=data.get("publish_date"),
        number_of_pages=data.get("number_of_pages"),
        languages=languages,
        subjects=dedupe_strings(
            data.get("subjects"),
            data.get("subject_people"),
            data.get("subject_places"),
            data.get("subject_times"),
        ),
        revision=data.get("revision"),
        last_modified=_last_modified(data),
        isbn_10=_strings(data.get("isbn_10")),
        isbn_13=_strings(data.get("isbn_13")),
        cover_image=edition_cover(data),
    )


def parse_work(data: dict[str, Any]) -> OpenLibraryWork:
    """Parse an Open Library Works endpoint response."""
    key = str(data.get("key") or "")
    excerpt = None
    excerpts = data.get("excerpts")
    if isinstance(excerpts, list) and excerpts and isinstance(excerpts[0], dict):
        excerpt = read_text(excerpts[0].get("text"))

    return OpenLibraryWork(
        work_id=key.replace("/works/", "") or key,
        title=str(data.get("title") or "Unknown"),
        url=f"{OL_BASE}{key}",
        description=read_text(data.get("description")),
        subjects=dedupe_strings(data.get("subjects")),
        subject_places=dedupe_strings(data.get("subject_places")),
        subject_times=dedupe_strings(data.get("subject_times")),
        revision=data.get("revision"),
        last_modified=_last_modified(data),
        excerpt=excerpt,
    )


def parse_search_results(data: dict[str, Any], limit: int) -> list[OpenLibrarySearchResult]:
    """Parse an Open Library Search API response, dropping docs without a work key."""
    results: list[OpenLibrarySearchResult] = []
    for doc in (data.get("docs") or [])[:limit]:
        key = doc.get("key") if isinstance(doc, dict) else None
        if not key:
            continue
        results.append(
            OpenLibrarySearchResult(
                work_id=key.replace("/works/", ""),
                title=str(doc.get("title") or "Unknown"),
                url=f"{OL_BASE}{key}",
                author_names=_strings(doc.get("author_name")),
                first_publish_year=doc.get("first_publish_year"),
                subjects=_strings(doc.get("subject"))[:_SEARCH_SUBJECT_LIMIT],
            )
        )
    return results
