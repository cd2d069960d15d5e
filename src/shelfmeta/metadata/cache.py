# ABOUTME: File-backed cache of raw adapter responses, namespaced per source.
# ABOUTME: Also builds the per-book cache key shared by every adapter.

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Protocol, runtime_checkable

from shelfmeta.metadata.types import CacheEntry

logger = logging.getLogger(__name__)

_UNSAFE_RE = re.compile(r"[^a-z0-9._-]+")
_DASH_RUN_RE = re.compile(r"-+")

_MAX_CACHE_AUTHORS = 3


def sanitize_segment(segment: str) -> str:
    """Lossy, deterministic transform of a key into a filesystem-safe segment.

    Lowercases, collapses runs of characters outside [a-z0-9._-] into a
    single hyphen, and trims leading/trailing hyphens.
    """
    lowered = segment.strip().lower()
    collapsed = _DASH_RUN_RE.sub("-", _UNSAFE_RE.sub("-", lowered))
    return collapsed.strip("-")


def build_cache_key(
    *,
    isbn13: str | None = None,
    isbn10: str | None = None,
    doi: str | None = None,
    oclc: str | None = None,
    title: str | None = None,
    authors: list[str] | None = None,
) -> str:
    """Build the identity key for one logical book.

    Prefers ISBN-13, ISBN-10, DOI, then OCLC. Without any identifier the key
    is a composite of the sanitized title and the first three authors.
    """
    if isbn13 and isbn13.strip():
        return f"isbn13-{sanitize_segment(isbn13)}"
    if isbn10 and isbn10.strip():
        return f"isbn10-{sanitize_segment(isbn10)}"
    if doi and doi.strip():
        return f"doi-{sanitize_segment(doi)}"
    if oclc and oclc.strip():
        return f"oclc-{sanitize_segment(oclc)}"

    author_parts = [sanitize_segment(a) for a in (authors or []) if a and a.strip()]
    author_key = "_".join(author_parts[:_MAX_CACHE_AUTHORS]) if author_parts else "na"
    title_key = sanitize_segment(title) if title and title.strip() else ""
    return f"title-{title_key or 'untitled'}-auth-{author_key}"


@runtime_checkable
class CacheClient(Protocol):
    """Read-through / write-through storage for raw adapter responses."""

    async def read(self, source: str, key: str) -> CacheEntry | None: ...

    async def write(self, source: str, key: str, entry: CacheEntry) -> None: ...


class FileCache:
    """On-disk JSON cache laid out as `{cache_dir}/{source}/{key}.json`.

    Entries never expire; a key is re-fetched only on a miss. A missing file
    reads as None. Any other I/O or decode error propagates to the caller.
    """

    def __init__(self, cache_dir: Path) -> None:
        self._cache_dir = Path(cache_dir)

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def path_for(self, source: str, key: str) -> Path:
        return self._cache_dir / str(source) / f"{sanitize_segment(key)}.json"

    async def read(self, source: str, key: str) -> CacheEntry | None:
        return await asyncio.to_thread(self._read_sync, self.path_for(source, key))

    async def write(self, source: str, key: str, entry: CacheEntry) -> None:
        await asyncio.to_thread(self._write_sync, self.path_for(source, key), entry)

    @staticmethod
    def _read_sync(path: Path) -> CacheEntry | None:
        try:
            contents = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        logger.debug("Cache hit: %s", path)
        return CacheEntry.from_dict(json.loads(contents))

    @staticmethod
    def _write_sync(path: Path, entry: CacheEntry) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(entry.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("Cache write: %s", path)
