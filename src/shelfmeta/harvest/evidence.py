# ABOUTME: Builds descriptive-evidence snapshots for one book from the harvest clients.
# ABOUTME: Also decides when previously captured evidence is missing or stale.

import hashlib
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from shelfmeta.config import HarvestSettings
from shelfmeta.harvest.googlebooks import GoogleBooksClient
from shelfmeta.harvest.openlibrary import OpenLibraryClient
from shelfmeta.harvest.types import (
    GOOGLE_BOOKS_LICENSE,
    WIKIDATA_LICENSE,
    EvidenceSnapshot,
    GoogleBooksVolume,
    HarvestResult,
    OpenLibraryEvidence,
)
from shelfmeta.harvest.wikidata import WikidataHarvestClient
from shelfmeta.harvest.wikipedia import WikipediaClient
from shelfmeta.metadata.types import utc_now_iso

logger = logging.getLogger(__name__)

REQUIRED_SOURCES: tuple[str, ...] = ("openlibrary", "wikipedia")
DEFAULT_SOURCES: tuple[str, ...] = (*REQUIRED_SOURCES, "googlebooks")
ALL_SOURCES: tuple[str, ...] = (*DEFAULT_SOURCES, "wikidata")

_SUBJECT_LIMIT = 25
_CATEGORY_LIMIT = 20


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def truncate_extract(text: str, max_length: int = 1800) -> str:
    """Cut to max_length characters, ending in "..." when shortened."""
    if len(text) <= max_length:
        return text
    return f"{text[: max(0, max_length - 3)]}..."


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def needs_reharvest(
    snapshots: Iterable[EvidenceSnapshot],
    required_sources: Iterable[str] = REQUIRED_SOURCES,
    stale_days: int = 90,
    now: datetime | None = None,
) -> bool:
    """True when any required source is missing or any snapshot is older than stale_days.

    A snapshot with an unreadable timestamp counts as stale.
    """
    snapshots = list(snapshots)
    if not snapshots:
        return True
    present = {s.source for s in snapshots}
    if any(source not in present for source in required_sources):
        return True
    cutoff = (now or datetime.now(UTC)) - timedelta(days=stale_days)
    for snapshot in snapshots:
        fetched = _parse_timestamp(snapshot.fetched_at)
        if fetched is None or fetched < cutoff:
            return True
    return False


def openlibrary_extract(evidence: OpenLibraryEvidence, limit: int) -> str | None:
    segments: list[str] = []
    title = (evidence.work.title if evidence.work else None) or (
        evidence.edition.title if evidence.edition else None
    )
    if title:
        segments.append(f"Title: {title}")
    if evidence.work and evidence.work.description:
        segments.append(f"Description: {evidence.work.description}")
    if evidence.work and evidence.work.excerpt:
        segments.append(f"Excerpt: {evidence.work.excerpt}")
    if evidence.subjects:
        segments.append(f"Subjects: {', '.join(evidence.subjects[:_SUBJECT_LIMIT])}")
    if evidence.edition and evidence.edition.publish_date:
        segments.append(f"Publication: {evidence.edition.publish_date}")
    if evidence.edition and evidence.edition.languages:
        segments.append(f"Languages: {', '.join(evidence.edition.languages)}")
    extract = "\n\n".join(segments).strip()
    return truncate_extract(extract, limit) if extract else None


def wikipedia_extract(extract: str, categories: list[str], limit: int) -> str:
    parts = [extract.strip()]
    if categories:
        parts.append(f"Categories: {', '.join(categories[:_CATEGORY_LIMIT])}")
    return truncate_extract("\n\n".join(parts), limit)


def googlebooks_extract(volume: GoogleBooksVolume, limit: int) -> str:
    sections = [f"Title: {volume.title}"]
    if volume.description:
        sections.append(f"Description: {volume.description}")
    if volume.categories:
        sections.append(f"Categories: {', '.join(volume.categories[:_CATEGORY_LIMIT])}")
    return truncate_extract("\n\n".join(sections), limit)


def _snapshot(
    source: str,
    source_key: str,
    extract: str,
    *,
    url: str | None,
    license: str | None,
    revision: str | None = None,
) -> EvidenceSnapshot:
    return EvidenceSnapshot(
        source=source,
        source_key=source_key,
        extract=extract,
        sha256=sha256_hex(extract),
        fetched_at=utc_now_iso(),
        url=url,
        license=license,
        revision=revision,
    )


@dataclass
class BookRef:
    """What the harvester knows about the book it is collecting evidence for."""

    title: str | None = None
    isbn13: str | None = None
    isbn10: str | None = None
    author: str | None = None
    google_books_id: str | None = None
    wikipedia_title: str | None = None

    @property
    def isbn(self) -> str | None:
        return self.isbn13 or self.isbn10


class EvidenceHarvester:
    """Runs the harvest clients for one book and snapshots their descriptive text.

    Sources that cannot be harvested are reported in `HarvestResult.skipped`
    with a reason instead of raising.
    """

    def __init__(
        self,
        settings: HarvestSettings | None = None,
        *,
        openlibrary: OpenLibraryClient | None = None,
        wikipedia: WikipediaClient | None = None,
        googlebooks: GoogleBooksClient | None = None,
        wikidata: WikidataHarvestClient | None = None,
    ) -> None:
        self._settings = settings or HarvestSettings()
        s = self._settings
        self._openlibrary = openlibrary or OpenLibraryClient(s.openlibrary_user_agent)
        self._wikipedia = wikipedia or WikipediaClient(
            s.wikipedia_user_agent, default_lang=s.wikipedia_lang
        )
        self._googlebooks = googlebooks or GoogleBooksClient(s.google_books_user_agent)
        self._wikidata = wikidata or WikidataHarvestClient(s.wikidata_user_agent)

    async def aclose(self) -> None:
        for client in (self._openlibrary, self._wikipedia, self._googlebooks, self._wikidata):
            await client.aclose()

    async def build(
        self, book: BookRef, sources: Iterable[str] = DEFAULT_SOURCES
    ) -> HarvestResult:
        result = HarvestResult()
        limit = self._settings.extract_char_limit
        for source in dict.fromkeys(sources):
            if source == "openlibrary":
                await self._harvest_openlibrary(book, result, limit)
            elif source == "wikipedia":
                await self._harvest_wikipedia(book, result, limit)
            elif source == "googlebooks":
                await self._harvest_googlebooks(book, result, limit)
            elif source == "wikidata":
                await self._harvest_wikidata(book, result, limit)
            else:
                logger.warning("Unknown evidence source %r, skipping", source)
                result.skipped[source] = "unknown source"
        return result

    async def _harvest_openlibrary(self, book: BookRef, result: HarvestResult, limit: int) -> None:
        if not book.isbn:
            result.skipped["openlibrary"] = "no ISBN available"
            return
        evidence = await self._openlibrary.lookup_by_isbn(book.isbn)
        if evidence is None:
            result.skipped["openlibrary"] = "no OpenLibrary match"
            return
        extract = openlibrary_extract(evidence, limit)
        if not extract:
            result.skipped["openlibrary"] = "empty extract"
            return
        revision = (evidence.work.revision if evidence.work else None) or (
            evidence.edition.revision if evidence.edition else None
        )
        result.snapshots.append(
            _snapshot(
                "openlibrary",
                (evidence.work.work_id if evidence.work else None)
                or (evidence.edition.edition_id if evidence.edition else None)
                or book.isbn,
                extract,
                url=(evidence.work.url if evidence.work else None)
                or (evidence.edition.url if evidence.edition else None),
                license=evidence.license,
                revision=str(revision) if revision is not None else None,
            )
        )

    async def _harvest_wikipedia(self, book: BookRef, result: HarvestResult, limit: int) -> None:
        title = book.wikipedia_title or book.title
        if not title:
            result.skipped["wikipedia"] = "no title available"
            return
        page = await self._wikipedia.fetch_extract(title, intro_only=True, char_limit=limit)
        if page is None:
            result.skipped["wikipedia"] = "no extract returned"
            return
        result.snapshots.append(
            _snapshot(
                "wikipedia",
                page.title,
                wikipedia_extract(page.extract, page.categories, limit),
                url=page.url,
                license=page.license,
                revision=page.revision_id,
            )
        )

    async def _harvest_googlebooks(self, book: BookRef, result: HarvestResult, limit: int) -> None:
        if not book.isbn and not book.google_books_id:
            result.skipped["googlebooks"] = "no ISBN or Google Books ID available"
            return
        if book.isbn:
            volume = await self._googlebooks.fetch_by_isbn(book.isbn)
        else:
            volume = await self._googlebooks.fetch_by_id(book.google_books_id or "")
        if volume is None:
            result.skipped["googlebooks"] = "no Google Books match"
            return
        result.snapshots.append(
            _snapshot(
                "googlebooks",
                volume.volume_id,
                googlebooks_extract(volume, limit),
                url=volume.preview_link or volume.info_link,
                license=GOOGLE_BOOKS_LICENSE,
                revision=volume.published_date,
            )
        )

    async def _harvest_wikidata(self, book: BookRef, result: HarvestResult, limit: int) -> None:
        work = None
        if book.isbn13:
            work = await self._wikidata.fetch_by_isbn(book.isbn13)
        if work is None and book.title and book.author:
            work = await self._wikidata.fetch_by_title(book.title, book.author)
        if work is None:
            result.skipped["wikidata"] = "no Wikidata match"
            return
        sections = []
        if work.genres:
            sections.append(f"Genres: {', '.join(work.genres)}")
        if work.subjects:
            sections.append(f"Subjects: {', '.join(work.subjects)}")
        if not sections:
            result.skipped["wikidata"] = "empty extract"
            return
        result.snapshots.append(
            _snapshot(
                "wikidata",
                work.qid,
                truncate_extract("\n\n".join(sections), limit),
                url=work.url,
                license=WIKIDATA_LICENSE,
            )
        )


async def build_evidence(
    book: BookRef,
    sources: Iterable[str] = DEFAULT_SOURCES,
    settings: HarvestSettings | None = None,
) -> HarvestResult:
    """Harvest evidence for one book with default clients, closing them afterwards."""
    harvester = EvidenceHarvester(settings)
    try:
        return await harvester.build(book, sources)
    finally:
        await harvester.aclose()
