# ABOUTME: Data structures returned by the evidence-harvest clients.
# ABOUTME: One dataclass per upstream record shape plus the EvidenceSnapshot they feed.

from dataclasses import asdict, dataclass, field
from typing import Any

OPEN_LIBRARY_LICENSE = "CC0"
WIKIPEDIA_LICENSE = "CC-BY-SA-4.0"
GOOGLE_BOOKS_LICENSE = "GOOGLE_BOOKS_TOS"
WIKIDATA_LICENSE = "CC0"


@dataclass
class OpenLibraryWork:
    work_id: str
    title: str
    url: str
    description: str | None = None
    subjects: list[str] = field(default_factory=list)
    subject_places: list[str] = field(default_factory=list)
    subject_times: list[str] = field(default_factory=list)
    revision: int | None = None
    last_modified: str | None = None
    excerpt: str | None = None


@dataclass
class OpenLibraryEdition:
    edition_id: str
    title: str
    url: str
    publish_date: str | None = None
    number_of_pages: int | None = None
    languages: list[str] = field(default_factory=list)
    subjects: list[str] = field(default_factory=list)
    revision: int | None = None
    last_modified: str | None = None
    isbn_10: list[str] = field(default_factory=list)
    isbn_13: list[str] = field(default_factory=list)
    cover_image: str | None = None


@dataclass
class OpenLibraryEvidence:
    """Edition, its work, and the union of their subject lists."""

    edition: OpenLibraryEdition | None = None
    work: OpenLibraryWork | None = None
    subjects: list[str] = field(default_factory=list)
    cover_image: str | None = None
    source: str = "openlibrary"
    license: str = OPEN_LIBRARY_LICENSE


@dataclass
class OpenLibrarySearchResult:
    work_id: str
    title: str
    url: str
    author_names: list[str] = field(default_factory=list)
    first_publish_year: int | None = None
    subjects: list[str] = field(default_factory=list)


@dataclass
class GoogleBooksVolume:
    volume_id: str
    title: str
    authors: list[str] = field(default_factory=list)
    description: str | None = None
    categories: list[str] = field(default_factory=list)
    published_date: str | None = None
    language: str | None = None
    page_count: int | None = None
    preview_link: str | None = None
    info_link: str | None = None


@dataclass
class WikipediaPage:
    title: str
    page_id: int
    lang: str
    url: str
    extract: str
    revision_id: str | None = None
    last_modified: str | None = None
    description: str | None = None
    categories: list[str] = field(default_factory=list)
    license: str = WIKIPEDIA_LICENSE


@dataclass
class WikipediaSearchResult:
    page_id: int
    title: str
    snippet: str
    url: str


@dataclass
class WikidataWork:
    qid: str
    url: str
    genres: list[str] = field(default_factory=list)
    subjects: list[str] = field(default_factory=list)
    raw: Any = None


@dataclass
class EvidenceSnapshot:
    """Descriptive text captured from one source, with its provenance.

    `sha256` is the hex digest of `extract`, so unchanged content can be
    detected across harvests.
    """

    source: str
    source_key: str
    extract: str
    sha256: str
    fetched_at: str
    url: str | None = None
    license: str | None = None
    revision: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "EvidenceSnapshot":
        return cls(
            source=str(payload.get("source", "")),
            source_key=str(payload.get("source_key", "")),
            extract=str(payload.get("extract", "")),
            sha256=str(payload.get("sha256", "")),
            fetched_at=str(payload.get("fetched_at", "")),
            url=payload.get("url"),
            license=payload.get("license"),
            revision=payload.get("revision"),
        )


@dataclass
class HarvestResult:
    """Snapshots captured for one book plus the reason each other source was skipped."""

    snapshots: list[EvidenceSnapshot] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)

    @property
    def updated_sources(self) -> list[str]:
        return [s.source for s in self.snapshots]

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshots": [s.to_dict() for s in self.snapshots],
            "skipped": dict(self.skipped),
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "HarvestResult":
        """Rebuild a result from `to_dict` output, dropping malformed items."""
        if not isinstance(payload, dict):
            return cls()
        snapshots = payload.get("snapshots")
        if not isinstance(snapshots, list):
            snapshots = []
        skipped = payload.get("skipped")
        if not isinstance(skipped, dict):
            skipped = {}
        return cls(
            snapshots=[EvidenceSnapshot.from_dict(s) for s in snapshots if isinstance(s, dict)],
            skipped={str(k): str(v) for k, v in skipped.items()},
        )
