# ABOUTME: Core data structures for the metadata aggregation pipeline.
# ABOUTME: Adapter inputs, per-source labels, merged labels, cache entries, and review entries.

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class AdapterId(StrEnum):
    """External bibliographic authorities queried by the orchestrator."""

    LOC = "loc"
    FAST = "fast"
    WIKIDATA = "wikidata"


class Confidence(StrEnum):
    """Coarse trust rating attached to a resolved label."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    def outranks(self, other: "Confidence") -> bool:
        return self.rank > other.rank


_CONFIDENCE_RANK = {Confidence.HIGH: 3, Confidence.MEDIUM: 2, Confidence.LOW: 1}


class LabelKind(StrEnum):
    """Semantic kind of a subject label."""

    GENRE = "genre"
    TOPIC = "topic"
    SETTING = "setting"
    AUDIENCE = "audience"
    FORMAT = "format"
    PERSON = "person"
    PLACE = "place"


class MatchType(StrEnum):
    """How a raw term was resolved to a slug."""

    ID = "id"
    LABEL = "label"
    GENERATED = "generated"


class TaxonomyKind(StrEnum):
    """Classification of a slug inside the internal taxonomy."""

    DOMAIN = "domain"
    SUPERGENRE = "supergenre"
    GENRE = "genre"
    SUBGENRE = "subgenre"
    CROSS_TAG = "cross_tag"
    FORMAT = "format"
    AUDIENCE = "audience"
    UNKNOWN = "unknown"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with a trailing Z."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class AdapterInput:
    """Bibliographic query key handed to every adapter.

    At least one of ISBN or title should be present for a lookup to be
    meaningful; adapters skip gracefully otherwise.
    """

    isbn10: str | None = None
    isbn13: str | None = None
    oclc: str | None = None
    doi: str | None = None
    title: str | None = None
    authors: list[str] = field(default_factory=list)

    @property
    def isbn(self) -> str | None:
        """Preferred ISBN: ISBN-13 first, then ISBN-10."""
        return self.isbn13 or self.isbn10 or None

    @property
    def has_lookup_key(self) -> bool:
        return bool(self.isbn or (self.title and self.title.strip()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "isbn10": self.isbn10,
            "isbn13": self.isbn13,
            "oclc": self.oclc,
            "doi": self.doi,
            "title": self.title,
            "authors": list(self.authors),
        }


@dataclass
class SlugResolution:
    """Result of mapping an external term to an internal slug."""

    slug: str
    match_type: MatchType

    @property
    def confidence(self) -> Confidence:
        """ID and label matches are trusted; generated slugs are best effort."""
        if self.match_type is MatchType.GENERATED:
            return Confidence.MEDIUM
        return Confidence.HIGH


@dataclass
class AdapterLabel:
    """One candidate taxonomy label produced by a single source."""

    slug: str
    name: str
    source: AdapterId
    confidence: Confidence
    kind: LabelKind
    raw: list[Any] = field(default_factory=list)
    id: str | None = None
    url: str | None = None
    notes: list[str] = field(default_factory=list)
    taxonomy_type: TaxonomyKind | None = None
    taxonomy_group: str | None = None
    taxonomy_parent: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "kind": self.kind.value,
            "confidence": self.confidence.value,
            "taxonomy_type": self.taxonomy_type.value if self.taxonomy_type else None,
            "taxonomy_group": self.taxonomy_group,
            "taxonomy_parent": self.taxonomy_parent,
            "id": self.id,
            "url": self.url,
            "raw": self.raw,
            "notes": list(self.notes),
        }


@dataclass
class AdapterResult:
    """Labels and diagnostic notes returned by one adapter lookup."""

    labels: list[AdapterLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


@dataclass
class SourceContribution:
    """Provenance of one source's contribution to a merged label."""

    source: AdapterId
    confidence: Confidence
    id: str | None = None
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value,
            "confidence": self.confidence.value,
            "id": self.id,
            "url": self.url,
        }


@dataclass
class AggregatedLabel:
    """Merged view of one slug across every source that produced it.

    A slug appears at most once in an aggregate. `confidence` is the maximum
    of all contributions, and `sources` keeps one entry per contribution in
    arrival order.
    """

    slug: str
    name: str
    kind: LabelKind
    confidence: Confidence
    taxonomy_type: TaxonomyKind = TaxonomyKind.UNKNOWN
    taxonomy_group: str | None = None
    taxonomy_parent: str | None = None
    sources: list[SourceContribution] = field(default_factory=list)
    raw: dict[AdapterId, list[Any]] = field(default_factory=dict)

    @property
    def source_ids(self) -> list[AdapterId]:
        """Distinct contributing sources, in order of first contribution."""
        return list(dict.fromkeys(s.source for s in self.sources))

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "kind": self.kind.value,
            "confidence": self.confidence.value,
            "taxonomy_type": self.taxonomy_type.value,
            "taxonomy_group": self.taxonomy_group,
            "taxonomy_parent": self.taxonomy_parent,
            "sources": [s.to_dict() for s in self.sources],
            "raw": {source.value: items for source, items in self.raw.items()},
        }


@dataclass
class AggregatedMetadata:
    """Result of an orchestrated lookup across several adapters."""

    labels: list[AggregatedLabel] = field(default_factory=list)
    by_source: dict[AdapterId, list[AdapterLabel]] = field(default_factory=dict)
    notes: dict[AdapterId, list[str]] = field(default_factory=dict)


@dataclass
class CacheEntry:
    """A raw adapter response stored on disk with its fetch time."""

    fetched_at: str
    data: Any

    @classmethod
    def now(cls, data: Any) -> "CacheEntry":
        return cls(fetched_at=utc_now_iso(), data=data)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "CacheEntry":
        return cls(fetched_at=payload.get("fetchedAt", ""), data=payload.get("data"))

    def to_dict(self) -> dict[str, Any]:
        return {"fetchedAt": self.fetched_at, "data": self.data}


@dataclass
class ReviewQueueEntry:
    """An unresolved subject term awaiting human curation."""

    source: str
    id: str | None
    label: str
    first_seen_at: str
    occurrences: int = 1

    @property
    def key(self) -> str:
        return review_key(self.source, self.id, self.label)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ReviewQueueEntry":
        return cls(
            source=str(payload.get("source", "")),
            id=payload.get("id"),
            label=str(payload.get("label", "")),
            first_seen_at=str(payload.get("firstSeenAt", "")),
            occurrences=int(payload.get("occurrences", 1)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "id": self.id,
            "label": self.label,
            "firstSeenAt": self.first_seen_at,
            "occurrences": self.occurrences,
        }


def review_key(source: str, id: str | None, label: str) -> str:
    """Case-insensitive identity of a review-queue term."""
    return f"{source}:{(id or '').lower()}:{label.strip().lower()}"
