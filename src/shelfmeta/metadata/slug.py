# ABOUTME: Maps external subject terms to canonical taxonomy slugs via static mapping tables.
# ABOUTME: Resolution tiers are id match, label match, then a generated fallback slug.

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from shelfmeta.config import MetadataSettings
from shelfmeta.metadata.review_queue import ReviewQueue
from shelfmeta.metadata.types import MatchType, SlugResolution

logger = logging.getLogger(__name__)

MAPPING_FILES: dict[str, str] = {
    "loc": "loc-to-slug.json",
    "fast": "fast-to-slug.json",
    "wikidata": "wikidata-to-slug.json",
}

_APOSTROPHE_RE = re.compile(r"['’]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_SCHEME_RE = re.compile(r"^https?://")
_TYPOGRAPHIC_DASH_RE = re.compile(r"[–—]")


def to_slug(value: str) -> str:
    """Slugify free text: lowercase, drop apostrophes, hyphenate everything else."""
    lowered = _APOSTROPHE_RE.sub("", value.lower())
    return _NON_ALNUM_RE.sub("-", lowered).strip("-")


def _normalize(value: str | None) -> str | None:
    if not value:
        return None
    normalized = value.strip().lower()
    return normalized or None


@dataclass(frozen=True)
class SlugMapping:
    """Static id and label lookup tables for one source. Keys are lowercase."""

    ids: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)


def load_mapping(path: Path) -> SlugMapping:
    """Load a `{"ids": {...}, "labels": {...}}` mapping file.

    A missing file yields an empty mapping. Keys are lowercased so lookups
    are case-insensitive.
    """
    if not path.exists():
        logger.debug("No slug mapping at %s", path)
        return SlugMapping()
    data = json.loads(path.read_text(encoding="utf-8"))
    ids = {str(k).strip().lower(): v for k, v in (data.get("ids") or {}).items()}
    labels = {str(k).strip().lower(): v for k, v in (data.get("labels") or {}).items()}
    return SlugMapping(ids=ids, labels=labels)


def _id_candidates(normalized_id: str | None) -> list[str]:
    """Bare id, id without URL scheme, and last path segment, de-duplicated."""
    if not normalized_id:
        return []
    candidates = [
        normalized_id,
        _SCHEME_RE.sub("", normalized_id),
        normalized_id.rstrip("/").split("/")[-1],
    ]
    return [c for c in dict.fromkeys(candidates) if c]


class SlugResolver:
    """Resolves (source, label, id) triples to internal taxonomy slugs.

    Mapping tables are loaded from `mappings_dir` on first use per source and
    then kept for the life of the resolver. Terms that miss both the id and
    label tables are submitted to the review queue (unless disabled), whether
    or not a generated fallback slug is returned.
    """

    def __init__(
        self,
        mappings_dir: Path,
        review_queue: ReviewQueue | None = None,
        mappings: dict[str, SlugMapping] | None = None,
    ) -> None:
        self._mappings_dir = Path(mappings_dir)
        self._review_queue = review_queue
        self._mappings: dict[str, SlugMapping] = dict(mappings or {})

    @property
    def review_queue(self) -> ReviewQueue | None:
        return self._review_queue

    def mapping_for(self, source: str) -> SlugMapping:
        source = str(source)
        if source not in self._mappings:
            file_name = MAPPING_FILES.get(source, f"{source}-to-slug.json")
            self._mappings[source] = load_mapping(self._mappings_dir / file_name)
        return self._mappings[source]

    def resolve(
        self,
        source: str,
        value: str,
        id: str | None = None,
        *,
        strict: bool = False,
        queue_review: bool = True,
    ) -> SlugResolution | None:
        """Resolve one term.

        Tries the id table with each id candidate, then the label table with
        the label as given and with en/em dashes turned into hyphens. Outside
        strict mode an unmapped label falls back to a generated slug.
        Returns None when nothing matched and no fallback could be produced.
        """
        normalized_value = _normalize(value)
        normalized_id = _normalize(id)
        mapping = self.mapping_for(source)

        for candidate in _id_candidates(normalized_id):
            slug = mapping.ids.get(candidate)
            if slug:
                return SlugResolution(slug=slug, match_type=MatchType.ID)

        if normalized_value:
            slug = mapping.labels.get(normalized_value) or mapping.labels.get(
                _TYPOGRAPHIC_DASH_RE.sub("-", normalized_value)
            )
            if slug:
                return SlugResolution(slug=slug, match_type=MatchType.LABEL)

        if not strict and normalized_value:
            generated = to_slug(normalized_value)
            if generated:
                return SlugResolution(slug=generated, match_type=MatchType.GENERATED)

        if queue_review and normalized_value and self._review_queue is not None:
            self._review_queue.submit(str(source), id, value)
        return None


_default_resolver: SlugResolver | None = None


def configure_default_resolver(resolver: SlugResolver | None) -> None:
    """Install (or clear, with None) the process-wide resolver."""
    global _default_resolver
    _default_resolver = resolver


def get_default_resolver() -> SlugResolver:
    global _default_resolver
    if _default_resolver is None:
        settings = MetadataSettings.from_env()
        _default_resolver = SlugResolver(
            settings.mappings_dir, ReviewQueue(settings.review_queue_path)
        )
    return _default_resolver


def resolve_slug(
    source: str,
    value: str,
    id: str | None = None,
    *,
    strict: bool = False,
    queue_review: bool = True,
) -> SlugResolution | None:
    """Resolve a term with the process-wide default resolver."""
    return get_default_resolver().resolve(
        source, value, id, strict=strict, queue_review=queue_review
    )
