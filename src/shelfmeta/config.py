# ABOUTME: Environment-driven settings for metadata adapters, harvest clients, and file locations.
# ABOUTME: Every option has a default; missing or invalid values fall back rather than failing.

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_BOT_USER_AGENT = "BookshelvesMetadataBot/1.0 (+https://bookshelves.app)"
DEFAULT_HARVEST_USER_AGENT = "BookshelvesHarvester/1.0 (+https://bookshelves.app)"

PACKAGED_MAPPINGS_DIR = Path(__file__).parent / "metadata" / "mappings"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _to_number(value: str | None, fallback: int) -> int:
    """Parse a positive integer, returning fallback for missing or bad input."""
    if not value:
        return fallback
    try:
        parsed = float(value)
    except ValueError:
        return fallback
    if not math.isfinite(parsed) or parsed <= 0:
        return fallback
    return int(parsed)


def _to_bool(value: str | None, fallback: bool = False) -> bool:
    if value is None or not value.strip():
        return fallback
    return value.strip().lower() in _TRUE_VALUES


def _resolve_path(value: str | None, default: str | Path, root: Path) -> Path:
    raw = Path(value) if value else Path(default)
    return raw if raw.is_absolute() else (root / raw).resolve()


@dataclass(frozen=True)
class SourceSettings:
    """Per-source request discipline for one bibliographic authority."""

    endpoint: str
    rate_limit_ms: int
    jitter_ms: int
    max_retries: int = 2
    user_agent: str = DEFAULT_BOT_USER_AGENT
    api_key: str = ""
    max_suggestions: int = 10


@dataclass(frozen=True)
class HarvestSettings:
    """Settings for the evidence-harvesting clients."""

    openlibrary_user_agent: str = DEFAULT_HARVEST_USER_AGENT
    google_books_user_agent: str = DEFAULT_HARVEST_USER_AGENT
    wikipedia_user_agent: str = DEFAULT_HARVEST_USER_AGENT
    wikidata_user_agent: str = DEFAULT_HARVEST_USER_AGENT
    wikipedia_lang: str = "en"
    extract_char_limit: int = 1800
    stale_days: int = 90


@dataclass(frozen=True)
class MetadataSettings:
    """Top-level settings for the metadata pipeline.

    Built from environment variables with `from_env`. Relative paths are
    resolved against the working directory at construction time.
    """

    cache_dir: Path
    review_queue_path: Path
    mappings_dir: Path
    taxonomy_path: Path
    enrichment_dir: Path
    loc: SourceSettings
    fast: SourceSettings
    wikidata: SourceSettings
    harvest: HarvestSettings = field(default_factory=HarvestSettings)
    strict_slugs: bool = False
    default_sources: tuple[str, ...] = ()

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, root: Path | None = None
    ) -> "MetadataSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ
        base = root if root is not None else Path.cwd()

        loc = SourceSettings(
            endpoint=source.get("METADATA_LOC_SEARCH_ENDPOINT") or "https://www.loc.gov/books/",
            rate_limit_ms=_to_number(source.get("METADATA_LOC_MIN_DELAY_MS"), 400),
            jitter_ms=_to_number(source.get("METADATA_LOC_JITTER_MS"), 150),
            max_retries=_to_number(source.get("METADATA_LOC_MAX_RETRIES"), 2),
            user_agent=source.get("METADATA_LOC_USER_AGENT") or DEFAULT_BOT_USER_AGENT,
        )
        fast = SourceSettings(
            endpoint=source.get("METADATA_FAST_SEARCH_ENDPOINT")
            or "https://fast.oclc.org/searchfast/fastsuggest",
            rate_limit_ms=_to_number(source.get("METADATA_FAST_MIN_DELAY_MS"), 350),
            jitter_ms=_to_number(source.get("METADATA_FAST_JITTER_MS"), 150),
            max_retries=_to_number(source.get("METADATA_FAST_MAX_RETRIES"), 2),
            user_agent=source.get("METADATA_FAST_USER_AGENT") or DEFAULT_BOT_USER_AGENT,
            api_key=(source.get("FAST_API_KEY") or "").strip(),
            max_suggestions=_to_number(source.get("METADATA_FAST_MAX_SUGGESTIONS"), 10),
        )
        wikidata = SourceSettings(
            endpoint=source.get("METADATA_WIKIDATA_ENDPOINT")
            or "https://query.wikidata.org/sparql",
            rate_limit_ms=_to_number(source.get("METADATA_WIKIDATA_MIN_DELAY_MS"), 500),
            jitter_ms=_to_number(source.get("METADATA_WIKIDATA_JITTER_MS"), 200),
            max_retries=_to_number(source.get("METADATA_WIKIDATA_MAX_RETRIES"), 2),
            user_agent=source.get("WIKIDATA_USER_AGENT") or DEFAULT_BOT_USER_AGENT,
        )
        harvest = HarvestSettings(
            openlibrary_user_agent=source.get("OPENLIBRARY_USER_AGENT")
            or DEFAULT_HARVEST_USER_AGENT,
            google_books_user_agent=source.get("GOOGLE_BOOKS_USER_AGENT")
            or DEFAULT_HARVEST_USER_AGENT,
            wikipedia_user_agent=source.get("WIKIPEDIA_USER_AGENT") or DEFAULT_HARVEST_USER_AGENT,
            wikidata_user_agent=source.get("WIKIDATA_USER_AGENT") or DEFAULT_HARVEST_USER_AGENT,
            wikipedia_lang=(source.get("WIKIPEDIA_LANG") or "en").strip().lower(),
            extract_char_limit=_to_number(source.get("EVIDENCE_EXTRACT_LIMIT"), 1800),
            stale_days=_to_number(source.get("EVIDENCE_STALE_DAYS"), 90),
        )

        sources_raw = source.get("METADATA_SOURCES") or ""
        default_sources = tuple(
            dict.fromkeys(s.strip().lower() for s in sources_raw.split(",") if s.strip())
        )

        return cls(
            cache_dir=_resolve_path(source.get("METADATA_CACHE_DIR"), ".cache/metadata", base),
            review_queue_path=_resolve_path(
                source.get("METADATA_REVIEW_QUEUE_PATH"), "metadata/review/new-subjects.json", base
            ),
            mappings_dir=_resolve_path(
                source.get("METADATA_MAPPINGS_DIR"), PACKAGED_MAPPINGS_DIR, base
            ),
            taxonomy_path=_resolve_path(
                source.get("METADATA_TAXONOMY_PATH"), "bookshelves_complete_taxonomy.json", base
            ),
            enrichment_dir=_resolve_path(source.get("ENRICHMENT_DIR"), "enrichment_data", base),
            loc=loc,
            fast=fast,
            wikidata=wikidata,
            harvest=harvest,
            strict_slugs=_to_bool(source.get("METADATA_STRICT_SLUGS")),
            default_sources=default_sources,
        )
