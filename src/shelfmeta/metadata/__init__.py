# ABOUTME: Metadata package for subject lookup, slug resolution, and cross-source aggregation.
# ABOUTME: Exports the orchestrator and the core data types used throughout shelfmeta.

from shelfmeta.metadata.cache import FileCache, build_cache_key
from shelfmeta.metadata.http import MetadataFetchError, ShelfHttpClient
from shelfmeta.metadata.orchestrator import MetadataOrchestrator, merge_label, sort_aggregated
from shelfmeta.metadata.provider import LookupContext, MetadataAdapter
from shelfmeta.metadata.ratelimit import RateLimiter
from shelfmeta.metadata.review_queue import ReviewQueue, queue_unknown_subject
from shelfmeta.metadata.slug import SlugResolver, resolve_slug
from shelfmeta.metadata.types import (
    AdapterId,
    AdapterInput,
    AdapterLabel,
    AdapterResult,
    AggregatedLabel,
    AggregatedMetadata,
    Confidence,
    LabelKind,
)

__all__ = [
    "AdapterId",
    "AdapterInput",
    "AdapterLabel",
    "AdapterResult",
    "AggregatedLabel",
    "AggregatedMetadata",
    "Confidence",
    "FileCache",
    "LabelKind",
    "LookupContext",
    "MetadataAdapter",
    "MetadataFetchError",
    "MetadataOrchestrator",
    "RateLimiter",
    "ReviewQueue",
    "ShelfHttpClient",
    "SlugResolver",
    "build_cache_key",
    "merge_label",
    "queue_unknown_subject",
    "resolve_slug",
    "sort_aggregated",
]
