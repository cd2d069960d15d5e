# ABOUTME: Runs the configured subject adapters for one book and merges their labels by slug.
# ABOUTME: Merged confidence is the maximum across sources; provenance keeps every contribution.

import logging
from collections.abc import Callable, Iterable

from shelfmeta.config import MetadataSettings
from shelfmeta.metadata.adapters import default_adapters
from shelfmeta.metadata.cache import CacheClient, FileCache
from shelfmeta.metadata.provider import LookupContext, MetadataAdapter
from shelfmeta.metadata.taxonomy import TaxonomyIndex, TaxonomyMetadata, get_taxonomy_metadata
from shelfmeta.metadata.types import (
    AdapterId,
    AdapterInput,
    AdapterLabel,
    AggregatedLabel,
    AggregatedMetadata,
    SourceContribution,
    TaxonomyKind,
)

logger = logging.getLogger(__name__)

TaxonomyLookup = Callable[[str], TaxonomyMetadata | None]


def merge_label(
    accumulator: dict[str, AggregatedLabel],
    label: AdapterLabel,
    taxonomy: TaxonomyLookup = get_taxonomy_metadata,
) -> AggregatedLabel:
    """Fold one adapter label into the per-slug accumulator.

    The first label for a slug seeds the entry. Later labels raise the
    confidence (and take over name and kind) only when they strictly outrank
    it, so on a tie the earlier source's naming stays. Taxonomy fields are
    filled the first time any label supplies them, preferring the taxonomy
    index over the label's own hints.
    """
    meta = taxonomy(label.slug)
    taxonomy_type = (meta.type if meta else None) or label.taxonomy_type or TaxonomyKind.UNKNOWN
    taxonomy_group = (meta.group if meta else None) or label.taxonomy_group
    taxonomy_parent = (meta.parent if meta else None) or label.taxonomy_parent
    contribution = SourceContribution(
        source=label.source, confidence=label.confidence, id=label.id, url=label.url
    )

    existing = accumulator.get(label.slug)
    if existing is None:
        merged = AggregatedLabel(
            slug=label.slug,
            name=label.name,
            kind=label.kind,
            confidence=label.confidence,
            taxonomy_type=taxonomy_type,
            taxonomy_group=taxonomy_group,
            taxonomy_parent=taxonomy_parent,
            sources=[contribution],
            raw={label.source: list(label.raw)},
        )
        accumulator[label.slug] = merged
        return merged

    if label.confidence.outranks(existing.confidence):
        existing.confidence = label.confidence
        existing.name = label.name
        existing.kind = label.kind
    if existing.taxonomy_type is TaxonomyKind.UNKNOWN and taxonomy_type is not TaxonomyKind.UNKNOWN:
        existing.taxonomy_type = taxonomy_type
    if not existing.taxonomy_group and taxonomy_group:
        existing.taxonomy_group = taxonomy_group
    if not existing.taxonomy_parent and taxonomy_parent:
        existing.taxonomy_parent = taxonomy_parent
    existing.sources.append(contribution)
    existing.raw.setdefault(label.source, []).extend(label.raw)
    return existing


def sort_aggregated(labels: Iterable[AggregatedLabel]) -> list[AggregatedLabel]:
    """Highest confidence first, then alphabetical by slug."""
    return sorted(labels, key=lambda label: (-label.confidence.rank, label.slug))


class MetadataOrchestrator:
    """Queries subject adapters in sequence and aggregates their labels.

    Adapters are indexed by id; a later adapter with the same id replaces an
    earlier one. Without explicit adapters the LoC, FAST and Wikidata
    defaults are built from settings.
    """

    def __init__(
        self,
        adapters: list[MetadataAdapter] | None = None,
        cache: CacheClient | None = None,
        settings: MetadataSettings | None = None,
        taxonomy: TaxonomyIndex | None = None,
    ) -> None:
        self._settings = settings or MetadataSettings.from_env()
        if adapters is None:
            adapters = list(default_adapters(self._settings))
        self._adapters: dict[AdapterId, MetadataAdapter] = {a.id: a for a in adapters}
        self._cache: CacheClient = cache or FileCache(self._settings.cache_dir)
        self._taxonomy: TaxonomyLookup = (
            taxonomy.get if taxonomy is not None else get_taxonomy_metadata
        )

    @property
    def available_sources(self) -> list[AdapterId]:
        return list(self._adapters)

    @property
    def cache(self) -> CacheClient:
        return self._cache

    def _requested(self, sources: Iterable[str] | None) -> list[AdapterId]:
        if sources is None:
            sources = self._settings.default_sources or self.available_sources
        requested: list[AdapterId] = []
        for source in sources:
            key = str(source).strip().lower()
            match = next((a for a in self._adapters if str(a) == key), None)
            if match is None:
                logger.warning("Unknown metadata source %r, skipping", source)
                continue
            if match not in requested:
                requested.append(match)
        return requested

    async def lookup_all(
        self,
        input: AdapterInput,
        sources: Iterable[str] | None = None,
        *,
        refresh: bool = False,
    ) -> AggregatedMetadata:
        """Run each requested adapter in order and merge the results.

        Adapters run one after another so each keeps its own rate limit.
        `refresh` makes adapters skip cache reads for this call.
        """
        context = LookupContext(cache=self._cache, refresh=refresh)
        result = AggregatedMetadata()
        merged: dict[str, AggregatedLabel] = {}

        for source in self._requested(sources):
            adapter = self._adapters[source]
            logger.debug("Looking up %s", source)
            adapter_result = await adapter.lookup(input, context)
            result.by_source[source] = list(adapter_result.labels)
            result.notes[source] = list(adapter_result.notes)
            for label in adapter_result.labels:
                merge_label(merged, label, self._taxonomy)

        result.labels = list(merged.values())
        return result

    async def aclose(self) -> None:
        """Close HTTP clients owned by the adapters."""
        for adapter in self._adapters.values():
            close = getattr(adapter, "aclose", None)
            if close is not None:
                await close()
