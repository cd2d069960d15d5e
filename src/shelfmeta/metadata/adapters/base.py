# ABOUTME: Shared lookup loop for subject adapters: cache, query attempts, retries, and notes.
# ABOUTME: Also merges same-slug hits within one adapter response via LabelCollector.

import logging
from dataclasses import dataclass, field
from typing import Any

from shelfmeta.config import SourceSettings
from shelfmeta.metadata.cache import build_cache_key
from shelfmeta.metadata.http import HttpClient, MetadataFetchError, ShelfHttpClient
from shelfmeta.metadata.provider import LookupContext
from shelfmeta.metadata.ratelimit import RateLimiter
from shelfmeta.metadata.slug import SlugResolver, get_default_resolver
from shelfmeta.metadata.types import (
    AdapterId,
    AdapterInput,
    AdapterLabel,
    AdapterResult,
    CacheEntry,
    LabelKind,
    SlugResolution,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestAttempt:
    """One GET to try: a note label, query parameters, and optional extra headers."""

    label: str
    params: dict[str, str]
    headers: dict[str, str] = field(default_factory=dict)


class LabelCollector:
    """Accumulates one adapter's labels, merging repeated slugs.

    A repeated slug keeps its first name and kind, takes the higher
    confidence, gains the new raw snippet, and fills a missing id/url.
    """

    def __init__(self, source: AdapterId) -> None:
        self._source = source
        self._labels: dict[str, AdapterLabel] = {}

    def __len__(self) -> int:
        return len(self._labels)

    def add(
        self,
        resolution: SlugResolution,
        name: str,
        kind: LabelKind,
        snippet: dict[str, Any],
        id: str | None = None,
        url: str | None = None,
    ) -> AdapterLabel:
        confidence = resolution.confidence
        existing = self._labels.get(resolution.slug)
        if existing is None:
            label = AdapterLabel(
                slug=resolution.slug,
                name=name,
                source=self._source,
                confidence=confidence,
                kind=kind,
                raw=[snippet],
                id=id,
                url=url,
            )
            self._labels[resolution.slug] = label
            return label

        existing.raw.append(snippet)
        if confidence.outranks(existing.confidence):
            existing.confidence = confidence
        if not existing.id and id:
            existing.id = id
            existing.url = url
        return existing

    def labels(self) -> list[AdapterLabel]:
        return list(self._labels.values())


class BaseAdapter:
    """Common lookup flow shared by the LoC, FAST and Wikidata adapters.

    Subclasses set `source` and implement `build_attempts`, `has_results`
    and `collect_labels`. The flow is:
    read the cache, otherwise try each request attempt in order until one
    returns results, write the winning payload back, then parse it into
    labels. HTTP failures become notes; cache I/O errors other than a
    missing file propagate.
    """

    source: AdapterId

    def __init__(
        self,
        settings: SourceSettings,
        *,
        http_client: HttpClient | None = None,
        resolver: SlugResolver | None = None,
        strict: bool = False,
    ) -> None:
        self._settings = settings
        self._owns_http = http_client is None
        self._http: HttpClient = http_client or ShelfHttpClient(
            rate_limiter=RateLimiter(settings.rate_limit_ms, settings.jitter_ms),
            user_agent=settings.user_agent,
            max_retries=settings.max_retries,
        )
        self._resolver = resolver
        self._strict = strict

    @property
    def id(self) -> AdapterId:
        return self.source

    @property
    def settings(self) -> SourceSettings:
        return self._settings

    @property
    def strict(self) -> bool:
        return self._strict

    async def aclose(self) -> None:
        if self._owns_http and isinstance(self._http, ShelfHttpClient):
            await self._http.aclose()

    def note(self, notes: list[str], message: str) -> None:
        notes.append(f"[{self.source}] {message}")

    def resolve(self, value: str, id: str | None = None) -> SlugResolution | None:
        resolver = self._resolver or get_default_resolver()
        return resolver.resolve(self.source, value, id, strict=self._strict, queue_review=True)

    def build_attempts(self, input: AdapterInput) -> list[RequestAttempt]:
        raise NotImplementedError

    def has_results(self, payload: Any) -> bool:
        raise NotImplementedError

    def collect_labels(self, payload: Any, collector: LabelCollector, notes: list[str]) -> None:
        raise NotImplementedError

    def skip_reason(self, input: AdapterInput) -> str:
        return "skipped: no identifier available"

    async def lookup(self, input: AdapterInput, context: LookupContext) -> AdapterResult:
        notes: list[str] = []
        attempts = self.build_attempts(input)
        if not attempts:
            self.note(notes, self.skip_reason(input))
            return AdapterResult(labels=[], notes=notes)

        cache_key = build_cache_key(
            isbn13=input.isbn13,
            isbn10=input.isbn10,
            doi=input.doi,
            oclc=input.oclc,
            title=input.title,
            authors=input.authors,
        )

        payload: Any = None
        if not context.refresh:
            cached = await context.cache.read(self.source, cache_key)
            if cached is not None and self.has_results(cached.data):
                payload = cached.data
                self.note(notes, "cache hit")

        if payload is None:
            payload = await self._fetch_first(attempts, notes)
            if payload is not None:
                await context.cache.write(self.source, cache_key, CacheEntry.now(payload))

        if payload is None:
            self.note(notes, "no matches returned")
            return AdapterResult(labels=[], notes=notes)

        collector = LabelCollector(self.source)
        self.collect_labels(payload, collector, notes)
        return AdapterResult(labels=collector.labels(), notes=notes)

    async def _fetch_first(self, attempts: list[RequestAttempt], notes: list[str]) -> Any:
        """Run attempts in order and return the first payload with results."""
        for index, attempt in enumerate(attempts):
            payload = await self._fetch(attempt, notes)
            if payload is None:
                continue
            if self.has_results(payload):
                if index > 0:
                    self.note(notes, f"using {attempt.label} results")
                return payload
            self.note(notes, f"{attempt.label} returned no matches")
        return None

    async def _fetch(self, attempt: RequestAttempt, notes: list[str]) -> Any:
        def record_failure(attempt_no: int, reason: str) -> None:
            self.note(notes, f"{attempt.label} attempt {attempt_no} failed: {reason}")

        try:
            return await self._http.get_json(
                self._settings.endpoint,
                attempt.params,
                headers=attempt.headers or None,
                on_failed_attempt=record_failure,
            )
        except MetadataFetchError as exc:
            logger.warning("%s %s failed: %s", self.source, attempt.label, exc)
            self.note(notes, f"{attempt.label} fetch failed: {exc}")
            return None
