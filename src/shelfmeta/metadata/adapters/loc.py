# ABOUTME: Library of Congress subject adapter over the loc.gov JSON search API.
# ABOUTME: Gathers subject and genre headings from the top records and resolves them to slugs.

import re
from typing import Any

from shelfmeta.metadata.adapters.base import BaseAdapter, LabelCollector, RequestAttempt
from shelfmeta.metadata.queries import build_title_attempts, normalize_isbn
from shelfmeta.metadata.types import AdapterId, AdapterInput, LabelKind

# Only the best-ranked records are mined for headings.
_MAX_RECORDS = 5

_KIND_RULES: list[tuple[re.Pattern[str], LabelKind]] = [
    (re.compile(r"\b(series|trilogy|saga)\b"), LabelKind.TOPIC),
    (re.compile(r"\b(fiction|stories|novels?|poetry)\b"), LabelKind.GENRE),
    (re.compile(r"\b(biography|authors?|persons?)\b"), LabelKind.PERSON),
    (re.compile(r"\b(places?|countries|country|state|city|province)\b"), LabelKind.PLACE),
]


def infer_kind(heading: str) -> LabelKind:
    """Guess a label kind from LoC heading text; defaults to topic."""
    lower = heading.lower()
    for pattern, kind in _KIND_RULES:
        if pattern.search(lower):
            return kind
    return LabelKind.TOPIC


def _strings(values: Any) -> list[str]:
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, list):
        return []
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


def gather_subjects(record: dict[str, Any]) -> list[str]:
    """Distinct headings from every subject/genre field of one record, in order."""
    found: list[str] = []
    for key in ("subjects", "subject_headings", "genre_headings"):
        found.extend(_strings(record.get(key)))
    item = record.get("item")
    if isinstance(item, dict):
        for key in ("subjects", "subject", "genre"):
            found.extend(_strings(item.get(key)))
    return list(dict.fromkeys(found))


class LibraryOfCongressAdapter(BaseAdapter):
    """Subject headings from the Library of Congress catalog search."""

    source = AdapterId.LOC

    def build_attempts(self, input: AdapterInput) -> list[RequestAttempt]:
        attempts: list[RequestAttempt] = []
        isbn = normalize_isbn(input.isbn)
        if isbn:
            attempts.append(RequestAttempt("isbn lookup", self._params(isbn)))
        for attempt in build_title_attempts(input.title, input.authors):
            attempts.append(RequestAttempt(attempt.label, self._params(attempt.query)))
        return attempts

    @staticmethod
    def _params(query: str) -> dict[str, str]:
        return {"q": query, "all": "true", "fo": "json", "c": "10"}

    @staticmethod
    def _records(payload: Any) -> list[dict[str, Any]]:
        if not isinstance(payload, dict):
            return []
        results = payload.get("results")
        if not isinstance(results, list):
            return []
        return [r for r in results if isinstance(r, dict)]

    def has_results(self, payload: Any) -> bool:
        return bool(self._records(payload))

    def collect_labels(self, payload: Any, collector: LabelCollector, notes: list[str]) -> None:
        for record in self._records(payload)[:_MAX_RECORDS]:
            record_id = record.get("id") or record.get("url")
            for subject in gather_subjects(record):
                resolution = self.resolve(subject)
                if resolution is None:
                    self.note(notes, f"unmapped subject: {subject}")
                    continue
                collector.add(
                    resolution,
                    name=subject,
                    kind=infer_kind(subject),
                    snippet={
                        "recordId": record_id,
                        "subject": subject,
                        "matchType": resolution.match_type.value,
                    },
                    id=record_id,
                    url=record_id,
                )
