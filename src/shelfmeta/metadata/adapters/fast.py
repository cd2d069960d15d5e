# ABOUTME: FAST (OCLC Faceted Application of Subject Terminology) suggest adapter.
# ABOUTME: Resolves suggested FAST headings to slugs, preferring FAST ids over labels.

import re
from typing import Any

from shelfmeta.metadata.adapters.base import BaseAdapter, LabelCollector, RequestAttempt
from shelfmeta.metadata.queries import build_title_attempts, normalize_isbn
from shelfmeta.metadata.types import AdapterId, AdapterInput, LabelKind

FAST_RECORD_BASE = "https://id.worldcat.org/fast/"

_FST_PREFIX_RE = re.compile(r"^fst0*")

# Checked in order against the lowercased FAST facet type.
_TYPE_KINDS: list[tuple[str, LabelKind]] = [
    ("topic", LabelKind.TOPIC),
    ("event", LabelKind.TOPIC),
    ("genre", LabelKind.GENRE),
    ("geographic", LabelKind.PLACE),
    ("personal", LabelKind.PERSON),
    ("corporate", LabelKind.PERSON),
    ("form", LabelKind.FORMAT),
]

_MAX_UNMATCHED_IN_NOTE = 5


def derive_kind(doc: dict[str, Any]) -> LabelKind:
    facet = str(doc.get("type") or "").lower()
    for needle, kind in _TYPE_KINDS:
        if needle in facet:
            return kind
    return LabelKind.TOPIC


def doc_label(doc: dict[str, Any]) -> str | None:
    """Authorized heading, else the first tag."""
    auth = doc.get("auth")
    if isinstance(auth, str) and auth.strip():
        return auth.strip()
    tag = doc.get("tag")
    if isinstance(tag, list) and tag and isinstance(tag[0], str) and tag[0].strip():
        return tag[0].strip()
    if isinstance(tag, str) and tag.strip():
        return tag.strip()
    return None


def doc_id(doc: dict[str, Any]) -> str | None:
    value = doc.get("id") or doc.get("idroot")
    if isinstance(value, list):
        value = value[0] if value else None
    return str(value) if value else None


def fast_url(fast_id: str) -> str:
    return f"{FAST_RECORD_BASE}{_FST_PREFIX_RE.sub('', fast_id)}"


class FastAdapter(BaseAdapter):
    """Subject suggestions from the FAST suggest service.

    Without FAST_API_KEY the requests go out unauthenticated.
    """

    source = AdapterId.FAST

    def build_attempts(self, input: AdapterInput) -> list[RequestAttempt]:
        attempts: list[RequestAttempt] = []
        isbn = normalize_isbn(input.isbn)
        if isbn:
            attempts.append(RequestAttempt("isbn lookup", self._params(isbn)))
        for attempt in build_title_attempts(input.title, input.authors):
            attempts.append(RequestAttempt(attempt.label, self._params(attempt.query)))
        return attempts

    def _params(self, query: str) -> dict[str, str]:
        params = {
            "query": query,
            "queryIndex": "suggestall",
            "queryReturn": "auth,idroot,type,tag,score",
            "suggest": "autoSubject",
            "rows": str(self._settings.max_suggestions),
            "wt": "json",
        }
        if self._settings.api_key:
            params["apikey"] = self._settings.api_key
        return params

    @staticmethod
    def _docs(payload: Any) -> list[dict[str, Any]]:
        if not isinstance(payload, dict):
            return []
        response = payload.get("response")
        if not isinstance(response, dict):
            return []
        return [d for d in response.get("docs") or [] if isinstance(d, dict)]

    def has_results(self, payload: Any) -> bool:
        return bool(self._docs(payload))

    def collect_labels(self, payload: Any, collector: LabelCollector, notes: list[str]) -> None:
        unmatched: list[str] = []
        for doc in self._docs(payload)[: self._settings.max_suggestions]:
            label = doc_label(doc)
            if not label:
                continue
            fid = doc_id(doc)
            resolution = self.resolve(label, fid)
            if resolution is None:
                unmatched.append(label)
                continue
            collector.add(
                resolution,
                name=label,
                kind=derive_kind(doc),
                snippet={
                    "fastId": fid,
                    "label": label,
                    "matchType": resolution.match_type.value,
                    "score": doc.get("score"),
                    "type": doc.get("type"),
                },
                id=fid,
                url=fast_url(fid) if fid else None,
            )

        if unmatched:
            shown = "; ".join(unmatched[:_MAX_UNMATCHED_IN_NOTE])
            self.note(notes, f"unmatched subjects: {shown}")
