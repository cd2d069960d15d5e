# ABOUTME: Wikidata SPARQL adapter resolving genre, main subject, depicts, and country claims.
# ABOUTME: Finds the work by ISBN/DOI first, then by English title label and author.

from typing import Any

from shelfmeta.metadata.adapters.base import BaseAdapter, LabelCollector, RequestAttempt
from shelfmeta.metadata.queries import normalize_isbn
from shelfmeta.metadata.types import AdapterId, AdapterInput, LabelKind

WIKIDATA_ITEM_BASE = "https://www.wikidata.org/wiki/"

_SPARQL_ACCEPT = "application/sparql-results+json"

# (binding variable, property, kind) for each claim mined from a work.
_CLAIMS: list[tuple[str, str, LabelKind]] = [
    ("genre", "P136", LabelKind.GENRE),
    ("subject", "P921", LabelKind.TOPIC),
    ("depicts", "P180", LabelKind.TOPIC),
    ("country", "P495", LabelKind.PLACE),
]

_SELECT = (
    "SELECT DISTINCT ?item ?itemLabel ?genre ?genreLabel ?subject ?subjectLabel "
    "?depicts ?depictsLabel ?country ?countryLabel WHERE {"
)

_OPTIONALS = """
  OPTIONAL { ?item wdt:P136 ?genre . }
  OPTIONAL { ?item wdt:P921 ?subject . }
  OPTIONAL { ?item wdt:P180 ?depicts . }
  OPTIONAL { ?item wdt:P495 ?country . }
  SERVICE wikibase:label { bd:serviceParam wikibase:language "en". }
}"""

_MAX_UNMATCHED_IN_NOTE = 5


def escape_sparql_literal(value: str) -> str:
    """Escape a value for use inside a double-quoted SPARQL string literal."""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def extract_qid(value: str | None) -> str | None:
    """Last path segment of an entity URI ("http://.../entity/Q42" -> "Q42")."""
    if not value:
        return None
    return value.rstrip("/").split("/")[-1] or None


def item_url(qid: str | None) -> str | None:
    return f"{WIKIDATA_ITEM_BASE}{qid}" if qid else None


def identifier_values(input: AdapterInput) -> list[str]:
    values = [normalize_isbn(input.isbn13), normalize_isbn(input.isbn10)]
    if input.doi and input.doi.strip():
        values.append(input.doi.strip())
    return [v for v in dict.fromkeys(values) if v]


def build_identifier_query(identifiers: list[str]) -> str:
    filters = "\n  UNION\n".join(
        f'  {{ ?item wdt:P212 "{v}" }} UNION {{ ?item wdt:P957 "{v}" }} '
        f'UNION {{ ?item wdt:P356 "{v}" }}'
        for v in (escape_sparql_literal(i) for i in identifiers)
    )
    return f"{_SELECT}\n  {{\n{filters}\n  }}{_OPTIONALS}\nLIMIT 200"


def build_title_query(title: str, authors: list[str]) -> str:
    author_filter = ""
    if authors:
        author = escape_sparql_literal(authors[0].strip())
        author_filter = f'\n  ?item wdt:P50 ?author . ?author rdfs:label "{author}"@en .'
    label = escape_sparql_literal(title.strip())
    return f'{_SELECT}\n  ?item rdfs:label "{label}"@en .{author_filter}{_OPTIONALS}\nLIMIT 100'


def _bindings(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    results = payload.get("results")
    if not isinstance(results, dict):
        return []
    return [b for b in results.get("bindings") or [] if isinstance(b, dict)]


def _binding_value(binding: dict[str, Any], name: str) -> str | None:
    cell = binding.get(name)
    if isinstance(cell, dict) and isinstance(cell.get("value"), str):
        return cell["value"].strip() or None
    return None


class WikidataAdapter(BaseAdapter):
    """Genre and subject claims from the Wikidata query service."""

    source = AdapterId.WIKIDATA

    def build_attempts(self, input: AdapterInput) -> list[RequestAttempt]:
        headers = {"Accept": _SPARQL_ACCEPT}
        attempts: list[RequestAttempt] = []
        identifiers = identifier_values(input)
        if identifiers:
            attempts.append(
                RequestAttempt(
                    "identifier query",
                    {"query": build_identifier_query(identifiers), "format": "json"},
                    headers,
                )
            )
        if input.title and input.title.strip():
            attempts.append(
                RequestAttempt(
                    "title search",
                    {"query": build_title_query(input.title, input.authors), "format": "json"},
                    headers,
                )
            )
        return attempts

    def skip_reason(self, input: AdapterInput) -> str:
        return "skipped: no identifiers available"

    def has_results(self, payload: Any) -> bool:
        return bool(_bindings(payload))

    def collect_labels(self, payload: Any, collector: LabelCollector, notes: list[str]) -> None:
        unmatched: list[str] = []
        for binding in _bindings(payload):
            work_qid = extract_qid(_binding_value(binding, "item"))
            for var, prop, kind in _CLAIMS:
                name = _binding_value(binding, f"{var}Label")
                if not name:
                    continue
                entity = _binding_value(binding, var)
                resolution = self.resolve(name, entity or work_qid)
                if resolution is None:
                    if name not in unmatched:
                        unmatched.append(name)
                    continue
                qid = extract_qid(entity) or work_qid
                collector.add(
                    resolution,
                    name=name,
                    kind=kind,
                    snippet={
                        "property": prop,
                        "qid": work_qid,
                        "value": extract_qid(entity),
                        "matchType": resolution.match_type.value,
                    },
                    id=qid,
                    url=item_url(qid),
                )

        if unmatched:
            shown = "; ".join(unmatched[:_MAX_UNMATCHED_IN_NOTE])
            self.note(notes, f"unmatched subjects: {shown}")
        if not len(collector):
            self.note(notes, "no subjects mapped")
