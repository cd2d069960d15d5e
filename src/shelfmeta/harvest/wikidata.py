# ABOUTME: Wikidata evidence client: finds a work's QID with its genre and main-subject labels.
# ABOUTME: Queries the SPARQL endpoint by ISBN-13 or by English title and author label.

from typing import Any

from shelfmeta.config import DEFAULT_HARVEST_USER_AGENT
from shelfmeta.harvest.client import HarvestClient
from shelfmeta.harvest.types import WikidataWork
from shelfmeta.metadata.adapters.wikidata import (
    WIKIDATA_ITEM_BASE,
    escape_sparql_literal,
    extract_qid,
)
from shelfmeta.metadata.http import HttpClient

SPARQL_ENDPOINT = "https://query.wikidata.org/sparql"

_HEAD = "SELECT DISTINCT ?item ?itemLabel ?genre ?genreLabel ?subject ?subjectLabel WHERE {"
_TAIL = """
  OPTIONAL { ?item wdt:P136 ?genre . }
  OPTIONAL { ?item wdt:P921 ?subject . }
  SERVICE wikibase:label { bd:serviceParam wikibase:language "en". }
}"""


def isbn_query(isbn: str) -> str:
    return f'{_HEAD}\n  ?item wdt:P212 "{escape_sparql_literal(isbn)}" .{_TAIL}\nLIMIT 50'


def title_query(title: str, author: str) -> str:
    return (
        f"{_HEAD}\n"
        "  ?item wdt:P50 ?authorItem .\n"
        f'  ?authorItem rdfs:label "{escape_sparql_literal(author)}"@en .\n'
        f'  ?item rdfs:label "{escape_sparql_literal(title)}"@en .'
        f"{_TAIL}\nLIMIT 20"
    )


def _value(binding: dict[str, Any], name: str) -> Any:
    cell = binding.get(name)
    return cell.get("value") if isinstance(cell, dict) else None


def _labels(bindings: list[dict[str, Any]], name: str) -> list[str]:
    found: dict[str, None] = {}
    for binding in bindings:
        value = _value(binding, name)
        if isinstance(value, str) and value.strip():
            found.setdefault(value.strip(), None)
    return list(found)


def parse_work(data: Any) -> WikidataWork | None:
    """Work described by the first binding; None when there are no bindings."""
    if not isinstance(data, dict):
        return None
    results = data.get("results")
    if not isinstance(results, dict) or not isinstance(results.get("bindings"), list):
        return None
    bindings = [b for b in results["bindings"] if isinstance(b, dict)]
    if not bindings:
        return None
    qid = extract_qid(_value(bindings[0], "item"))
    if not qid:
        return None
    return WikidataWork(
        qid=qid,
        url=f"{WIKIDATA_ITEM_BASE}{qid}",
        genres=_labels(bindings, "genreLabel"),
        subjects=_labels(bindings, "subjectLabel"),
        raw=data,
    )


class WikidataHarvestClient(HarvestClient):
    name = "wikidata"

    def __init__(
        self,
        user_agent: str = DEFAULT_HARVEST_USER_AGENT,
        *,
        endpoint: str = SPARQL_ENDPOINT,
        http_client: HttpClient | None = None,
    ) -> None:
        super().__init__(user_agent, min_delay_ms=200, jitter_ms=100, http_client=http_client)
        self._endpoint = endpoint

    async def _run(self, sparql: str) -> WikidataWork | None:
        data = await self._get(
            self._endpoint,
            {"query": sparql, "format": "json"},
            headers={"Accept": "application/sparql-results+json"},
        )
        return parse_work(data)

    async def fetch_by_isbn(self, isbn: str) -> WikidataWork | None:
        return await self._run(isbn_query(isbn))

    async def fetch_by_title(self, title: str, author: str) -> WikidataWork | None:
        return await self._run(title_query(title, author))
