# ABOUTME: Shared pytest fixtures for shelfmeta tests.
# ABOUTME: Provides isolated settings, mapping tables, a review queue, and reset process-wide state.

import json
from collections.abc import Iterator
from pathlib import Path

import pytest

from shelfmeta.config import MetadataSettings
from shelfmeta.metadata.review_queue import ReviewQueue
from shelfmeta.metadata.slug import SlugResolver, configure_default_resolver
from shelfmeta.metadata.taxonomy import TaxonomyIndex, reset_taxonomy_cache
from tests.fixtures.taxonomy_data import SAMPLE_TAXONOMY


@pytest.fixture(autouse=True)
def _isolated_defaults() -> Iterator[None]:
    """Keep the process-wide resolver and taxonomy index from leaking between tests."""
    configure_default_resolver(None)
    reset_taxonomy_cache(TaxonomyIndex())
    yield
    configure_default_resolver(None)
    reset_taxonomy_cache(None)


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def mappings_dir(tmp_path: Path) -> Path:
    """Small slug mapping tables for every source."""
    directory = tmp_path / "mappings"
    directory.mkdir()
    tables = {
        "loc-to-slug.json": {
            "ids": {"sh85048050": "fantasy"},
            "labels": {"fantasy fiction": "fantasy", "science fiction": "science-fiction"},
        },
        "fast-to-slug.json": {
            "ids": {"fst01128420": "space-opera"},
            "labels": {"space opera": "space-opera", "fantasy fiction": "fantasy"},
        },
        "wikidata-to-slug.json": {
            "ids": {"q621372": "space-opera", "q132311": "fantasy"},
            "labels": {"science fiction": "science-fiction"},
        },
    }
    for name, table in tables.items():
        (directory / name).write_text(json.dumps(table), encoding="utf-8")
    return directory


@pytest.fixture
def queue_path(tmp_path: Path) -> Path:
    return tmp_path / "review" / "new-subjects.json"


@pytest.fixture
def review_queue(queue_path: Path) -> ReviewQueue:
    return ReviewQueue(queue_path)


@pytest.fixture
def resolver(mappings_dir: Path, review_queue: ReviewQueue) -> SlugResolver:
    return SlugResolver(mappings_dir, review_queue)


@pytest.fixture
def taxonomy_path(tmp_path: Path) -> Path:
    path = tmp_path / "taxonomy.json"
    path.write_text(json.dumps(SAMPLE_TAXONOMY), encoding="utf-8")
    return path


@pytest.fixture
def taxonomy(taxonomy_path: Path) -> TaxonomyIndex:
    return TaxonomyIndex.from_file(taxonomy_path)


@pytest.fixture
def settings(
    tmp_path: Path, mappings_dir: Path, queue_path: Path, taxonomy_path: Path
) -> MetadataSettings:
    """Settings rooted in tmp_path with near-zero rate limits."""
    environ = {
        "METADATA_CACHE_DIR": str(tmp_path / "cache"),
        "METADATA_REVIEW_QUEUE_PATH": str(queue_path),
        "METADATA_MAPPINGS_DIR": str(mappings_dir),
        "METADATA_TAXONOMY_PATH": str(taxonomy_path),
        "ENRICHMENT_DIR": str(tmp_path / "enrichment"),
        "METADATA_LOC_MIN_DELAY_MS": "1",
        "METADATA_LOC_JITTER_MS": "1",
        "METADATA_FAST_MIN_DELAY_MS": "1",
        "METADATA_FAST_JITTER_MS": "1",
        "METADATA_WIKIDATA_MIN_DELAY_MS": "1",
        "METADATA_WIKIDATA_JITTER_MS": "1",
    }
    return MetadataSettings.from_env(environ, root=tmp_path)


@pytest.fixture
def cli_env(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    mappings_dir: Path,
    queue_path: Path,
    taxonomy_path: Path,
) -> Path:
    """Point every settings path at tmp_path for CLI runs; returns the enrichment dir."""
    enrichment_dir = tmp_path / "enrichment"
    monkeypatch.setenv("METADATA_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("METADATA_REVIEW_QUEUE_PATH", str(queue_path))
    monkeypatch.setenv("METADATA_MAPPINGS_DIR", str(mappings_dir))
    monkeypatch.setenv("METADATA_TAXONOMY_PATH", str(taxonomy_path))
    monkeypatch.setenv("ENRICHMENT_DIR", str(enrichment_dir))
    monkeypatch.delenv("METADATA_SOURCES", raising=False)
    monkeypatch.delenv("METADATA_STRICT_SLUGS", raising=False)
    monkeypatch.delenv("EVIDENCE_STALE_DAYS", raising=False)
    return enrichment_dir
