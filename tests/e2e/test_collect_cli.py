# ABOUTME: End-to-end tests for the `shelfmeta collect` command.
# ABOUTME: Swaps in a LoC adapter backed by canned responses and checks output and enrichment files.

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from shelfmeta.cli import cli
from shelfmeta.cli.commands import collect_cmd
from shelfmeta.config import MetadataSettings
from shelfmeta.metadata.adapters.loc import LibraryOfCongressAdapter
from shelfmeta.metadata.orchestrator import MetadataOrchestrator
from shelfmeta.metadata.review_queue import ReviewQueue
from shelfmeta.metadata.slug import SlugResolver
from tests.fixtures.fake_http import FakeHttpClient
from tests.fixtures.loc_responses import WAY_OF_KINGS_RESPONSE

RECORD_NAME = "isbn13-9780765326355.json"


@pytest.fixture
def loc_client(monkeypatch: pytest.MonkeyPatch) -> FakeHttpClient:
    """Route collect through a single LoC adapter with a fake HTTP client."""
    client = FakeHttpClient([WAY_OF_KINGS_RESPONSE])

    def create(settings: MetadataSettings, resolver: SlugResolver) -> MetadataOrchestrator:
        adapter = LibraryOfCongressAdapter(
            settings.loc, http_client=client, resolver=resolver, strict=settings.strict_slugs
        )
        return MetadataOrchestrator([adapter], settings=settings)

    monkeypatch.setattr(collect_cmd, "_create_orchestrator", create)
    return client


class TestCollectCommand:
    """E2e tests for `shelfmeta collect`."""

    def test_prints_subjects_and_writes_record(
        self, cli_env: Path, loc_client: FakeHttpClient
    ) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["collect", "--isbn", "978-0-7653-2635-5"])
        assert result.exit_code == 0, result.output
        assert "isbn13-9780765326355" in result.output
        assert "2 subject(s) written to" in result.output

        record = json.loads((cli_env / RECORD_NAME).read_text(encoding="utf-8"))
        assert record["input_snapshot"]["book_id"] == "isbn13-9780765326355"
        external = record["external_metadata"]
        assert external["sources_enabled"] == ["loc"]
        assert [s["slug"] for s in external["merged"]["subjects"]] == [
            "fantasy",
            "epic-literature",
        ]
        assert [s["confidence"] for s in record["taxonomy"]["external_subjects"]] == [
            "high",
            "medium",
        ]
        assert loc_client.calls[0]["params"]["q"] == "9780765326355"

    def test_strict_misses_reach_review_queue(
        self,
        cli_env: Path,
        loc_client: FakeHttpClient,
        queue_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("METADATA_STRICT_SLUGS", "true")
        runner = CliRunner()
        result = runner.invoke(cli, ["collect", "--isbn", "9780765326355"])
        assert result.exit_code == 0, result.output
        assert "1 subject(s) written to" in result.output
        assert [e.label for e in ReviewQueue(queue_path).load()] == ["Epic literature"]

    def test_generated_slugs_stay_out_of_review_queue(
        self, cli_env: Path, loc_client: FakeHttpClient, queue_path: Path
    ) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["collect", "--isbn", "9780765326355"])
        assert result.exit_code == 0, result.output
        assert ReviewQueue(queue_path).load() == []

    def test_existing_record_keeps_other_keys(
        self, cli_env: Path, loc_client: FakeHttpClient
    ) -> None:
        cli_env.mkdir(parents=True)
        existing = {"title": "The Way of Kings", "taxonomy": {"genre": "fantasy"}}
        (cli_env / RECORD_NAME).write_text(json.dumps(existing), encoding="utf-8")

        runner = CliRunner()
        result = runner.invoke(cli, ["collect", "--isbn", "9780765326355"])
        assert result.exit_code == 0, result.output

        record = json.loads((cli_env / RECORD_NAME).read_text(encoding="utf-8"))
        assert record["title"] == "The Way of Kings"
        assert record["taxonomy"]["genre"] == "fantasy"
        assert len(record["taxonomy"]["external_subjects"]) == 2

    def test_json_output(self, cli_env: Path, loc_client: FakeHttpClient) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli, ["collect", "--isbn", "9780765326355", "--json", "--book-id", "kings"]
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["book_id"] == "kings"
        assert payload["subjects"][0]["slug"] == "fantasy"
        assert payload["subjects"][0]["sources"][0]["source"] == "loc"
        assert payload["notes"] == {"loc": []}
        assert (cli_env / "kings.json").exists()

    def test_dry_run_writes_nothing(self, cli_env: Path, loc_client: FakeHttpClient) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["collect", "--isbn", "9780765326355", "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "Dry run" in result.output
        assert not (cli_env / RECORD_NAME).exists()

    def test_unknown_source_only(self, cli_env: Path, loc_client: FakeHttpClient) -> None:
        runner = CliRunner()
        result = runner.invoke(
            cli, ["collect", "--title", "The Way of Kings", "--sources", "goodreads", "--dry-run"]
        )
        assert result.exit_code == 0, result.output
        assert "No external subjects found." in result.output
        assert loc_client.calls == []

    def test_requires_isbn_or_title(self, cli_env: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["collect", "--author", "Brandon Sanderson"])
        assert result.exit_code == 2
        assert "Provide at least --isbn or --title." in result.output

    def test_rejects_malformed_isbn(self, cli_env: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["collect", "--isbn", "12345"])
        assert result.exit_code == 2
        assert "not an ISBN-10 or ISBN-13" in result.output

    def test_lookup_error_exits_nonzero(
        self, cli_env: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken(settings: MetadataSettings, resolver: SlugResolver) -> MetadataOrchestrator:
            raise OSError("cache directory is read-only")

        monkeypatch.setattr(collect_cmd, "_create_orchestrator", broken)
        runner = CliRunner()
        result = runner.invoke(cli, ["collect", "--title", "The Way of Kings"])
        assert result.exit_code == 1
        assert "Lookup failed" in result.output
