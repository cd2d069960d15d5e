# ABOUTME: Unit tests for the unresolved-subject review queue.
# ABOUTME: Covers de-duplication, file creation, background submission, and logged failures.

import asyncio
import json
from pathlib import Path

import pytest

from shelfmeta.metadata.review_queue import ReviewQueue, queue_unknown_subject


class TestQueueUnknownSubject:
    def test_creates_file_and_entry(self, tmp_path: Path) -> None:
        path = tmp_path / "review" / "queue.json"
        entry = queue_unknown_subject(
            source="loc", id=None, label=" Epic literature ", cache_path=path
        )
        assert entry is not None
        assert entry.label == "Epic literature"
        assert entry.occurrences == 1
        stored = json.loads(path.read_text(encoding="utf-8"))
        assert stored[0]["source"] == "loc"
        assert stored[0]["firstSeenAt"].endswith("Z")

    def test_duplicate_increments_occurrences(self, tmp_path: Path) -> None:
        """Same (source, id, label), ignoring case, is one entry seen twice."""
        path = tmp_path / "queue.json"
        queue_unknown_subject(source="fast", id="FST01", label="Space Opera", cache_path=path)
        queue_unknown_subject(source="fast", id="fst01", label="space opera", cache_path=path)
        stored = json.loads(path.read_text(encoding="utf-8"))
        assert len(stored) == 1
        assert stored[0]["occurrences"] == 2
        assert stored[0]["label"] == "Space Opera"

    def test_different_sources_are_separate(self, tmp_path: Path) -> None:
        path = tmp_path / "queue.json"
        queue_unknown_subject(source="loc", id=None, label="Magic", cache_path=path)
        queue_unknown_subject(source="fast", id=None, label="Magic", cache_path=path)
        assert len(json.loads(path.read_text(encoding="utf-8"))) == 2

    def test_blank_label_is_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "queue.json"
        assert queue_unknown_subject(source="loc", id=None, label="   ", cache_path=path) is None
        assert not path.exists()

    def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "queue.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            queue_unknown_subject(source="loc", id=None, label="x", cache_path=path)


class TestReviewQueue:
    def test_load_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert ReviewQueue(tmp_path / "none.json").load() == []

    def test_submit_without_loop_writes_inline(self, review_queue: ReviewQueue) -> None:
        review_queue.submit("loc", None, "Epic literature")
        assert [e.label for e in review_queue.load()] == ["Epic literature"]

    def test_submit_inside_loop_runs_in_background(self, review_queue: ReviewQueue) -> None:
        async def run() -> None:
            review_queue.submit("loc", None, "Epic literature")
            review_queue.submit("loc", None, "epic literature")
            review_queue.submit("wikidata", "Q1", "Obscure")
            await review_queue.drain()

        asyncio.run(run())
        entries = {e.label.lower(): e.occurrences for e in review_queue.load()}
        assert entries == {"epic literature": 2, "obscure": 1}

    def test_submit_failure_is_logged_not_raised(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / "queue.json"
        path.write_text("not json", encoding="utf-8")
        queue = ReviewQueue(path)
        with caplog.at_level("WARNING", logger="shelfmeta.metadata.review_queue"):
            queue.submit("loc", None, "Epic literature")
        assert "Failed to queue subject for review" in caplog.text

    def test_drain_with_nothing_pending(self, review_queue: ReviewQueue) -> None:
        asyncio.run(review_queue.drain())
