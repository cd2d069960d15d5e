# ABOUTME: Append-only, de-duplicating JSON log of subject terms that had no slug mapping.
# ABOUTME: Writes can run as detached background tasks that log failures instead of raising.

import asyncio
import json
import logging
import threading
from pathlib import Path

from shelfmeta.metadata.types import ReviewQueueEntry, review_key, utc_now_iso

logger = logging.getLogger(__name__)


def _load_entries(path: Path) -> list[ReviewQueueEntry]:
    if not path.exists():
        return []
    raw = json.loads(path.read_text(encoding="utf-8") or "[]")
    return [ReviewQueueEntry.from_dict(item) for item in raw or []]


def _save_entries(path: Path, entries: list[ReviewQueueEntry]) -> None:
    path.write_text(
        json.dumps([e.to_dict() for e in entries], indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


def _ensure_file(path: Path) -> None:
    if path.exists():
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("[]", encoding="utf-8")


def queue_unknown_subject(
    *, source: str, id: str | None, label: str, cache_path: Path
) -> ReviewQueueEntry | None:
    """Record one sighting of an unresolved subject term.

    Increments `occurrences` on an existing entry with the same
    case-insensitive (source, id, label) key, or appends a new entry.
    Blank labels are ignored and return None.
    """
    trimmed = label.strip()
    if not trimmed:
        return None
    path = Path(cache_path)
    _ensure_file(path)
    entries = _load_entries(path)
    key = review_key(str(source), id, trimmed)

    for entry in entries:
        if entry.key == key:
            entry.occurrences += 1
            _save_entries(path, entries)
            return entry

    entry = ReviewQueueEntry(
        source=str(source),
        id=id,
        label=trimmed,
        first_seen_at=utc_now_iso(),
        occurrences=1,
    )
    entries.append(entry)
    _save_entries(path, entries)
    return entry


class ReviewQueue:
    """Review queue bound to one JSON file.

    `add` writes synchronously. `submit` is the fire-and-forget path used
    during slug resolution: with a running event loop the write happens in a
    worker thread as a background task, otherwise it runs inline. Either way
    a failure is logged and swallowed. `drain` awaits outstanding tasks.

    Writers inside one process are serialized by a lock; separate processes
    sharing the file can still lose updates.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[ReviewQueueEntry]:
        with self._lock:
            return _load_entries(self._path)

    def add(self, source: str, id: str | None, label: str) -> ReviewQueueEntry | None:
        with self._lock:
            return queue_unknown_subject(
                source=source, id=id, label=label, cache_path=self._path
            )

    def submit(self, source: str, id: str | None, label: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._add_logged(source, id, label)
            return
        task = loop.create_task(asyncio.to_thread(self._add_logged, source, id, label))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every background write submitted so far."""
        while self._pending:
            batch = list(self._pending)
            await asyncio.gather(*batch, return_exceptions=True)
            self._pending.difference_update(batch)

    def _add_logged(self, source: str, id: str | None, label: str) -> None:
        try:
            self.add(source, id, label)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to queue subject for review (%s): %s", source, exc)
