# ABOUTME: Reads and writes per-book enrichment records that hold collected external metadata.
# ABOUTME: Updates only the external_metadata and taxonomy.external_subjects keys of a record.

import json
from pathlib import Path
from typing import Any

from shelfmeta.metadata.orchestrator import sort_aggregated
from shelfmeta.metadata.types import AdapterInput, AggregatedMetadata, utc_now_iso


def enrichment_path(enrichment_dir: Path, book_id: str) -> Path:
    return Path(enrichment_dir) / f"{book_id}.json"


def load_enrichment(path: Path, book_id: str) -> dict[str, Any]:
    """Existing record at path, or a fresh one stamped with the book id."""
    if not path.exists():
        return {"input_snapshot": {"book_id": book_id, "timestamp": utc_now_iso()}}
    return json.loads(path.read_text(encoding="utf-8"))


def serialize_subjects(result: AggregatedMetadata) -> list[dict[str, Any]]:
    return [label.to_dict() for label in sort_aggregated(result.labels)]


def apply_external_metadata(
    record: dict[str, Any],
    input: AdapterInput,
    sources: list[str],
    result: AggregatedMetadata,
) -> dict[str, Any]:
    """Write the lookup result into the record in place and return it.

    Other top-level keys and other `taxonomy` keys are left untouched.
    """
    subjects = serialize_subjects(result)
    per_source = {
        str(source): {
            "labels": [label.to_dict() for label in labels],
            "notes": list(result.notes.get(source, [])),
        }
        for source, labels in result.by_source.items()
    }
    record["external_metadata"] = {
        "last_run": utc_now_iso(),
        "sources_enabled": [str(s) for s in sources],
        "input_snapshot": input.to_dict(),
        "sources": per_source,
        "merged": {"subjects": subjects},
    }
    taxonomy = record.get("taxonomy")
    if not isinstance(taxonomy, dict):
        taxonomy = {}
        record["taxonomy"] = taxonomy
    taxonomy["external_subjects"] = [
        {
            key: subject[key]
            for key in (
                "slug",
                "name",
                "confidence",
                "kind",
                "taxonomy_type",
                "taxonomy_group",
                "taxonomy_parent",
                "sources",
            )
        }
        for subject in subjects
    ]
    return record


def write_enrichment(path: Path, record: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"{json.dumps(record, indent=2, ensure_ascii=False)}\n", encoding="utf-8")
