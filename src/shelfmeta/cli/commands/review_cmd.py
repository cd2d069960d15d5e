# ABOUTME: The `shelfmeta review` command for listing unmapped subject terms.
# ABOUTME: Shows review-queue entries, most frequent first, for curating slug mappings.

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from shelfmeta.cli.options import json_option
from shelfmeta.config import MetadataSettings
from shelfmeta.metadata.review_queue import ReviewQueue


@click.command("review")
@click.option("--source", "source_filter", default=None, help="Only show terms from this source.")
@click.option(
    "-n", "--limit", type=click.IntRange(min=1), default=None, help="Show at most N terms."
)
@click.option(
    "--queue",
    "queue_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Review queue file (default: METADATA_REVIEW_QUEUE_PATH).",
)
@json_option
def review(
    source_filter: str | None, limit: int | None, queue_path: Path | None, as_json: bool
) -> None:
    """List subject terms waiting for a slug mapping."""
    console = Console()
    path = queue_path or MetadataSettings.from_env().review_queue_path
    try:
        entries = ReviewQueue(path).load()
    except ValueError as exc:
        console.print(f"[red]Review queue at {path} is not valid JSON: {exc}[/red]")
        raise SystemExit(1) from exc

    if source_filter:
        entries = [e for e in entries if e.source == source_filter.strip().lower()]
    entries.sort(key=lambda e: (-e.occurrences, e.source, e.label.lower()))
    if limit is not None:
        entries = entries[:limit]

    if as_json:
        click.echo(json.dumps([e.to_dict() for e in entries], indent=2, ensure_ascii=False))
        return

    if not entries:
        console.print("[yellow]Review queue is empty.[/yellow]")
        return

    table = Table()
    table.add_column("Source", style="dim", width=9)
    table.add_column("Label", style="bold")
    table.add_column("ID")
    table.add_column("Seen", justify="right")
    table.add_column("First seen")
    for entry in entries:
        table.add_row(
            entry.source,
            entry.label,
            entry.id or "",
            str(entry.occurrences),
            entry.first_seen_at,
        )
    console.print(table)
    console.print(f"\n[dim]{len(entries)} term(s)[/dim]")
