# ABOUTME: The `shelfmeta collect` command for gathering subject metadata for one book.
# ABOUTME: Runs the adapters, prints merged subjects, and updates the book's enrichment record.

import asyncio
import json
import logging

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from shelfmeta.cli.options import build_input, isbn_option, json_option, split_sources, title_option
from shelfmeta.config import MetadataSettings
from shelfmeta.core.enrichment import (
    apply_external_metadata,
    enrichment_path,
    load_enrichment,
    serialize_subjects,
    write_enrichment,
)
from shelfmeta.metadata.adapters import default_adapters
from shelfmeta.metadata.cache import build_cache_key
from shelfmeta.metadata.orchestrator import MetadataOrchestrator, sort_aggregated
from shelfmeta.metadata.review_queue import ReviewQueue
from shelfmeta.metadata.slug import SlugResolver
from shelfmeta.metadata.types import AdapterInput, AggregatedMetadata

logger = logging.getLogger(__name__)

_CONFIDENCE_STYLE = {"high": "green", "medium": "yellow", "low": "red"}


def _create_orchestrator(
    settings: MetadataSettings, resolver: SlugResolver
) -> MetadataOrchestrator:
    """Create the default orchestrator (LoC, FAST, Wikidata)."""
    return MetadataOrchestrator(default_adapters(settings, resolver), settings=settings)


async def _run_lookup(
    settings: MetadataSettings,
    input: AdapterInput,
    sources: list[str] | None,
    refresh: bool,
) -> AggregatedMetadata:
    queue = ReviewQueue(settings.review_queue_path)
    resolver = SlugResolver(settings.mappings_dir, queue)
    orchestrator = _create_orchestrator(settings, resolver)
    try:
        return await orchestrator.lookup_all(input, sources, refresh=refresh)
    finally:
        await orchestrator.aclose()
        await queue.drain()


def _print_result(console: Console, result: AggregatedMetadata) -> None:
    if not result.labels:
        console.print("[yellow]No external subjects found.[/yellow]")
    else:
        table = Table()
        table.add_column("Slug", style="bold")
        table.add_column("Name")
        table.add_column("Kind", width=8)
        table.add_column("Confidence")
        table.add_column("Taxonomy")
        table.add_column("Sources")
        for label in sort_aggregated(result.labels):
            style = _CONFIDENCE_STYLE.get(label.confidence.value, "")
            table.add_row(
                label.slug,
                label.name,
                label.kind.value,
                f"[{style}]{label.confidence.value}[/{style}]",
                label.taxonomy_type.value,
                ", ".join(str(s) for s in label.source_ids),
            )
        console.print(table)

    for notes in result.notes.values():
        for note in notes:
            console.print(f"[dim]{escape(note)}[/dim]", highlight=False)


@click.command("collect")
@isbn_option
@title_option
@click.option("-a", "--author", "authors", multiple=True, help="Author name (repeatable).")
@click.option("--oclc", default=None, help="OCLC number.")
@click.option("--doi", default=None, help="DOI.")
@click.option(
    "--book-id",
    default=None,
    help="Enrichment record name (default: derived from the identifiers).",
)
@click.option(
    "--sources",
    "sources_raw",
    default=None,
    help="Comma-separated sources to query, e.g. loc,fast,wikidata (default: all).",
)
@click.option("--refresh", is_flag=True, default=False, help="Ignore cached responses.")
@click.option("--dry-run", is_flag=True, default=False, help="Do not write the enrichment record.")
@json_option
def collect(
    isbn: str | None,
    title: str | None,
    authors: tuple[str, ...],
    oclc: str | None,
    doi: str | None,
    book_id: str | None,
    sources_raw: str | None,
    refresh: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Collect subject headings for a book from LoC, FAST and Wikidata."""
    console = Console()
    input = build_input(isbn, title, authors, oclc, doi)
    if not input.has_lookup_key:
        raise click.UsageError("Provide at least --isbn or --title.")

    settings = MetadataSettings.from_env()
    sources = split_sources(sources_raw)
    book_id = book_id or build_cache_key(
        isbn13=input.isbn13,
        isbn10=input.isbn10,
        doi=input.doi,
        oclc=input.oclc,
        title=input.title,
        authors=input.authors,
    )

    try:
        result = asyncio.run(_run_lookup(settings, input, sources, refresh))
    except (OSError, ValueError) as exc:
        logger.error("Metadata lookup failed for %s: %s", book_id, exc)
        console.print(f"[red]Lookup failed for {book_id}: {exc}[/red]")
        raise SystemExit(1) from exc

    if as_json:
        payload = {
            "book_id": book_id,
            "subjects": serialize_subjects(result),
            "notes": {str(source): notes for source, notes in result.notes.items()},
        }
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        console.print(f"[bold]{input.title or input.isbn}[/bold] ({book_id})")
        _print_result(console, result)

    if dry_run:
        if not as_json:
            console.print("[dim]Dry run: enrichment record not written.[/dim]")
        return

    path = enrichment_path(settings.enrichment_dir, book_id)
    try:
        record = load_enrichment(path, book_id)
        ran = [str(s) for s in result.by_source]
        apply_external_metadata(record, input, ran, result)
        write_enrichment(path, record)
    except (OSError, ValueError) as exc:
        logger.error("Could not update enrichment record %s: %s", path, exc)
        console.print(f"[red]Could not write {path}: {exc}[/red]")
        raise SystemExit(1) from exc

    if not as_json:
        console.print(f"\n[dim]{len(result.labels)} subject(s) written to {path}[/dim]")
