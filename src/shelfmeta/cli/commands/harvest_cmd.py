# ABOUTME: The `shelfmeta harvest` command for capturing descriptive evidence about a book.
# ABOUTME: Snapshots OpenLibrary, Wikipedia, Google Books, and Wikidata text with content hashes.

import asyncio
import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from shelfmeta.cli.options import build_input, isbn_option, json_option, split_sources, title_option
from shelfmeta.config import MetadataSettings
from shelfmeta.harvest.evidence import (
    ALL_SOURCES,
    DEFAULT_SOURCES,
    BookRef,
    EvidenceHarvester,
    needs_reharvest,
)
from shelfmeta.harvest.types import HarvestResult


def _create_harvester(settings: MetadataSettings) -> EvidenceHarvester:
    return EvidenceHarvester(settings.harvest)


def _load_previous(path: Path, console: Console) -> HarvestResult | None:
    """Read snapshots written by an earlier run, or None when there is no file."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except ValueError as exc:
        console.print(f"[red]Evidence file at {path} is not valid JSON: {exc}[/red]")
        raise SystemExit(1) from exc
    return HarvestResult.from_dict(payload)


async def _run_harvest(
    settings: MetadataSettings, book: BookRef, sources: list[str]
) -> HarvestResult:
    harvester = _create_harvester(settings)
    try:
        return await harvester.build(book, sources)
    finally:
        await harvester.aclose()


@click.command("harvest")
@isbn_option
@title_option
@click.option("-a", "--author", default=None, help="Author name.")
@click.option("--google-books-id", default=None, help="Google Books volume id.")
@click.option("--wikipedia-title", default=None, help="Exact Wikipedia page title.")
@click.option(
    "--sources",
    "sources_raw",
    default=None,
    help=f"Comma-separated sources from {', '.join(ALL_SOURCES)} "
    f"(default: {','.join(DEFAULT_SOURCES)}).",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Write the snapshots to this JSON file. An existing file is kept while it is fresh.",
)
@click.option(
    "--force", is_flag=True, default=False, help="Harvest even when the output file is fresh."
)
@json_option
def harvest(
    isbn: str | None,
    title: str | None,
    author: str | None,
    google_books_id: str | None,
    wikipedia_title: str | None,
    sources_raw: str | None,
    output: Path | None,
    force: bool,
    as_json: bool,
) -> None:
    """Capture descriptive text about a book from public sources."""
    console = Console()
    input = build_input(isbn, title, [author] if author else [])
    if not input.has_lookup_key and not google_books_id:
        raise click.UsageError("Provide at least --isbn, --title or --google-books-id.")

    settings = MetadataSettings.from_env()
    sources = split_sources(sources_raw) or list(DEFAULT_SOURCES)
    book = BookRef(
        title=input.title,
        isbn13=input.isbn13,
        isbn10=input.isbn10,
        author=input.authors[0] if input.authors else None,
        google_books_id=google_books_id,
        wikipedia_title=wikipedia_title,
    )

    previous = _load_previous(output, console) if output is not None and not force else None
    if previous is not None and not needs_reharvest(
        previous.snapshots, sources, stale_days=settings.harvest.stale_days
    ):
        result = HarvestResult(skipped={source: "fresh" for source in sources})
        if as_json:
            click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
            return
        console.print(f"[dim]Evidence is fresh, use --force to harvest again: {output}[/dim]")
        return

    result = asyncio.run(_run_harvest(settings, book, sources))

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(
            json.dumps(result.to_dict(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    if result.snapshots:
        table = Table()
        table.add_column("Source", style="bold")
        table.add_column("Key")
        table.add_column("License", style="dim")
        table.add_column("Chars", justify="right")
        table.add_column("SHA-256", style="dim")
        for snapshot in result.snapshots:
            table.add_row(
                snapshot.source,
                snapshot.source_key,
                snapshot.license or "",
                str(len(snapshot.extract)),
                snapshot.sha256[:12],
            )
        console.print(table)
    else:
        console.print("[yellow]No evidence captured.[/yellow]")

    for source, reason in result.skipped.items():
        console.print(f"[dim]{source}: skipped ({reason})[/dim]", highlight=False)
    if output is not None:
        console.print(f"\n[dim]Snapshots written to {output}[/dim]")
