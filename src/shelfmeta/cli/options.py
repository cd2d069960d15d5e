# ABOUTME: Shared Click options for shelfmeta CLI commands.
# ABOUTME: Provides reusable decorators and parsers for book identifiers and output flags.

import click

from shelfmeta.metadata.queries import normalize_isbn
from shelfmeta.metadata.types import AdapterInput

isbn_option = click.option("--isbn", default=None, help="ISBN-10 or ISBN-13 of the book.")
title_option = click.option("--title", default=None, help="Book title.")
json_option = click.option(
    "--json", "as_json", is_flag=True, default=False, help="Print machine-readable JSON."
)


def split_sources(value: str | None) -> list[str] | None:
    """Parse "loc, fast" into ["loc", "fast"]; None when empty."""
    if not value:
        return None
    sources = [s.strip().lower() for s in value.split(",") if s.strip()]
    return list(dict.fromkeys(sources)) or None


def build_input(
    isbn: str | None,
    title: str | None,
    authors: tuple[str, ...] | list[str],
    oclc: str | None = None,
    doi: str | None = None,
) -> AdapterInput:
    """AdapterInput from CLI values; the ISBN goes to isbn13 or isbn10 by length."""
    cleaned = normalize_isbn(isbn)
    if cleaned and len(cleaned) not in (10, 13):
        raise click.BadParameter(f"not an ISBN-10 or ISBN-13: {isbn}", param_hint="--isbn")
    return AdapterInput(
        isbn13=cleaned if cleaned and len(cleaned) == 13 else None,
        isbn10=cleaned if cleaned and len(cleaned) == 10 else None,
        oclc=oclc or None,
        doi=doi or None,
        title=title.strip() if title and title.strip() else None,
        authors=[a.strip() for a in authors if a and a.strip()],
    )
