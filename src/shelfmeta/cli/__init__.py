# ABOUTME: CLI package for shelfmeta, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from dotenv import load_dotenv
from rich.logging import RichHandler

from shelfmeta.cli.commands import collect_cmd, harvest_cmd, review_cmd


@click.group()
@click.version_option(package_name="shelfmeta")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """shelfmeta - collect subject metadata for books from library authorities."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


cli.add_command(collect_cmd.collect)
cli.add_command(review_cmd.review)
cli.add_command(harvest_cmd.harvest)
