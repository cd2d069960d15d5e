# ABOUTME: Evidence harvesting from OpenLibrary, Google Books, Wikipedia, and Wikidata.
# ABOUTME: Exports the clients and the snapshot builder.

from shelfmeta.harvest.evidence import (
    BookRef,
    EvidenceHarvester,
    build_evidence,
    needs_reharvest,
)
from shelfmeta.harvest.googlebooks import GoogleBooksClient
from shelfmeta.harvest.openlibrary import OpenLibraryClient
from shelfmeta.harvest.types import EvidenceSnapshot, HarvestResult
from shelfmeta.harvest.wikidata import WikidataHarvestClient
from shelfmeta.harvest.wikipedia import WikipediaClient

__all__ = [
    "BookRef",
    "EvidenceHarvester",
    "EvidenceSnapshot",
    "GoogleBooksClient",
    "HarvestResult",
    "OpenLibraryClient",
    "WikidataHarvestClient",
    "WikipediaClient",
    "build_evidence",
    "needs_reharvest",
]
