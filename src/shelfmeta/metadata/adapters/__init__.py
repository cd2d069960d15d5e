# ABOUTME: Subject adapters for external bibliographic authorities.
# ABOUTME: default_adapters builds one configured instance per source.

from shelfmeta.config import MetadataSettings
from shelfmeta.metadata.adapters.base import BaseAdapter, LabelCollector, RequestAttempt
from shelfmeta.metadata.adapters.fast import FastAdapter
from shelfmeta.metadata.adapters.loc import LibraryOfCongressAdapter
from shelfmeta.metadata.adapters.wikidata import WikidataAdapter
from shelfmeta.metadata.slug import SlugResolver


def default_adapters(
    settings: MetadataSettings | None = None, resolver: SlugResolver | None = None
) -> list[BaseAdapter]:
    """LoC, FAST and Wikidata adapters, each with its own HTTP client and rate limiter."""
    settings = settings or MetadataSettings.from_env()
    strict = settings.strict_slugs
    return [
        LibraryOfCongressAdapter(settings.loc, resolver=resolver, strict=strict),
        FastAdapter(settings.fast, resolver=resolver, strict=strict),
        WikidataAdapter(settings.wikidata, resolver=resolver, strict=strict),
    ]


__all__ = [
    "BaseAdapter",
    "FastAdapter",
    "LabelCollector",
    "LibraryOfCongressAdapter",
    "RequestAttempt",
    "WikidataAdapter",
    "default_adapters",
]
