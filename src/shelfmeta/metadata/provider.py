# ABOUTME: MetadataAdapter protocol defining the contract for subject-heading sources.
# ABOUTME: Any bibliographic authority (LoC, FAST, Wikidata, ...) implements this.

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from shelfmeta.metadata.cache import CacheClient
from shelfmeta.metadata.types import AdapterId, AdapterInput, AdapterResult


@dataclass
class LookupContext:
    """Per-call services handed to an adapter.

    `refresh` skips cache reads for this call; fresh responses are still
    written back.
    """

    cache: CacheClient
    refresh: bool = False


@runtime_checkable
class MetadataAdapter(Protocol):
    """Protocol for subject lookup services.

    Implementations never raise for an ordinary lookup failure; they return
    an empty label list with notes describing what went wrong.
    """

    @property
    def id(self) -> AdapterId: ...

    async def lookup(self, input: AdapterInput, context: LookupContext) -> AdapterResult: ...
