# ABOUTME: Reverse index from slug to taxonomy classification, built once from the taxonomy JSON.
# ABOUTME: Used by the orchestrator to annotate merged labels with type, group, and parent.

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from shelfmeta.config import MetadataSettings
from shelfmeta.metadata.types import TaxonomyKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaxonomyMetadata:
    """Classification of one slug in the internal taxonomy."""

    slug: str
    name: str
    type: TaxonomyKind
    group: str | None = None
    parent: str | None = None


class TaxonomyIndex:
    """Immutable slug -> TaxonomyMetadata lookup.

    When a slug appears in several sections, the first registration wins.
    Sections are read in order: domains, supergenres, genres, subgenres,
    cross-tags.
    """

    def __init__(self, entries: dict[str, TaxonomyMetadata] | None = None) -> None:
        self._entries: dict[str, TaxonomyMetadata] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, slug: object) -> bool:
        return slug in self._entries

    def get(self, slug: str) -> TaxonomyMetadata | None:
        return self._entries.get(slug)

    @classmethod
    def from_file(cls, path: Path) -> "TaxonomyIndex":
        if not path.exists():
            logger.warning("Taxonomy file missing at %s", path)
            return cls()
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "TaxonomyIndex":
        entries: dict[str, TaxonomyMetadata] = {}

        def register(entry: TaxonomyMetadata) -> None:
            if entry.slug and entry.slug not in entries:
                entries[entry.slug] = entry

        simple_sections = (
            ("domains", TaxonomyKind.DOMAIN),
            ("supergenres", TaxonomyKind.SUPERGENRE),
            ("genres", TaxonomyKind.GENRE),
        )
        for section, kind in simple_sections:
            for item in raw.get(section) or []:
                slug = item.get("slug")
                if slug:
                    register(TaxonomyMetadata(slug=slug, name=item.get("name") or slug, type=kind))

        for item in raw.get("subgenres") or []:
            slug = item.get("slug")
            if slug:
                register(
                    TaxonomyMetadata(
                        slug=slug,
                        name=item.get("name") or slug,
                        type=TaxonomyKind.SUBGENRE,
                        parent=item.get("genre_slug"),
                    )
                )

        by_group = (raw.get("cross_tags") or {}).get("by_group") or {}
        for group, tags in by_group.items():
            for tag in tags or []:
                slug = tag.get("slug")
                if slug:
                    register(
                        TaxonomyMetadata(
                            slug=slug,
                            name=tag.get("name") or slug,
                            type=TaxonomyKind.CROSS_TAG,
                            group=tag.get("group") or group,
                        )
                    )

        return cls(entries)


_default_index: TaxonomyIndex | None = None


def get_taxonomy_metadata(slug: str) -> TaxonomyMetadata | None:
    """Look up a slug in the lazily built process-wide taxonomy index."""
    global _default_index
    if _default_index is None:
        _default_index = TaxonomyIndex.from_file(MetadataSettings.from_env().taxonomy_path)
    return _default_index.get(slug)


def reset_taxonomy_cache(index: TaxonomyIndex | None = None) -> None:
    """Replace or clear the process-wide index."""
    global _default_index
    _default_index = index
