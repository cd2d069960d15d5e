# ABOUTME: Unit tests for cross-source label merging and aggregate ordering.
# ABOUTME: Covers confidence monotonicity, tie-breaks, taxonomy annotation, and provenance.

import itertools

from shelfmeta.metadata.orchestrator import merge_label, sort_aggregated
from shelfmeta.metadata.taxonomy import TaxonomyIndex
from shelfmeta.metadata.types import (
    AdapterId,
    AdapterLabel,
    AggregatedLabel,
    Confidence,
    LabelKind,
    TaxonomyKind,
)
from tests.fixtures.taxonomy_data import SAMPLE_TAXONOMY

INDEX = TaxonomyIndex.from_dict(SAMPLE_TAXONOMY)


def _label(
    source: AdapterId,
    confidence: Confidence,
    slug: str = "space-opera",
    name: str | None = None,
    kind: LabelKind = LabelKind.GENRE,
    **extra,
) -> AdapterLabel:
    return AdapterLabel(
        slug=slug,
        name=name or f"{slug} from {source}",
        source=source,
        confidence=confidence,
        kind=kind,
        raw=[{"from": str(source)}],
        **extra,
    )


def _merge_all(labels: list[AdapterLabel]) -> dict[str, AggregatedLabel]:
    accumulator: dict[str, AggregatedLabel] = {}
    for label in labels:
        merge_label(accumulator, label, INDEX.get)
    return accumulator


class TestConfidenceMonotonicity:
    def test_max_confidence_regardless_of_order(self) -> None:
        """Every merge order of the same labels ends at the maximum confidence."""
        labels = [
            _label(AdapterId.LOC, Confidence.LOW),
            _label(AdapterId.FAST, Confidence.HIGH),
            _label(AdapterId.WIKIDATA, Confidence.MEDIUM),
        ]
        for order in itertools.permutations(labels):
            merged = _merge_all(list(order))["space-opera"]
            assert merged.confidence is Confidence.HIGH
            assert len(merged.sources) == 3

    def test_lower_confidence_never_downgrades(self) -> None:
        merged = _merge_all(
            [_label(AdapterId.LOC, Confidence.HIGH), _label(AdapterId.FAST, Confidence.LOW)]
        )["space-opera"]
        assert merged.confidence is Confidence.HIGH
        assert merged.name == "space-opera from loc"


class TestEscalation:
    def test_medium_then_high(self) -> None:
        """A generated match and an id match for one slug escalate to high."""
        merged = _merge_all(
            [
                _label(AdapterId.LOC, Confidence.MEDIUM, name="Space operas", kind=LabelKind.TOPIC),
                _label(AdapterId.FAST, Confidence.HIGH, name="Space opera", id="fst01128420"),
            ]
        )["space-opera"]
        assert merged.confidence is Confidence.HIGH
        assert merged.name == "Space opera"
        assert merged.kind is LabelKind.GENRE
        assert merged.source_ids == [AdapterId.LOC, AdapterId.FAST]
        assert merged.sources[1].id == "fst01128420"

    def test_tie_keeps_first_source_naming(self) -> None:
        merged = _merge_all(
            [
                _label(AdapterId.WIKIDATA, Confidence.HIGH, name="space opera"),
                _label(AdapterId.LOC, Confidence.HIGH, name="Space opera", kind=LabelKind.TOPIC),
            ]
        )["space-opera"]
        assert merged.name == "space opera"
        assert merged.kind is LabelKind.GENRE


class TestProvenance:
    def test_raw_is_grouped_by_source(self) -> None:
        merged = _merge_all(
            [
                _label(AdapterId.LOC, Confidence.HIGH),
                _label(AdapterId.FAST, Confidence.HIGH),
                _label(AdapterId.LOC, Confidence.MEDIUM),
            ]
        )["space-opera"]
        assert merged.raw == {
            AdapterId.LOC: [{"from": "loc"}, {"from": "loc"}],
            AdapterId.FAST: [{"from": "fast"}],
        }
        assert len(merged.sources) == 3

    def test_distinct_slugs_stay_separate(self) -> None:
        merged = _merge_all(
            [
                _label(AdapterId.LOC, Confidence.HIGH, slug="fantasy"),
                _label(AdapterId.LOC, Confidence.HIGH, slug="dragons"),
            ]
        )
        assert set(merged) == {"fantasy", "dragons"}


class TestTaxonomyAnnotation:
    def test_index_fills_type_and_parent(self) -> None:
        merged = _merge_all([_label(AdapterId.FAST, Confidence.HIGH)])["space-opera"]
        assert merged.taxonomy_type is TaxonomyKind.SUBGENRE
        assert merged.taxonomy_parent == "science-fiction"

    def test_cross_tag_group(self) -> None:
        merged = _merge_all([_label(AdapterId.LOC, Confidence.MEDIUM, slug="dragons")])["dragons"]
        assert merged.taxonomy_type is TaxonomyKind.CROSS_TAG
        assert merged.taxonomy_group == "themes"

    def test_unknown_slug_uses_label_hints(self) -> None:
        merged = _merge_all(
            [
                _label(AdapterId.LOC, Confidence.MEDIUM, slug="weird-topic"),
                _label(
                    AdapterId.FAST,
                    Confidence.MEDIUM,
                    slug="weird-topic",
                    taxonomy_type=TaxonomyKind.FORMAT,
                    taxonomy_group="formats",
                ),
            ]
        )["weird-topic"]
        assert merged.taxonomy_type is TaxonomyKind.FORMAT
        assert merged.taxonomy_group == "formats"

    def test_unknown_slug_without_hints(self) -> None:
        merged = _merge_all([_label(AdapterId.LOC, Confidence.LOW, slug="mystery-box")])
        assert merged["mystery-box"].taxonomy_type is TaxonomyKind.UNKNOWN


class TestSortAggregated:
    def test_confidence_then_slug(self) -> None:
        merged = _merge_all(
            [
                _label(AdapterId.LOC, Confidence.MEDIUM, slug="b"),
                _label(AdapterId.LOC, Confidence.HIGH, slug="z"),
                _label(AdapterId.LOC, Confidence.MEDIUM, slug="a"),
                _label(AdapterId.LOC, Confidence.LOW, slug="c"),
            ]
        )
        assert [label.slug for label in sort_aggregated(merged.values())] == ["z", "a", "b", "c"]
