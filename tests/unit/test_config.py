# ABOUTME: Unit tests for environment-driven settings.
# ABOUTME: Covers defaults, overrides, invalid numbers, path resolution, and source lists.

from pathlib import Path

from shelfmeta.config import (
    DEFAULT_BOT_USER_AGENT,
    PACKAGED_MAPPINGS_DIR,
    MetadataSettings,
)


class TestDefaults:
    """Settings built from an empty environment."""

    def test_source_defaults(self, tmp_path: Path) -> None:
        settings = MetadataSettings.from_env({}, root=tmp_path)
        assert settings.loc.endpoint == "https://www.loc.gov/books/"
        assert (settings.loc.rate_limit_ms, settings.loc.jitter_ms) == (400, 150)
        assert (settings.fast.rate_limit_ms, settings.fast.jitter_ms) == (350, 150)
        assert (settings.wikidata.rate_limit_ms, settings.wikidata.jitter_ms) == (500, 200)
        assert settings.fast.max_suggestions == 10
        assert settings.fast.api_key == ""
        assert settings.loc.user_agent == DEFAULT_BOT_USER_AGENT

    def test_path_defaults_resolve_against_root(self, tmp_path: Path) -> None:
        settings = MetadataSettings.from_env({}, root=tmp_path)
        assert settings.cache_dir == (tmp_path / ".cache" / "metadata").resolve()
        assert settings.review_queue_path == (
            tmp_path / "metadata" / "review" / "new-subjects.json"
        ).resolve()
        assert settings.mappings_dir == PACKAGED_MAPPINGS_DIR

    def test_strict_and_sources_default_off(self, tmp_path: Path) -> None:
        settings = MetadataSettings.from_env({}, root=tmp_path)
        assert settings.strict_slugs is False
        assert settings.default_sources == ()


class TestOverrides:
    """Environment values replace defaults."""

    def test_numeric_overrides(self, tmp_path: Path) -> None:
        settings = MetadataSettings.from_env(
            {"METADATA_LOC_MIN_DELAY_MS": "1000", "METADATA_FAST_MAX_SUGGESTIONS": "25"},
            root=tmp_path,
        )
        assert settings.loc.rate_limit_ms == 1000
        assert settings.fast.max_suggestions == 25

    def test_invalid_numbers_fall_back(self, tmp_path: Path) -> None:
        """Garbage, zero, negative and infinite values keep the default."""
        for bad in ("abc", "0", "-5", "inf", ""):
            settings = MetadataSettings.from_env(
                {"METADATA_WIKIDATA_MIN_DELAY_MS": bad}, root=tmp_path
            )
            assert settings.wikidata.rate_limit_ms == 500

    def test_fast_api_key_is_trimmed(self, tmp_path: Path) -> None:
        settings = MetadataSettings.from_env({"FAST_API_KEY": "  secret \n"}, root=tmp_path)
        assert settings.fast.api_key == "secret"

    def test_absolute_paths_are_kept(self, tmp_path: Path) -> None:
        target = tmp_path / "elsewhere" / "cache"
        settings = MetadataSettings.from_env({"METADATA_CACHE_DIR": str(target)}, root=tmp_path)
        assert settings.cache_dir == target

    def test_strict_slugs_flag(self, tmp_path: Path) -> None:
        for raw, expected in (("true", True), ("1", True), ("YES", True), ("no", False)):
            settings = MetadataSettings.from_env({"METADATA_STRICT_SLUGS": raw}, root=tmp_path)
            assert settings.strict_slugs is expected

    def test_sources_are_split_and_deduplicated(self, tmp_path: Path) -> None:
        settings = MetadataSettings.from_env(
            {"METADATA_SOURCES": " LOC, wikidata,,loc "}, root=tmp_path
        )
        assert settings.default_sources == ("loc", "wikidata")

    def test_harvest_settings(self, tmp_path: Path) -> None:
        settings = MetadataSettings.from_env(
            {"WIKIPEDIA_LANG": " DE ", "EVIDENCE_STALE_DAYS": "30"}, root=tmp_path
        )
        assert settings.harvest.wikipedia_lang == "de"
        assert settings.harvest.stale_days == 30
        assert settings.harvest.extract_char_limit == 1800
