"""Unit tests for pageextract settings.

Covers default loading, env var overrides, the dev profile and path
resolution for the llm, cache and dom sections.
"""

from __future__ import annotations

import os


class TestSettings:
    """Core settings loading and override mechanics."""

    def test_default_settings_load(self, monkeypatch):
        """Settings should load without any env overrides."""
        monkeypatch.delenv("PAGEEXTRACT_ENV", raising=False)
        from pageextract.settings import get_settings

        s = get_settings()
        assert s.env == "local"
        assert s.llm.default_model == "gpt-4o"
        assert s.llm.temperature == 0.1
        assert s.llm.enable_caching is False
        assert s.cache.backend == "sqlite"
        assert s.dom.settle_timeout_ms == 30_000

    def test_get_settings_is_cached(self):
        from pageextract.settings import get_settings

        assert get_settings() is get_settings()

    def test_env_override(self, monkeypatch):
        """PAGEEXTRACT_LLM__DEFAULT_MODEL should override the default."""
        monkeypatch.setenv("PAGEEXTRACT_LLM__DEFAULT_MODEL", "claude-3-5-sonnet-latest")
        from pageextract.settings.config import Settings

        s = Settings()
        assert s.llm.default_model == "claude-3-5-sonnet-latest"

    def test_multiple_section_overrides(self, monkeypatch):
        """Multiple env overrides across sections should all apply."""
        monkeypatch.setenv("PAGEEXTRACT_CACHE__BACKEND", "memory")
        monkeypatch.setenv("PAGEEXTRACT_DOM__DEBUG_DOM", "true")
        monkeypatch.setenv("PAGEEXTRACT_LOG_JSON", "true")
        from pageextract.settings.config import Settings

        s = Settings()
        assert s.cache.backend == "memory"
        assert s.dom.debug_dom is True
        assert s.log_json is True
        # Untouched fields in the same section keep their TOML defaults
        assert s.dom.settle_timeout_ms == 30_000

    def test_dev_profile(self, monkeypatch):
        """PAGEEXTRACT_ENV=dev should load settings.dev.toml."""
        monkeypatch.setenv("PAGEEXTRACT_ENV", "dev")
        from pageextract.settings.config import Settings

        s = Settings()
        assert s.env == "dev"
        assert s.log_level == "DEBUG"
        assert s.llm.enable_caching is True
        assert s.dom.debug_dom is True

    def test_env_var_beats_profile(self, monkeypatch):
        monkeypatch.setenv("PAGEEXTRACT_ENV", "dev")
        monkeypatch.setenv("PAGEEXTRACT_LLM__ENABLE_CACHING", "false")
        from pageextract.settings.config import Settings

        assert Settings().llm.enable_caching is False

    def test_sqlite_path_resolved_relative_to_project_root(self):
        from pageextract.settings.config import Settings

        s = Settings()
        assert os.path.isabs(s.cache.sqlite_path)
        assert s.cache.sqlite_path.startswith(str(s.project_root))

    def test_absolute_sqlite_path_kept(self, monkeypatch, tmp_path):
        target = str(tmp_path / "cache.db")
        monkeypatch.setenv("PAGEEXTRACT_CACHE__SQLITE_PATH", target)
        from pageextract.settings.config import Settings

        assert Settings().cache.sqlite_path == target

    def test_explicit_values_win(self):
        from pageextract.settings.config import Settings

        s = Settings(log_level="WARNING")
        assert s.log_level == "WARNING"
