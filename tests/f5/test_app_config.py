"""Tests for app configuration (F5).

Tests the configuration loading, environment override and fallbacks.
"""

from pathlib import Path

import pytest

from tutorial.config.app_config import (
    BOOK_DIR_ENV,
    AppConfig,
    clear_config_cache,
    load_app_config,
)


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Every test starts without cache or environment override."""
    monkeypatch.delenv(BOOK_DIR_ENV, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


class TestLoadAppConfig:
    """Tests for load_app_config function."""

    def test_defaults_when_file_missing(self, tmp_path):
        """Missing config file falls back to defaults."""
        config = load_app_config(config_file=tmp_path / "missing.yaml")
        assert isinstance(config, AppConfig)
        assert config.paths.book_dir == Path("data/book")
        assert config.site.title == "Learn EdgeQL with Dracula"
        assert config.site.languages["sdl"] == "Schema"
        assert config.server.cors_origins == ["*"]

    def test_yaml_overrides(self, tmp_path):
        """Values from the file replace defaults."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "paths:\n  book_dir: /srv/book\n"
            "site:\n  title: Dracula\n  languages:\n    sdl: Esquema\n"
            "server:\n  cors_origins: ['http://localhost:3000']\n"
        )
        config = load_app_config(config_file=path)
        assert config.paths.book_dir == Path("/srv/book")
        assert config.paths.site_dir == Path("build/site")
        assert config.site.title == "Dracula"
        assert config.site.languages["sdl"] == "Esquema"
        assert config.site.languages["edgeql"] == "EdgeQL"
        assert config.server.cors_origins == ["http://localhost:3000"]

    def test_empty_file(self, tmp_path):
        """An empty file gives the defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_app_config(config_file=path) == AppConfig()

    def test_env_overrides_book_dir(self, tmp_path, monkeypatch):
        """TUTORIAL_BOOK_DIR wins over the file."""
        monkeypatch.setenv(BOOK_DIR_ENV, str(tmp_path / "book"))
        config = load_app_config(config_file=tmp_path / "missing.yaml")
        assert config.paths.book_dir == tmp_path / "book"

    def test_config_is_cached(self, tmp_path):
        """Later calls return the cached object until cleared."""
        first = load_app_config(config_file=tmp_path / "missing.yaml")
        assert load_app_config() is first
        clear_config_cache()
        assert load_app_config(force_reload=True) is not first
