"""Application configuration loader.

Loads configuration from data/config/app_config_v1.yaml, falling back to
built-in defaults. TUTORIAL_BOOK_DIR overrides the book directory.

Usage:
    from tutorial.config.app_config import load_app_config

    config = load_app_config()
    store = ContentStore(config.paths.book_dir)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")
BOOK_DIR_ENV = "TUTORIAL_BOOK_DIR"


@dataclass
class PathsConfig:
    """Where content is read from and where the site is written."""

    book_dir: Path = Path("data/book")
    site_dir: Path = Path("build/site")


@dataclass
class SiteConfig:
    """Rendering defaults."""

    title: str = "Learn EdgeQL with Dracula"
    languages: dict[str, str] = field(
        default_factory=lambda: {
            "sdl": "Schema",
            "edgeql": "EdgeQL",
            "edgeql-repl": "EdgeQL REPL",
            "plain": "Output",
        }
    )


@dataclass
class ServerConfig:
    """Web API settings."""

    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class AppConfig:
    """Application-wide configuration."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    site: SiteConfig = field(default_factory=SiteConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = AppConfig()

    paths_data = data.get("paths") or {}
    paths = PathsConfig(
        book_dir=Path(paths_data.get("book_dir", defaults.paths.book_dir)),
        site_dir=Path(paths_data.get("site_dir", defaults.paths.site_dir)),
    )

    site_data = data.get("site") or {}
    languages = dict(defaults.site.languages)
    languages.update(site_data.get("languages") or {})
    site = SiteConfig(
        title=site_data.get("title", defaults.site.title),
        languages=languages,
    )

    server_data = data.get("server") or {}
    server = ServerConfig(
        cors_origins=list(server_data.get("cors_origins", defaults.server.cors_origins)),
    )

    return AppConfig(paths=paths, site=site, server=server)


def load_app_config(force_reload: bool = False, config_file: Path | None = None) -> AppConfig:
    """Load application config.

    Args:
        force_reload: If True, ignore cached config and reload from file.
        config_file: Override the config file location.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload and config_file is None:
        return _cached_config

    path = config_file or CONFIG_FILE
    data: dict[str, Any]

    if path.exists():
        logger.debug("loading_app_config", source=str(path))
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = {}

    config = _parse_config(data)

    book_dir = os.environ.get(BOOK_DIR_ENV)
    if book_dir:
        logger.debug("book_dir_from_env", book_dir=book_dir)
        config.paths.book_dir = Path(book_dir)

    _cached_config = config
    return config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
