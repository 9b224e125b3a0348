"""Configuration package for the tutorial toolkit."""

from tutorial.config.app_config import (
    AppConfig,
    PathsConfig,
    ServerConfig,
    SiteConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "PathsConfig",
    "ServerConfig",
    "SiteConfig",
    "clear_config_cache",
    "load_app_config",
]
