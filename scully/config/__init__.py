"""Configuration for Scully."""

from .settings import (
    CacheConfig,
    GitHubConfig,
    LocalSourcesConfig,
    NetworkConfig,
    PackageIndexConfig,
    Settings,
    load_settings,
)

__all__ = [
    "CacheConfig",
    "GitHubConfig",
    "LocalSourcesConfig",
    "NetworkConfig",
    "PackageIndexConfig",
    "Settings",
    "load_settings",
]
