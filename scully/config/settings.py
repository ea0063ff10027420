"""Configuration settings for Scully."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from scully.models import DocumentationSource

DEFAULT_CACHE_DIR = "~/.cache/scully"
DEFAULT_PACKAGE_LIST_URL = (
    "https://raw.githubusercontent.com/SwiftPackageIndex/PackageList/main/packages.json"
)


@dataclass
class CacheConfig:
    """Metadata/documentation cache configuration."""

    enabled: bool = True
    directory: str = DEFAULT_CACHE_DIR
    ttl_seconds: float = 3600
    package_list_ttl_seconds: float = 86400

    @property
    def path(self) -> Path:
        """Cache root with ``~`` expanded."""
        return Path(self.directory).expanduser()


@dataclass
class NetworkConfig:
    """Timeouts and outbound concurrency."""

    request_timeout: float = 30.0  # connect/read per request
    resource_timeout: float = 60.0  # whole transfer
    max_concurrent_requests: int = 10


@dataclass
class GitHubConfig:
    """Hosted repository API configuration."""

    token: str = ""
    api_url: str = "https://api.github.com"
    raw_url: str = "https://raw.githubusercontent.com"
    use_gh_cli: bool = True
    gh_probe_timeout: float = 5.0


@dataclass
class PackageIndexConfig:
    """Package index (package list) configuration."""

    url: str = DEFAULT_PACKAGE_LIST_URL


@dataclass
class LocalSourcesConfig:
    """Local directories searched before any network fetch."""

    clone_cache_dir: str = ""  # defaults to <cache dir>/clones
    derived_data_dir: str = "~/Library/Developer/Xcode/DerivedData"
    max_scan_depth: int = 8


@dataclass
class Settings:
    """Main settings configuration."""

    cache: CacheConfig = field(default_factory=CacheConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    package_index: PackageIndexConfig = field(default_factory=PackageIndexConfig)
    local: LocalSourcesConfig = field(default_factory=LocalSourcesConfig)
    preferred_sources: List[DocumentationSource] = field(
        default_factory=lambda: [DocumentationSource.README, DocumentationSource.DOCC]
    )

    @property
    def clone_cache_path(self) -> Path:
        """Directory holding cached repository clones."""
        if self.local.clone_cache_dir:
            return Path(self.local.clone_cache_dir).expanduser()
        return self.cache.path / "clones"

    @property
    def derived_data_path(self) -> Path:
        return Path(self.local.derived_data_dir).expanduser()

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "Settings":
        """Load settings from YAML file with environment variable expansion."""
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}

        # Expand environment variables
        data = cls._expand_env_vars(data)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Build settings from a plain dictionary."""
        return cls(
            cache=CacheConfig(**data.get("cache", {})),
            network=NetworkConfig(**data.get("network", {})),
            github=GitHubConfig(**data.get("github", {})),
            package_index=PackageIndexConfig(**data.get("package_index", {})),
            local=LocalSourcesConfig(**data.get("local", {})),
            preferred_sources=cls._parse_sources(data.get("preferred_sources")),
        )

    @staticmethod
    def _expand_env_vars(data: Any) -> Any:
        """Recursively expand environment variables in configuration."""
        if isinstance(data, dict):
            return {k: Settings._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [Settings._expand_env_vars(item) for item in data]
        elif isinstance(data, str) and data.startswith("${") and data.endswith("}"):
            env_var = data[2:-1]
            return os.environ.get(env_var, "")
        return data

    @staticmethod
    def _parse_sources(values: Optional[List[str]]) -> List[DocumentationSource]:
        """Parse preferred documentation sources, ignoring unknown names."""
        if not values:
            return [DocumentationSource.README, DocumentationSource.DOCC]
        sources = []
        for value in values:
            try:
                source = DocumentationSource(str(value).lower())
            except ValueError:
                continue
            if source not in sources:
                sources.append(source)
        return sources or [DocumentationSource.README, DocumentationSource.DOCC]

    def apply_env_overrides(self, environ: Optional[Dict[str, str]] = None) -> "Settings":
        """Apply SCULLY_* and token environment variables in place."""
        env = os.environ if environ is None else environ

        enabled = env.get("SCULLY_CACHE_ENABLED")
        if enabled is not None:
            self.cache.enabled = enabled.strip().lower() not in ("0", "false", "no", "off")

        ttl = env.get("SCULLY_CACHE_TTL")
        if ttl:
            try:
                self.cache.ttl_seconds = float(ttl)
            except ValueError:
                pass

        max_requests = env.get("SCULLY_MAX_CONCURRENT_REQUESTS")
        if max_requests:
            try:
                self.network.max_concurrent_requests = max(1, int(max_requests))
            except ValueError:
                pass

        token = env.get("GITHUB_TOKEN") or env.get("GH_TOKEN")
        if token and not self.github.token:
            self.github.token = token

        return self


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Load settings from a configuration file, falling back to defaults.

    An explicitly given path must exist. Without a path, ``scully.yaml`` in
    the working directory and ``~/.config/scully/config.yaml`` are tried.
    """
    if config_path:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        return Settings.from_yaml(config_path).apply_env_overrides()

    for candidate in (Path("scully.yaml"), Path.home() / ".config" / "scully" / "config.yaml"):
        if candidate.exists():
            return Settings.from_yaml(str(candidate)).apply_env_overrides()

    return Settings().apply_env_overrides()
