"""Fetchers for local sources, the package index and hosted repositories."""

from .github import EXAMPLE_PATTERNS, GitHubFetcher, parse_repository_url
from .local import LocalDocumentationFinder
from .package_list import PackageListFetcher, extract_package_name, relevance_score
from .patterns import compile_pattern, matches_any
from .transport import (
    DirectAPITransport,
    GhCliTransport,
    Transport,
    create_http_client,
    probe_gh_cli,
)

__all__ = [
    # Fetchers
    "GitHubFetcher",
    "LocalDocumentationFinder",
    "PackageListFetcher",
    # Transports
    "Transport",
    "DirectAPITransport",
    "GhCliTransport",
    "create_http_client",
    "probe_gh_cli",
    # Helpers
    "EXAMPLE_PATTERNS",
    "compile_pattern",
    "matches_any",
    "extract_package_name",
    "parse_repository_url",
    "relevance_score",
]
