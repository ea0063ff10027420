"""Package index client.

Fetches the list of known package repository URLs from the Swift Package
Index and uses it to resolve package names. The list is load-bearing for
name resolution, so when neither cache tier holds it and the network
fetch fails, the error propagates.
"""

import asyncio
import logging
from typing import List, Optional
from urllib.parse import urlparse

import httpx

from scully.cache.manager import TimeBoundedCache
from scully.config.settings import Settings
from scully.errors import NetworkError, ParseError
from scully.models import PackageMetadata, PackageSearchResult, RepositoryType

from .transport import decode_json, http_get

logger = logging.getLogger(__name__)

PACKAGE_LIST_KEY = "package_list"
MIN_SEARCH_SCORE = 0.4


def extract_package_name(url: str) -> str:
    """Extract the package name from a repository URL."""
    parsed = urlparse(url)
    segments = [s for s in parsed.path.split("/") if s]

    if parsed.hostname and "github.com" in parsed.hostname and len(segments) >= 2:
        name = segments[1]
    elif segments:
        name = segments[-1]
    else:
        return "Unknown"

    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name or "Unknown"


def fuzzy_score(name: str, query: str) -> float:
    """Score by query characters found in order within ``name``."""
    if not query:
        return 0.0
    lowered_name = name.lower()
    lowered_query = query.lower()

    matches = 0
    for char in lowered_name:
        if matches < len(lowered_query) and char == lowered_query[matches]:
            matches += 1
    return matches / len(lowered_query) * 0.4


def relevance_score(name: str, query: str) -> float:
    """Relevance of a package name for a search query.

    exact 1.0, prefix 0.9, substring 0.5 + (len(query) / len(name)) * 0.3,
    otherwise the in-order subsequence score.
    """
    lowered_name = name.lower()
    lowered_query = query.lower()

    if lowered_name == lowered_query:
        return 1.0
    if lowered_name.startswith(lowered_query):
        return 0.9
    if lowered_query in lowered_name:
        return 0.5 + (len(lowered_query) / len(lowered_name)) * 0.3
    return fuzzy_score(name, query)


def _decode_package_list(raw) -> List[str]:
    if not isinstance(raw, list) or not all(isinstance(p, str) for p in raw):
        raise ValueError("cached package list is not a list of URLs")
    return raw


def _stub(name: str, url: str) -> PackageMetadata:
    return PackageMetadata(name=name, url=url, repository_type=RepositoryType.from_url(url))


class PackageListFetcher:
    """Fetches and searches the package index."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        cache: Optional[TimeBoundedCache[List[str]]] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            settings: Scully settings
            client: Shared HTTP client
            cache: Package list cache (defaults to a 24h memory+disk cache)
        """
        self.url = settings.package_index.url
        self.client = client
        self.resource_timeout = settings.network.resource_timeout
        self.cache: TimeBoundedCache[List[str]] = cache or TimeBoundedCache(
            "packagelist",
            ttl=settings.cache.package_list_ttl_seconds,
            directory=settings.cache.path,
            decode=_decode_package_list,
            enabled=settings.cache.enabled,
        )
        self._fetch_lock = asyncio.Lock()

    async def fetch_package_list(self) -> List[str]:
        """
        Fetch the complete package list (memory, then disk, then network).

        Returns:
            Package repository URLs

        Raises:
            NetworkError: Fetch failed and no cached list is available
            ParseError: The index returned something other than a list of URLs
        """
        cached = await self.cache.get(PACKAGE_LIST_KEY)
        if cached:
            logger.debug("Package list cache hit (%d packages)", len(cached))
            return cached

        async with self._fetch_lock:
            # Concurrent callers wait for the first fetch, then read its result
            cached = await self.cache.get(PACKAGE_LIST_KEY)
            if cached:
                return cached
            return await self._download()

    async def _download(self) -> List[str]:
        logger.info("Fetching package list from %s (cache miss)", self.url)
        response = await http_get(self.client, self.url, self.resource_timeout)
        if response.status_code != 200:
            raise NetworkError(
                f"Failed to fetch package list (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        packages = decode_json(response.text, self.url)
        if not isinstance(packages, list) or not all(isinstance(p, str) for p in packages):
            raise ParseError("Failed to decode package list")

        logger.info("Fetched %d packages from the package index", len(packages))
        await self.cache.put(PACKAGE_LIST_KEY, packages)
        return packages

    async def search_packages(self, query: str, limit: int = 20) -> List[PackageSearchResult]:
        """
        Search the package list by name.

        Args:
            query: Search text
            limit: Maximum number of results

        Returns:
            Results sorted by descending relevance; ties keep list order
        """
        packages = await self.fetch_package_list()

        results: List[PackageSearchResult] = []
        for url in packages:
            name = extract_package_name(url)
            score = relevance_score(name, query)
            if score >= MIN_SEARCH_SCORE:
                results.append(PackageSearchResult(package=_stub(name, url), relevance_score=score))

        # sorted() is stable, so equal scores stay in discovery order
        results = sorted(results, key=lambda r: r.relevance_score, reverse=True)
        return results[:limit]

    async def get_package_info(self, name: str) -> Optional[PackageMetadata]:
        """
        Find a package by name.

        An exact case-insensitive match wins over any substring match,
        wherever it appears in the list.
        """
        packages = await self.fetch_package_list()
        lowered = name.lower()

        substring_match: Optional[PackageMetadata] = None
        for url in packages:
            candidate = extract_package_name(url)
            if candidate.lower() == lowered:
                return _stub(candidate, url)
            if substring_match is None and lowered in candidate.lower():
                substring_match = _stub(candidate, url)

        return substring_match
