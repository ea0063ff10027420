"""Resolution engine.

Composes the cache, the local scanner, the package index and the
repository client into the public operations. A documentation request
goes: cache, local sources (when a project path is known), name
resolution, remote fetch, cache store.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar, Union

import httpx

from scully.analysis.manifest import LOCKFILE, ManifestAnalyzer, read_resolved_packages
from scully.cache.manager import CacheManager, CacheStats
from scully.config.settings import Settings
from scully.errors import PackageNotFoundError, ParseError, ScullyError
from scully.fetch.github import GitHubFetcher
from scully.fetch.local import LocalDocumentationFinder
from scully.fetch.package_list import PackageListFetcher
from scully.fetch.transport import GhCliTransport, create_http_client
from scully.models import (
    AnalysisIssue,
    CodeExample,
    DocumentationArtifact,
    DocumentationSummary,
    PackageMetadata,
    PackageReference,
    PackageSearchResult,
    ProjectAnalysisResult,
    ProjectDocumentationResult,
    ResolutionRequest,
    Severity,
    SourceKind,
    UsagePattern,
)
from scully.process.patterns import PatternExtractor
from scully.process.summarizer import Summarizer

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Best-effort guesses for names missing from the package index
GUESS_URL_TEMPLATES = [
    "https://github.com/{name}/{name}",
    "https://github.com/apple/{name}",
    "https://github.com/Alamofire/{name}",
]

SUMMARY_EXAMPLE_LIMIT = 20
PATTERN_EXAMPLE_LIMIT = 50


class ScullyEngine:
    """Entry point for all package operations.

    Use as an async context manager; the HTTP client is opened on entry
    and closed on exit unless one was supplied by the caller.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        gh_transport: Optional[GhCliTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the engine.

        Args:
            settings: Scully settings (defaults when omitted)
            client: HTTP client to use instead of creating one
            gh_transport: gh CLI transport override
            clock: Time source for the caches
        """
        self.settings = settings or Settings()
        self._client = client
        self._owns_client = client is None
        self._gh_transport = gh_transport
        self._semaphore = asyncio.Semaphore(max(1, self.settings.network.max_concurrent_requests))

        self.cache = CacheManager(self.settings.cache, clock=clock)
        self.manifest_analyzer = ManifestAnalyzer()
        self.local_finder = LocalDocumentationFinder(self.settings)
        self.summarizer = Summarizer()

        self._package_list: Optional[PackageListFetcher] = None
        self._github: Optional[GitHubFetcher] = None

    async def __aenter__(self):
        """Async context manager entry."""
        if self._client is None:
            self._client = create_http_client(
                request_timeout=self.settings.network.request_timeout,
            )
            self._owns_client = True
        self._package_list = PackageListFetcher(self.settings, self._client)
        self._github = GitHubFetcher(self.settings, self._client, gh_transport=self._gh_transport)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def package_list(self) -> PackageListFetcher:
        if self._package_list is None:
            raise RuntimeError("Engine not initialized. Use 'async with' context manager.")
        return self._package_list

    @property
    def github(self) -> GitHubFetcher:
        if self._github is None:
            raise RuntimeError("Engine not initialized. Use 'async with' context manager.")
        return self._github

    # Dependencies

    async def list_dependencies(self, project_path: str = ".") -> ProjectAnalysisResult:
        """
        List a project's dependencies with their metadata.

        Each dependency is resolved independently; a failure becomes a
        warning on the result instead of failing the whole listing.

        Args:
            project_path: Directory containing Package.swift

        Returns:
            ProjectAnalysisResult

        Raises:
            InvalidManifestError: The manifest is missing or unreadable
        """
        logger.info("Listing dependencies at %s", project_path)
        manifest = self.manifest_analyzer.analyze(project_path)

        outcomes = await self._gather_bounded(
            [self._resolve_dependency(dep) for dep in manifest.dependencies]
        )

        dependencies: List[PackageMetadata] = []
        issues: List[AnalysisIssue] = []
        for outcome in outcomes:
            if isinstance(outcome, PackageMetadata):
                dependencies.append(outcome)
            else:
                issues.append(outcome)

        return ProjectAnalysisResult(
            project_path=project_path,
            manifest=manifest,
            dependencies=dependencies,
            issues=issues,
        )

    async def _resolve_dependency(self, dep: PackageReference) -> Union[PackageMetadata, AnalysisIssue]:
        if dep.kind == SourceKind.LOCAL:
            return AnalysisIssue(
                severity=Severity.WARNING,
                message=f"{dep.name} is a local path dependency ({dep.url})",
                suggestion="Local packages are not looked up remotely",
            )

        try:
            if dep.url:
                return await self._fetch_package_info(dep.url)
            info = await self._search_package(dep.name)
        except ScullyError as e:
            logger.warning("Failed to fetch info for %s: %s", dep.name, e)
            return AnalysisIssue(
                severity=Severity.WARNING,
                message=f"Could not fetch information for {dep.name}: {e}",
                suggestion="Check if the package URL is correct",
            )

        if info is None:
            return AnalysisIssue(
                severity=Severity.WARNING,
                message=f"Could not resolve {dep.name}",
                suggestion="Declare the dependency with its repository URL",
            )
        return info

    # Documentation

    async def fetch_documentation(
        self,
        package_name: str,
        version: Optional[str] = None,
        project_path: Optional[str] = None,
    ) -> DocumentationArtifact:
        """
        Fetch documentation for a package.

        Args:
            package_name: Package name
            version: Optional version or ref
            project_path: Project to search for local documentation first

        Returns:
            DocumentationArtifact

        Raises:
            PackageNotFoundError: The name could not be resolved
            NetworkError: The fetch failed (not retried)
        """
        request = ResolutionRequest(
            package_name=package_name,
            version=version,
            project_path=project_path,
        )
        return await self._fetch_documentation(request)

    async def _fetch_documentation(self, request: ResolutionRequest) -> DocumentationArtifact:
        logger.info("Fetching documentation for %s", request.package_name)

        cached = await self.cache.get_documentation(request.cache_key)
        if cached is not None:
            logger.info("Returning cached documentation for %s", request.package_name)
            return cached

        if request.project_path:
            local = await self.local_finder.find_local_documentation(
                request.package_name, request.project_path
            )
            if local is not None:
                return local

        url = request.url or await self._resolve_url(request.package_name)
        if url is None:
            raise PackageNotFoundError(request.package_name)

        doc = await self.github.fetch_documentation(url, version=request.version)
        await self.cache.store_documentation(doc, request.cache_key)
        return doc

    async def fetch_project_documentation(self, project_path: str = ".") -> ProjectDocumentationResult:
        """
        Fetch documentation for every dependency of a project.

        Pins from Package.resolved are used when the lockfile exists,
        otherwise the manifest's dependencies.

        Raises:
            InvalidManifestError: No lockfile and no readable manifest
        """
        references = self._project_references(project_path)
        logger.info("Fetching documentation for %d dependencies of %s", len(references), project_path)

        requests = [
            ResolutionRequest(
                package_name=ref.name,
                url=ref.url if ref.url and "github.com" in ref.url else None,
                version=ref.version,
                project_path=project_path,
            )
            for ref in references
            if ref.kind != SourceKind.LOCAL
        ]
        return await self._fetch_documentation_batch(requests, project_path)

    async def fetch_documentation_batch(
        self, package_names: Sequence[str], project_path: Optional[str] = None
    ) -> ProjectDocumentationResult:
        """Fetch documentation for several packages; failures become issues."""
        requests = [
            ResolutionRequest(package_name=name, project_path=project_path)
            for name in package_names
        ]
        return await self._fetch_documentation_batch(requests, project_path or "")

    async def _fetch_documentation_batch(
        self, requests: Sequence[ResolutionRequest], project_path: str
    ) -> ProjectDocumentationResult:
        outcomes = await self._gather_bounded(
            [self._try_fetch_documentation(request) for request in requests]
        )

        result = ProjectDocumentationResult(project_path=project_path)
        for outcome in outcomes:
            if isinstance(outcome, DocumentationArtifact):
                result.documents.append(outcome)
            else:
                result.issues.append(outcome)
        return result

    def _project_references(self, project_path: str) -> List[PackageReference]:
        lockfile = Path(project_path) / LOCKFILE
        try:
            if lockfile.is_file():
                return read_resolved_packages(str(lockfile))
        except (ParseError, OSError) as e:
            logger.warning("Ignoring unreadable %s: %s", lockfile, e)
        return self.manifest_analyzer.analyze(project_path).dependencies

    async def _try_fetch_documentation(
        self, request: ResolutionRequest
    ) -> Union[DocumentationArtifact, AnalysisIssue]:
        try:
            return await self._fetch_documentation(request)
        except ScullyError as e:
            logger.warning("Failed to fetch documentation for %s: %s", request.package_name, e)
            return AnalysisIssue(
                severity=Severity.WARNING,
                message=f"Could not fetch documentation for {request.package_name}: {e}",
            )

    # Examples and metadata

    async def find_examples(
        self,
        package_name: str,
        filter: Optional[str] = None,
        limit: int = 10,
    ) -> List[CodeExample]:
        """
        Find code examples for a package.

        Raises:
            PackageNotFoundError: The name could not be resolved
        """
        logger.info("Finding examples for %s", package_name)
        url = await self._resolve_url(package_name)
        if url is None:
            raise PackageNotFoundError(package_name)
        return await self.github.find_examples(url, filter=filter, limit=limit)

    async def get_package_info(self, package_name: str) -> PackageMetadata:
        """Resolve a package name and fetch its metadata."""
        info = await self._search_package(package_name)
        if info is None:
            raise PackageNotFoundError(package_name)
        return info

    async def search_packages(self, query: str, limit: int = 20) -> List[PackageSearchResult]:
        """Rank package index entries against a query."""
        logger.info("Searching packages for '%s'", query)
        return await self.package_list.search_packages(query, limit=limit)

    # Text processing

    async def generate_summary(
        self, package_name: str, version: Optional[str] = None
    ) -> DocumentationSummary:
        """Summarize a package from its documentation and examples."""
        docs = await self.fetch_documentation(package_name, version=version)
        examples = await self.find_examples(package_name, limit=SUMMARY_EXAMPLE_LIMIT)
        return self.summarizer.generate_summary(docs, examples)

    async def extract_patterns(self, package_name: str, threshold: int = 2) -> List[UsagePattern]:
        """Find usage patterns occurring at least ``threshold`` times."""
        docs = await self.fetch_documentation(package_name)
        examples = await self.find_examples(package_name, limit=PATTERN_EXAMPLE_LIMIT)
        return PatternExtractor().extract_patterns(docs, examples, threshold=threshold)

    # Cache

    def cache_stats(self) -> CacheStats:
        return self.cache.get_stats()

    async def clear_cache(self) -> None:
        """Clear metadata, documentation and the package list."""
        await self.cache.clear()
        await self.package_list.cache.clear()

    async def prune_cache(self) -> int:
        """Remove expired entries. Returns the number removed."""
        removed = await self.cache.clear_expired()
        removed += await self.package_list.cache.evict_expired()
        return removed

    # Resolution

    async def _fetch_package_info(self, url: str) -> PackageMetadata:
        cached = await self.cache.get_package_info(url)
        if cached is not None:
            return cached

        info = await self.github.fetch_repository_info(url)
        await self.cache.store_package_info(info, url)
        return info

    async def _resolve_url(self, package_name: str) -> Optional[str]:
        """Source URL for a package name, or None."""
        stub = await self.package_list.get_package_info(package_name)
        if stub is not None:
            return stub.url

        guessed = await self._guess_package(package_name)
        return guessed.url if guessed is not None else None

    async def _search_package(self, package_name: str) -> Optional[PackageMetadata]:
        logger.info("Searching for package: %s", package_name)
        stub = await self.package_list.get_package_info(package_name)
        if stub is not None:
            return await self._fetch_package_info(stub.url)
        return await self._guess_package(package_name)

    async def _guess_package(self, package_name: str) -> Optional[PackageMetadata]:
        """Try conventional repository locations. Heuristic, not a guarantee."""
        for template in GUESS_URL_TEMPLATES:
            url = template.format(name=package_name)
            try:
                info = await self._fetch_package_info(url)
            except ScullyError as e:
                logger.debug("Guess %s failed: %s", url, e)
                continue
            logger.info("Resolved %s by guessing %s", package_name, url)
            return info
        return None

    async def _gather_bounded(self, coroutines: Sequence[Awaitable[T]]) -> List[T]:
        async def bounded(coroutine: Awaitable[T]) -> T:
            async with self._semaphore:
                return await coroutine

        return list(await asyncio.gather(*(bounded(c) for c in coroutines)))
