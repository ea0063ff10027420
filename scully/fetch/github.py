"""Hosted repository client.

Fetches repository metadata, documentation and code examples from GitHub.
Metadata and tree listings go through the gh CLI when it is available and
through the REST API otherwise; raw file contents always come over HTTPS.
Every call is bounded by the configured request and transfer timeouts.
"""

import base64
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlparse

import httpx

from scully.config.settings import Settings
from scully.errors import (
    NetworkError,
    NoDocumentationFoundError,
    ParseError,
    ScullyError,
    ToolUnavailableError,
)
from scully.models import (
    CodeExample,
    DocumentationArtifact,
    DocumentationSource,
    DocumentationType,
    PackageMetadata,
    RepositoryType,
)

from .patterns import matches_any
from .transport import DirectAPITransport, GhCliTransport, Transport, http_get, probe_gh_cli

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
SECONDARY_BRANCH = "master"
DOCC_SUFFIX = ".docc"

EXAMPLE_PATTERNS = [
    "Examples/*.swift",
    "Examples/**/*.swift",
    "Examples/*.md",
    "Examples/**/*.md",
    "Examples/**/*.playground/**/*.swift",
    "Example/**/*.swift",
    "Sample/*.swift",
    "Sample/**/*.swift",
    "Samples/**/*.swift",
    "Demo/*.swift",
    "Demo/**/*.swift",
    "Tests/**/*.swift",
]

DEFAULT_SOURCE_ORDER = [
    DocumentationSource.README,
    DocumentationSource.DOCC,
    DocumentationSource.GUIDES,
]

_SSH_URL = re.compile(r"^git@(?P<host>[^:]+):(?P<path>.+)$")


def parse_repository_url(url: str) -> Tuple[str, str]:
    """
    Extract the owner and repository name from a GitHub URL.

    Args:
        url: ``https://github.com/owner/repo(.git)`` or ``git@github.com:owner/repo.git``

    Returns:
        (owner, repo)

    Raises:
        ParseError: The URL is not a GitHub repository URL
    """
    ssh = _SSH_URL.match(url.strip())
    if ssh:
        host, path = ssh.group("host"), ssh.group("path")
    else:
        parsed = urlparse(url.strip())
        host, path = parsed.hostname or "", parsed.path

    if not host or "github.com" not in host.lower():
        raise ParseError(f"Not a GitHub repository URL: {url}")

    segments = [s for s in path.split("/") if s]
    if len(segments) < 2:
        raise ParseError(f"Cannot extract owner/repository from URL: {url}")

    owner, repo = segments[0], segments[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        raise ParseError(f"Cannot extract owner/repository from URL: {url}")
    return owner, repo


def language_for_path(path: str) -> str:
    """Language tag for an example file."""
    lowered = path.lower()
    if lowered.endswith(".swift"):
        return "swift"
    if lowered.endswith(".md"):
        return "markdown"
    return "text"


def source_order(preferred: Optional[List[DocumentationSource]]) -> List[DocumentationSource]:
    """Preferred sources first, the rest appended in default order."""
    order: List[DocumentationSource] = []
    for source in list(preferred or []) + DEFAULT_SOURCE_ORDER:
        if source not in order:
            order.append(source)
    return order


@dataclass
class RepositoryTree:
    """A recursive tree listing of one ref."""

    owner: str
    repo: str
    ref: str
    entries: List[Dict[str, Any]]

    def blobs(self) -> List[Dict[str, Any]]:
        return [e for e in self.entries if e.get("type") == "blob" and isinstance(e.get("path"), str)]

    def directories(self) -> List[Dict[str, Any]]:
        return [e for e in self.entries if e.get("type") == "tree" and isinstance(e.get("path"), str)]


class GitHubFetcher:
    """Fetches package information from GitHub."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        gh_transport: Optional[GhCliTransport] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            settings: Scully settings
            client: Shared HTTP client
            gh_transport: gh CLI transport (created from settings when omitted)
        """
        self.settings = settings
        self.client = client
        self.raw_url = settings.github.raw_url.rstrip("/")
        self.resource_timeout = settings.network.resource_timeout
        self.preferred_sources = source_order(settings.preferred_sources)
        self.api = DirectAPITransport(
            client,
            api_url=settings.github.api_url,
            token=settings.github.token,
            resource_timeout=self.resource_timeout,
        )
        self.gh = gh_transport or GhCliTransport(timeout=self.resource_timeout)

    # Transport selection

    async def select_transport(self) -> Transport:
        """Pick the transport for one call. Never cached across calls."""
        if self.settings.github.use_gh_cli and await probe_gh_cli(
            timeout=self.settings.github.gh_probe_timeout,
            executable=self.gh.executable,
        ):
            logger.debug("Using gh CLI transport")
            return self.gh
        logger.debug("Using direct API transport")
        return self.api

    async def _api_get(self, transport: Transport, path: str) -> Any:
        try:
            return await transport.get_json(path)
        except ToolUnavailableError:
            if transport is self.api:
                raise
            logger.debug("gh disappeared, retrying %s over the API", path)
            return await self.api.get_json(path)

    # Metadata

    async def fetch_repository_info(self, url: str) -> PackageMetadata:
        """
        Fetch repository metadata.

        Args:
            url: Repository URL

        Returns:
            PackageMetadata with the latest release as version when one exists

        Raises:
            ParseError: Bad URL or malformed response
            NetworkError: Request failed
        """
        owner, repo = parse_repository_url(url)
        logger.info("Fetching repository info for %s/%s", owner, repo)
        transport = await self.select_transport()

        data = await self._api_get(transport, f"repos/{owner}/{repo}")
        if not isinstance(data, dict):
            raise ParseError(f"Unexpected repository response for {owner}/{repo}")
        try:
            name = data["name"]
            author = data["owner"]["login"]
        except (KeyError, TypeError) as e:
            raise ParseError(f"Repository response for {owner}/{repo} is missing {e}") from e

        branch = data.get("default_branch") or DEFAULT_BRANCH
        license_info = data.get("license") or {}
        version = await self._latest_release(transport, owner, repo)

        return PackageMetadata(
            name=name,
            url=url,
            description=data.get("description"),
            version=version,
            license=license_info.get("name") if isinstance(license_info, dict) else None,
            author=author,
            tags=data.get("topics") or None,
            stars=data.get("stargazers_count"),
            forks=data.get("forks_count"),
            last_updated=self._parse_timestamp(data.get("pushed_at") or data.get("updated_at")),
            readme_url=f"{self.raw_url}/{owner}/{repo}/{branch}/README.md",
            documentation_url=f"https://github.com/{owner}/{repo}/tree/{branch}/Documentation.docc",
            repository_type=RepositoryType.GITHUB,
        )

    async def _latest_release(self, transport: Transport, owner: str, repo: str) -> Optional[str]:
        """Latest release tag; absence or failure just leaves it unset."""
        try:
            release = await self._api_get(transport, f"repos/{owner}/{repo}/releases/latest")
        except ScullyError as e:
            logger.debug("No releases found for %s/%s: %s", owner, repo, e)
            return None
        if isinstance(release, dict) and isinstance(release.get("tag_name"), str):
            return release["tag_name"]
        return None

    @staticmethod
    def _parse_timestamp(value: Any) -> Optional[datetime]:
        if not isinstance(value, str):
            return None
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None

    # Documentation

    async def fetch_documentation(self, url: str, version: Optional[str] = None) -> DocumentationArtifact:
        """
        Fetch the best documentation a repository offers.

        Sources are tried strictly in order and the first one that yields
        content wins: README (at ``version``, then the main and master
        branches), a DocC catalog, then any other markdown file.

        Raises:
            ParseError: Bad URL
            NoDocumentationFoundError: No source produced content
            NetworkError: A source failed and none produced content
        """
        owner, repo = parse_repository_url(url)
        logger.info("Fetching documentation for %s/%s", owner, repo)
        transport = await self.select_transport()
        refs = self._candidate_refs(version)

        tree: Optional[RepositoryTree] = None
        tree_loaded = False
        last_error: Optional[NetworkError] = None

        for source in self.preferred_sources:
            try:
                if source == DocumentationSource.README:
                    found = await self._readme(owner, repo, refs)
                else:
                    if not tree_loaded:
                        tree_loaded = True
                        tree = await self._tree(transport, owner, repo, refs)
                    if tree is None:
                        continue
                    if source == DocumentationSource.DOCC:
                        found = await self._docc(transport, tree)
                    else:
                        found = await self._other_markdown(transport, tree)
            except NetworkError as e:
                logger.debug("Documentation source %s failed for %s/%s: %s", source.value, owner, repo, e)
                last_error = e
                continue

            if found is not None:
                content, doc_type, doc_url = found
                return DocumentationArtifact(
                    package_name=repo,
                    content=content,
                    doc_type=doc_type,
                    version=version,
                    url=doc_url,
                )

        if last_error is not None:
            raise last_error
        raise NoDocumentationFoundError(f"No documentation found for {owner}/{repo}")

    @staticmethod
    def _candidate_refs(version: Optional[str]) -> List[str]:
        refs = [version] if version else []
        for ref in (DEFAULT_BRANCH, SECONDARY_BRANCH):
            if ref not in refs:
                refs.append(ref)
        return refs

    async def _readme(
        self, owner: str, repo: str, refs: List[str]
    ) -> Optional[Tuple[str, DocumentationType, str]]:
        for ref in refs:
            readme_url = f"{self.raw_url}/{owner}/{repo}/{quote(ref)}/README.md"
            content = await self.fetch_raw(readme_url)
            if content and content.strip():
                return content, DocumentationType.README, readme_url
        return None

    async def _docc(
        self, transport: Transport, tree: RepositoryTree
    ) -> Optional[Tuple[str, DocumentationType, str]]:
        catalog = next(
            (d["path"] for d in tree.directories() if d["path"].endswith(DOCC_SUFFIX)),
            None,
        )
        if catalog is None:
            return None

        doc_url = f"https://github.com/{tree.owner}/{tree.repo}/tree/{tree.ref}/{catalog}"
        articles = [
            blob for blob in tree.blobs()
            if blob["path"].startswith(catalog + "/") and blob["path"].lower().endswith(".md")
        ]
        for article in articles:
            content = await self._blob_content(transport, tree, article)
            if content and content.strip():
                return content, DocumentationType.DOCC, doc_url

        listing = [f"DocC documentation found at {catalog}"]
        listing.extend(f"- {a['path'][len(catalog) + 1:]}" for a in articles)
        return "\n".join(listing), DocumentationType.DOCC, doc_url

    async def _other_markdown(
        self, transport: Transport, tree: RepositoryTree
    ) -> Optional[Tuple[str, DocumentationType, str]]:
        candidates = [
            blob for blob in tree.blobs()
            if blob["path"].lower().endswith(".md")
            and "readme" not in blob["path"].rsplit("/", 1)[-1].lower()
        ]
        # Top-level files first, otherwise tree order
        candidates.sort(key=lambda blob: "/" in blob["path"])

        for blob in candidates:
            content = await self._blob_content(transport, tree, blob)
            if content and content.strip():
                doc_url = f"https://github.com/{tree.owner}/{tree.repo}/blob/{tree.ref}/{blob['path']}"
                return content, DocumentationType.GUIDE, doc_url
        return None

    # Examples

    async def find_examples(
        self,
        url: str,
        filter: Optional[str] = None,
        limit: int = 20,
    ) -> List[CodeExample]:
        """
        Find code examples in a repository.

        Lists the file tree once, keeps files under example, sample, demo
        and test directories, and fetches their contents up to ``limit``.

        Args:
            url: Repository URL
            filter: Optional case-insensitive keyword matched on path or code
            limit: Maximum number of examples

        Returns:
            List of CodeExample
        """
        owner, repo = parse_repository_url(url)
        logger.info("Finding code examples for %s/%s", owner, repo)
        if limit <= 0:
            return []

        transport = await self.select_transport()
        tree = await self._tree(transport, owner, repo, self._candidate_refs(None))
        if tree is None:
            return []

        seen = set()
        keyword = filter.lower() if filter else None
        examples: List[CodeExample] = []

        for blob in tree.blobs():
            path = blob["path"]
            if path in seen or not matches_any(path, EXAMPLE_PATTERNS):
                continue
            seen.add(path)

            code = await self._blob_content(transport, tree, blob)
            if code is None:
                continue
            if keyword and keyword not in path.lower() and keyword not in code.lower():
                continue

            is_playground = ".playground/" in path
            examples.append(CodeExample(
                package_name=repo,
                title=path.rsplit("/", 1)[-1],
                code=code,
                language=language_for_path(path),
                description="Playground page" if is_playground else None,
                source=path,
            ))
            if len(examples) >= limit:
                break

        return examples

    # Shared helpers

    async def _tree(
        self, transport: Transport, owner: str, repo: str, refs: List[str]
    ) -> Optional[RepositoryTree]:
        """Recursive tree of the first ref that exists."""
        last_error: Optional[NetworkError] = None
        for ref in refs:
            try:
                data = await self._api_get(
                    transport, f"repos/{owner}/{repo}/git/trees/{quote(ref, safe='')}?recursive=1"
                )
            except NetworkError as e:
                if e.status_code in (404, 409, 422):
                    continue
                last_error = e
                continue
            entries = data.get("tree") if isinstance(data, dict) else None
            if not isinstance(entries, list):
                raise ParseError(f"Unexpected tree response for {owner}/{repo}@{ref}")
            return RepositoryTree(owner=owner, repo=repo, ref=ref, entries=entries)

        if last_error is not None:
            raise last_error
        return None

    async def _blob_content(
        self, transport: Transport, tree: RepositoryTree, blob: Dict[str, Any]
    ) -> Optional[str]:
        sha = blob.get("sha")
        if not sha:
            return None
        try:
            data = await self._api_get(transport, f"repos/{tree.owner}/{tree.repo}/git/blobs/{sha}")
        except NetworkError as e:
            logger.debug("Could not fetch %s: %s", blob.get("path"), e)
            return None
        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            return None
        try:
            return base64.b64decode(data["content"]).decode("utf-8", errors="replace")
        except ValueError:
            return None

    async def fetch_raw(self, url: str) -> Optional[str]:
        """
        Fetch a raw file.

        Returns:
            File text, or None when the file does not exist

        Raises:
            NetworkError: Timeout, transport failure or unexpected status
        """
        response = await http_get(self.client, url, self.resource_timeout)
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise NetworkError(
                f"GET {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.text
