"""Local documentation discovery.

Looks for documentation that is already on disk before anything is fetched:
package manager checkouts of the project, its build artifacts, the clone
cache, and IDE derived data. Scanning is synchronous file-system work, so
it runs in the default executor.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Iterator, List, Optional

from bs4 import BeautifulSoup

from scully.config.settings import Settings
from scully.models import DocumentationArtifact, DocumentationType

logger = logging.getLogger(__name__)

BUILD_TRIPLES = [
    "arm64-apple-macosx",
    "x86_64-apple-macosx",
    "x86_64-unknown-linux-gnu",
    "aarch64-unknown-linux-gnu",
]
BUILD_CONFIGURATIONS = ["debug", "release"]
README_VARIANTS = ["README.md", "Readme.md", "readme.md", "README.MD"]
PREVIEW_LENGTH = 500


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
        return None


def _list_dir(path: Path) -> List[Path]:
    try:
        return sorted(path.iterdir())
    except OSError as e:
        logger.debug("Cannot list %s: %s", path, e)
        return []


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError as e:
        logger.debug("Cannot stat %s: %s", path, e)
        return False


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError as e:
        logger.debug("Cannot stat %s: %s", path, e)
        return False


def _walk_dirs(root: Path, max_depth: int) -> Iterator[Path]:
    """Yield directories below ``root`` in walk order, without following links."""
    root_depth = len(root.parts)

    def skip(error: OSError) -> None:
        logger.debug("Skipping %s: %s", error.filename, error)

    for current, dirnames, _ in os.walk(root, onerror=skip, followlinks=False):
        dirnames.sort()
        current_path = Path(current)
        if len(current_path.parts) - root_depth >= max_depth:
            dirnames[:] = []
        for dirname in dirnames:
            yield current_path / dirname


class LocalDocumentationFinder:
    """Finds documentation in local build artifacts and cached clones."""

    def __init__(self, settings: Settings):
        self.clone_cache = settings.clone_cache_path
        self.derived_data = settings.derived_data_path
        self.max_depth = settings.local.max_scan_depth

    async def find_local_documentation(
        self, package_name: str, project_path: str = "."
    ) -> Optional[DocumentationArtifact]:
        """
        Search local sources for a package's documentation.

        Order: checkouts, build artifacts, clone cache, derived data.
        The first source that yields content wins.

        Args:
            package_name: Package to look for
            project_path: Project root containing ``.build``

        Returns:
            DocumentationArtifact, or None when nothing local exists
        """
        logger.info("Searching for local documentation for %s", package_name)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._find, package_name, project_path)

    def _find(self, package_name: str, project_path: str) -> Optional[DocumentationArtifact]:
        try:
            project = Path(project_path).expanduser().resolve()
        except (OSError, RuntimeError) as e:
            logger.warning("Cannot resolve project path %s: %s", project_path, e)
            project = Path(project_path).expanduser().absolute()
        searches = [
            ("checkouts", lambda: self._search_checkouts(package_name, project)),
            ("build artifacts", lambda: self._search_build_artifacts(package_name, project)),
            ("cached clones", lambda: self._search_clone_cache(package_name)),
            ("derived data", lambda: self._search_derived_data(package_name)),
        ]
        for label, search in searches:
            try:
                doc = search()
            except OSError as e:
                logger.warning("Skipping %s for %s: %s", label, package_name, e)
                continue
            if doc is not None:
                logger.info("Found documentation for %s in %s", package_name, label)
                return doc

        logger.debug("No local documentation found for %s", package_name)
        return None

    # Sources

    def _search_checkouts(self, package_name: str, project: Path) -> Optional[DocumentationArtifact]:
        checkouts = project / ".build" / "checkouts"
        if not _is_dir(checkouts):
            logger.debug("No .build/checkouts directory in %s", project)
            return None

        wanted = package_name.lower()
        candidates = [p for p in _list_dir(checkouts) if _is_dir(p)]
        exact = [p for p in candidates if p.name.lower() == wanted]
        partial = [
            p for p in candidates
            if p not in exact and (wanted in p.name.lower() or p.name.lower() in wanted)
        ]

        for checkout in exact + partial:
            logger.debug("Found checkout: %s", checkout.name)
            doc = self._docc_catalog(checkout, package_name) or self._readme(checkout, package_name)
            if doc is not None:
                return doc
        return None

    def _search_build_artifacts(self, package_name: str, project: Path) -> Optional[DocumentationArtifact]:
        build = project / ".build"
        if not _is_dir(build):
            return None

        archive_name = f"{package_name}.doccarchive"
        locations = [
            build / triple / config / archive_name
            for triple in BUILD_TRIPLES
            for config in BUILD_CONFIGURATIONS
        ]
        locations.extend(build / config / archive_name for config in BUILD_CONFIGURATIONS)

        for archive in locations:
            doc = self._doccarchive(archive, package_name)
            if doc is not None:
                return doc
        return None

    def _search_clone_cache(self, package_name: str) -> Optional[DocumentationArtifact]:
        if not _is_dir(self.clone_cache):
            return None

        wanted = package_name.lower()
        for clone in _list_dir(self.clone_cache):
            if not _is_dir(clone) or wanted not in clone.name.lower():
                continue
            doc = self._docc_catalog(clone, package_name) or self._readme(clone, package_name)
            if doc is not None:
                return doc
        return None

    def _search_derived_data(self, package_name: str) -> Optional[DocumentationArtifact]:
        if not _is_dir(self.derived_data):
            return None

        wanted = package_name.lower()
        for project in _list_dir(self.derived_data):
            products = project / "Build" / "Products"
            if not _is_dir(products):
                continue
            for directory in _walk_dirs(products, self.max_depth):
                if directory.suffix == ".doccarchive" and wanted in directory.name.lower():
                    doc = self._doccarchive(directory, package_name)
                    if doc is not None:
                        return doc
        return None

    # Extraction

    def _docc_catalog(self, root: Path, package_name: str) -> Optional[DocumentationArtifact]:
        """First markdown article of the first ``.docc`` catalog under ``root``."""
        for directory in _walk_dirs(root, self.max_depth):
            if directory.suffix != ".docc":
                continue
            logger.debug("Found .docc directory: %s", directory)
            for article in _list_dir(directory):
                if article.suffix.lower() == ".md" and _is_file(article):
                    content = _read_text(article)
                    if content is not None:
                        return DocumentationArtifact(
                            package_name=package_name,
                            content=content,
                            doc_type=DocumentationType.DOCC,
                            url=str(directory),
                        )
        return None

    def _readme(self, root: Path, package_name: str) -> Optional[DocumentationArtifact]:
        for variant in README_VARIANTS:
            readme = root / variant
            if _is_file(readme):
                content = _read_text(readme)
                if content is not None:
                    logger.debug("Found README: %s", readme)
                    return DocumentationArtifact(
                        package_name=package_name,
                        content=content,
                        doc_type=DocumentationType.README,
                        url=str(readme),
                    )
        return None

    def _doccarchive(self, archive: Path, package_name: str) -> Optional[DocumentationArtifact]:
        if not _is_dir(archive):
            return None

        header = f"DocC Archive found at: {archive}"
        content = None

        preview = self._archive_preview(archive / "data" / "documentation")
        if preview:
            content = f"{header}\n\nDocumentation available locally.\n\n{preview}"
        else:
            index = archive / "index.html"
            if _is_file(index):
                title = self._html_title(index)
                lines = [header, ""]
                if title:
                    lines.append(f"Title: {title}")
                lines.append(f"Open in browser: file://{index}")
                content = "\n".join(lines)

        if content is None:
            return None
        return DocumentationArtifact(
            package_name=package_name,
            content=content,
            doc_type=DocumentationType.DOCC,
            url=str(archive),
        )

    @staticmethod
    def _archive_preview(data_dir: Path) -> Optional[str]:
        """Title and abstract of the first documentation JSON file."""
        if not _is_dir(data_dir):
            return None
        for path in _list_dir(data_dir):
            if path.suffix != ".json" or not _is_file(path):
                continue
            raw = _read_text(path)
            if raw is None:
                continue
            try:
                data = json.loads(raw)
            except ValueError:
                return f"Preview: {raw[:PREVIEW_LENGTH]}"

            title = None
            abstract = ""
            if isinstance(data, dict):
                metadata = data.get("metadata") or {}
                if isinstance(metadata, dict):
                    title = metadata.get("title")
                parts = data.get("abstract") or []
                if isinstance(parts, list):
                    abstract = "".join(
                        p.get("text", "") for p in parts if isinstance(p, dict)
                    ).strip()

            if not title and not abstract:
                return f"Preview: {raw[:PREVIEW_LENGTH]}"
            lines = []
            if title:
                lines.append(f"# {title}")
            if abstract:
                lines.append(abstract)
            return "\n\n".join(lines)
        return None

    @staticmethod
    def _html_title(index: Path) -> Optional[str]:
        html = _read_text(index)
        if not html:
            return None
        soup = BeautifulSoup(html, "html.parser")
        if soup.title and soup.title.string:
            return soup.title.string.strip()
        return None
