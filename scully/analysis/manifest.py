"""Package manifest and lockfile parsing.

``Package.swift`` is Swift source, not data, so only the common
declaration shapes are recognised: the package name, ``.package(...)``
dependency calls, the platforms list and product declarations.
"""

import json
import logging
import re
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

from scully.errors import InvalidManifestError, ParseError
from scully.models import PackageManifest, PackageReference, Product, SourceKind

logger = logging.getLogger(__name__)

MANIFEST_FILE = "Package.swift"
LOCKFILE = "Package.resolved"

_PACKAGE_NAME = re.compile(r'Package\s*\(\s*name:\s*"([^"]+)"')
_ANY_NAME = re.compile(r'name:\s*"([^"]+)"')
_PLATFORMS = re.compile(r"platforms:\s*\[([^\]]+)\]")
_PRODUCT = re.compile(r'\.(executable|library|plugin)\s*\(\s*name:\s*"([^"]+)"')
_STRING_ARG = r'{label}:\s*"([^"]+)"'


def _argument(call: str, label: str) -> Optional[str]:
    match = re.search(_STRING_ARG.format(label=label), call)
    return match.group(1) if match else None


def _package_calls(content: str) -> List[str]:
    """Argument text of every ``.package(...)`` call, nesting respected."""
    calls: List[str] = []
    start = content.find(".package(")
    while start != -1:
        i = start + len(".package(")
        depth = 1
        in_string = False
        while i < len(content) and depth:
            char = content[i]
            if char == '"' and content[i - 1] != "\\":
                in_string = not in_string
            elif not in_string:
                if char == "(":
                    depth += 1
                elif char == ")":
                    depth -= 1
            i += 1
        calls.append(content[start + len(".package("):i - 1])
        start = content.find(".package(", i)
    return calls


def name_from_url(url: str) -> str:
    """Repository name from a source URL or local path."""
    path = urlparse(url).path if "://" in url else url.split(":", 1)[-1]
    segments = [s for s in path.split("/") if s]
    if not segments:
        return "Unknown"
    name = segments[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name or "Unknown"


def _strip_comments(content: str) -> str:
    content = re.sub(r"/\*.*?\*/", "", content, flags=re.DOTALL)
    return re.sub(r"(?m)^\s*//.*$", "", content)


class ManifestAnalyzer:
    """Analyzes Package.swift manifests."""

    def analyze(self, path: str) -> PackageManifest:
        """
        Parse the manifest of the project at ``path``.

        Args:
            path: Project directory (or the manifest file itself)

        Returns:
            PackageManifest

        Raises:
            InvalidManifestError: The manifest is missing or unreadable
        """
        manifest_path = Path(path)
        if manifest_path.is_dir():
            manifest_path = manifest_path / MANIFEST_FILE

        logger.info("Analyzing %s", manifest_path)
        if not manifest_path.is_file():
            raise InvalidManifestError(f"{path}: {MANIFEST_FILE} not found")

        try:
            content = manifest_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise InvalidManifestError(f"{manifest_path}: {e}") from e

        return self.parse(content)

    def parse(self, content: str) -> PackageManifest:
        """Parse manifest source text."""
        content = _strip_comments(content)

        name_match = _PACKAGE_NAME.search(content) or _ANY_NAME.search(content)
        name = name_match.group(1) if name_match else "Unknown"

        dependencies = [
            dep for dep in (self._parse_dependency(call) for call in _package_calls(content))
            if dep is not None
        ]

        platforms = None
        platforms_match = _PLATFORMS.search(content)
        if platforms_match:
            platforms = [
                p.strip() for p in platforms_match.group(1).split(",") if p.strip()
            ]

        products = [Product(name=m.group(2), type=m.group(1)) for m in _PRODUCT.finditer(content)]

        logger.debug("Parsed manifest %s with %d dependencies", name, len(dependencies))
        return PackageManifest(
            name=name,
            dependencies=dependencies,
            platforms=platforms,
            products=products or None,
        )

    @staticmethod
    def _parse_dependency(call: str) -> Optional[PackageReference]:
        url = _argument(call, "url")
        if url:
            return PackageReference(
                name=_argument(call, "name") or name_from_url(url),
                url=url,
                version=_argument(call, "from") or _argument(call, "exact"),
                branch=_argument(call, "branch"),
                revision=_argument(call, "revision"),
                kind=SourceKind.SOURCE_CONTROL,
            )

        local_path = _argument(call, "path")
        if local_path:
            return PackageReference(
                name=_argument(call, "name") or name_from_url(local_path),
                url=local_path,
                kind=SourceKind.LOCAL,
            )

        registry_id = _argument(call, "id")
        if registry_id:
            return PackageReference(
                name=registry_id.rsplit(".", 1)[-1],
                version=_argument(call, "from") or _argument(call, "exact"),
                kind=SourceKind.REGISTRY,
            )

        logger.debug("Skipping unrecognised dependency declaration: %s", call.strip())
        return None


def read_resolved_packages(path: str) -> List[PackageReference]:
    """
    Read the pinned packages of a ``Package.resolved`` lockfile.

    Handles format version 1 (``object.pins`` with ``package`` and
    ``repositoryURL``) and versions 2 and 3 (root ``pins`` with
    ``identity`` and ``location``).

    Args:
        path: Project directory or the lockfile itself

    Returns:
        Pinned packages in file order

    Raises:
        ParseError: The file is not a valid lockfile
        FileNotFoundError: No lockfile at ``path``
    """
    lockfile = Path(path)
    if lockfile.is_dir():
        lockfile = lockfile / LOCKFILE

    try:
        data = json.loads(lockfile.read_text(encoding="utf-8"))
    except ValueError as e:
        raise ParseError(f"Failed to parse {lockfile}: {e}") from e
    return parse_resolved(data)


def parse_resolved(data) -> List[PackageReference]:
    """Pinned packages from decoded lockfile JSON."""
    if not isinstance(data, dict):
        raise ParseError("Package.resolved must be a JSON object")

    if isinstance(data.get("pins"), list):
        pins, name_key, url_key = data["pins"], "identity", "location"
    elif isinstance(data.get("object"), dict) and isinstance(data["object"].get("pins"), list):
        pins, name_key, url_key = data["object"]["pins"], "package", "repositoryURL"
    else:
        raise ParseError("Package.resolved has no pins")

    references: List[PackageReference] = []
    for pin in pins:
        if not isinstance(pin, dict) or not isinstance(pin.get(name_key), str):
            continue
        state = pin.get("state") if isinstance(pin.get("state"), dict) else {}
        references.append(PackageReference(
            name=pin[name_key],
            url=pin.get(url_key),
            version=state.get("version"),
            branch=state.get("branch"),
            revision=state.get("revision"),
        ))
    return references
