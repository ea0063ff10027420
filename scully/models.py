"""Data models for package resolution, documentation and examples."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class SourceKind(Enum):
    """Where a declared dependency comes from."""

    SOURCE_CONTROL = "sourceControl"
    LOCAL = "local"
    REGISTRY = "registry"


class RepositoryType(Enum):
    """Hosting service of a package repository."""

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    OTHER = "other"

    @classmethod
    def from_url(cls, url: str) -> "RepositoryType":
        """Guess the hosting service from a repository URL."""
        lowered = url.lower()
        if "github.com" in lowered:
            return cls.GITHUB
        if "gitlab" in lowered:
            return cls.GITLAB
        if "bitbucket" in lowered:
            return cls.BITBUCKET
        return cls.OTHER


class DocumentationType(Enum):
    """Kind of documentation content."""

    README = "readme"
    DOCC = "docc"
    GUIDE = "guide"


class DocumentationSource(Enum):
    """Configurable documentation sources, in preference order."""

    README = "readme"
    DOCC = "docc"
    GUIDES = "guides"


class Severity(Enum):
    """Severity of an analysis issue."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LearningCurve(Enum):
    """Rough estimate of how hard a package is to pick up."""

    EASY = "easy"
    MODERATE = "moderate"
    STEEP = "steep"


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class PackageReference:
    """A dependency declaration with an optional source location and pin."""

    name: str
    url: Optional[str] = None
    version: Optional[str] = None
    branch: Optional[str] = None
    revision: Optional[str] = None
    kind: SourceKind = SourceKind.SOURCE_CONTROL

    @property
    def pin(self) -> Optional[str]:
        """Human readable pin (version, branch or short revision)."""
        if self.version:
            return self.version
        if self.branch:
            return f"branch: {self.branch}"
        if self.revision:
            return self.revision[:8]
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "version": self.version,
            "branch": self.branch,
            "revision": self.revision,
            "type": self.kind.value,
        }


@dataclass(frozen=True)
class Product:
    """A product declared by a manifest."""

    name: str
    type: str  # executable | library | plugin


@dataclass
class PackageManifest:
    """Parsed project manifest."""

    name: str
    version: Optional[str] = None
    dependencies: List[PackageReference] = field(default_factory=list)
    platforms: Optional[List[str]] = None
    products: Optional[List[Product]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "dependencies": [dep.to_dict() for dep in self.dependencies],
            "platforms": self.platforms,
            "products": (
                [{"name": p.name, "type": p.type} for p in self.products]
                if self.products
                else None
            ),
        }


@dataclass(frozen=True)
class PackageMetadata:
    """Resolved information about a package repository."""

    name: str
    url: str
    description: Optional[str] = None
    version: Optional[str] = None
    license: Optional[str] = None
    author: Optional[str] = None
    tags: Optional[List[str]] = None
    stars: Optional[int] = None
    forks: Optional[int] = None
    last_updated: Optional[datetime] = None
    readme_url: Optional[str] = None
    documentation_url: Optional[str] = None
    repository_type: RepositoryType = RepositoryType.GITHUB

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "version": self.version,
            "license": self.license,
            "author": self.author,
            "tags": list(self.tags) if self.tags is not None else None,
            "stars": self.stars,
            "forks": self.forks,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "readme_url": self.readme_url,
            "documentation_url": self.documentation_url,
            "repository_type": self.repository_type.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageMetadata":
        """Create metadata from a dictionary produced by ``to_dict``."""
        return cls(
            name=data["name"],
            url=data["url"],
            description=data.get("description"),
            version=data.get("version"),
            license=data.get("license"),
            author=data.get("author"),
            tags=data.get("tags"),
            stars=data.get("stars"),
            forks=data.get("forks"),
            last_updated=_parse_datetime(data.get("last_updated")),
            readme_url=data.get("readme_url"),
            documentation_url=data.get("documentation_url"),
            repository_type=RepositoryType(data.get("repository_type", "github")),
        )


@dataclass(frozen=True)
class DocumentationArtifact:
    """Documentation text plus where it came from."""

    package_name: str
    content: str
    doc_type: DocumentationType = DocumentationType.README
    version: Optional[str] = None
    url: Optional[str] = None  # origin URL or local path

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package_name": self.package_name,
            "content": self.content,
            "type": self.doc_type.value,
            "version": self.version,
            "url": self.url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentationArtifact":
        return cls(
            package_name=data["package_name"],
            content=data["content"],
            doc_type=DocumentationType(data.get("type", "readme")),
            version=data.get("version"),
            url=data.get("url"),
        )


@dataclass(frozen=True)
class CodeExample:
    """A code example found in a package repository."""

    package_name: str
    title: str
    code: str
    source: str
    language: str = "swift"
    description: Optional[str] = None
    extracted_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package_name": self.package_name,
            "title": self.title,
            "code": self.code,
            "language": self.language,
            "description": self.description,
            "source": self.source,
            "extracted_at": self.extracted_at,
        }


@dataclass
class PackageSearchResult:
    """A ranked package index match."""

    package: PackageMetadata
    relevance_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package": self.package.to_dict(),
            "relevance_score": round(self.relevance_score, 4),
        }


@dataclass
class AnalysisIssue:
    """A non-fatal problem recorded during a batch operation."""

    severity: Severity
    message: str
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "message": self.message,
            "suggestion": self.suggestion,
        }


@dataclass
class ProjectAnalysisResult:
    """Result of listing the dependencies of a project."""

    project_path: str
    manifest: PackageManifest
    dependencies: List[PackageMetadata] = field(default_factory=list)
    issues: List[AnalysisIssue] = field(default_factory=list)
    analyzed_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def warnings(self) -> List[AnalysisIssue]:
        """Issues with warning severity."""
        return [issue for issue in self.issues if issue.severity == Severity.WARNING]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_path": self.project_path,
            "manifest": self.manifest.to_dict(),
            "dependencies": [dep.to_dict() for dep in self.dependencies],
            "issues": [issue.to_dict() for issue in self.issues],
            "analyzed_at": self.analyzed_at,
        }


@dataclass
class ProjectDocumentationResult:
    """Documentation fetched for every dependency of a project."""

    project_path: str
    documents: List[DocumentationArtifact] = field(default_factory=list)
    issues: List[AnalysisIssue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_path": self.project_path,
            "documents": [doc.to_dict() for doc in self.documents],
            "issues": [issue.to_dict() for issue in self.issues],
        }


@dataclass
class ResolutionRequest:
    """A single documentation lookup; built per call and never persisted."""

    package_name: str
    url: Optional[str] = None
    version: Optional[str] = None
    project_path: Optional[str] = None

    @property
    def cache_key(self) -> str:
        return f"docs_{self.package_name}_{self.version or 'latest'}"


@dataclass
class UsagePattern:
    """A usage pattern seen repeatedly in documentation and examples."""

    package_name: str
    pattern: str
    frequency: int
    examples: List[str] = field(default_factory=list)
    description: Optional[str] = None


@dataclass
class DocumentationSummary:
    """Heuristic summary of a package's documentation."""

    package_name: str
    summary: str
    key_features: List[str]
    common_use_cases: List[str]
    learning_curve: LearningCurve
    generated_at: str = field(default_factory=lambda: datetime.now().isoformat())
