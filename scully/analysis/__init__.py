"""Project manifest analysis."""

from .manifest import ManifestAnalyzer, name_from_url, parse_resolved, read_resolved_packages

__all__ = [
    "ManifestAnalyzer",
    "name_from_url",
    "parse_resolved",
    "read_resolved_packages",
]
