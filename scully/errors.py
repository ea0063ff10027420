"""Exception types raised by the scully library."""

from typing import Optional


class ScullyError(Exception):
    """Base exception for all scully errors."""

    pass


class PackageNotFoundError(ScullyError):
    """A package name could not be resolved to a source location."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Package '{name}' not found")


class InvalidManifestError(ScullyError):
    """The project manifest is missing or cannot be read."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid Package.swift at {reason}")


class NetworkError(ScullyError):
    """Transport failure, timeout, or non-success response."""

    def __init__(self, detail: str, status_code: Optional[int] = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"Network error: {detail}")


class NoDocumentationFoundError(NetworkError):
    """None of the documentation sources of a repository produced content."""

    pass


class ToolUnavailableError(NetworkError):
    """The gh CLI vanished between the availability probe and its use."""

    pass


class ParseError(ScullyError):
    """Malformed upstream data or an unparseable identifier."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Parse error: {detail}")
