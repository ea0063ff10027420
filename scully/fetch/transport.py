"""Transports for the hosted repository API.

Two variants talk to the same REST paths (``repos/{owner}/{repo}`` and so
on): the ``gh`` CLI, which carries the user's authentication and better
rate limits, and plain HTTPS through httpx. The gh variant is used only
when a short probe says it is installed and logged in.
"""

import asyncio
import json
import logging
import shutil
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from scully.errors import NetworkError, ParseError, ToolUnavailableError

logger = logging.getLogger(__name__)

GH_EXECUTABLE = "gh"


class Transport(ABC):
    """Abstract base class for repository API transports."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def get_json(self, path: str) -> Any:
        """
        GET an API path and decode the JSON body.

        Args:
            path: API path relative to the API root, query string included

        Returns:
            Decoded JSON

        Raises:
            NetworkError: Transport failure, timeout or non-success status
            ParseError: Body is not valid JSON
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


def build_timeout(request_timeout: float) -> httpx.Timeout:
    """Per-phase timeout used by every HTTP client."""
    return httpx.Timeout(request_timeout, connect=request_timeout)


def create_http_client(
    request_timeout: float = 30.0,
    headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the shared async HTTP client."""
    return httpx.AsyncClient(
        timeout=build_timeout(request_timeout),
        follow_redirects=True,
        headers={"User-Agent": "scully", **(headers or {})},
        transport=transport,
    )


async def http_get(
    client: httpx.AsyncClient,
    url: str,
    resource_timeout: float,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.Response:
    """GET a URL under an overall deadline.

    The client's own timeout bounds each phase of the request;
    ``resource_timeout`` bounds the whole transfer.

    Raises:
        NetworkError: On timeout or transport failure
    """
    try:
        return await asyncio.wait_for(client.get(url, headers=headers), timeout=resource_timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        raise NetworkError(f"Request to {url} timed out") from e
    except httpx.HTTPError as e:
        raise NetworkError(f"Request to {url} failed: {e}") from e


def decode_json(text: str, source: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as e:
        raise ParseError(f"Invalid JSON from {source}: {e}") from e


class DirectAPITransport(Transport):
    """REST calls straight to the API over httpx."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str = "https://api.github.com",
        token: str = "",
        resource_timeout: float = 60.0,
    ):
        """
        Initialize the transport.

        Args:
            client: Shared HTTP client (owned by the caller)
            api_url: API root URL
            token: Optional access token
            resource_timeout: Overall deadline per call in seconds
        """
        super().__init__("api")
        self.client = client
        self.api_url = api_url.rstrip("/")
        self.resource_timeout = resource_timeout
        self.headers = {"Accept": "application/vnd.github+json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    async def get_json(self, path: str) -> Any:
        url = f"{self.api_url}/{path.lstrip('/')}"
        response = await http_get(self.client, url, self.resource_timeout, headers=self.headers)
        if response.status_code != 200:
            raise NetworkError(
                f"GET {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return decode_json(response.text, path)


class GhCliTransport(Transport):
    """REST calls through ``gh api``."""

    def __init__(self, timeout: float = 60.0, executable: str = GH_EXECUTABLE):
        super().__init__("gh")
        self.timeout = timeout
        self.executable = executable

    async def run(self, *args: str) -> str:
        """
        Run a gh command and return its stdout.

        Raises:
            ToolUnavailableError: gh is not installed
            NetworkError: Non-zero exit status or timeout, stderr preserved
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ToolUnavailableError("gh command not found") from e
        except OSError as e:
            raise NetworkError(f"Failed to run gh command: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise NetworkError(f"gh {' '.join(args)} timed out after {self.timeout} seconds") from e

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip() or "Unknown error"
            raise NetworkError(f"gh command failed: {message}")

        return stdout.decode("utf-8", errors="replace")

    async def get_json(self, path: str) -> Any:
        output = await self.run("api", path.lstrip("/"))
        return decode_json(output, f"gh api {path}")


async def probe_gh_cli(timeout: float = 5.0, executable: str = GH_EXECUTABLE) -> bool:
    """Check whether gh is installed and authenticated.

    Any failure, including a probe timeout, means "not available".
    """
    if shutil.which(executable) is None:
        return False

    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            "auth",
            "status",
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError:
        return False

    try:
        await asyncio.wait_for(process.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.debug("gh availability probe timed out")
        return False

    return process.returncode == 0
