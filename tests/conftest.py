"""Shared fixtures for scully tests."""

import base64
import json
import time
from typing import Any, Callable, Dict, Optional

import httpx
import pytest

from scully.config.settings import Settings

PACKAGE_LIST_URL = "https://swiftpackageindex.com/api/packages.json"


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: Optional[float] = None):
        self.now = time.time() if start is None else start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the user's machine."""
    settings = Settings()
    settings.cache.directory = str(tmp_path / "cache")
    settings.github.use_gh_cli = False
    settings.package_index.url = PACKAGE_LIST_URL
    settings.local.derived_data_dir = str(tmp_path / "DerivedData")
    return settings


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, text=json.dumps(data))


def blob(content: str) -> Dict[str, Any]:
    return {"content": base64.b64encode(content.encode()).decode(), "encoding": "base64"}


class FakeGitHub:
    """Routes httpx requests to canned API, raw file and package list responses."""

    def __init__(self, packages=None):
        self.packages = packages if packages is not None else []
        self.repos: Dict[str, Dict[str, Any]] = {}
        self.releases: Dict[str, str] = {}
        self.raw_files: Dict[str, str] = {}
        self.trees: Dict[str, list] = {}
        self.blobs: Dict[str, str] = {}
        self.requests: list = []

    def add_repo(self, owner: str, repo: str, **fields) -> None:
        data = {
            "name": repo,
            "owner": {"login": owner},
            "description": f"{repo} description",
            "default_branch": "main",
            "stargazers_count": 10,
            "forks_count": 2,
            "pushed_at": "2024-01-02T03:04:05Z",
        }
        data.update(fields)
        self.repos[f"{owner}/{repo}"] = data

    def add_tree(self, owner: str, repo: str, ref: str, files: Dict[str, str], dirs=()) -> None:
        entries = [{"path": d, "type": "tree", "sha": f"tree-{d}"} for d in dirs]
        for path, content in files.items():
            sha = f"sha-{owner}-{repo}-{path}"
            self.blobs[sha] = content
            entries.append({"path": path, "type": "blob", "sha": sha})
        self.trees[f"{owner}/{repo}@{ref}"] = entries

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        url = request.url

        if str(url) == PACKAGE_LIST_URL:
            return json_response(self.packages)

        if url.host == "raw.githubusercontent.com":
            content = self.raw_files.get(url.path.lstrip("/"))
            if content is None:
                return httpx.Response(404, text="404: Not Found")
            return httpx.Response(200, text=content)

        if url.host == "api.github.com":
            return self._api(url)

        return httpx.Response(404)

    def _api(self, url: httpx.URL) -> httpx.Response:
        parts = url.path.strip("/").split("/")
        if parts[0] != "repos" or len(parts) < 3:
            return json_response({"message": "Not Found"}, 404)
        key = f"{parts[1]}/{parts[2]}"
        rest = parts[3:]

        if not rest:
            if key in self.repos:
                return json_response(self.repos[key])
            return json_response({"message": "Not Found"}, 404)
        if rest == ["releases", "latest"]:
            if key in self.releases:
                return json_response({"tag_name": self.releases[key]})
            return json_response({"message": "Not Found"}, 404)
        if rest[:2] == ["git", "trees"]:
            tree = self.trees.get(f"{key}@{rest[2]}")
            if tree is None:
                return json_response({"message": "Not Found"}, 404)
            return json_response({"tree": tree, "truncated": False})
        if rest[:2] == ["git", "blobs"]:
            content = self.blobs.get("/".join(rest[2:]))
            if content is None:
                return json_response({"message": "Not Found"}, 404)
            return json_response(blob(content))
        return json_response({"message": "Not Found"}, 404)


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def make_client() -> Callable[[Callable], httpx.AsyncClient]:
    def factory(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
