"""Tests for scully.fetch.package_list."""

import asyncio

import httpx
import pytest

from scully.cache.manager import TimeBoundedCache
from scully.errors import NetworkError, ParseError
from scully.fetch.package_list import (
    PackageListFetcher,
    extract_package_name,
    fuzzy_score,
    relevance_score,
)

PACKAGES = [
    "https://github.com/example/MetaAlamoStuff.git",
    "https://github.com/Alamofire/Alamofire.git",
    "https://github.com/apple/swift-nio.git",
    "https://github.com/onevcat/Kingfisher.git",
    "https://gitlab.com/group/alamo-tools",
]


class TestScoring:
    """Tests for relevance scoring."""

    def test_exact_match(self):
        assert relevance_score("Alamofire", "alamofire") == 1.0

    def test_prefix_beats_substring(self):
        prefix = relevance_score("Alamofire", "Alamo")
        substring = relevance_score("MetaAlamoStuff", "Alamo")
        assert prefix == 0.9
        assert prefix > substring

    def test_substring_formula(self):
        assert relevance_score("MetaAlamoStuff", "Alamo") == pytest.approx(0.5 + (5 / 14) * 0.3)

    def test_fuzzy_subsequence(self):
        assert fuzzy_score("Kingfisher", "kfr") == pytest.approx(0.4)
        assert fuzzy_score("Kingfisher", "kzz") == pytest.approx(1 / 3 * 0.4)

    def test_scoring_is_deterministic(self):
        assert relevance_score("swift-nio", "nio") == relevance_score("swift-nio", "nio")


class TestExtractPackageName:
    """Tests for extract_package_name()."""

    def test_github_url(self):
        assert extract_package_name("https://github.com/Alamofire/Alamofire.git") == "Alamofire"

    def test_other_host_uses_last_segment(self):
        assert extract_package_name("https://gitlab.com/group/alamo-tools") == "alamo-tools"

    def test_empty_path(self):
        assert extract_package_name("https://example.com") == "Unknown"


@pytest.fixture
def index_client(settings, make_client):
    def handler(request):
        return httpx.Response(200, json=PACKAGES)

    return make_client(handler)


class TestPackageListFetcher:
    """Tests for PackageListFetcher."""

    @pytest.mark.asyncio
    async def test_fetch_caches_list(self, settings, make_client):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(200, json=PACKAGES)

        async with make_client(handler) as client:
            fetcher = PackageListFetcher(settings, client)
            assert await fetcher.fetch_package_list() == PACKAGES
            assert await fetcher.fetch_package_list() == PACKAGES

            # A new fetcher reads the disk tier
            other = PackageListFetcher(settings, client)
            assert await other.fetch_package_list() == PACKAGES

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_download(self, settings, make_client):
        calls = []

        async def handler(request):
            calls.append(request.url)
            await asyncio.sleep(0.01)
            return httpx.Response(200, json=PACKAGES)

        async with make_client(handler) as client:
            fetcher = PackageListFetcher(settings, client)
            results = await asyncio.gather(*(fetcher.fetch_package_list() for _ in range(5)))

        assert all(r == PACKAGES for r in results)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_failed_download_is_retried_by_next_caller(self, settings, make_client):
        responses = [httpx.Response(503), httpx.Response(200, json=PACKAGES)]

        async with make_client(lambda request: responses.pop(0)) as client:
            fetcher = PackageListFetcher(settings, client)
            with pytest.raises(NetworkError):
                await fetcher.fetch_package_list()
            assert await fetcher.fetch_package_list() == PACKAGES

    @pytest.mark.asyncio
    async def test_network_failure_without_cache_propagates(self, settings, make_client):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            fetcher = PackageListFetcher(settings, client)
            with pytest.raises(NetworkError):
                await fetcher.fetch_package_list()

    @pytest.mark.asyncio
    async def test_http_error_status_is_network_error(self, settings, make_client):
        async with make_client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(NetworkError) as exc_info:
                await PackageListFetcher(settings, client).fetch_package_list()
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_malformed_list_is_parse_error(self, settings, make_client):
        async with make_client(lambda request: httpx.Response(200, json={"not": "a list"})) as client:
            with pytest.raises(ParseError):
                await PackageListFetcher(settings, client).fetch_package_list()

    @pytest.mark.asyncio
    async def test_slow_index_times_out(self, settings, make_client):
        settings.network.resource_timeout = 0.2

        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json=PACKAGES)

        async with make_client(handler) as client:
            fetcher = PackageListFetcher(settings, client)
            with pytest.raises(NetworkError, match="timed out"):
                await asyncio.wait_for(fetcher.fetch_package_list(), timeout=2)

    @pytest.mark.asyncio
    async def test_get_package_info_prefers_exact_match(self, settings, index_client):
        async with index_client as client:
            fetcher = PackageListFetcher(settings, client)
            info = await fetcher.get_package_info("alamofire")

        assert info.name == "Alamofire"
        assert info.url == "https://github.com/Alamofire/Alamofire.git"

    @pytest.mark.asyncio
    async def test_get_package_info_falls_back_to_first_substring(self, settings, index_client):
        async with index_client as client:
            info = await PackageListFetcher(settings, client).get_package_info("alamo")

        assert info.name == "MetaAlamoStuff"

    @pytest.mark.asyncio
    async def test_get_package_info_miss(self, settings, index_client):
        async with index_client as client:
            assert await PackageListFetcher(settings, client).get_package_info("Nothing") is None

    @pytest.mark.asyncio
    async def test_search_ranks_prefix_first(self, settings, index_client):
        async with index_client as client:
            results = await PackageListFetcher(settings, client).search_packages("Alamo")

        names = [r.package.name for r in results]
        assert names[0] == "Alamofire"
        assert "MetaAlamoStuff" in names
        assert "swift-nio" not in names
        scores = [r.relevance_score for r in results]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_search_ties_keep_list_order(self, settings, index_client):
        async with index_client as client:
            results = await PackageListFetcher(settings, client).search_packages("a", limit=10)

        tied = [r.package.name for r in results if r.relevance_score == 0.9]
        assert tied == ["Alamofire", "alamo-tools"]

    @pytest.mark.asyncio
    async def test_search_limit_applies_after_sorting(self, settings, index_client):
        async with index_client as client:
            results = await PackageListFetcher(settings, client).search_packages("Alamo", limit=1)

        assert [r.package.name for r in results] == ["Alamofire"]

    @pytest.mark.asyncio
    async def test_injected_cache_is_used(self, settings, make_client):
        cache = TimeBoundedCache("packagelist", ttl=60)
        await cache.put("package_list", ["https://github.com/a/Cached"])

        async with make_client(lambda request: httpx.Response(500)) as client:
            fetcher = PackageListFetcher(settings, client, cache=cache)
            assert await fetcher.fetch_package_list() == ["https://github.com/a/Cached"]
