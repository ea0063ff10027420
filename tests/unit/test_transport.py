"""Tests for scully.fetch.transport."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from scully.errors import NetworkError, ParseError, ToolUnavailableError
from scully.fetch.transport import DirectAPITransport, GhCliTransport, http_get, probe_gh_cli


def fake_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.wait = AsyncMock(return_value=returncode)
    process.returncode = returncode
    return process


class TestGhCliTransport:
    """Tests for GhCliTransport."""

    @pytest.mark.asyncio
    async def test_get_json_decodes_stdout(self):
        process = fake_process(stdout=b'{"name": "Alamofire"}')
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as spawn:
            data = await GhCliTransport().get_json("/repos/Alamofire/Alamofire")

        assert data == {"name": "Alamofire"}
        assert spawn.call_args.args[:3] == ("gh", "api", "repos/Alamofire/Alamofire")

    @pytest.mark.asyncio
    async def test_missing_executable_is_tool_unavailable(self):
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError())):
            with pytest.raises(ToolUnavailableError):
                await GhCliTransport().get_json("repos/a/b")

    @pytest.mark.asyncio
    async def test_nonzero_exit_keeps_stderr(self):
        process = fake_process(stderr=b"HTTP 404: Not Found", returncode=1)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(NetworkError, match="HTTP 404: Not Found"):
                await GhCliTransport().get_json("repos/a/b")

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        async def hang():
            await asyncio.sleep(10)

        process = fake_process()
        process.communicate = AsyncMock(side_effect=hang)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(NetworkError, match="timed out"):
                await GhCliTransport(timeout=0.05).get_json("repos/a/b")

        process.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_invalid_json_is_parse_error(self):
        process = fake_process(stdout=b"not json")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(ParseError):
                await GhCliTransport().get_json("repos/a/b")


class TestProbe:
    """Tests for probe_gh_cli()."""

    @pytest.mark.asyncio
    async def test_not_installed(self):
        with patch("shutil.which", return_value=None), \
                patch("asyncio.create_subprocess_exec", AsyncMock()) as spawn:
            assert await probe_gh_cli() is False
        spawn.assert_not_called()

    @pytest.mark.asyncio
    async def test_authenticated(self):
        with patch("shutil.which", return_value="/usr/bin/gh"), \
                patch("asyncio.create_subprocess_exec", AsyncMock(return_value=fake_process())):
            assert await probe_gh_cli() is True

    @pytest.mark.asyncio
    async def test_not_authenticated(self):
        with patch("shutil.which", return_value="/usr/bin/gh"), \
                patch("asyncio.create_subprocess_exec", AsyncMock(return_value=fake_process(returncode=1))):
            assert await probe_gh_cli() is False

    @pytest.mark.asyncio
    async def test_probe_timeout_means_unavailable(self):
        process = fake_process()
        process.killed = False
        process.kill.side_effect = lambda: setattr(process, "killed", True)

        async def wait():
            if not process.killed:
                await asyncio.sleep(10)
            return -9

        process.wait = AsyncMock(side_effect=wait)
        with patch("shutil.which", return_value="/usr/bin/gh"), \
                patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            assert await probe_gh_cli(timeout=0.05) is False
        process.kill.assert_called_once()


class TestDirectAPITransport:
    """Tests for DirectAPITransport."""

    @pytest.mark.asyncio
    async def test_sends_token_and_decodes(self, make_client):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"ok": True})

        async with make_client(handler) as client:
            transport = DirectAPITransport(client, token="secret")
            assert await transport.get_json("repos/a/b") == {"ok": True}

        assert seen["url"] == "https://api.github.com/repos/a/b"
        assert seen["auth"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_no_token_no_header(self, make_client):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={})

        async with make_client(handler) as client:
            await DirectAPITransport(client).get_json("repos/a/b")

        assert seen["auth"] is None

    @pytest.mark.asyncio
    async def test_status_code_is_kept(self, make_client):
        async with make_client(lambda request: httpx.Response(403)) as client:
            with pytest.raises(NetworkError) as exc_info:
                await DirectAPITransport(client).get_json("repos/a/b")
        assert exc_info.value.status_code == 403


class TestHttpGet:
    """Tests for http_get()."""

    @pytest.mark.asyncio
    async def test_transport_failure_is_network_error(self, make_client):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(NetworkError, match="failed"):
                await http_get(client, "https://example.com/", resource_timeout=1)
