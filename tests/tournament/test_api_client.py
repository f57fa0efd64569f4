"""Tests for the tournament HTTP client."""

import httpx
import pytest

from bracket_live.tournament.api_client import TournamentApiClient
from bracket_live.utils.errors import ErrorCode, PersistenceError
from bracket_live.utils.json_utils import json_dumps_bytes, json_loads
from tests.conftest import make_snapshot


def make_client(handler) -> TournamentApiClient:
    return TournamentApiClient("http://testserver/api", transport=httpx.MockTransport(handler))


class TestTournamentApiClient:
    @pytest.mark.asyncio
    async def test_fetch_snapshot(self):
        snapshot = make_snapshot(8)
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=json_dumps_bytes(snapshot.to_dict()))

        async with make_client(handler) as client:
            fetched = await client.fetch_snapshot()

        assert fetched == snapshot
        assert requests[0].method == "GET"
        assert requests[0].url.path == "/api/tournament"

    @pytest.mark.asyncio
    async def test_fetch_null_is_none(self):
        async with make_client(lambda request: httpx.Response(200, content=b"null")) as client:
            assert await client.fetch_snapshot() is None

    @pytest.mark.asyncio
    async def test_fetch_server_error(self):
        def handler(request):
            return httpx.Response(500, json={"error": "Failed to fetch tournament data"})

        async with make_client(handler) as client:
            with pytest.raises(PersistenceError) as exc_info:
                await client.fetch_snapshot()

        assert exc_info.value.code == ErrorCode.SNAPSHOT_READ_FAILED

    @pytest.mark.asyncio
    async def test_fetch_malformed_snapshot(self):
        def handler(request):
            return httpx.Response(200, json={"size": 5, "bracket": {}})

        async with make_client(handler) as client:
            with pytest.raises(PersistenceError):
                await client.fetch_snapshot()

    @pytest.mark.asyncio
    async def test_fetch_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(PersistenceError):
                await client.fetch_snapshot()

    @pytest.mark.asyncio
    async def test_save_posts_whole_snapshot(self):
        snapshot = make_snapshot(4)
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append((request.method, request.url.path, json_loads(request.content)))
            return httpx.Response(200, json={"success": True})

        async with make_client(handler) as client:
            await client.save_snapshot(snapshot)

        assert bodies == [("POST", "/api/tournament", snapshot.to_dict())]

    @pytest.mark.asyncio
    async def test_save_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={"error": "Failed to save tournament data"})

        async with make_client(handler) as client:
            with pytest.raises(PersistenceError) as exc_info:
                await client.save_snapshot(make_snapshot(4))

        assert len(calls) == 1
        assert exc_info.value.code == ErrorCode.SNAPSHOT_WRITE_FAILED

    @pytest.mark.asyncio
    async def test_reset(self):
        paths = []

        def handler(request):
            paths.append((request.method, request.url.path))
            return httpx.Response(200, json={"success": True})

        async with make_client(handler) as client:
            await client.reset()

        assert paths == [("POST", "/api/tournament/reset")]
