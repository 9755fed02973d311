"""Tests for SessionRegistry and the HTTP proxy app.

Covers:
- initialize without a session id creates a session with a fresh id
- Sessions never share an adapter (active project is per session)
- Requests without a valid session id get HTTP 400 / JSON-RPC -32000
- Backend failures at initialize give HTTP 500 and register nothing
- DELETE terminates and deregisters
- /status reports active sessions
- Full MCP handshake, tool listing and tool calls over ASGI
"""

from __future__ import annotations

import asyncio
import contextlib
import json

from collections.abc import AsyncIterator

import httpx
import pytest

from vibepmcp.adapter import NO_ACTIVE_PROJECT
from vibepmcp.config import ProxyConfig
from vibepmcp.mcp_server.proxy_server import VibeMcpProxyServer
from vibepmcp.mcp_server.session_registry import (
    BAD_REQUEST_CODE,
    INTERNAL_ERROR_CODE,
    NO_VALID_SESSION_MESSAGE,
    SessionRegistry,
    is_initialize_request,
)

from tests.helpers import FakeBackend, make_adapter

PROTOCOL_VERSION = "2025-03-26"
HEADERS = {"accept": "application/json, text/event-stream", "content-type": "application/json"}


def _rpc(method: str, params: dict | None = None, request_id: int | None = None) -> dict:
    message: dict = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        message["params"] = params
    if request_id is not None:
        message["id"] = request_id
    return message


def _initialize_request(request_id: int = 1) -> dict:
    return _rpc(
        "initialize",
        {"protocolVersion": PROTOCOL_VERSION, "capabilities": {}, "clientInfo": {"name": "pytest", "version": "1.0"}},
        request_id,
    )


def _session_headers(session_id: str) -> dict[str, str]:
    return {**HEADERS, "mcp-session-id": session_id, "mcp-protocol-version": PROTOCOL_VERSION}


@contextlib.asynccontextmanager
async def _running(backend: FakeBackend) -> AsyncIterator[tuple[VibeMcpProxyServer, httpx.AsyncClient]]:
    proxy = VibeMcpProxyServer(ProxyConfig(), adapter_factory=lambda: make_adapter(backend))
    async with proxy.registry.run():
        transport = httpx.ASGITransport(app=proxy.app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield proxy, client


async def _open_session(client: httpx.AsyncClient) -> str:
    resp = await client.post("/mcp", json=_initialize_request(), headers=HEADERS)
    assert resp.status_code == 200, resp.text
    session_id = resp.headers["mcp-session-id"]
    assert resp.json()["result"]["serverInfo"]["name"] == "VibePMCP"

    resp = await client.post("/mcp", json=_rpc("notifications/initialized"), headers=_session_headers(session_id))
    assert resp.status_code == 202, resp.text
    return session_id


async def _call_tool(client: httpx.AsyncClient, session_id: str, name: str, arguments: dict, request_id: int = 2) -> dict:
    resp = await client.post(
        "/mcp",
        json=_rpc("tools/call", {"name": name, "arguments": arguments}, request_id),
        headers=_session_headers(session_id),
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["result"]


def _assert_bad_request(resp: httpx.Response) -> None:
    assert resp.status_code == 400
    assert resp.json() == {
        "jsonrpc": "2.0",
        "error": {"code": BAD_REQUEST_CODE, "message": NO_VALID_SESSION_MESSAGE},
        "id": None,
    }


class TestInitializeDetection:
    def test_single_request(self):
        assert is_initialize_request(json.dumps(_initialize_request()).encode())

    def test_batch(self):
        body = json.dumps([_rpc("ping", request_id=1), _initialize_request(2)]).encode()
        assert is_initialize_request(body)

    @pytest.mark.parametrize(
        "body",
        [b"", b"not json", b'{"jsonrpc":"2.0","method":"initialize"}', json.dumps(_rpc("tools/list", request_id=1)).encode()],
    )
    def test_not_initialize(self, body):
        assert not is_initialize_request(body)


class TestRegistry:
    @pytest.mark.asyncio
    async def test_create_session_requires_running_registry(self):
        registry = SessionRegistry(lambda: make_adapter(FakeBackend()))
        with pytest.raises(RuntimeError, match="not running"):
            await registry.create_session()

    @pytest.mark.asyncio
    async def test_sessions_get_distinct_ids_and_adapters(self):
        backend = FakeBackend()
        registry = SessionRegistry(lambda: make_adapter(backend))
        async with registry.run():
            first = await registry.create_session()
            second = await registry.create_session()

            assert first.session_id != second.session_id
            assert first.adapter is not second.adapter
            assert first.adapter.is_initialized
            assert registry.active_count == 2
            assert set(registry.session_ids()) == {first.session_id, second.session_id}

            assert registry.remove(first.session_id) is first
            assert registry.remove(first.session_id) is None
            assert registry.get(first.session_id) is None
            assert registry.active_count == 1
        assert registry.active_count == 0

    @pytest.mark.asyncio
    async def test_failed_initialize_registers_nothing(self):
        backend = FakeBackend()
        backend.fail_discovery = True
        registry = SessionRegistry(lambda: make_adapter(backend))
        async with registry.run():
            with pytest.raises(Exception, match="Unable to fetch command list"):
                await registry.create_session()
            assert registry.active_count == 0


class TestHttp:
    @pytest.mark.asyncio
    async def test_concurrent_initialize_requests(self):
        backend = FakeBackend()
        async with _running(backend) as (proxy, client):
            responses = await asyncio.gather(
                *(client.post("/mcp", json=_initialize_request(i), headers=HEADERS) for i in range(1, 6)),
            )

            assert [resp.status_code for resp in responses] == [200] * 5
            session_ids = {resp.headers["mcp-session-id"] for resp in responses}
            assert len(session_ids) == 5
            assert proxy.registry.active_count == 5
            adapters = {id(proxy.registry.get(session_id).adapter) for session_id in session_ids}
            assert len(adapters) == 5

    @pytest.mark.asyncio
    async def test_status(self):
        async with _running(FakeBackend()) as (proxy, client):
            resp = await client.get("/status")
            assert resp.status_code == 200
            assert resp.json() == {"status": "ok", "name": "VibePMCP", "version": "0.1.0", "activeSessions": 0}

            await _open_session(client)
            resp = await client.get("/status")
            assert resp.json()["activeSessions"] == 1

    @pytest.mark.asyncio
    async def test_rejects_requests_without_valid_session(self):
        async with _running(FakeBackend()) as (proxy, client):
            _assert_bad_request(await client.post("/mcp", json=_rpc("tools/list", request_id=1), headers=HEADERS))
            _assert_bad_request(await client.get("/mcp", headers=HEADERS))
            _assert_bad_request(await client.delete("/mcp", headers=HEADERS))
            _assert_bad_request(
                await client.post("/mcp", json=_rpc("tools/list", request_id=1), headers=_session_headers("deadbeef")),
            )
            assert proxy.registry.active_count == 0

    @pytest.mark.asyncio
    async def test_backend_down_at_initialize(self):
        backend = FakeBackend()
        backend.fail_discovery = True
        async with _running(backend) as (proxy, client):
            resp = await client.post("/mcp", json=_initialize_request(), headers=HEADERS)

            assert resp.status_code == 500
            body = resp.json()
            assert body["error"]["code"] == INTERNAL_ERROR_CODE
            assert body["error"]["message"].startswith("Internal server error")
            assert "mcp-session-id" not in resp.headers
            assert proxy.registry.active_count == 0

    @pytest.mark.asyncio
    async def test_handshake_list_and_call(self):
        backend = FakeBackend(["build"])
        backend.reply("build --release", {"success": True, "result": "built"})
        async with _running(backend) as (proxy, client):
            session_id = await _open_session(client)

            resp = await client.post("/mcp", json=_rpc("tools/list", request_id=2), headers=_session_headers(session_id))
            assert resp.status_code == 200, resp.text
            names = [tool["name"] for tool in resp.json()["result"]["tools"]]
            assert "create-project" in names
            assert "build" in names

            result = await _call_tool(client, session_id, "build", {"args": "--release"}, request_id=3)
            assert result["content"][0]["text"] == "built"
            assert not result.get("isError")

            result = await _call_tool(client, session_id, "create-project", {"name": "demo"}, request_id=4)
            assert result["content"][0]["text"] == "Project 'demo' created successfully"
            assert proxy.registry.get(session_id).adapter.current_project == "demo"

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self):
        backend = FakeBackend()
        async with _running(backend) as (proxy, client):
            first = await _open_session(client)
            second = await _open_session(client)
            assert first != second

            await _call_tool(client, first, "create-project", {"name": "alpha"})
            result = await _call_tool(client, second, "read-file", {"path": "a.txt"})

            assert result["content"][0]["text"] == NO_ACTIVE_PROJECT
            assert proxy.registry.get(first).adapter.current_project == "alpha"
            assert proxy.registry.get(second).adapter.current_project is None

    @pytest.mark.asyncio
    async def test_transport_failure_is_an_error_result(self):
        backend = FakeBackend()
        async with _running(backend) as (proxy, client):
            session_id = await _open_session(client)
            backend.fail_execute = True

            result = await _call_tool(client, session_id, "list-projects", {})

            assert result["isError"] is True
            assert "connection refused" in result["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_delete_terminates_session(self):
        async with _running(FakeBackend()) as (proxy, client):
            session_id = await _open_session(client)

            resp = await client.delete("/mcp", headers=_session_headers(session_id))
            assert resp.status_code == 200

            assert proxy.registry.get(session_id) is None
            assert proxy.registry.active_count == 0
            _assert_bad_request(
                await client.post("/mcp", json=_rpc("tools/list", request_id=5), headers=_session_headers(session_id)),
            )

    @pytest.mark.asyncio
    async def test_read_project_resource(self):
        backend = FakeBackend()
        backend.reply("read-file notes.txt", {"success": True, "result": {"content": "remember the milk"}})
        async with _running(backend) as (proxy, client):
            session_id = await _open_session(client)

            resp = await client.post(
                "/mcp",
                json=_rpc("resources/read", {"uri": "project://demo/notes.txt"}, request_id=6),
                headers=_session_headers(session_id),
            )

            assert resp.status_code == 200, resp.text
            contents = resp.json()["result"]["contents"]
            assert contents[0]["text"] == "remember the milk"
            assert backend.executed == ["switch-project demo", "read-file notes.txt"]
            assert proxy.registry.get(session_id).adapter.current_project == "demo"
