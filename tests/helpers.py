"""Test helper utilities for VibePMCP.

Provides common functionality used across multiple test modules:
- An in-memory VibeMCP-Lite backend served through ``httpx.MockTransport``
- Adapter construction against that backend
- MCP content parsing
"""

from __future__ import annotations

import json
import re

from typing import Any

import httpx

from vibepmcp.adapter import ProxyAdapter
from vibepmcp.client import RemoteCommandClient

BACKEND_URL = "http://backend.test"

DEFAULT_COMMANDS = ["create-project", "list-projects", "help", "build", "test-all"]

_METADATA_RE = re.compile(r"^/api/mcp-api/commands/(?P<name>.+)/(?P<kind>schema|examples)$")


class FakeBackend:
    """Stand-in for the backend HTTP API.

    ``replies`` maps a command (exact text first, then its first word) to the
    envelope returned by ``/api/mcp/execute``; anything else succeeds with no
    result.
    """

    def __init__(self, commands: list[Any] | None = None):
        self.commands: list[Any] = list(DEFAULT_COMMANDS if commands is None else commands)
        self.commands_payload: Any = None
        self.replies: dict[str, dict[str, Any]] = {}
        self.schemas: dict[str, Any] = {}
        self.examples: dict[str, list[Any]] = {}
        self.suggestions: list[Any] = []
        self.fail_discovery: bool = False
        self.fail_execute: bool = False
        self.requests: list[tuple[str, str, Any]] = []
        self.executed: list[str] = []
        self.transport: httpx.MockTransport = httpx.MockTransport(self.handle)

    def reply(self, command: str, envelope: dict[str, Any]) -> None:
        self.replies[command] = envelope

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        path = request.url.path
        self.requests.append((request.method, path, body))

        if path == "/api/mcp/commands":
            if self.fail_discovery:
                return httpx.Response(503, text="backend starting")
            if self.commands_payload is not None:
                return httpx.Response(200, json=self.commands_payload)
            return httpx.Response(200, json={"commands": [_command_entry(c) for c in self.commands]})

        if path == "/api/mcp/execute":
            if self.fail_execute:
                raise httpx.ConnectError("connection refused", request=request)
            command = body["command"]
            self.executed.append(command)
            return httpx.Response(200, json=self._envelope_for(command))

        if path == "/api/mcp-api/complete":
            return httpx.Response(200, json={"success": True, "suggestions": self.suggestions})

        match = _METADATA_RE.match(path)
        if match is not None:
            name, kind = match.group("name"), match.group("kind")
            source = self.schemas if kind == "schema" else self.examples
            if name not in source:
                return httpx.Response(404, json={"success": False, "error": f"No {kind} for {name}"})
            return httpx.Response(200, json={"success": True, kind: source[name]})

        return httpx.Response(404, text="Not Found")

    def _envelope_for(self, command: str) -> dict[str, Any]:
        if command in self.replies:
            return self.replies[command]
        return self.replies.get(command.split(" ", 1)[0], {"success": True})

    def paths(self) -> list[str]:
        return [path for _, path, _ in self.requests]


def _command_entry(command: Any) -> Any:
    if isinstance(command, str):
        return {"name": command, "handler": f"handle_{command.replace('-', '_')}"}
    return command


def make_client(backend: FakeBackend) -> RemoteCommandClient:
    return RemoteCommandClient(BACKEND_URL, timeout=5.0, transport=backend.transport)


def make_adapter(backend: FakeBackend) -> ProxyAdapter:
    return ProxyAdapter(make_client(backend))


async def make_ready_adapter(backend: FakeBackend, project: str | None = None) -> ProxyAdapter:
    """An initialized adapter, optionally with *project* already active."""
    adapter = make_adapter(backend)
    await adapter.initialize()
    if project is not None:
        await adapter.switch_project(project)
        backend.executed.clear()
    return adapter


def single_text(response: list[Any]) -> str:
    assert isinstance(response, list)
    assert len(response) == 1
    first = response[0]
    assert first.type == "text"
    return first.text
