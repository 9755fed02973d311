"""Runtime discovery of the commands the backend exposes.

The backend's command set is not known when the proxy is built; it is fetched
from ``GET /api/mcp/commands`` and cached per adapter. Richer per-command
metadata (schema, examples) and completion suggestions are fetched on demand.

States: uninitialized -> initialized (-> initialized again after ``refresh()``).
During ``refresh()`` the cache is briefly empty; readers in that window see
``NotInitializedError`` rather than stale data.
"""

from __future__ import annotations

import logging

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from vibepmcp.client import RemoteCommandClient
from vibepmcp.errors import (
    DiscoveryError,
    NotInitializedError,
    RemoteCommunicationError,
    UnknownCommandError,
)
from vibepmcp.mcp_utils.debug_logger import DebugLogger

logger = logging.getLogger(__name__)

COMMANDS_PATH = "/api/mcp/commands"
SCHEMA_PATH = "/api/mcp-api/commands/{name}/schema"
EXAMPLES_PATH = "/api/mcp-api/commands/{name}/examples"
COMPLETE_PATH = "/api/mcp-api/complete"


@dataclass(frozen=True)
class Command:
    """A backend command. ``handler`` is backend-internal and never interpreted."""

    name: str
    handler: str | None = None


class CommandDiscovery:
    """Fetches and caches the backend command list."""

    def __init__(self, client: RemoteCommandClient):
        self._client = client
        self._commands: list[Command] = []
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Fetch the command list and populate the cache.

        Raises:
            DiscoveryError: if the fetch fails or the payload is malformed.
        """
        DebugLogger.debug(self, "Discovering backend commands")
        try:
            payload = await self._client.get(COMMANDS_PATH)
        except RemoteCommunicationError as e:
            logger.error("Command discovery failed: %s", e)
            raise DiscoveryError(f"Unable to fetch command list: {e}") from e

        if not isinstance(payload, dict):
            raise DiscoveryError("Unable to fetch command list: response is not an object")
        if payload.get("error") and "commands" not in payload:
            raise DiscoveryError(f"Unable to fetch command list: {payload['error']}")

        raw_commands = payload.get("commands") or []
        if not isinstance(raw_commands, list):
            raise DiscoveryError("Unable to fetch command list: 'commands' is not a list")

        self._commands = self._parse_commands(raw_commands)
        self._initialized = True
        logger.info("Discovered %d backend commands", len(self._commands))
        DebugLogger.debug(self, f"Commands: {', '.join(c.name for c in self._commands)}")

    @staticmethod
    def _parse_commands(raw_commands: list[Any]) -> list[Command]:
        commands: list[Command] = []
        seen: set[str] = set()
        for entry in raw_commands:
            if isinstance(entry, str):
                name, handler = entry, None
            elif isinstance(entry, dict) and isinstance(entry.get("name"), str):
                name = entry["name"]
                handler = entry.get("handler")
                handler = str(handler) if handler is not None else None
            else:
                logger.warning("Skipping malformed command entry: %r", entry)
                continue
            if not name or name in seen:
                continue
            seen.add(name)
            commands.append(Command(name=name, handler=handler))
        return commands

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError("CommandDiscovery")

    def has_command(self, name: str) -> bool:
        self._require_initialized()
        return any(cmd.name == name for cmd in self._commands)

    def all_commands(self) -> list[Command]:
        """Snapshot of the cache; mutating it does not touch the cache."""
        self._require_initialized()
        return list(self._commands)

    def command_names(self) -> list[str]:
        self._require_initialized()
        return [cmd.name for cmd in self._commands]

    def _require_known(self, name: str) -> None:
        if not self.has_command(name):
            raise UnknownCommandError(name)

    async def command_schema(self, name: str) -> Any:
        """Return the backend's schema for *name*."""
        self._require_known(name)
        payload = await self._fetch_metadata(SCHEMA_PATH.format(name=quote(name, safe="")), "schema")
        return payload.get("schema")

    async def command_examples(self, name: str) -> list[Any]:
        """Return usage examples for *name*."""
        self._require_known(name)
        payload = await self._fetch_metadata(EXAMPLES_PATH.format(name=quote(name, safe="")), "examples")
        return list(payload.get("examples") or [])

    async def _fetch_metadata(self, path: str, what: str) -> dict[str, Any]:
        payload = await self._client.get(path)
        if not isinstance(payload, dict) or not payload.get("success"):
            error = payload.get("error") if isinstance(payload, dict) else None
            raise DiscoveryError(error or f"Error retrieving command {what}")
        return payload

    async def refresh(self) -> None:
        """Drop the cache and discover again."""
        self._initialized = False
        self._commands = []
        await self.initialize()

    async def completion_suggestions(self, prefix: str) -> list[Any]:
        """Ask the backend for completions of *prefix*. Works in any state."""
        payload = await self._client.post(COMPLETE_PATH, json={"prefix": prefix})
        if not isinstance(payload, dict) or not payload.get("success"):
            error = payload.get("error") if isinstance(payload, dict) else None
            raise DiscoveryError(error or "Error retrieving completion suggestions")
        return list(payload.get("suggestions") or [])
