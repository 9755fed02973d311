"""Stateful adapter between MCP tool calls and the VibeMCP-Lite backend.

Every operation is one ``POST /api/mcp/execute {"command": ...}`` call (except
``get_project_file``, which may switch first) and every operation returns a
display string. Backend-reported failures come back as text starting with
``Error``; only contract violations (:class:`NotInitializedError`) and transport
failures (:class:`RemoteCommunicationError`) raise.

The adapter tracks the session's current project. It changes only when a
create or switch succeeds, and every file operation checks it before touching
the network.
"""

from __future__ import annotations

import json
import logging
import re

from types import TracebackType
from typing import TYPE_CHECKING, Any

from vibepmcp.client import RemoteCommandClient
from vibepmcp.discovery import CommandDiscovery
from vibepmcp.errors import DiscoveryError, NotInitializedError, UnknownCommandError
from vibepmcp.mcp_utils.debug_logger import DebugLogger

if TYPE_CHECKING:
    import httpx

    from vibepmcp.config import ProxyConfig

logger = logging.getLogger(__name__)

EXECUTE_PATH = "/api/mcp/execute"

NO_ACTIVE_PROJECT = "Error: no active project. Use create-project or switch-project first."
COMMAND_EXECUTED = "Command executed successfully"
UNKNOWN_ERROR = "Unknown error"

LINE_RANGE_RE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")


def parse_line_range(line_range: str) -> tuple[int, int] | None:
    """Parse ``"<start>-<end>"``; ``None`` when the text does not match."""
    match = LINE_RANGE_RE.match(line_range or "")
    if match is None:
        return None
    start, end = int(match.group(1)), int(match.group(2))
    if start > end:
        return None
    return start, end


def _join_command(*parts: str) -> str:
    return " ".join(part for part in parts if part != "")


def _envelope_error(envelope: dict[str, Any]) -> str:
    error = envelope.get("error")
    if isinstance(error, dict):
        error = error.get("message")
    return str(error) if error else UNKNOWN_ERROR


def _is_success(envelope: dict[str, Any]) -> bool:
    return bool(envelope.get("success")) and not envelope.get("error")


def render_result(result: Any) -> str:
    """Canonical text form of a result payload."""
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, ensure_ascii=False)


class ProxyAdapter:
    """Translate domain operations into backend commands for one session."""

    def __init__(self, client: RemoteCommandClient, discovery: CommandDiscovery | None = None):
        self._client = client
        self._discovery = discovery if discovery is not None else CommandDiscovery(client)
        self._current_project: str | None = None
        self._initialized = False

    @classmethod
    def from_config(cls, config: ProxyConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> ProxyAdapter:
        client = RemoteCommandClient(config.vibe_server_url, config.timeout_seconds, transport=transport)
        return cls(client)

    async def __aenter__(self) -> ProxyAdapter:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def current_project(self) -> str | None:
        return self._current_project

    @property
    def discovery(self) -> CommandDiscovery:
        return self._discovery

    async def initialize(self) -> None:
        """Discover backend commands. On failure the adapter stays unusable."""
        await self._discovery.initialize()
        self._initialized = True
        logger.info("Proxy adapter ready for %s", self._client.base_url)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError("ProxyAdapter")

    # ------------------------------------------------------------------
    # Backend primitive
    # ------------------------------------------------------------------

    async def _execute(self, command: str) -> dict[str, Any]:
        """Send *command* and return the envelope, normalized to a dict."""
        self._require_initialized()
        payload = await self._client.post(EXECUTE_PATH, json={"command": command})
        if isinstance(payload, dict):
            return payload
        return {"success": False, "error": f"Unexpected response from backend: {render_result(payload)}"}

    async def execute_command(self, raw: str) -> str:
        """Send *raw* as-is and render the envelope."""
        with DebugLogger.time_operation(self, f"execute {raw.split(' ', 1)[0]}"):
            envelope = await self._execute(raw)
        if not _is_success(envelope):
            return f"Error executing command: {_envelope_error(envelope)}"
        result = envelope.get("result")
        if result is None:
            return COMMAND_EXECUTED
        return render_result(result)

    def get_available_commands(self) -> list[str]:
        self._require_initialized()
        return self._discovery.command_names()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(self, name: str, description: str = "") -> str:
        envelope = await self._execute(_join_command("create-project", name, description))
        if not _is_success(envelope):
            return f"Error creating project: {_envelope_error(envelope)}"
        self._current_project = name
        logger.info("Created project %s", name)
        return f"Project '{name}' created successfully"

    async def list_projects(self) -> str:
        envelope = await self._execute("list-projects")
        result = envelope.get("result")
        projects = result.get("projects") if isinstance(result, dict) else None
        if not _is_success(envelope) or not isinstance(projects, list):
            return f"Error listing projects: {_envelope_error(envelope)}"

        header = f"Available projects ({len(projects)}):"
        if not projects:
            return header
        lines = []
        for project in projects:
            if not isinstance(project, dict):
                lines.append(f"- {project}")
                continue
            marker = " (active)" if project.get("isActive") else ""
            description = project.get("description") or "No description"
            lines.append(f"- {project.get('name', '?')}{marker}: {description}")
        return header + "\n\n" + "\n".join(lines)

    async def switch_project(self, name: str) -> str:
        envelope = await self._execute(_join_command("switch-project", name))
        if not _is_success(envelope):
            return f"Error switching project: {_envelope_error(envelope)}"
        self._current_project = name
        logger.info("Switched to project %s", name)
        return f"Project '{name}' selected successfully"

    # ------------------------------------------------------------------
    # Files (all gated on an active project)
    # ------------------------------------------------------------------

    def _has_project(self) -> bool:
        self._require_initialized()
        return self._current_project is not None

    async def _file_command(self, command: str, verb: str, path: str) -> str:
        envelope = await self._execute(command)
        if not _is_success(envelope):
            return f"Error: unable to {verb} file {path}: {_envelope_error(envelope)}"
        past = {"create": "created", "update": "updated", "delete": "deleted"}[verb]
        return f"File '{path}' {past} successfully"

    async def create_file(self, path: str, content: str = "") -> str:
        if not self._has_project():
            return NO_ACTIVE_PROJECT
        return await self._file_command(_join_command("create-file", path, content), "create", path)

    async def update_file(self, path: str, content: str) -> str:
        if not self._has_project():
            return NO_ACTIVE_PROJECT
        return await self._file_command(_join_command("update-file", path, content), "update", path)

    async def delete_file(self, path: str) -> str:
        if not self._has_project():
            return NO_ACTIVE_PROJECT
        return await self._file_command(_join_command("delete-file", path), "delete", path)

    async def read_file(self, path: str) -> str:
        if not self._has_project():
            return NO_ACTIVE_PROJECT
        envelope = await self._execute(_join_command("read-file", path))
        if not _is_success(envelope):
            return f"Error: unable to read file {path}: {_envelope_error(envelope)}"
        result = envelope.get("result")
        if isinstance(result, str):
            return result
        if isinstance(result, dict) and isinstance(result.get("content"), str):
            return result["content"]
        return f"Error: unable to read file {path}"

    async def edit_file(self, path: str, line_range: str, content: str = "") -> str:
        if not self._has_project():
            return NO_ACTIVE_PROJECT
        parsed = parse_line_range(line_range)
        if parsed is None:
            return f"Error: invalid line range '{line_range}'. Expected <start>-<end>, e.g. 3-10."
        start, end = parsed
        envelope = await self._execute(_join_command("edit", path, f"{start}-{end}", content))
        if not _is_success(envelope):
            return f"Error: unable to edit file {path}: {_envelope_error(envelope)}"
        return f"Lines {start}-{end} of '{path}' modified successfully"

    async def list_files(self, directory: str = "") -> str:
        if not self._has_project():
            return NO_ACTIVE_PROJECT
        envelope = await self._execute(_join_command("list-files", directory))
        result = envelope.get("result")
        files = result.get("files") if isinstance(result, dict) else result
        if not _is_success(envelope) or not isinstance(files, list):
            return f"Error listing files: {_envelope_error(envelope)}"

        header = f"Files in '{directory or '/'}' ({len(files)}):"
        if not files:
            return header
        return header + "\n\n" + "\n".join(_format_file_entry(entry) for entry in files)

    async def get_project_file(self, project: str, path: str) -> str:
        """Read *path* from *project*, switching the active project first if needed.

        The switch is a real side effect: afterwards the session's current
        project is *project*.
        """
        self._require_initialized()
        if self._current_project != project:
            switched = await self.switch_project(project)
            if self._current_project != project:
                return switched
        return await self.read_file(path)

    # ------------------------------------------------------------------
    # Discovery-backed helpers
    # ------------------------------------------------------------------

    async def help(self) -> str:
        return await self.execute_command("help")

    async def describe_command(self, name: str) -> str:
        self._require_initialized()
        try:
            schema = await self._discovery.command_schema(name)
            examples = await self._discovery.command_examples(name)
        except (UnknownCommandError, DiscoveryError) as e:
            return f"Error: {e}"

        parts = [f"Command '{name}'"]
        if schema is not None:
            parts.append("Schema:\n" + render_result(schema))
        if examples:
            parts.append("Examples:\n" + "\n".join(f"- {example}" for example in examples))
        else:
            parts.append("Examples: none")
        return "\n\n".join(parts)

    async def complete_command(self, prefix: str) -> str:
        self._require_initialized()
        try:
            suggestions = await self._discovery.completion_suggestions(prefix)
        except DiscoveryError as e:
            return f"Error: {e}"
        if not suggestions:
            return f"No suggestions for '{prefix}'"
        return "\n".join(_format_suggestion(s) for s in suggestions)

    async def refresh_commands(self) -> str:
        self._require_initialized()
        try:
            await self._discovery.refresh()
        except DiscoveryError as e:
            logger.error("Command refresh failed: %s", e)
            return f"Error refreshing commands: {e}"
        return f"Command list refreshed: {len(self._discovery.command_names())} commands available"


def _format_file_entry(entry: Any) -> str:
    if not isinstance(entry, dict):
        return f"- {entry}"
    name = entry.get("name") or entry.get("path") or "?"
    if entry.get("type") == "directory" or entry.get("isDirectory"):
        return f"- {name}/ (directory)"
    size = entry.get("size")
    if isinstance(size, int) and not isinstance(size, bool):
        return f"- {name} ({size} bytes)"
    return f"- {name}"


def _format_suggestion(suggestion: Any) -> str:
    if isinstance(suggestion, dict):
        text = suggestion.get("text") or suggestion.get("name") or suggestion.get("command")
        description = suggestion.get("description")
        if text and description:
            return f"{text} - {description}"
        if text:
            return str(text)
    return str(suggestion)
