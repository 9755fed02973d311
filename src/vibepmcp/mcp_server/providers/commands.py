"""Command Tool Provider - one generic tool per discovered backend command.

The tool set is built from ``adapter.get_available_commands()`` when the
provider is created. Each tool takes a single optional free-text ``args``
string and forwards ``"<name> <args>"`` to ``execute_command``.
"""

from __future__ import annotations

import logging

from typing import TYPE_CHECKING, Any

from mcp import types

from vibepmcp.mcp_server.tool_providers import ToolHandler, ToolProvider, object_schema, text_response

if TYPE_CHECKING:
    from vibepmcp.adapter import ProxyAdapter

logger = logging.getLogger(__name__)

ARGS_SCHEMA = object_schema(
    {"args": {"type": "string", "description": "Command arguments as free text"}},
)


class CommandToolProvider(ToolProvider):
    """Registers every discovered command as an MCP tool."""

    def __init__(self, adapter: ProxyAdapter) -> None:
        super().__init__(adapter)
        self._handlers: dict[str, ToolHandler] = {
            name: self._make_handler(name) for name in adapter.get_available_commands()
        }
        logger.debug("Built %d discovered command tools", len(self._handlers))

    def _make_handler(self, command_name: str) -> ToolHandler:
        async def handler(args: dict[str, Any]) -> list[types.TextContent]:
            extra = self._get_str(args, "args").strip()
            raw = f"{command_name} {extra}" if extra else command_name
            return text_response(await self.adapter.execute_command(raw))

        return handler

    def _resolve_handler(self, name: str) -> ToolHandler | None:
        return self._handlers.get(name)

    def list_tools(self) -> list[types.Tool]:
        return [
            types.Tool(
                name=name,
                description=f"Run the backend '{name}' command",
                inputSchema=ARGS_SCHEMA,
            )
            for name in self._handlers
        ]
