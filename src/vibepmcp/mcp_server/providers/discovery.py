"""Discovery Tool Provider - help, describe-command, complete-command, refresh-commands."""

from __future__ import annotations

from typing import Any

from mcp import types

from vibepmcp.mcp_server.tool_providers import ToolProvider, object_schema, text_response


class DiscoveryToolProvider(ToolProvider):
    HANDLERS = {
        "help": "_handle_help",
        "describe-command": "_handle_describe",
        "complete-command": "_handle_complete",
        "refresh-commands": "_handle_refresh",
    }

    def list_tools(self) -> list[types.Tool]:
        return [
            types.Tool(
                name="help",
                description="Show the backend's help text",
                inputSchema=object_schema(),
            ),
            types.Tool(
                name="describe-command",
                description="Show the schema and usage examples of a backend command",
                inputSchema=object_schema({"name": {"type": "string", "description": "Command name"}}, ["name"]),
            ),
            types.Tool(
                name="complete-command",
                description="Suggest completions for a partially typed command",
                inputSchema=object_schema({"prefix": {"type": "string", "description": "Text typed so far"}}, ["prefix"]),
            ),
            types.Tool(
                name="refresh-commands",
                description="Fetch the backend command list again",
                inputSchema=object_schema(),
            ),
        ]

    async def _handle_help(self, args: dict[str, Any]) -> list[types.TextContent]:
        return text_response(await self.adapter.help())

    async def _handle_describe(self, args: dict[str, Any]) -> list[types.TextContent]:
        name = self._require_str(args, "name", "command")
        return text_response(await self.adapter.describe_command(name))

    async def _handle_complete(self, args: dict[str, Any]) -> list[types.TextContent]:
        return text_response(await self.adapter.complete_command(self._get_str(args, "prefix")))

    async def _handle_refresh(self, args: dict[str, Any]) -> list[types.TextContent]:
        return text_response(await self.adapter.refresh_commands())
