"""File Tool Provider - create-file, list-files, read-file, update-file, delete-file, edit.

All of these act on the active project; without one the adapter answers with a
fixed "no active project" message and makes no backend call.
"""

from __future__ import annotations

from typing import Any

from mcp import types

from vibepmcp.mcp_server.tool_providers import ToolProvider, object_schema, text_response

_PATH = {"type": "string", "description": "File path relative to the project root"}
_CONTENT = {"type": "string", "description": "File content"}


class FileToolProvider(ToolProvider):
    HANDLERS = {
        "create-file": "_handle_create",
        "list-files": "_handle_list",
        "read-file": "_handle_read",
        "update-file": "_handle_update",
        "delete-file": "_handle_delete",
        "edit": "_handle_edit",
    }

    def list_tools(self) -> list[types.Tool]:
        return [
            types.Tool(
                name="create-file",
                description="Create a file in the active project",
                inputSchema=object_schema({"path": _PATH, "content": _CONTENT}, ["path"]),
            ),
            types.Tool(
                name="list-files",
                description="List files in a directory of the active project",
                inputSchema=object_schema(
                    {"directory": {"type": "string", "description": "Directory to list (project root when omitted)"}},
                ),
            ),
            types.Tool(
                name="read-file",
                description="Read a file from the active project",
                inputSchema=object_schema({"path": _PATH}, ["path"]),
            ),
            types.Tool(
                name="update-file",
                description="Replace the content of a file in the active project",
                inputSchema=object_schema({"path": _PATH, "content": _CONTENT}, ["path", "content"]),
            ),
            types.Tool(
                name="delete-file",
                description="Delete a file from the active project",
                inputSchema=object_schema({"path": _PATH}, ["path"]),
            ),
            types.Tool(
                name="edit",
                description="Replace a range of lines in a file of the active project",
                inputSchema=object_schema(
                    {
                        "path": _PATH,
                        "lineRange": {"type": "string", "description": "Lines to replace as <start>-<end>, e.g. 3-10"},
                        "content": {"type": "string", "description": "Replacement text"},
                    },
                    ["path", "lineRange"],
                ),
            ),
        ]

    async def _handle_create(self, args: dict[str, Any]) -> list[types.TextContent]:
        path = self._require_str(args, "path")
        return text_response(await self.adapter.create_file(path, self._get_str(args, "content")))

    async def _handle_list(self, args: dict[str, Any]) -> list[types.TextContent]:
        return text_response(await self.adapter.list_files(self._get_str(args, "directory", "dir")))

    async def _handle_read(self, args: dict[str, Any]) -> list[types.TextContent]:
        path = self._require_str(args, "path")
        return text_response(await self.adapter.read_file(path))

    async def _handle_update(self, args: dict[str, Any]) -> list[types.TextContent]:
        path = self._require_str(args, "path")
        return text_response(await self.adapter.update_file(path, self._get_str(args, "content")))

    async def _handle_delete(self, args: dict[str, Any]) -> list[types.TextContent]:
        path = self._require_str(args, "path")
        return text_response(await self.adapter.delete_file(path))

    async def _handle_edit(self, args: dict[str, Any]) -> list[types.TextContent]:
        path = self._require_str(args, "path")
        line_range = self._require_str(args, "lineRange", "range", name="lineRange")
        return text_response(await self.adapter.edit_file(path, line_range, self._get_str(args, "content")))
