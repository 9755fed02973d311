"""Project Tool Provider - create-project, list-projects, switch-project.

Successful create/switch calls change the session's active project.
"""

from __future__ import annotations

from typing import Any

from mcp import types

from vibepmcp.mcp_server.tool_providers import ToolProvider, object_schema, text_response


class ProjectToolProvider(ToolProvider):
    HANDLERS = {
        "create-project": "_handle_create",
        "list-projects": "_handle_list",
        "switch-project": "_handle_switch",
    }

    def list_tools(self) -> list[types.Tool]:
        return [
            types.Tool(
                name="create-project",
                description="Create a new project on the backend and make it the active project",
                inputSchema=object_schema(
                    {
                        "name": {"type": "string", "description": "Project name"},
                        "description": {"type": "string", "description": "Optional project description"},
                    },
                    ["name"],
                ),
            ),
            types.Tool(
                name="list-projects",
                description="List the projects available on the backend",
                inputSchema=object_schema(),
            ),
            types.Tool(
                name="switch-project",
                description="Make an existing project the active project",
                inputSchema=object_schema({"name": {"type": "string", "description": "Project name"}}, ["name"]),
            ),
        ]

    async def _handle_create(self, args: dict[str, Any]) -> list[types.TextContent]:
        name = self._require_str(args, "name")
        description = self._get_str(args, "description")
        return text_response(await self.adapter.create_project(name, description))

    async def _handle_list(self, args: dict[str, Any]) -> list[types.TextContent]:
        return text_response(await self.adapter.list_projects())

    async def _handle_switch(self, args: dict[str, Any]) -> list[types.TextContent]:
        name = self._require_str(args, "name", "project")
        return text_response(await self.adapter.switch_project(name))
