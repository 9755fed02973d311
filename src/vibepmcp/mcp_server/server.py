"""Per-session MCP server built around one :class:`~vibepmcp.adapter.ProxyAdapter`.

Each client session gets its own low-level ``mcp.server.Server`` whose tools
close over that session's adapter, so no state is shared between sessions.
The tool set (fixed project/file tools plus one tool per discovered backend
command) is computed once, when the server is built.
"""

from __future__ import annotations

import logging

from typing import TYPE_CHECKING, Any

from mcp import types
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents

from vibepmcp.mcp_server.resource_providers import ProjectFileResourceProvider
from vibepmcp.mcp_server.tool_providers import ToolProviderManager

if TYPE_CHECKING:
    from pydantic import AnyUrl

    from vibepmcp.adapter import ProxyAdapter

logger = logging.getLogger(__name__)

DEFAULT_NAME = "VibePMCP"
DEFAULT_VERSION = "0.1.0"


class SessionServer:
    """MCP protocol server for one session.

    The adapter must already be initialized: discovered commands are read
    from it while the tools are registered.
    """

    def __init__(self, adapter: ProxyAdapter, *, name: str = DEFAULT_NAME, version: str = DEFAULT_VERSION) -> None:
        self.adapter: ProxyAdapter = adapter
        self.name: str = name
        self.version: str = version
        self.tool_providers: ToolProviderManager = ToolProviderManager()
        self.tool_providers.register_all_providers(adapter)
        self.resource_provider: ProjectFileResourceProvider = ProjectFileResourceProvider(adapter)
        self.mcp_server: Server = self._create_mcp_server()
        logger.info("Registered tools: %s", ", ".join(self.tool_providers.tool_names()))

    def _create_mcp_server(self) -> Server:
        server = Server(name=self.name, version=self.version)

        @server.list_tools()
        async def list_tools() -> list[types.Tool]:
            return self.list_tools()

        @server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
            """Input validation is off: argument keys are normalized before dispatch."""
            return await self.call_tool(name, arguments)

        @server.list_resources()
        async def list_resources() -> list[types.Resource]:
            # Project files are only reachable through the template.
            return []

        @server.list_resource_templates()
        async def list_resource_templates() -> list[types.ResourceTemplate]:
            return self.resource_provider.list_resource_templates()

        @server.read_resource()
        async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
            text = await self.read_resource(str(uri))
            return [ReadResourceContents(content=text, mime_type="text/plain")]

        return server

    def list_tools(self) -> list[types.Tool]:
        return self.tool_providers.list_tools()

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        try:
            return await self.tool_providers.call_tool(name, arguments)
        except Exception as e:
            logger.error("Tool %s error: %s: %s", name, e.__class__.__name__, e)
            raise

    async def read_resource(self, uri: str) -> str:
        return await self.resource_provider.read_resource(uri)

    async def run(self, read_stream: Any, write_stream: Any, *, stateless: bool = False) -> None:
        """Serve MCP over the given streams until the transport closes them."""
        await self.mcp_server.run(
            read_stream,
            write_stream,
            self.mcp_server.create_initialization_options(),
            stateless=stateless,
        )
