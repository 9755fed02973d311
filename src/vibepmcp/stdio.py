"""Stdio entry point: one client, one adapter, one server loop.

stdout carries the MCP stream; logging goes to stderr.
"""

from __future__ import annotations

import logging

from anyio import BrokenResourceError, ClosedResourceError
from mcp.server.stdio import stdio_server

from vibepmcp.adapter import ProxyAdapter
from vibepmcp.config import ProxyConfig
from vibepmcp.mcp_server.server import SessionServer

logger = logging.getLogger(__name__)


async def run_stdio_server(config: ProxyConfig, adapter: ProxyAdapter | None = None) -> None:
    """Initialize the adapter, then serve MCP over stdin/stdout until the client leaves.

    Raises whatever ``adapter.initialize()`` raises; nothing is served then.
    """
    adapter = adapter if adapter is not None else ProxyAdapter.from_config(config)
    async with adapter:
        await adapter.initialize()
        server = SessionServer(adapter, name=config.name, version=config.version)
        logger.info("VibePMCP ready on stdio (backend %s)", config.vibe_server_url)
        try:
            async with stdio_server() as (read_stream, write_stream):
                await server.run(read_stream, write_stream)
        except ClosedResourceError:
            logger.info("Client disconnected")
        except BrokenResourceError:
            logger.info("Client connection broken - disconnecting")
