"""HTTP entry point: MCP over streamable HTTP at ``/mcp``.

Every client session gets its own adapter and server loop through the
:class:`~vibepmcp.mcp_server.session_registry.SessionRegistry`. ``/status``
reports liveness and the number of active sessions.
"""

from __future__ import annotations

import contextlib
import logging

from collections.abc import AsyncIterator
from typing import Any

from fastapi import FastAPI
from starlette.types import Receive, Scope, Send

from vibepmcp.adapter import ProxyAdapter
from vibepmcp.config import ProxyConfig
from vibepmcp.mcp_server.session_registry import AdapterFactory, SessionRegistry

logger = logging.getLogger(__name__)

MCP_PATH = "/mcp"
STATUS_PATH = "/status"


class _RegistryASGI:
    """Raw ASGI endpoint; keeps Starlette from wrapping the registry as a request handler."""

    def __init__(self, registry: SessionRegistry):
        self._registry: SessionRegistry = registry

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._registry.handle_request(scope, receive, send)


class VibeMcpProxyServer:
    """Serve the proxy to any number of MCP clients over HTTP."""

    def __init__(self, config: ProxyConfig, *, adapter_factory: AdapterFactory | None = None):
        self.config: ProxyConfig = config
        if adapter_factory is None:

            def adapter_factory() -> ProxyAdapter:
                return ProxyAdapter.from_config(config)

        self.registry: SessionRegistry = SessionRegistry(
            adapter_factory,
            name=config.name,
            version=config.version,
        )
        self.app: FastAPI = FastAPI(title=config.name, version=config.version, lifespan=self._lifespan)
        self._setup_routes()

    @contextlib.asynccontextmanager
    async def _lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        async with self.registry.run():
            logger.info("Session registry started (backend %s)", self.config.vibe_server_url)
            yield
        logger.info("Session registry stopped; all sessions closed")

    def _setup_routes(self) -> None:
        self.app.add_route(MCP_PATH, _RegistryASGI(self.registry), methods=["GET", "POST", "DELETE"])

        @self.app.get(STATUS_PATH)
        async def status() -> dict[str, Any]:
            return {
                "status": "ok",
                "name": self.config.name,
                "version": self.config.version,
                "activeSessions": self.registry.active_count,
            }

    async def serve(self) -> None:
        """Serve until uvicorn is told to exit."""
        import uvicorn

        uvicorn_config = uvicorn.Config(
            app=self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
        )
        server = uvicorn.Server(uvicorn_config)
        logger.info("VibePMCP HTTP server listening on http://%s:%s", self.config.host, self.config.port)
        logger.info("MCP endpoint: http://%s:%s%s", self.config.host, self.config.port, MCP_PATH)
        await server.serve()

    def start(self) -> None:
        """Blocking variant of :meth:`serve`."""
        import asyncio

        asyncio.run(self.serve())
