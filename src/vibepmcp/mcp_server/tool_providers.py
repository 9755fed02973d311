"""Base ToolProvider with argument normalization, dispatch, and manager.

Flow:
  1. MCP Server -> ToolProviderManager.call_tool(name, arguments)
  2. Manager looks up the provider that registered ``name`` (exact match;
     backend command names are case-sensitive)
  3. Provider.call_tool() normalizes the argument keys and dispatches to the
     handler named in ``HANDLERS`` (or a per-tool closure for discovered commands)
  4. Handler reads a dict whose keys are lowercase a-z only and returns the
     adapter's text wrapped in one ``TextContent``
"""

from __future__ import annotations

import logging
import re

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from mcp import types

from vibepmcp.mcp_utils.debug_logger import DebugLogger

if TYPE_CHECKING:
    from vibepmcp.adapter import ProxyAdapter

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any]], Awaitable[list[types.TextContent]]]


def normalize_identifier(value: str) -> str:
    """Keep lowercase ASCII letters only: ``lineRange``, ``line_range`` -> ``linerange``."""
    return re.sub(r"[^a-z]", "", value.lower())


n = normalize_identifier  # short alias used throughout providers


def text_response(text: str) -> list[types.TextContent]:
    """Wrap adapter output as MCP content."""
    return [types.TextContent(type="text", text=text)]


def object_schema(properties: dict[str, dict[str, Any]] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    return {"type": "object", "properties": properties or {}, "required": required or []}


# ---------------------------------------------------------------------------
# Base ToolProvider
# ---------------------------------------------------------------------------


class ToolProvider:
    """Base class for MCP tool providers.

    Subclasses populate **HANDLERS**: ``{tool_name: "method_name"}``. The tool
    names are the exact MCP names advertised by ``list_tools()``.
    """

    HANDLERS: dict[str, str] = {}

    def __init__(self, adapter: ProxyAdapter) -> None:
        self.adapter: ProxyAdapter = adapter

    def list_tools(self) -> list[types.Tool]:
        return []

    def _resolve_handler(self, name: str) -> ToolHandler | None:
        method_name = self.HANDLERS.get(name)
        if method_name is None:
            return None
        return getattr(self, method_name)

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        """Normalize argument keys and dispatch.

        Errors are not caught here: contract violations and transport failures
        reach the MCP server, which reports them as an error result.
        """
        handler = self._resolve_handler(name)
        if handler is None:
            raise NotImplementedError(f"Unknown tool: {name}")

        norm_args: dict[str, Any] = {n(k): v for k, v in (arguments or {}).items()}
        with DebugLogger.time_operation(self, name):
            return await handler(norm_args)

    # ------------------------------------------------------------------
    # Argument extraction helpers (on already-normalized dicts)
    # ------------------------------------------------------------------

    @staticmethod
    def _get_str(args: dict[str, Any], *keys: str, default: str = "") -> str:
        for k in keys:
            v = args.get(n(k))
            if v is not None:
                return str(v)
        return default

    @staticmethod
    def _require_str(args: dict[str, Any], *keys: str, name: str = "") -> str:
        for k in keys:
            v = args.get(n(k))
            if v is not None and str(v).strip():
                return str(v)
        label = name or " or ".join(keys)
        raise ValueError(f"Required parameter missing or empty: {label}")


# ---------------------------------------------------------------------------
# ToolProviderManager - routes tool calls to the correct provider
# ---------------------------------------------------------------------------


class ToolProviderManager:
    """Routes MCP tool calls to the provider that registered the tool name.

    The first provider to claim a name keeps it, so providers registered
    earlier (the fixed project/file tools) shadow discovered commands.
    """

    def __init__(self) -> None:
        self.providers: list[ToolProvider] = []
        self._tool_map: dict[str, ToolProvider] = {}
        self._tools: list[types.Tool] = []

    def _register(self, provider: ToolProvider) -> None:
        self.providers.append(provider)
        for tool in provider.list_tools():
            if tool.name in self._tool_map:
                logger.debug("Tool %s already registered by %s", tool.name, type(self._tool_map[tool.name]).__name__)
                continue
            self._tool_map[tool.name] = provider
            self._tools.append(tool)

    def register_all_providers(self, adapter: ProxyAdapter) -> None:
        """Register every provider for *adapter*, fixed tools first."""
        from vibepmcp.mcp_server.providers import (
            CommandToolProvider,
            DiscoveryToolProvider,
            FileToolProvider,
            ProjectToolProvider,
        )

        for cls in (ProjectToolProvider, FileToolProvider, DiscoveryToolProvider, CommandToolProvider):
            self._register(cls(adapter))

    def has_tool(self, name: str) -> bool:
        return name in self._tool_map

    def tool_names(self) -> list[str]:
        return [tool.name for tool in self._tools]

    def list_tools(self) -> list[types.Tool]:
        return list(self._tools)

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        provider = self._tool_map.get(name)
        if provider is None:
            raise ValueError(f"Unknown tool: {name}")
        return await provider.call_tool(name, arguments)
