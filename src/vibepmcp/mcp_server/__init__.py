"""MCP server side of VibePMCP.

One :class:`SessionServer` per client session, multiplexed over HTTP by the
:class:`SessionRegistry` or served alone over stdio.
"""

from .resource_providers import ProjectFileResourceProvider
from .server import SessionServer
from .session_registry import Session, SessionRegistry
from .tool_providers import ToolProvider, ToolProviderManager

__all__ = [
    "ProjectFileResourceProvider",
    "Session",
    "SessionRegistry",
    "SessionServer",
    "ToolProvider",
    "ToolProviderManager",
]
