"""VibePMCP - MCP proxy for the VibeMCP-Lite backend.

MCP clients talk to this package over stdio or streamable HTTP; every tool call
is translated into a command for the backend's ``/api/mcp/execute`` endpoint.
Each client session keeps its own active project and its own view of the
backend command set.
"""

__version__ = "0.1.0"

from vibepmcp.adapter import ProxyAdapter
from vibepmcp.client import RemoteCommandClient
from vibepmcp.discovery import Command, CommandDiscovery
from vibepmcp.errors import (
    DiscoveryError,
    NotInitializedError,
    ProxyError,
    RemoteCommunicationError,
    UnknownCommandError,
)

__all__ = [
    "Command",
    "CommandDiscovery",
    "DiscoveryError",
    "NotInitializedError",
    "ProxyAdapter",
    "ProxyError",
    "RemoteCommandClient",
    "RemoteCommunicationError",
    "UnknownCommandError",
    "__version__",
]
