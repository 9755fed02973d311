"""MCP Tool Providers - project, file, discovery and discovered-command tools."""

from .commands import CommandToolProvider
from .discovery import DiscoveryToolProvider
from .files import FileToolProvider
from .project import ProjectToolProvider

__all__ = [
    "CommandToolProvider",
    "DiscoveryToolProvider",
    "FileToolProvider",
    "ProjectToolProvider",
]
