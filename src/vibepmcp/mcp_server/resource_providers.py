"""MCP resources: project files addressed as ``project://{projectName}/{filePath}``.

Reading a file of a project other than the active one switches the session's
active project first.
"""

from __future__ import annotations

import logging

from typing import TYPE_CHECKING
from urllib.parse import unquote, urlsplit

from mcp import types

if TYPE_CHECKING:
    from vibepmcp.adapter import ProxyAdapter

logger = logging.getLogger(__name__)

PROJECT_SCHEME = "project"
PROJECT_FILE_TEMPLATE = "project://{projectName}/{filePath}"


def parse_project_uri(uri: str) -> tuple[str, str]:
    """Split ``project://<project>/<path>`` into ``(project, path)``."""
    parts = urlsplit(uri)
    if parts.scheme != PROJECT_SCHEME:
        raise ValueError(f"Unsupported resource URI: {uri}")
    project = unquote(parts.netloc)
    file_path = unquote(parts.path.lstrip("/"))
    if not project or not file_path:
        raise ValueError(f"Resource URI must look like {PROJECT_FILE_TEMPLATE}: {uri}")
    return project, file_path


class ProjectFileResourceProvider:
    """Serves project files through the adapter."""

    def __init__(self, adapter: ProxyAdapter):
        self.adapter = adapter

    def list_resource_templates(self) -> list[types.ResourceTemplate]:
        return [
            types.ResourceTemplate(
                uriTemplate=PROJECT_FILE_TEMPLATE,
                name="project-files",
                description="A file of a backend project. Reading it makes that project active.",
                mimeType="text/plain",
            ),
        ]

    async def read_resource(self, uri: str) -> str:
        project, file_path = parse_project_uri(uri)
        logger.debug("Reading resource %s (project=%s, path=%s)", uri, project, file_path)
        return await self.adapter.get_project_file(project, file_path)
