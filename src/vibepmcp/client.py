"""Async HTTP client for the VibeMCP-Lite backend.

One ``httpx.AsyncClient`` per instance, a fixed base URL and a fixed timeout.
No retries: a failed call surfaces immediately as
:class:`~vibepmcp.errors.RemoteCommunicationError` and the caller decides what
to do with it.

Usage::

    async with RemoteCommandClient("http://localhost:3000", timeout=30.0) as client:
        envelope = await client.post("/api/mcp/execute", json={"command": "list-projects"})
"""

from __future__ import annotations

import json
import logging

from types import TracebackType
from typing import Any

import httpx

from vibepmcp.errors import RemoteCommunicationError
from vibepmcp.mcp_utils.debug_logger import DebugLogger

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class RemoteCommandClient:
    """Thin request/response wrapper around the backend HTTP API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> RemoteCommandClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Perform one request and return the parsed JSON body.

        A non-2xx answer that still carries a JSON object is returned as-is: the
        backend reports its own failures inside the envelope.
        """
        DebugLogger.debug_request(self, method, path, json if json is not None else params)
        try:
            resp = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s: %s", method.upper(), path, e.__class__.__name__, e)
            raise RemoteCommunicationError(_describe_transport_error(e)) from e

        body = _parse_body(resp)
        if resp.is_success:
            if body is _UNPARSEABLE:
                raise RemoteCommunicationError(
                    f"Invalid response from backend for {method.upper()} {path}: body is not JSON",
                )
            return body

        if isinstance(body, dict):
            logger.debug("%s %s returned HTTP %s with an envelope", method.upper(), path, resp.status_code)
            return body
        raise RemoteCommunicationError(
            f"Request failed with status code {resp.status_code} ({method.upper()} {path})",
        )

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()


_UNPARSEABLE = object()


def _parse_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _UNPARSEABLE


def _describe_transport_error(error: httpx.HTTPError) -> str:
    message = str(error).strip()
    if isinstance(error, httpx.TimeoutException):
        return f"Request timed out: {message}" if message else "Request timed out"
    return message or error.__class__.__name__
