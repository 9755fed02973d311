"""Session registry multiplexing MCP clients over one process.

Each session owns one :class:`~vibepmcp.adapter.ProxyAdapter`, one
``StreamableHTTPServerTransport`` and one :class:`SessionServer` loop running
in the registry's task group. Requests are routed by the ``mcp-session-id``
header:

- POST without a session id and carrying an ``initialize`` request creates a
  session (the adapter must initialize, otherwise nothing is registered);
- any request with a registered id goes to that session's transport;
- DELETE with a registered id terminates and deregisters the session;
- everything else is rejected with HTTP 400 and JSON-RPC error ``-32000``.

The id -> session map is the only shared state. It is guarded by a lock that
is held for map operations only, never across an ``await``.
"""

from __future__ import annotations

import contextlib
import json
import logging
import threading
import time

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import anyio

from anyio.abc import TaskGroup

from mcp.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPServerTransport
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import Receive, Scope, Send

from vibepmcp.adapter import ProxyAdapter
from vibepmcp.mcp_server.server import DEFAULT_NAME, DEFAULT_VERSION, SessionServer

logger = logging.getLogger(__name__)

BAD_REQUEST_CODE = -32000
INTERNAL_ERROR_CODE = -32603
NO_VALID_SESSION_MESSAGE = "Bad Request: No valid session ID provided"

AdapterFactory = Callable[[], ProxyAdapter]


def jsonrpc_error(code: int, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None},
        status_code=status_code,
    )


def is_initialize_request(body: bytes) -> bool:
    """True when *body* is a JSON-RPC ``initialize`` request (or a batch holding one)."""
    try:
        payload = json.loads(body) if body else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        return False
    messages = payload if isinstance(payload, list) else [payload]
    return any(
        isinstance(message, dict) and message.get("method") == "initialize" and "id" in message
        for message in messages
    )


def _replay_receive(body: bytes, receive: Receive) -> Receive:
    """An ASGI ``receive`` that hands back an already-read body once."""
    replayed = False

    async def _receive() -> dict[str, Any]:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return _receive


@dataclass
class Session:
    session_id: str
    adapter: ProxyAdapter
    transport: StreamableHTTPServerTransport
    server: SessionServer
    created_at: float = field(default_factory=time.time)


class SessionRegistry:
    """Owns every live session, keyed by its generated id."""

    def __init__(
        self,
        adapter_factory: AdapterFactory,
        *,
        name: str = DEFAULT_NAME,
        version: str = DEFAULT_VERSION,
        json_response: bool = True,
    ) -> None:
        self._adapter_factory = adapter_factory
        self.name = name
        self.version = version
        self.json_response = json_response
        self._lock = threading.RLock()
        self._sessions: dict[str, Session] = {}
        self._retired: set[str] = set()
        self._task_group: TaskGroup | None = None

    # ------------------------------------------------------------------
    # Map operations
    # ------------------------------------------------------------------

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def get(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Session | None:
        """Deregister *session_id*. The id is never handed out again."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
            self._retired.add(session_id)
        if session is not None:
            logger.info("Session terminated: %s", session_id)
        return session

    def _register(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.session_id] = session

    def _new_session_id(self) -> str:
        with self._lock:
            while True:
                candidate = uuid4().hex
                if candidate not in self._sessions and candidate not in self._retired:
                    return candidate

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @contextlib.asynccontextmanager
    async def run(self) -> AsyncIterator[SessionRegistry]:
        """Own the task group in which session server loops run."""
        if self._task_group is not None:
            raise RuntimeError("SessionRegistry is already running")
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            try:
                yield self
            finally:
                with anyio.CancelScope(shield=True):
                    await self.close_all()
                tg.cancel_scope.cancel()
                self._task_group = None

    async def create_session(self) -> Session:
        """Build, initialize and register a new session.

        Raises whatever ``adapter.initialize()`` raises; nothing is registered
        in that case.
        """
        if self._task_group is None:
            raise RuntimeError("SessionRegistry is not running; use 'async with registry.run()'")

        adapter = self._adapter_factory()
        try:
            await adapter.initialize()
        except BaseException:
            with anyio.CancelScope(shield=True):
                await adapter.aclose()
            raise

        session_id = self._new_session_id()
        transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=self.json_response,
        )
        session = Session(
            session_id=session_id,
            adapter=adapter,
            transport=transport,
            server=SessionServer(adapter, name=self.name, version=self.version),
        )
        self._register(session)
        try:
            await self._task_group.start(self._run_session, session)
        except BaseException:
            self.remove(session_id)
            raise
        logger.info("New session initialized: %s", session_id)
        return session

    async def _run_session(self, session: Session, *, task_status=anyio.TASK_STATUS_IGNORED) -> None:
        try:
            async with session.transport.connect() as (read_stream, write_stream):
                task_status.started()
                try:
                    await session.server.run(read_stream, write_stream)
                except Exception as e:
                    logger.error("Session %s crashed: %s: %s", session.session_id, e.__class__.__name__, e)
        finally:
            self.remove(session.session_id)
            with anyio.CancelScope(shield=True):
                await session.adapter.aclose()

    async def close_all(self) -> None:
        for session_id in self.session_ids():
            session = self.remove(session_id)
            if session is not None:
                await session.transport.terminate()

    # ------------------------------------------------------------------
    # ASGI entry point
    # ------------------------------------------------------------------

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        session = self.get(session_id)

        if session is not None:
            await session.transport.handle_request(scope, receive, send)
            if request.method == "DELETE":
                self.remove(session.session_id)
            return

        if request.method == "POST" and not session_id:
            body = await request.body()
            if is_initialize_request(body):
                try:
                    session = await self.create_session()
                except Exception as e:
                    logger.error("Error creating MCP session: %s: %s", e.__class__.__name__, e)
                    response = jsonrpc_error(INTERNAL_ERROR_CODE, f"Internal server error: {e}", 500)
                    await response(scope, receive, send)
                    return
                await session.transport.handle_request(scope, _replay_receive(body, receive), send)
                return

        logger.debug("Rejected %s request with session id %r", request.method, session_id)
        response = jsonrpc_error(BAD_REQUEST_CODE, NO_VALID_SESSION_MESSAGE, 400)
        await response(scope, receive, send)
