"""Debug logger utility for VibePMCP.

Verbose request and tool traces, gated by a process-wide toggle
(``VIBEPMCP_DEBUG`` or ``--debug``). Output goes through :mod:`logging`, which
the entry points bind to stderr so the stdio protocol stream stays clean.
"""

from __future__ import annotations

import json
import logging
import time

from typing import Any

logger = logging.getLogger(__name__)

MAX_PAYLOAD_CHARS = 200


def truncate_payload(payload: Any, limit: int = MAX_PAYLOAD_CHARS) -> str:
    """Render *payload* as compact text, cut to *limit* characters."""
    if payload is None:
        return ""
    if isinstance(payload, str):
        text = payload
    else:
        try:
            text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)
        except (TypeError, ValueError):
            text = repr(payload)
    if len(text) > limit:
        return f"{text[:limit]}...(+{len(text) - limit} chars)"
    return text


class DebugLogger:
    """Debug logger utility that respects the debug toggle."""

    _debug_enabled: bool = False

    @staticmethod
    def set_debug_enabled(enabled: bool) -> None:
        DebugLogger._debug_enabled = enabled

    @staticmethod
    def is_debug_enabled() -> bool:
        return DebugLogger._debug_enabled

    @staticmethod
    def debug(source: Any, message: str) -> None:
        """Log a debug message if debug mode is enabled.

        Args:
            source: The source object for the log message
            message: The message to log
        """
        if DebugLogger._debug_enabled:
            logger.info(f"[DEBUG] {message}")

    @staticmethod
    def debug_request(source: Any, method: str, path: str, payload: Any = None) -> None:
        """Trace one backend request: method, path and a truncated payload."""
        if DebugLogger._debug_enabled:
            message = f"[DEBUG-HTTP] {method.upper()} {path}"
            rendered = truncate_payload(payload)
            if rendered:
                message += f" {rendered}"
            logger.info(message)

    @staticmethod
    def debug_tool_execution(source: Any, tool_name: str, status: str, details: str | None = None) -> None:
        """Log a tool execution debug message if debug mode is enabled.

        Args:
            source: The source object for the log message
            tool_name: The name of the tool being executed
            status: The status (START, SUCCESS, ERROR)
            details: Additional details (optional)
        """
        if DebugLogger._debug_enabled:
            message = f"[DEBUG-TOOL] {tool_name} - {status}"
            if details:
                message += f": {details}"
            logger.info(message)

    @classmethod
    def time_operation(cls, source: Any, operation_name: str):
        """Context manager to time an operation and log the duration.

        Example:
            with DebugLogger.time_operation(self, "create-project"):
                text = await adapter.create_project(name, description)
        """

        class Timer:
            def __init__(self, src: Any, op: str):
                self.source = src
                self.operation = op
                self.start_time: float | None = None

            def __enter__(self):
                self.start_time = time.time()
                cls.debug_tool_execution(self.source, self.operation, "START")
                return self

            def __exit__(self, exc_type, exc_val, exc_tb):
                if self.start_time is not None:
                    duration_ms = int((time.time() - self.start_time) * 1000)
                    status = "ERROR" if exc_type else "SUCCESS"
                    details = f"{duration_ms}ms"
                    if exc_val is not None:
                        details += f" ({exc_type.__name__}: {exc_val})"
                    cls.debug_tool_execution(self.source, self.operation, status, details)
                return False

        return Timer(source, operation_name)
