"""Exception hierarchy for the VibePMCP proxy.

Backend-reported failures (an envelope with ``success: false``) are not
exceptions; the adapter turns them into text. Everything here is either a
contract violation or a transport problem.
"""

from __future__ import annotations


class ProxyError(Exception):
    """Base class for proxy errors."""


class NotInitializedError(ProxyError):
    """Raised when an operation is used before ``initialize()`` completed."""

    def __init__(self, component: str = "ProxyAdapter"):
        super().__init__(f"{component} not initialized. Call initialize() first.")
        self.component = component


class RemoteCommunicationError(ProxyError):
    """Raised when the backend cannot be reached or answers with garbage."""


class DiscoveryError(ProxyError):
    """Raised when the backend command list or command metadata cannot be fetched."""


class UnknownCommandError(ProxyError):
    """Raised when metadata is requested for a command the backend did not report."""

    def __init__(self, name: str):
        super().__init__(f"Command '{name}' not found on server.")
        self.name = name
