"""Utility helpers shared across the proxy."""

from .debug_logger import DebugLogger

__all__ = ["DebugLogger"]
