"""Configuration loading for VibePMCP.

Defaults, then an optional JSON file, then environment overrides.

Environment:
- VIBE_SERVER_URL: backend base URL (default http://localhost:3000)
- REQUEST_TIMEOUT: backend request timeout in milliseconds (default 30000)
- HOST, PORT: HTTP listen address (default localhost:3456)
- LOG_LEVEL: logging verbosity (default info)
- VIBEPMCP_DEBUG: enable request/tool traces
"""

from __future__ import annotations

import json
import logging
import os
import sys

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, field_validator

from vibepmcp.mcp_utils.debug_logger import DebugLogger

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
_TRUTHY = frozenset({"true", "1", "yes", "on"})


class ProxyConfig(BaseModel):
    """Configuration for the proxy and its backend connection."""

    name: str = "VibePMCP"
    version: str = "0.1.0"
    vibe_server_url: str = "http://localhost:3000"
    timeout_ms: int = 30000
    host: str = "localhost"
    port: int = 3456
    log_level: str = "info"
    debug: bool = False

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if value < 1 or value > 65535:
            raise ValueError("Port must be between 1 and 65535")
        return value

    @field_validator("timeout_ms")
    @classmethod
    def _check_timeout(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Timeout must be positive")
        return value

    @field_validator("vibe_server_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        raw = value.strip()
        if not raw:
            raise ValueError("Backend URL cannot be empty")
        if "://" not in raw:
            raw = f"http://{raw}"
        return raw.rstrip("/")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s value: %r", key, raw)
        return None


def _read_config_file(config_file: Path) -> dict[str, Any]:
    try:
        with open(config_file, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load config file {config_file}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config file {config_file}: top level must be an object")
        return {}
    DebugLogger.debug(config_file, f"Loaded configuration from {config_file}")
    return data


def load_config(config_file: Path | None = None, env: Mapping[str, str] | None = None) -> ProxyConfig:
    """Build a :class:`ProxyConfig` from defaults, *config_file* and the environment.

    When *env* is omitted, a ``.env`` file in the working directory is loaded
    first and ``os.environ`` is used.
    """
    if env is None:
        load_dotenv(find_dotenv(usecwd=True))
        env = os.environ

    values: dict[str, Any] = {}
    if config_file is not None and config_file.exists():
        values.update(_read_config_file(config_file))

    url = (env.get("VIBE_SERVER_URL") or "").strip()
    if url:
        values["vibe_server_url"] = url

    timeout_ms = _env_int(env, "REQUEST_TIMEOUT")
    if timeout_ms is not None:
        values["timeout_ms"] = timeout_ms

    host = (env.get("HOST") or "").strip()
    if host:
        values["host"] = host

    port = _env_int(env, "PORT")
    if port is not None:
        values["port"] = port

    log_level = (env.get("LOG_LEVEL") or "").strip()
    if log_level:
        values["log_level"] = log_level.lower()

    if "VIBEPMCP_DEBUG" in env:
        values["debug"] = env["VIBEPMCP_DEBUG"].strip().lower() in _TRUTHY

    config = ProxyConfig(**values)
    DebugLogger.set_debug_enabled(config.debug)
    return config


def configure_logging(level: str = "info") -> None:
    """Send all logging to stderr; stdout belongs to the stdio protocol stream."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, stream=sys.stderr, format=LOG_FORMAT, force=True)
