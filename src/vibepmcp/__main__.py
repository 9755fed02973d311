#!/usr/bin/env python3
"""VibePMCP CLI - Main entry point.

Usage (stdio, for MCP clients that spawn the proxy):
    vibepmcp --backend http://localhost:3000

Usage (streamable HTTP on port 3456):
    vibepmcp --http --port 3456
    vibepmcp-http

Command-line flags override the environment, which overrides the config file
(environment: VIBE_SERVER_URL, REQUEST_TIMEOUT, HOST, PORT, LOG_LEVEL, VIBEPMCP_DEBUG).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from pathlib import Path
from typing import Any

from pydantic import ValidationError

from vibepmcp import __version__
from vibepmcp.config import ProxyConfig, configure_logging, load_config
from vibepmcp.errors import ProxyError
from vibepmcp.mcp_utils.debug_logger import DebugLogger

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vibepmcp",
        description="MCP proxy that forwards tool calls to a VibeMCP-Lite backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Stdio mode (for MCP clients like Claude)
  vibepmcp --backend http://localhost:3000

  # HTTP mode (streamable HTTP at /mcp, status at /status)
  vibepmcp --http --host 0.0.0.0 --port 3456
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--http", action="store_true", help="Serve streamable HTTP instead of stdio")
    parser.add_argument("--host", help="Host for HTTP mode (default: $HOST or localhost)")
    parser.add_argument("--port", type=int, help="Port for HTTP mode (default: $PORT or 3456)")
    parser.add_argument("--backend", help="Backend base URL (default: $VIBE_SERVER_URL or http://localhost:3000)")
    parser.add_argument("--timeout", type=int, help="Backend request timeout in milliseconds (default: $REQUEST_TIMEOUT or 30000)")
    parser.add_argument("--log-level", help="Logging level (default: $LOG_LEVEL or info)")
    parser.add_argument("--debug", action="store_true", help="Enable request and tool traces")
    parser.add_argument("--config", type=Path, help="JSON configuration file")
    return parser


def resolve_config(args: argparse.Namespace) -> ProxyConfig:
    """Apply command-line overrides on top of :func:`load_config`."""
    config = load_config(args.config)
    overrides: dict[str, Any] = {}
    if args.host:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.backend:
        overrides["vibe_server_url"] = args.backend
    if args.timeout is not None:
        overrides["timeout_ms"] = args.timeout
    if args.log_level:
        overrides["log_level"] = args.log_level.lower()
    if args.debug:
        overrides["debug"] = True
    if not overrides:
        return config
    config = ProxyConfig(**{**config.model_dump(), **overrides})
    DebugLogger.set_debug_enabled(config.debug)
    return config


def main(argv: list[str] | None = None) -> None:
    """Start the proxy in stdio or HTTP mode."""
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(args)
    except ValidationError as e:
        sys.stderr.write(f"Invalid configuration: {e}\n")
        sys.exit(2)

    configure_logging(config.log_level)
    logger.info("%s %s, backend %s", config.name, config.version, config.vibe_server_url)

    try:
        if args.http:
            from vibepmcp.mcp_server.proxy_server import VibeMcpProxyServer

            VibeMcpProxyServer(config).start()
        else:
            from vibepmcp.stdio import run_stdio_server

            asyncio.run(run_stdio_server(config))
    except KeyboardInterrupt:
        logger.info("Proxy interrupted")
    except ProxyError as e:
        logger.error("Proxy failed to start: %s", e)
        sys.exit(1)


def main_http(argv: list[str] | None = None) -> None:
    """``vibepmcp-http``: same as ``vibepmcp --http``."""
    main(["--http", *(sys.argv[1:] if argv is None else argv)])


if __name__ == "__main__":
    main()
