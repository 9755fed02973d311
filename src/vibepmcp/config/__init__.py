"""Configuration management for VibePMCP.

Provides the proxy configuration model, its loader and logging setup.
"""

from .config_manager import ProxyConfig, configure_logging, load_config

__all__ = [
    "ProxyConfig",
    "configure_logging",
    "load_config",
]
