"""
NIRA gateway: configuration, WebSocket server and process entry point.

The gateway owns the shared services (database, allow-list, tool registry,
inference client) and hands every WebSocket connection its own Orchestrator.
"""

from gateway.config import ConfigError, NiraConfig, load_config
from gateway.server import create_app

__all__ = ["ConfigError", "NiraConfig", "create_app", "load_config"]
