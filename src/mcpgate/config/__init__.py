"""Configuration loading and validation."""

from mcpgate.config.loader import load_config
from mcpgate.config.schema import (
    APIConfig,
    GatewayConfig,
    LoggingConfig,
    ServerConfig,
    ToolsConfig,
    UpstreamConfig,
)
from mcpgate.config.servers import load_server_configs, parse_server_configs

__all__ = [
    "APIConfig",
    "GatewayConfig",
    "LoggingConfig",
    "ServerConfig",
    "ToolsConfig",
    "UpstreamConfig",
    "load_config",
    "load_server_configs",
    "parse_server_configs",
]
