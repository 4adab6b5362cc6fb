"""Core errors shared across mcpgate."""

from mcpgate.core.errors import (
    ConfigError,
    GatewayError,
    ModelNotFoundError,
    NoToolProviderError,
    ServerNotReadyError,
    ServerStartError,
    ToolLoopLimitError,
    ToolRoutingError,
    ToolServerError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamOverloadedError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)

__all__ = [
    "ConfigError",
    "GatewayError",
    "ModelNotFoundError",
    "NoToolProviderError",
    "ServerNotReadyError",
    "ServerStartError",
    "ToolLoopLimitError",
    "ToolRoutingError",
    "ToolServerError",
    "UpstreamAuthError",
    "UpstreamError",
    "UpstreamOverloadedError",
    "UpstreamRateLimitError",
    "UpstreamTimeoutError",
]
