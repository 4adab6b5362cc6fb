"""Exception hierarchy for mcpgate.

Every module imports from here. The hierarchy is:

    GatewayError
    ├── UpstreamError(provider_id)
    │   ├── UpstreamAuthError
    │   ├── UpstreamRateLimitError(retry_after)
    │   ├── UpstreamTimeoutError
    │   ├── UpstreamOverloadedError
    │   └── ModelNotFoundError
    ├── ToolServerError(server_name)
    │   ├── ServerStartError
    │   └── ServerNotReadyError
    ├── ToolRoutingError
    │   └── NoToolProviderError(tool_name)
    ├── ToolLoopLimitError(max_rounds)
    └── ConfigError
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base exception for all mcpgate errors."""


# ─── Upstream Errors ──────────────────────────────────────────


class UpstreamError(GatewayError):
    """Base for upstream model errors."""

    def __init__(self, provider_id: str, message: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"[{provider_id}] {message}")


class UpstreamAuthError(UpstreamError):
    """Invalid or missing upstream API key."""


class UpstreamRateLimitError(UpstreamError):
    """Rate limit exceeded. Includes retry_after if available."""

    def __init__(self, provider_id: str, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        msg = "Rate limited"
        if retry_after is not None:
            msg += f" (retry after {retry_after}s)"
        super().__init__(provider_id, msg)


class UpstreamTimeoutError(UpstreamError):
    """Model call timed out."""


class UpstreamOverloadedError(UpstreamError):
    """Upstream is overloaded or returned an unexpected API error."""


class ModelNotFoundError(UpstreamError):
    """Requested model not available upstream."""


# ─── Tool Server Errors ───────────────────────────────────────


class ToolServerError(GatewayError):
    """Base for errors raised by a single tool server connection."""

    def __init__(self, server_name: str, message: str) -> None:
        self.server_name = server_name
        super().__init__(f"[{server_name}] {message}")


class ServerStartError(ToolServerError):
    """Spawn or handshake failed."""


class ServerNotReadyError(ToolServerError):
    """Call issued while the connection is not READY."""

    def __init__(self, server_name: str) -> None:
        super().__init__(server_name, "Tool server is not ready")


# ─── Routing / Loop Errors ────────────────────────────────────


class ToolRoutingError(GatewayError):
    """Base for tool routing errors."""


class NoToolProviderError(ToolRoutingError):
    """No healthy tool server exposes the requested tool."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f'No tool server provides tool "{tool_name}"')


class ToolLoopLimitError(GatewayError):
    """The model kept requesting tools past the round limit."""

    def __init__(self, max_rounds: int) -> None:
        self.max_rounds = max_rounds
        super().__init__(f"Tool-call loop limit exceeded ({max_rounds} rounds)")


# ─── Configuration Errors ─────────────────────────────────────


class ConfigError(GatewayError):
    """Invalid configuration."""
