"""Tool server registry: one aggregated view over many connections.

Starts every configured server concurrently, keeps only the ones that
came up, flattens their catalogs and routes tool calls by name.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mcpgate.core.errors import NoToolProviderError
from mcpgate.tools.base import CatalogEntry
from mcpgate.tools.connection import ToolServerConnection

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from mcpgate.config.schema import ServerConfig
    from mcpgate.tools.base import ToolCallResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RegistryStats:
    """Connection and tool counts, for health reporting."""

    total: int
    healthy: int
    tool_count: int
    configured: int = 0


class ToolServerRegistry:
    """Owns the set of tool server connections.

    Connections are kept in configuration order. When several servers
    expose the same tool name, the first one in that order handles it.
    """

    def __init__(
        self,
        *,
        startup_timeout: float = 30.0,
        call_timeout: float = 60.0,
        connection_factory: Callable[[ServerConfig], ToolServerConnection] | None = None,
    ) -> None:
        self._connections: dict[str, ToolServerConnection] = {}
        self._initialized = False
        self._configured = 0
        self._startup_timeout = startup_timeout
        self._call_timeout = call_timeout
        self._connection_factory = connection_factory or self._default_connection

    def _default_connection(self, config: ServerConfig) -> ToolServerConnection:
        return ToolServerConnection(
            config,
            startup_timeout=self._startup_timeout,
            call_timeout=self._call_timeout,
        )

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ── Startup ──────────────────────────────────────────────────

    async def initialize(self, configs: Iterable[ServerConfig]) -> None:
        """Start every configured server concurrently.

        Servers that fail to start are dropped. Never raises for a
        start failure; a second call is a no-op.
        """
        if self._initialized:
            logger.warning("Tool server registry already initialized")
            return

        candidates: dict[str, ToolServerConnection] = {}
        for config in configs:
            if not config.command.strip():
                logger.warning("Skipping tool server without command: %s", config.name)
                continue
            if config.name in candidates:
                logger.warning("Skipping duplicate tool server name: %s", config.name)
                continue
            candidates[config.name] = self._connection_factory(config)

        self._initialized = True
        self._configured = len(candidates)
        if not candidates:
            logger.info("No tool servers configured")
            return

        self._connections = dict(candidates)
        results = await asyncio.gather(
            *(conn.start() for conn in candidates.values()),
            return_exceptions=True,
        )
        for (name, conn), result in zip(candidates.items(), results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Dropping tool server %s: %s", name, result)
                del self._connections[name]
                await conn.stop()

        if self._connections:
            logger.info(
                "Tool server registry ready: %d/%d servers (%s)",
                len(self._connections),
                len(candidates),
                ", ".join(self._connections),
            )
        else:
            logger.warning("No tool servers started successfully")
        self._warn_duplicate_tools()

    def _warn_duplicate_tools(self) -> None:
        owners: dict[str, str] = {}
        for entry in self.list_all_tools():
            owner = owners.setdefault(entry.tool.name, entry.server_name)
            if owner != entry.server_name:
                logger.warning(
                    "Tool %s from server %s is shadowed by server %s",
                    entry.tool.name,
                    entry.server_name,
                    owner,
                )

    # ── Catalog ──────────────────────────────────────────────────

    def list_all_tools(self) -> list[CatalogEntry]:
        """Return every tool from every healthy server."""
        return [
            CatalogEntry(server_name=name, tool=tool)
            for name, conn in self._connections.items()
            if conn.is_healthy()
            for tool in conn.list_tools()
        ]

    def healthy_servers(self) -> list[str]:
        return [name for name, conn in self._connections.items() if conn.is_healthy()]

    def get(self, server_name: str) -> ToolServerConnection:
        """Get a connection by server name.

        Raises:
            KeyError: If the server is not in the active set.
        """
        if server_name not in self._connections:
            msg = f"Tool server not found: {server_name}"
            raise KeyError(msg)
        return self._connections[server_name]

    # ── Routing ──────────────────────────────────────────────────

    def resolve(self, tool_name: str) -> ToolServerConnection:
        """Return the first healthy connection that exposes *tool_name*.

        Raises:
            NoToolProviderError: If no healthy server has the tool.
        """
        for conn in self._connections.values():
            if conn.is_healthy() and conn.has_tool(tool_name):
                return conn
        raise NoToolProviderError(tool_name)

    async def call_tool(
        self, tool_name: str, arguments: dict[str, Any] | None = None
    ) -> ToolCallResult:
        """Route a tool call to its owning server."""
        conn = self.resolve(tool_name)
        return await conn.call_tool(tool_name, arguments or {})

    # ── Shutdown ─────────────────────────────────────────────────

    async def shutdown(self) -> None:
        """Stop every connection concurrently. Safe to call repeatedly."""
        if self._connections:
            logger.info("Stopping %d tool servers", len(self._connections))
            results = await asyncio.gather(
                *(conn.stop() for conn in self._connections.values()),
                return_exceptions=True,
            )
            for name, result in zip(self._connections, results, strict=True):
                if isinstance(result, BaseException):
                    logger.error("Failed to stop tool server %s: %s", name, result)
        self._connections.clear()
        self._initialized = False
        self._configured = 0

    # ── Reporting ────────────────────────────────────────────────

    def stats(self) -> RegistryStats:
        return RegistryStats(
            total=len(self._connections),
            healthy=len(self.healthy_servers()),
            tool_count=len(self.list_all_tools()),
            configured=self._configured,
        )

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, server_name: str) -> bool:
        return server_name in self._connections
