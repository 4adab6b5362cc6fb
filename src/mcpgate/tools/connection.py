"""Connection to a single MCP tool server subprocess.

Each :class:`ToolServerConnection` owns one provider process and one
``mcp.ClientSession`` over its stdio. The SDK's transports are anyio
context managers that must be entered and exited by the same task, so the
session lives inside a dedicated owner task: :meth:`start` launches it and
waits for the handshake, :meth:`stop` signals it to unwind.
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Protocol

from mcpgate import __version__
from mcpgate.core.errors import ServerNotReadyError, ServerStartError
from mcpgate.tools.base import (
    ConnectionStatus,
    ServerInfo,
    ToolCallResult,
    ToolSchema,
    parse_call_result,
    parse_tool_schema,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from contextlib import AbstractAsyncContextManager

    from mcpgate.config.schema import ServerConfig

logger = logging.getLogger(__name__)

CLIENT_NAME = "mcpgate"


class ToolSession(Protocol):
    """The subset of ``mcp.ClientSession`` a connection relies on."""

    async def initialize(self) -> Any: ...

    async def list_tools(self) -> Any: ...

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        read_timeout_seconds: timedelta | None = None,
    ) -> Any: ...


class _StderrPump:
    """Pipe a child's stderr into the log, one DEBUG record per line."""

    def __init__(self, server_name: str) -> None:
        self._server_name = server_name
        read_fd, write_fd = os.pipe()
        self.writer = os.fdopen(write_fd, "w")
        self._reader_file = os.fdopen(read_fd, "rb")
        self._transport: asyncio.BaseTransport | None = None
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        self._transport, _ = await loop.connect_read_pipe(
            lambda: asyncio.StreamReaderProtocol(reader), self._reader_file
        )
        self._task = asyncio.create_task(self._drain(reader))

    def release_writer(self) -> None:
        """Drop the parent's copy of the write end once the child holds it."""
        if not self.writer.closed:
            self.writer.close()

    async def _drain(self, reader: asyncio.StreamReader) -> None:
        while line := await reader.readline():
            message = line.decode(errors="replace").strip()
            if message:
                logger.debug("stderr [%s] %s", self._server_name, message)

    async def close(self) -> None:
        self.release_writer()
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        if self._transport is not None:
            self._transport.close()
        elif not self._reader_file.closed:
            self._reader_file.close()


@asynccontextmanager
async def open_stdio_session(config: ServerConfig) -> AsyncIterator[ToolSession]:
    """Spawn *config*'s command and yield an MCP client session over stdio."""
    from mcp import ClientSession, StdioServerParameters
    from mcp.client.stdio import stdio_client
    from mcp.types import Implementation

    params = StdioServerParameters(
        command=config.command,
        args=list(config.args),
        env={**os.environ, **config.env},
        cwd=config.cwd,
    )
    pump = _StderrPump(config.name)
    await pump.start()
    try:
        async with stdio_client(params, errlog=pump.writer) as (read, write):
            pump.release_writer()
            async with ClientSession(
                read,
                write,
                client_info=Implementation(name=CLIENT_NAME, version=__version__),
            ) as session:
                yield session
    finally:
        await pump.close()


class ToolServerConnection:
    """Lifecycle, handshake, catalog and health of one tool server.

    Status moves IDLE → STARTING → READY on success and to ERROR on a
    failed handshake or teardown. A failed tool call never changes status.
    """

    def __init__(
        self,
        config: ServerConfig,
        *,
        startup_timeout: float = 30.0,
        call_timeout: float = 60.0,
        session_factory: Callable[[ServerConfig], AbstractAsyncContextManager[ToolSession]]
        | None = None,
    ) -> None:
        self.config = config
        self._startup_timeout = startup_timeout
        self._call_timeout = call_timeout
        self._session_factory = session_factory or open_stdio_session
        self._status = ConnectionStatus.IDLE
        self._tools: list[ToolSchema] = []
        self._server_info: ServerInfo | None = None
        self._session: ToolSession | None = None
        self._owner_task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def server_info(self) -> ServerInfo | None:
        return self._server_info

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> None:
        """Spawn the server, run the handshake and fetch its tools.

        Raises:
            ServerStartError: If spawn, handshake or startup timeout fails.
                The connection is left in ERROR; no retry is attempted.
        """
        if self._status in (ConnectionStatus.STARTING, ConnectionStatus.READY):
            logger.warning(
                "Tool server %s already %s", self.name, self._status.value
            )
            return

        self._status = ConnectionStatus.STARTING
        logger.info(
            "Starting tool server %s: %s %s",
            self.name,
            self.config.command,
            " ".join(self.config.args),
        )

        ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._stop_event = asyncio.Event()
        self._owner_task = asyncio.create_task(
            self._own_session(ready, self._stop_event),
            name=f"tool-server:{self.name}",
        )

        try:
            await asyncio.wait_for(ready, timeout=self._startup_timeout)
        except Exception as exc:
            await self._abort_owner()
            self._status = ConnectionStatus.ERROR
            self._session = None
            logger.error("Tool server %s failed to start: %s", self.name, exc)
            if isinstance(exc, TimeoutError):
                msg = f"Startup timed out after {self._startup_timeout}s"
            else:
                msg = f"Startup failed: {exc}"
            raise ServerStartError(self.name, msg) from exc

        self._status = ConnectionStatus.READY
        logger.info(
            "Tool server %s ready (%s, %d tools)",
            self.name,
            self._server_info,
            len(self._tools),
        )

    async def _own_session(
        self, ready: asyncio.Future[None], stop_event: asyncio.Event
    ) -> None:
        """Hold the session open until *stop_event* is set."""
        try:
            async with self._session_factory(self.config) as session:
                init = await session.initialize()
                info = getattr(init, "serverInfo", None)
                if info is not None:
                    self._server_info = ServerInfo(name=info.name, version=info.version)
                self._session = session
                await self.refresh_tools()
                if not ready.done():
                    ready.set_result(None)
                await stop_event.wait()
        except Exception as exc:
            if not ready.done():
                ready.set_exception(exc)
                return
            raise
        finally:
            self._session = None

    async def _abort_owner(self) -> None:
        task, self._owner_task = self._owner_task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def stop(self) -> None:
        """Close the session and terminate the process. Never raises."""
        if self._status in (ConnectionStatus.IDLE, ConnectionStatus.STOPPED):
            return

        logger.info("Stopping tool server %s", self.name)
        task, self._owner_task = self._owner_task, None
        if self._stop_event is not None:
            self._stop_event.set()

        try:
            if task is not None:
                await asyncio.wait_for(task, timeout=self._startup_timeout)
        except Exception as exc:
            logger.error("Error while stopping tool server %s: %s", self.name, exc)
            self._status = ConnectionStatus.ERROR
        else:
            self._status = ConnectionStatus.STOPPED
            logger.info("Tool server %s stopped", self.name)
        finally:
            self._session = None
            self._tools = []
            self._server_info = None

    # ── Catalog ──────────────────────────────────────────────────

    async def refresh_tools(self) -> list[ToolSchema]:
        """Re-fetch the tool catalog. A failure leaves an empty catalog."""
        session = self._session
        if session is None:
            raise ServerNotReadyError(self.name)
        try:
            result = await session.list_tools()
        except Exception as exc:
            logger.error("Failed to list tools on %s: %s", self.name, exc)
            self._tools = []
            return []

        raw_tools = getattr(result, "tools", None) or []
        self._tools = [parse_tool_schema(raw) for raw in raw_tools]
        if not self._tools:
            logger.warning("Tool server %s reported no tools", self.name)
        else:
            logger.debug(
                "Tool server %s tools: %s",
                self.name,
                [t.name for t in self._tools],
            )
        return list(self._tools)

    def list_tools(self) -> list[ToolSchema]:
        """Return the cached catalog."""
        return list(self._tools)

    def has_tool(self, name: str) -> bool:
        return any(t.name == name for t in self._tools)

    # ── Calls ────────────────────────────────────────────────────

    async def call_tool(
        self, name: str, arguments: dict[str, Any] | None = None
    ) -> ToolCallResult:
        """Run one ``tools/call`` round trip.

        Raises:
            ServerNotReadyError: If the connection is not READY.
        """
        session = self._session
        if self._status is not ConnectionStatus.READY or session is None:
            raise ServerNotReadyError(self.name)

        logger.info("Calling tool %s on %s", name, self.name)
        try:
            raw = await session.call_tool(
                name,
                arguments or {},
                read_timeout_seconds=timedelta(seconds=self._call_timeout),
            )
        except Exception as exc:
            logger.error("Tool %s on %s failed: %s", name, self.name, exc)
            raise

        result = parse_call_result(raw)
        logger.info(
            "Tool %s on %s returned %d parts (is_error=%s)",
            name,
            self.name,
            len(result.content),
            result.is_error,
        )
        return result

    def is_healthy(self) -> bool:
        return self._status is ConnectionStatus.READY and self._session is not None

    def __repr__(self) -> str:
        return f"ToolServerConnection(name={self.name!r}, status={self._status.value})"
