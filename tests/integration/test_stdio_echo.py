"""End-to-end tests against a real stdio tool server subprocess."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from mcpgate.config.schema import ServerConfig
from mcpgate.core.errors import ServerStartError
from mcpgate.tools.base import ConnectionStatus, TextPart, ToolInvocation
from mcpgate.tools.connection import ToolServerConnection
from mcpgate.tools.executor import ToolCallExecutor
from mcpgate.tools.registry import ToolServerRegistry

ECHO_SERVER = Path(__file__).parent.parent / "fixtures" / "echo_server.py"


def _echo_config(name: str = "echo") -> ServerConfig:
    return ServerConfig(name=name, command=sys.executable, args=[str(ECHO_SERVER)])


@pytest.fixture
async def connection():
    conn = ToolServerConnection(_echo_config(), startup_timeout=30.0)
    await conn.start()
    yield conn
    await conn.stop()


class TestEchoServer:
    async def test_handshake_and_catalog(self, connection) -> None:
        assert connection.status is ConnectionStatus.READY
        assert connection.server_info is not None
        assert connection.server_info.name == "echo-server"
        names = {tool.name for tool in connection.list_tools()}
        assert {"echo", "fail"} <= names

    async def test_call_echo(self, connection) -> None:
        result = await connection.call_tool("echo", {"x": 1})
        assert not result.is_error
        assert isinstance(result.content[0], TextPart)
        assert result.content[0].text == '{"x": 1}'

    async def test_tool_error_keeps_connection(self, connection) -> None:
        result = await connection.call_tool("fail", {"reason": "nope"})
        assert result.is_error
        assert connection.is_healthy()

    async def test_stop(self) -> None:
        conn = ToolServerConnection(_echo_config(), startup_timeout=30.0)
        await conn.start()
        await conn.stop()
        assert conn.status is ConnectionStatus.STOPPED
        assert conn.list_tools() == []


class TestRegistryOverStdio:
    async def test_executor_round_trip(self) -> None:
        registry = ToolServerRegistry(startup_timeout=30.0, call_timeout=30.0)
        await registry.initialize(
            [
                _echo_config(),
                ServerConfig(name="ghost", command="/nonexistent/mcp-server"),
            ]
        )
        try:
            stats = registry.stats()
            assert stats.configured == 2
            assert stats.total == 1
            assert stats.healthy == 1

            executor = ToolCallExecutor(registry)
            outcomes = await executor.execute_batch(
                [
                    ToolInvocation("c1", "echo", '{"x": 1}'),
                    ToolInvocation("c2", "fail", '{"reason": "boom"}'),
                ]
            )
            assert [o.call_id for o in outcomes] == ["c1", "c2"]
            assert outcomes[0].text == '{"x": 1}'
            assert not outcomes[0].is_error
            assert outcomes[1].is_error
            assert "boom" in outcomes[1].text
        finally:
            await registry.shutdown()

    async def test_missing_command(self) -> None:
        conn = ToolServerConnection(
            ServerConfig(name="ghost", command="/nonexistent/mcp-server"),
            startup_timeout=10.0,
        )
        with pytest.raises(ServerStartError):
            await conn.start()
        assert conn.status is ConnectionStatus.ERROR
