"""Shared test fixtures for mcpgate."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from mcpgate.config.schema import ServerConfig
from mcpgate.tools.connection import ToolServerConnection
from mcpgate.tools.registry import ToolServerRegistry

if TYPE_CHECKING:
    from tests.fixtures.sessions import FakeToolSession


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep gateway env overrides from leaking into tests."""
    for name in (
        "AUTH_TOKENS",
        "UPSTREAM_API_KEYS",
        "UPSTREAM_BASE_URL",
        "DEFAULT_MODEL",
        "REQUEST_TIMEOUT_MS",
        "PORT",
        "LOG_ASSISTANT_RESPONSES",
        "MCPGATE_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_server_config() -> Any:
    """Factory fixture for ServerConfig with sensible defaults."""

    def _make(name: str = "srv", **overrides: Any) -> ServerConfig:
        defaults: dict[str, Any] = {"name": name, "command": "fake-server"}
        defaults.update(overrides)
        return ServerConfig(**defaults)

    return _make


@pytest.fixture
def make_registry() -> Any:
    """Factory for a registry whose connections use fake sessions.

    Takes a mapping of server name to :class:`FakeToolSession`; servers
    missing from the mapping fail to start.
    """
    from tests.fixtures.sessions import FakeSessionFactory

    def _make(
        sessions: dict[str, FakeToolSession], **kwargs: Any
    ) -> ToolServerRegistry:
        def _connection(config: ServerConfig) -> ToolServerConnection:
            session = sessions.get(config.name)
            if session is None:
                factory = FakeSessionFactory(
                    None,  # type: ignore[arg-type]
                    fail_open=FileNotFoundError(f"No such command: {config.command}"),
                )
            else:
                factory = FakeSessionFactory(session)
            return ToolServerConnection(
                config,
                startup_timeout=kwargs.get("startup_timeout", 1.0),
                call_timeout=kwargs.get("call_timeout", 1.0),
                session_factory=factory,
            )

        return ToolServerRegistry(
            startup_timeout=kwargs.get("startup_timeout", 1.0),
            call_timeout=kwargs.get("call_timeout", 1.0),
            connection_factory=_connection,
        )

    return _make
