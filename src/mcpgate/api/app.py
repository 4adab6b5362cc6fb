"""FastAPI application factory for the mcpgate REST API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from mcpgate.config.schema import GatewayConfig


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan handler: start tool servers + upstream client, tear down on exit."""
    from mcpgate.cli.app import _setup_registry, _setup_upstream

    config: GatewayConfig = app.state.config
    registry = await _setup_registry(config)
    upstream, key_pool = _setup_upstream(config)

    app.state.tool_registry = registry
    app.state.upstream = upstream
    app.state.key_pool = key_pool

    try:
        yield
    finally:
        await registry.shutdown()
        await upstream.close()


def create_app(config: GatewayConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    from mcpgate import __version__
    from mcpgate.config.loader import load_config

    if config is None:
        config = load_config()

    app = FastAPI(
        title="mcpgate",
        description="Tool-calling gateway for OpenAI-compatible models",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    # ── Middleware (Starlette runs in reverse order of addition) ──
    from fastapi.middleware.cors import CORSMiddleware

    from mcpgate.api.middleware import BearerTokenMiddleware, RequestLogMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLogMiddleware)

    # Bearer auth (added last, runs first)
    app.add_middleware(BearerTokenMiddleware, tokens=config.api.auth_tokens)

    # Routes
    from mcpgate.api.health import router as health_router
    from mcpgate.api.routes.chat import router as chat_router
    from mcpgate.api.routes.tools import router as tools_router

    app.include_router(health_router)
    app.include_router(chat_router)
    app.include_router(tools_router)

    return app
