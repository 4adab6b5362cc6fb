"""Main CLI application.

Click commands for the mcpgate gateway: serve, tools, ask.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

import click

from mcpgate import __version__
from mcpgate.config.loader import load_config
from mcpgate.core.errors import ConfigError, GatewayError

if TYPE_CHECKING:
    from mcpgate.config.schema import GatewayConfig
    from mcpgate.providers.keys import ApiKeyPool
    from mcpgate.providers.openai import OpenAIUpstream
    from mcpgate.tools.conversation import ToolConversation
    from mcpgate.tools.registry import ToolServerRegistry

logger = logging.getLogger(__name__)


# ── Helpers ──────────────────────────────────────────────────────


def _error(msg: str) -> None:
    """Print an error message to stderr and exit."""
    click.echo(f"Error: {msg}", err=True)
    sys.exit(1)


def _load_config(config_path: str | None) -> GatewayConfig:
    """Load config with user-friendly error handling."""
    try:
        return load_config(path=config_path)
    except ConfigError as e:
        _error(str(e))
        raise  # unreachable, keeps mypy happy


async def _setup_registry(config: GatewayConfig) -> ToolServerRegistry:
    """Build the tool server registry and start every configured server."""
    from mcpgate.config.servers import load_server_configs
    from mcpgate.tools.registry import ToolServerRegistry

    registry = ToolServerRegistry(
        startup_timeout=config.tools.startup_timeout,
        call_timeout=config.tools.call_timeout,
    )
    if not config.tools.enabled:
        logger.info("Tool use disabled; no tool servers started")
        return registry

    await registry.initialize(load_server_configs(config.tools.servers_file))
    return registry


def _setup_upstream(config: GatewayConfig) -> tuple[OpenAIUpstream, ApiKeyPool]:
    """Instantiate the upstream adapter and its API key pool."""
    from mcpgate.providers.keys import ApiKeyPool
    from mcpgate.providers.openai import OpenAIUpstream

    return OpenAIUpstream(config.upstream), ApiKeyPool(config.upstream.api_keys)


def _build_conversation(
    config: GatewayConfig,
    registry: ToolServerRegistry,
    upstream: OpenAIUpstream,
    key_pool: ApiKeyPool,
) -> ToolConversation:
    from mcpgate.tools.conversation import ToolConversation
    from mcpgate.tools.executor import ToolCallExecutor

    return ToolConversation(
        upstream,
        ToolCallExecutor(registry),
        key_pool=key_pool if len(key_pool) else None,
        max_rounds=config.tools.max_rounds,
    )


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="mcpgate")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """mcpgate - Tool-calling gateway for OpenAI-compatible models.

    Runs stdio tool servers and lets the upstream model call them.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ── ask ──────────────────────────────────────────────────────────


@cli.command()
@click.argument("question")
@click.option(
    "--model",
    default=None,
    help="Upstream model id (overrides config default_model).",
)
@click.option(
    "--max-rounds",
    type=int,
    default=None,
    help="Max tool-call rounds (overrides config).",
)
@click.option(
    "--tools/--no-tools",
    default=None,
    help="Enable/disable tool use (overrides config).",
)
@click.pass_context
def ask(
    ctx: click.Context,
    question: str,
    model: str | None,
    max_rounds: int | None,
    tools: bool | None,
) -> None:
    """Ask the upstream model a question, letting it call tools.

    Prints the final answer, followed by the tool history when any
    tools ran.
    """
    config = _load_config(ctx.obj["config_path"])
    if max_rounds is not None:
        if max_rounds < 1:
            _error("--max-rounds must be >= 1")
        config.tools.max_rounds = max_rounds
    if tools is not None:
        config.tools.enabled = tools

    try:
        content, history = asyncio.run(
            _ask_async(question, config, model or config.upstream.default_model)
        )
    except GatewayError as e:
        _error(str(e))
        return  # unreachable

    from mcpgate.cli.display import GatewayDisplay

    display = GatewayDisplay()
    if history:
        display.show_tool_history(history)
    display.show_answer(content)


async def _ask_async(
    question: str, config: GatewayConfig, model: str
) -> tuple[str, str]:
    """Run one conversation; return the answer and its tool history."""
    from mcpgate.providers.base import UserMessage
    from mcpgate.tools.history import format_tool_history, has_tool_calls

    registry = await _setup_registry(config)
    upstream, key_pool = _setup_upstream(config)
    try:
        conversation = _build_conversation(config, registry, upstream, key_pool)
        result = await conversation.run(
            [UserMessage(content=question)],
            model,
            use_tools=config.tools.enabled,
        )
    finally:
        await registry.shutdown()
        await upstream.close()

    history = ""
    if has_tool_calls(result.messages):
        history = format_tool_history(result.messages)
    return result.response.content, history


# ── tools ────────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def tools(ctx: click.Context) -> None:
    """Start every configured tool server and list its tools."""
    config = _load_config(ctx.obj["config_path"])
    try:
        asyncio.run(_tools_async(config))
    except GatewayError as e:
        _error(str(e))


async def _tools_async(config: GatewayConfig) -> None:
    """Async implementation for the tools command."""
    from mcpgate.cli.display import GatewayDisplay

    registry = await _setup_registry(config)
    try:
        entries = registry.list_all_tools()
        stats = registry.stats()
    finally:
        await registry.shutdown()

    display = GatewayDisplay()
    if not entries:
        click.echo("No tools available.")
        click.echo(
            f"Configure tool servers in {config.tools.servers_file} "
            "(mcpServers section)."
        )
    else:
        display.show_catalog(entries)
    display.show_stats(stats)


# ── serve ────────────────────────────────────────────────────────


@cli.command()
@click.option("--host", default=None, help="Host to bind to (overrides config).")
@click.option(
    "--port", type=int, default=None, help="Port to bind to (overrides config)."
)
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the REST API server."""
    import uvicorn

    from mcpgate.api.app import create_app
    from mcpgate.logs import setup_logging

    config = _load_config(ctx.obj["config_path"])
    setup_logging(config.logging)

    effective_host = host or config.api.host
    effective_port = port or config.api.port
    if not config.api.auth_tokens:
        click.echo("Warning: no auth tokens configured, API is open.", err=True)
    click.echo(f"API: http://{effective_host}:{effective_port}/api")

    app = create_app(config)
    uvicorn.run(app, host=effective_host, port=effective_port)
