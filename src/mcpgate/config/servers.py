"""Tool-server descriptor file (``MCP.json``) loading.

The file maps server names to launch settings::

    {
      "mcpServers": {
        "fetch": {"command": "uvx", "args": ["mcp-server-fetch"]}
      }
    }

An explicit ``tools`` list of ``{"type": "mcp", "server_name": ...,
"server_config": {...}}`` entries, when present and non-empty, takes
precedence over ``mcpServers``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mcpgate.config.schema import ServerConfig

logger = logging.getLogger(__name__)


def _has_command(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    command = entry.get("command")
    return isinstance(command, str) and bool(command.strip())


def _build(name: str, entry: dict[str, Any]) -> ServerConfig | None:
    try:
        return ServerConfig(
            name=name.strip(),
            command=entry["command"].strip(),
            args=entry.get("args") or [],
            env=entry.get("env") or {},
            cwd=entry.get("cwd"),
            description=entry.get("description"),
        )
    except ValidationError as e:
        logger.warning("Skipping invalid MCP server config %r: %s", name, e)
        return None


def _from_tool_list(tools: Any) -> list[ServerConfig]:
    if not isinstance(tools, list):
        return []
    configs: list[ServerConfig] = []
    for tool in tools:
        if not isinstance(tool, dict) or tool.get("type") != "mcp":
            continue
        name = tool.get("server_name")
        if not isinstance(name, str) or not name.strip():
            continue
        entry = tool.get("server_config")
        if not _has_command(entry):
            logger.warning("Skipping MCP tool entry without command: %s", name)
            continue
        config = _build(name, entry)
        if config is not None:
            configs.append(config)
    return configs


def _from_servers(servers: Any) -> list[ServerConfig]:
    if not isinstance(servers, dict):
        return []
    configs: list[ServerConfig] = []
    for name, entry in servers.items():
        if not _has_command(entry):
            logger.warning("Skipping MCP server without command: %s", name)
            continue
        config = _build(name, entry)
        if config is not None:
            configs.append(config)
    return configs


def parse_server_configs(data: dict[str, Any]) -> list[ServerConfig]:
    """Build server configs from a decoded descriptor document."""
    explicit = _from_tool_list(data.get("tools"))
    if explicit:
        logger.info("Loaded %d explicit MCP tool entries", len(explicit))
        return explicit

    derived = _from_servers(data.get("mcpServers"))
    if derived:
        logger.info("Loaded %d MCP server configs", len(derived))
    else:
        logger.warning("No usable MCP servers found in descriptor")
    return derived


def load_server_configs(path: str | Path) -> list[ServerConfig]:
    """Read the descriptor file at *path*.

    A missing file means no tool servers. An unreadable or malformed file
    is logged and also yields no servers.
    """
    p = Path(path)
    if not p.is_file():
        logger.debug("No MCP descriptor at %s, tool servers disabled", p)
        return []
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Cannot parse MCP descriptor %s: %s", p, e)
        return []
    if not isinstance(data, dict):
        logger.error("MCP descriptor %s is not a JSON object", p)
        return []
    return parse_server_configs(data)
