"""Configuration loading: TOML files, env var overrides, merge logic.

Discovery order (later overrides earlier):
    1. Built-in defaults (Pydantic model defaults)
    2. User config: ``~/.config/mcpgate/config.toml``
    3. Project-local config: ``./mcpgate.toml``
    4. ``$MCPGATE_CONFIG`` environment variable (explicit path)
    5. Explicit ``path`` argument
    6. Environment variable overrides (see ``_ENV_OVERRIDES``)
    7. Programmatic overrides (passed to ``load_config``)

Upstream API keys listed in ``upstream.api_keys_env`` (comma separated)
are appended to ``upstream.api_keys`` after validation.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from mcpgate.core.errors import ConfigError

from .schema import GatewayConfig

_TRUE_WORDS = frozenset({"true", "1", "yes", "y", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "n", "off"})


def _user_config_path() -> Path:
    """Return XDG-compliant user config path."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "mcpgate" / "config.toml"


def _project_config_path() -> Path:
    """Return project-local config path."""
    return Path.cwd() / "mcpgate.toml"


def _discover_config_files() -> list[Path]:
    """Return config files in merge order (first = lowest priority)."""
    paths: list[Path] = []

    user = _user_config_path()
    if user.is_file():
        paths.append(user)

    project = _project_config_path()
    if project.is_file():
        paths.append(project)

    env_path = os.environ.get("MCPGATE_CONFIG")
    if env_path:
        p = Path(env_path)
        if not p.is_file():
            msg = f"MCPGATE_CONFIG points to non-existent file: {env_path}"
            raise ConfigError(msg)
        paths.append(p)

    return paths


def _read_toml(path: Path) -> dict[str, Any]:
    """Read and parse a TOML file."""
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Cannot read config file {path}: {e}"
        raise ConfigError(msg) from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override wins on conflicts."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def split_list(value: str | None) -> list[str]:
    """Split a comma separated env value, dropping blanks."""
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a yes/no style env value, falling back to *default*."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_WORDS:
        return True
    if normalized in _FALSE_WORDS:
        return False
    return default


def _env_overrides() -> dict[str, Any]:
    """Collect overrides from the process environment."""
    env = os.environ
    upstream: dict[str, Any] = {}
    api: dict[str, Any] = {}
    logging_cfg: dict[str, Any] = {}

    if env.get("UPSTREAM_BASE_URL"):
        upstream["base_url"] = env["UPSTREAM_BASE_URL"]
    if env.get("DEFAULT_MODEL"):
        upstream["default_model"] = env["DEFAULT_MODEL"]
    if env.get("REQUEST_TIMEOUT_MS"):
        try:
            upstream["timeout"] = float(env["REQUEST_TIMEOUT_MS"]) / 1000
        except ValueError as e:
            msg = f"REQUEST_TIMEOUT_MS is not a number: {env['REQUEST_TIMEOUT_MS']}"
            raise ConfigError(msg) from e
    if env.get("AUTH_TOKENS"):
        api["auth_tokens"] = split_list(env["AUTH_TOKENS"])
    if env.get("PORT"):
        api["port"] = env["PORT"]
    if "LOG_ASSISTANT_RESPONSES" in env:
        logging_cfg["log_assistant_responses"] = parse_bool(
            env["LOG_ASSISTANT_RESPONSES"]
        )

    overrides: dict[str, Any] = {}
    if upstream:
        overrides["upstream"] = upstream
    if api:
        overrides["api"] = api
    if logging_cfg:
        overrides["logging"] = logging_cfg
    return overrides


def _resolve_api_keys(config: GatewayConfig) -> None:
    """Append upstream API keys from the configured env var (in-place)."""
    upstream = config.upstream
    if not upstream.api_keys_env:
        return
    for key in split_list(os.environ.get(upstream.api_keys_env)):
        if key not in upstream.api_keys:
            upstream.api_keys.append(key)


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> GatewayConfig:
    """Load and validate configuration.

    Args:
        path: Explicit config file path (highest file priority).
        overrides: Dict of overrides merged last (highest overall priority).

    Returns:
        Validated GatewayConfig instance.

    Raises:
        ConfigError: On invalid TOML, missing files, or validation failure.
    """
    merged: dict[str, Any] = {}

    files = _discover_config_files()

    if path is not None:
        p = Path(path)
        if not p.is_file():
            msg = f"Config file not found: {path}"
            raise ConfigError(msg)
        files.append(p)

    for config_file in files:
        data = _read_toml(config_file)
        merged = _deep_merge(merged, data)

    merged = _deep_merge(merged, _env_overrides())

    if overrides:
        merged = _deep_merge(merged, overrides)

    try:
        config = GatewayConfig.model_validate(merged)
    except Exception as e:
        msg = f"Configuration validation failed: {e}"
        raise ConfigError(msg) from e

    _resolve_api_keys(config)

    return config
