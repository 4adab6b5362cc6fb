"""Pydantic models for mcpgate configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ServerConfig(BaseModel):
    """Launch settings for one MCP tool server."""

    model_config = ConfigDict(frozen=True)

    name: str
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    cwd: str | None = None
    description: str | None = None


class UpstreamConfig(BaseModel):
    """OpenAI-compatible upstream model service."""

    base_url: str = "https://api.openai.com/v1"
    api_keys: list[str] = Field(default_factory=list)
    api_keys_env: str | None = "UPSTREAM_API_KEYS"
    default_model: str = "gpt-4o-mini"
    timeout: float = 60.0
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None


class ToolsConfig(BaseModel):
    """Tool server orchestration settings."""

    enabled: bool = True
    servers_file: str = "MCP.json"
    max_rounds: int = Field(default=5, ge=1)
    startup_timeout: float = 30.0
    call_timeout: float = 60.0


class APIConfig(BaseModel):
    """REST API server settings."""

    host: str = "127.0.0.1"
    port: int = 8080
    auth_tokens: list[str] = Field(default_factory=list)
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    structured: bool = False
    log_assistant_responses: bool = False


class GatewayConfig(BaseModel):
    """Top-level configuration for mcpgate."""

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
