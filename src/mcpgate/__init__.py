"""mcpgate - chat-completion gateway with MCP tool servers."""

__version__ = "0.3.0"
