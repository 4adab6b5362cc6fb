"""Minimal stdio tool server used by the integration tests."""

from __future__ import annotations

import json
import sys

from mcp.server.fastmcp import FastMCP

server = FastMCP("echo-server")


@server.tool()
def echo(x: int) -> str:
    """Echo the arguments back as JSON."""
    return json.dumps({"x": x})


@server.tool()
def fail(reason: str) -> str:
    """Always raise."""
    raise ValueError(reason)


if __name__ == "__main__":
    print("echo server starting", file=sys.stderr)
    server.run("stdio")
