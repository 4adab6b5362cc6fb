"""GET /api/tools -- list the tools the model can call."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(prefix="/api", tags=["tools"])


class ToolInfo(BaseModel):
    server: str
    name: str
    description: str | None = None
    server_description: str | None = None


@router.get("/tools", response_model=list[ToolInfo])
async def list_tools(request: Request) -> list[ToolInfo]:
    """Every tool exposed by a healthy tool server.

    ``server_description`` comes from the server's MCP.json entry.
    """
    registry = request.app.state.tool_registry
    server_descriptions = {
        name: registry.get(name).config.description
        for name in registry.healthy_servers()
    }
    return [
        ToolInfo(
            server=entry.server_name,
            name=entry.tool.name,
            description=entry.tool.description,
            server_description=server_descriptions.get(entry.server_name),
        )
        for entry in registry.list_all_tools()
    ]
