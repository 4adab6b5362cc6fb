"""Health check endpoints."""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])

_START_TIME = time.monotonic()


@router.get("/api/health")
async def health() -> dict[str, Any]:
    """Basic health check -- always returns quickly."""
    return {"status": "ok", "timestamp": int(time.time() * 1000)}


@router.get("/api/health/detailed")
async def health_detailed(request: Request) -> dict[str, Any]:
    """Detailed health check with tool server status."""
    from mcpgate import __version__

    checks: dict[str, Any] = {
        "status": "ok",
        "version": __version__,
        "uptime_seconds": round(time.monotonic() - _START_TIME, 1),
        "components": {},
    }

    registry = getattr(request.app.state, "tool_registry", None)
    if registry is not None:
        stats = registry.stats()
        checks["components"]["tool_servers"] = {
            "configured": stats.configured,
            "total": stats.total,
            "healthy": stats.healthy,
            "tools": stats.tool_count,
            "servers": registry.healthy_servers(),
        }
        # Servers were configured but none survived startup
        if stats.configured and not stats.healthy:
            checks["status"] = "degraded"

    return checks
