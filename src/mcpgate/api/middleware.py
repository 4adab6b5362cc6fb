"""API middleware: bearer-token authentication, request logging."""

from __future__ import annotations

import logging
import re
import secrets
import time
from typing import TYPE_CHECKING, ClassVar

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from fastapi import Request, Response

logger = logging.getLogger(__name__)

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def parse_bearer(header_value: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer`` header."""
    if not header_value:
        return None
    match = _BEARER_RE.match(header_value.strip())
    return match.group(1).strip() if match else None


class BearerTokenMiddleware(BaseHTTPMiddleware):
    """Validate ``Authorization: Bearer`` against configured tokens.

    With no tokens configured every request is let through (dev mode).
    """

    EXEMPT_PATHS: ClassVar[set[str]] = {
        "/api/health",
        "/api/health/detailed",
        "/docs",
        "/openapi.json",
        "/redoc",
    }

    def __init__(self, app: object, tokens: Iterable[str] = ()) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self.tokens = [t for t in tokens if t]

    def _accepts(self, token: str) -> bool:
        return any(secrets.compare_digest(token, t) for t in self.tokens)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path

        if path in self.EXEMPT_PATHS or not path.startswith("/api/"):
            return await call_next(request)

        if not self.tokens:
            return await call_next(request)

        token = parse_bearer(request.headers.get("Authorization"))
        if token is None or not self._accepts(token):
            logger.warning("Rejected request to %s: bad auth token", path)
            return JSONResponse(status_code=401, content={"detail": "Bad auth token"})

        return await call_next(request)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and latency of every request."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.0fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.monotonic() - start) * 1000,
        )
        return response
