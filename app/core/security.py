from __future__ import annotations

import logging
import time
from collections import defaultdict, deque

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.status import HTTP_429_TOO_MANY_REQUESTS

from app.core.config import settings
from app.schemas.response import ErrorResponse

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0

# Probes and scrapes are never throttled
EXEMPT_PATHS = frozenset({"/metrics", f"{settings.API_V1_STR}/health"})


class SlidingWindowLimiter:
    """Per-client request timestamps over the last minute, kept in process memory."""

    def __init__(self, limit: int, window_seconds: float = WINDOW_SECONDS):
        self.limit = limit
        self.window = window_seconds
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    def hit(self, client: str, now: float | None = None) -> int | None:
        """Record a request; returns the remaining budget, or None when over the limit."""
        now = time.monotonic() if now is None else now
        hits = self._hits[client]
        while hits and now - hits[0] >= self.window:
            hits.popleft()
        if len(hits) >= self.limit:
            return None
        hits.append(now)
        return self.limit - len(hits)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limit: int | None = None):
        super().__init__(app)
        self.limiter = SlidingWindowLimiter(limit or settings.RATE_LIMIT_PER_MINUTE)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        remaining = self.limiter.hit(client_ip)
        if remaining is None:
            logger.warning("Rate limit exceeded", extra={"path": request.url.path})
            error = ErrorResponse(message="Too many requests", error_code="RATE_LIMITED")
            return JSONResponse(
                status_code=HTTP_429_TOO_MANY_REQUESTS,
                content=error.model_dump(mode="json"),
                headers={"Retry-After": str(int(self.limiter.window))},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limiter.limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response


async def add_security_headers(request: Request, call_next):
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    # Swagger UI pulls its assets from a CDN
    if not request.url.path.startswith(f"{settings.API_V1_STR}/docs"):
        response.headers["Content-Security-Policy"] = "default-src 'self'"
    # Payment and profile responses must not be cached by intermediaries
    if request.url.path.startswith(settings.API_V1_STR):
        response.headers["Cache-Control"] = "no-store"

    return response
