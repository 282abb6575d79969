from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict, deque

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.status import HTTP_429_TOO_MANY_REQUESTS

from app.core.config import settings

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_SECONDS = 60

# Probes and scrapes are never rate limited
RATE_LIMIT_EXEMPT_PATHS = frozenset({"/api/health", "/metrics"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window rate limit per client IP.

    Counts live in process memory, so each worker limits independently.
    Registrar calls are slow and some cost money, so the domain endpoints
    sit behind this limit.
    """

    def __init__(self, app, limit_per_minute: int | None = None):
        super().__init__(app)
        self.limit = limit_per_minute or settings.RATE_LIMIT_PER_MINUTE
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def _register_hit(self, client_ip: str) -> int | None:
        """Record a request; returns remaining quota, or None when exhausted"""
        now = time.monotonic()
        with self._lock:
            hits = self._hits[client_ip]
            while hits and now - hits[0] >= RATE_LIMIT_WINDOW_SECONDS:
                hits.popleft()
            if len(hits) >= self.limit:
                return None
            hits.append(now)
            return self.limit - len(hits)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in RATE_LIMIT_EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        remaining = self._register_hit(client_ip)
        if remaining is None:
            logger.warning(f"Rate limit exceeded for IP: {client_ip}")
            return Response(
                content='{"success":false,"message":"Too many requests","error_code":"RATE_LIMITED"}',
                status_code=HTTP_429_TOO_MANY_REQUESTS,
                media_type="application/json",
                headers={"Retry-After": str(RATE_LIMIT_WINDOW_SECONDS)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response


async def add_security_headers(request: Request, call_next):
    """Add security headers to responses"""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["Strict-Transport-Security"] = (
        "max-age=31536000; includeSubDomains"
    )
    if not request.url.path.startswith("/api/docs"):
        response.headers["Content-Security-Policy"] = "default-src 'none'"

    return response
