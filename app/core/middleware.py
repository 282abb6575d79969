import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging import client_ip_var


class TimingMiddleware(BaseHTTPMiddleware):
    """Reports handler latency in ``X-Process-Time`` (seconds)."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Process-Time"] = f"{time.perf_counter() - started:.4f}"
        return response


class ClientIPMiddleware(BaseHTTPMiddleware):
    """Binds the caller IP to every log record emitted while serving the request."""

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        request.state.client_ip = client_ip

        token = client_ip_var.set(client_ip)
        try:
            return await call_next(request)
        finally:
            client_ip_var.reset(token)
