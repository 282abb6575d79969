import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.router import api_router
from app.core.config import settings
from app.core.error_handlers import register_exception_handlers
from app.core.logging import setup_logging
from app.core.middleware import ClientIPMiddleware, TimingMiddleware
from app.core.security import RateLimitMiddleware, add_security_headers
from app.services.provider_selector import provider_selector

SERVICE_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Domain service started (default provider: "
        f"{provider_selector.get_provider().value})"
    )
    yield
    # Pooled registrar connections
    await provider_selector.aclose()
    logger.info("Domain service shutting down")


def create_app() -> FastAPI:
    setup_logging()

    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Domain search, purchase and DNS setup across registrars",
        version=SERVICE_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
        debug=settings.DEBUG,
    )

    # Added last runs first: ClientIP wraps everything so rate-limit logs carry the IP
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RateLimitMiddleware)
    application.add_middleware(BaseHTTPMiddleware, dispatch=add_security_headers)
    application.add_middleware(TimingMiddleware)
    application.add_middleware(ClientIPMiddleware)

    application.include_router(api_router, prefix=settings.API_V1_STR)

    @application.get("/api/health", tags=["Health"])
    async def health_check():
        """Liveness probe; also reports the active registrar"""
        return {
            "status": "healthy",
            "service": "domain-service",
            "version": SERVICE_VERSION,
            "provider": provider_selector.get_provider().value,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    register_exception_handlers(application)
    Instrumentator().instrument(application).expose(application, endpoint="/metrics")

    return application


app = create_app()
