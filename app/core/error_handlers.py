"""Global exception handlers rendering every failure as an ErrorResponse envelope."""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.exceptions import BaseAPIException, ExternalServiceException
from app.core.logging import sanitize_log_data
from app.schemas.response import (
    ErrorResponse,
    ValidationErrorDetail,
    ValidationErrorResponse,
)

logger = logging.getLogger(__name__)


def _envelope(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def base_api_exception_handler(
    request: Request, exc: BaseAPIException
) -> JSONResponse:
    """
    Render service exceptions.

    Missing credentials and registrar outages are server-side problems and
    log at error level; input and registration refusals log as warnings.
    """
    context = {
        "error_code": exc.error_code,
        "status_code": exc.status_code,
        "details": sanitize_log_data(exc.details),
        "path": request.url.path,
    }
    if isinstance(exc, ExternalServiceException):
        context["service"] = exc.service_name

    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.message}", extra=context)
    else:
        logger.warning(f"{exc.error_code}: {exc.message}", extra=context)

    return _envelope(
        exc.status_code,
        ErrorResponse(message=exc.message, error_code=exc.error_code, details=exc.details),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request body/path validation failures field by field."""
    validation_errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            value=error.get("input"),
        )
        for error in exc.errors()
    ]
    logger.warning(
        f"Request validation failed on {len(validation_errors)} field(s)",
        extra={
            "path": request.url.path,
            "fields": [e.field for e in validation_errors],
        },
    )

    return _envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ValidationErrorResponse(
            message="Validation failed",
            validation_errors=validation_errors,
            details={"error_count": len(validation_errors)},
        ),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.warning(
        f"HTTP {exc.status_code}: {exc.detail}",
        extra={"status_code": exc.status_code, "path": request.url.path},
    )

    return _envelope(
        exc.status_code,
        ErrorResponse(
            message=str(exc.detail),
            error_code="HTTP_ERROR",
            details={"status_code": exc.status_code},
        ),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: never leak internals, always log the traceback."""
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.url.path}",
        exc_info=True,
        extra={"path": request.url.path, "exception_type": type(exc).__name__},
    )

    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponse(
            message="An unexpected error occurred",
            error_code="INTERNAL_SERVER_ERROR",
            details={"exception_type": type(exc).__name__},
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAPIException, base_api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
