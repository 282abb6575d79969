"""Response envelopes shared by every endpoint and exception handler."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, field_serializer

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class BaseResponse(BaseModel, Generic[T]):
    """Envelope: success flag, message, UTC timestamp and an optional payload."""

    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable outcome")
    timestamp: datetime = Field(default_factory=_utcnow, description="UTC time of the response")
    data: T | None = Field(None, description="Payload; null for errors")

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat() + "Z"


class SuccessResponse(BaseResponse[T], Generic[T]):
    success: bool = Field(True, description="Always true")
    message: str = Field("Operation completed successfully")
    data: T = Field(..., description="Payload")


class ErrorResponse(BaseResponse[None]):
    """Error envelope produced by the global exception handlers."""

    success: bool = Field(False, description="Always false")
    data: None = Field(None, description="Always null")
    error_code: str = Field(..., description="Machine-readable code, e.g. CREDENTIALS_MISSING")
    details: dict[str, Any] | None = Field(None, description="Structured context")


class ValidationErrorDetail(BaseModel):
    field: str = Field(..., description="Dotted location of the invalid field")
    message: str
    value: Any = Field(None, description="Rejected input")


class ValidationErrorResponse(ErrorResponse):
    error_code: str = Field("VALIDATION_ERROR")
    details: dict[str, Any] = Field(..., description="Summary, e.g. error_count")
    validation_errors: list[ValidationErrorDetail] = Field(
        ..., description="One entry per rejected field"
    )
