"""Custom exception classes for standardized error handling."""

from typing import Any


class BaseAPIException(Exception):
    """Base exception class for all API exceptions."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(BaseAPIException):
    """Exception for validation errors."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=422,
            details=details,
        )


class NotFoundException(BaseAPIException):
    """A domain the active registrar does not manage."""

    def __init__(self, resource: str = "Resource", name: str | None = None):
        message = f"{resource} {name} not found" if name else f"{resource} not found"
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=404,
            details={"name": name} if name else None,
        )


class CredentialsMissingException(BaseAPIException):
    """Registrar credentials are not configured. Raised before any network call."""

    def __init__(self, provider: str, missing: list[str] | None = None):
        super().__init__(
            message=f"{provider} API credentials not configured",
            error_code="CREDENTIALS_MISSING",
            status_code=500,
            details={"provider": provider, "missing": missing or []},
        )
        self.provider = provider


class ExternalServiceException(BaseAPIException):
    """Exception for external service errors."""

    def __init__(
        self,
        service_name: str,
        message: str = "External service error",
        details: dict[str, Any] | None = None,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
        status_code: int = 502,
    ):
        super().__init__(
            message=f"{service_name}: {message}",
            error_code=error_code,
            status_code=status_code,
            details=details,
        )
        self.service_name = service_name
        self.reason = message


class ProviderHTTPException(ExternalServiceException):
    """Transport failure or non-2xx status from a registrar."""

    def __init__(
        self,
        service_name: str,
        message: str = "Registrar request failed",
        status: int | None = None,
    ):
        super().__init__(
            service_name=service_name,
            message=message,
            details={"status": status} if status is not None else None,
            error_code="PROVIDER_HTTP_ERROR",
        )
        self.status = status


class ProviderParseException(ExternalServiceException):
    """A registrar answered, but without its success marker."""

    def __init__(self, service_name: str, message: str = "Unexpected response"):
        super().__init__(
            service_name=service_name,
            message=message,
            error_code="PROVIDER_PARSE_ERROR",
        )


class RegistrationException(BaseAPIException):
    """The registrar refused a domain registration."""

    def __init__(self, message: str, error_number: str | None = None):
        super().__init__(
            message=message,
            error_code="REGISTRATION_ERROR",
            status_code=400,
            details={"error_number": error_number} if error_number else None,
        )
        self.error_number = error_number


class DNSRecordRejectedException(ExternalServiceException):
    """A registrar answered a DNS change with its own refusal."""

    def __init__(self, service_name: str, message: str):
        super().__init__(
            service_name=service_name,
            message=message,
            error_code="DNS_RECORD_REJECTED",
        )
