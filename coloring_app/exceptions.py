"""
    Centralized exception handling for the FastAPI application.

    Services raise the APIException subclasses below directly; the handlers
    registered by add_exception_handlers() turn them into JSON responses.
"""
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

log = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Error codes returned in the `error` field of failure responses."""
    VALIDATION_FAILED = "VALIDATION_FAILED"
    CONTENT_POLICY_VIOLATION = "CONTENT_POLICY_VIOLATION"
    RATE_LIMITED = "RATE_LIMITED"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_TOKEN = "INVALID_TOKEN"
    IMAGE_NOT_FOUND = "IMAGE_NOT_FOUND"
    STORAGE_ERROR = "STORAGE_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class APIException(Exception):
    """Base class for API exceptions."""
    error_code = ErrorCode.INTERNAL_ERROR

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(self.detail)


class ValidationFailedException(APIException):
    """Exception for request fields that fail validation."""
    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, detail: str, field: Optional[str] = None):
        self.field = field
        super().__init__(status_code=400, detail=detail)


class InvalidImageException(ValidationFailedException):
    """Exception for image URLs or payloads that cannot be decoded."""
    def __init__(self, detail: str):
        super().__init__(detail=detail, field="imageUrl")


class ContentPolicyViolationException(APIException):
    """Exception for content judged inappropriate for a family audience."""
    error_code = ErrorCode.CONTENT_POLICY_VIOLATION

    def __init__(self, detail: str = "Content must be family-friendly. Please try a different prompt."):
        super().__init__(status_code=400, detail=detail)


class RateLimitedException(APIException):
    """Exception for throttled requests, local or upstream."""
    error_code = ErrorCode.RATE_LIMITED

    def __init__(self, retry_after: int, detail: str = "Too many requests. Please try again later."):
        self.retry_after = max(int(retry_after), 1)
        super().__init__(status_code=429, detail=detail)


class UpstreamUnavailableException(APIException):
    """Exception for failing model provider calls.

    Maps to 502 once the fallback tier has also failed, 500 otherwise.
    """
    error_code = ErrorCode.UPSTREAM_UNAVAILABLE

    def __init__(self, detail: str, retries_exhausted: bool = False):
        self.retries_exhausted = retries_exhausted
        super().__init__(status_code=502 if retries_exhausted else 500, detail=detail)


class UnauthenticatedException(APIException):
    """Exception for requests without a bearer token."""
    error_code = ErrorCode.UNAUTHENTICATED

    def __init__(self, detail: str = "No token provided"):
        super().__init__(status_code=401, detail=detail)


class InvalidTokenException(APIException):
    """Exception for bearer tokens that fail verification."""
    error_code = ErrorCode.INVALID_TOKEN

    def __init__(self, detail: str = "Invalid authentication token"):
        super().__init__(status_code=401, detail=detail)


class ImageNotFoundException(APIException):
    """Exception for when an image is not found."""
    error_code = ErrorCode.IMAGE_NOT_FOUND

    def __init__(self, image_id: str):
        super().__init__(status_code=404, detail=f"Image with ID '{image_id}' not found.")


class StorageException(APIException):
    """Exception for DynamoDB and S3 failures."""
    error_code = ErrorCode.STORAGE_ERROR

    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)


def error_body(error_code: ErrorCode, detail: str, **extra: Any) -> Dict[str, Any]:
    body = {"success": False, "error": error_code.value, "detail": detail}
    body.update(extra)
    return body


def _server_error_response(exc: Exception, status_code: int, error_code: ErrorCode) -> JSONResponse:
    correlation_id = uuid4().hex[:12]
    log.error(f"[{correlation_id}] {type(exc).__name__}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status_code,
        content=error_body(
            error_code,
            "An unexpected error occurred. Please try again later.",
            correlationId=correlation_id,
        ),
    )


async def api_exception_handler(request: Request, exc: APIException):
    """Handles API exceptions."""
    if exc.status_code >= 500:
        return _server_error_response(exc, exc.status_code, exc.error_code)

    log.warning(f"API Exception: {exc.detail}")
    extra: Dict[str, Any] = {}
    headers = None
    if isinstance(exc, ValidationFailedException) and exc.field:
        extra["details"] = [{"field": exc.field, "message": exc.detail}]
    if isinstance(exc, RateLimitedException):
        extra["retryAfter"] = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error_code, exc.detail, **extra),
        headers=headers,
    )


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Renders request validation errors as 400 with field-level detail."""
    details: List[Dict[str, str]] = []
    for err in exc.errors():
        message = err.get("msg", "Invalid value")
        # pydantic prefixes messages raised from custom validators
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append({"field": _field_name(err.get("loc", ())), "message": message})
    log.warning("Validation failed: %s", details)
    return JSONResponse(
        status_code=400,
        content=error_body(ErrorCode.VALIDATION_FAILED, "Validation failed", details=details),
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handles FastAPI HTTP exceptions."""
    log.error(f"HTTP Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(ErrorCode.HTTP_ERROR, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handles all other exceptions."""
    return _server_error_response(exc, 500, ErrorCode.INTERNAL_ERROR)


def add_exception_handlers(app):
    """Adds exception handlers to the FastAPI app."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
