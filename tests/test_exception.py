import pytest
import json
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from coloring_app import exceptions


@pytest.mark.asyncio
async def test_api_exception_handler():
    exc = exceptions.ImageNotFoundException("123")
    request = Request(scope={"type": "http"})
    response: JSONResponse = await exceptions.api_exception_handler(request, exc)

    assert response.status_code == 404
    # JSONResponse body is bytes, need to decode and parse
    body = json.loads(response.body.decode())
    assert body == {
        "success": False,
        "error": "IMAGE_NOT_FOUND",
        "detail": "Image with ID '123' not found.",
    }


@pytest.mark.asyncio
async def test_rate_limited_handler_sets_retry_after():
    exc = exceptions.RateLimitedException(retry_after=42)
    request = Request(scope={"type": "http"})
    response: JSONResponse = await exceptions.api_exception_handler(request, exc)

    assert response.status_code == 429
    assert response.headers["retry-after"] == "42"
    body = json.loads(response.body.decode())
    assert body["error"] == "RATE_LIMITED"
    assert body["retryAfter"] == 42


@pytest.mark.asyncio
async def test_validation_failure_carries_field():
    exc = exceptions.ValidationFailedException("Invalid nextToken", field="nextToken")
    request = Request(scope={"type": "http"})
    response: JSONResponse = await exceptions.api_exception_handler(request, exc)

    assert response.status_code == 400
    body = json.loads(response.body.decode())
    assert body["details"] == [{"field": "nextToken", "message": "Invalid nextToken"}]


@pytest.mark.asyncio
async def test_server_errors_hide_detail():
    exc = exceptions.StorageException("DynamoDB exploded: arn:aws:secret")
    request = Request(scope={"type": "http"})
    response: JSONResponse = await exceptions.api_exception_handler(request, exc)

    assert response.status_code == 500
    body = json.loads(response.body.decode())
    assert body["error"] == "STORAGE_ERROR"
    assert "arn:aws" not in body["detail"]
    assert body["correlationId"]


@pytest.mark.asyncio
async def test_request_validation_handler_returns_400():
    exc = RequestValidationError([
        {"type": "value_error", "loc": ("body", "prompt"), "msg": "Value error, Prompt too long", "input": "x"}
    ])
    request = Request(scope={"type": "http"})
    response: JSONResponse = await exceptions.validation_exception_handler(request, exc)

    assert response.status_code == 400
    body = json.loads(response.body.decode())
    assert body["error"] == "VALIDATION_FAILED"
    assert body["details"] == [{"field": "prompt", "message": "Prompt too long"}]


@pytest.mark.asyncio
async def test_http_exception_handler():
    exc = HTTPException(status_code=403, detail="Forbidden")
    request = Request(scope={"type": "http"})
    response: JSONResponse = await exceptions.http_exception_handler(request, exc)

    assert response.status_code == 403
    body = json.loads(response.body.decode())
    assert body == {"success": False, "error": "HTTP_ERROR", "detail": "Forbidden"}


@pytest.mark.asyncio
async def test_generic_exception_handler():
    exc = ValueError("Something went wrong")
    request = Request(scope={"type": "http"})
    response: JSONResponse = await exceptions.generic_exception_handler(request, exc)

    assert response.status_code == 500
    body = json.loads(response.body.decode())
    assert body["error"] == "INTERNAL_ERROR"
    assert body["detail"] == "An unexpected error occurred. Please try again later."


def test_custom_exceptions_inherit_api_exception():
    exc = exceptions.InvalidImageException("Bad format")
    assert isinstance(exc, exceptions.APIException)
    assert exc.status_code == 400
    assert exc.field == "imageUrl"
    assert "Bad format" in str(exc)


def test_upstream_status_depends_on_exhaustion():
    assert exceptions.UpstreamUnavailableException("x").status_code == 500
    assert exceptions.UpstreamUnavailableException("x", retries_exhausted=True).status_code == 502
