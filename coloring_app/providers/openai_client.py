import logging
from typing import Optional

import openai

from coloring_app.exceptions import (
    APIException,
    ContentPolicyViolationException,
    RateLimitedException,
    UpstreamUnavailableException,
)
from coloring_app.settings import settings

log = logging.getLogger(__name__)

CONTENT_POLICY_CODES = {"content_policy_violation", "moderation_blocked"}


def has_api_key() -> bool:
    return bool(settings.openai_api_key)


def build_client() -> openai.OpenAI:
    """OpenAI client bounded by the configured timeout, SDK retries disabled."""
    client = openai.OpenAI(
        api_key=settings.openai_api_key,
        timeout=settings.openai_timeout_seconds,
        max_retries=settings.openai_max_retries,
    )
    log.info("Initialized OpenAI client")
    return client


def _retry_after(exc: openai.APIStatusError) -> int:
    headers = getattr(exc.response, "headers", None) or {}
    value: Optional[str] = headers.get("retry-after")
    try:
        return int(float(value)) if value else settings.default_retry_after_seconds
    except ValueError:
        return settings.default_retry_after_seconds


def is_content_policy_error(exc: Exception) -> bool:
    if not isinstance(exc, openai.BadRequestError):
        return False
    code = getattr(exc, "code", None)
    return code in CONTENT_POLICY_CODES or "content_policy" in str(exc).lower()


def translate_openai_error(exc: Exception, operation: str, retries_exhausted: bool = False) -> APIException:
    """Maps an openai SDK error onto the API exception hierarchy."""
    if isinstance(exc, APIException):
        return exc
    if is_content_policy_error(exc):
        return ContentPolicyViolationException(
            "The request was rejected by the image provider's content policy. Please try a different prompt."
        )
    if isinstance(exc, openai.RateLimitError):
        return RateLimitedException(retry_after=_retry_after(exc))
    if isinstance(exc, openai.APITimeoutError):
        return UpstreamUnavailableException(f"{operation} timed out", retries_exhausted=retries_exhausted)
    if isinstance(exc, openai.APIStatusError):
        return UpstreamUnavailableException(
            f"{operation} failed with status {exc.status_code}", retries_exhausted=retries_exhausted
        )
    return UpstreamUnavailableException(f"{operation} failed: {exc}", retries_exhausted=retries_exhausted)
