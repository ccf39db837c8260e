from typing import Optional
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from coloring_app.auth.verifier import AuthIdentity, IdentityVerifier
from coloring_app.exceptions import APIException, UnauthenticatedException
from coloring_app.gallery.store import GalleryStore
from coloring_app.generation.service import ImageGenerator
from coloring_app.prompting.refiner import PromptRefiner
from coloring_app.rate_limit import GenerationRateLimiter

log = logging.getLogger(__name__)

# missing credentials are reported by get_current_user, not by HTTPBearer's 403
bearer = HTTPBearer(auto_error=False)


def get_gallery_store(request: Request) -> GalleryStore:
    """Dependency provider for the GalleryStore"""
    return request.app.state.gallery


def get_refiner(request: Request) -> PromptRefiner:
    """Dependency provider for the PromptRefiner"""
    return request.app.state.refiner


def get_image_generator(request: Request) -> ImageGenerator:
    """Dependency provider for the ImageGenerator"""
    return request.app.state.image_generator


def get_verifier(request: Request) -> IdentityVerifier:
    """Dependency provider for the IdentityVerifier"""
    return request.app.state.verifier


def get_rate_limiter(request: Request) -> GenerationRateLimiter:
    return request.app.state.rate_limiter


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    verifier: IdentityVerifier = Depends(get_verifier),
) -> AuthIdentity:
    """Resolves the bearer token to an identity or fails with 401."""
    if creds is None or not creds.credentials:
        raise UnauthenticatedException()
    return verifier.verify(creds.credentials)


def get_optional_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    verifier: IdentityVerifier = Depends(get_verifier),
) -> Optional[AuthIdentity]:
    """Like get_current_user, but anonymous or invalid callers get None."""
    if creds is None or not creds.credentials:
        return None
    try:
        return verifier.verify(creds.credentials)
    except APIException as e:
        log.debug(f"Ignoring bearer token: {e.detail}")
        return None


def enforce_rate_limit(
    request: Request,
    limiter: GenerationRateLimiter = Depends(get_rate_limiter),
):
    client = request.client.host if request.client else "unknown"
    limiter.check(client)
