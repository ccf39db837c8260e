"""Bearer token verification."""
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Dict, Optional
import logging
import time

import requests
from jose import JWTError, jwt

from coloring_app.exceptions import InvalidTokenException, UpstreamUnavailableException
from coloring_app.prompting.models import CamelModel
from coloring_app.settings import settings

log = logging.getLogger(__name__)


class AuthIdentity(CamelModel):
    uid: str
    email: Optional[str] = None
    display_name: str = "User"
    email_verified: bool = False
    provider: str = "unknown"
    auth_time: Optional[int] = None
    issued_at: Optional[int] = None
    expires_at: Optional[int] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "AuthIdentity":
        uid = claims.get("sub") or claims.get("user_id") or claims.get("uid")
        if not uid:
            raise InvalidTokenException("Token has no subject")
        email = claims.get("email")
        display_name = claims.get("name") or (email.split("@")[0] if email else "User")
        firebase = claims.get("firebase") or {}
        return cls(
            uid=uid,
            email=email,
            display_name=display_name,
            email_verified=bool(claims.get("email_verified", False)),
            provider=firebase.get("sign_in_provider", "unknown"),
            auth_time=claims.get("auth_time"),
            issued_at=claims.get("iat"),
            expires_at=claims.get("exp"),
        )


class IdentityVerifier(ABC):
    @abstractmethod
    def verify(self, token: str) -> AuthIdentity:
        """Returns the caller identity, raises InvalidTokenException."""


class JWTIdentityVerifier(IdentityVerifier):
    """
        Verifies signed JWTs either with a shared secret (HS256) or with the
        x509 certificates an identity provider publishes at certs_url (RS256).
        Certificates are cached for certs_cache_seconds.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: str = "HS256",
        certs_url: Optional[str] = None,
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
        certs_cache_seconds: int = 3600,
    ):
        if not secret and not certs_url:
            raise ValueError("JWTIdentityVerifier needs a secret or a certs_url")
        self.secret = secret
        self.algorithm = "RS256" if certs_url and not secret else algorithm
        self.certs_url = certs_url
        self.audience = audience
        self.issuer = issuer
        self.certs_cache_seconds = certs_cache_seconds
        self._certs: Dict[str, str] = {}
        self._certs_fetched_at = 0.0
        self._lock = Lock()

    @classmethod
    def from_settings(cls) -> "JWTIdentityVerifier":
        return cls(
            secret=settings.auth_jwt_secret,
            algorithm=settings.auth_jwt_algorithm,
            certs_url=settings.auth_certs_url,
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
            certs_cache_seconds=settings.auth_certs_cache_seconds,
        )

    def fetch_certs(self) -> Dict[str, str]:
        with self._lock:
            if self._certs and time.monotonic() - self._certs_fetched_at < self.certs_cache_seconds:
                return self._certs
            try:
                resp = requests.get(self.certs_url, timeout=10)
                resp.raise_for_status()
                certs = resp.json()
            except (requests.RequestException, ValueError) as e:
                log.error(f"Fetching signing certificates failed: {e}")
                raise UpstreamUnavailableException("Identity provider is unavailable")
            self._certs = certs
            self._certs_fetched_at = time.monotonic()
            log.info("Loaded %d signing certificates", len(certs))
            return certs

    def signing_key(self, token: str) -> str:
        if self.secret:
            return self.secret
        try:
            kid = jwt.get_unverified_header(token).get("kid")
        except JWTError:
            raise InvalidTokenException("Malformed token")
        key = self.fetch_certs().get(kid)
        if key is None:
            raise InvalidTokenException("Unknown signing key")
        return key

    def verify(self, token: str) -> AuthIdentity:
        key = self.signing_key(token)
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except JWTError as e:
            log.debug(f"Token rejected: {e}")
            raise InvalidTokenException()
        return AuthIdentity.from_claims(claims)


class DisabledIdentityVerifier(IdentityVerifier):
    """Installed when neither AUTH_JWT_SECRET nor AUTH_CERTS_URL is set."""

    def verify(self, token: str) -> AuthIdentity:
        raise InvalidTokenException("Authentication is not configured")


def build_verifier() -> IdentityVerifier:
    if settings.auth_jwt_secret or settings.auth_certs_url:
        return JWTIdentityVerifier.from_settings()
    log.warning("No AUTH_JWT_SECRET or AUTH_CERTS_URL set, gallery endpoints will reject all tokens")
    return DisabledIdentityVerifier()
