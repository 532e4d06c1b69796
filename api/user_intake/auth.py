# auth.py
# Bearer credential parsing and JWT validation against the identity authority.
#
# Two modes, picked from Settings:
#   - jwks          : RS256, signing keys fetched from AUTH_JWKS_URL (cached)
#   - shared-secret : HS256 with JWT_SECRET_KEY
# Issuer and audience are checked when configured; exp is always required.

import logging
from typing import Optional, Protocol

import jwt
from jwt.exceptions import PyJWKClientConnectionError

from .config import Settings
from .errors import DependencyFailure, Unauthenticated

BEARER_SCHEME = "bearer"


def parse_authorization(header: Optional[str]) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    value = (header or "").strip()
    if not value:
        raise Unauthenticated("Authentication required.")

    parts = value.split()
    if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME:
        raise Unauthenticated("Authorization header must be 'Bearer <token>'.")
    return parts[1]


class TokenValidator(Protocol):
    def validate(self, token: str) -> dict:
        """Return the token's claims, or raise Unauthenticated / DependencyFailure."""
        ...


class JwtTokenValidator:
    def __init__(
        self,
        *,
        secret: Optional[str] = None,
        jwks_client: Optional[jwt.PyJWKClient] = None,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        leeway: float = 30.0,
    ):
        if (secret is None) == (jwks_client is None):
            raise ValueError("Provide exactly one of secret or jwks_client")
        self._secret = secret
        self._jwks_client = jwks_client
        self._issuer = issuer
        self._audience = audience
        self._leeway = leeway

    @classmethod
    def from_settings(cls, settings: Settings) -> "JwtTokenValidator":
        if settings.jwks_url:
            client = jwt.PyJWKClient(
                settings.jwks_url,
                cache_keys=True,
                timeout=settings.auth_timeout,
            )
            logging.info("Token validation mode: JWKS (%s)", settings.jwks_url)
            return cls(
                jwks_client=client,
                issuer=settings.issuer,
                audience=settings.audience,
                leeway=settings.auth_leeway,
            )
        logging.info("Token validation mode: shared secret")
        return cls(
            secret=settings.jwt_secret,
            issuer=settings.issuer,
            audience=settings.audience,
            leeway=settings.auth_leeway,
        )

    def _signing_key(self, token: str):
        if self._jwks_client is None:
            return self._secret, ["HS256"]
        try:
            return self._jwks_client.get_signing_key_from_jwt(token).key, ["RS256"]
        except PyJWKClientConnectionError as e:
            logging.error("Could not reach identity authority: %s", e)
            raise DependencyFailure("Identity authority unavailable.") from e

    def validate(self, token: str) -> dict:
        try:
            key, algorithms = self._signing_key(token)
            return jwt.decode(
                token,
                key,
                algorithms=algorithms,
                audience=self._audience,
                issuer=self._issuer,
                leeway=self._leeway,
                options={"require": ["exp"], "verify_aud": self._audience is not None},
            )
        except jwt.ExpiredSignatureError:
            logging.warning("Rejected token: expired")
            raise Unauthenticated("Token has expired.") from None
        except jwt.PyJWTError as e:
            logging.warning("Rejected token: %s", type(e).__name__)
            raise Unauthenticated("Invalid token.") from None

