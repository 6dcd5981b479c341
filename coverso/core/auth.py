"""
Auth utilities for the Coverso API.

Validates identity-provider JWTs (HS256 shared secret, or RS256 against a
JWKS endpoint) and extracts the Principal from request context.
Falls back to X-User-Id / X-User-Email / X-User-Name headers outside
production for local development and tests.
"""
import time
import logging
from typing import Optional, Dict, Any

import httpx
import jwt
from fastapi import Header, Request

from coverso.core.config import settings
from coverso.core.errors import UnauthorizedError
from coverso.models.principal import Principal

logger = logging.getLogger("coverso")

# Cache JWKS for 24 hours
JWKS_CACHE_TTL_SECONDS = 86400
_jwks_cache: Dict[str, Any] = {}
_jwks_cache_time: Optional[float] = None


def fetch_jwks(jwks_url: str) -> Dict[str, Any]:
    """Fetch the identity provider's JWKS, cached for a day."""
    global _jwks_cache, _jwks_cache_time

    if _jwks_cache and _jwks_cache_time and (time.time() - _jwks_cache_time) < JWKS_CACHE_TTL_SECONDS:
        return _jwks_cache

    try:
        response = httpx.get(jwks_url, timeout=5.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Failed to fetch JWKS", extra={"error": str(e)})
        raise UnauthorizedError("Token verification unavailable")

    _jwks_cache = response.json()
    _jwks_cache_time = time.time()
    return _jwks_cache


def _rs256_key(token: str, jwks_url: str):
    kid = jwt.get_unverified_header(token).get("kid")
    for jwk in fetch_jwks(jwks_url).get("keys", []):
        if jwk.get("kid") == kid:
            return jwt.PyJWK(jwk).key
    raise UnauthorizedError("Invalid token")


class IdentityProvider:
    """Verifies bearer tokens and maps claims to a Principal."""

    def __init__(
        self,
        secret: Optional[str] = None,
        jwks_url: Optional[str] = None,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
    ):
        self.secret = secret
        self.jwks_url = jwks_url
        self.issuer = issuer
        self.audience = audience

    @classmethod
    def from_settings(cls) -> "IdentityProvider":
        return cls(
            secret=settings.AUTH_JWT_SECRET,
            jwks_url=settings.AUTH_JWKS_URL,
            issuer=settings.AUTH_JWT_ISSUER,
            audience=settings.AUTH_JWT_AUDIENCE,
        )

    @property
    def configured(self) -> bool:
        return bool(self.secret or self.jwks_url)

    def authenticate(self, token: str) -> Principal:
        """
        Verify a JWT and build the Principal.

        Claims: sub -> id, email, name -> display_name.

        Raises:
            UnauthorizedError: Invalid, expired or unverifiable token
        """
        if not self.configured:
            raise UnauthorizedError("Token verification is not configured")

        options = {"verify_aud": bool(self.audience)}
        try:
            if self.jwks_url:
                key = _rs256_key(token, self.jwks_url)
                algorithms = ["RS256"]
            else:
                key = self.secret
                algorithms = ["HS256"]
            payload = jwt.decode(
                token,
                key,
                algorithms=algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options=options,
            )
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError("Token expired")
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid token: {e}")
            raise UnauthorizedError("Invalid token")

        user_id = payload.get("sub")
        if not user_id:
            raise UnauthorizedError("Invalid token")

        return Principal(
            id=user_id,
            email=payload.get("email"),
            display_name=payload.get("name"),
        )


def header_fallback_allowed() -> bool:
    return settings.ENV.lower() != "production"


def get_identity_provider() -> IdentityProvider:
    return IdentityProvider.from_settings()


def resolve_principal(
    request: Request,
    provider: IdentityProvider,
    x_user_id: Optional[str] = None,
    x_user_email: Optional[str] = None,
    x_user_name: Optional[str] = None,
) -> Optional[Principal]:
    """
    Principal for the request, or None when unauthenticated.

    Priority:
    1. Bearer JWT from the Authorization header (invalid tokens are 401)
    2. X-User-* headers outside production
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return provider.authenticate(auth_header[7:])

    if x_user_id and header_fallback_allowed():
        return Principal(id=x_user_id, email=x_user_email, display_name=x_user_name)

    return None


# Plain def: FastAPI runs these in its threadpool since fetch_jwks blocks.

def get_optional_principal(
    request: Request,
    x_user_id: Optional[str] = Header(None, description="Dev/test user ID"),
    x_user_email: Optional[str] = Header(None, description="Dev/test user email"),
    x_user_name: Optional[str] = Header(None, description="Dev/test display name"),
) -> Optional[Principal]:
    principal = resolve_principal(request, get_identity_provider(), x_user_id, x_user_email, x_user_name)
    if principal is not None:
        request.state.user_id = principal.id
    return principal


def get_current_principal(
    request: Request,
    x_user_id: Optional[str] = Header(None, description="Dev/test user ID"),
    x_user_email: Optional[str] = Header(None, description="Dev/test user email"),
    x_user_name: Optional[str] = Header(None, description="Dev/test display name"),
) -> Principal:
    principal = get_optional_principal(request, x_user_id, x_user_email, x_user_name)
    if principal is None:
        raise UnauthorizedError("Missing Authorization (Bearer JWT) or X-User-Id header")
    return principal
