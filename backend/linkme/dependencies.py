"""
LinkMe Backend - FastAPI Dependencies
=======================================

What:  Request-scoped collaborators injected into route handlers.

    get_current_user  → AuthUser from the Bearer JWT (401 otherwise)
    get_geo_locator   → the GeoLocator opened by the lifespan handler

Usage:
    @router.get("/profiles")
    async def list_profiles(user: AuthUser = Depends(get_current_user)):
        ...

Tokens are issued by the LinkMe login service and signed with the shared
JWT_SECRET. The `sub` claim carries the account UUID.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ConfigDict

from linkme.config import settings
from linkme.exceptions import AuthenticationError
from linkme.services.enrichment import GeoLocator

logger = logging.getLogger(__name__)

# auto_error=False: a missing header becomes our AuthenticationError (401),
# not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


class AuthUser(BaseModel):
    """Authenticated caller as asserted by the token. No database lookup."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None


def decode_token(token: str) -> AuthUser:
    """
    Verify a JWT and extract the caller.

    Raises:
        AuthenticationError: bad signature, expired, or `sub` is not a UUID
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise AuthenticationError(message="Token has expired")
    except JWTError as e:
        logger.warning("JWT validation failed: %s", str(e))
        raise AuthenticationError(message="Invalid token")

    subject = payload.get("sub") or payload.get("user_id")
    if not subject:
        raise AuthenticationError(message="Invalid token: missing user ID")
    try:
        user_id = UUID(str(subject))
    except ValueError:
        logger.warning("Token subject is not a UUID")
        raise AuthenticationError(message="Invalid token: malformed user ID")

    return AuthUser(id=user_id, email=payload.get("email"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthUser:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    return decode_token(credentials.credentials)


def get_geo_locator(request: Request) -> GeoLocator:
    """
    The process-wide GeoLocator stored on app.state at startup.

    Falls back to a disabled locator when the lifespan did not run (e.g. an
    app driven directly through an ASGI transport).
    """
    locator = getattr(request.app.state, "geo_locator", None)
    if locator is None:
        return GeoLocator(None)
    return locator
