"""Authentication dependencies producing the per-request user session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWTError

from app.core.config import settings
from app.core.database import get_database
from app.core.exceptions import AuthorizationException, UnauthorizedException
from app.core.token_blocklist import is_token_blocked
from app.utils.jwt import (
    extract_roles,
    get_token_expiry,
    token_fingerprint,
    verify_access_token,
)

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class UserSession:
    """
    Authenticated caller for the lifetime of one request.

    Built from the bearer token and handed explicitly to every service call;
    the profile (and with it the numeric user id) is resolved on demand by
    AuthService.resolve_profile.
    """

    token: str
    email: str
    roles: tuple[str, ...] = field(default_factory=tuple)
    expires_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return settings.ADMIN_ROLE in self.roles

    @property
    def fingerprint(self) -> str:
        return token_fingerprint(self.token)

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def get_authorization_header(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    """
    Extract the bearer token from the request.

    Args:
        credentials: HTTP authorization credentials

    Returns:
        Token string or None
    """
    if not credentials:
        return None

    # Only accept Bearer scheme
    if credentials.scheme.lower() != "bearer":
        return None

    return credentials.credentials or None


async def build_session(token: str, database=None) -> UserSession:
    """
    Verify a raw token and turn it into a UserSession.

    Raises:
        UnauthorizedException: If token is invalid, expired, or revoked
    """
    try:
        payload = verify_access_token(token)
    except PyJWTError as e:
        raise UnauthorizedException(f"Authentication failed: {str(e)}") from e

    if await is_token_blocked(token_fingerprint(token), database):
        raise UnauthorizedException("Token has been revoked")

    return UserSession(
        token=token,
        email=payload["sub"],
        roles=extract_roles(payload),
        expires_at=get_token_expiry(payload),
    )


async def get_current_session(
    token: str | None = Depends(get_authorization_header),
    database=Depends(get_database),
) -> UserSession:
    """Session for endpoints that require a signed-in user."""
    if not token:
        raise UnauthorizedException("Authorization header missing")
    return await build_session(token, database)


async def get_optional_session(
    token: str | None = Depends(get_authorization_header),
    database=Depends(get_database),
) -> UserSession | None:
    """Session if a credential was sent, None for anonymous callers."""
    if not token:
        return None
    return await build_session(token, database)


async def require_admin(
    session: UserSession = Depends(get_current_session),
) -> UserSession:
    """
    Require the admin role for access.

    Raises:
        AuthorizationException: If the caller is not an admin
    """
    if not session.is_admin:
        logger.warning("Admin access denied", extra={"roles": list(session.roles)})
        raise AuthorizationException("Admin access required")

    return session
