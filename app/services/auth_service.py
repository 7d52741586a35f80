"""Authentication service: login/registration relay, logout and profile lookup."""

import logging
from datetime import UTC, datetime

from pydantic import ValidationError

from app.core.auth_dependencies import UserSession
from app.core.exceptions import (
    BusinessLogicException,
    PreconditionException,
    UnauthorizedException,
)
from app.core.token_blocklist import add_token_to_blocklist
from app.schemas.auth import LoginRequest, LoginResponse, LogoutResponse, RegisterRequest
from app.schemas.user import UserProfile
from app.services.integrations.user_client import UserClient

logger = logging.getLogger(__name__)


class AuthService:
    """Owns the token lifecycle on the BFF side; the users service issues tokens."""

    def __init__(self, database=None, user_client: UserClient | None = None):
        self.database = database
        self.users = user_client or UserClient()

    async def login(self, login_request: LoginRequest) -> LoginResponse:
        """
        Authenticate against the users service.

        Args:
            login_request: Login request data

        Returns:
            Token, role and message relayed from the users service

        Raises:
            UnauthorizedException: If authentication fails
        """
        try:
            response = await self.users.login(login_request)
        except (BusinessLogicException, ValidationError) as e:
            logger.warning("Login rejected", extra={"reason": type(e).__name__})
            raise UnauthorizedException("Invalid email or password") from e

        if not response.token:
            raise UnauthorizedException(response.message or "Invalid email or password")

        logger.info("User logged in", extra={"role": response.role})
        return response

    async def register(self, register_request: RegisterRequest) -> dict:
        result = await self.users.register(register_request)
        logger.info("User registered")
        return result

    async def logout(self, session: UserSession) -> LogoutResponse:
        """
        Revoke the session's token until its natural expiry.

        Raises:
            UnauthorizedException: If the token cannot be recorded as revoked
        """
        if self.database is None:
            raise UnauthorizedException("Logout failed: token store unavailable")

        await add_token_to_blocklist(
            fingerprint=session.fingerprint,
            subject=session.email,
            expires_at=session.expires_at,
            reason="logout",
            database=self.database,
        )
        logger.info("User logged out")

        return LogoutResponse(
            message="Successfully logged out", logged_out_at=datetime.now(UTC)
        )

    async def resolve_profile(self, session: UserSession) -> UserProfile:
        """
        Fetch the caller's profile; every user-scoped operation starts here.

        Raises:
            PreconditionException: If there is no profile or it lacks a user id
        """
        profile = await self.users.get_profile(session)
        if profile is None or not profile.userId:
            logger.warning("Profile missing for session")
            raise PreconditionException("User profile not found. Please log in again.")
        return profile
