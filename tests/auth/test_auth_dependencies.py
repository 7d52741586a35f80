"""Test cases for authentication dependencies."""

from unittest.mock import AsyncMock, patch

import jwt
import pytest
from fastapi.security import HTTPAuthorizationCredentials

from app.core.auth_dependencies import (
    UserSession,
    build_session,
    get_authorization_header,
    get_current_session,
    get_optional_session,
    require_admin,
)
from app.core.exceptions import AuthorizationException, UnauthorizedException
from app.utils.jwt import extract_roles, token_fingerprint
from tests.conftest import make_token


class TestGetAuthorizationHeader:
    """Test cases for get_authorization_header function."""

    def test_valid_bearer_token(self):
        credentials = HTTPAuthorizationCredentials(
            scheme="Bearer", credentials="valid_token"
        )

        assert get_authorization_header(credentials) == "valid_token"

    def test_invalid_scheme(self):
        credentials = HTTPAuthorizationCredentials(scheme="Basic", credentials="token")

        assert get_authorization_header(credentials) is None

    def test_none_credentials(self):
        assert get_authorization_header(None) is None


class TestBuildSession:
    async def test_valid_token(self):
        token = make_token(role="ROLE_ADMIN")

        session = await build_session(token)

        assert session.email == "driver@example.com"
        assert session.roles == ("ADMIN",)
        assert session.is_admin
        assert session.expires_at is not None
        assert session.auth_headers() == {"Authorization": f"Bearer {token}"}

    async def test_expired_token(self):
        with pytest.raises(UnauthorizedException):
            await build_session(make_token(minutes=-5))

    async def test_wrong_secret(self):
        forged = jwt.encode({"sub": "x@example.com"}, "not-the-secret", algorithm="HS256")

        with pytest.raises(UnauthorizedException):
            await build_session(forged)

    async def test_missing_subject(self):
        token = make_token(email="")

        with pytest.raises(UnauthorizedException):
            await build_session(token)

    async def test_revoked_token(self):
        token = make_token()
        with patch(
            "app.core.auth_dependencies.is_token_blocked",
            new=AsyncMock(return_value=True),
        ) as mock_blocked:
            with pytest.raises(UnauthorizedException) as exc_info:
                await build_session(token, database=object())

        assert exc_info.value.message == "Token has been revoked"
        assert mock_blocked.await_args.args[0] == token_fingerprint(token)


class TestSessionDependencies:
    async def test_current_session_requires_token(self):
        with pytest.raises(UnauthorizedException) as exc_info:
            await get_current_session(token=None, database=None)

        assert exc_info.value.message == "Authorization header missing"

    async def test_optional_session_anonymous(self):
        assert await get_optional_session(token=None, database=None) is None

    async def test_optional_session_with_token(self):
        session = await get_optional_session(token=make_token(), database=None)

        assert session.email == "driver@example.com"

    async def test_require_admin_rejects_user(self, user_session):
        with pytest.raises(AuthorizationException):
            await require_admin(user_session)

    async def test_require_admin_accepts_admin(self, admin_session):
        assert await require_admin(admin_session) is admin_session


class TestRoles:
    @pytest.mark.parametrize(
        "payload, roles",
        [
            ({"role": "user"}, ("USER",)),
            ({"roles": ["ROLE_ADMIN", "user"]}, ("ADMIN", "USER")),
            ({}, ()),
        ],
    )
    def test_extract_roles(self, payload, roles):
        assert extract_roles(payload) == roles

    def test_fingerprint_is_stable(self):
        session = UserSession(token="abc", email="a@example.com")

        assert session.fingerprint == token_fingerprint("abc")
        assert len(session.fingerprint) == 64
