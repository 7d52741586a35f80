"""Test cases for authentication service."""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from app.core.exceptions import (
    BusinessLogicException,
    PreconditionException,
    UnauthorizedException,
)
from app.schemas.auth import LoginRequest, LoginResponse, RegisterRequest
from app.schemas.user import UserProfile
from app.services.auth_service import AuthService


@pytest.fixture
def user_client():
    client = MagicMock()
    client.login = AsyncMock()
    client.register = AsyncMock(return_value={"message": "User registered"})
    client.get_profile = AsyncMock()
    return client


@pytest.fixture
def login_request():
    return LoginRequest(email="driver@example.com", password="password123")


class TestLogin:
    async def test_login_success(self, user_client, login_request):
        user_client.login.return_value = LoginResponse(
            token="jwt-token", role="USER", message="Login successful"
        )

        response = await AuthService(Mock(), user_client).login(login_request)

        assert response.token == "jwt-token"
        user_client.login.assert_awaited_once_with(login_request)

    async def test_rejected_credentials(self, user_client, login_request):
        user_client.login.side_effect = BusinessLogicException(
            "Bad credentials", error_code="UPSTREAM_REJECTED"
        )

        with pytest.raises(UnauthorizedException) as exc_info:
            await AuthService(Mock(), user_client).login(login_request)

        assert exc_info.value.message == "Invalid email or password"

    async def test_response_without_token(self, user_client, login_request):
        def no_token(_):
            LoginResponse.model_validate({"message": "Invalid credentials"})

        user_client.login.side_effect = no_token

        with pytest.raises(UnauthorizedException):
            await AuthService(Mock(), user_client).login(login_request)

    async def test_empty_token(self, user_client, login_request):
        user_client.login.return_value = LoginResponse(token="", message="Try again")

        with pytest.raises(UnauthorizedException) as exc_info:
            await AuthService(Mock(), user_client).login(login_request)

        assert exc_info.value.message == "Try again"


class TestLogout:
    async def test_logout_blocks_token_fingerprint(self, user_session, user_client):
        database = Mock()
        with patch(
            "app.services.auth_service.add_token_to_blocklist", new=AsyncMock()
        ) as mock_block:
            response = await AuthService(database, user_client).logout(user_session)

        assert response.message == "Successfully logged out"
        mock_block.assert_awaited_once_with(
            fingerprint=user_session.fingerprint,
            subject="driver@example.com",
            expires_at=user_session.expires_at,
            reason="logout",
            database=database,
        )

    async def test_logout_without_token_store(self, user_session, user_client):
        with pytest.raises(UnauthorizedException):
            await AuthService(None, user_client).logout(user_session)


class TestResolveProfile:
    async def test_profile_found(self, user_session, user_client, profile):
        user_client.get_profile.return_value = profile

        result = await AuthService(None, user_client).resolve_profile(user_session)

        assert result.userId == profile.userId

    @pytest.mark.parametrize("returned", [None, UserProfile(fullName="No Id")])
    async def test_missing_profile_is_precondition(
        self, user_session, user_client, returned
    ):
        user_client.get_profile.return_value = returned

        with pytest.raises(PreconditionException) as exc_info:
            await AuthService(None, user_client).resolve_profile(user_session)

        assert exc_info.value.status_code == 428


async def test_register_relays_to_users_service(user_client):
    request = RegisterRequest(
        fullName="Asha Rao",
        email="asha@example.com",
        mobile="+91 98765-43210",
        password="longpassword",
    )

    result = await AuthService(None, user_client).register(request)

    assert result == {"message": "User registered"}
    user_client.register.assert_awaited_once_with(request)
