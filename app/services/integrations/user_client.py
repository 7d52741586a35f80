from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.core.config import settings
from app.schemas.auth import LoginRequest, LoginResponse, RegisterRequest
from app.schemas.user import UserCounts, UserProfile, UserProfileUpdate
from app.services.integrations.base import ServiceClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession


def display_name(data: Any, fallback: str) -> str:
    """The by-id endpoint answers with a bare name; older builds sent an object."""
    if isinstance(data, str) and data.strip():
        return data.strip()
    if isinstance(data, dict):
        for key in ("fullName", "name", "username"):
            if data.get(key):
                return str(data[key])
    return fallback


class UserClient(ServiceClient):
    """Client for the users service (/api/users)."""

    service_name = "user-service"

    def __init__(self, http_client=None):
        super().__init__(settings.USER_SERVICE_URL, http_client)
        self.prefix = "/api/users"

    async def login(self, credentials: LoginRequest) -> LoginResponse:
        data = await self._request(
            "POST", f"{self.prefix}/login", json=credentials.model_dump()
        )
        return LoginResponse.model_validate(data or {})

    async def register(self, payload: RegisterRequest) -> dict[str, Any]:
        data = await self._request(
            "POST", f"{self.prefix}/register", json=payload.model_dump(mode="json")
        )
        return data if isinstance(data, dict) else {"message": data}

    async def get_profile(self, session: UserSession) -> UserProfile | None:
        data = await self._request("GET", f"{self.prefix}/profile", session=session)
        if not isinstance(data, dict):
            return None
        return UserProfile.model_validate(data)

    async def update_profile(
        self, payload: UserProfileUpdate, session: UserSession
    ) -> UserProfile:
        data = await self._request(
            "PUT",
            f"{self.prefix}/profile",
            session=session,
            json=payload.model_dump(mode="json", exclude_none=True),
        )
        return UserProfile.model_validate(data or {})

    async def get_user(self, user_id: str, session: UserSession) -> UserProfile:
        data = await self._request(
            "GET",
            f"{self.prefix}/{user_id}",
            session=session,
            resource="User",
            resource_id=user_id,
        )
        return UserProfile.model_validate(data or {})

    async def update_user(
        self, user_id: str, payload: UserProfileUpdate, session: UserSession
    ) -> UserProfile:
        data = await self._request(
            "PUT",
            f"{self.prefix}/{user_id}",
            session=session,
            json=payload.model_dump(mode="json", exclude_none=True),
            resource="User",
            resource_id=user_id,
        )
        return UserProfile.model_validate(data or {})

    async def list_users(self, session: UserSession) -> list[UserProfile]:
        data = await self._request("GET", f"{self.prefix}/all", session=session)
        return [UserProfile.model_validate(item) for item in data or []]

    async def user_name(self, user_id: str, session: UserSession) -> str:
        data = await self._request(
            "GET", f"{self.prefix}/by-id/{user_id}", session=session
        )
        return display_name(data, user_id)

    async def count_users(self, session: UserSession) -> UserCounts:
        data = await self._request("GET", f"{self.prefix}/count", session=session)
        return UserCounts.model_validate(data or {})
