from __future__ import annotations

from typing import TYPE_CHECKING

from app.core.config import settings
from app.schemas.feature import Feature, FeatureRequest
from app.services.integrations.base import ServiceClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession


class FeatureClient(ServiceClient):
    """Client for the feature service (/api/v1/features)."""

    service_name = "feature-service"

    def __init__(self, http_client=None):
        super().__init__(settings.FEATURE_SERVICE_URL, http_client)
        self.prefix = "/api/v1/features"

    async def list_features(
        self, session: UserSession, active_only: bool = False
    ) -> list[Feature]:
        path = f"{self.prefix}/active" if active_only else self.prefix
        data = await self._request("GET", path, session=session)
        return [Feature.model_validate(item) for item in data or []]

    async def search_features(self, keyword: str, session: UserSession) -> list[Feature]:
        data = await self._request(
            "GET", f"{self.prefix}/search", session=session, params={"q": keyword}
        )
        return [Feature.model_validate(item) for item in data or []]

    async def get_feature(self, feature_id: str, session: UserSession) -> Feature:
        data = await self._request(
            "GET",
            f"{self.prefix}/{feature_id}",
            session=session,
            resource="Feature",
            resource_id=feature_id,
        )
        return Feature.model_validate(data)

    async def create_feature(
        self, payload: FeatureRequest, session: UserSession
    ) -> Feature:
        data = await self._request(
            "POST", self.prefix, session=session, json=payload.model_dump(mode="json")
        )
        return Feature.model_validate(data)

    async def update_feature(
        self, feature_id: str, payload: FeatureRequest, session: UserSession
    ) -> Feature:
        data = await self._request(
            "PUT",
            f"{self.prefix}/{feature_id}",
            session=session,
            json=payload.model_dump(mode="json"),
            resource="Feature",
            resource_id=feature_id,
        )
        return Feature.model_validate(data)

    async def delete_feature(self, feature_id: str, session: UserSession) -> None:
        await self._request(
            "DELETE",
            f"{self.prefix}/{feature_id}",
            session=session,
            resource="Feature",
            resource_id=feature_id,
        )

    async def count_features(self, session: UserSession) -> int:
        data = await self._request("GET", f"{self.prefix}/count", session=session)
        return int((data or {}).get("count", 0))
