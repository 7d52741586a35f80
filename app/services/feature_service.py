from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.schemas.feature import Feature, FeatureRequest
from app.services.integrations.feature_client import FeatureClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession

logger = logging.getLogger(__name__)


class FeatureService:
    """Feature catalog management over the feature service."""

    def __init__(self, feature_client: FeatureClient | None = None):
        self.features = feature_client or FeatureClient()

    async def list_features(
        self, session: UserSession, active_only: bool = False
    ) -> list[Feature]:
        return await self.features.list_features(session, active_only=active_only)

    async def search_features(self, keyword: str, session: UserSession) -> list[Feature]:
        keyword = keyword.strip()
        if not keyword:
            return await self.list_features(session)
        return await self.features.search_features(keyword, session)

    async def get_feature(self, feature_id: str, session: UserSession) -> Feature:
        return await self.features.get_feature(feature_id, session)

    async def create_feature(
        self, payload: FeatureRequest, session: UserSession
    ) -> Feature:
        feature = await self.features.create_feature(payload, session)
        logger.info(
            "Feature created",
            extra={"feature_id": feature.featureId, "code": payload.code},
        )
        return feature

    async def update_feature(
        self, feature_id: str, payload: FeatureRequest, session: UserSession
    ) -> Feature:
        feature = await self.features.update_feature(feature_id, payload, session)
        logger.info("Feature updated", extra={"feature_id": feature_id})
        return feature

    async def delete_feature(self, feature_id: str, session: UserSession) -> None:
        await self.features.delete_feature(feature_id, session)
        logger.info("Feature deleted", extra={"feature_id": feature_id})

    async def count_features(self, session: UserSession) -> int:
        return await self.features.count_features(session)
