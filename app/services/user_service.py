from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from app.schemas.admin import DashboardCounts
from app.schemas.user import UserCounts, UserProfile, UserProfileUpdate
from app.services.auth_service import AuthService
from app.services.integrations.feature_client import FeatureClient
from app.services.integrations.order_client import OrderClient
from app.services.integrations.plan_client import PlanClient
from app.services.integrations.user_client import UserClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        auth_service: AuthService | None = None,
        user_client: UserClient | None = None,
    ):
        self.users = user_client or UserClient()
        self.auth = auth_service or AuthService(user_client=self.users)

    async def get_profile(self, session: UserSession) -> UserProfile:
        """Own profile; a session without one must log in again."""
        return await self.auth.resolve_profile(session)

    async def update_profile(
        self, payload: UserProfileUpdate, session: UserSession
    ) -> UserProfile:
        profile = await self.users.update_profile(payload, session)
        logger.info("Profile updated", extra={"user_id": profile.userId})
        return profile

    async def list_users(self, session: UserSession) -> list[UserProfile]:
        return await self.users.list_users(session)

    async def get_user(self, user_id: str, session: UserSession) -> UserProfile:
        return await self.users.get_user(user_id, session)

    async def update_user(
        self, user_id: str, payload: UserProfileUpdate, session: UserSession
    ) -> UserProfile:
        profile = await self.users.update_user(user_id, payload, session)
        logger.info("User updated by admin", extra={"user_id": user_id})
        return profile

    async def count_users(self, session: UserSession) -> UserCounts:
        return await self.users.count_users(session)


class DashboardService:
    """Admin landing-page counters, fetched from every service at once."""

    def __init__(
        self,
        user_client: UserClient | None = None,
        plan_client: PlanClient | None = None,
        feature_client: FeatureClient | None = None,
        order_client: OrderClient | None = None,
    ):
        self.users = user_client or UserClient()
        self.plans = plan_client or PlanClient()
        self.features = feature_client or FeatureClient()
        self.orders = order_client or OrderClient()

    async def counts(self, session: UserSession) -> DashboardCounts:
        users, plans, features, orders = await asyncio.gather(
            self.users.count_users(session),
            self.plans.count_plans(session),
            self.features.count_features(session),
            self.orders.count_orders(session),
        )
        return DashboardCounts(users=users, plans=plans, features=features, orders=orders)
