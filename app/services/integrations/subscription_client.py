from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.core.config import settings
from app.schemas.usage import (
    FeatureUsage,
    SubscriptionRecord,
    UsageHistoryEntry,
)
from app.services.integrations.base import ServiceClient
from app.services.integrations.order_client import as_record

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession


class SubscriptionClient(ServiceClient):
    """Client for the subscription side of the usage manager (/api/subscriptions)."""

    service_name = "subscription-service"

    def __init__(self, http_client=None):
        super().__init__(settings.SUBSCRIPTION_SERVICE_URL, http_client)
        self.prefix = "/api/subscriptions"

    async def user_subscriptions(
        self, user_id: str, session: UserSession
    ) -> list[SubscriptionRecord]:
        data = await self._request("GET", f"{self.prefix}/{user_id}", session=session)
        return [SubscriptionRecord.model_validate(item) for item in data or []]

    async def assign_plan(
        self, user_id: str, plan_id: str, session: UserSession
    ) -> dict[str, Any]:
        data = await self._request(
            "POST", f"{self.prefix}/{user_id}/assign/{plan_id}", session=session
        )
        return as_record(data)

    async def assign_free_plan(
        self, user_id: str, plan_id: str, session: UserSession
    ) -> dict[str, Any]:
        data = await self._request(
            "POST", f"{self.prefix}/{user_id}/assign-free/{plan_id}", session=session
        )
        return as_record(data)


class PlanUsageClient(ServiceClient):
    """Client for per-feature usage counters (/api/plan-usage)."""

    service_name = "plan-usage-service"

    def __init__(self, http_client=None):
        super().__init__(settings.PLAN_USAGE_SERVICE_URL, http_client)
        self.prefix = "/api/plan-usage"

    async def usage(self, subscription_id: str, session: UserSession) -> list[FeatureUsage]:
        data = await self._request(
            "GET",
            f"{self.prefix}/{subscription_id}",
            session=session,
            resource="Subscription",
            resource_id=subscription_id,
        )
        return [FeatureUsage.model_validate(item) for item in data or []]

    async def feature_history(
        self, subscription_id: str, feature_name: str, session: UserSession
    ) -> list[UsageHistoryEntry]:
        data = await self._request(
            "GET",
            f"{self.prefix}/{subscription_id}/feature/{feature_name}/history",
            session=session,
        )
        return [UsageHistoryEntry.model_validate(item) for item in data or []]

    async def consume(
        self, subscription_id: str, feature_name: str, session: UserSession
    ) -> dict[str, Any]:
        data = await self._request(
            "POST",
            f"{self.prefix}/consume",
            session=session,
            json={"subscriptionId": subscription_id, "featureName": feature_name},
        )
        return as_record(data)
