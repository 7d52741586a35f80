"""Feature usage counters of the caller's subscription."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from app.core.exceptions import BusinessLogicException, NotFoundException
from app.schemas.usage import (
    FeatureUsage,
    FeatureUsageView,
    SubscriptionRecord,
    UsageHistoryEntry,
    UsageOverview,
)
from app.services.auth_service import AuthService
from app.services.integrations.subscription_client import (
    PlanUsageClient,
    SubscriptionClient,
)

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession

logger = logging.getLogger(__name__)


def current_subscription(
    subscriptions: list[SubscriptionRecord],
) -> SubscriptionRecord | None:
    """The active subscription, or the last one listed when none is active."""
    for subscription in subscriptions:
        if subscription.isActive:
            return subscription
    return subscriptions[-1] if subscriptions else None


def to_usage_view(usage: FeatureUsage) -> FeatureUsageView:
    remaining = None
    if usage.totalUnits is not None:
        remaining = max(usage.totalUnits - usage.usedUnits, 0)
    return FeatureUsageView(
        **usage.model_dump(),
        remainingUnits=remaining,
        limitReached=usage.limit_reached,
    )


class UsageService:
    def __init__(
        self,
        auth_service: AuthService | None = None,
        subscription_client: SubscriptionClient | None = None,
        usage_client: PlanUsageClient | None = None,
    ):
        self.auth = auth_service or AuthService()
        self.subscriptions = subscription_client or SubscriptionClient()
        self.usage = usage_client or PlanUsageClient()

    async def _subscription(self, session: UserSession) -> SubscriptionRecord | None:
        profile = await self.auth.resolve_profile(session)
        subscriptions = await self.subscriptions.user_subscriptions(
            profile.userId, session
        )
        return current_subscription(subscriptions)

    async def _require_subscription(self, session: UserSession) -> SubscriptionRecord:
        subscription = await self._subscription(session)
        if subscription is None or not subscription.id:
            raise NotFoundException("Subscription")
        return subscription

    async def usage_overview(self, session: UserSession) -> UsageOverview:
        subscription = await self._subscription(session)
        if subscription is None or not subscription.id:
            return UsageOverview(subscription=subscription)

        usage = await self.usage.usage(subscription.id, session)
        return UsageOverview(
            subscription=subscription,
            usage=[to_usage_view(item) for item in usage],
        )

    async def feature_history(
        self, session: UserSession, feature_name: str
    ) -> list[UsageHistoryEntry]:
        subscription = await self._require_subscription(session)
        return await self.usage.feature_history(subscription.id, feature_name, session)

    async def consume_feature(
        self, session: UserSession, feature_name: str
    ) -> dict[str, Any]:
        """
        Record one unit of a feature.

        Raises:
            NotFoundException: No subscription, or the plan lacks the feature
            BusinessLogicException: The feature's limit is already reached
        """
        subscription = await self._require_subscription(session)
        usage = await self.usage.usage(subscription.id, session)
        item = next(
            (
                entry
                for entry in usage
                if entry.featureName.strip().lower() == feature_name.strip().lower()
            ),
            None,
        )
        if item is None:
            raise NotFoundException("Feature", feature_name)

        if item.limit_reached:
            logger.info(
                "Usage limit reached",
                extra={"subscription_id": subscription.id, "feature": feature_name},
            )
            raise BusinessLogicException(
                f"Usage limit reached for {item.featureName}",
                error_code="USAGE_LIMIT_REACHED",
                status_code=409,
                details={
                    "featureName": item.featureName,
                    "usedUnits": item.usedUnits,
                    "totalUnits": item.totalUnits,
                },
            )

        try:
            result = await self.usage.consume(subscription.id, item.featureName, session)
        except BusinessLogicException as e:
            # The usage service answers 400 when credits ran out in the meantime
            raise BusinessLogicException(
                e.message,
                error_code="USAGE_LIMIT_REACHED",
                status_code=409,
                details={"featureName": item.featureName},
            ) from e

        logger.info(
            "Feature consumed",
            extra={"subscription_id": subscription.id, "feature": item.featureName},
        )
        return result
