from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from app.schemas.common import UpstreamModel


class SubscriptionRecord(UpstreamModel):
    """Entitlement record kept by the subscription service."""

    id: str | None = Field(None, validation_alias=AliasChoices("id", "subscriptionId"))
    userId: str | None = None
    planId: str | None = None
    planName: str | None = None
    startDate: datetime | None = None
    endDate: datetime | None = None
    isActive: bool | None = None


class FeatureUsage(UpstreamModel):
    """Per-feature consumption of a subscription."""

    featureId: str | None = None
    featureName: str
    totalUnits: int | None = None
    usedUnits: int = 0

    @property
    def limit_reached(self) -> bool:
        if self.totalUnits is None:
            return False
        return self.usedUnits >= self.totalUnits


class FeatureUsageView(FeatureUsage):
    remainingUnits: int | None = None
    limitReached: bool = False


class UsageHistoryEntry(UpstreamModel):
    id: str | None = None
    featureName: str | None = None
    unitsUsed: int = 0
    usedAt: datetime | None = None


class UsageOverview(BaseModel):
    subscription: SubscriptionRecord | None = None
    usage: list[FeatureUsageView] = Field(default_factory=list)


class ConsumeFeatureRequest(BaseModel):
    featureName: str = Field(..., min_length=1, max_length=200)
