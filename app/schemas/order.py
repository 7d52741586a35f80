from __future__ import annotations

from datetime import date, datetime

from pydantic import AliasChoices, BaseModel, Field

from app.schemas.common import Money, UpstreamModel
from app.schemas.feature import Feature


class OrderRecord(UpstreamModel):
    """A plan purchase as stored by the order service (UserPlanDto)."""

    id: str | None = Field(None, validation_alias=AliasChoices("id", "orderId"))
    planId: str | None = None
    planName: str | None = None
    description: str | None = None
    duration: str | None = None
    startDate: datetime | None = None
    endDate: datetime | None = None
    isActive: bool | None = None
    createdAt: datetime | None = None
    userId: str | None = None
    userName: str | None = None
    totalPrice: Money | None = None
    discountedPrice: Money | None = None
    discountAmount: Money | None = None
    isDiscountActive: bool | None = None
    isPlanActive: bool | None = None
    features: list[Feature] = Field(default_factory=list)


class OrderRow(BaseModel):
    """Order enriched with user name and plan details for the admin table."""

    orderId: str
    userName: str
    userId: str | None = None
    planId: str | None = None
    planName: str | None = None
    description: str | None = None
    duration: str | None = None
    features: str = ""
    totalPrice: Money | None = None
    discountedPrice: Money | None = None
    discountPercentage: Money | None = None
    isDiscountActive: bool = False
    isPlanActive: bool = False
    startDate: datetime | None = None
    endDate: datetime | None = None
    isOrderActive: bool = False
    createdAt: datetime | None = None


class OrderFilter(BaseModel):
    """Admin order table filters; all optional and combined with AND."""

    planName: str | None = None
    userName: str | None = None
    startAfter: date | None = Field(None, description="Start date on or after (yyyy-mm-dd)")
    endBefore: date | None = Field(None, description="Start date on or before (yyyy-mm-dd)")


class OrderCounts(UpstreamModel):
    totalOrders: int = 0
    activeOrders: int = 0
