from __future__ import annotations

from decimal import Decimal

from pydantic import AliasChoices, Field

from app.schemas.common import Money, UpstreamModel
from app.schemas.feature import Feature


class Plan(UpstreamModel):
    """Plan as returned by the plan service."""

    planId: str | None = Field(None, validation_alias=AliasChoices("planId", "id"))
    name: str = ""
    description: str | None = None
    duration: str | None = None
    features: list[Feature] = Field(default_factory=list)
    totalPrice: Money = Decimal("0")
    discountedPrice: Money | None = None
    discountPercentage: Money | None = None
    isDiscountActive: bool = False
    isActive: bool = True

    @property
    def is_free(self) -> bool:
        return self.totalPrice == 0


class PlanView(Plan):
    """Plan plus the display values derived from it."""

    effectivePrice: Money
    durationLabel: str
    discountPercent: int
    isFree: bool


class PlanRequest(UpstreamModel):
    """Schema for creating or replacing a plan (the service validates the full body)."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    duration: str = Field(..., pattern=r"(?i)^(MONTH|QUARTER|YEAR)$")
    featureIds: list[str] = Field(..., min_length=1)
    isActive: bool = True
    discountPercentage: Money | None = Field(None, ge=0, le=100)
    isDiscountActive: bool = False


class PricePreview(UpstreamModel):
    totalPrice: Money = Decimal("0")
