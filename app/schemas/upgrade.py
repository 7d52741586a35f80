from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from app.schemas.common import Money
from app.schemas.order import OrderRecord
from app.schemas.plan import PlanView


class UpgradeCandidate(BaseModel):
    """A plan the user may move to, priced net of their remaining credit."""

    plan: PlanView
    basePrice: Money
    creditApplied: Money
    adjustedPrice: Money
    amountInPaise: int


class UpgradeQuote(BaseModel):
    currentOrder: OrderRecord | None = None
    currentPlan: PlanView | None = None
    daysLeft: int = 0
    totalDays: int = 0
    credit: Money = Decimal("0.00")
    candidates: list[UpgradeCandidate] = Field(default_factory=list)


class CurrentEntitlement(BaseModel):
    """The user's latest order merged with its plan, as shown on "my plan"."""

    order: OrderRecord
    plan: PlanView
    daysLeft: int
    totalDays: int
    credit: Money
    isActive: bool
