"""Plan catalog: read access to the plan service plus display pricing rules."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from app.schemas.plan import Plan, PlanView
from app.services.integrations.plan_client import PlanClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession

logger = logging.getLogger(__name__)

DURATION_LABELS = {
    "MONTH": "Monthly",
    "QUARTER": "3 Months",
    "YEAR": "Yearly",
}

# Display order of plan families; anything else follows in catalog order
PLAN_GROUP_ORDER = ("free", "basic", "advanced")


def effective_price(plan: Plan) -> Decimal:
    """Discounted price only when the discount is active and actually lower."""
    if (
        plan.isDiscountActive
        and plan.discountedPrice is not None
        and plan.discountedPrice < plan.totalPrice
    ):
        return plan.discountedPrice
    return plan.totalPrice


def duration_label(duration: str | None) -> str:
    if not duration:
        return ""
    return DURATION_LABELS.get(duration.strip().upper(), "")


def discount_percent(plan: Plan) -> int:
    price = effective_price(plan)
    if plan.totalPrice <= 0 or price >= plan.totalPrice:
        return 0
    percent = (plan.totalPrice - price) / plan.totalPrice * 100
    return int(percent.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_view(plan: Plan) -> PlanView:
    return PlanView(
        **plan.model_dump(),
        effectivePrice=effective_price(plan),
        durationLabel=duration_label(plan.duration),
        discountPercent=discount_percent(plan),
        isFree=plan.is_free,
    )


def matches_filters(
    plan: Plan, name: str | None = None, duration: str | None = None
) -> bool:
    """Plan-type filter is an exact name match; duration matches on the label."""
    if name and plan.name.strip().lower() != name.strip().lower():
        return False
    if duration and duration.strip().lower() not in duration_label(plan.duration).lower():
        return False
    return True


def group_rank(plan: Plan) -> int:
    name = plan.name.strip().lower()
    if name in PLAN_GROUP_ORDER:
        return PLAN_GROUP_ORDER.index(name)
    return len(PLAN_GROUP_ORDER)


def sort_by_group(plans: list[Plan]) -> list[Plan]:
    # sorted() is stable, so catalog order is kept inside each group
    return sorted(plans, key=group_rank)


class CatalogService:
    """Service for reading the plan catalog. No caching: every call hits the plan service."""

    def __init__(self, plan_client: PlanClient | None = None):
        self.plans = plan_client or PlanClient()

    async def list_plans(
        self,
        session: UserSession | None = None,
        *,
        active_only: bool = False,
        name: str | None = None,
        duration: str | None = None,
        include_free: bool = True,
    ) -> list[PlanView]:
        plans = await self.plans.list_plans(session, active_only=active_only)
        selected = [
            plan
            for plan in plans
            if matches_filters(plan, name, duration)
            and (include_free or not plan.is_free)
        ]
        logger.info(
            "Plans listed",
            extra={"total": len(plans), "returned": len(selected)},
        )
        return [to_view(plan) for plan in sort_by_group(selected)]

    async def all_plans(self, session: UserSession | None = None) -> list[Plan]:
        """Raw catalog, unfiltered and in service order."""
        return await self.plans.list_plans(session)

    async def get_plan(self, plan_id: str, session: UserSession | None = None) -> Plan:
        """
        Fetch one plan.

        Raises:
            NotFoundException: If the plan service does not know the id
            ExternalServiceException: On transport or upstream failure
        """
        return await self.plans.get_plan(plan_id, session)

    async def get_plan_view(
        self, plan_id: str, session: UserSession | None = None
    ) -> PlanView:
        return to_view(await self.get_plan(plan_id, session))
