from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.schemas.plan import PlanRequest, PlanView, PricePreview
from app.services.catalog_service import to_view
from app.services.integrations.plan_client import PlanClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession

logger = logging.getLogger(__name__)


class PlanAdminService:
    """Service for plan management. Prices are derived by the plan service from features."""

    def __init__(self, plan_client: PlanClient | None = None):
        self.plans = plan_client or PlanClient()

    async def create_plan(self, payload: PlanRequest, session: UserSession) -> PlanView:
        logger.info(
            "Creating plan",
            extra={"plan_name": payload.name, "features": len(payload.featureIds)},
        )
        plan = await self.plans.create_plan(payload, session)
        logger.info("Plan created", extra={"plan_id": plan.planId, "plan_name": plan.name})
        return to_view(plan)

    async def update_plan(
        self, plan_id: str, payload: PlanRequest, session: UserSession
    ) -> PlanView:
        plan = await self.plans.update_plan(plan_id, payload, session)
        logger.info("Plan updated", extra={"plan_id": plan_id})
        return to_view(plan)

    async def delete_plan(self, plan_id: str, session: UserSession) -> None:
        await self.plans.delete_plan(plan_id, session)
        logger.info("Plan deleted", extra={"plan_id": plan_id})

    async def activate_plan(self, plan_id: str, session: UserSession) -> PlanView:
        plan = await self.plans.set_active(plan_id, True, session)
        logger.info("Plan activated", extra={"plan_id": plan_id})
        return to_view(plan)

    async def deactivate_plan(self, plan_id: str, session: UserSession) -> PlanView:
        plan = await self.plans.set_active(plan_id, False, session)
        logger.info("Plan deactivated", extra={"plan_id": plan_id})
        return to_view(plan)

    async def preview_price(
        self, feature_ids: list[str], session: UserSession
    ) -> PricePreview:
        return await self.plans.preview_price(feature_ids, session)

    async def count_plans(self, session: UserSession) -> int:
        return await self.plans.count_plans(session)
