from __future__ import annotations

from typing import TYPE_CHECKING

from app.core.config import settings
from app.core.exceptions import NotFoundException
from app.schemas.plan import Plan, PlanRequest, PricePreview
from app.services.integrations.base import ServiceClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession


class PlanClient(ServiceClient):
    """Client for the plan service (/api/v1/plans)."""

    service_name = "plan-service"

    def __init__(self, http_client=None):
        super().__init__(settings.PLAN_SERVICE_URL, http_client)
        self.prefix = "/api/v1/plans"

    async def list_plans(
        self, session: UserSession | None = None, active_only: bool = False
    ) -> list[Plan]:
        path = f"{self.prefix}/active" if active_only else self.prefix
        data = await self._request("GET", path, session=session)
        return [Plan.model_validate(item) for item in data or []]

    async def get_plan(self, plan_id: str, session: UserSession | None = None) -> Plan:
        data = await self._request(
            "GET",
            f"{self.prefix}/{plan_id}",
            session=session,
            resource="Plan",
            resource_id=plan_id,
        )
        if not isinstance(data, dict):
            # 200 with an empty body is how the service signals a missing plan
            raise NotFoundException("Plan", plan_id)
        return Plan.model_validate(data)

    async def create_plan(self, payload: PlanRequest, session: UserSession) -> Plan:
        data = await self._request(
            "POST",
            self.prefix,
            session=session,
            json=payload.model_dump(mode="json"),
        )
        return Plan.model_validate(data)

    async def update_plan(
        self, plan_id: str, payload: PlanRequest, session: UserSession
    ) -> Plan:
        data = await self._request(
            "PUT",
            f"{self.prefix}/{plan_id}",
            session=session,
            json=payload.model_dump(mode="json"),
            resource="Plan",
            resource_id=plan_id,
        )
        return Plan.model_validate(data)

    async def delete_plan(self, plan_id: str, session: UserSession) -> None:
        await self._request(
            "DELETE",
            f"{self.prefix}/{plan_id}",
            session=session,
            resource="Plan",
            resource_id=plan_id,
        )

    async def set_active(self, plan_id: str, active: bool, session: UserSession) -> Plan:
        action = "activate" if active else "deactivate"
        data = await self._request(
            "POST",
            f"{self.prefix}/{plan_id}/{action}",
            session=session,
            resource="Plan",
            resource_id=plan_id,
        )
        return Plan.model_validate(data)

    async def preview_price(
        self, feature_ids: list[str], session: UserSession
    ) -> PricePreview:
        data = await self._request(
            "GET",
            f"{self.prefix}/preview",
            session=session,
            params={"featureIds": ",".join(feature_ids)},
        )
        return PricePreview.model_validate(data or {})

    async def count_plans(self, session: UserSession) -> int:
        data = await self._request("GET", f"{self.prefix}/count", session=session)
        return int((data or {}).get("count", 0))
