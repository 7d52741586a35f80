from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.core.config import settings
from app.schemas.order import OrderCounts, OrderRecord
from app.services.integrations.base import ServiceClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession


def as_record(data: Any) -> dict[str, Any]:
    """Assignment endpoints answer with a DTO; anything else is kept verbatim."""
    if isinstance(data, dict):
        return data
    return {"response": data}


class OrderClient(ServiceClient):
    """Client for the order service (/api/orders)."""

    service_name = "order-service"

    def __init__(self, http_client=None):
        super().__init__(settings.ORDER_SERVICE_URL, http_client)
        self.prefix = "/api/orders"

    async def user_orders(self, user_id: str, session: UserSession) -> list[OrderRecord]:
        data = await self._request(
            "GET", f"{self.prefix}/{user_id}/plans", session=session
        )
        return [OrderRecord.model_validate(item) for item in data or []]

    async def all_orders(self, session: UserSession) -> list[OrderRecord]:
        data = await self._request("GET", f"{self.prefix}/all", session=session)
        if isinstance(data, dict):
            data = data.get("data") or []
        return [OrderRecord.model_validate(item) for item in data or []]

    async def assign_plan(
        self,
        user_id: str,
        plan_id: str,
        *,
        razorpay_payment_id: str,
        internal_payment_id: str | None,
        session: UserSession,
    ) -> dict[str, Any]:
        params = {"razorpayPaymentId": razorpay_payment_id}
        if internal_payment_id:
            params["internalPaymentId"] = internal_payment_id
        data = await self._request(
            "POST",
            f"{self.prefix}/{user_id}/assign/{plan_id}",
            session=session,
            params=params,
        )
        return as_record(data)

    async def assign_free_plan(
        self, user_id: str, plan_id: str, session: UserSession
    ) -> dict[str, Any]:
        data = await self._request(
            "POST", f"{self.prefix}/{user_id}/assign-free/{plan_id}", session=session
        )
        return as_record(data)

    async def count_orders(self, session: UserSession) -> OrderCounts:
        data = await self._request("GET", f"{self.prefix}/count", session=session)
        return OrderCounts.model_validate(data or {})
