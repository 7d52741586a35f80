from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from app.core.config import settings
from app.core.logging import sanitize_log_data
from app.schemas.checkout import GatewayCallback, PaymentVerification
from app.services.integrations.base import ServiceClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession

logger = logging.getLogger(__name__)


class PaymentClient(ServiceClient):
    """Client for the payment service, which fronts the Razorpay gateway."""

    service_name = "payment-service"

    def __init__(self, http_client=None):
        super().__init__(settings.PAYMENT_SERVICE_URL, http_client)
        self.prefix = "/api/payments"

    async def create_order(
        self,
        *,
        plan_id: str,
        amount: Decimal,
        amount_in_paise: int,
        is_upgrade: bool,
        credit_amount: Decimal,
        session: UserSession,
    ) -> dict[str, Any]:
        """
        Ask the payment service to create a gateway order.

        The raw body is returned untouched; the caller decides whether the
        confirmed order id and amount are usable.
        """
        payload = {
            "planId": plan_id,
            "amount": float(amount),
            "amountInPaise": amount_in_paise,
            "isUpgrade": is_upgrade,
            "creditAmount": float(credit_amount),
        }
        logger.info(
            "Creating gateway order",
            extra={
                "plan_id": plan_id,
                "amount_in_paise": amount_in_paise,
                "is_upgrade": is_upgrade,
            },
        )
        data = await self._request(
            "POST", f"{self.prefix}/create", session=session, json=payload
        )
        return data if isinstance(data, dict) else {}

    async def verify_payment(
        self, callback: GatewayCallback, session: UserSession
    ) -> PaymentVerification | None:
        logger.info(
            "Verifying gateway payment",
            extra=sanitize_log_data(
                {
                    "gateway_order_id": callback.razorpay_order_id,
                    "gateway_payment_id": callback.razorpay_payment_id,
                    "signature": callback.razorpay_signature,
                }
            ),
        )
        data = await self._request(
            "POST",
            f"{self.prefix}/verify",
            session=session,
            json=callback.model_dump(),
        )
        if not isinstance(data, dict):
            return None
        return PaymentVerification.model_validate(data)
