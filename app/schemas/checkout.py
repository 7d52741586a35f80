from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from app.schemas.common import Money, UpstreamModel


class CheckoutRequest(BaseModel):
    """Start a checkout. The amount is always computed server-side."""

    planId: str = Field(..., min_length=1)
    isUpgrade: bool = False


class GatewayCallback(BaseModel):
    """Success callback fields handed over by the gateway widget."""

    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class PaymentVerification(UpstreamModel):
    status: str | None = None
    eligibleForPlanAssignment: bool | None = None
    internalPaymentId: str | None = None
    razorpayPaymentId: str | None = None


class PaymentIntentView(BaseModel):
    """Client-facing view of a payment intent."""

    intentId: str
    userId: str
    planId: str
    isUpgrade: bool
    free: bool
    creditAmount: Money
    amount: Money
    amountInPaise: int
    currency: str
    gatewayOrderId: str | None = None
    internalPaymentId: str | None = None
    gatewayPaymentId: str | None = None
    status: str
    state: str
    orderAssigned: bool
    subscriptionAssigned: bool
    failureCode: str | None = None
    failureMessage: str | None = None
    createdAt: datetime | None = None
    updatedAt: datetime | None = None

    @classmethod
    def from_intent(cls, intent: Any) -> PaymentIntentView:
        return cls(
            intentId=str(intent.id),
            userId=intent.userId,
            planId=intent.planId,
            isUpgrade=intent.isUpgrade,
            free=intent.free,
            creditAmount=intent.creditAmount,
            amount=intent.amount,
            amountInPaise=intent.amountInPaise,
            currency=intent.currency,
            gatewayOrderId=intent.gatewayOrderId,
            internalPaymentId=intent.internalPaymentId,
            gatewayPaymentId=intent.gatewayPaymentId,
            status=intent.status,
            state=intent.state,
            orderAssigned=intent.orderAssigned,
            subscriptionAssigned=intent.subscriptionAssigned,
            failureCode=intent.failureCode,
            failureMessage=intent.failureMessage,
            createdAt=intent.createdAt,
            updatedAt=intent.updatedAt,
        )


class CheckoutSession(BaseModel):
    """What the client needs to open the gateway widget (or the free-plan result)."""

    intentId: str
    planId: str
    planName: str | None = None
    free: bool = False
    gatewayOrderId: str | None = None
    amount: Money = Decimal("0.00")
    amountInPaise: int = 0
    currency: str
    creditAmount: Money = Decimal("0.00")
    status: str
    order: dict[str, Any] | None = None
    subscription: dict[str, Any] | None = None


class CheckoutResult(BaseModel):
    intent: PaymentIntentView
    order: dict[str, Any] | None = None
    subscription: dict[str, Any] | None = None
