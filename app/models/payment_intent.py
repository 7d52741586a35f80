from __future__ import annotations

from datetime import UTC, datetime

from beanie import DecimalAnnotation, Document, Indexed, Insert, Replace, before_event
from pydantic import Field


class IntentStatus:
    """Payment intent status constants."""

    CREATED = "CREATED"
    VERIFIED = "VERIFIED"
    ASSIGNED = "ASSIGNED"
    PARTIALLY_ASSIGNED = "PARTIALLY_ASSIGNED"
    FAILED = "FAILED"


class CheckoutState:
    """Steps of the checkout saga, recorded on the intent as it advances."""

    INIT = "INIT"
    ORDER_REQUESTED = "ORDER_REQUESTED"
    AMOUNT_RECONCILED = "AMOUNT_RECONCILED"
    GATEWAY_CHECKOUT = "GATEWAY_CHECKOUT"
    VERIFYING = "VERIFYING"
    ASSIGNING_ORDER = "ASSIGNING_ORDER"
    ASSIGNING_SUBSCRIPTION = "ASSIGNING_SUBSCRIPTION"
    DONE = "DONE"
    FAILED = "FAILED"


class PaymentIntent(Document):
    """One checkout attempt for a user and plan. Never reused across attempts."""

    userId: Indexed(str)
    planId: str
    isUpgrade: bool = False
    free: bool = False
    creditAmount: DecimalAnnotation = Field(default=0)
    amount: DecimalAnnotation = Field(default=0)  # Amount in rupees
    amountInPaise: int = 0
    currency: str = "INR"
    gatewayOrderId: str | None = None
    internalPaymentId: str | None = None
    gatewayPaymentId: str | None = None
    status: Indexed(str) = Field(
        default=IntentStatus.CREATED,
        description="CREATED, VERIFIED, ASSIGNED, PARTIALLY_ASSIGNED or FAILED",
    )
    state: str = CheckoutState.INIT
    orderAssigned: bool = False
    subscriptionAssigned: bool = False
    orderRecord: dict | None = None
    subscriptionRecord: dict | None = None
    failureCode: str | None = None
    failureMessage: str | None = None
    createdAt: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updatedAt: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @before_event([Insert, Replace])
    def set_timestamps(self):
        now = datetime.now(UTC)
        if self.createdAt is None:
            self.createdAt = now
        self.updatedAt = now

    class Settings:
        name = "payment_intents"
