"""Checkout saga: gateway order, amount reconciliation, verification, assignment.

Every attempt is persisted as a PaymentIntent and advanced step by step:

    INIT -> ORDER_REQUESTED -> AMOUNT_RECONCILED -> GATEWAY_CHECKOUT
         -> VERIFYING -> ASSIGNING_ORDER -> ASSIGNING_SUBSCRIPTION -> DONE

Any failure before the order is assigned ends the intent as FAILED with no
entitlement change. A subscription failure after the order was assigned ends
it as PARTIALLY_ASSIGNED; that case is never retried automatically and is
listed for administrators instead.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from beanie import PydanticObjectId
from beanie.operators import Set
from bson.errors import InvalidId

from app.core.config import settings
from app.core.exceptions import (
    AmountMismatchException,
    AssignmentFailedException,
    BaseAPIException,
    BusinessLogicException,
    ConflictException,
    NotFoundException,
    PartialAssignmentException,
    PaymentConfigurationException,
    VerificationRejectedException,
)
from app.models.payment_intent import CheckoutState, IntentStatus, PaymentIntent
from app.schemas.checkout import (
    CheckoutResult,
    CheckoutSession,
    GatewayCallback,
    PaymentIntentView,
    PaymentVerification,
)
from app.schemas.plan import Plan
from app.schemas.user import UserProfile
from app.services.auth_service import AuthService
from app.services.catalog_service import CatalogService, effective_price
from app.services.credit_service import (
    ZERO,
    CreditService,
    quantize_money,
    to_minor_units,
)
from app.services.integrations.order_client import OrderClient
from app.services.integrations.payment.payment_client import PaymentClient
from app.services.integrations.subscription_client import SubscriptionClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "SUCCESS"
PARTIAL_ASSIGNMENT = "PARTIAL_ASSIGNMENT"
RECONCILING = "RECONCILING"

# Stored shape of an intent that is waiting on the gateway widget
AWAITING_PAYMENT = {
    "status": IntentStatus.CREATED,
    "state": CheckoutState.GATEWAY_CHECKOUT,
}


class PaymentIntentRepository:
    """Persistence for payment intents (Beanie)."""

    async def create(self, **fields: Any) -> PaymentIntent:
        intent = PaymentIntent(**fields)
        await intent.insert()
        return intent

    async def get(self, intent_id: str) -> PaymentIntent | None:
        try:
            object_id = PydanticObjectId(intent_id)
        except (InvalidId, TypeError):
            return None
        return await PaymentIntent.get(object_id)

    async def save(self, intent: PaymentIntent, **fields: Any) -> PaymentIntent:
        for field, value in fields.items():
            setattr(intent, field, value)
        intent.updatedAt = datetime.now(UTC)
        await intent.save()
        return intent

    async def claim(
        self, intent: PaymentIntent, expected: dict[str, Any], **fields: Any
    ) -> PaymentIntent | None:
        """
        Apply fields only if the stored intent still matches ``expected``.

        Returns None when another request changed the intent first.
        """
        fields["updatedAt"] = datetime.now(UTC)
        result = await PaymentIntent.find_one({"_id": intent.id, **expected}).update(
            Set(fields)
        )
        if not result.modified_count:
            return None
        for field, value in fields.items():
            setattr(intent, field, value)
        return intent

    async def list_by_status(self, status: str, limit: int = 100) -> list[PaymentIntent]:
        return (
            await PaymentIntent.find(PaymentIntent.status == status)
            .sort(-PaymentIntent.createdAt)
            .limit(limit)
            .to_list()
        )


class InFlightGuard:
    """At most one running checkout start per (user, plan) in this process."""

    def __init__(self):
        self._active: set[tuple[str, str]] = set()

    def is_held(self, user_id: str, plan_id: str) -> bool:
        return (user_id, plan_id) in self._active

    @asynccontextmanager
    async def hold(self, user_id: str, plan_id: str):
        key = (user_id, plan_id)
        # No await between the check and the add, so this is atomic on the loop
        if key in self._active:
            raise ConflictException(
                "A checkout for this plan is already in progress",
                details={"planId": plan_id},
            )
        self._active.add(key)
        try:
            yield
        finally:
            self._active.discard(key)


checkout_guard = InFlightGuard()


def confirmed_amount(value: Any) -> Decimal | None:
    """Gateway amount in paise, or None when it is absent or not a number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def verification_passed(verification: PaymentVerification | None) -> bool:
    if verification is None or not verification.status:
        return False
    if verification.status.strip().upper() != SUCCESS_STATUS:
        return False
    return verification.eligibleForPlanAssignment is not False


class CheckoutService:
    """Drives payment intents through the checkout saga for one user session."""

    def __init__(
        self,
        repository: PaymentIntentRepository | None = None,
        auth_service: AuthService | None = None,
        catalog_service: CatalogService | None = None,
        credit_service: CreditService | None = None,
        payment_client: PaymentClient | None = None,
        order_client: OrderClient | None = None,
        subscription_client: SubscriptionClient | None = None,
        guard: InFlightGuard | None = None,
    ):
        self.repository = repository or PaymentIntentRepository()
        self.auth = auth_service or AuthService()
        self.catalog = catalog_service or CatalogService()
        self.credit = credit_service or CreditService(
            auth_service=self.auth, catalog_service=self.catalog
        )
        self.payments = payment_client or PaymentClient()
        self.orders = order_client or OrderClient()
        self.subscriptions = subscription_client or SubscriptionClient()
        self.guard = guard or checkout_guard

    async def _advance(self, intent, state: str, **fields: Any):
        previous = intent.state
        intent = await self.repository.save(intent, state=state, **fields)
        logger.info(
            "Checkout state changed",
            extra={
                "intent_id": str(intent.id),
                "from_state": previous,
                "to_state": state,
                "status": intent.status,
            },
        )
        return intent

    async def _fail(self, intent, error_code: str, message: str, **fields: Any):
        fields.setdefault("state", CheckoutState.FAILED)
        intent = await self.repository.save(
            intent,
            status=IntentStatus.FAILED,
            failureCode=error_code,
            failureMessage=message,
            **fields,
        )
        logger.warning(
            "Checkout failed",
            extra={
                "intent_id": str(intent.id),
                "error_code": error_code,
                "plan_id": intent.planId,
            },
        )
        return intent

    async def _owned_intent(self, session: UserSession, intent_id: str, profile=None):
        intent = await self.repository.get(intent_id)
        if intent is None:
            raise NotFoundException("Payment intent", intent_id)
        if session.is_admin and profile is None:
            return intent
        profile = profile or await self.auth.resolve_profile(session)
        if intent.userId != profile.userId:
            # Someone else's intent is reported exactly like a missing one
            raise NotFoundException("Payment intent", intent_id)
        return intent

    @staticmethod
    def _invalid_state(intent) -> BusinessLogicException:
        return BusinessLogicException(
            f"Payment intent is {intent.status}",
            error_code="INVALID_INTENT_STATE",
            status_code=409,
            details={"intentId": str(intent.id), "status": intent.status},
        )

    def _require_status(self, intent, *allowed: str) -> None:
        if intent.status not in allowed:
            raise self._invalid_state(intent)

    async def _claim(self, intent, expected: dict[str, Any], **fields: Any):
        """Compare-and-set on the stored intent; losers of a race get a 409."""
        self._require_status(intent, expected["status"])
        previous = intent.state
        claimed = await self.repository.claim(intent, expected, **fields)
        if claimed is None:
            current = await self.repository.get(str(intent.id))
            raise self._invalid_state(current or intent)
        logger.info(
            "Checkout state changed",
            extra={
                "intent_id": str(claimed.id),
                "from_state": previous,
                "to_state": claimed.state,
                "status": claimed.status,
            },
        )
        return claimed

    async def _checkout_amount(
        self, session: UserSession, plan: Plan, is_upgrade: bool
    ) -> tuple[Decimal, Decimal]:
        """Amount and credit, computed here and never taken from the client."""
        if is_upgrade:
            candidate = await self.credit.price_upgrade(session, plan.planId)
            return candidate.adjustedPrice, candidate.creditApplied
        return quantize_money(effective_price(plan)), ZERO

    async def start_checkout(
        self, session: UserSession, plan_id: str, is_upgrade: bool = False
    ) -> CheckoutSession:
        """
        Open a gateway order for a plan.

        Free plans skip the gateway and are assigned directly.

        Raises:
            BusinessLogicException: Ineligible upgrade or zero amount on a paid plan
            ConflictException: A checkout for the same plan is already starting
            PaymentConfigurationException: Gateway order id or amount unusable
            AmountMismatchException: Gateway confirmed a different amount
        """
        profile = await self.auth.resolve_profile(session)
        plan = await self.catalog.get_plan(plan_id, session)

        if plan.is_free:
            result = await self.assign_free_plan(
                session, plan_id, profile=profile, plan=plan
            )
            return CheckoutSession(
                intentId=result.intent.intentId,
                planId=plan_id,
                planName=plan.name,
                free=True,
                currency=settings.CURRENCY,
                status=result.intent.status,
                order=result.order,
                subscription=result.subscription,
            )

        amount, credit = await self._checkout_amount(session, plan, is_upgrade)
        amount_in_paise = to_minor_units(amount)
        if amount_in_paise <= 0:
            raise BusinessLogicException(
                "Nothing to pay for this plan; contact support to switch plans",
                error_code="ZERO_AMOUNT_CHECKOUT",
                details={"planId": plan_id, "creditAmount": str(credit)},
            )

        async with self.guard.hold(profile.userId, plan_id):
            intent = await self.repository.create(
                userId=profile.userId,
                planId=plan_id,
                isUpgrade=is_upgrade,
                creditAmount=credit,
                amount=amount,
                amountInPaise=amount_in_paise,
                currency=settings.CURRENCY,
                status=IntentStatus.CREATED,
                state=CheckoutState.INIT,
            )
            intent = await self._advance(intent, CheckoutState.ORDER_REQUESTED)

            try:
                gateway_order = await self.payments.create_order(
                    plan_id=plan_id,
                    amount=amount,
                    amount_in_paise=amount_in_paise,
                    is_upgrade=is_upgrade,
                    credit_amount=credit,
                    session=session,
                )
            except BaseAPIException as e:
                await self._fail(intent, e.error_code, e.message)
                raise

            intent = await self._reconcile(intent, gateway_order)

        logger.info(
            "Checkout ready for gateway",
            extra={
                "intent_id": str(intent.id),
                "plan_id": plan_id,
                "amount_in_paise": amount_in_paise,
                "is_upgrade": is_upgrade,
            },
        )
        return CheckoutSession(
            intentId=str(intent.id),
            planId=plan_id,
            planName=plan.name,
            gatewayOrderId=intent.gatewayOrderId,
            amount=amount,
            amountInPaise=amount_in_paise,
            currency=intent.currency,
            creditAmount=credit,
            status=intent.status,
        )

    async def _reconcile(self, intent, gateway_order: dict[str, Any]):
        """Proceed only when the gateway confirmed exactly the amount we computed."""
        order_id = gateway_order.get("razorpayOrderId")
        confirmed = confirmed_amount(gateway_order.get("amount"))

        if not order_id or confirmed is None:
            error = PaymentConfigurationException(
                details={
                    "orderIdPresent": bool(order_id),
                    "amountPresent": gateway_order.get("amount") is not None,
                }
            )
            await self._fail(intent, error.error_code, error.message)
            raise error

        if confirmed != intent.amountInPaise:
            error = AmountMismatchException(
                requested_paise=intent.amountInPaise,
                confirmed_paise=int(confirmed.to_integral_value()),
            )
            await self._fail(
                intent, error.error_code, error.message, gatewayOrderId=str(order_id)
            )
            raise error

        intent = await self._advance(intent, CheckoutState.AMOUNT_RECONCILED)
        return await self._advance(
            intent,
            CheckoutState.GATEWAY_CHECKOUT,
            gatewayOrderId=str(order_id),
            internalPaymentId=(
                str(gateway_order["internalPaymentId"])
                if gateway_order.get("internalPaymentId") is not None
                else None
            ),
            currency=gateway_order.get("currency") or intent.currency,
        )

    async def cancel_checkout(
        self, session: UserSession, intent_id: str
    ) -> PaymentIntentView:
        """The user dismissed the gateway widget; nothing was charged or granted."""
        intent = await self._owned_intent(session, intent_id)
        intent = await self._claim(
            intent,
            AWAITING_PAYMENT,
            status=IntentStatus.FAILED,
            state=CheckoutState.INIT,
            failureCode="CHECKOUT_DISMISSED",
            failureMessage="Checkout was dismissed before payment",
        )
        return PaymentIntentView.from_intent(intent)

    async def complete_checkout(
        self, session: UserSession, intent_id: str, callback: GatewayCallback
    ) -> CheckoutResult:
        """
        Verify the gateway callback and assign the plan (order, then subscription).

        Raises:
            VerificationRejectedException: Payment not confirmed as successful
            AssignmentFailedException: Order side failed; nothing was granted
            PartialAssignmentException: Order granted, subscription not
        """
        profile = await self.auth.resolve_profile(session)
        intent = await self._owned_intent(session, intent_id, profile=profile)
        # Only one of several concurrent callbacks for this intent gets past here
        intent = await self._claim(
            intent, AWAITING_PAYMENT, state=CheckoutState.VERIFYING
        )

        expires_at = intent.createdAt + timedelta(
            minutes=settings.CHECKOUT_INTENT_TTL_MINUTES
        )
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        if datetime.now(UTC) > expires_at:
            await self._fail(intent, "CHECKOUT_EXPIRED", "Checkout session expired")
            raise BusinessLogicException(
                "Checkout session expired, please start again",
                error_code="CHECKOUT_EXPIRED",
                status_code=410,
                details={"intentId": intent_id},
            )

        if callback.razorpay_order_id != intent.gatewayOrderId:
            error = VerificationRejectedException(
                "Payment does not belong to this checkout",
                details={"intentId": intent_id},
            )
            await self._fail(intent, error.error_code, error.message)
            raise error

        try:
            verification = await self.payments.verify_payment(callback, session)
        except BaseAPIException as e:
            await self._fail(intent, e.error_code, e.message)
            raise

        if not verification_passed(verification):
            error = VerificationRejectedException(
                details={
                    "intentId": intent_id,
                    "status": verification.status if verification else None,
                    "eligibleForPlanAssignment": (
                        verification.eligibleForPlanAssignment if verification else None
                    ),
                }
            )
            await self._fail(intent, error.error_code, error.message)
            raise error

        intent = await self.repository.save(
            intent,
            status=IntentStatus.VERIFIED,
            gatewayPaymentId=verification.razorpayPaymentId
            or callback.razorpay_payment_id,
            internalPaymentId=verification.internalPaymentId or intent.internalPaymentId,
        )

        return await self._assign(session, intent, profile)

    async def _assign(self, session: UserSession, intent, profile: UserProfile):
        user_id, plan_id = profile.userId, intent.planId

        intent = await self._advance(intent, CheckoutState.ASSIGNING_ORDER)
        try:
            if intent.free:
                order = await self.orders.assign_free_plan(user_id, plan_id, session)
            else:
                order = await self.orders.assign_plan(
                    user_id,
                    plan_id,
                    razorpay_payment_id=intent.gatewayPaymentId,
                    internal_payment_id=intent.internalPaymentId,
                    session=session,
                )
        except Exception as e:
            reason = e.message if isinstance(e, BaseAPIException) else str(e)
            await self._fail(intent, "ORDER_ASSIGNMENT_FAILED", reason)
            raise AssignmentFailedException(
                f"Order assignment failed: {reason}",
                details={"intentId": str(intent.id)},
            ) from e

        intent = await self._advance(
            intent,
            CheckoutState.ASSIGNING_SUBSCRIPTION,
            orderAssigned=True,
            orderRecord=order,
        )
        return await self._assign_subscription(session, intent, user_id)

    async def _assign_subscription(self, session: UserSession, intent, user_id: str):
        try:
            if intent.free:
                subscription = await self.subscriptions.assign_free_plan(
                    user_id, intent.planId, session
                )
            else:
                subscription = await self.subscriptions.assign_plan(
                    user_id, intent.planId, session
                )
        except Exception as e:
            reason = e.message if isinstance(e, BaseAPIException) else str(e)
            intent = await self.repository.save(
                intent,
                status=IntentStatus.PARTIALLY_ASSIGNED,
                failureCode=PARTIAL_ASSIGNMENT,
                failureMessage=reason,
            )
            logger.error(
                "Plan order assigned but subscription failed",
                extra={
                    "intent_id": str(intent.id),
                    "plan_id": intent.planId,
                    "reason": reason,
                },
            )
            raise PartialAssignmentException(
                "Your plan order was recorded but the subscription could not be "
                "activated. Support has been notified; please do not pay again.",
                details={
                    "intentId": str(intent.id),
                    "order": intent.orderRecord,
                    "reason": reason,
                },
            ) from e

        intent = await self._advance(
            intent,
            CheckoutState.DONE,
            status=IntentStatus.ASSIGNED,
            subscriptionAssigned=True,
            subscriptionRecord=subscription,
            failureCode=None,
            failureMessage=None,
        )
        logger.info(
            "Plan assigned",
            extra={"intent_id": str(intent.id), "plan_id": intent.planId},
        )
        return CheckoutResult(
            intent=PaymentIntentView.from_intent(intent),
            order=intent.orderRecord,
            subscription=subscription,
        )

    async def assign_free_plan(
        self,
        session: UserSession,
        plan_id: str,
        *,
        profile: UserProfile | None = None,
        plan: Plan | None = None,
    ) -> CheckoutResult:
        """Assign a zero-price plan without any gateway order."""
        profile = profile or await self.auth.resolve_profile(session)
        plan = plan or await self.catalog.get_plan(plan_id, session)
        if not plan.is_free:
            raise BusinessLogicException(
                "Plan requires payment",
                error_code="PLAN_NOT_FREE",
                details={"planId": plan_id},
            )

        async with self.guard.hold(profile.userId, plan_id):
            intent = await self.repository.create(
                userId=profile.userId,
                planId=plan_id,
                free=True,
                amount=ZERO,
                amountInPaise=0,
                currency=settings.CURRENCY,
                status=IntentStatus.VERIFIED,
                state=CheckoutState.INIT,
            )
            return await self._assign(session, intent, profile)

    async def get_intent(self, session: UserSession, intent_id: str) -> PaymentIntentView:
        intent = await self._owned_intent(session, intent_id)
        return PaymentIntentView.from_intent(intent)

    async def list_partial_intents(self, limit: int = 100) -> list[PaymentIntentView]:
        """Intents whose order was granted but subscription was not, newest first."""
        intents = await self.repository.list_by_status(
            IntentStatus.PARTIALLY_ASSIGNED, limit=limit
        )
        return [PaymentIntentView.from_intent(intent) for intent in intents]

    async def reconcile_intent(
        self, session: UserSession, intent_id: str
    ) -> CheckoutResult:
        """
        Operator-triggered retry of the subscription half of a partial assignment.

        The order side is never called again; on failure the intent stays
        PARTIALLY_ASSIGNED.
        """
        intent = await self.repository.get(intent_id)
        if intent is None:
            raise NotFoundException("Payment intent", intent_id)
        intent = await self._claim(
            intent,
            {
                "status": IntentStatus.PARTIALLY_ASSIGNED,
                "failureCode": PARTIAL_ASSIGNMENT,
            },
            failureCode=RECONCILING,
        )

        logger.info(
            "Reconciling partial assignment",
            extra={"intent_id": intent_id, "plan_id": intent.planId},
        )
        return await self._assign_subscription(session, intent, intent.userId)
