"""Entitlement and upgrade-credit calculation.

The module-level functions are the pricing rules; CreditService wires them to
the order and plan services for a given user session. Money is Decimal rounded
HALF_UP to paise, and every date is reduced to a UTC calendar day before any
arithmetic so browser and server clocks can no longer disagree.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from app.core.exceptions import BusinessLogicException
from app.schemas.order import OrderRecord
from app.schemas.plan import Plan
from app.schemas.upgrade import CurrentEntitlement, UpgradeCandidate, UpgradeQuote
from app.services.auth_service import AuthService
from app.services.catalog_service import CatalogService, to_view
from app.services.integrations.order_client import OrderClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

NOMINAL_DURATION_DAYS = {
    "year": 365,
    "quarter": 90,
    "month": 30,
}

_EPOCH = datetime.min.replace(tzinfo=UTC)


def quantize_money(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def utc_day(value: datetime | date | None) -> date | None:
    """Calendar day in UTC. Naive datetimes from the Java services are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date()
    return value


def today_utc() -> date:
    return datetime.now(UTC).date()


def order_recency(order: OrderRecord) -> tuple[datetime, str]:
    created = order.createdAt
    if created is None:
        created = _EPOCH
    elif created.tzinfo is None:
        created = created.replace(tzinfo=UTC)
    return created, order.id or ""


def latest_order(orders: Iterable[OrderRecord]) -> OrderRecord | None:
    """Most recent order by creation time; equal timestamps resolve to the highest id."""
    orders = list(orders)
    if not orders:
        return None
    return max(orders, key=order_recency)


def days_left(end_date: datetime | date | None, today: date) -> int:
    end = utc_day(end_date)
    if end is None:
        return 0
    return max((end - today).days, 0)


def total_duration_days(
    start_date: datetime | date | None,
    end_date: datetime | date | None,
    duration: str | None,
) -> int:
    start, end = utc_day(start_date), utc_day(end_date)
    if start is not None and end is not None and end > start:
        return (end - start).days
    return NOMINAL_DURATION_DAYS.get((duration or "").strip().lower(), 0)


def credit_basis_price(plan: Plan) -> Decimal:
    """Price the current term is prorated against."""
    if plan.isDiscountActive and plan.discountedPrice is not None:
        return plan.discountedPrice
    return plan.totalPrice


def compute_credit(days_remaining: int, total_days: int, price: Decimal) -> Decimal:
    if total_days <= 0 or price <= 0:
        return ZERO
    credit = quantize_money(Decimal(days_remaining) * price / Decimal(total_days))
    # Clamp: skewed dates must never yield more credit than was paid
    return min(max(credit, ZERO), quantize_money(price))


def eligible_upgrades(catalog: Iterable[Plan], current_plan: Plan | None) -> list[Plan]:
    if current_plan is None:
        return list(catalog)
    return [plan for plan in catalog if plan.totalPrice > current_plan.totalPrice]


def candidate_base_price(plan: Plan) -> Decimal:
    if plan.isDiscountActive and plan.discountedPrice and plan.discountedPrice > 0:
        return plan.discountedPrice
    return plan.totalPrice


def adjusted_price(base_price: Decimal, credit: Decimal) -> Decimal:
    return quantize_money(max(base_price - credit, ZERO))


def to_minor_units(amount: Decimal) -> int:
    """Rupees to paise, rounding half up."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def price_candidate(plan: Plan, credit: Decimal) -> UpgradeCandidate:
    base = candidate_base_price(plan)
    adjusted = adjusted_price(base, credit)
    return UpgradeCandidate(
        plan=to_view(plan),
        basePrice=quantize_money(base),
        creditApplied=quantize_money(min(credit, base)),
        adjustedPrice=adjusted,
        amountInPaise=to_minor_units(adjusted),
    )


class CurrentPosition:
    """The user's latest order with its plan and the credit it is worth today."""

    def __init__(self, order: OrderRecord, plan: Plan, today: date):
        self.order = order
        self.plan = plan
        self.days_left = days_left(order.endDate, today)
        self.total_days = total_duration_days(
            order.startDate, order.endDate, plan.duration or order.duration
        )
        self.credit = compute_credit(
            self.days_left, self.total_days, credit_basis_price(plan)
        )


class CreditService:
    """Upgrade quotes and entitlement summaries for a user session."""

    def __init__(
        self,
        auth_service: AuthService | None = None,
        order_client: OrderClient | None = None,
        catalog_service: CatalogService | None = None,
    ):
        self.auth = auth_service or AuthService()
        self.orders = order_client or OrderClient()
        self.catalog = catalog_service or CatalogService()

    async def _load(
        self, session: UserSession, today: date
    ) -> tuple[CurrentPosition | None, list[Plan]]:
        profile = await self.auth.resolve_profile(session)
        orders, catalog = await asyncio.gather(
            self.orders.user_orders(profile.userId, session),
            self.catalog.all_plans(session),
        )
        order = latest_order(orders)
        if order is None or not order.planId:
            return None, catalog

        # A missing plan must surface as an error; pricing it at zero would undercharge
        plan = await self.catalog.get_plan(order.planId, session)
        return CurrentPosition(order, plan, today), catalog

    async def quote_upgrades(
        self, session: UserSession | None, today: date | None = None
    ) -> UpgradeQuote:
        """
        Price every plan the caller may move to.

        Anonymous callers and users without orders get the full catalog at
        full price with zero credit.
        """
        today = today or today_utc()

        if session is None:
            catalog = await self.catalog.all_plans(None)
            position = None
        else:
            position, catalog = await self._load(session, today)

        credit = position.credit if position else ZERO
        current_plan = position.plan if position else None
        candidates = [
            price_candidate(plan, credit)
            for plan in eligible_upgrades(catalog, current_plan)
        ]

        logger.info(
            "Upgrade quote computed",
            extra={
                "has_current_plan": position is not None,
                "credit": str(credit),
                "candidates": len(candidates),
            },
        )
        return UpgradeQuote(
            currentOrder=position.order if position else None,
            currentPlan=to_view(current_plan) if current_plan else None,
            daysLeft=position.days_left if position else 0,
            totalDays=position.total_days if position else 0,
            credit=credit,
            candidates=candidates,
        )

    async def price_upgrade(
        self, session: UserSession, plan_id: str, today: date | None = None
    ) -> UpgradeCandidate:
        """
        Server-side price of one upgrade target.

        Raises:
            BusinessLogicException: If the plan is not an eligible upgrade
        """
        quote = await self.quote_upgrades(session, today)
        for candidate in quote.candidates:
            if candidate.plan.planId == plan_id:
                return candidate
        raise BusinessLogicException(
            "Selected plan is not an eligible upgrade for the current subscription",
            error_code="UPGRADE_NOT_ELIGIBLE",
            details={"planId": plan_id},
        )

    async def current_entitlement(
        self, session: UserSession, today: date | None = None
    ) -> CurrentEntitlement | None:
        today = today or today_utc()
        position, _ = await self._load(session, today)
        if position is None:
            return None

        return CurrentEntitlement(
            order=position.order,
            plan=to_view(position.plan),
            daysLeft=position.days_left,
            totalDays=position.total_days,
            credit=position.credit,
            isActive=bool(position.order.isActive) and position.days_left > 0,
        )
