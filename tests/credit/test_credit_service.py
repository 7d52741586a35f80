"""Test cases for CreditService quotes and entitlement summaries."""

from datetime import date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import BusinessLogicException, NotFoundException
from app.schemas.order import OrderRecord
from app.services.credit_service import CreditService
from tests.conftest import USER_ID

TODAY = date(2024, 1, 21)


@pytest.fixture
def catalog(plan_a, plan_b, plan_c, free_plan):
    service = MagicMock()
    service.all_plans = AsyncMock(return_value=[free_plan, plan_a, plan_b, plan_c])
    service.get_plan = AsyncMock(return_value=plan_a)
    return service


@pytest.fixture
def order_client(order_on_plan_a):
    client = MagicMock()
    client.user_orders = AsyncMock(return_value=[order_on_plan_a])
    return client


@pytest.fixture
def credit_service(mock_auth_service, order_client, catalog):
    return CreditService(
        auth_service=mock_auth_service,
        order_client=order_client,
        catalog_service=catalog,
    )


class TestQuoteUpgrades:
    async def test_quote_for_current_subscriber(
        self, credit_service, user_session, order_client, catalog
    ):
        quote = await credit_service.quote_upgrades(user_session, today=TODAY)

        assert quote.currentPlan.planId == "plan-a"
        assert quote.daysLeft == 10
        assert quote.totalDays == 30
        assert quote.credit == Decimal("333.33")
        assert [c.plan.planId for c in quote.candidates] == ["plan-b"]
        assert quote.candidates[0].adjustedPrice == Decimal("1666.67")
        order_client.user_orders.assert_awaited_once_with(USER_ID, user_session)
        catalog.get_plan.assert_awaited_once_with("plan-a", user_session)

    async def test_anonymous_caller_gets_full_catalog_at_full_price(
        self, credit_service, catalog, order_client
    ):
        quote = await credit_service.quote_upgrades(None, today=TODAY)

        assert quote.credit == Decimal("0.00")
        assert quote.currentPlan is None
        assert len(quote.candidates) == 4
        assert all(c.creditApplied == Decimal("0.00") for c in quote.candidates)
        catalog.all_plans.assert_awaited_once_with(None)
        order_client.user_orders.assert_not_called()

    async def test_user_without_orders(self, credit_service, user_session, order_client):
        order_client.user_orders.return_value = []

        quote = await credit_service.quote_upgrades(user_session, today=TODAY)

        assert quote.currentOrder is None
        assert quote.credit == Decimal("0.00")
        assert len(quote.candidates) == 4

    async def test_uses_most_recent_order(
        self, credit_service, user_session, order_client, catalog, plan_b
    ):
        newer = OrderRecord(
            id="order-2",
            planId="plan-b",
            startDate=datetime(2024, 1, 11),
            endDate=datetime(2024, 2, 10),
            createdAt=datetime(2024, 1, 11),
            isActive=True,
        )
        order_client.user_orders.return_value = [
            order_client.user_orders.return_value[0],
            newer,
        ]
        catalog.get_plan.return_value = plan_b

        quote = await credit_service.quote_upgrades(user_session, today=TODAY)

        catalog.get_plan.assert_awaited_once_with("plan-b", user_session)
        assert quote.daysLeft == 20
        assert quote.candidates == []

    async def test_missing_plan_propagates(self, credit_service, user_session, catalog):
        catalog.get_plan.side_effect = NotFoundException("Plan", "plan-a")

        with pytest.raises(NotFoundException):
            await credit_service.quote_upgrades(user_session, today=TODAY)


class TestPriceUpgrade:
    async def test_eligible_target(self, credit_service, user_session):
        candidate = await credit_service.price_upgrade(user_session, "plan-b", TODAY)

        assert candidate.amountInPaise == 166667

    async def test_ineligible_target(self, credit_service, user_session):
        with pytest.raises(BusinessLogicException) as exc_info:
            await credit_service.price_upgrade(user_session, "plan-c", TODAY)

        assert exc_info.value.error_code == "UPGRADE_NOT_ELIGIBLE"


class TestCurrentEntitlement:
    async def test_active_term(self, credit_service, user_session):
        entitlement = await credit_service.current_entitlement(user_session, TODAY)

        assert entitlement.isActive is True
        assert entitlement.plan.durationLabel == "Monthly"
        assert entitlement.credit == Decimal("333.33")

    async def test_expired_term_is_inactive(self, credit_service, user_session):
        entitlement = await credit_service.current_entitlement(
            user_session, date(2024, 3, 1)
        )

        assert entitlement.isActive is False
        assert entitlement.daysLeft == 0
        assert entitlement.credit == Decimal("0.00")

    async def test_no_orders(self, credit_service, user_session, order_client):
        order_client.user_orders.return_value = []

        assert await credit_service.current_entitlement(user_session, TODAY) is None
