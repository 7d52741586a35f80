"""Test cases for plan, feature and dashboard management services."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from app.schemas.order import OrderCounts
from app.schemas.plan import PlanRequest
from app.schemas.user import UserCounts
from app.services.feature_service import FeatureService
from app.services.plan_admin_service import PlanAdminService
from app.services.user_service import DashboardService
from tests.conftest import make_plan


async def test_dashboard_counts(admin_session):
    users = MagicMock(count_users=AsyncMock(return_value=UserCounts(totalUsers=5)))
    plans = MagicMock(count_plans=AsyncMock(return_value=3))
    features = MagicMock(count_features=AsyncMock(return_value=8))
    orders = MagicMock(
        count_orders=AsyncMock(return_value=OrderCounts(totalOrders=7, activeOrders=2))
    )

    counts = await DashboardService(users, plans, features, orders).counts(admin_session)

    assert counts.users.totalUsers == 5
    assert counts.plans == 3
    assert counts.features == 8
    assert counts.orders.activeOrders == 2


async def test_created_plan_carries_display_values(admin_session):
    plan_client = MagicMock()
    plan_client.create_plan = AsyncMock(
        return_value=make_plan(
            "p-9", "Pro", 1500, discounted=1200, discount_active=True, duration="YEAR"
        )
    )
    payload = PlanRequest(name="Pro", duration="YEAR", featureIds=["1"])

    view = await PlanAdminService(plan_client).create_plan(payload, admin_session)

    assert view.effectivePrice == Decimal("1200")
    assert view.durationLabel == "Yearly"
    assert view.discountPercent == 20
    plan_client.create_plan.assert_awaited_once_with(payload, admin_session)


async def test_deactivate_plan(admin_session):
    plan_client = MagicMock()
    plan_client.set_active = AsyncMock(
        return_value=make_plan("p-9", "Pro", 1500, isActive=False)
    )

    view = await PlanAdminService(plan_client).deactivate_plan("p-9", admin_session)

    assert view.isActive is False
    plan_client.set_active.assert_awaited_once_with("p-9", False, admin_session)


async def test_blank_feature_search_lists_all(user_session):
    feature_client = MagicMock()
    feature_client.list_features = AsyncMock(return_value=[])
    feature_client.search_features = AsyncMock()

    await FeatureService(feature_client).search_features("  ", user_session)

    feature_client.list_features.assert_awaited_once_with(user_session, active_only=False)
    feature_client.search_features.assert_not_called()
