"""Test cases for order API endpoints."""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.api.endpoints.order import router
from app.schemas.order import OrderFilter, OrderRow
from app.schemas.response import PaginationMeta
from app.services.order_service import iter_orders_csv
from tests.conftest import build_app


@pytest.fixture
def mock_orders():
    with patch("app.api.endpoints.order.OrderService") as service_class:
        service = AsyncMock()
        service_class.return_value = service
        yield service


@pytest.fixture
def admin_client(admin_session):
    return TestClient(build_app((router, "/orders"), admin=admin_session))


@pytest.fixture
def row():
    return OrderRow(orderId="order-1", userName="Asha Rao", planName="Basic")


def test_my_orders(user_session, mock_orders, order_on_plan_a):
    mock_orders.my_orders.return_value = [order_on_plan_a]
    client = TestClient(build_app((router, "/orders"), session=user_session))

    response = client.get("/orders/me")

    assert response.status_code == 200
    assert response.json()["data"][0]["id"] == "order-1"


def test_order_table_is_admin_only(user_session, mock_orders):
    client = TestClient(build_app((router, "/orders"), session=user_session))

    response = client.get("/orders")

    assert response.status_code == 403
    mock_orders.search_orders.assert_not_called()


def test_order_table_pagination_and_filters(admin_client, admin_session, mock_orders, row):
    mock_orders.search_orders.return_value = (
        [row],
        PaginationMeta(page=2, size=1, total=3, pages=3, has_next=True, has_prev=True),
    )

    response = admin_client.get(
        "/orders",
        params={"page": 2, "size": 1, "planName": "bas", "startAfter": "2024-01-01"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 3
    assert body["data"][0]["userName"] == "Asha Rao"
    mock_orders.search_orders.assert_awaited_once_with(
        admin_session,
        OrderFilter(planName="bas", startAfter=date(2024, 1, 1)),
        2,
        1,
    )


def test_order_table_rejects_large_pages(admin_client, mock_orders):
    response = admin_client.get("/orders", params={"size": 500})

    assert response.status_code == 422


def test_export_streams_csv(admin_client, mock_orders, row):
    mock_orders.export_orders_csv.return_value = (
        "orders_20240121_101500.csv",
        iter_orders_csv([row]),
    )

    response = admin_client.get("/orders/export", params={"userName": "asha"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert (
        response.headers["content-disposition"]
        == 'attachment; filename="orders_20240121_101500.csv"'
    )
    lines = response.text.splitlines()
    assert lines[0].startswith("Order ID,User Name")
    assert lines[1].startswith("order-1,Asha Rao")
