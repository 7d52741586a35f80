"""Test cases for checkout API endpoints."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.api.endpoints.checkout import router
from app.core.exceptions import (
    AmountMismatchException,
    PartialAssignmentException,
    PreconditionException,
)
from app.schemas.checkout import CheckoutSession
from tests.conftest import build_app


@pytest.fixture
def client(user_session):
    return TestClient(build_app((router, "/checkout"), session=user_session))


@pytest.fixture
def mock_checkout():
    with patch("app.api.endpoints.checkout.CheckoutService") as service_class:
        service = AsyncMock()
        service_class.return_value = service
        yield service


class TestStartCheckout:
    def test_returns_gateway_details(self, client, mock_checkout, user_session):
        mock_checkout.start_checkout.return_value = CheckoutSession(
            intentId="intent-1",
            planId="plan-b",
            planName="Advanced",
            gatewayOrderId="order_RZP123",
            amount=Decimal("1666.67"),
            amountInPaise=166667,
            currency="INR",
            creditAmount=Decimal("333.33"),
            status="CREATED",
        )

        response = client.post("/checkout", json={"planId": "plan-b", "isUpgrade": True})

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["amountInPaise"] == 166667
        assert data["amount"] == 1666.67
        mock_checkout.start_checkout.assert_awaited_once_with(
            user_session, "plan-b", is_upgrade=True
        )

    def test_client_amount_is_ignored(self, client, mock_checkout):
        mock_checkout.start_checkout.return_value = CheckoutSession(
            intentId="i", planId="plan-b", currency="INR", status="CREATED"
        )

        client.post("/checkout", json={"planId": "plan-b", "amount": 1})

        kwargs = mock_checkout.start_checkout.await_args.kwargs
        assert "amount" not in kwargs

    def test_mismatch_reports_both_amounts(self, client, mock_checkout):
        mock_checkout.start_checkout.side_effect = AmountMismatchException(
            requested_paise=166667, confirmed_paise=170000
        )

        response = client.post("/checkout", json={"planId": "plan-b", "isUpgrade": True})

        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "AMOUNT_MISMATCH"
        assert body["details"]["requestedAmount"] == "1666.67"
        assert body["details"]["confirmedAmount"] == "1700.00"

    def test_missing_profile(self, client, mock_checkout):
        mock_checkout.start_checkout.side_effect = PreconditionException(
            "User profile not found. Please log in again."
        )

        response = client.post("/checkout", json={"planId": "plan-b"})

        assert response.status_code == 428


class TestCompleteCheckout:
    def test_partial_assignment_is_distinct(self, client, mock_checkout):
        mock_checkout.complete_checkout.side_effect = PartialAssignmentException(
            "Subscription could not be activated",
            details={"intentId": "intent-1"},
        )

        response = client.post(
            "/checkout/intent-1/complete",
            json={
                "razorpay_order_id": "order_RZP123",
                "razorpay_payment_id": "pay_RZP456",
                "razorpay_signature": "sig",
            },
        )

        assert response.status_code == 502
        body = response.json()
        assert body["error_code"] == "PARTIAL_ASSIGNMENT"
        assert body["details"]["orderAssigned"] is True
        assert body["details"]["subscriptionAssigned"] is False

    def test_callback_fields_required(self, client, mock_checkout):
        response = client.post(
            "/checkout/intent-1/complete", json={"razorpay_order_id": "order_RZP123"}
        )

        assert response.status_code == 422
        mock_checkout.complete_checkout.assert_not_called()


def test_checkout_requires_login():
    client = TestClient(build_app((router, "/checkout")))

    response = client.post("/checkout", json={"planId": "plan-b"})

    assert response.status_code == 401
