"""Checkout API endpoints (gateway order, callback, dismissal, free plans)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.core.auth_dependencies import UserSession, get_current_session
from app.schemas.checkout import (
    CheckoutRequest,
    CheckoutResult,
    CheckoutSession,
    GatewayCallback,
    PaymentIntentView,
)
from app.schemas.response import SuccessResponse
from app.services.checkout_service import CheckoutService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=SuccessResponse[CheckoutSession], status_code=201)
async def start_checkout(
    checkout_request: CheckoutRequest,
    session: UserSession = Depends(get_current_session),
):
    """
    Start a checkout for a plan.

    Args:
        checkout_request: Plan and whether this is an upgrade
        session: Current user session

    Returns:
        Gateway order details for the payment widget, or the assignment
        result when the plan is free
    """
    checkout = await CheckoutService().start_checkout(
        session, checkout_request.planId, is_upgrade=checkout_request.isUpgrade
    )
    message = "Free plan assigned" if checkout.free else "Checkout created"
    return SuccessResponse(message=message, data=checkout)


@router.post("/free/{plan_id}", response_model=SuccessResponse[CheckoutResult])
async def assign_free_plan(
    plan_id: str, session: UserSession = Depends(get_current_session)
):
    result = await CheckoutService().assign_free_plan(session, plan_id)
    return SuccessResponse(message="Free plan assigned", data=result)


@router.get("/{intent_id}", response_model=SuccessResponse[PaymentIntentView])
async def get_intent(intent_id: str, session: UserSession = Depends(get_current_session)):
    intent = await CheckoutService().get_intent(session, intent_id)
    return SuccessResponse(message="Payment intent retrieved", data=intent)


@router.post("/{intent_id}/complete", response_model=SuccessResponse[CheckoutResult])
async def complete_checkout(
    intent_id: str,
    callback: GatewayCallback,
    session: UserSession = Depends(get_current_session),
):
    """Verify the gateway callback and assign the purchased plan."""
    result = await CheckoutService().complete_checkout(session, intent_id, callback)
    return SuccessResponse(message="Plan purchased successfully", data=result)


@router.post("/{intent_id}/cancel", response_model=SuccessResponse[PaymentIntentView])
async def cancel_checkout(
    intent_id: str, session: UserSession = Depends(get_current_session)
):
    intent = await CheckoutService().cancel_checkout(session, intent_id)
    return SuccessResponse(message="Checkout cancelled", data=intent)
