"""Admin dashboard and payment reconciliation API endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from app.core.auth_dependencies import UserSession, require_admin
from app.schemas.admin import DashboardCounts
from app.schemas.checkout import CheckoutResult, PaymentIntentView
from app.schemas.response import SuccessResponse
from app.services.checkout_service import CheckoutService
from app.services.user_service import DashboardService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/dashboard", response_model=SuccessResponse[DashboardCounts])
async def dashboard(session: UserSession = Depends(require_admin)):
    """Totals of users, plans, features and orders."""
    counts = await DashboardService().counts(session)
    return SuccessResponse(message="Dashboard retrieved successfully", data=counts)


@router.get("/intents/partial", response_model=SuccessResponse[list[PaymentIntentView]])
async def list_partial_intents(
    limit: int = Query(100, ge=1, le=500),
    session: UserSession = Depends(require_admin),
):
    """
    Payments whose order was assigned but whose subscription was not.

    These are never retried automatically; an operator reconciles each one.
    """
    intents = await CheckoutService().list_partial_intents(limit=limit)
    logger.info("Partial intents listed", extra={"count": len(intents)})
    return SuccessResponse(message="Partial assignments retrieved", data=intents)


@router.post(
    "/intents/{intent_id}/reconcile", response_model=SuccessResponse[CheckoutResult]
)
async def reconcile_intent(intent_id: str, session: UserSession = Depends(require_admin)):
    result = await CheckoutService().reconcile_intent(session, intent_id)
    return SuccessResponse(message="Subscription assigned", data=result)
