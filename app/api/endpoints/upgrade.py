"""Upgrade pricing API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth_dependencies import (
    UserSession,
    get_current_session,
    get_optional_session,
)
from app.schemas.response import SuccessResponse
from app.schemas.upgrade import CurrentEntitlement, UpgradeQuote
from app.services.credit_service import CreditService

router = APIRouter()


@router.get("/quote", response_model=SuccessResponse[UpgradeQuote])
async def quote_upgrades(session: UserSession | None = Depends(get_optional_session)):
    """
    Plans the caller can move to, each with credit applied.

    Anonymous callers see the whole catalog at full price.
    """
    quote = await CreditService().quote_upgrades(session)
    return SuccessResponse(message="Upgrade options computed", data=quote)


@router.get("/current", response_model=SuccessResponse[CurrentEntitlement | None])
async def current_entitlement(session: UserSession = Depends(get_current_session)):
    entitlement = await CreditService().current_entitlement(session)
    message = "Current plan retrieved" if entitlement else "No plan purchased yet"
    return SuccessResponse(message=message, data=entitlement)
