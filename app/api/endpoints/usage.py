"""Feature usage API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth_dependencies import UserSession, get_current_session
from app.schemas.response import SuccessResponse
from app.schemas.usage import ConsumeFeatureRequest, UsageHistoryEntry, UsageOverview
from app.services.usage_service import UsageService

router = APIRouter()


@router.get("", response_model=SuccessResponse[UsageOverview])
async def usage_overview(session: UserSession = Depends(get_current_session)):
    overview = await UsageService().usage_overview(session)
    return SuccessResponse(message="Usage retrieved successfully", data=overview)


@router.get(
    "/{feature_name}/history", response_model=SuccessResponse[list[UsageHistoryEntry]]
)
async def feature_history(
    feature_name: str, session: UserSession = Depends(get_current_session)
):
    history = await UsageService().feature_history(session, feature_name)
    return SuccessResponse(message="Usage history retrieved", data=history)


@router.post("/consume", response_model=SuccessResponse[dict])
async def consume_feature(
    consume_request: ConsumeFeatureRequest,
    session: UserSession = Depends(get_current_session),
):
    """Use one unit of a feature from the current subscription."""
    result = await UsageService().consume_feature(session, consume_request.featureName)
    return SuccessResponse(message="Feature usage recorded", data=result)
