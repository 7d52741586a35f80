"""Feature catalog API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.core.auth_dependencies import UserSession, get_current_session, require_admin
from app.schemas.feature import Feature, FeatureRequest
from app.schemas.response import SuccessResponse
from app.services.feature_service import FeatureService

router = APIRouter()


@router.get("", response_model=SuccessResponse[list[Feature]])
async def list_features(
    active_only: bool = Query(False, description="Show only active features"),
    session: UserSession = Depends(get_current_session),
):
    features = await FeatureService().list_features(session, active_only=active_only)
    return SuccessResponse(message="Features retrieved successfully", data=features)


@router.get("/search", response_model=SuccessResponse[list[Feature]])
async def search_features(
    q: str = Query("", description="Keyword matched by the feature service"),
    session: UserSession = Depends(get_current_session),
):
    features = await FeatureService().search_features(q, session)
    return SuccessResponse(message="Features retrieved successfully", data=features)


@router.get("/count", response_model=SuccessResponse[int])
async def count_features(session: UserSession = Depends(require_admin)):
    count = await FeatureService().count_features(session)
    return SuccessResponse(message="Feature count retrieved", data=count)


@router.get("/{feature_id}", response_model=SuccessResponse[Feature])
async def get_feature(feature_id: str, session: UserSession = Depends(get_current_session)):
    feature = await FeatureService().get_feature(feature_id, session)
    return SuccessResponse(message="Feature retrieved successfully", data=feature)


@router.post("", response_model=SuccessResponse[Feature], status_code=201)
async def create_feature(
    feature_data: FeatureRequest, session: UserSession = Depends(require_admin)
):
    feature = await FeatureService().create_feature(feature_data, session)
    return SuccessResponse(message="Feature created successfully", data=feature)


@router.put("/{feature_id}", response_model=SuccessResponse[Feature])
async def update_feature(
    feature_id: str,
    feature_data: FeatureRequest,
    session: UserSession = Depends(require_admin),
):
    feature = await FeatureService().update_feature(feature_id, feature_data, session)
    return SuccessResponse(message="Feature updated successfully", data=feature)


@router.delete("/{feature_id}", response_model=SuccessResponse[dict])
async def delete_feature(feature_id: str, session: UserSession = Depends(require_admin)):
    await FeatureService().delete_feature(feature_id, session)
    return SuccessResponse(
        message="Feature deleted successfully", data={"featureId": feature_id}
    )
