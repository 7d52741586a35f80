"""Plan catalog and plan management API endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from app.core.auth_dependencies import UserSession, require_admin
from app.core.exceptions import ValidationException
from app.schemas.plan import PlanRequest, PlanView, PricePreview
from app.schemas.response import SuccessResponse
from app.services.catalog_service import CatalogService
from app.services.plan_admin_service import PlanAdminService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=SuccessResponse[list[PlanView]])
async def list_plans(
    plan_type: str | None = Query(None, alias="type", description="Exact plan name"),
    duration: str | None = Query(None, description="Duration label, e.g. Monthly"),
    active_only: bool = Query(False, description="Show only active plans"),
    include_free: bool = Query(True, description="Include zero-price plans"),
):
    """List plans grouped Free, Basic, Advanced, then the rest."""
    plans = await CatalogService().list_plans(
        active_only=active_only,
        name=plan_type,
        duration=duration,
        include_free=include_free,
    )
    return SuccessResponse(message="Plans retrieved successfully", data=plans)


@router.get("/preview", response_model=SuccessResponse[PricePreview])
async def preview_plan_price(
    feature_ids: str = Query(..., alias="featureIds", description="Comma-separated ids"),
    session: UserSession = Depends(require_admin),
):
    """Price a plan the plan service would build from these features."""
    ids = [feature_id.strip() for feature_id in feature_ids.split(",") if feature_id.strip()]
    if not ids:
        raise ValidationException("At least one feature id is required")

    preview = await PlanAdminService().preview_price(ids, session)
    return SuccessResponse(message="Price preview computed", data=preview)


@router.get("/count", response_model=SuccessResponse[int])
async def count_plans(session: UserSession = Depends(require_admin)):
    count = await PlanAdminService().count_plans(session)
    return SuccessResponse(message="Plan count retrieved", data=count)


@router.get("/{plan_id}", response_model=SuccessResponse[PlanView])
async def get_plan(plan_id: str):
    """Get plan details by ID."""
    plan = await CatalogService().get_plan_view(plan_id)
    logger.info("Plan retrieved", extra={"plan_id": plan_id})
    return SuccessResponse(message="Plan retrieved successfully", data=plan)


@router.post("", response_model=SuccessResponse[PlanView], status_code=201)
async def create_plan(
    plan_data: PlanRequest, session: UserSession = Depends(require_admin)
):
    plan = await PlanAdminService().create_plan(plan_data, session)
    return SuccessResponse(message="Plan created successfully", data=plan)


@router.put("/{plan_id}", response_model=SuccessResponse[PlanView])
async def update_plan(
    plan_id: str,
    plan_data: PlanRequest,
    session: UserSession = Depends(require_admin),
):
    """Replace a plan; the plan service validates the full body."""
    plan = await PlanAdminService().update_plan(plan_id, plan_data, session)
    return SuccessResponse(message="Plan updated successfully", data=plan)


@router.delete("/{plan_id}", response_model=SuccessResponse[dict])
async def delete_plan(plan_id: str, session: UserSession = Depends(require_admin)):
    await PlanAdminService().delete_plan(plan_id, session)
    return SuccessResponse(message="Plan deleted successfully", data={"planId": plan_id})


@router.post("/{plan_id}/activate", response_model=SuccessResponse[PlanView])
async def activate_plan(plan_id: str, session: UserSession = Depends(require_admin)):
    plan = await PlanAdminService().activate_plan(plan_id, session)
    return SuccessResponse(message="Plan activated", data=plan)


@router.post("/{plan_id}/deactivate", response_model=SuccessResponse[PlanView])
async def deactivate_plan(plan_id: str, session: UserSession = Depends(require_admin)):
    plan = await PlanAdminService().deactivate_plan(plan_id, session)
    return SuccessResponse(message="Plan deactivated", data=plan)
