"""User profile and user administration API endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.core.auth_dependencies import UserSession, get_current_session, require_admin
from app.schemas.response import SuccessResponse
from app.schemas.user import UserCounts, UserProfile, UserProfileUpdate
from app.services.user_service import UserService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/profile", response_model=SuccessResponse[UserProfile])
async def get_profile(session: UserSession = Depends(get_current_session)):
    """
    Get the current user's profile.

    Args:
        session: Current user session

    Returns:
        Profile with purchased plans and vehicle details
    """
    profile = await UserService().get_profile(session)
    return SuccessResponse(message="Profile retrieved successfully", data=profile)


@router.put("/profile", response_model=SuccessResponse[UserProfile])
async def update_profile(
    profile_update: UserProfileUpdate,
    session: UserSession = Depends(get_current_session),
):
    profile = await UserService().update_profile(profile_update, session)
    return SuccessResponse(message="Profile updated successfully", data=profile)


@router.get("", response_model=SuccessResponse[list[UserProfile]])
async def list_users(session: UserSession = Depends(require_admin)):
    users = await UserService().list_users(session)
    logger.info("Users listed", extra={"count": len(users)})
    return SuccessResponse(message="Users retrieved successfully", data=users)


@router.get("/count", response_model=SuccessResponse[UserCounts])
async def count_users(session: UserSession = Depends(require_admin)):
    counts = await UserService().count_users(session)
    return SuccessResponse(message="User count retrieved", data=counts)


@router.get("/{user_id}", response_model=SuccessResponse[UserProfile])
async def get_user(user_id: str, session: UserSession = Depends(require_admin)):
    user = await UserService().get_user(user_id, session)
    return SuccessResponse(message="User retrieved successfully", data=user)


@router.put("/{user_id}", response_model=SuccessResponse[UserProfile])
async def update_user(
    user_id: str,
    profile_update: UserProfileUpdate,
    session: UserSession = Depends(require_admin),
):
    """Update any user's profile (admin only)."""
    user = await UserService().update_user(user_id, profile_update, session)
    return SuccessResponse(message="User updated successfully", data=user)
