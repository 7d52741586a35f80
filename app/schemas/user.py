from __future__ import annotations

from pydantic import AliasChoices, EmailStr, Field

from app.schemas.common import UpstreamModel


class ProfilePlan(UpstreamModel):
    """Plan summary embedded in a user profile."""

    planId: str | None = None
    planName: str | None = None
    startDate: str | None = None
    endDate: str | None = None
    isActive: bool | None = None


class UserProfile(UpstreamModel):
    """User profile as returned by the users service."""

    userId: str | None = Field(None, validation_alias=AliasChoices("userId", "id"))
    fullName: str | None = None
    email: str | None = None
    mobile: str | None = None
    isActive: bool | None = None
    plans: list[ProfilePlan] = Field(default_factory=list)
    vehicleName: str | None = None
    vehicleModelYear: int | None = None
    vehicleNumber: str | None = Field(
        None, validation_alias=AliasChoices("vehicleNumber", "vehicleNo")
    )


class UserProfileUpdate(UpstreamModel):
    """Schema for updating a profile (own or, for admins, any user)."""

    fullName: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    mobile: str | None = Field(None, max_length=20)
    vehicleName: str | None = None
    vehicleModelYear: int | None = Field(None, ge=1900, le=2100)
    vehicleNo: str | None = None
    isActive: bool | None = None


class UserCounts(UpstreamModel):
    totalUsers: int = 0
    activeUsers: int = 0
    inactiveUsers: int = 0
