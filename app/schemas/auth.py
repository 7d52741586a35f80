"""Authentication schemas for requests and responses."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password is not empty."""
        if not v or not v.strip():
            raise ValueError("Password cannot be empty")
        return v


class LoginResponse(BaseModel):
    """Login response schema, relayed from the users service."""

    token: str = Field(..., description="JWT access token issued by the users service")
    role: str | None = Field(None, description="Primary role of the user")
    message: str | None = Field(None, description="Message from the users service")


class RegisterRequest(BaseModel):
    """Registration request schema."""

    fullName: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    mobile: str = Field(..., min_length=7, max_length=20)
    password: str = Field(..., min_length=8, max_length=128)
    vehicleName: str | None = None
    vehicleModelYear: int | None = Field(None, ge=1900, le=2100)
    vehicleNo: str | None = None

    @field_validator("mobile")
    @classmethod
    def validate_mobile(cls, v: str) -> str:
        digits = v.replace("+", "").replace(" ", "").replace("-", "")
        if not digits.isdigit():
            raise ValueError("Mobile number must contain digits only")
        return v.strip()


class LogoutResponse(BaseModel):
    """Logout response schema."""

    message: str = Field(..., description="Logout confirmation message")
    logged_out_at: datetime = Field(..., description="Logout timestamp")
