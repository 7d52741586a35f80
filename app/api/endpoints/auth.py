"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends

from app.core.auth_dependencies import UserSession, get_current_session
from app.core.database import get_database
from app.schemas.auth import LoginRequest, LoginResponse, LogoutResponse, RegisterRequest
from app.schemas.response import SuccessResponse
from app.services.auth_service import AuthService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/login", response_model=SuccessResponse[LoginResponse])
async def login(login_request: LoginRequest, db=Depends(get_database)):
    """
    Authenticate against the users service and relay its token.

    Args:
        login_request: Login credentials
        db: Database dependency

    Returns:
        Token and role for the client to send as a bearer credential
    """
    auth_service = AuthService(db)
    login_response = await auth_service.login(login_request)
    return SuccessResponse(message="Login successful", data=login_response)


@router.post("/register", response_model=SuccessResponse[dict])
async def register(register_request: RegisterRequest, db=Depends(get_database)):
    """Create an account in the users service."""
    auth_service = AuthService(db)
    result = await auth_service.register(register_request)
    return SuccessResponse(message="Registration successful", data=result)


@router.post("/logout", response_model=SuccessResponse[LogoutResponse])
async def logout(
    session: UserSession = Depends(get_current_session),
    db=Depends(get_database),
):
    """
    Revoke the current token until it expires.

    Args:
        session: Current user session
        db: Database dependency

    Returns:
        Logout confirmation response
    """
    auth_service = AuthService(db)
    logout_response = await auth_service.logout(session)
    return SuccessResponse(message="Logout successful", data=logout_response)
