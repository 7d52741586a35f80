"""Test configuration and fixtures."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from app.core.auth_dependencies import (
    UserSession,
    get_current_session,
    get_optional_session,
    require_admin,
)
from app.core.config import settings
from app.core.database import get_database
from app.core.error_handlers import (
    base_api_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.core.exceptions import BaseAPIException
from app.schemas.order import OrderRecord
from app.schemas.plan import Plan
from app.schemas.user import UserProfile

USER_ID = "7d0c1a52-3c1e-4b57-9f4e-1b6a2b7d9e01"


def make_token(email="driver@example.com", role="USER", minutes=60, **claims):
    """Sign a token the way the users service does (shared HMAC secret)."""
    payload = {
        "sub": email,
        "role": role,
        "exp": datetime.now(UTC) + timedelta(minutes=minutes),
        **claims,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def make_plan(plan_id, name, total, discounted=None, discount_active=False, **extra):
    return Plan(
        planId=plan_id,
        name=name,
        duration=extra.pop("duration", "MONTH"),
        totalPrice=Decimal(str(total)),
        discountedPrice=Decimal(str(discounted)) if discounted is not None else None,
        isDiscountActive=discount_active,
        **extra,
    )


def build_app(*routers, session=None, admin=None):
    """
    Mount routers on a bare app with the production exception handlers.

    Routers are given as (router, prefix) pairs; sessions override the
    authentication dependencies.
    """
    app = FastAPI()
    for router, prefix in routers:
        app.include_router(router, prefix=prefix)

    app.add_exception_handler(BaseAPIException, base_api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.dependency_overrides[get_database] = lambda: None
    if session is not None:
        app.dependency_overrides[get_current_session] = lambda: session
        app.dependency_overrides[get_optional_session] = lambda: session
    if admin is not None:
        app.dependency_overrides[require_admin] = lambda: admin
    return app


@pytest.fixture
def user_session():
    """Session of a regular signed-in user."""
    return UserSession(
        token="user-token",
        email="driver@example.com",
        roles=("USER",),
        expires_at=datetime.now(UTC) + timedelta(hours=1),
    )


@pytest.fixture
def admin_session():
    return UserSession(
        token="admin-token",
        email="admin@example.com",
        roles=("ADMIN",),
        expires_at=datetime.now(UTC) + timedelta(hours=1),
    )


@pytest.fixture
def profile():
    return UserProfile(userId=USER_ID, fullName="Asha Rao", email="driver@example.com")


@pytest.fixture
def mock_auth_service(profile):
    """AuthService whose profile lookup always succeeds."""
    service = MagicMock()
    service.resolve_profile = AsyncMock(return_value=profile)
    return service


@pytest.fixture
def plan_a():
    return make_plan("plan-a", "Basic", 1000)


@pytest.fixture
def plan_b():
    return make_plan("plan-b", "Advanced", 2000)


@pytest.fixture
def plan_c():
    return make_plan("plan-c", "Lite", 800, discounted=600, discount_active=True)


@pytest.fixture
def free_plan():
    return make_plan("plan-free", "Free", 0)


@pytest.fixture
def order_on_plan_a():
    """Thirty-day term on Plan A, ten days left on 2024-01-21."""
    return OrderRecord(
        id="order-1",
        planId="plan-a",
        planName="Basic",
        duration="MONTH",
        startDate=datetime(2024, 1, 1),
        endDate=datetime(2024, 1, 31),
        createdAt=datetime(2024, 1, 1, 9, 30),
        isActive=True,
        userId=USER_ID,
    )
