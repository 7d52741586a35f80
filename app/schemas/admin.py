from __future__ import annotations

from pydantic import BaseModel

from app.schemas.order import OrderCounts
from app.schemas.user import UserCounts


class DashboardCounts(BaseModel):
    """Admin landing-page totals."""

    users: UserCounts
    plans: int
    features: int
    orders: OrderCounts
