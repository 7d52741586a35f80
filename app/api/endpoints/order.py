"""Order history and admin order table API endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from starlette.responses import StreamingResponse

from app.core.auth_dependencies import UserSession, get_current_session, require_admin
from app.schemas.order import OrderCounts, OrderFilter, OrderRecord, OrderRow
from app.schemas.response import PaginatedResponse, SuccessResponse
from app.services.order_service import OrderService

router = APIRouter()


def order_filters(
    plan_name: str | None = Query(None, alias="planName"),
    user_name: str | None = Query(None, alias="userName"),
    start_after: date | None = Query(
        None, alias="startAfter", description="Start date on or after"
    ),
    end_before: date | None = Query(
        None, alias="endBefore", description="Start date on or before"
    ),
) -> OrderFilter:
    return OrderFilter(
        planName=plan_name,
        userName=user_name,
        startAfter=start_after,
        endBefore=end_before,
    )


@router.get("/me", response_model=SuccessResponse[list[OrderRecord]])
async def my_orders(session: UserSession = Depends(get_current_session)):
    """The caller's purchases, newest first."""
    orders = await OrderService().my_orders(session)
    return SuccessResponse(message="Orders retrieved successfully", data=orders)


@router.get("", response_model=PaginatedResponse[OrderRow])
async def list_orders(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
    filters: OrderFilter = Depends(order_filters),
    session: UserSession = Depends(require_admin),
):
    """
    List all orders with user and plan details (admin only).

    Args:
        page: Page number
        size: Page size
        filters: Plan name, user name and start date bounds
        session: Current admin session

    Returns:
        Paginated order rows
    """
    rows, pagination = await OrderService().search_orders(session, filters, page, size)
    return PaginatedResponse(
        message="Orders retrieved successfully", data=rows, pagination=pagination
    )


@router.get("/export")
async def export_orders(
    filters: OrderFilter = Depends(order_filters),
    session: UserSession = Depends(require_admin),
):
    """Download the filtered order table as CSV."""
    filename, content = await OrderService().export_orders_csv(session, filters)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return StreamingResponse(content, media_type="text/csv", headers=headers)


@router.get("/count", response_model=SuccessResponse[OrderCounts])
async def count_orders(session: UserSession = Depends(require_admin)):
    counts = await OrderService().count_orders(session)
    return SuccessResponse(message="Order count retrieved", data=counts)
