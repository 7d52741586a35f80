"""Order history for users and the enriched order table for administrators."""

from __future__ import annotations

import asyncio
import csv
import io
import logging
from collections.abc import Iterable, Iterator
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TypeVar

from app.core.config import settings
from app.core.exceptions import BaseAPIException
from app.schemas.order import OrderCounts, OrderFilter, OrderRecord, OrderRow
from app.schemas.plan import Plan
from app.schemas.response import PaginationMeta
from app.services.auth_service import AuthService
from app.services.credit_service import order_recency, utc_day
from app.services.integrations.order_client import OrderClient
from app.services.integrations.plan_client import PlanClient
from app.services.integrations.user_client import UserClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = (
    ("Order ID", "orderId"),
    ("User Name", "userName"),
    ("User ID", "userId"),
    ("Plan ID", "planId"),
    ("Plan Name", "planName"),
    ("Description", "description"),
    ("Duration", "duration"),
    ("Features", "features"),
    ("Total Price", "totalPrice"),
    ("Discounted Price", "discountedPrice"),
    ("Discount (%)", "discountPercentage"),
    ("Is Discount Active", "isDiscountActive"),
    ("Is Plan Active", "isPlanActive"),
    ("Start Date", "startDate"),
    ("End Date", "endDate"),
    ("Is Order Active", "isOrderActive"),
)


def newest_first(orders: Iterable[OrderRecord]) -> list[OrderRecord]:
    # Same ordering the credit calculator uses to pick the current order
    return sorted(orders, key=order_recency, reverse=True)


def build_row(order: OrderRecord, user_name: str, plan: Plan | None) -> OrderRow:
    """Merge an order with its plan details; order fields win when the plan is gone."""
    features = plan.features if plan and plan.features else order.features
    return OrderRow(
        orderId=order.id or "",
        userName=user_name,
        userId=order.userId,
        planId=order.planId,
        planName=(plan.name if plan else None) or order.planName,
        description=(plan.description if plan else None) or order.description,
        duration=(plan.duration if plan else None) or order.duration,
        features=", ".join(feature.name for feature in features if feature.name),
        totalPrice=plan.totalPrice if plan else order.totalPrice,
        discountedPrice=plan.discountedPrice if plan else order.discountedPrice,
        discountPercentage=plan.discountPercentage if plan else None,
        isDiscountActive=bool(
            plan.isDiscountActive if plan else order.isDiscountActive
        ),
        isPlanActive=bool(plan.isActive if plan else order.isPlanActive),
        startDate=order.startDate,
        endDate=order.endDate,
        isOrderActive=bool(order.isActive),
        createdAt=order.createdAt,
    )


def filter_orders(rows: Iterable[OrderRow], filters: OrderFilter) -> list[OrderRow]:
    """
    Apply the admin table filters.

    Both date bounds compare against the start date; a row without a start
    date never matches once either bound is set.
    """
    plan_name = (filters.planName or "").strip().lower()
    user_name = (filters.userName or "").strip().lower()
    date_bound = filters.startAfter is not None or filters.endBefore is not None

    selected = []
    for row in rows:
        if plan_name and plan_name not in (row.planName or "").lower():
            continue
        if user_name and user_name not in (row.userName or "").lower():
            continue
        if date_bound:
            start = utc_day(row.startDate)
            if start is None:
                continue
            if filters.startAfter and start < filters.startAfter:
                continue
            if filters.endBefore and start > filters.endBefore:
                continue
        selected.append(row)
    return selected


T = TypeVar("T")


def paginate(items: list[T], page: int, size: int) -> tuple[list[T], PaginationMeta]:
    total = len(items)
    start = (page - 1) * size
    meta = PaginationMeta(
        page=page,
        size=size,
        total=total,
        pages=(total + size - 1) // size,
        has_next=page * size < total,
        has_prev=page > 1,
    )
    return items[start : start + size], meta


def _csv_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def iter_orders_csv(rows: Iterable[OrderRow]) -> Iterator[str]:
    """Yield the CSV document line by line, header first."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    def flush() -> str:
        line = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return line

    writer.writerow([header for header, _ in EXPORT_COLUMNS])
    yield flush()
    for row in rows:
        writer.writerow([_csv_value(getattr(row, field)) for _, field in EXPORT_COLUMNS])
        yield flush()


def export_filename(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"{settings.ORDER_EXPORT_PREFIX}_{now.strftime('%Y%m%d_%H%M%S')}.csv"


class OrderService:
    def __init__(
        self,
        auth_service: AuthService | None = None,
        order_client: OrderClient | None = None,
        user_client: UserClient | None = None,
        plan_client: PlanClient | None = None,
    ):
        self.auth = auth_service or AuthService()
        self.orders = order_client or OrderClient()
        self.users = user_client or UserClient()
        self.plans = plan_client or PlanClient()

    async def my_orders(self, session: UserSession) -> list[OrderRecord]:
        profile = await self.auth.resolve_profile(session)
        orders = await self.orders.user_orders(profile.userId, session)
        return newest_first(orders)

    async def _user_name(self, user_id: str, session: UserSession) -> str:
        try:
            return await self.users.user_name(user_id, session)
        except BaseAPIException as e:
            logger.warning(
                "User lookup failed for order table",
                extra={"user_id": user_id, "error_code": e.error_code},
            )
            return user_id

    async def _plan(self, plan_id: str, session: UserSession) -> Plan | None:
        try:
            return await self.plans.get_plan(plan_id, session)
        except BaseAPIException as e:
            logger.warning(
                "Plan lookup failed for order table",
                extra={"plan_id": plan_id, "error_code": e.error_code},
            )
            return None

    async def list_orders(self, session: UserSession) -> list[OrderRow]:
        """
        All orders with user names and plan details, newest first.

        Lookups run concurrently, one per distinct id. A failed lookup falls
        back to the raw id (users) or the order's own fields (plans).
        """
        orders = newest_first(await self.orders.all_orders(session))
        user_ids = sorted({order.userId for order in orders if order.userId})
        plan_ids = sorted({order.planId for order in orders if order.planId})

        names, plans = await asyncio.gather(
            asyncio.gather(*(self._user_name(uid, session) for uid in user_ids)),
            asyncio.gather(*(self._plan(pid, session) for pid in plan_ids)),
        )
        names_by_id = dict(zip(user_ids, names, strict=True))
        plans_by_id = dict(zip(plan_ids, plans, strict=True))

        logger.info(
            "Order table built",
            extra={
                "orders": len(orders),
                "users": len(user_ids),
                "plans": len(plan_ids),
            },
        )
        return [
            build_row(
                order,
                names_by_id.get(order.userId, order.userName or order.userId or ""),
                plans_by_id.get(order.planId),
            )
            for order in orders
        ]

    async def search_orders(
        self, session: UserSession, filters: OrderFilter, page: int, size: int
    ) -> tuple[list[OrderRow], PaginationMeta]:
        rows = filter_orders(await self.list_orders(session), filters)
        return paginate(rows, page, size)

    async def export_orders_csv(
        self, session: UserSession, filters: OrderFilter
    ) -> tuple[str, Iterator[str]]:
        rows = filter_orders(await self.list_orders(session), filters)
        filename = export_filename()
        logger.info("Order export prepared", extra={"rows": len(rows), "file": filename})
        return filename, iter_orders_csv(rows)

    async def count_orders(self, session: UserSession) -> OrderCounts:
        return await self.orders.count_orders(session)
