"""
Kitchen routes: preparation statistics for kitchen staff.

An order counts as prepared in a window when it became READY in it, or
when it is COMPLETED and either its completion or ready time falls in it.
"""

from datetime import date, timedelta
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from flame_kitchen.api.deps import require_roles
from flame_kitchen.database import get_db
from flame_kitchen.models import Order, OrderStatus, User, UserRole
from flame_kitchen.schemas import OrderResponse, UserSummary
from flame_kitchen.services.day_session import day_bounds, today_bounds
from flame_kitchen.services.ordering import order_load_options

router = APIRouter(prefix="/api/kitchen", tags=["Kitchen"])

kitchen_access = require_roles(UserRole.KITCHEN_STAFF, UserRole.ADMIN)


def prepared_in(start, end):
    """Filter for orders prepared within [start, end)."""
    return or_(
        and_(Order.status == OrderStatus.READY, Order.ready_at >= start, Order.ready_at < end),
        and_(
            Order.status == OrderStatus.COMPLETED,
            or_(
                and_(Order.completed_at >= start, Order.completed_at < end),
                and_(Order.ready_at >= start, Order.ready_at < end),
            ),
        ),
    )


def item_count(order: Order) -> int:
    return sum(item.quantity for item in order.items)


def average_prep_minutes(orders: list[Order]) -> float:
    """Mean minutes from creation to READY, over all given orders."""
    if not orders:
        return 0.0
    total = sum(
        (o.ready_at - o.created_at).total_seconds() / 60
        for o in orders
        if o.ready_at and o.created_at
    )
    return round(total / len(orders), 1)


async def prepared_orders(db: AsyncSession, start, end, staff_id: Optional[str]) -> list[Order]:
    conditions = [prepared_in(start, end)]
    if staff_id:
        conditions.append(Order.prepared_by_id == staff_id)
    result = await db.execute(
        select(Order)
        .options(*order_load_options())
        .where(*conditions)
        .order_by(Order.ready_at.desc(), Order.completed_at.desc())
    )
    return list(result.scalars().all())


@router.get("/dashboard", summary="Kitchen Dashboard")
async def kitchen_dashboard(
    user: User = Depends(kitchen_access),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Orders the caller prepared today."""
    start, end = today_bounds()
    orders = await prepared_orders(db, start, end, user.id)

    return {
        "stats": {
            "total_prepared": len(orders),
            "total_items_prepared": sum(item_count(o) for o in orders),
            "total_value": round(sum(o.total for o in orders), 2),
            "avg_prep_time": average_prep_minutes(orders),
        },
        "recent_orders": [OrderResponse.model_validate(o) for o in orders[:20]],
    }


@router.get("/reports", summary="Kitchen Reports")
async def kitchen_reports(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    staff_id: Optional[str] = Query(None),
    user: User = Depends(kitchen_access),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Prepared orders over a date range (today by default).

    Kitchen staff only ever see their own work. Admins see everyone,
    or one member of staff with ``staff_id``, plus per-staff totals.
    """
    start, end = today_bounds()
    if start_date:
        start = day_bounds(start_date)[0]
    if end_date:
        end = day_bounds(end_date)[1]

    is_admin = user.role == UserRole.ADMIN
    orders = await prepared_orders(db, start, end, staff_id if is_admin else user.id)

    staff_stats: dict[str, dict[str, Any]] = {}
    if is_admin:
        for order in orders:
            if order.prepared_by is None:
                continue
            entry = staff_stats.setdefault(order.prepared_by.id, {
                "staff": UserSummary.model_validate(order.prepared_by),
                "total_orders": 0,
                "total_items": 0,
                "total_value": 0.0,
            })
            entry["total_orders"] += 1
            entry["total_items"] += item_count(order)
            entry["total_value"] = round(entry["total_value"] + order.total, 2)

    return {
        "period": {
            "start_date": start.isoformat(),
            "end_date": (end - timedelta(microseconds=1)).isoformat(),
        },
        "stats": {
            "total_orders": len(orders),
            "total_items": sum(item_count(o) for o in orders),
            "total_value": round(sum(o.total for o in orders), 2),
        },
        "staff_stats": list(staff_stats.values()),
        "orders": [OrderResponse.model_validate(o) for o in orders],
    }
