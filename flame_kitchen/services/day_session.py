"""
Day session helpers.

A trading day is keyed by its UTC calendar date. The session for today
is created open the first time anyone asks for it; while it is closed
no new orders are accepted.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from flame_kitchen.models import (
    DaySession,
    Order,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
    utcnow,
)

logger = logging.getLogger(__name__)


def today_key() -> str:
    return utcnow().date().isoformat()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """[start, end) of a UTC calendar day as naive datetimes."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def today_bounds() -> tuple[datetime, datetime]:
    return day_bounds(utcnow().date())


async def get_day_session(db: AsyncSession, key: Optional[str] = None) -> Optional[DaySession]:
    result = await db.execute(
        select(DaySession)
        .options(selectinload(DaySession.closed_by))
        .where(DaySession.date == (key or today_key()))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_create_today_session(db: AsyncSession) -> DaySession:
    """Today's session, created open if it does not exist yet."""
    session = await get_day_session(db)
    if session is None:
        session = DaySession(date=today_key(), is_closed=False)
        db.add(session)
        await db.flush()
        await db.refresh(session, attribute_names=["closed_by"])
        logger.info(f"Opened day session {session.date}")
    return session


async def is_day_closed(db: AsyncSession) -> bool:
    session = await get_day_session(db)
    return session is not None and session.is_closed


async def orders_for_today(db: AsyncSession) -> list[Order]:
    start, end = today_bounds()
    result = await db.execute(
        select(Order).where(Order.created_at >= start, Order.created_at < end)
    )
    return list(result.scalars().all())


def revenue_totals(orders: list[Order]) -> dict[str, Any]:
    """
    Revenue of the paid orders, split by payment method.

    Unpaid orders count towards ``total_orders`` only.
    """
    totals = {
        "total_orders": len(orders),
        "total_revenue": 0.0,
        "total_cash": 0.0,
        "total_card": 0.0,
        "total_momo": 0.0,
        "total_paystack": 0.0,
    }
    method_keys = {
        PaymentMethod.CASH: "total_cash",
        PaymentMethod.CARD: "total_card",
        PaymentMethod.MOMO: "total_momo",
        PaymentMethod.PAYSTACK: "total_paystack",
    }
    for order in orders:
        if order.payment_status != PaymentStatus.PAID:
            continue
        totals["total_revenue"] += order.total
        key = method_keys.get(order.payment_method)
        if key:
            totals[key] += order.total

    for key, value in totals.items():
        if isinstance(value, float):
            totals[key] = round(value, 2)
    return totals


def day_summary(orders: list[Order]) -> dict[str, Any]:
    """Revenue totals plus counts by status, payment state and order type."""
    summary = revenue_totals(orders)
    summary["paid_orders"] = sum(1 for o in orders if o.payment_status == PaymentStatus.PAID)
    summary["unpaid_orders"] = len(orders) - summary["paid_orders"]
    for status in OrderStatus:
        summary[f"{status.value.lower()}_orders"] = sum(1 for o in orders if o.status == status)
    summary["orders_by_type"] = {
        order_type.value: sum(1 for o in orders if o.order_type == order_type)
        for order_type in OrderType
    }
    return summary
