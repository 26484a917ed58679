"""
Day session routes: open/close the trading day and review past days.

Closing the day stores its totals, blocks new orders until an admin
reopens it, and queues the end-of-day Excel report.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from flame_kitchen.api.deps import get_current_user, require_roles
from flame_kitchen.database import get_db
from flame_kitchen.models import DaySession, Order, User, UserRole, utcnow
from flame_kitchen.schemas import (
    DayCloseRequest,
    DaySessionHistoryResponse,
    DaySessionResponse,
    Pagination,
)
from flame_kitchen.services.audit import record_audit
from flame_kitchen.services.day_session import (
    day_summary,
    get_day_session,
    get_or_create_today_session,
    orders_for_today,
    revenue_totals,
    today_key,
)
from flame_kitchen.services.realtime import manager
from flame_kitchen.tasks import export_day_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/day-session", tags=["Day Session"])

day_staff = require_roles(
    UserRole.KITCHEN_STAFF,
    UserRole.CASHIER,
    UserRole.RECEPTIONIST,
    UserRole.ADMIN,
)


def order_report_row(order: Order) -> dict:
    return {
        "order_number": order.order_number,
        "order_type": order.order_type.value,
        "status": order.status.value,
        "payment_status": order.payment_status.value,
        "payment_method": order.payment_method.value if order.payment_method else None,
        "items": sum(item.quantity for item in order.items),
        "subtotal": order.subtotal,
        "discount": order.discount,
        "tax": order.tax,
        "total": order.total,
        "created_at": order.created_at.isoformat(),
    }


@router.get("/status", summary="Today's Session")
async def day_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    session = await get_or_create_today_session(db)
    await db.commit()
    return {"day_session": DaySessionResponse.model_validate(session)}


@router.get("/summary", summary="Today's Summary")
async def summary(
    user: User = Depends(day_staff),
    db: AsyncSession = Depends(get_db),
) -> dict:
    orders = await orders_for_today(db)
    return {"date": today_key(), "summary": day_summary(orders)}


@router.post("/close", summary="Close Day")
async def close_day(
    request: Request,
    data: Optional[DayCloseRequest] = None,
    user: User = Depends(day_staff),
    db: AsyncSession = Depends(get_db),
) -> dict:
    data = data or DayCloseRequest()
    session = await get_or_create_today_session(db)
    if session.is_closed:
        raise HTTPException(status_code=400, detail="Day is already closed")

    orders = await orders_for_today(db)
    totals = revenue_totals(orders)

    session.is_closed = True
    session.closed_at = utcnow()
    session.closed_by_id = user.id
    session.notes = data.notes
    for field, value in totals.items():
        setattr(session, field, value)

    record_audit(
        db, "CLOSE_DAY", "DaySession", session.id, user_id=user.id,
        details={"date": session.date, "notes": data.notes, **totals}, request=request,
    )
    await db.commit()

    session = await get_day_session(db, session.date)
    logger.info(
        f"Day {session.date} closed by {user.id}: "
        f"{totals['total_orders']} orders, revenue {totals['total_revenue']:.2f}"
    )

    await manager.broadcast("day:closed", {
        "date": session.date,
        "closed_by": {"id": user.id, "first_name": user.first_name, "last_name": user.last_name},
    })

    report = {
        "date": session.date,
        "closed_at": session.closed_at.isoformat(),
        "closed_by": user.full_name or user.email or user.phone,
        "notes": session.notes,
        **totals,
        "orders": [order_report_row(o) for o in orders],
    }
    try:
        export_day_report.delay(report)
    except Exception:
        # The day is closed either way; the report can be re-run from the history
        logger.exception(f"Could not queue report export for {session.date}")

    return {"message": "Day closed successfully", "day_session": DaySessionResponse.model_validate(session)}


@router.post("/open", summary="Reopen Day")
async def open_day(
    request: Request,
    user: User = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    session = await get_day_session(db)
    if session is None:
        session = await get_or_create_today_session(db)
    elif not session.is_closed:
        raise HTTPException(status_code=400, detail="Day is already open")
    else:
        session.is_closed = False
        session.closed_at = None
        session.closed_by_id = None
        session.opened_at = utcnow()

    record_audit(
        db, "OPEN_DAY", "DaySession", session.id, user_id=user.id,
        details={"date": session.date}, request=request,
    )
    await db.commit()

    session = await get_day_session(db, session.date)
    logger.info(f"Day {session.date} reopened by {user.id}")

    await manager.broadcast("day:opened", {
        "date": session.date,
        "opened_by": {"id": user.id, "first_name": user.first_name, "last_name": user.last_name},
    })

    return {"message": "Day opened successfully", "day_session": DaySessionResponse.model_validate(session)}


@router.get("/history", response_model=DaySessionHistoryResponse, summary="Day Session History")
async def history(
    limit: int = Query(30, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> DaySessionHistoryResponse:
    result = await db.execute(
        select(DaySession)
        .options(selectinload(DaySession.closed_by))
        .order_by(DaySession.date.desc())
        .limit(limit)
        .offset(offset)
    )
    sessions = result.scalars().all()
    total = await db.scalar(select(func.count()).select_from(DaySession)) or 0

    return DaySessionHistoryResponse(
        day_sessions=[DaySessionResponse.model_validate(s) for s in sessions],
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(sessions) < total,
        ),
    )
