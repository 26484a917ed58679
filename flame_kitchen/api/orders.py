"""
Order routes.

Creating an order prices it server-side, numbers it and pushes it to
the kitchen and POS rooms. Status changes are pushed to every client
and to the ordering customer.
"""

import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from flame_kitchen.api.deps import get_current_user, require_roles
from flame_kitchen.database import get_db
from flame_kitchen.models import (
    Order,
    OrderStatus,
    OrderType,
    User,
    UserRole,
    utcnow,
)
from flame_kitchen.schemas import (
    OrderCreate,
    OrderEnvelope,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from flame_kitchen.services.audit import record_audit
from flame_kitchen.services.day_session import today_bounds
from flame_kitchen.services.ordering import (
    OrderRejected,
    create_order,
    date_window,
    load_order,
    order_load_options,
    serialize_order,
)
from flame_kitchen.services.realtime import KITCHEN_ROOM, POS_ROOM, manager, user_room

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


@router.post(
    "",
    response_model=OrderEnvelope,
    status_code=201,
    summary="Create Order",
)
async def place_order(
    data: OrderCreate,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """
    Create an order for any authenticated user.

    Customers own the order they place; receptionists, cashiers and
    admins are recorded as the staff member who entered it.
    """
    logger.info(f"Creating {data.order_type.value} order for user {user.id}")

    try:
        order = await create_order(db, data, user)
    except OrderRejected as e:
        await db.rollback()
        logger.info(f"Order rejected: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    record_audit(
        db,
        "CREATE_ORDER",
        "Order",
        order.id,
        user_id=user.id,
        details={"order_number": order.order_number, "total": order.total},
        request=request,
    )
    await db.commit()

    order = await load_order(db, order.id)
    logger.info(f"Order {order.order_number} created - total {order.total:.2f}")

    await manager.emit_many([KITCHEN_ROOM, POS_ROOM], "order:new", serialize_order(order))

    return OrderEnvelope(message="Order created successfully", order=OrderResponse.model_validate(order))


@router.get("", response_model=OrderListResponse, summary="List Orders")
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    order_type: Optional[OrderType] = Query(None),
    period: Optional[Literal["today", "all"]] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """
    List orders, newest first.

    Customers see their own orders and kitchen staff only today's.
    Other roles may ask for ``period=today`` or a date range.
    """
    conditions = []
    if user.role == UserRole.CUSTOMER:
        conditions.append(Order.customer_id == user.id)

    if user.role == UserRole.KITCHEN_STAFF or period == "today":
        start, end = today_bounds()
        conditions += [Order.created_at >= start, Order.created_at < end]
    elif period != "all" and (start_date or end_date):
        start, end = date_window(start_date, end_date)
        if start:
            conditions.append(Order.created_at >= start)
        if end:
            conditions.append(Order.created_at < end)

    if status:
        conditions.append(Order.status == status)
    if order_type:
        conditions.append(Order.order_type == order_type)

    result = await db.execute(
        select(Order)
        .options(*order_load_options())
        .where(*conditions)
        .order_by(Order.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    orders = result.scalars().all()
    total = await db.scalar(select(func.count()).select_from(Order).where(*conditions))

    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        total=total or 0,
        limit=limit,
        offset=offset,
    )


@router.get("/{order_id}", summary="Get Order")
async def get_order(
    order_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    order = await load_order(db, order_id)
    if order is None or (user.role == UserRole.CUSTOMER and order.customer_id != user.id):
        raise HTTPException(status_code=404, detail="Order not found")
    return {"order": OrderResponse.model_validate(order)}


@router.put("/{order_id}/status", response_model=OrderEnvelope, summary="Update Order Status")
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    request: Request,
    user: User = Depends(require_roles(UserRole.KITCHEN_STAFF, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """
    Assign a new status.

    Any status may follow any other. READY and COMPLETED stamp their
    timestamps and record who prepared the order.
    """
    order = await db.get(Order, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    previous = order.status
    now = utcnow()
    order.status = data.status

    if data.status == OrderStatus.COMPLETED:
        order.completed_at = now
        if order.ready_at is None:
            order.ready_at = now
        if order.prepared_by_id is None:
            order.prepared_by_id = user.id
    elif data.status == OrderStatus.READY:
        order.ready_at = now
        order.prepared_by_id = user.id
    elif data.status == OrderStatus.PREPARING and user.role == UserRole.KITCHEN_STAFF:
        order.prepared_by_id = user.id

    record_audit(
        db,
        "UPDATE_ORDER_STATUS",
        "Order",
        order.id,
        user_id=user.id,
        details={"from": previous.value, "to": data.status.value},
        request=request,
    )
    await db.commit()

    order = await load_order(db, order_id)
    logger.info(f"Order {order.order_number}: {previous.value} → {order.status.value}")

    payload = {"order_id": order.id, "status": order.status.value, "order": serialize_order(order)}
    await manager.broadcast("order:status-updated", payload)
    if order.customer_id:
        await manager.emit(user_room(order.customer_id), "order:status-updated", payload)

    return OrderEnvelope(message="Order status updated successfully", order=OrderResponse.model_validate(order))
