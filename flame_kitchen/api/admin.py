"""
Admin routes: dashboard statistics, staff accounts, notifications and
the audit trail. Every route requires the ADMIN role.
"""

import logging
from datetime import date, timedelta
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from flame_kitchen.api.deps import require_roles
from flame_kitchen.core.security import hash_password
from flame_kitchen.database import get_db
from flame_kitchen.models import (
    AuditLog,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentStatus,
    User,
    UserRole,
    utcnow,
)
from flame_kitchen.schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    StaffCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from flame_kitchen.services.audit import record_audit
from flame_kitchen.services.day_session import today_bounds
from flame_kitchen.services.ordering import date_window, is_urgent

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)

MAX_NOTIFICATIONS = 10


def dashboard_window(
    period: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date],
) -> tuple:
    """Today unless a range is given or ``period=all``."""
    if start_date or end_date:
        return date_window(start_date, end_date)
    if period == "all":
        return None, None
    return today_bounds()


def window_conditions(column, start, end) -> list:
    conditions = []
    if start:
        conditions.append(column >= start)
    if end:
        conditions.append(column < end)
    return conditions


# =============================================================================
# DASHBOARD
# =============================================================================

@router.get("/dashboard", summary="Dashboard Statistics")
async def dashboard(
    period: Optional[Literal["today", "all"]] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Sales, order counts, payment breakdown and best sellers for a period."""
    start, end = dashboard_window(period, start_date, end_date)
    order_window = window_conditions(Order.created_at, start, end)
    paid_payments = [Payment.status == PaymentStatus.PAID, *window_conditions(Payment.created_at, start, end)]

    total_sales = await db.scalar(
        select(func.coalesce(func.sum(Payment.amount), 0.0)).where(*paid_payments)
    ) or 0.0
    total_orders = await db.scalar(select(func.count(Order.id)).where(*order_window)) or 0
    completed_orders = await db.scalar(
        select(func.count(Order.id)).where(*order_window, Order.status == OrderStatus.COMPLETED)
    ) or 0

    breakdown_result = await db.execute(
        select(Payment.method, func.sum(Payment.amount), func.count(Payment.id))
        .where(*paid_payments)
        .group_by(Payment.method)
    )
    payment_breakdown = [
        {"method": method.value, "amount": round(amount or 0.0, 2), "count": count}
        for method, amount, count in breakdown_result.all()
    ]

    quantity = func.sum(OrderItem.quantity).label("quantity")
    sellers_result = await db.execute(
        select(OrderItem.menu_item_id, quantity, func.count(OrderItem.id))
        .join(Order, OrderItem.order_id == Order.id)
        .where(*order_window, Order.status.in_([OrderStatus.READY, OrderStatus.COMPLETED]))
        .group_by(OrderItem.menu_item_id)
        .order_by(quantity.desc())
        .limit(10)
    )
    sellers = sellers_result.all()
    menu_items = {}
    if sellers:
        items_result = await db.execute(
            select(MenuItem).where(MenuItem.id.in_([row[0] for row in sellers]))
        )
        menu_items = {item.id: item for item in items_result.scalars().all()}

    best_selling_items = []
    for menu_item_id, total_quantity, line_count in sellers:
        item = menu_items.get(menu_item_id)
        best_selling_items.append({
            "menu_item_id": menu_item_id,
            "quantity": int(total_quantity or 0),
            "order_lines": line_count,
            "menu_item": {"id": item.id, "name": item.name, "image": item.image} if item else None,
        })

    status_result = await db.execute(
        select(Order.status, func.count(Order.id)).where(*order_window).group_by(Order.status)
    )
    type_result = await db.execute(
        select(Order.order_type, func.count(Order.id)).where(*order_window).group_by(Order.order_type)
    )

    return {
        "stats": {
            "total_sales": round(total_sales, 2),
            "total_orders": total_orders,
            "completed_orders": completed_orders,
            "average_order_value": round(total_sales / total_orders, 2) if total_orders else 0.0,
        },
        "payment_breakdown": payment_breakdown,
        "best_selling_items": best_selling_items,
        "orders_by_status": {status.value: count for status, count in status_result.all()},
        "orders_by_type": {order_type.value: count for order_type, count in type_result.all()},
    }


# =============================================================================
# USERS
# =============================================================================

@router.get("/users", response_model=UserListResponse, summary="List Users")
async def list_users(
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    conditions = []
    if role:
        conditions.append(User.role == role)
    if is_active is not None:
        conditions.append(User.is_active == is_active)

    result = await db.execute(
        select(User).where(*conditions).order_by(User.created_at.desc()).limit(limit).offset(offset)
    )
    users = result.scalars().all()
    total = await db.scalar(select(func.count()).select_from(User).where(*conditions))

    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=total or 0,
        limit=limit,
        offset=offset,
    )


@router.post("/users", status_code=201, summary="Create Staff Account")
async def create_user(
    data: StaffCreate,
    request: Request,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    email = data.email.lower() if data.email else None
    phone = data.phone.strip() if data.phone else None

    contact = []
    if email:
        contact.append(User.email == email)
    if phone:
        contact.append(User.phone == phone)
    existing = await db.execute(select(User).where(or_(*contact)))
    if existing.scalars().first() is not None:
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        email=email,
        phone=phone,
        password=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role,
    )
    db.add(user)
    await db.flush()

    record_audit(
        db, "CREATE_USER", "User", user.id, user_id=admin.id,
        details={"role": user.role.value}, request=request,
    )
    await db.commit()
    logger.info(f"Admin {admin.id} created {user.role.value} account {user.id}")

    return {"message": "User created successfully", "user": UserResponse.model_validate(user)}


@router.put("/users/{user_id}", summary="Update User")
async def update_user(
    user_id: str,
    data: UserUpdate,
    request: Request,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Partial update. A taken email or phone is rejected as a duplicate entry."""
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    changes = data.model_dump(exclude_unset=True)
    password = changes.pop("password", None)
    if "email" in changes and changes["email"]:
        changes["email"] = changes["email"].lower()
    if "phone" in changes and changes["phone"]:
        changes["phone"] = changes["phone"].strip()

    for field, value in changes.items():
        setattr(user, field, value)
    if password:
        user.password = hash_password(password)

    audit_fields = sorted(changes) + (["password"] if password else [])
    record_audit(
        db, "UPDATE_USER", "User", user.id, user_id=admin.id,
        details={"fields": audit_fields}, request=request,
    )
    await db.commit()
    await db.refresh(user)
    logger.info(f"Admin {admin.id} updated user {user.id}: {audit_fields}")

    return {"message": "User updated successfully", "user": UserResponse.model_validate(user)}


# =============================================================================
# NOTIFICATIONS & AUDIT
# =============================================================================

def customer_label(order: Order) -> str:
    if order.customer is None:
        return "Guest"
    return order.customer.full_name or order.customer.email or order.customer.phone or "Guest"


@router.get("/notifications", summary="Admin Notifications")
async def notifications(db: AsyncSession = Depends(get_db)) -> dict:
    """
    Open orders waiting for attention plus orders completed in the last hour.

    Open orders older than 15 minutes are flagged urgent.
    """
    now = utcnow()

    open_result = await db.execute(
        select(Order)
        .options(selectinload(Order.customer))
        .where(Order.status.in_([OrderStatus.PENDING, OrderStatus.CONFIRMED]))
        .order_by(Order.created_at.desc())
        .limit(5)
    )
    items = [
        {
            "id": f"order-{order.id}",
            "type": "order",
            "title": f"New Order #{order.order_number}",
            "message": f"{order.order_type.value.replace('_', ' ')} order from {customer_label(order)}",
            "status": order.status.value,
            "order_id": order.id,
            "order_number": order.order_number,
            "created_at": order.created_at,
            "urgent": is_urgent(order, now),
        }
        for order in open_result.scalars().all()
    ]

    completed_result = await db.execute(
        select(Order)
        .where(Order.status == OrderStatus.COMPLETED, Order.completed_at >= now - timedelta(hours=1))
        .order_by(Order.completed_at.desc())
        .limit(3)
    )
    items += [
        {
            "id": f"completed-{order.id}",
            "type": "success",
            "title": f"Order #{order.order_number} Completed",
            "message": "Order completed successfully",
            "status": OrderStatus.COMPLETED.value,
            "order_id": order.id,
            "order_number": order.order_number,
            "created_at": order.completed_at,
            "urgent": False,
        }
        for order in completed_result.scalars().all()
    ]

    items.sort(key=lambda n: n["created_at"], reverse=True)
    items = items[:MAX_NOTIFICATIONS]

    return {"notifications": items, "unread_count": len(items)}


@router.get("/audit-logs", response_model=AuditLogListResponse, summary="Audit Logs")
async def audit_logs(
    user_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> AuditLogListResponse:
    conditions = []
    if user_id:
        conditions.append(AuditLog.user_id == user_id)
    if action:
        conditions.append(AuditLog.action == action)
    start, end = date_window(start_date, end_date)
    conditions += window_conditions(AuditLog.created_at, start, end)

    result = await db.execute(
        select(AuditLog)
        .options(selectinload(AuditLog.user))
        .where(*conditions)
        .order_by(AuditLog.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    logs = result.scalars().all()
    total = await db.scalar(select(func.count()).select_from(AuditLog).where(*conditions))

    return AuditLogListResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=total or 0,
        limit=limit,
        offset=offset,
    )
