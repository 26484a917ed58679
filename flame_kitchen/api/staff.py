"""
Counter staff dashboard: what the signed-in receptionist or cashier has
sold today.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flame_kitchen.api.deps import require_roles
from flame_kitchen.database import get_db
from flame_kitchen.models import Order, OrderType, PaymentMethod, PaymentStatus, User, UserRole
from flame_kitchen.schemas import OrderResponse
from flame_kitchen.services.day_session import today_bounds
from flame_kitchen.services.ordering import order_load_options

router = APIRouter(prefix="/api/staff", tags=["Staff"])

COUNTER_METHODS = (PaymentMethod.CASH, PaymentMethod.CARD, PaymentMethod.MOMO)


@router.get("/dashboard", summary="Staff Sales Dashboard")
async def staff_dashboard(
    user: User = Depends(require_roles(UserRole.RECEPTIONIST, UserRole.CASHIER, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Today's paid orders entered by the caller."""
    start, end = today_bounds()
    result = await db.execute(
        select(Order)
        .options(*order_load_options())
        .where(
            Order.created_by_id == user.id,
            Order.created_at >= start,
            Order.created_at < end,
            Order.payment_status == PaymentStatus.PAID,
        )
        .order_by(Order.created_at.desc())
    )
    orders = result.scalars().all()

    total_sales = sum(o.total for o in orders)
    total_orders = len(orders)

    payment_methods = {method.value: 0.0 for method in COUNTER_METHODS}
    for order in orders:
        if order.payment_method in COUNTER_METHODS:
            payment_methods[order.payment_method.value] += order.total

    return {
        "stats": {
            "total_sales": round(total_sales, 2),
            "total_orders": total_orders,
            "total_items": sum(item.quantity for o in orders for item in o.items),
            "average_order_value": round(total_sales / total_orders, 2) if total_orders else 0.0,
        },
        "payment_methods": {method: round(amount, 2) for method, amount in payment_methods.items()},
        "order_types": {
            order_type.value: sum(1 for o in orders if o.order_type == order_type)
            for order_type in OrderType
        },
        "recent_orders": [OrderResponse.model_validate(o) for o in orders[:10]],
    }
