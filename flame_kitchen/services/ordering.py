"""
Order Service

Business logic shared by the order, payment and webhook routes:

    - pricing of order lines (variant or base price plus add-ons)
    - tax, discount and totals
    - daily order numbering (PREFIX-YYYYMMDD-NNNNN)
    - order creation gated by the day session
    - payment settlement
    - eager loading of everything an order response needs

Money is rounded to 2 decimals at every stored value.
"""

import json
import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from flame_kitchen.models import (
    MenuItem,
    Order,
    OrderItem,
    OrderItemAddon,
    OrderStatus,
    OrderType,
    Payment,
    PaymentMethod,
    PaymentStatus,
    User,
    UserRole,
    utcnow,
)
from flame_kitchen.schemas import OrderCreate, OrderResponse
from flame_kitchen.services.day_session import day_bounds, is_day_closed
from flame_kitchen.services.system_settings import get_system_settings

logger = logging.getLogger(__name__)

# Roles whose orders are recorded as placed at the counter
COUNTER_ROLES = (UserRole.RECEPTIONIST, UserRole.CASHIER, UserRole.ADMIN)


class OrderRejected(Exception):
    """An order request that cannot be accepted as sent."""

    def __init__(self, message: str, status_code: int = 400, extra: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.extra = extra or {}

    def to_detail(self) -> Any:
        if self.extra:
            return {"error": self.message, **self.extra}
        return self.message


# =============================================================================
# LOADING & SERIALIZATION
# =============================================================================

def order_load_options() -> list:
    """Loader options for every relationship OrderResponse reads."""
    return [
        selectinload(Order.customer),
        selectinload(Order.created_by),
        selectinload(Order.prepared_by),
    ]


async def load_order(db: AsyncSession, order_id: str) -> Optional[Order]:
    result = await db.execute(
        select(Order)
        .options(*order_load_options())
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def serialize_order(order: Order) -> dict[str, Any]:
    """JSON-ready order payload for WebSocket events."""
    return OrderResponse.model_validate(order).model_dump(mode="json")


# =============================================================================
# DATES
# =============================================================================

def date_window(
    start_date: Optional[date],
    end_date: Optional[date],
) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Convert an inclusive date range to [start, end) datetimes.

    The end date covers its whole day.
    """
    start = day_bounds(start_date)[0] if start_date else None
    end = day_bounds(end_date)[1] if end_date else None
    return start, end


# =============================================================================
# PRICING
# =============================================================================

def compute_totals(subtotal: float, discount: float, tax_rate: float) -> dict[str, float]:
    """Tax is charged on the subtotal before discount."""
    tax = round(subtotal * tax_rate, 2)
    total = round(subtotal - discount + tax, 2)
    return {
        "subtotal": round(subtotal, 2),
        "discount": round(discount, 2),
        "tax": tax,
        "total": total,
    }


async def price_order_lines(db: AsyncSession, data: OrderCreate) -> tuple[list[OrderItem], float]:
    """
    Build priced OrderItem rows for a request.

    Raises:
        OrderRejected: unknown or unavailable menu item, or a variant
            that does not belong to the item. Add-on ids that do not
            belong to the item are skipped.
    """
    menu_ids = {line.menu_item_id for line in data.items}
    result = await db.execute(select(MenuItem).where(MenuItem.id.in_(menu_ids)))
    menu = {item.id: item for item in result.scalars().all()}

    lines: list[OrderItem] = []
    subtotal = 0.0
    for line in data.items:
        menu_item = menu.get(line.menu_item_id)
        if menu_item is None:
            raise OrderRejected(f"Menu item {line.menu_item_id} not found")
        if not menu_item.is_available:
            raise OrderRejected(f"Menu item {menu_item.name} is not available")

        unit_price = menu_item.base_price
        if line.variant_id:
            variant = next((v for v in menu_item.variants if v.id == line.variant_id), None)
            if variant is None:
                raise OrderRejected(f"Variant {line.variant_id} not found")
            unit_price = variant.price

        addons_by_id = {a.id: a for a in menu_item.addons}
        chosen = [addons_by_id[a_id] for a_id in line.addon_ids if a_id in addons_by_id]
        unit_price = round(unit_price + sum(a.price for a in chosen), 2)
        line_total = round(unit_price * line.quantity, 2)
        subtotal += line_total

        lines.append(OrderItem(
            menu_item_id=menu_item.id,
            variant_id=line.variant_id,
            quantity=line.quantity,
            unit_price=unit_price,
            total_price=line_total,
            notes=line.notes,
            addons=[OrderItemAddon(addon_id=a.id, price=a.price) for a in chosen],
        ))

    return lines, round(subtotal, 2)


async def generate_order_number(db: AsyncSession, prefix: str) -> str:
    """
    Next order number for today, e.g. ``DF-20250101-00042``.

    The sequence continues from the highest number already issued today.
    """
    day_prefix = f"{prefix}-{utcnow():%Y%m%d}-"
    result = await db.execute(
        select(Order.order_number)
        .where(Order.order_number.startswith(day_prefix))
        .order_by(Order.order_number.desc())
        .limit(1)
    )
    last = result.scalar_one_or_none()

    sequence = 1
    if last:
        tail = last.rsplit("-", 1)[-1]
        if tail.isdigit():
            sequence = int(tail) + 1
    return f"{day_prefix}{sequence:05d}"


# =============================================================================
# CREATION
# =============================================================================

async def create_order(db: AsyncSession, data: OrderCreate, user: User) -> Order:
    """
    Validate, price and stage a new order (not committed).

    Raises:
        OrderRejected: 403 when the day is closed, 400 for missing
            order-type fields or invalid lines
    """
    if await is_day_closed(db):
        raise OrderRejected(
            "Day is closed. Cannot create new orders.",
            status_code=403,
            extra={"day_closed": True},
        )

    if data.order_type == OrderType.ONLINE and not (data.delivery_address and data.contact_phone):
        raise OrderRejected("Delivery address and contact phone are required for online orders")
    if data.order_type == OrderType.DINE_IN and not data.table_number:
        raise OrderRejected("Table number is required for dine-in orders")

    lines, subtotal = await price_order_lines(db, data)
    system = await get_system_settings(db)
    totals = compute_totals(subtotal, data.discount, system.tax_rate)

    order = Order(
        order_number=await generate_order_number(db, system.order_prefix),
        order_type=data.order_type,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        table_number=data.table_number,
        notes=data.notes,
        delivery_address=data.delivery_address,
        contact_phone=data.contact_phone,
        customer_id=user.id if user.role == UserRole.CUSTOMER else None,
        created_by_id=user.id if user.role in COUNTER_ROLES else None,
        items=lines,
        **totals,
    )
    db.add(order)
    await db.flush()

    logger.info(f"Order {order.order_number} staged - {order.order_type.value} - {order.total:.2f}")
    return order


# =============================================================================
# PAYMENT SETTLEMENT
# =============================================================================

async def settle_order(
    db: AsyncSession,
    order: Order,
    method: PaymentMethod,
    amount: Optional[float] = None,
    reference: Optional[str] = None,
    gateway_data: Optional[dict] = None,
) -> Payment:
    """
    Mark an order paid and confirmed, and record its payment.

    The payment row is created, or updated when one already exists
    for the order. Nothing is committed here.
    """
    order.payment_status = PaymentStatus.PAID
    order.payment_method = method
    order.status = OrderStatus.CONFIRMED

    result = await db.execute(select(Payment).where(Payment.order_id == order.id))
    payment = result.scalar_one_or_none()
    raw = json.dumps(gateway_data, default=str) if gateway_data else None

    if payment is None:
        payment = Payment(
            order_id=order.id,
            amount=round(amount if amount is not None else order.total, 2),
            method=method,
            status=PaymentStatus.PAID,
            paystack_ref=reference,
            paystack_data=raw,
        )
        db.add(payment)
    else:
        payment.status = PaymentStatus.PAID
        if raw:
            payment.paystack_data = raw

    await db.flush()
    logger.info(f"Order {order.order_number} settled via {method.value}")
    return payment


def is_urgent(order: Order, now: Optional[datetime] = None, minutes: int = 15) -> bool:
    """Open orders waiting longer than ``minutes`` need attention."""
    now = now or utcnow()
    return now - order.created_at > timedelta(minutes=minutes)
