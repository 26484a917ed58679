"""
Payment gateway webhooks.

Paystack posts events here after a charge. The body is verified against
the ``x-paystack-signature`` header before anything is read from it.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flame_kitchen.api.deps import get_payment_provider
from flame_kitchen.database import get_db
from flame_kitchen.models import Order, PaymentMethod, PaymentStatus
from flame_kitchen.services.audit import record_audit
from flame_kitchen.services.ordering import load_order, serialize_order, settle_order
from flame_kitchen.services.payment import BasePaymentService
from flame_kitchen.services.payment.base import from_minor_units
from flame_kitchen.services.realtime import KITCHEN_ROOM, POS_ROOM, manager, user_room

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


@router.post("/paystack", response_class=PlainTextResponse, summary="Paystack Webhook")
async def paystack_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_provider),
    x_paystack_signature: Optional[str] = Header(None, alias="x-paystack-signature"),
) -> str:
    """
    Handle a Paystack event.

    ``charge.success`` settles the matching order unless it is already
    paid, so replayed deliveries are harmless. Other events are
    acknowledged and ignored.
    """
    body = await request.body()
    event = await payment_service.verify_webhook(body, x_paystack_signature)
    if event is None:
        raise HTTPException(status_code=400, detail="Invalid signature")

    event_type = event.get("event")
    logger.info(f"Paystack webhook received: {event_type}")

    if event_type != "charge.success":
        return "OK"

    transaction = event.get("data") or {}
    reference = transaction.get("reference")
    if not reference:
        raise HTTPException(status_code=400, detail="Invalid transaction data")

    result = await db.execute(select(Order).where(Order.paystack_ref == reference))
    order = result.scalars().first()
    if order is None:
        logger.warning(f"Webhook for unknown reference {reference}")
        return "OK"
    if order.payment_status == PaymentStatus.PAID:
        logger.debug(f"Order {order.order_number} already paid, ignoring webhook")
        return "OK"

    raw_amount = transaction.get("amount")
    amount = from_minor_units(raw_amount) if raw_amount is not None else order.total
    await settle_order(
        db, order, PaymentMethod.PAYSTACK,
        amount=amount, reference=reference, gateway_data=transaction,
    )
    record_audit(
        db, "WEBHOOK_PAYMENT", "Payment", order.id,
        details={"reference": reference, "amount": amount}, request=request,
    )
    await db.commit()

    order = await load_order(db, order.id)
    logger.info(f"Order {order.order_number} paid via webhook")

    payload = serialize_order(order)
    await manager.emit_many([KITCHEN_ROOM, POS_ROOM], "order:new", payload)
    if order.customer_id:
        await manager.emit(user_room(order.customer_id), "order:paid", payload)

    return "OK"
