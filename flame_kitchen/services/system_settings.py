"""
System settings access.

The restaurant keeps one settings row (id ``system``). It is created
with configuration defaults the first time anything reads it.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from flame_kitchen.core.config import get_settings
from flame_kitchen.models import SYSTEM_SETTINGS_ID, SystemSettings

logger = logging.getLogger(__name__)


@dataclass
class PaystackKeys:
    secret_key: Optional[str] = None
    public_key: Optional[str] = None
    webhook_secret: Optional[str] = None


async def get_system_settings(db: AsyncSession) -> SystemSettings:
    """Return the settings row, creating it with defaults when missing."""
    row = await db.get(SystemSettings, SYSTEM_SETTINGS_ID)
    if row is None:
        settings = get_settings()
        row = SystemSettings(
            id=SYSTEM_SETTINGS_ID,
            restaurant_name=settings.restaurant_name,
            tax_rate=settings.tax_rate,
            currency=settings.currency,
            currency_symbol=settings.currency_symbol,
            order_prefix=settings.order_prefix,
        )
        db.add(row)
        await db.flush()
        logger.info("Created default system settings")
    return row


async def get_paystack_keys(db: AsyncSession) -> PaystackKeys:
    """
    Resolve Paystack keys.

    Keys saved in the settings row win; environment configuration is the
    fallback for each key separately.
    """
    settings = get_settings()
    row = await db.get(SystemSettings, SYSTEM_SETTINGS_ID)
    return PaystackKeys(
        secret_key=(row and row.paystack_secret_key) or settings.paystack_secret_key,
        public_key=(row and row.paystack_public_key) or settings.paystack_public_key,
        webhook_secret=(row and row.paystack_webhook_secret) or settings.paystack_webhook_secret,
    )
