"""
Payment Service Factory

Provides a single entry point for obtaining a payment service instance.

Usage:
    from flame_kitchen.services.payment import get_payment_service

    keys = await get_paystack_keys(db)
    payment_service = get_payment_service(keys.secret_key, keys.webhook_secret)

Key Switching:
    - no secret key, or a placeholder → MockPaymentService (test mode)
    - sk_test_... / sk_live_...      → PaystackPaymentService

Keys can change at runtime through the admin settings screen, so
instances are cached per key pair rather than once per process.
"""

import logging
from functools import lru_cache
from typing import Optional

from flame_kitchen.core.config import get_settings
from flame_kitchen.services.payment.base import (
    BasePaymentService,
    TransactionResult,
    compute_signature,
    signature_matches,
)
from flame_kitchen.services.payment.mock import MockPaymentService
from flame_kitchen.services.payment.paystack import PaystackPaymentService

logger = logging.getLogger(__name__)

# Values shipped in sample env files and setup guides
PLACEHOLDER_SECRET_KEYS = frozenset({
    "your-paystack-secret-key",
    "sk_test_your_test_key",
    "sk_test_xxxxx",
})


def is_configured_secret(secret_key: Optional[str]) -> bool:
    return bool(secret_key) and secret_key.strip() not in PLACEHOLDER_SECRET_KEYS


@lru_cache(maxsize=8)
def get_payment_service(
    secret_key: Optional[str] = None,
    webhook_secret: Optional[str] = None,
) -> BasePaymentService:
    """
    Get the payment service for a key pair.

    Returns:
        MockPaymentService when the secret key is missing or a
        placeholder, PaystackPaymentService otherwise.
    """
    if not is_configured_secret(secret_key):
        logger.info("Payment Service: Using MockPaymentService (Paystack not configured)")
        return MockPaymentService(
            webhook_secret=webhook_secret,
            currency=get_settings().currency,
        )

    logger.info("Payment Service: Using PaystackPaymentService")
    return PaystackPaymentService(secret_key=secret_key, webhook_secret=webhook_secret)


def reset_payment_service() -> None:
    """
    Clear cached payment service instances.

    The next call to get_payment_service() builds a new instance.
    """
    get_payment_service.cache_clear()
    logger.debug("Payment service cache cleared")


__all__ = [
    "get_payment_service",
    "reset_payment_service",
    "is_configured_secret",
    "compute_signature",
    "signature_matches",
    "BasePaymentService",
    "TransactionResult",
    "MockPaymentService",
    "PaystackPaymentService",
]
