"""
Mock Payment Service Implementation

Stands in for Paystack when no usable secret key is configured (test
mode). Online orders are then settled as soon as payment is initialized,
so the whole ordering flow can be exercised without a gateway account.

Behavior:
    - No network calls
    - Every transaction succeeds
    - Signs and verifies webhooks with the configured secret
"""

import json
import logging
import uuid
from typing import Optional

from flame_kitchen.services.payment.base import (
    BasePaymentService,
    TransactionResult,
    signature_matches,
)

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment service.

    Attributes:
        webhook_secret: Secret used to check webhook signatures
        currency: Currency reported on results
    """

    def __init__(self, webhook_secret: Optional[str] = None, currency: str = "GHS"):
        self.webhook_secret = webhook_secret
        self.currency = currency
        logger.info(f"MockPaymentService initialized (currency={currency})")

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def is_test_mode(self) -> bool:
        return True

    async def initialize_transaction(
        self,
        email: str,
        amount: float,
        reference: str,
        callback_url: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> TransactionResult:
        if amount <= 0:
            return TransactionResult(
                success=False,
                reference=reference,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
                test_mode=True,
            )

        logger.debug(f"Mock: Initialized transaction {reference} - {amount:.2f}")
        return TransactionResult(
            success=True,
            reference=reference,
            authorization_url=callback_url,
            access_code=f"mock_{uuid.uuid4().hex[:16]}",
            status="pending",
            amount=amount,
            currency=self.currency,
            test_mode=True,
        )

    async def verify_transaction(self, reference: str) -> TransactionResult:
        # No amount: the caller settles for the order total
        logger.info(f"Mock: Transaction {reference} verified")
        return TransactionResult(
            success=True,
            reference=reference,
            status="success",
            currency=self.currency,
            test_mode=True,
            raw={"reference": reference, "status": "success", "currency": self.currency, "mock": True},
        )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        if not self.webhook_secret:
            logger.warning("Mock: No webhook secret configured, rejecting webhook")
            return None
        if not signature_matches(payload, signature, self.webhook_secret):
            logger.warning("Mock: Webhook signature invalid")
            return None
        try:
            return json.loads(payload)
        except ValueError as e:
            logger.warning(f"Mock: Webhook body is not JSON - {e}")
            return None

    async def health_check(self) -> bool:
        return True
