"""
Paystack Payment Service Implementation

Talks to the Paystack REST API over httpx:
    POST /transaction/initialize    start hosted checkout
    GET  /transaction/verify/{ref}  confirm a charge

Amounts go over the wire in minor units (pesewas/kobo). Webhooks are
signed with HMAC-SHA512 over the raw body.

Configuration:
    PAYSTACK_SECRET_KEY       (or the admin settings screen)
    PAYSTACK_WEBHOOK_SECRET   defaults to the secret key, which is what
                              Paystack itself signs webhooks with
"""

import json
import logging
import time
from typing import Optional

import httpx

from flame_kitchen.core.config import get_settings
from flame_kitchen.services.payment.base import (
    BasePaymentService,
    TransactionResult,
    from_minor_units,
    signature_matches,
    to_minor_units,
)

logger = logging.getLogger(__name__)


class PaystackPaymentService(BasePaymentService):
    """
    Production payment service backed by Paystack.

    Args:
        secret_key: Paystack secret key
        webhook_secret: Webhook signing secret (defaults to secret_key)
        base_url: API base URL
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        secret_key: str,
        webhook_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not secret_key:
            raise ValueError("Paystack secret key is required")

        settings = get_settings()
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret or secret_key
        self.base_url = (base_url or settings.paystack_base_url).rstrip("/")
        self.timeout = timeout or settings.paystack_timeout
        self.transport = transport

        mode = "test" if secret_key.startswith("sk_test_") else "live"
        logger.info(f"PaystackPaymentService initialized ({mode} mode)")

    @property
    def provider_name(self) -> str:
        return "paystack"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={
                "Authorization": f"Bearer {self.secret_key}",
                "Content-Type": "application/json",
            },
        )

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> tuple[Optional[dict], Optional[TransactionResult], float]:
        """
        Perform an API call.

        Returns:
            (body, error_result, elapsed_ms). Exactly one of body and
            error_result is set.
        """
        start_time = time.perf_counter()
        try:
            async with self._client() as client:
                response = await client.request(method, path, json=payload)
            elapsed_ms = (time.perf_counter() - start_time) * 1000
        except httpx.TimeoutException as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(f"Paystack: Timeout on {path} - {e}")
            return None, TransactionResult(
                success=False,
                error_message="Payment gateway timed out",
                error_code="timeout",
                response_time_ms=elapsed_ms,
            ), elapsed_ms
        except httpx.HTTPError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(f"Paystack: Connection error on {path} - {e}")
            return None, TransactionResult(
                success=False,
                error_message="Could not reach payment gateway",
                error_code="connection_error",
                response_time_ms=elapsed_ms,
            ), elapsed_ms

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code == 401:
            logger.critical("Paystack: Authentication failed, check the secret key")
        if response.is_error or not body.get("status"):
            message = body.get("message") or f"HTTP {response.status_code}"
            logger.warning(f"Paystack: {method} {path} failed - {message}")
            return None, TransactionResult(
                success=False,
                error_message=message,
                error_code=f"http_{response.status_code}",
                response_time_ms=elapsed_ms,
            ), elapsed_ms

        return body, None, elapsed_ms

    async def initialize_transaction(
        self,
        email: str,
        amount: float,
        reference: str,
        callback_url: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> TransactionResult:
        logger.info(f"Paystack: Initializing {reference} for {amount:.2f}")

        payload = {
            "email": email,
            "amount": to_minor_units(amount),
            "reference": reference,
            "metadata": metadata or {},
        }
        if callback_url:
            payload["callback_url"] = callback_url

        body, error, elapsed_ms = await self._request("POST", "/transaction/initialize", payload)
        if error:
            error.reference = reference
            return error

        data = body.get("data") or {}
        return TransactionResult(
            success=True,
            reference=data.get("reference", reference),
            authorization_url=data.get("authorization_url"),
            access_code=data.get("access_code"),
            status="pending",
            amount=amount,
            response_time_ms=elapsed_ms,
            raw=data,
        )

    async def verify_transaction(self, reference: str) -> TransactionResult:
        body, error, elapsed_ms = await self._request("GET", f"/transaction/verify/{reference}")
        if error:
            error.reference = reference
            return error

        data = body.get("data") or {}
        status = data.get("status")
        amount = data.get("amount")
        result = TransactionResult(
            success=status == "success",
            reference=data.get("reference", reference),
            status=status,
            amount=from_minor_units(amount) if amount is not None else None,
            currency=data.get("currency"),
            response_time_ms=elapsed_ms,
            raw=data,
        )
        if not result.success:
            result.error_message = data.get("gateway_response") or body.get("message")
            result.error_code = status
            logger.info(f"Paystack: Transaction {reference} not successful ({status})")
        else:
            logger.info(f"Paystack: Transaction {reference} verified")
        return result

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        if not signature_matches(payload, signature, self.webhook_secret):
            logger.warning("Paystack: Webhook signature invalid")
            return None
        try:
            event = json.loads(payload)
        except ValueError as e:
            logger.warning(f"Paystack: Webhook body is not JSON - {e}")
            return None
        logger.debug(f"Paystack: Webhook verified - {event.get('event')}")
        return event

    async def health_check(self) -> bool:
        """Call a cheap authenticated endpoint to check the key works."""
        body, error, _ = await self._request("GET", "/bank?perPage=1")
        if error:
            logger.error(f"Paystack: Health check failed - {error.error_message}")
            return False
        return True
