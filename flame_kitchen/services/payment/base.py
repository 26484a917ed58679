"""
Payment Service Abstract Base Class

Defines the interface contract for payment gateway implementations.
PaystackPaymentService talks to the real gateway; MockPaymentService is
used in test mode, when no usable Paystack secret key is configured.

Design Pattern: Strategy Pattern
    - Routes depend only on BasePaymentService
    - The factory picks the implementation from the configured keys
    - Tests swap in either implementation through dependency overrides
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class TransactionResult:
    """
    Standardized result from a gateway call.

    Providers never raise for gateway-side failures; they return a result
    with ``success=False`` and an error message instead.

    Attributes:
        success: Whether the call succeeded (for verification: the charge succeeded)
        reference: Merchant reference of the transaction
        authorization_url: Hosted checkout URL for the customer
        access_code: Checkout access code
        status: Gateway transaction status (e.g. "success", "abandoned")
        amount: Amount in major currency units
        currency: Currency code
        test_mode: True when no real gateway is behind the result
        error_message: Error description if the call failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the gateway call
        raw: Transaction object as returned by the gateway
    """
    success: bool
    reference: Optional[str] = None
    authorization_url: Optional[str] = None
    access_code: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    test_mode: bool = False
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    raw: Optional[dict] = None


def to_minor_units(amount: float) -> int:
    """Convert cedis to pesewas (or naira to kobo)."""
    return int(round(amount * 100))


def from_minor_units(amount: int) -> float:
    return round(amount / 100, 2)


def compute_signature(payload: bytes, secret: str) -> str:
    """HMAC-SHA512 hex digest of a raw webhook body."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()


def signature_matches(payload: bytes, signature: Optional[str], secret: str) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(compute_signature(payload, secret), signature)


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Example:
        >>> service = get_payment_service(secret_key)
        >>> result = await service.initialize_transaction(
        ...     email="ama@example.com",
        ...     amount=52.5,
        ...     reference="DF-DF-20250101-00001-1735689600000",
        ... )
        >>> if result.success:
        ...     print(result.authorization_url)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the payment provider.

        Returns:
            str: Provider name (e.g., "mock", "paystack")
        """
        pass

    @property
    def is_test_mode(self) -> bool:
        """True when payments are settled without a real gateway."""
        return False

    @abstractmethod
    async def initialize_transaction(
        self,
        email: str,
        amount: float,
        reference: str,
        callback_url: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> TransactionResult:
        """
        Start a hosted-checkout transaction.

        Args:
            email: Customer email the gateway sends the receipt to
            amount: Amount in major units (e.g. 52.50)
            reference: Unique merchant reference
            callback_url: Where the gateway redirects the customer afterwards
            metadata: Additional key-value data to attach

        Returns:
            TransactionResult: Contains authorization_url and access_code
        """
        pass

    @abstractmethod
    async def verify_transaction(self, reference: str) -> TransactionResult:
        """
        Look up a transaction by reference.

        ``success`` is True only when the gateway reports the charge as
        successful.
        """
        pass

    @abstractmethod
    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """
        Verify and parse a webhook from the payment provider.

        Args:
            payload: Raw request body
            signature: Value of the ``x-paystack-signature`` header

        Returns:
            Parsed event, or None if the signature is invalid
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check that the provider is reachable and configured."""
        pass
