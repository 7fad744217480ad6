"""
Payment Provider Interface
===========================

Contract between the payment workflow and a card processor. Checkout only
needs two calls: open an intent for the cart total, and later look the intent
up again to see whether the customer paid.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass
class PaymentIntent:
    """
    Processor-side view of one payment attempt.

    ``amount`` is in minor units (cents). ``client_secret`` is handed to the
    browser so it can complete the payment with the processor directly.
    """

    intent_id: str
    amount: int
    currency: str
    status: PaymentStatus
    client_secret: Optional[str] = None
    customer_email: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class PaymentProviderInterface(ABC):
    """
    Implemented by StripeProvider (production) and MockPaymentProvider
    (development and tests).
    """

    @abstractmethod
    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: Optional[Dict[str, Any]] = None,
        customer_email: Optional[str] = None,
    ) -> PaymentIntent:
        """
        Open an intent for ``amount`` (major units, e.g. Decimal("25.00")).

        Raises:
            PaymentTimeoutException: processor unreachable after retries
            PaymentException: processor rejected the request
        """

    @abstractmethod
    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        """
        Fetch the current state of an intent.

        Raises:
            PaymentTimeoutException: processor unreachable after retries
            PaymentException: unknown intent or processor error
        """


class PaymentException(Exception):
    """Processor call failed."""


class PaymentTimeoutException(PaymentException):
    """Processor could not be reached after retrying."""
