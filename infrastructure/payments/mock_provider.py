"""
Mock Payment Provider
=====================

In-memory PaymentProviderInterface for development and tests. Intents start
as pending; tests move them along with ``set_status``.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, Optional

from .interface import PaymentException, PaymentIntent, PaymentProviderInterface, PaymentStatus

logger = logging.getLogger(__name__)


class MockPaymentProvider(PaymentProviderInterface):
    def __init__(self):
        self.intents: Dict[str, PaymentIntent] = {}

    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: Optional[Dict[str, Any]] = None,
        customer_email: Optional[str] = None,
    ) -> PaymentIntent:
        intent_id = f"pi_mock_{uuid.uuid4().hex[:24]}"
        intent = PaymentIntent(
            intent_id=intent_id,
            amount=int(amount * 100),
            currency=currency.lower(),
            status=PaymentStatus.PENDING,
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:16]}",
            customer_email=customer_email,
            metadata=dict(metadata or {}),
        )
        self.intents[intent_id] = intent

        logger.info(f"Created mock payment intent: {intent_id}")

        return intent

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        try:
            return self.intents[intent_id]
        except KeyError:
            raise PaymentException(f"No such payment intent: {intent_id}")

    def set_status(self, intent_id: str, status: PaymentStatus) -> PaymentIntent:
        intent = self.retrieve_payment_intent(intent_id)
        intent.status = PaymentStatus(status)
        return intent

    def reset(self):
        self.intents.clear()
