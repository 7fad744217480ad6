"""
Stripe Payment Provider
========================

PaymentProviderInterface backed by the Stripe PaymentIntents API.

Transient failures (rate limits, dropped connections, 5xx) are retried three
times with exponential backoff. A connection that still fails after that is
reported as PaymentTimeoutException so callers can tell "Stripe is down"
apart from "Stripe said no".
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import stripe
from django.conf import settings
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .interface import (
    PaymentException,
    PaymentIntent,
    PaymentProviderInterface,
    PaymentStatus,
    PaymentTimeoutException,
)

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (
    stripe.error.RateLimitError,
    stripe.error.APIConnectionError,
    stripe.error.APIError,
)

# Anything Stripe reports that is not listed here counts as failed
STRIPE_STATUSES = {
    "requires_payment_method": PaymentStatus.PENDING,
    "requires_confirmation": PaymentStatus.PENDING,
    "requires_action": PaymentStatus.PROCESSING,
    "processing": PaymentStatus.PROCESSING,
    "requires_capture": PaymentStatus.PROCESSING,
    "canceled": PaymentStatus.CANCELED,
    "succeeded": PaymentStatus.SUCCEEDED,
}


def _with_retries():
    return retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        reraise=True,
    )


class StripeProvider(PaymentProviderInterface):
    """
    Settings:
        STRIPE_SECRET_KEY: secret API key used for every call
    """

    def __init__(self):
        stripe.api_key = getattr(settings, "STRIPE_SECRET_KEY", "")
        if not stripe.api_key:
            logger.warning("STRIPE_SECRET_KEY not configured")

    @_with_retries()
    def _create_payment_intent_api(self, **params):
        return stripe.PaymentIntent.create(**params)

    @_with_retries()
    def _retrieve_payment_intent_api(self, intent_id):
        return stripe.PaymentIntent.retrieve(intent_id)

    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: Optional[Dict[str, Any]] = None,
        customer_email: Optional[str] = None,
    ) -> PaymentIntent:
        params = {
            "amount": int(amount * 100),
            "currency": currency.lower(),
            "automatic_payment_methods": {"enabled": True},
        }
        if metadata:
            params["metadata"] = metadata
        if customer_email:
            params["receipt_email"] = customer_email

        try:
            intent = self._create_payment_intent_api(**params)
        except stripe.error.StripeError as e:
            raise self._translate(e, "creating payment intent") from e

        logger.info(f"Created Stripe payment intent {intent.id} for {params['amount']} {params['currency']}")
        return self._to_payment_intent(intent)

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        try:
            intent = self._retrieve_payment_intent_api(intent_id)
        except stripe.error.StripeError as e:
            raise self._translate(e, f"retrieving payment intent {intent_id}") from e

        logger.info(f"Retrieved Stripe payment intent {intent_id}: {intent.status}")
        return self._to_payment_intent(intent)

    def _translate(self, error: Exception, action: str) -> PaymentException:
        if isinstance(error, stripe.error.APIConnectionError):
            logger.error(f"Stripe unreachable {action}: {error}")
            return PaymentTimeoutException(f"Payment provider unreachable: {error}")
        logger.error(f"Stripe error {action}: {error}")
        return PaymentException(f"Payment provider error {action}: {error}")

    def _to_payment_intent(self, intent) -> PaymentIntent:
        return PaymentIntent(
            intent_id=intent.id,
            amount=intent.amount,
            currency=intent.currency,
            status=self._map_stripe_payment_status(intent.status),
            client_secret=intent.client_secret,
            customer_email=intent.receipt_email,
            metadata=dict(intent.metadata or {}),
        )

    def _map_stripe_payment_status(self, stripe_status: str) -> PaymentStatus:
        return STRIPE_STATUSES.get(stripe_status, PaymentStatus.FAILED)
