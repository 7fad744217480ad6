"""
Payment Provider Factory
=========================

Builds the payment provider named by ``settings.PAYMENT_PROVIDER``.
"""

import logging
from typing import Dict, Literal, Type

from django.conf import settings

from .interface import PaymentProviderInterface
from .mock_provider import MockPaymentProvider
from .stripe_provider import StripeProvider

logger = logging.getLogger(__name__)

PaymentBackend = Literal["stripe", "mock"]

PROVIDERS: Dict[str, Type[PaymentProviderInterface]] = {
    "stripe": StripeProvider,
    "mock": MockPaymentProvider,
}


class PaymentFactory:
    """
    Usage:
        # settings.py
        PAYMENT_PROVIDER = "mock"  # in-memory intents for development and tests

        provider = PaymentFactory.create()
    """

    @staticmethod
    def create(backend: PaymentBackend | None = None) -> PaymentProviderInterface:
        """
        Instantiate the provider for ``backend`` (defaults to the configured one).

        Raises:
            ValueError: unknown backend name
        """
        name = backend or getattr(settings, "PAYMENT_PROVIDER", "stripe")
        provider_class = PROVIDERS.get(name)
        if provider_class is None:
            raise ValueError(f"Unknown payment provider {name!r}; expected one of {sorted(PROVIDERS)}")

        logger.info(f"Using payment provider {provider_class.__name__}")
        return provider_class()
