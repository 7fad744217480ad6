"""
Payment Service Abstraction Layer
==================================

Provides a unified interface for payment operations across different payment providers.
"""

from .factory import PaymentFactory
from .interface import (
    PaymentException,
    PaymentIntent,
    PaymentProviderInterface,
    PaymentStatus,
    PaymentTimeoutException,
)
from .mock_provider import MockPaymentProvider
from .stripe_provider import StripeProvider

__all__ = [
    "PaymentProviderInterface",
    "PaymentIntent",
    "PaymentStatus",
    "PaymentException",
    "PaymentTimeoutException",
    "MockPaymentProvider",
    "StripeProvider",
    "PaymentFactory",
]
