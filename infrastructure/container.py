"""
Dependency Injection Container
================================

Service locator for the payment provider and the storefront services that
depend on it. Everything is built on first use and cached until ``reset()``.

Usage:
    from infrastructure.container import container

    provider = container.payment()
    order_service = container.order_service()
"""

import logging
from typing import Any, Callable, Dict, Optional

from .payments import PaymentFactory, PaymentProviderInterface

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Process-wide registry of cached service instances.

    ``ServiceContainer()`` always returns the same object.
    """

    _instance: Optional["ServiceContainer"] = None
    _cache: Dict[str, Any]

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._cache = {}
            cls._instance = instance
            logger.info("Service container initialized")
        return cls._instance

    def _cached(self, key: str, build: Callable[[], Any]) -> Any:
        if key not in self._cache:
            self._cache[key] = build()
            logger.debug(f"Created {type(self._cache[key]).__name__}")
        return self._cache[key]

    def payment(self, backend: Optional[str] = None) -> PaymentProviderInterface:
        """
        Payment provider, from ``settings.PAYMENT_PROVIDER`` unless ``backend``
        is given. Passing a backend replaces the cached provider and drops the
        PaymentService bound to the previous one.
        """
        if backend is not None:
            self._cache.pop("payment_service", None)
            self._cache["payment"] = PaymentFactory.create(backend)
        return self._cached("payment", PaymentFactory.create)

    def inventory_service(self):
        from marketplace.cart.domain.services.inventory_service import InventoryService

        return self._cached("inventory_service", InventoryService)

    def pricing_service(self):
        from marketplace.cart.domain.services.pricing_service import PricingService

        return self._cached("pricing_service", PricingService)

    def cart_service(self):
        from marketplace.services.cart_service import CartService

        return self._cached(
            "cart_service",
            lambda: CartService(inventory_service=self.inventory_service(), pricing_service=self.pricing_service()),
        )

    def order_service(self):
        from marketplace.services.order_service import OrderService

        return self._cached(
            "order_service",
            lambda: OrderService(inventory_service=self.inventory_service(), pricing_service=self.pricing_service()),
        )

    def payment_service(self):
        """PaymentService bound to the current payment provider."""
        from payment_system.domain.services.payment_service import PaymentService

        return self._cached(
            "payment_service",
            lambda: PaymentService(
                payment_provider=self.payment(),
                order_service=self.order_service(),
                pricing_service=self.pricing_service(),
            ),
        )

    def reset(self):
        """Drop every cached instance (tests, settings changes)."""
        self._cache.clear()
        logger.info("Service container reset")


container = ServiceContainer()


def get_payment_provider() -> PaymentProviderInterface:
    return container.payment()


class Container:
    """Static access to container services."""

    @staticmethod
    def get_payment_provider() -> PaymentProviderInterface:
        return get_payment_provider()
