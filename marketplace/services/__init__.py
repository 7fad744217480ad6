"""
Marketplace Service Layer

Business logic for carts and orders, organized into domain services that
return ServiceResult values instead of raising for expected failures.

Services:
- CartService: Shopping cart operations (marketplace.services.cart_service)
- OrderService: Checkout, order queries and status changes (marketplace.services.order_service)
- InventoryService / PricingService: stock and price rules (marketplace.cart.domain.services)

Usage:
    from infrastructure.container import container

    result = container.cart_service().add_item(request.user, product_id, quantity=2)
    if result.ok:
        cart = result.value
    else:
        error = result.error
"""

from .base import BaseService, CheckoutAborted, ErrorCodes, PagedResult, ServiceResult, service_err, service_ok

__all__ = [
    # Base classes
    "BaseService",
    "ServiceResult",
    "PagedResult",
    "CheckoutAborted",
    # Helper functions
    "service_ok",
    "service_err",
    # Error codes
    "ErrorCodes",
]
