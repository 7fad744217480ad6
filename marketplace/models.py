from marketplace.cart.domain.models import Cart, CartItem
from marketplace.catalog.domain.models import Product
from marketplace.ordering.domain.models import ALLOWED_STATUS_TRANSITIONS, Order, OrderItem, OrderStatus


__all__ = [
    "ALLOWED_STATUS_TRANSITIONS",
    "Product",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
]
