from .order import ALLOWED_STATUS_TRANSITIONS, Order, OrderItem, OrderStatus


__all__ = [
    "ALLOWED_STATUS_TRANSITIONS",
    "Order",
    "OrderItem",
    "OrderStatus",
]
