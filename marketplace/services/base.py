"""
Base classes and utilities for the service layer.

This module provides the ServiceResult pattern used by every storefront
service, the BaseService class (logger + timing decorator), the PagedResult
envelope returned by paginated queries and the shared error code catalogue.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    A result type that encapsulates success or failure from service operations.

    Expected failures (missing cart, not enough stock, ...) are returned as
    values instead of being raised, so views can map them to HTTP responses.

    Attributes:
        ok: True if operation succeeded, False otherwise
        value: The success value (present if ok=True)
        error: Error code from ErrorCodes (present if ok=False)
        error_detail: Human-readable error message (present if ok=False)

    Examples:
        >>> result = service_ok(cart_payload)
        >>> if result.ok:
        ...     return Response(result.value, 200)

        >>> result = service_err("cart_empty", "Cart is empty")
        >>> print(result.error)  # "cart_empty"
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None

    def map(self, func: Callable[[T], Any]) -> "ServiceResult":
        """
        Transform the success value if ok=True, otherwise pass through error.
        """
        if self.ok and self.value is not None:
            try:
                return service_ok(func(self.value))
            except Exception as e:
                return service_err(ErrorCodes.INTERNAL_ERROR, str(e))
        return self

    def flat_map(self, func: Callable[[T], "ServiceResult"]) -> "ServiceResult":
        """
        Chain service operations that return ServiceResult.
        """
        if self.ok and self.value is not None:
            return func(self.value)
        return self

    def to_dict(self) -> dict:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary with 'success' and either 'data' or 'error'
        """
        if self.ok:
            return {"success": True, "data": self.value}
        return {
            "success": False,
            "error": {"code": self.error, "message": self.error_detail},
        }


def service_ok(value: T) -> ServiceResult[T]:
    """
    Create a successful ServiceResult.

    Example:
        >>> order = Order.objects.get(id=order_id)
        >>> return service_ok(order)
    """
    return ServiceResult(ok=True, value=value)


def service_err(error: str, error_detail: str = "") -> ServiceResult:
    """
    Create a failed ServiceResult.

    Args:
        error: Error code (e.g., "product_not_found", "invalid_quantity")
        error_detail: Human-readable error message

    Example:
        >>> return service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found.")
    """
    return ServiceResult(ok=False, error=error, error_detail=error_detail or error)


@dataclass
class PagedResult(Generic[T]):
    """
    One page of a larger result set.

    page_index is zero-based; the request uses one-based page numbers.
    """

    items: List[T] = field(default_factory=list)
    page_index: int = 0
    page_size: int = 10
    total_count: int = 0

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_previous_page(self) -> bool:
        return self.page_index > 0

    @property
    def has_next_page(self) -> bool:
        return self.page_index + 1 < self.total_pages

    def to_dict(self) -> dict:
        return {
            "items": self.items,
            "page_index": self.page_index,
            "page_size": self.page_size,
            "total_count": self.total_count,
            "total_pages": self.total_pages,
            "has_previous_page": self.has_previous_page,
            "has_next_page": self.has_next_page,
        }


class CheckoutAborted(Exception):
    """
    Raised inside a transaction.atomic block to roll a multi-step workflow back.

    Carries the failed ServiceResult so the caller can return it unchanged
    once the transaction has been unwound.
    """

    def __init__(self, result: ServiceResult):
        super().__init__(result.error_detail)
        self.result = result


class BaseService:
    """
    Base class for all services providing common functionality.

    Provides:
    - Logging with class name
    - Performance timing decorator

    Usage:
        class CartService(BaseService):
            def __init__(self, inventory_service):
                super().__init__()
                self.inventory_service = inventory_service

            @BaseService.log_performance
            def get_cart(self, user):
                self.logger.info(f"Loading cart for user {user.id}")
    """

    def __init__(self):
        """Initialize base service with logger."""
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """
        Decorator to log performance of service methods.

        Logs execution time, the error code of a failed ServiceResult and any
        exception that escapes the method.
        """

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start_time = time.time()
            method_name = f"{self.__class__.__name__}.{func.__name__}"

            try:
                self.logger.debug(f"{method_name} started")
                result = func(self, *args, **kwargs)
                elapsed_time = (time.time() - start_time) * 1000

                if isinstance(result, ServiceResult):
                    if result.ok:
                        self.logger.info(f"{method_name} completed successfully in {elapsed_time:.2f}ms")
                    else:
                        self.logger.warning(
                            f"{method_name} failed with error '{result.error}' in {elapsed_time:.2f}ms"
                        )
                else:
                    self.logger.info(f"{method_name} completed in {elapsed_time:.2f}ms")

                return result

            except Exception as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"{method_name} raised exception after {elapsed_time:.2f}ms: {str(e)}",
                    exc_info=True,
                )
                raise

        return wrapper


class ErrorCodes:
    """Standard error codes used across storefront services."""

    # Not found
    CUSTOMER_NOT_FOUND = "customer_not_found"
    CART_NOT_FOUND = "cart_not_found"
    CART_ITEM_NOT_FOUND = "cart_item_not_found"
    PRODUCT_NOT_FOUND = "product_not_found"
    ORDER_NOT_FOUND = "order_not_found"
    PAYMENT_NOT_FOUND = "payment_not_found"

    # Permission errors
    UNAUTHORIZED = "unauthorized"

    # Cart and stock
    INSUFFICIENT_STOCK = "insufficient_stock"
    CART_EMPTY = "cart_empty"

    # Payments
    PAYMENT_NOT_SUCCESSFUL = "payment_not_successful"
    PAYMENT_PROVIDER_ERROR = "payment_provider_error"
    PAYMENT_PROVIDER_TIMEOUT = "payment_provider_timeout"

    # Validation errors
    INVALID_QUANTITY = "invalid_quantity"
    INVALID_STATUS = "invalid_status"
    VALIDATION_ERROR = "validation_error"
    INVALID_ORDER_STATE = "invalid_order_state"

    # Internal errors
    PERSISTENCE_ERROR = "persistence_error"
    ORDER_CREATION_FAILED = "order_creation_failed"
    INTERNAL_ERROR = "internal_error"

    NOT_FOUND = frozenset(
        {
            CUSTOMER_NOT_FOUND,
            CART_NOT_FOUND,
            CART_ITEM_NOT_FOUND,
            PRODUCT_NOT_FOUND,
            ORDER_NOT_FOUND,
            PAYMENT_NOT_FOUND,
        }
    )
