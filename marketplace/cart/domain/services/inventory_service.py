"""
InventoryService - Stock Management

Availability checks under a row lock and atomic conditional stock decrements,
so concurrent checkouts can never drive stock below zero.
"""

import logging
from typing import Iterable, List, Tuple

from django.db import transaction
from django.db.models import F

from marketplace.catalog.domain.models.catalog import Product
from marketplace.infra.observability.metrics import stock_reservation_failures
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

logger = logging.getLogger(__name__)


class InventoryService(BaseService):
    """
    Service for checking and mutating product stock.
    """

    def get_purchasable_product(self, product_id, lock: bool = False) -> Product:
        """
        Load an active, non-deleted product, optionally locking its row.

        Raises Product.DoesNotExist when the product cannot be sold.
        """
        queryset = Product.objects.filter(is_active=True)
        if lock:
            queryset = queryset.select_for_update()
        return queryset.get(id=product_id)

    @BaseService.log_performance
    def check_availability(self, product_id: str, quantity: int = 1) -> ServiceResult[bool]:
        """
        Check if a product has sufficient stock available.

        Example:
            >>> result = inventory_service.check_availability(product_id, 5)
            >>> if result.ok and result.value:
            ...     print("Product is in stock!")
        """
        if quantity <= 0:
            return service_err(ErrorCodes.INVALID_QUANTITY, "Quantity must be positive")

        try:
            product = self.get_purchasable_product(product_id)
            available = product.stock_quantity >= quantity

            self.logger.info(
                f"Availability check for product {product_id}: "
                f"requested={quantity}, available={product.stock_quantity}, result={available}"
            )

            return service_ok(available)

        except Product.DoesNotExist:
            return service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found.")
        except Exception as e:
            self.logger.error(f"Error checking availability for product {product_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    def reserve_stock(self, product_id, quantity: int) -> bool:
        """
        Decrement stock by ``quantity`` if, and only if, enough is left.

        Single conditional UPDATE; returns False when no row matched (missing,
        inactive, deleted or short on stock). Must run inside the caller's
        transaction.
        """
        if quantity <= 0:
            raise ValueError("Quantity must be positive")

        updated = Product.objects.filter(
            id=product_id,
            is_active=True,
            stock_quantity__gte=quantity,
        ).update(stock_quantity=F("stock_quantity") - quantity)

        if not updated:
            stock_reservation_failures.inc()
            self.logger.warning(f"Stock reservation failed: product={product_id}, quantity={quantity}")
            return False

        self.logger.info(f"Stock reserved: product={product_id}, quantity={quantity}")
        return True

    def reserve_many(self, lines: Iterable[Tuple[object, int]]) -> Tuple[bool, List]:
        """
        Reserve stock for several (product_id, quantity) pairs in product-id order.

        Returns (True, []) when every line was reserved, otherwise (False,
        [product_id]) for the first line that could not be. Lines reserved
        before the failure stay decremented; the caller rolls the
        transaction back.
        """
        for product_id, quantity in sorted(lines, key=lambda line: str(line[0])):
            if not self.reserve_stock(product_id, quantity):
                return False, [product_id]
        return True, []

    @BaseService.log_performance
    @transaction.atomic
    def release_stock(self, product_id: str, quantity: int, reason: str = "order_cancelled") -> ServiceResult[dict]:
        """
        Return stock to inventory (atomic operation).

        Used when orders are cancelled. Soft-deleted products are restocked too,
        so the manager without the deletion filter is used.
        """
        if quantity <= 0:
            return service_err(ErrorCodes.INVALID_QUANTITY, "Quantity must be positive")

        try:
            updated = Product.all_objects.filter(id=product_id).update(stock_quantity=F("stock_quantity") + quantity)
            if not updated:
                return service_err(ErrorCodes.PRODUCT_NOT_FOUND, f"Product {product_id} not found")

            self.logger.info(f"Stock released: product={product_id}, quantity={quantity}, reason={reason}")

            return service_ok({"product_id": str(product_id), "quantity_released": quantity, "reason": reason})

        except Exception as e:
            self.logger.error(f"Error releasing stock for product {product_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    def get_stock_level(self, product_id: str) -> ServiceResult[int]:
        """
        Get current stock quantity for a product.
        """
        try:
            product = self.get_purchasable_product(product_id)
            return service_ok(product.stock_quantity)
        except Product.DoesNotExist:
            return service_err(ErrorCodes.PRODUCT_NOT_FOUND, f"Product {product_id} not found")
        except Exception as e:
            self.logger.error(f"Error getting stock level for product {product_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))
