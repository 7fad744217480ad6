"""
PricingService - Price Calculations

Effective unit prices, line subtotals and cart/order totals. All arithmetic
uses Decimal and every monetary result is quantized to cents.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, Iterable

from marketplace.catalog.domain.models.catalog import Product
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok


logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class PricingPolicy(str, Enum):
    """Where the unit price of an order line comes from."""

    # Current effective price of the product at checkout time
    LIVE = "live"
    # price_at_addition recorded on the cart item
    SNAPSHOT = "snapshot"


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def effective_price(product: Product) -> Decimal:
    """Discount price while the product is on sale, list price otherwise."""
    if product.is_on_sale and product.discount_price is not None:
        return to_money(product.discount_price)
    return to_money(product.price)


class PricingService(BaseService):
    """
    Service for calculating prices and totals.

    All methods are stateless (pure functions) for easy testing.
    """

    def effective_price(self, product: Product) -> Decimal:
        return effective_price(product)

    def unit_price(self, cart_item, policy: PricingPolicy = PricingPolicy.LIVE) -> Decimal:
        """
        Unit price of a cart line under the given pricing policy.

        Example:
            >>> pricing_service.unit_price(item, PricingPolicy.SNAPSHOT)
            Decimal('10.00')
        """
        if PricingPolicy(policy) == PricingPolicy.SNAPSHOT:
            return to_money(cart_item.price_at_addition)
        return effective_price(cart_item.product)

    def line_subtotal(self, unit_price: Decimal, quantity: int) -> Decimal:
        return to_money(Decimal(str(unit_price)) * quantity)

    @BaseService.log_performance
    def calculate_product_price(self, product: Product) -> ServiceResult[Dict]:
        """
        Calculate pricing details for a product.

        Returns:
            ServiceResult with price, discount_price, is_on_sale, effective_price
            and discount_amount
        """
        try:
            price = to_money(product.price)
            current = effective_price(product)

            pricing = {
                "price": price,
                "discount_price": to_money(product.discount_price) if product.discount_price is not None else None,
                "is_on_sale": current < price,
                "effective_price": current,
                "discount_amount": price - current,
            }

            return service_ok(pricing)

        except Exception as e:
            self.logger.error(f"Error calculating price for product {product.id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    @BaseService.log_performance
    def calculate_cart_total(
        self, cart_items: Iterable, policy: PricingPolicy = PricingPolicy.SNAPSHOT
    ) -> ServiceResult[Dict]:
        """
        Calculate totals for a collection of cart items.

        Args:
            cart_items: CartItem instances (or objects with product, quantity
                and price_at_addition)
            policy: Pricing policy applied to each line

        Returns:
            ServiceResult with total_items (sum of quantities), total_price and
            one line per item

        Example:
            >>> result = pricing_service.calculate_cart_total(cart.items.all())
            >>> if result.ok:
            ...     print(f"Total: ${result.value['total_price']}")
        """
        try:
            lines = []
            total_items = 0
            total_price = Decimal("0.00")

            for item in cart_items:
                if item.quantity <= 0:
                    return service_err(ErrorCodes.INVALID_QUANTITY, f"Invalid quantity: {item.quantity}")

                unit = self.unit_price(item, policy)
                subtotal = self.line_subtotal(unit, item.quantity)
                lines.append({"item": item, "unit_price": unit, "subtotal": subtotal})
                total_items += item.quantity
                total_price += subtotal

            return service_ok(
                {
                    "lines": lines,
                    "total_items": total_items,
                    "total_price": to_money(total_price),
                }
            )

        except Exception as e:
            self.logger.error(f"Error calculating cart total: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))
