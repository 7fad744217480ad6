"""
CartService - Shopping Cart Operations

Handles shopping cart operations: add, update, increase/decrease, remove, clear,
item count and membership checks. Stock is validated under a product row lock
and prices are snapshotted when a product first enters the cart.
"""

import logging
from typing import Dict, Optional

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import F, Sum

from marketplace.cart.domain.services.inventory_service import InventoryService
from marketplace.cart.domain.services.pricing_service import PricingPolicy, PricingService
from marketplace.infra.observability.metrics import cart_operations_total, cart_validation_duration
from marketplace.models import Cart, CartItem, Product
from utils.rbac import require_ownership, resolve_customer

from .base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

logger = logging.getLogger(__name__)


def _not_enough_stock(available: int) -> str:
    return f"Not enough stock available. Only {available} items left."


class CartService(BaseService):
    """
    Service for managing shopping cart operations.

    Responsibilities:
    - Get (or lazily create) the customer's cart
    - Add items with stock validation and price snapshot
    - Update, increase, decrease and remove items
    - Clear cart, count items, membership checks
    - Validate cart contents before checkout

    Dependencies:
    - InventoryService: product lookup and stock checks
    - PricingService: effective price and cart totals
    """

    def __init__(self, inventory_service: InventoryService = None, pricing_service: PricingService = None):
        """
        Initialize CartService.

        Args:
            inventory_service: Service for stock management (injected)
            pricing_service: Service for price calculations (injected)
        """
        super().__init__()
        self.inventory_service = inventory_service or InventoryService()
        self.pricing_service = pricing_service or PricingService()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _customer_not_found(self) -> ServiceResult:
        return service_err(ErrorCodes.CUSTOMER_NOT_FOUND, "Customer not found.")

    def _item_not_found(self) -> ServiceResult:
        return service_err(ErrorCodes.CART_ITEM_NOT_FOUND, "Cart item not found.")

    def _track(self, operation: str, result: ServiceResult) -> ServiceResult:
        cart_operations_total.labels(operation=operation, outcome="ok" if result.ok else result.error).inc()
        return result

    def _get_owned_item(self, customer, cart_item_id) -> Optional[CartItem]:
        """
        Load a cart item that belongs to the customer's live cart.

        Items of another customer's cart are reported as missing.
        """
        try:
            item = CartItem.objects.select_related("cart", "product").get(id=cart_item_id, cart__is_deleted=False)
            require_ownership(customer, item.cart.customer_id)
            return item
        except (CartItem.DoesNotExist, PermissionDenied, ValueError, ValidationError):
            return None

    def _lock_product(self, product_id) -> Optional[Product]:
        try:
            return self.inventory_service.get_purchasable_product(product_id, lock=True)
        except (Product.DoesNotExist, ValueError, ValidationError):
            return None

    def _serialize_item(self, item: CartItem) -> Dict:
        return {
            "id": item.id,
            "product_id": item.product_id,
            "product_name": item.product.name,
            "quantity": item.quantity,
            "unit_price": self.pricing_service.unit_price(item, PricingPolicy.SNAPSHOT),
            "total_price": self.pricing_service.line_subtotal(item.price_at_addition, item.quantity),
            "selected_size": item.selected_size,
            "selected_color": item.selected_color,
            "added_at": item.added_at,
        }

    def _serialize_cart(self, cart: Cart) -> Dict:
        items = list(cart.items.select_related("product").order_by("added_at", "id"))

        totals_result = self.pricing_service.calculate_cart_total(items, PricingPolicy.SNAPSHOT)
        if not totals_result.ok:
            raise ValueError(totals_result.error_detail)
        totals = totals_result.value

        return {
            "id": cart.id,
            "customer_id": cart.customer_id,
            "items": [self._serialize_item(item) for item in items],
            "items_count": len(items),
            "total_items": totals["total_items"],
            "total_price": totals["total_price"],
            "created_at": cart.created_at,
            "modified_at": cart.modified_at,
        }

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @BaseService.log_performance
    def get_cart(self, user) -> ServiceResult[Dict]:
        """
        Get the customer's shopping cart with items and totals.

        Creates an empty cart when the customer has none.

        Example:
            >>> result = cart_service.get_cart(user)
            >>> if result.ok:
            ...     items = result.value["items"]
            ...     total = result.value["total_price"]
        """
        customer = resolve_customer(user)
        if customer is None:
            return self._customer_not_found()

        try:
            cart = Cart.get_or_create_cart(customer)
            cart_data = self._serialize_cart(cart)

            self.logger.info(f"Retrieved cart for user {customer.id}: {cart_data['items_count']} items")

            return service_ok(cart_data)

        except Exception as e:
            self.logger.error(f"Error getting cart for user {customer.id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    @BaseService.log_performance
    def item_count(self, user) -> ServiceResult[int]:
        """
        Total number of units in the customer's cart.

        Zero when the user is not a customer or has no cart.
        """
        customer = resolve_customer(user)
        if customer is None:
            return service_ok(0)

        try:
            total = CartItem.objects.filter(cart__customer=customer, cart__is_deleted=False).aggregate(
                total=Sum("quantity")
            )["total"]
            return service_ok(total or 0)

        except Exception as e:
            self.logger.error(f"Error counting cart items for user {customer.id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    @BaseService.log_performance
    def is_product_in_cart(self, user, product_id) -> ServiceResult[bool]:
        customer = resolve_customer(user)
        if customer is None:
            return service_ok(False)

        try:
            exists = CartItem.objects.filter(
                cart__customer=customer, cart__is_deleted=False, product_id=product_id
            ).exists()
            return service_ok(exists)

        except (ValueError, ValidationError):
            return service_ok(False)
        except Exception as e:
            self.logger.error(f"Error checking cart membership for user {customer.id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @BaseService.log_performance
    @transaction.atomic
    def add_item(
        self, user, product_id, quantity: int = 1, selected_size: str = "", selected_color: str = ""
    ) -> ServiceResult[Dict]:
        """
        Add a product to the cart (with stock validation).

        A product already in the cart is merged into its existing row; the
        price snapshot of that row is kept. New rows snapshot the product's
        effective price.

        Args:
            user: Requesting user
            product_id: Product UUID
            quantity: Quantity to add (default: 1)
            selected_size: Optional size variant
            selected_color: Optional colour variant

        Returns:
            ServiceResult with the refreshed cart

        Example:
            >>> result = cart_service.add_item(user, product_id, quantity=2)
            >>> if result.ok:
            ...     cart_data = result.value
        """
        if quantity is None or quantity <= 0:
            return self._track("add_item", service_err(ErrorCodes.INVALID_QUANTITY, "Quantity must be positive"))

        customer = resolve_customer(user)
        if customer is None:
            return self._track("add_item", self._customer_not_found())

        try:
            product = self._lock_product(product_id)
            if product is None:
                return self._track("add_item", service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found."))

            cart = Cart.get_or_create_cart(customer)
            cart_item = CartItem.objects.filter(cart=cart, product=product).first()

            requested = quantity + (cart_item.quantity if cart_item else 0)
            if product.stock_quantity < requested:
                return self._track(
                    "add_item",
                    service_err(ErrorCodes.INSUFFICIENT_STOCK, _not_enough_stock(product.stock_quantity)),
                )

            if cart_item:
                old_quantity = cart_item.quantity
                CartItem.objects.filter(id=cart_item.id).update(quantity=F("quantity") + quantity)
                self.logger.info(
                    f"Updated cart item for user {customer.id}: {product.name} quantity {old_quantity} -> {requested}"
                )
            else:
                CartItem.objects.create(
                    cart=cart,
                    product=product,
                    quantity=quantity,
                    price_at_addition=self.pricing_service.effective_price(product),
                    selected_size=selected_size or "",
                    selected_color=selected_color or "",
                )
                self.logger.info(f"Added to cart for user {customer.id}: {quantity}x {product.name}")

            cart.touch()
            return self._track("add_item", service_ok(self._serialize_cart(cart)))

        except Exception as e:
            self.logger.error(f"Error adding to cart for user {customer.id}: {e}", exc_info=True)
            return self._track("add_item", service_err(ErrorCodes.INTERNAL_ERROR, str(e)))

    @BaseService.log_performance
    @transaction.atomic
    def update_item_quantity(self, user, cart_item_id, quantity: int) -> ServiceResult[Dict]:
        """
        Set the quantity of a cart item.

        A quantity of zero or less removes the item. Increases are checked
        against current stock.
        """
        customer = resolve_customer(user)
        if customer is None:
            return self._track("update_item_quantity", self._customer_not_found())

        try:
            cart_item = self._get_owned_item(customer, cart_item_id)
            if cart_item is None:
                return self._track("update_item_quantity", self._item_not_found())

            cart = cart_item.cart

            if quantity <= 0:
                cart_item.delete()
                self.logger.info(f"Removed cart item {cart_item_id} for user {customer.id} (quantity {quantity})")
            else:
                if quantity > cart_item.quantity:
                    product = self._lock_product(cart_item.product_id)
                    if product is None:
                        return self._track(
                            "update_item_quantity", service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found.")
                        )
                    if product.stock_quantity < quantity:
                        return self._track(
                            "update_item_quantity",
                            service_err(ErrorCodes.INSUFFICIENT_STOCK, _not_enough_stock(product.stock_quantity)),
                        )

                old_quantity = cart_item.quantity
                cart_item.quantity = quantity
                cart_item.save(update_fields=["quantity"])
                self.logger.info(
                    f"Updated cart quantity for user {customer.id}: item {cart_item_id} {old_quantity} -> {quantity}"
                )

            cart.touch()
            return self._track("update_item_quantity", service_ok(self._serialize_cart(cart)))

        except Exception as e:
            self.logger.error(f"Error updating cart quantity for user {customer.id}: {e}", exc_info=True)
            return self._track("update_item_quantity", service_err(ErrorCodes.INTERNAL_ERROR, str(e)))

    @BaseService.log_performance
    @transaction.atomic
    def remove_item(self, user, cart_item_id) -> ServiceResult[Dict]:
        """
        Remove an item from the cart.
        """
        customer = resolve_customer(user)
        if customer is None:
            return self._track("remove_item", self._customer_not_found())

        try:
            cart_item = self._get_owned_item(customer, cart_item_id)
            if cart_item is None:
                return self._track("remove_item", self._item_not_found())

            cart = cart_item.cart
            product_name = cart_item.product.name
            cart_item.delete()
            cart.touch()

            self.logger.info(f"Removed from cart for user {customer.id}: {product_name}")

            return self._track("remove_item", service_ok(self._serialize_cart(cart)))

        except Exception as e:
            self.logger.error(f"Error removing from cart for user {customer.id}: {e}", exc_info=True)
            return self._track("remove_item", service_err(ErrorCodes.INTERNAL_ERROR, str(e)))

    @BaseService.log_performance
    @transaction.atomic
    def increase_quantity(self, user, cart_item_id) -> ServiceResult[Dict]:
        """
        Add one unit to a cart item, if stock allows it.
        """
        customer = resolve_customer(user)
        if customer is None:
            return self._track("increase_quantity", self._customer_not_found())

        try:
            cart_item = self._get_owned_item(customer, cart_item_id)
            if cart_item is None:
                return self._track("increase_quantity", self._item_not_found())

            product = self._lock_product(cart_item.product_id)
            if product is None:
                return self._track(
                    "increase_quantity", service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found.")
                )

            # Relative, stock-bounded update; never writes back a stale quantity
            updated = CartItem.objects.filter(id=cart_item.id, quantity__lt=product.stock_quantity).update(
                quantity=F("quantity") + 1
            )
            if not updated:
                if not CartItem.objects.filter(id=cart_item.id).exists():
                    return self._track("increase_quantity", self._item_not_found())
                return self._track(
                    "increase_quantity",
                    service_err(ErrorCodes.INSUFFICIENT_STOCK, "Cannot add more items. Stock limit reached."),
                )

            cart_item.cart.touch()

            return self._track("increase_quantity", service_ok(self._serialize_cart(cart_item.cart)))

        except Exception as e:
            self.logger.error(f"Error increasing cart quantity for user {customer.id}: {e}", exc_info=True)
            return self._track("increase_quantity", service_err(ErrorCodes.INTERNAL_ERROR, str(e)))

    @BaseService.log_performance
    @transaction.atomic
    def decrease_quantity(self, user, cart_item_id) -> ServiceResult[Dict]:
        """
        Remove one unit from a cart item; the last unit removes the item.
        """
        customer = resolve_customer(user)
        if customer is None:
            return self._track("decrease_quantity", self._customer_not_found())

        try:
            cart_item = self._get_owned_item(customer, cart_item_id)
            if cart_item is None:
                return self._track("decrease_quantity", self._item_not_found())

            cart = cart_item.cart
            updated = CartItem.objects.filter(id=cart_item.id, quantity__gt=1).update(quantity=F("quantity") - 1)
            if not updated:
                CartItem.objects.filter(id=cart_item.id).delete()
                self.logger.info(f"Removed cart item {cart_item_id} for user {customer.id} (last unit)")

            cart.touch()
            return self._track("decrease_quantity", service_ok(self._serialize_cart(cart)))

        except Exception as e:
            self.logger.error(f"Error decreasing cart quantity for user {customer.id}: {e}", exc_info=True)
            return self._track("decrease_quantity", service_err(ErrorCodes.INTERNAL_ERROR, str(e)))

    @BaseService.log_performance
    @transaction.atomic
    def clear_cart(self, user) -> ServiceResult[bool]:
        """
        Clear all items from cart.

        Succeeds when there is no cart or nothing to clear.

        Example:
            >>> result = cart_service.clear_cart(user)
            >>> if result.ok:
            ...     print("Cart cleared")
        """
        customer = resolve_customer(user)
        if customer is None:
            return self._track("clear_cart", self._customer_not_found())

        try:
            cart = Cart.objects.filter(customer=customer).first()
            if cart is None:
                return self._track("clear_cart", service_ok(True))

            items_count, _ = cart.items.all().delete()
            cart.touch()

            self.logger.info(f"Cleared cart for user {customer.id}: {items_count} items removed")

            return self._track("clear_cart", service_ok(True))

        except Exception as e:
            self.logger.error(f"Error clearing cart for user {customer.id}: {e}", exc_info=True)
            return self._track("clear_cart", service_err(ErrorCodes.INTERNAL_ERROR, str(e)))

    @BaseService.log_performance
    @cart_validation_duration.time()
    def validate_cart(self, user) -> ServiceResult[Dict]:
        """
        Validate cart items (stock availability, active products) without
        changing anything.

        Example:
            >>> result = cart_service.validate_cart(user)
            >>> if result.ok and not result.value["valid"]:
            ...     print("Issues:", result.value["issues"])
        """
        customer = resolve_customer(user)
        if customer is None:
            return self._customer_not_found()

        try:
            issues = []
            items = CartItem.objects.filter(cart__customer=customer, cart__is_deleted=False).select_related("product")

            for item in items:
                product = item.product

                if not product.is_purchasable:
                    issues.append(
                        {
                            "cart_item_id": item.id,
                            "product_id": str(product.id),
                            "issue": "product_unavailable",
                            "message": f"{product.name} is no longer available",
                        }
                    )
                    continue

                if product.stock_quantity < item.quantity:
                    issues.append(
                        {
                            "cart_item_id": item.id,
                            "product_id": str(product.id),
                            "issue": ErrorCodes.INSUFFICIENT_STOCK,
                            "message": f"{product.name}: requested {item.quantity}, available {product.stock_quantity}",
                            "requested": item.quantity,
                            "available": product.stock_quantity,
                        }
                    )

            validation = {
                "valid": not issues,
                "issues": issues,
                "items_count": len(items),
            }

            self.logger.info(f"Validated cart for user {customer.id}: valid={not issues}, issues={len(issues)}")

            return service_ok(validation)

        except Exception as e:
            self.logger.error(f"Error validating cart for user {customer.id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))
