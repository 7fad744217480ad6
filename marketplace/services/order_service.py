"""
OrderService - Order Lifecycle Management

The single cart -> order entry point (direct checkout and payment-confirmed
checkout share it), order queries, admin pagination and status transitions.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import DatabaseError, transaction

from marketplace.cart.domain.services.inventory_service import InventoryService
from marketplace.cart.domain.services.pricing_service import PricingPolicy, PricingService
from marketplace.infra.observability.metrics import order_status_transitions_total, order_value, orders_placed_total
from marketplace.models import Cart, Order, OrderItem, OrderStatus, Product
from utils.rbac import Role, require_ownership, resolve_admin, resolve_customer, role_of

from .base import BaseService, CheckoutAborted, ErrorCodes, PagedResult, ServiceResult, service_err, service_ok

logger = logging.getLogger(__name__)


class OrderService(BaseService):
    """
    Service for managing order lifecycle.

    Responsibilities:
    - Turn a cart into an order (stock decrement, price snapshot, cart emptied)
    - Order lookup for owners and admins
    - Admin pagination and status transitions (cancellation restocks)

    Dependencies:
    - InventoryService: conditional stock decrement and restock
    - PricingService: unit prices per pricing policy
    """

    def __init__(self, inventory_service: InventoryService = None, pricing_service: PricingService = None):
        """
        Initialize OrderService.

        Args:
            inventory_service: Service for stock management (injected)
            pricing_service: Service for price calculations (injected)
        """
        super().__init__()
        self.inventory_service = inventory_service or InventoryService()
        self.pricing_service = pricing_service or PricingService()

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    @BaseService.log_performance
    def create_order_from_cart(
        self,
        user,
        cart_id,
        notes: str = "",
        pricing: PricingPolicy = PricingPolicy.LIVE,
        payment=None,
        initial_status: Optional[str] = None,
    ) -> ServiceResult[Order]:
        """
        Create an order from a cart.

        Stock for every line is decremented with a conditional update, the
        order and its line snapshots are inserted, the payment (if any) is
        linked and the cart is emptied. Either all of it commits or none of it.

        Args:
            user: Requesting user, must own the cart
            cart_id: Cart primary key
            notes: Free-form order notes
            pricing: LIVE uses current effective prices, SNAPSHOT uses
                price_at_addition
            payment: Optional Payment to link to the order
            initial_status: Status override; defaults to processing when a
                payment is linked and pending otherwise

        Returns:
            ServiceResult with the created Order

        Example:
            >>> result = order_service.create_order_from_cart(user, cart.id, notes="Leave at door")
            >>> if result.ok:
            ...     order = result.value
        """
        customer = resolve_customer(user)
        if customer is None:
            return service_err(ErrorCodes.CUSTOMER_NOT_FOUND, "Customer not found.")

        try:
            with transaction.atomic():
                order = self._place_order(customer, cart_id, notes, PricingPolicy(pricing), payment, initial_status)

        except CheckoutAborted as e:
            orders_placed_total.labels(status="rejected").inc()
            return e.result
        except DatabaseError as e:
            orders_placed_total.labels(status="failure").inc()
            self.logger.error(f"Database error creating order for user {customer.id}: {e}", exc_info=True)
            return service_err(ErrorCodes.PERSISTENCE_ERROR, "Could not save the order.")
        except Exception as e:
            orders_placed_total.labels(status="failure").inc()
            self.logger.error(f"Error creating order for user {customer.id}: {e}", exc_info=True)
            return service_err(ErrorCodes.ORDER_CREATION_FAILED, str(e))

        orders_placed_total.labels(status="success").inc()
        order_value.observe(float(order.total_amount))

        self.logger.info(
            f"Created order {order.id} for user {customer.id}: total ${order.total_amount}, status {order.status}"
        )

        return service_ok(order)

    @BaseService.log_performance
    def create_order(self, user, cart_id=None, notes: str = "") -> ServiceResult[Order]:
        """
        Direct checkout at live prices, no payment.

        Without a cart_id the customer's own cart is used.
        """
        if cart_id is None:
            customer = resolve_customer(user)
            if customer is None:
                return service_err(ErrorCodes.CUSTOMER_NOT_FOUND, "Customer not found.")
            cart = Cart.objects.filter(customer=customer).first()
            if cart is None:
                return service_err(ErrorCodes.CART_EMPTY, "Cart is empty.")
            cart_id = cart.id

        return self.create_order_from_cart(user, cart_id, notes=notes, pricing=PricingPolicy.LIVE)

    def _place_order(self, customer, cart_id, notes, pricing, payment, initial_status) -> Order:
        """Checkout steps; must run inside transaction.atomic. Raises CheckoutAborted."""
        try:
            # Concurrent checkouts of the same cart serialize on this lock
            cart = Cart.objects.select_for_update().get(id=cart_id)
        except (Cart.DoesNotExist, ValueError, ValidationError):
            raise CheckoutAborted(service_err(ErrorCodes.CART_NOT_FOUND, "Cart not found."))

        try:
            require_ownership(customer, cart.customer_id)
        except PermissionDenied:
            raise CheckoutAborted(service_err(ErrorCodes.UNAUTHORIZED, "You do not own this cart."))

        cart_items = list(cart.items.select_related("product").order_by("product_id"))
        if not cart_items:
            raise CheckoutAborted(service_err(ErrorCodes.CART_EMPTY, "Cart is empty."))

        lines = []
        total_amount = Decimal("0.00")
        for item in cart_items:
            unit_price = self.pricing_service.unit_price(item, pricing)
            subtotal = self.pricing_service.line_subtotal(unit_price, item.quantity)
            lines.append((item, unit_price, subtotal))
            total_amount += subtotal

        reserved, failed = self.inventory_service.reserve_many((item.product_id, item.quantity) for item in cart_items)
        if not reserved:
            product_name = next(item.product.name for item in cart_items if item.product_id == failed[0])
            if not Product.objects.filter(id=failed[0], is_active=True).exists():
                raise CheckoutAborted(
                    service_err(ErrorCodes.PRODUCT_NOT_FOUND, f"{product_name} is no longer available.")
                )
            raise CheckoutAborted(
                service_err(ErrorCodes.INSUFFICIENT_STOCK, f"Not enough stock available for {product_name}.")
            )

        if initial_status is None:
            initial_status = OrderStatus.PROCESSING if payment is not None else OrderStatus.PENDING

        order = Order.objects.create(
            customer=customer,
            status=initial_status,
            total_amount=total_amount,
            order_notes=notes or "",
            payment=payment,
        )

        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=item.product_id,
                    product_name=item.product.name,
                    product_sku=item.product.sku,
                    unit_price=unit_price,
                    quantity=item.quantity,
                    subtotal=subtotal,
                    selected_size=item.selected_size,
                    selected_color=item.selected_color,
                )
                for item, unit_price, subtotal in lines
            ]
        )

        cart.items.all().delete()
        cart.touch()

        return order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @BaseService.log_performance
    def get_order(self, order_id, user, role: Optional[Role] = None) -> ServiceResult[Order]:
        """
        Get order details (owner or admin).

        Example:
            >>> result = order_service.get_order(order_id, user, Role.CUSTOMER)
            >>> if result.ok:
            ...     order = result.value
        """
        role = role or role_of(user)

        try:
            order = Order.objects.select_related("customer", "payment").prefetch_related("items").get(id=order_id)
        except (Order.DoesNotExist, ValueError, ValidationError):
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found.")
        except Exception as e:
            self.logger.error(f"Error getting order {order_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

        try:
            require_ownership(user, order.customer_id, role=role, allow_admin=True)
        except PermissionDenied:
            return service_err(ErrorCodes.UNAUTHORIZED, "You do not have access to this order.")

        self.logger.info(f"Retrieved order {order_id} for user {getattr(user, 'id', None)}")

        return service_ok(order)

    @BaseService.log_performance
    def list_customer_orders(self, user) -> ServiceResult[List[Order]]:
        """
        All orders of the requesting customer, newest first.
        """
        customer = resolve_customer(user)
        if customer is None:
            return service_err(ErrorCodes.CUSTOMER_NOT_FOUND, "Customer not found.")

        try:
            orders = list(Order.objects.filter(customer=customer).prefetch_related("items").order_by("-order_date"))

            self.logger.info(f"Listed orders for user {customer.id}: {len(orders)} total")

            return service_ok(orders)

        except Exception as e:
            self.logger.error(f"Error listing orders for user {customer.id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    @BaseService.log_performance
    def list_orders(
        self,
        page: int = 1,
        page_size: Optional[int] = None,
        status: Optional[str] = None,
        user=None,
        role: Optional[Role] = None,
    ) -> ServiceResult[PagedResult]:
        """
        Paginated list of all orders (admin only), newest first.

        Args:
            page: One-based page number
            page_size: Items per page, capped at ORDERS_MAX_PAGE_SIZE
            status: Optional status filter
            user: Requesting user
            role: Caller's role; resolved from the user when omitted

        Returns:
            ServiceResult with a PagedResult of Order instances
        """
        role = role or role_of(user)
        if role != Role.ADMIN or resolve_admin(user) is None:
            return service_err(ErrorCodes.UNAUTHORIZED, "Only administrators can list all orders.")

        if page_size is None:
            page_size = getattr(settings, "ORDERS_DEFAULT_PAGE_SIZE", 10)

        if page < 1 or page_size < 1:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Page and page size must be positive.")

        page_size = min(page_size, getattr(settings, "ORDERS_MAX_PAGE_SIZE", 100))

        if status and status not in OrderStatus.values:
            return service_err(ErrorCodes.INVALID_STATUS, f"Unknown order status '{status}'.")

        try:
            queryset = Order.objects.all()
            if status:
                queryset = queryset.filter(status=status)
            queryset = queryset.order_by("-order_date")

            offset = (page - 1) * page_size
            total_count = queryset.count()
            orders = list(queryset.select_related("customer").prefetch_related("items")[offset : offset + page_size])

            paged = PagedResult(items=orders, page_index=page - 1, page_size=page_size, total_count=total_count)

            self.logger.info(f"Listed orders page {page} (size {page_size}): {total_count} total")

            return service_ok(paged)

        except Exception as e:
            self.logger.error(f"Error listing orders page {page}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @BaseService.log_performance
    def update_status(self, order_id, new_status: str, user, role: Optional[Role] = None) -> ServiceResult[Order]:
        """
        Move an order to a new status (admin only).

        Transitions follow ALLOWED_STATUS_TRANSITIONS; cancelling returns the
        ordered quantities to stock.

        Example:
            >>> result = order_service.update_status(order_id, OrderStatus.SHIPPED, admin, Role.ADMIN)
        """
        role = role or role_of(user)
        if role != Role.ADMIN or resolve_admin(user) is None:
            return service_err(ErrorCodes.UNAUTHORIZED, "Only administrators can change order status.")

        if new_status not in OrderStatus.values:
            return service_err(ErrorCodes.INVALID_STATUS, f"Unknown order status '{new_status}'.")

        try:
            with transaction.atomic():
                try:
                    order = Order.objects.select_for_update().get(id=order_id)
                except (Order.DoesNotExist, ValueError, ValidationError):
                    raise CheckoutAborted(service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found."))

                old_status = order.status
                if not order.can_transition_to(new_status):
                    raise CheckoutAborted(
                        service_err(
                            ErrorCodes.INVALID_ORDER_STATE,
                            f"Cannot change order status from '{old_status}' to '{new_status}'.",
                        )
                    )

                if new_status == OrderStatus.CANCELLED:
                    self._restock(order)

                order.status = new_status
                order.save(update_fields=["status", "updated_at"])

        except CheckoutAborted as e:
            return e.result
        except DatabaseError as e:
            self.logger.error(f"Database error updating order {order_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.PERSISTENCE_ERROR, "Could not update the order.")
        except Exception as e:
            self.logger.error(f"Error updating order {order_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

        order_status_transitions_total.labels(from_status=old_status, to_status=new_status).inc()
        self.logger.info(f"Order {order_id} status {old_status} -> {new_status} by user {user.id}")

        return service_ok(order)

    def _restock(self, order: Order) -> None:
        for item in order.items.all():
            release_result = self.inventory_service.release_stock(
                product_id=item.product_id, quantity=item.quantity, reason=f"order_cancelled_{order.id}"
            )

            if release_result.ok:
                continue
            if release_result.error == ErrorCodes.PRODUCT_NOT_FOUND:
                # Product removed from the catalog since the order was placed
                self.logger.warning(f"Skipping restock of missing product {item.product_id} for order {order.id}")
                continue
            raise CheckoutAborted(release_result)
