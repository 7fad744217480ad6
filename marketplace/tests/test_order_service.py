import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.utils import timezone

from marketplace.cart.domain.services.pricing_service import PricingPolicy
from marketplace.models import Cart, CartItem, Order, OrderStatus, Product
from marketplace.services.base import ErrorCodes
from marketplace.services.order_service import OrderService
from marketplace.tests.factories import (
    AdminFactory,
    CartFactory,
    CartItemFactory,
    OrderFactory,
    OrderItemFactory,
    PaymentFactory,
    ProductFactory,
    UserFactory,
)
from utils.rbac import Role


def _age_orders(orders):
    """Give orders distinct order dates, oldest first."""
    base = timezone.now() - timedelta(days=1)
    for index, order in enumerate(orders):
        Order.all_objects.filter(id=order.id).update(order_date=base + timedelta(minutes=index))


class OrderCheckoutTest(TestCase):
    def setUp(self):
        self.service = OrderService()
        self.customer = UserFactory()
        self.cart = CartFactory(customer=self.customer)
        self.mug = ProductFactory(name="Mug", price=Decimal("12.50"), stock_quantity=5)
        self.lamp = ProductFactory(name="Lamp", price=Decimal("40.00"), stock_quantity=2)
        CartItemFactory(cart=self.cart, product=self.mug, quantity=2, price_at_addition=Decimal("12.50"))
        CartItemFactory(cart=self.cart, product=self.lamp, quantity=1, price_at_addition=Decimal("40.00"))

    def test_create_order_from_cart(self):
        result = self.service.create_order_from_cart(self.customer, self.cart.id, notes="Leave at door")

        self.assertTrue(result.ok)
        order = result.value
        self.assertEqual(order.customer, self.customer)
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.total_amount, Decimal("65.00"))
        self.assertEqual(order.order_notes, "Leave at door")

        items = {item.product_name: item for item in order.items.all()}
        self.assertEqual(items["Mug"].quantity, 2)
        self.assertEqual(items["Mug"].unit_price, Decimal("12.50"))
        self.assertEqual(items["Mug"].subtotal, Decimal("25.00"))
        self.assertEqual(items["Lamp"].product_id, self.lamp.id)
        self.assertEqual(items["Lamp"].product_sku, self.lamp.sku)
        self.assertEqual(sum(i.subtotal for i in items.values()), order.total_amount)

    def test_checkout_decrements_stock_and_empties_cart(self):
        self.service.create_order_from_cart(self.customer, self.cart.id)

        self.mug.refresh_from_db()
        self.lamp.refresh_from_db()
        self.assertEqual(self.mug.stock_quantity, 3)
        self.assertEqual(self.lamp.stock_quantity, 1)
        self.assertFalse(CartItem.objects.filter(cart=self.cart).exists())
        self.assertTrue(Cart.objects.filter(id=self.cart.id).exists())

    def test_live_pricing_uses_current_price(self):
        self.mug.is_on_sale = True
        self.mug.discount_price = Decimal("10.00")
        self.mug.save()

        result = self.service.create_order_from_cart(self.customer, self.cart.id, pricing=PricingPolicy.LIVE)

        self.assertEqual(result.value.total_amount, Decimal("60.00"))

    def test_snapshot_pricing_uses_price_at_addition(self):
        self.mug.price = Decimal("99.00")
        self.mug.save()

        result = self.service.create_order_from_cart(self.customer, self.cart.id, pricing=PricingPolicy.SNAPSHOT)

        self.assertEqual(result.value.total_amount, Decimal("65.00"))

    def test_order_lines_survive_product_changes(self):
        order = self.service.create_order_from_cart(self.customer, self.cart.id).value

        self.mug.name = "Renamed Mug"
        self.mug.price = Decimal("1.00")
        self.mug.save()

        line = order.items.get(product_id=self.mug.id)
        self.assertEqual(line.product_name, "Mug")
        self.assertEqual(line.unit_price, Decimal("12.50"))

    def test_insufficient_stock_rolls_back_everything(self):
        self.lamp.stock_quantity = 0
        self.lamp.save()

        result = self.service.create_order_from_cart(self.customer, self.cart.id)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.INSUFFICIENT_STOCK)
        self.assertEqual(result.error_detail, "Not enough stock available for Lamp.")
        self.mug.refresh_from_db()
        self.assertEqual(self.mug.stock_quantity, 5)
        self.assertEqual(CartItem.objects.filter(cart=self.cart).count(), 2)
        self.assertFalse(Order.objects.exists())

    def test_deleted_product_in_cart_blocks_checkout(self):
        self.mug.is_deleted = True
        self.mug.save()

        result = self.service.create_order_from_cart(self.customer, self.cart.id)

        self.assertEqual(result.error, ErrorCodes.PRODUCT_NOT_FOUND)
        self.assertEqual(result.error_detail, "Mug is no longer available.")
        self.assertFalse(Order.objects.exists())
        self.lamp.refresh_from_db()
        self.assertEqual(self.lamp.stock_quantity, 2)

    def test_deactivated_product_in_cart_blocks_checkout(self):
        self.lamp.is_active = False
        self.lamp.save()

        result = self.service.create_order_from_cart(self.customer, self.cart.id)

        self.assertEqual(result.error, ErrorCodes.PRODUCT_NOT_FOUND)
        self.assertEqual(result.error_detail, "Lamp is no longer available.")
        self.assertEqual(CartItem.objects.filter(cart=self.cart).count(), 2)

    def test_two_line_checkout_totals(self):
        customer = UserFactory()
        cart = CartFactory(customer=customer)
        product_a = ProductFactory(name="A", price=Decimal("10.00"), stock_quantity=5)
        product_b = ProductFactory(name="B", price=Decimal("5.00"), stock_quantity=5)
        CartItemFactory(cart=cart, product=product_a, quantity=2, price_at_addition=Decimal("10.00"))
        CartItemFactory(cart=cart, product=product_b, quantity=1, price_at_addition=Decimal("5.00"))

        result = self.service.create_order_from_cart(customer, cart.id)

        self.assertTrue(result.ok)
        self.assertEqual(result.value.total_amount, Decimal("25.00"))
        subtotals = {item.product_name: item.subtotal for item in result.value.items.all()}
        self.assertEqual(subtotals, {"A": Decimal("20.00"), "B": Decimal("5.00")})
        product_a.refresh_from_db()
        product_b.refresh_from_db()
        self.assertEqual((product_a.stock_quantity, product_b.stock_quantity), (3, 4))
        self.assertFalse(CartItem.objects.filter(cart=cart).exists())

    def test_empty_cart(self):
        empty_cart = CartFactory(customer=UserFactory())

        result = self.service.create_order_from_cart(empty_cart.customer, empty_cart.id)

        self.assertEqual(result.error, ErrorCodes.CART_EMPTY)
        self.assertEqual(result.error_detail, "Cart is empty.")

    def test_missing_cart(self):
        self.assertEqual(self.service.create_order_from_cart(self.customer, 999999).error, ErrorCodes.CART_NOT_FOUND)

    def test_cart_of_another_customer(self):
        result = self.service.create_order_from_cart(UserFactory(), self.cart.id)

        self.assertEqual(result.error, ErrorCodes.UNAUTHORIZED)
        self.assertEqual(CartItem.objects.filter(cart=self.cart).count(), 2)

    def test_admin_cannot_check_out(self):
        self.assertEqual(
            self.service.create_order_from_cart(AdminFactory(), self.cart.id).error, ErrorCodes.CUSTOMER_NOT_FOUND
        )

    def test_second_checkout_of_same_cart_finds_it_empty(self):
        self.assertTrue(self.service.create_order_from_cart(self.customer, self.cart.id).ok)

        result = self.service.create_order_from_cart(self.customer, self.cart.id)

        self.assertEqual(result.error, ErrorCodes.CART_EMPTY)
        self.assertEqual(Order.objects.count(), 1)

    def test_payment_linked_order_starts_processing(self):
        payment = PaymentFactory(customer=self.customer)

        result = self.service.create_order_from_cart(self.customer, self.cart.id, payment=payment)

        self.assertEqual(result.value.status, OrderStatus.PROCESSING)
        self.assertEqual(result.value.payment, payment)

    def test_database_error_is_persistence_error(self):
        with patch.object(Order.objects, "create", side_effect=DatabaseError("disk full")):
            result = self.service.create_order_from_cart(self.customer, self.cart.id)

        self.assertEqual(result.error, ErrorCodes.PERSISTENCE_ERROR)
        self.mug.refresh_from_db()
        self.assertEqual(self.mug.stock_quantity, 5)
        self.assertEqual(CartItem.objects.filter(cart=self.cart).count(), 2)

    def test_create_order_uses_own_cart(self):
        result = self.service.create_order(self.customer, notes="gift")

        self.assertTrue(result.ok)
        self.assertEqual(result.value.order_notes, "gift")

    def test_create_order_without_cart(self):
        self.assertEqual(self.service.create_order(UserFactory()).error, ErrorCodes.CART_EMPTY)


class OrderQueryTest(TestCase):
    def setUp(self):
        self.service = OrderService()
        self.customer = UserFactory()
        self.admin = AdminFactory()
        self.order = OrderFactory(customer=self.customer)
        OrderItemFactory(order=self.order)

    def test_owner_can_read_order(self):
        result = self.service.get_order(self.order.id, self.customer)

        self.assertTrue(result.ok)
        self.assertEqual(result.value.id, self.order.id)

    def test_admin_can_read_any_order(self):
        self.assertTrue(self.service.get_order(self.order.id, self.admin).ok)

    def test_other_customer_cannot_read_order(self):
        result = self.service.get_order(self.order.id, UserFactory())
        self.assertEqual(result.error, ErrorCodes.UNAUTHORIZED)

    def test_admin_acting_as_customer_cannot_read_foreign_order(self):
        result = self.service.get_order(self.order.id, self.admin, role=Role.CUSTOMER)
        self.assertEqual(result.error, ErrorCodes.UNAUTHORIZED)

    def test_missing_order(self):
        self.assertEqual(self.service.get_order(uuid.uuid4(), self.customer).error, ErrorCodes.ORDER_NOT_FOUND)
        self.assertEqual(self.service.get_order("not-a-uuid", self.customer).error, ErrorCodes.ORDER_NOT_FOUND)

    def test_list_customer_orders(self):
        newer = OrderFactory(customer=self.customer)
        _age_orders([self.order, newer])
        OrderFactory(customer=UserFactory())

        result = self.service.list_customer_orders(self.customer)

        self.assertTrue(result.ok)
        self.assertEqual([o.id for o in result.value], [newer.id, self.order.id])


@override_settings(ORDERS_DEFAULT_PAGE_SIZE=2, ORDERS_MAX_PAGE_SIZE=3)
class OrderAdminListTest(TestCase):
    def setUp(self):
        self.service = OrderService()
        self.admin = AdminFactory()
        self.orders = [OrderFactory() for _ in range(5)]
        _age_orders(self.orders)
        Order.objects.filter(id=self.orders[0].id).update(status=OrderStatus.SHIPPED)

    def test_first_page(self):
        result = self.service.list_orders(page=1, user=self.admin)

        self.assertTrue(result.ok)
        paged = result.value
        self.assertEqual(paged.page_index, 0)
        self.assertEqual(paged.page_size, 2)
        self.assertEqual(paged.total_count, 5)
        self.assertEqual(paged.total_pages, 3)
        self.assertFalse(paged.has_previous_page)
        self.assertTrue(paged.has_next_page)
        # Newest first
        self.assertEqual([o.id for o in paged.items], [self.orders[4].id, self.orders[3].id])

    def test_last_page(self):
        paged = self.service.list_orders(page=3, user=self.admin).value

        self.assertEqual(len(paged.items), 1)
        self.assertTrue(paged.has_previous_page)
        self.assertFalse(paged.has_next_page)

    def test_page_beyond_end_is_empty(self):
        paged = self.service.list_orders(page=10, user=self.admin).value

        self.assertEqual(paged.items, [])
        self.assertEqual(paged.total_count, 5)

    def test_page_size_is_capped(self):
        paged = self.service.list_orders(page=1, page_size=50, user=self.admin).value
        self.assertEqual(paged.page_size, 3)

    def test_status_filter(self):
        paged = self.service.list_orders(page=1, status="shipped", user=self.admin).value

        self.assertEqual(paged.total_count, 1)
        self.assertEqual(paged.items[0].id, self.orders[0].id)

    def test_invalid_arguments(self):
        self.assertEqual(self.service.list_orders(page=0, user=self.admin).error, ErrorCodes.VALIDATION_ERROR)
        self.assertEqual(
            self.service.list_orders(page=1, page_size=0, user=self.admin).error, ErrorCodes.VALIDATION_ERROR
        )
        self.assertEqual(self.service.list_orders(page=1, status="lost", user=self.admin).error, ErrorCodes.INVALID_STATUS)

    def test_customers_cannot_list_all_orders(self):
        self.assertEqual(self.service.list_orders(page=1, user=UserFactory()).error, ErrorCodes.UNAUTHORIZED)
        self.assertEqual(
            self.service.list_orders(page=1, user=self.admin, role=Role.CUSTOMER).error, ErrorCodes.UNAUTHORIZED
        )


class OrderStatusTest(TestCase):
    def setUp(self):
        self.service = OrderService()
        self.admin = AdminFactory()
        self.product = ProductFactory(stock_quantity=3)
        self.order = OrderFactory(status=OrderStatus.PENDING)
        OrderItemFactory(order=self.order, product=self.product, quantity=2)

    def test_valid_transitions(self):
        for new_status in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            result = self.service.update_status(self.order.id, new_status, self.admin)
            self.assertTrue(result.ok, result.error)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.DELIVERED)

    def test_invalid_transition(self):
        result = self.service.update_status(self.order.id, OrderStatus.DELIVERED, self.admin)

        self.assertEqual(result.error, ErrorCodes.INVALID_ORDER_STATE)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PENDING)

    def test_terminal_statuses_cannot_change(self):
        self.service.update_status(self.order.id, OrderStatus.CANCELLED, self.admin)

        result = self.service.update_status(self.order.id, OrderStatus.PROCESSING, self.admin)

        self.assertEqual(result.error, ErrorCodes.INVALID_ORDER_STATE)

    def test_cancel_restocks(self):
        result = self.service.update_status(self.order.id, OrderStatus.CANCELLED, self.admin)

        self.assertTrue(result.ok)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 5)

    def test_cancel_skips_products_removed_from_catalog(self):
        Product.all_objects.filter(id=self.product.id).delete()

        result = self.service.update_status(self.order.id, OrderStatus.CANCELLED, self.admin)

        self.assertTrue(result.ok)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.CANCELLED)

    def test_unknown_status(self):
        self.assertEqual(self.service.update_status(self.order.id, "lost", self.admin).error, ErrorCodes.INVALID_STATUS)

    def test_missing_order(self):
        result = self.service.update_status(uuid.uuid4(), OrderStatus.PROCESSING, self.admin)
        self.assertEqual(result.error, ErrorCodes.ORDER_NOT_FOUND)

    def test_customer_cannot_change_status(self):
        result = self.service.update_status(self.order.id, OrderStatus.CANCELLED, self.order.customer)

        self.assertEqual(result.error, ErrorCodes.UNAUTHORIZED)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 3)
