from django.test import TestCase

from marketplace.cart.domain.services.inventory_service import InventoryService
from marketplace.models import Product
from marketplace.services.base import ErrorCodes
from marketplace.tests.factories import ProductFactory


class StockReservationTest(TestCase):
    def setUp(self):
        self.service = InventoryService()
        self.product = ProductFactory(stock_quantity=5)

    def test_reserve_decrements(self):
        self.assertTrue(self.service.reserve_stock(self.product.id, 2))

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 3)

    def test_reserve_exact_remaining_stock(self):
        self.assertTrue(self.service.reserve_stock(self.product.id, 5))

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 0)

    def test_reserve_more_than_available_leaves_stock_untouched(self):
        self.assertFalse(self.service.reserve_stock(self.product.id, 6))

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 5)

    def test_reserve_inactive_or_deleted_product_fails(self):
        inactive = ProductFactory(stock_quantity=5, is_active=False)
        deleted = ProductFactory(stock_quantity=5, is_deleted=True)

        self.assertFalse(self.service.reserve_stock(inactive.id, 1))
        self.assertFalse(self.service.reserve_stock(deleted.id, 1))

    def test_sequential_reservations_never_oversell(self):
        results = [self.service.reserve_stock(self.product.id, 2) for _ in range(3)]

        self.assertEqual(results, [True, True, False])
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 1)

    def test_release_stock(self):
        result = self.service.release_stock(self.product.id, 3)

        self.assertTrue(result.ok)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 8)

    def test_release_stock_of_soft_deleted_product(self):
        self.product.is_deleted = True
        self.product.save()

        result = self.service.release_stock(self.product.id, 1)

        self.assertTrue(result.ok)
        self.assertEqual(Product.all_objects.get(id=self.product.id).stock_quantity, 6)

    def test_release_stock_missing_product(self):
        self.product.delete()

        result = self.service.release_stock(self.product.id, 1)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorCodes.PRODUCT_NOT_FOUND)

    def test_get_stock_level(self):
        self.assertEqual(self.service.get_stock_level(self.product.id).value, 5)

    def test_soft_deleted_products_hidden_from_default_manager(self):
        self.product.is_deleted = True
        self.product.save()

        self.assertFalse(Product.objects.filter(id=self.product.id).exists())
        self.assertTrue(Product.all_objects.filter(id=self.product.id).exists())
        self.assertEqual(self.service.get_stock_level(self.product.id).error, ErrorCodes.PRODUCT_NOT_FOUND)
