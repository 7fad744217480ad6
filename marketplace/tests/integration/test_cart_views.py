import uuid
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from infrastructure.container import container
from marketplace.models import CartItem
from marketplace.tests.factories import AdminFactory, CartFactory, CartItemFactory, ProductFactory, UserFactory


class CartViewIntegrationTest(TestCase):
    def setUp(self):
        container.reset()
        self.client = APIClient()

        self.user1 = UserFactory()
        self.user2 = UserFactory()

        self.product1 = ProductFactory(stock_quantity=10, price=Decimal("10.00"))
        self.product2 = ProductFactory(stock_quantity=5, price=Decimal("20.00"))

        # URLs for the CartViewSet actions, using app_name and basename
        self.cart_list_url = reverse("marketplace:cart-list")
        self.cart_add_item_url = reverse("marketplace:cart-add-item")
        self.cart_clear_url = reverse("marketplace:cart-clear")
        self.cart_count_url = reverse("marketplace:cart-count")
        self.cart_validate_url = reverse("marketplace:cart-validate")

    def _item_url(self, item_id, suffix=""):
        name = "marketplace:cart-item-detail" if not suffix else f"marketplace:cart-item-{suffix}"
        return reverse(name, kwargs={"item_id": item_id})

    def _add(self, product, quantity):
        return self.client.post(self.cart_add_item_url, {"product_id": str(product.id), "quantity": quantity})

    def test_requires_authentication(self):
        response = self.client.get(self.cart_list_url)
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_list_empty_cart(self):
        self.client.force_authenticate(user=self.user1)
        response = self.client.get(self.cart_list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["items_count"], 0)
        self.assertEqual(Decimal(response.data["total_price"]), Decimal("0.00"))

    def test_admin_has_no_cart(self):
        self.client.force_authenticate(user=AdminFactory())
        response = self.client.get(self.cart_list_url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "customer_not_found")

    def test_add_item_to_cart(self):
        self.client.force_authenticate(user=self.user1)
        response = self._add(self.product1, 2)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["items_count"], 1)
        self.assertEqual(response.data["items"][0]["product_id"], str(self.product1.id))
        self.assertEqual(response.data["items"][0]["quantity"], 2)
        self.assertEqual(Decimal(response.data["total_price"]), Decimal("20.00"))

    def test_add_item_insufficient_stock(self):
        self.client.force_authenticate(user=self.user1)
        response = self._add(self.product2, 100)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "insufficient_stock")
        self.assertEqual(response.data["detail"], "Not enough stock available. Only 5 items left.")

    def test_add_item_product_not_found(self):
        self.client.force_authenticate(user=self.user1)
        response = self.client.post(self.cart_add_item_url, {"product_id": str(uuid.uuid4()), "quantity": 1})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "product_not_found")

    def test_add_item_invalid_quantity(self):
        self.client.force_authenticate(user=self.user1)
        response = self._add(self.product1, 0)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "invalid_quantity")

    def test_add_item_malformed_request(self):
        self.client.force_authenticate(user=self.user1)
        response = self.client.post(self.cart_add_item_url, {"product_id": "nope"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "validation_error")
        self.assertIn("product_id", response.data["errors"])

    def test_update_item_quantity(self):
        self.client.force_authenticate(user=self.user1)
        self._add(self.product1, 2)
        item = CartItem.objects.get(cart__customer=self.user1)

        response = self.client.patch(self._item_url(item.id), {"quantity": 5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["items"][0]["quantity"], 5)
        self.assertEqual(Decimal(response.data["total_price"]), Decimal("50.00"))

    def test_update_item_quantity_zero_removes(self):
        self.client.force_authenticate(user=self.user1)
        self._add(self.product1, 2)
        item = CartItem.objects.get(cart__customer=self.user1)

        response = self.client.patch(self._item_url(item.id), {"quantity": 0})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["items_count"], 0)

    def test_remove_item(self):
        self.client.force_authenticate(user=self.user1)
        self._add(self.product1, 1)
        item = CartItem.objects.get(cart__customer=self.user1)

        response = self.client.delete(self._item_url(item.id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(CartItem.objects.filter(id=item.id).exists())

    def test_increase_and_decrease(self):
        self.client.force_authenticate(user=self.user1)
        self._add(self.product2, 4)
        item = CartItem.objects.get(cart__customer=self.user1)

        response = self.client.post(self._item_url(item.id, "increase"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["items"][0]["quantity"], 5)

        response = self.client.post(self._item_url(item.id, "increase"))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Cannot add more items. Stock limit reached.")

        response = self.client.post(self._item_url(item.id, "decrease"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["items"][0]["quantity"], 4)

    def test_foreign_item_is_not_found(self):
        item = CartItemFactory(cart=CartFactory(customer=self.user2), product=self.product1, quantity=1)
        self.client.force_authenticate(user=self.user1)

        response = self.client.delete(self._item_url(item.id))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "cart_item_not_found")
        self.assertTrue(CartItem.objects.filter(id=item.id).exists())

    def test_clear_cart(self):
        self.client.force_authenticate(user=self.user1)
        self._add(self.product1, 1)
        self._add(self.product2, 1)

        response = self.client.delete(self.cart_clear_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"success": True})
        self.assertFalse(CartItem.objects.filter(cart__customer=self.user1).exists())

    def test_count_and_contains(self):
        self.client.force_authenticate(user=self.user1)
        self._add(self.product1, 3)

        response = self.client.get(self.cart_count_url)
        self.assertEqual(response.data["count"], 3)

        contains_url = reverse("marketplace:cart-contains", kwargs={"product_id": self.product1.id})
        self.assertTrue(self.client.get(contains_url).data["in_cart"])

        contains_url = reverse("marketplace:cart-contains", kwargs={"product_id": self.product2.id})
        self.assertFalse(self.client.get(contains_url).data["in_cart"])

    def test_validate(self):
        self.client.force_authenticate(user=self.user1)
        self._add(self.product2, 3)
        self.product2.stock_quantity = 1
        self.product2.save()

        response = self.client.get(self.cart_validate_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["valid"])
        self.assertEqual(response.data["issues"][0]["issue"], "insufficient_stock")
