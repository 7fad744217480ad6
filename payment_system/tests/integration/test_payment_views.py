from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from infrastructure.container import container
from infrastructure.payments import PaymentStatus
from marketplace.models import Order
from marketplace.tests.factories import CartFactory, CartItemFactory, ProductFactory, UserFactory
from payment_system.models import Payment


class PaymentViewIntegrationTest(TestCase):
    def setUp(self):
        container.reset()
        self.provider = container.payment("mock")
        self.client = APIClient()

        self.customer = UserFactory()
        self.product = ProductFactory(price=Decimal("30.00"), stock_quantity=3)
        self.cart = CartFactory(customer=self.customer)
        CartItemFactory(cart=self.cart, product=self.product, quantity=1, price_at_addition=Decimal("30.00"))

        self.intents_url = reverse("payment_system:create_payment_intent")
        self.confirm_url = reverse("payment_system:confirm_payment")

    def tearDown(self):
        container.reset()

    def _create_intent(self):
        response = self.client.post(self.intents_url)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def test_create_intent(self):
        self.client.force_authenticate(user=self.customer)

        data = self._create_intent()

        self.assertEqual(Decimal(data["amount"]), Decimal("30.00"))
        self.assertEqual(data["currency"], "usd")
        self.assertTrue(data["payment_intent_id"].startswith("pi_mock_"))
        self.assertTrue(Payment.objects.filter(external_intent_id=data["payment_intent_id"]).exists())

    def test_create_intent_empty_cart(self):
        self.client.force_authenticate(user=UserFactory())

        response = self.client.post(self.intents_url)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "cart_empty")

    def test_confirm_flow(self):
        self.client.force_authenticate(user=self.customer)
        data = self._create_intent()
        self.provider.set_status(data["payment_intent_id"], PaymentStatus.SUCCEEDED)

        response = self.client.post(self.confirm_url, {"payment_intent_id": data["payment_intent_id"]}, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["created"])
        order = Order.objects.get(id=response.data["order_id"])
        self.assertEqual(order.status, "processing")

        response = self.client.post(self.confirm_url, {"payment_intent_id": data["payment_intent_id"]}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["created"])
        self.assertEqual(response.data["order_id"], str(order.id))

    def test_confirm_unpaid_intent(self):
        self.client.force_authenticate(user=self.customer)
        data = self._create_intent()

        response = self.client.post(self.confirm_url, {"payment_intent_id": data["payment_intent_id"]}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "payment_not_successful")

    def test_confirm_unknown_intent(self):
        self.client.force_authenticate(user=self.customer)

        response = self.client.post(self.confirm_url, {"payment_intent_id": "pi_nope"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "payment_not_found")

    def test_confirm_requires_intent_id(self):
        self.client.force_authenticate(user=self.customer)

        response = self.client.post(self.confirm_url, {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "validation_error")

    def test_confirm_foreign_payment(self):
        self.client.force_authenticate(user=self.customer)
        data = self._create_intent()
        self.provider.set_status(data["payment_intent_id"], PaymentStatus.SUCCEEDED)

        self.client.force_authenticate(user=UserFactory())
        response = self.client.post(self.confirm_url, {"payment_intent_id": data["payment_intent_id"]}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
