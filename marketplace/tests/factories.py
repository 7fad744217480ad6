import random
import uuid
from decimal import Decimal

import factory
from django.contrib.auth import get_user_model

from marketplace.cart.domain.services.pricing_service import effective_price
from marketplace.models import Cart, CartItem, Order, OrderItem, OrderStatus, Product
from payment_system.models import Payment

User = get_user_model()


class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = User

    id = factory.LazyFunction(uuid.uuid4)
    username = factory.Sequence(lambda n: f"user_{n}")
    email = factory.Sequence(lambda n: f"user_{n}@example.com")
    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")
    password = factory.PostGenerationMethodCall("set_password", "defaultpassword")
    is_active = True
    role = "customer"


class AdminFactory(UserFactory):
    role = "admin"
    is_staff = True
    username = factory.Sequence(lambda n: f"admin_{n}")
    email = factory.Sequence(lambda n: f"admin_{n}@example.com")


class ProductFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Product

    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Sequence(lambda n: f"Product {n}")
    sku = factory.Sequence(lambda n: f"SKU-{n:05d}")
    description = factory.Faker("paragraph", nb_sentences=3)
    price = factory.LazyFunction(lambda: Decimal(f"{random.randint(10, 500)}.00"))
    stock_quantity = 10
    is_active = True


class ProductOnSaleFactory(ProductFactory):
    is_on_sale = True
    discount_price = factory.LazyAttribute(lambda o: (o.price * Decimal("0.80")).quantize(Decimal("0.01")))


class ProductOutOfStockFactory(ProductFactory):
    stock_quantity = 0


class CartFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Cart

    customer = factory.SubFactory(UserFactory)


class CartItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = CartItem

    cart = factory.SubFactory(CartFactory)
    product = factory.SubFactory(ProductFactory)
    quantity = factory.Faker("random_int", min=1, max=5)

    @factory.lazy_attribute
    def price_at_addition(self):
        return effective_price(self.product)


class PaymentFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Payment

    id = factory.LazyFunction(uuid.uuid4)
    customer = factory.SubFactory(UserFactory)
    amount = factory.LazyFunction(lambda: Decimal(f"{random.randint(50, 500)}.00"))
    currency = "usd"
    external_intent_id = factory.Sequence(lambda n: f"pi_test_{n}")
    status = Payment.STATUS_PENDING


class OrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Order

    customer = factory.SubFactory(UserFactory)
    status = OrderStatus.PENDING
    total_amount = factory.LazyFunction(lambda: Decimal(f"{random.randint(50, 500)}.00"))


class OrderItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = OrderItem

    class Params:
        product = factory.SubFactory(ProductFactory)

    order = factory.SubFactory(OrderFactory)
    product_id = factory.LazyAttribute(lambda o: o.product.id)
    product_name = factory.LazyAttribute(lambda o: o.product.name)
    product_sku = factory.LazyAttribute(lambda o: o.product.sku)
    quantity = factory.Faker("random_int", min=1, max=3)

    @factory.lazy_attribute
    def unit_price(self):
        return self.product.price

    @factory.lazy_attribute
    def subtotal(self):
        return self.unit_price * self.quantity
