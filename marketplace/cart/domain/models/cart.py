from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import models

from marketplace.catalog.domain.models.catalog import Product
from marketplace.catalog.domain.models.managers import SoftDeleteManager


User = get_user_model()


class Cart(models.Model):
    customer = models.ForeignKey(User, on_delete=models.CASCADE, related_name="carts")
    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)
    is_deleted = models.BooleanField(default=False)

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        verbose_name = "Shopping Cart"
        verbose_name_plural = "Shopping Carts"
        app_label = "marketplace"
        constraints = [
            # One live cart per customer
            models.UniqueConstraint(
                fields=["customer"],
                condition=models.Q(is_deleted=False),
                name="marketplace_cart_one_live_per_customer",
            ),
        ]

    @classmethod
    def get_or_create_cart(cls, customer):
        """Get existing cart or create a new one for the customer."""
        cart, _ = cls.objects.get_or_create(customer=customer)
        return cart

    def touch(self):
        self.save(update_fields=["modified_at"])

    def __str__(self):
        return f"Cart for {self.customer.email}"


class CartItem(models.Model):
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="cart_items")
    quantity = models.PositiveIntegerField(default=1)
    # Price snapshot taken when the product first entered the cart
    price_at_addition = models.DecimalField(max_digits=10, decimal_places=2)
    selected_size = models.CharField(max_length=50, blank=True)
    selected_color = models.CharField(max_length=50, blank=True)
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ["cart", "product"]
        ordering = ["added_at"]
        app_label = "marketplace"

    @property
    def total_price(self) -> Decimal:
        return self.quantity * self.price_at_addition

    def __str__(self):
        return f"{self.quantity}x {self.product.name} in {self.cart.customer.email}'s cart"
