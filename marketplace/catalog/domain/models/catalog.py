import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from .managers import SoftDeleteManager


class Product(models.Model):
    # Basic Information
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    sku = models.CharField(max_length=64, blank=True)
    description = models.TextField(blank=True)

    # Pricing and Inventory
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0.00"))])
    discount_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(Decimal("0.00"))]
    )
    is_on_sale = models.BooleanField(default=False)
    stock_quantity = models.PositiveIntegerField(default=0)

    # Status and Visibility
    is_active = models.BooleanField(default=True)
    is_deleted = models.BooleanField(default=False)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        constraints = [
            models.UniqueConstraint(
                fields=["sku"],
                condition=~models.Q(sku=""),
                name="marketplace_product_unique_sku",
            ),
        ]
        indexes = [
            models.Index(fields=["is_active", "is_deleted"], name="mkt_product_active_idx"),
            models.Index(fields=["stock_quantity", "is_active"], name="mkt_product_stock_idx"),  # Stock availability
        ]

    @property
    def effective_price(self) -> Decimal:
        """Discount price while on sale, list price otherwise."""
        if self.is_on_sale and self.discount_price is not None:
            return self.discount_price
        return self.price

    @property
    def is_purchasable(self) -> bool:
        return self.is_active and not self.is_deleted

    def __str__(self):
        return self.name
