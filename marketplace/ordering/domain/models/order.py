import uuid

from django.contrib.auth import get_user_model
from django.db import models

from marketplace.catalog.domain.models.managers import SoftDeleteManager

User = get_user_model()


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


# Statuses an order may move to from each status. Terminal statuses map to nothing.
ALLOWED_STATUS_TRANSITIONS = {
    OrderStatus.PENDING.value: frozenset({OrderStatus.PROCESSING.value, OrderStatus.CANCELLED.value}),
    OrderStatus.PROCESSING.value: frozenset({OrderStatus.SHIPPED.value, OrderStatus.CANCELLED.value}),
    OrderStatus.SHIPPED.value: frozenset({OrderStatus.DELIVERED.value}),
    OrderStatus.DELIVERED.value: frozenset(),
    OrderStatus.CANCELLED.value: frozenset(),
}


class Order(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(User, on_delete=models.CASCADE, related_name="orders")

    # Order Details
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    order_notes = models.TextField(blank=True)

    # Set when the order was placed through the payment workflow
    payment = models.OneToOneField(
        "payment_system.Payment", on_delete=models.PROTECT, null=True, blank=True, related_name="order"
    )

    # Timestamps
    order_date = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    is_deleted = models.BooleanField(default=False)

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-order_date"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["customer", "-order_date"], name="mkt_order_customer_date_idx"),
            models.Index(fields=["status", "-order_date"], name="mkt_order_status_date_idx"),
        ]

    def can_transition_to(self, new_status) -> bool:
        return str(new_status) in ALLOWED_STATUS_TRANSITIONS.get(str(self.status), frozenset())

    def __str__(self):
        return f"Order {str(self.id)[:8]} by {self.customer.email}"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")

    # Product snapshot at time of purchase; product_id is a plain value so the
    # history survives removal of the catalog entry.
    product_id = models.UUIDField()
    product_name = models.CharField(max_length=200)
    product_sku = models.CharField(max_length=64, blank=True)

    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    selected_size = models.CharField(max_length=50, blank=True)
    selected_color = models.CharField(max_length=50, blank=True)

    class Meta:
        ordering = ["id"]
        app_label = "marketplace"

    def __str__(self):
        return f"{self.quantity}x {self.product_name} in order {str(self.order_id)[:8]}"
