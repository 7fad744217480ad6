import uuid

from django.contrib.auth import get_user_model
from django.db import models


User = get_user_model()


class Payment(models.Model):
    """Local record of a payment intent created with the external processor"""

    STATUS_PENDING = "pending"
    STATUS_SUCCEEDED = "succeeded"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_SUCCEEDED, "Succeeded"),
        (STATUS_FAILED, "Failed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(User, on_delete=models.CASCADE, related_name="payments", db_index=True)

    # Transaction details
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="usd")
    external_intent_id = models.CharField(max_length=255, unique=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    # Timestamps
    payment_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "payment_system"
        indexes = [
            models.Index(fields=["customer", "status"], name="pay_payment_customer_idx"),
        ]

    @property
    def is_succeeded(self) -> bool:
        return self.status == self.STATUS_SUCCEEDED

    def __str__(self):
        return f"Payment {self.external_intent_id} - {self.status}"
