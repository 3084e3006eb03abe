from django.db import models

from apps.products.models import ProductModel
from apps.users.models import UserModel


class OrderModel(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending"
        CONFIRMED = "confirmed"
        SHIPPED = "shipped"
        DELIVERED = "delivered"
        CANCELLED = "cancelled"

    user = models.ForeignKey(UserModel, on_delete=models.CASCADE, related_name="orders")
    # Computed from the order items, never taken from the client
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at", "-id"]


class OrderItemModel(models.Model):
    order = models.ForeignKey(OrderModel, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(ProductModel, on_delete=models.PROTECT, related_name="order_items")
    quantity = models.PositiveIntegerField()
    # Unit price snapshot at order time
    price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = "order_items"
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gt=0), name="order_items_quantity_positive"),
        ]


class IdempotencyKey(models.Model):
    key = models.CharField(max_length=200, primary_key=True)
    # Canonical request hash (sha256 hex)
    request_hash = models.CharField(max_length=64)
    # Bound in the same transaction that creates the order
    order = models.OneToOneField(
        OrderModel,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="idempotency_key",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "idempotency_keys"
