from django.db import models


class ProductModel(models.Model):
    name = models.TextField(unique=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    # Only the order workflow decrements stock; the CHECK is the last line
    # against overselling.
    stock = models.IntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "products"
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(condition=models.Q(stock__gte=0), name="products_stock_non_negative"),
            models.CheckConstraint(condition=models.Q(price__gt=0), name="products_price_positive"),
        ]

    def __str__(self):
        return f"{self.name} ({self.stock})"
