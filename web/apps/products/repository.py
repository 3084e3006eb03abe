"""Repository for product records.

Stock is shared with the order workflow, so ``update`` takes the same
row-level lock (``SELECT ... FOR UPDATE``) the workflow takes before it
decrements. An administrative restock therefore queues behind in-flight
orders instead of overwriting their decrements.
"""

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import ProtectedError

from apps.common.errors import ConflictError, NotFoundError
from apps.common.responses import paginate

from .models import ProductModel

logger = logging.getLogger("storefront.products")


class ProductRepository:
    """CRUD access to the ``products`` table."""

    def create(self, name: str, price: Decimal, stock: int) -> ProductModel:
        if ProductModel.objects.filter(name=name).exists():
            raise ConflictError(f"Name {name} is already in use")
        try:
            with transaction.atomic():
                product = ProductModel.objects.create(name=name, price=price, stock=stock)
        except IntegrityError as e:
            raise ConflictError(f"Name {name} is already in use") from e
        logger.info("product created", extra={"product_id": product.id, "stock": stock})
        return product

    def get(self, product_id: int) -> ProductModel:
        try:
            return ProductModel.objects.get(pk=product_id)
        except ProductModel.DoesNotExist:
            raise NotFoundError(f"Product with ID {product_id} not found")

    def list(self, page: int, limit: int) -> tuple[list[ProductModel], int]:
        return paginate(ProductModel.objects.order_by("-created_at", "-id"), page, limit)

    def update(
        self,
        product_id: int,
        name: str | None = None,
        price: Decimal | None = None,
        stock: int | None = None,
    ) -> ProductModel:
        """Update the given fields under a row lock.

        Raises:
            NotFoundError: If the product does not exist.
            ConflictError: If the new name belongs to another product.
        """
        with transaction.atomic():
            try:
                product = ProductModel.objects.select_for_update().get(pk=product_id)
            except ProductModel.DoesNotExist:
                raise NotFoundError(f"Product with ID {product_id} not found")

            if name and name != product.name:
                if ProductModel.objects.filter(name=name).exclude(pk=product_id).exists():
                    raise ConflictError(f"Name {name} is already in use")
                product.name = name
            if price is not None:
                product.price = price
            if stock is not None:
                product.stock = stock
            try:
                with transaction.atomic():
                    product.save(update_fields=["name", "price", "stock"])
            except IntegrityError as e:
                raise ConflictError(f"Name {name} is already in use") from e

        logger.info("product updated", extra={"product_id": product_id, "stock": product.stock})
        return product

    def delete(self, product_id: int) -> None:
        """Delete a product that no order line references.

        Raises:
            NotFoundError: If the product does not exist.
            ConflictError: If orders still reference it.
        """
        try:
            deleted, _ = ProductModel.objects.filter(pk=product_id).delete()
        except ProtectedError as e:
            raise ConflictError(f"Product with ID {product_id} is referenced by existing orders") from e
        if not deleted:
            raise NotFoundError(f"Product with ID {product_id} not found")
        logger.info("product deleted", extra={"product_id": product_id})
