"""Django ORM adapters for the orders domain.

``DjangoOrderStore`` implements ``OrderStorePort``: each call to
``transaction()`` opens one ``transaction.atomic`` block, applies the
configured lock and statement timeouts (PostgreSQL only) and yields a
``DjangoOrderTransaction`` bound to it. Storage failures are translated at
this boundary so the domain only ever sees ``ServiceError`` subclasses.

``OrderRepository`` serves the read side (single order, paginated lists).
"""

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, List, Optional

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DataError, IntegrityError, InterfaceError, OperationalError, connections, transaction
from django.db.models import F

from apps.common.errors import InsufficientStockError, NotFoundError, TransientError, ValidationError
from apps.common.responses import paginate
from apps.products.models import ProductModel
from apps.users.models import UserModel

from . import idempotency
from .domain import OrderStatus, PlacedOrder, PricedLine, ProductSnapshot
from .models import OrderItemModel, OrderModel

logger = logging.getLogger("storefront.orders")


def to_placed(obj: OrderModel, lines: Optional[List[PricedLine]] = None) -> PlacedOrder:
    """Map an ``OrderModel`` (and its items) to the domain ``PlacedOrder``."""
    if lines is None:
        lines = [PricedLine(it.product_id, it.quantity, it.price) for it in obj.items.all()]
    return PlacedOrder(
        id=obj.id,
        user_id=obj.user_id,
        total_amount=Decimal(obj.total_amount),
        status=OrderStatus(obj.status),
        items=lines,
        created_at=obj.created_at,
    )


class DjangoOrderTransaction:
    """``OrderTransaction`` backed by the Django ORM.

    Only valid inside the ``atomic`` block opened by
    ``DjangoOrderStore.transaction``.
    """

    def __init__(self, using: str):
        self.using = using

    def user_exists(self, user_id: int) -> bool:
        return UserModel.objects.using(self.using).filter(pk=user_id).exists()

    def claim_idempotency_key(self, key: str, request_hash: str) -> Optional[PlacedOrder]:
        rec = idempotency.claim(key, request_hash, using=self.using)
        if rec is None or rec.order_id is None:
            return None
        obj = OrderModel.objects.using(self.using).prefetch_related("items").get(pk=rec.order_id)
        return to_placed(obj)

    def lock_products(self, product_ids: List[int]) -> dict[int, ProductSnapshot]:
        # ORDER BY id makes PostgreSQL take the row locks in ascending id
        # order, so two orders sharing products cannot deadlock.
        rows = (
            ProductModel.objects.using(self.using)
            .select_for_update()
            .filter(pk__in=product_ids)
            .order_by("id")
            .values_list("id", "price", "stock")
        )
        return {pid: ProductSnapshot(pid, price, stock) for pid, price, stock in rows}

    def insert_order(self, user_id: int, total_amount: Decimal, lines: List[PricedLine]) -> PlacedOrder:
        obj = OrderModel.objects.using(self.using).create(
            user_id=user_id,
            total_amount=total_amount,
            status=OrderModel.Status.PENDING,
        )
        OrderItemModel.objects.using(self.using).bulk_create(
            [
                OrderItemModel(order=obj, product_id=ln.product_id, quantity=ln.quantity, price=ln.unit_price)
                for ln in lines
            ]
        )
        return to_placed(obj, list(lines))

    def decrement_stock(self, product_id: int, quantity: int) -> None:
        qs = ProductModel.objects.using(self.using).filter(pk=product_id)
        try:
            with transaction.atomic(using=self.using):
                updated = qs.filter(stock__gte=quantity).update(stock=F("stock") - quantity)
        except IntegrityError as e:
            # products_stock_non_negative fired: same outcome as the guard
            raise InsufficientStockError(product_id, qs.values_list("stock", flat=True).first(), quantity) from e
        if not updated:
            raise InsufficientStockError(product_id, qs.values_list("stock", flat=True).first(), quantity)

    def bind_idempotency_key(self, key: str, order_id: int) -> None:
        idempotency.bind(key, order_id, using=self.using)


class DjangoOrderStore:
    """``OrderStorePort`` over a Django database alias.

    Args:
        using: Database alias to run against.
        lock_timeout_ms: Max wait for a row lock; defaults to
            ``settings.ORDERS_LOCK_TIMEOUT_MS``. 0 disables it.
        statement_timeout_ms: Max duration of any statement; defaults to
            ``settings.ORDERS_STATEMENT_TIMEOUT_MS``. 0 disables it.
    """

    def __init__(
        self,
        using: str = DEFAULT_DB_ALIAS,
        lock_timeout_ms: int | None = None,
        statement_timeout_ms: int | None = None,
    ):
        self.using = using
        self.lock_timeout_ms = (
            lock_timeout_ms if lock_timeout_ms is not None else getattr(settings, "ORDERS_LOCK_TIMEOUT_MS", 0)
        )
        self.statement_timeout_ms = (
            statement_timeout_ms
            if statement_timeout_ms is not None
            else getattr(settings, "ORDERS_STATEMENT_TIMEOUT_MS", 0)
        )

    def _apply_timeouts(self) -> None:
        conn = connections[self.using]
        if conn.vendor != "postgresql":
            return
        with conn.cursor() as cur:
            if self.lock_timeout_ms:
                cur.execute(f"SET LOCAL lock_timeout = {int(self.lock_timeout_ms)}")
            if self.statement_timeout_ms:
                cur.execute(f"SET LOCAL statement_timeout = {int(self.statement_timeout_ms)}")

    @contextmanager
    def transaction(self) -> Iterator[DjangoOrderTransaction]:
        """Open one all-or-nothing transaction for the workflow body.

        Commits when the block exits normally. Any exception, including
        cancellation, rolls back every write made through the handle.

        Raises:
            TransientError: On lock/statement timeout, lost connection or an
                unexpected integrity violation from a concurrent change.
            ValidationError: When the database rejects a value as out of
                range (``DataError``).
        """
        try:
            with transaction.atomic(using=self.using):
                self._apply_timeouts()
                yield DjangoOrderTransaction(self.using)
        except (OperationalError, InterfaceError) as e:
            logger.warning("order transaction aborted", extra={"reason": type(e).__name__, "detail": str(e)})
            raise TransientError("Database temporarily unavailable, retry the request") from e
        except IntegrityError as e:
            logger.warning("order transaction conflicted", extra={"detail": str(e)})
            raise TransientError("Conflicting concurrent change, retry the request") from e
        except DataError as e:
            logger.warning("order transaction rejected value", extra={"detail": str(e)})
            raise ValidationError("A value is out of range for storage") from e


class OrderRepository:
    """Read access to persisted orders."""

    def get(self, order_id: int) -> PlacedOrder:
        try:
            obj = OrderModel.objects.prefetch_related("items").get(pk=order_id)
        except OrderModel.DoesNotExist:
            raise NotFoundError(f"Order with ID {order_id} not found")
        return to_placed(obj)

    def list(
        self,
        page: int,
        limit: int,
        user_id: int | None = None,
        status: str | None = None,
    ) -> tuple[list[PlacedOrder], int]:
        """Return one page of orders, newest first, and the total count.

        Raises:
            ValidationError: If ``status`` is not a known order status.
        """
        qs = OrderModel.objects.prefetch_related("items").order_by("-created_at", "-id")
        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        if status is not None:
            if status not in OrderModel.Status.values:
                raise ValidationError(f"Unknown order status {status!r}")
            qs = qs.filter(status=status)
        rows, total = paginate(qs, page, limit)
        return [to_placed(o) for o in rows], total
