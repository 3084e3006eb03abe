"""Domain models, ports and the order placement service.

This module holds the DTOs that describe an order request and a placed
order, the ``OrderStorePort`` protocol the service runs against, and
``OrderPlacementService`` which validates a request, checks it against
live inventory and commits order, order lines and stock decrements as one
unit. It imports nothing from Django: the storage adapter lives in
``repository.py`` and an in-process one in ``adapters.py``.
"""

import hashlib
import json
import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Protocol

from apps.common.errors import InsufficientStockError, NotFoundError, ValidationError

logger = logging.getLogger("storefront.orders")

CENTS = Decimal("0.01")
# Largest value a NUMERIC(10,2) money column holds.
MAX_TOTAL_AMOUNT = Decimal("99999999.99")
MAX_IDEMPOTENCY_KEY_LENGTH = 200


# ---- Enums ----
class OrderStatus(str, Enum):
    """Lifecycle of an order. New orders always start as PENDING."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class OrderLine:
    """One requested line: a product and how many units of it."""

    product_id: int
    quantity: int


@dataclass(frozen=True)
class PlaceOrderRequest:
    """Input of ``OrderPlacementService.place_order``.

    Attributes:
        user_id: Owning user.
        items: Requested lines; duplicates of a product are merged.
        idempotency_key: Optional client key making retries safe.
    """

    user_id: int
    items: List[OrderLine]
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class ProductSnapshot:
    """Price and stock of a product as read under its row lock."""

    product_id: int
    price: Decimal
    stock: int


@dataclass(frozen=True)
class PricedLine:
    """An order line with the unit price captured at order time."""

    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass
class PlacedOrder:
    """A persisted order as returned to callers.

    ``replayed`` is True when the order was returned for an idempotency key
    that had already been used, i.e. nothing was written by this call.
    """

    id: int
    user_id: int
    total_amount: Decimal
    status: OrderStatus
    items: List[PricedLine]
    created_at: datetime
    replayed: bool = field(default=False, compare=False)


# ---- Ports (DIP) ----
class OrderTransaction(Protocol):
    """Storage operations available inside one transaction.

    Every method runs within the transaction opened by
    ``OrderStorePort.transaction``; nothing is visible to other readers
    until that context exits without an exception.
    """

    def user_exists(self, user_id: int) -> bool: ...

    def claim_idempotency_key(self, key: str, request_hash: str) -> Optional[PlacedOrder]:
        """Reserve ``key`` for this transaction.

        Returns:
            The order already bound to ``key`` when the same request was
            placed before, otherwise None (the key is now held by this
            transaction).

        Raises:
            IdempotencyConflictError: If ``key`` was used for a different
                request.
        """
        ...

    def lock_products(self, product_ids: List[int]) -> dict[int, ProductSnapshot]:
        """Lock and read the given product rows in ascending id order.

        Missing products are simply absent from the returned mapping.
        """
        ...

    def insert_order(self, user_id: int, total_amount: Decimal, lines: List[PricedLine]) -> PlacedOrder: ...

    def decrement_stock(self, product_id: int, quantity: int) -> None:
        """Subtract ``quantity`` from the product's stock.

        Raises:
            InsufficientStockError: If the stock would go negative.
        """
        ...

    def bind_idempotency_key(self, key: str, order_id: int) -> None: ...


class OrderStorePort(Protocol):
    """Factory of transaction-scoped handles.

    ``transaction()`` must commit when its block exits normally and roll
    back everything otherwise, translating lock timeouts and connection
    failures into ``TransientError``.
    """

    def transaction(self) -> AbstractContextManager[OrderTransaction]: ...


# ---- Helpers ----
def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def merge_lines(items) -> List[OrderLine]:
    """Validate request lines and merge duplicates of the same product.

    Quantities of repeated products are summed; the first appearance of a
    product decides its position in the result.

    Raises:
        ValidationError: If ``items`` is empty or any line is malformed.
    """
    if not items:
        raise ValidationError("An order needs at least one item")

    merged: dict[int, int] = {}
    for idx, it in enumerate(items):
        if not _is_positive_int(it.product_id):
            raise ValidationError(f"items[{idx}].productId must be a positive integer")
        if not _is_positive_int(it.quantity):
            raise ValidationError(f"items[{idx}].quantity must be a positive integer")
        merged[it.product_id] = merged.get(it.product_id, 0) + it.quantity
    return [OrderLine(product_id=pid, quantity=qty) for pid, qty in merged.items()]


def request_fingerprint(user_id: int, lines: List[OrderLine]) -> str:
    """SHA-256 of the canonical (user, merged lines) request.

    Lines are sorted by product so that reordering or splitting a line does
    not change the fingerprint.
    """
    payload = {
        "user_id": user_id,
        "items": sorted([[ln.product_id, ln.quantity] for ln in lines]),
    }
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def compute_total(lines: List[PricedLine]) -> Decimal:
    return sum((ln.subtotal for ln in lines), Decimal("0")).quantize(CENTS)


# ---- Domain service ----
class OrderPlacementService:
    """Places orders atomically against an ``OrderStorePort``.

    The service does no retries of its own: a ``TransientError`` is
    returned to the caller, who may retry with the same idempotency key.
    """

    def __init__(self, store: OrderStorePort):
        self.store = store

    def validate(self, request: PlaceOrderRequest) -> List[OrderLine]:
        """Check the request shape before any storage access.

        Returns:
            The merged order lines.

        Raises:
            ValidationError: On a bad user id, idempotency key or items.
        """
        if not _is_positive_int(request.user_id):
            raise ValidationError("userId must be a positive integer")
        key = request.idempotency_key
        if key is not None:
            if not isinstance(key, str) or not key.strip():
                raise ValidationError("idempotencyKey must be a non-empty string")
            if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
                raise ValidationError(f"idempotencyKey must be at most {MAX_IDEMPOTENCY_KEY_LENGTH} characters")
        return merge_lines(request.items)

    def place_order(self, request: PlaceOrderRequest) -> PlacedOrder:
        """Validate, lock, price and persist an order in one transaction.

        Steps, all inside ``store.transaction()``:

        1. Verify the user exists and claim the idempotency key, returning
           the earlier order for a replayed key.
        2. Lock the referenced products in ascending id order.
        3. Fail on a missing product or insufficient stock.
        4. Snapshot prices, compute the total, insert the order and its
           lines, decrement stock and bind the idempotency key.

        Args:
            request: The order to place.

        Returns:
            The created order, or the earlier one with ``replayed=True``.

        Raises:
            ValidationError: Malformed request (nothing touched storage),
                or a total above ``MAX_TOTAL_AMOUNT``.
            NotFoundError: Unknown user or product. The user is looked up
                inside the transaction, so an unknown ``user_id`` is a 404,
                not a validation failure.
            InsufficientStockError: A line asks for more than is in stock.
            IdempotencyConflictError: Key reused with a different request.
            TransientError: Lock timeout or lost connection; retryable.
        """
        lines = self.validate(request)
        key = request.idempotency_key
        fingerprint = request_fingerprint(request.user_id, lines) if key else None

        with self.store.transaction() as tx:
            if not tx.user_exists(request.user_id):
                raise NotFoundError(f"User with ID {request.user_id} not found")

            if key:
                existing = tx.claim_idempotency_key(key, fingerprint)
                if existing is not None:
                    logger.info(
                        "order replayed",
                        extra={"order_id": existing.id, "idempotency_key": key},
                    )
                    return replace(existing, replayed=True)

            product_ids = sorted(ln.product_id for ln in lines)
            products = tx.lock_products(product_ids)

            for pid in product_ids:
                if pid not in products:
                    raise NotFoundError(f"Product with ID {pid} not found")

            priced: List[PricedLine] = []
            for ln in lines:
                snap = products[ln.product_id]
                if ln.quantity > snap.stock:
                    raise InsufficientStockError(ln.product_id, snap.stock, ln.quantity)
                priced.append(PricedLine(ln.product_id, ln.quantity, snap.price))

            total = compute_total(priced)
            if total > MAX_TOTAL_AMOUNT:
                raise ValidationError(f"Order total {total} exceeds the maximum of {MAX_TOTAL_AMOUNT}")
            order =tx.insert_order(request.user_id, total, priced)
            quantities = {ln.product_id: ln.quantity for ln in lines}
            for pid in product_ids:
                tx.decrement_stock(pid, quantities[pid])
            if key:
                tx.bind_idempotency_key(key, order.id)

        logger.info(
            "order placed",
            extra={
                "order_id": order.id,
                "user_id": order.user_id,
                "total_amount": str(order.total_amount),
                "lines": len(order.items),
            },
        )
        return order
