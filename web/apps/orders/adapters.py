"""In-process adapter for the orders domain port.

``InMemoryOrderStore`` implements ``OrderStorePort`` without a database. It
is intended for unit tests and local experiments where deterministic,
dependency-free behavior is useful. Transactions are serialized by a single
lock and isolated by working on a copy of the state, which is swapped in on
commit and dropped on rollback.
"""

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator, List, Optional

from apps.common.errors import IdempotencyConflictError, InsufficientStockError

from .domain import OrderStatus, PlacedOrder, PricedLine, ProductSnapshot


@dataclass
class _State:
    users: set = field(default_factory=set)
    products: dict = field(default_factory=dict)  # id -> {"price": Decimal, "stock": int}
    orders: dict = field(default_factory=dict)  # id -> PlacedOrder
    keys: dict = field(default_factory=dict)  # key -> {"hash": str, "order_id": int | None}
    next_order_id: int = 1


class _InMemoryTransaction:
    """``OrderTransaction`` over a private copy of the store state."""

    def __init__(self, state: _State):
        self.state = state

    def user_exists(self, user_id: int) -> bool:
        return user_id in self.state.users

    def claim_idempotency_key(self, key: str, request_hash: str) -> Optional[PlacedOrder]:
        rec = self.state.keys.get(key)
        if rec is None:
            self.state.keys[key] = {"hash": request_hash, "order_id": None}
            return None
        if rec["hash"] != request_hash:
            raise IdempotencyConflictError(f"Idempotency key {key!r} was already used for a different request")
        if rec["order_id"] is None:
            return None
        return copy.deepcopy(self.state.orders[rec["order_id"]])

    def lock_products(self, product_ids: List[int]) -> dict[int, ProductSnapshot]:
        out = {}
        for pid in sorted(product_ids):
            row = self.state.products.get(pid)
            if row is not None:
                out[pid] = ProductSnapshot(pid, row["price"], row["stock"])
        return out

    def insert_order(self, user_id: int, total_amount: Decimal, lines: List[PricedLine]) -> PlacedOrder:
        oid = self.state.next_order_id
        self.state.next_order_id += 1
        order = PlacedOrder(
            id=oid,
            user_id=user_id,
            total_amount=total_amount,
            status=OrderStatus.PENDING,
            items=list(lines),
            created_at=datetime.now(timezone.utc),
        )
        self.state.orders[oid] = order
        return copy.deepcopy(order)

    def decrement_stock(self, product_id: int, quantity: int) -> None:
        row = self.state.products[product_id]
        if row["stock"] < quantity:
            raise InsufficientStockError(product_id, row["stock"], quantity)
        row["stock"] -= quantity

    def bind_idempotency_key(self, key: str, order_id: int) -> None:
        self.state.keys[key]["order_id"] = order_id


class InMemoryOrderStore:
    """Thread-safe, all-or-nothing in-memory ``OrderStorePort``.

    Seed it with ``add_user`` and ``add_product``; inspect it with
    ``stock_of``, ``order_count`` and ``get_order``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = _State()

    # ---- seeding / inspection ----
    def add_user(self, user_id: int) -> None:
        with self._lock:
            self._state.users.add(user_id)

    def add_product(self, product_id: int, price, stock: int) -> None:
        with self._lock:
            self._state.products[product_id] = {"price": Decimal(str(price)), "stock": stock}

    def stock_of(self, product_id: int) -> int:
        with self._lock:
            return self._state.products[product_id]["stock"]

    def order_count(self) -> int:
        with self._lock:
            return len(self._state.orders)

    def get_order(self, order_id: int) -> PlacedOrder:
        with self._lock:
            return copy.deepcopy(self._state.orders[order_id])

    # ---- port ----
    @contextmanager
    def transaction(self) -> Iterator[_InMemoryTransaction]:
        with self._lock:
            working = copy.deepcopy(self._state)
            yield _InMemoryTransaction(working)
            # Reached only when the block raised nothing: commit.
            self._state = working
