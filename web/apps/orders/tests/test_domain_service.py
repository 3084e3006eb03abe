"""Unit tests for the OrderPlacementService domain workflow.

These tests drive the service against ``InMemoryOrderStore`` so they run
without a database: happy path, validation, missing references,
insufficient stock with full rollback, idempotent replays and concurrent
placements against limited stock.
"""

import threading
from decimal import Decimal

import pytest

from apps.common.errors import (
    IdempotencyConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from apps.orders.adapters import InMemoryOrderStore
from apps.orders.domain import OrderLine, OrderPlacementService, OrderStatus, PlaceOrderRequest


@pytest.fixture
def store():
    s = InMemoryOrderStore()
    s.add_user(1)
    s.add_product(10, "2.50", stock=5)
    s.add_product(20, "10.00", stock=3)
    return s


@pytest.fixture
def service(store):
    return OrderPlacementService(store)


def test_place_order_ok(service, store):
    """Happy path: order is pending, priced from the store, stock decremented."""
    out = service.place_order(PlaceOrderRequest(1, [OrderLine(10, 2), OrderLine(20, 1)]))

    assert out.status == OrderStatus.PENDING
    assert out.user_id == 1
    assert out.total_amount == Decimal("15.00")
    assert out.total_amount == sum(i.unit_price * i.quantity for i in out.items)
    assert [(i.product_id, i.quantity, i.unit_price) for i in out.items] == [
        (10, 2, Decimal("2.50")),
        (20, 1, Decimal("10.00")),
    ]
    assert store.stock_of(10) == 3
    assert store.stock_of(20) == 2
    assert out.replayed is False


def test_duplicate_product_lines_are_merged(service, store):
    out = service.place_order(PlaceOrderRequest(1, [OrderLine(10, 1), OrderLine(20, 1), OrderLine(10, 2)]))

    assert [(i.product_id, i.quantity) for i in out.items] == [(10, 3), (20, 1)]
    assert out.total_amount == Decimal("17.50")
    assert store.stock_of(10) == 2


def test_merged_quantity_is_checked_against_stock(service, store):
    """Two lines of 3 for a product with stock 5 exceed it once merged."""
    with pytest.raises(InsufficientStockError) as e:
        service.place_order(PlaceOrderRequest(1, [OrderLine(10, 3), OrderLine(10, 3)]))
    assert e.value.requested == 6
    assert store.stock_of(10) == 5


def test_place_order_empty(service, store):
    """Validation: an order without items is rejected, nothing written."""
    with pytest.raises(ValidationError):
        service.place_order(PlaceOrderRequest(1, []))
    assert store.order_count() == 0


@pytest.mark.parametrize("quantity", [0, -1, True, 1.5, "2"])
def test_place_order_rejects_bad_quantity(service, store, quantity):
    with pytest.raises(ValidationError):
        service.place_order(PlaceOrderRequest(1, [OrderLine(10, quantity)]))
    assert store.stock_of(10) == 5


@pytest.mark.parametrize("user_id", [0, -3, None, "1"])
def test_place_order_rejects_bad_user_id(service, user_id):
    with pytest.raises(ValidationError):
        service.place_order(PlaceOrderRequest(user_id, [OrderLine(10, 1)]))


@pytest.mark.parametrize("key", ["", "   ", "k" * 201])
def test_place_order_rejects_bad_idempotency_key(service, key):
    with pytest.raises(ValidationError):
        service.place_order(PlaceOrderRequest(1, [OrderLine(10, 1)], idempotency_key=key))


def test_unknown_user_is_not_found(service, store):
    with pytest.raises(NotFoundError):
        service.place_order(PlaceOrderRequest(99, [OrderLine(10, 1)]))
    assert store.order_count() == 0


def test_unknown_product_aborts_whole_order(service, store):
    with pytest.raises(NotFoundError) as e:
        service.place_order(PlaceOrderRequest(1, [OrderLine(10, 1), OrderLine(404, 1)]))
    assert "404" in e.value.message
    assert store.stock_of(10) == 5
    assert store.order_count() == 0


def test_insufficient_stock_rolls_back_every_line(service, store):
    """Atomicity: the first line fits, the second does not; nothing persists."""
    with pytest.raises(InsufficientStockError) as e:
        service.place_order(PlaceOrderRequest(1, [OrderLine(10, 2), OrderLine(20, 4)]))

    assert e.value.product_id == 20
    assert e.value.available == 3
    assert e.value.requested == 4
    assert store.stock_of(10) == 5
    assert store.stock_of(20) == 3
    assert store.order_count() == 0


def test_idempotent_replay_returns_original_without_new_writes(service, store):
    req = PlaceOrderRequest(1, [OrderLine(10, 2)], idempotency_key="idem-1")
    first = service.place_order(req)
    second = service.place_order(req)

    assert second.replayed is True
    assert second == first
    assert store.stock_of(10) == 3
    assert store.order_count() == 1


def test_idempotency_key_reused_with_other_payload_conflicts(service, store):
    service.place_order(PlaceOrderRequest(1, [OrderLine(10, 1)], idempotency_key="idem-2"))
    with pytest.raises(IdempotencyConflictError):
        service.place_order(PlaceOrderRequest(1, [OrderLine(10, 2)], idempotency_key="idem-2"))
    assert store.stock_of(10) == 4


def test_failed_attempt_does_not_burn_the_key(service, store):
    req = PlaceOrderRequest(1, [OrderLine(20, 3)], idempotency_key="idem-3")
    store.add_product(20, "10.00", stock=1)
    with pytest.raises(InsufficientStockError):
        service.place_order(req)

    store.add_product(20, "10.00", stock=3)  # restock, then retry with the same key
    out = service.place_order(req)
    assert out.replayed is False
    assert store.stock_of(20) == 0


def test_total_above_money_column_limit_is_rejected(service, store):
    store.add_product(30, "1000000.00", stock=1000)
    with pytest.raises(ValidationError):
        service.place_order(PlaceOrderRequest(1, [OrderLine(30, 200)]))
    assert store.stock_of(30) == 1000
    assert store.order_count() == 0


def test_price_snapshot_is_decoupled_from_later_price_changes(service, store):
    out = service.place_order(PlaceOrderRequest(1, [OrderLine(10, 1)]))
    store.add_product(10, "99.99", stock=4)
    assert store.get_order(out.id).items[0].unit_price == Decimal("2.50")


def test_concurrent_single_unit_orders_never_oversell():
    """N threads each order 1 unit of a product with stock S."""
    n, s = 12, 5
    store = InMemoryOrderStore()
    store.add_user(1)
    store.add_product(7, "1.00", stock=s)
    service = OrderPlacementService(store)

    results = []
    barrier = threading.Barrier(n)

    def worker():
        barrier.wait()
        try:
            service.place_order(PlaceOrderRequest(1, [OrderLine(7, 1)]))
            results.append("ok")
        except InsufficientStockError:
            results.append("stock")

    threads = [threading.Thread(target=worker) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == min(n, s)
    assert results.count("stock") == n - min(n, s)
    assert store.stock_of(7) == s - min(n, s)
