from decimal import Decimal

import pytest
from django.db import DataError, IntegrityError, OperationalError

from apps.common.errors import (
    IdempotencyConflictError,
    InsufficientStockError,
    NotFoundError,
    TransientError,
    ValidationError,
)
from apps.orders import idempotency
from apps.orders.domain import PricedLine
from apps.orders.models import IdempotencyKey, OrderModel
from apps.orders.repository import DjangoOrderStore, OrderRepository


@pytest.mark.django_db
def test_lock_products_returns_snapshots_for_existing_ids_only(make_product):
    a = make_product(price="1.50", stock=3)
    b = make_product(price="2.00", stock=0)

    with DjangoOrderStore().transaction() as tx:
        snaps = tx.lock_products([b.id, a.id, 999999])

    assert set(snaps) == {a.id, b.id}
    assert snaps[a.id].price == Decimal("1.50")
    assert snaps[a.id].stock == 3
    assert snaps[b.id].stock == 0


@pytest.mark.django_db
def test_decrement_stock_guard_raises_insufficient_stock(make_product):
    p = make_product(stock=2)

    with pytest.raises(InsufficientStockError) as e:
        with DjangoOrderStore().transaction() as tx:
            tx.decrement_stock(p.id, 3)

    assert (e.value.product_id, e.value.available, e.value.requested) == (p.id, 2, 3)
    p.refresh_from_db()
    assert p.stock == 2


@pytest.mark.django_db
def test_decrement_stock_reaches_zero(make_product):
    p = make_product(stock=2)
    with DjangoOrderStore().transaction() as tx:
        tx.decrement_stock(p.id, 2)
    p.refresh_from_db()
    assert p.stock == 0


@pytest.mark.django_db
def test_exception_inside_transaction_rolls_back_inserts(make_user, make_product):
    user = make_user()
    p = make_product(price="3.00", stock=5)

    with pytest.raises(RuntimeError):
        with DjangoOrderStore().transaction() as tx:
            tx.insert_order(user.id, Decimal("3.00"), [PricedLine(p.id, 1, Decimal("3.00"))])
            tx.decrement_stock(p.id, 1)
            raise RuntimeError("boom")

    assert OrderModel.objects.count() == 0
    p.refresh_from_db()
    assert p.stock == 5


@pytest.mark.django_db
def test_operational_error_maps_to_transient(monkeypatch):
    def locked(self):
        raise OperationalError("canceling statement due to lock timeout")

    monkeypatch.setattr(DjangoOrderStore, "_apply_timeouts", locked)

    with pytest.raises(TransientError) as e:
        with DjangoOrderStore().transaction():
            pass
    assert e.value.status_code == 503


@pytest.mark.django_db
def test_unexpected_integrity_error_maps_to_transient():
    with pytest.raises(TransientError):
        with DjangoOrderStore().transaction():
            raise IntegrityError("duplicate key value")


@pytest.mark.django_db
def test_data_error_maps_to_validation_error():
    with pytest.raises(ValidationError) as e:
        with DjangoOrderStore().transaction():
            raise DataError("numeric field overflow")
    assert e.value.status_code == 400


def test_store_reads_timeouts_from_settings(settings):
    settings.ORDERS_LOCK_TIMEOUT_MS = 1234
    settings.ORDERS_STATEMENT_TIMEOUT_MS = 5678
    store = DjangoOrderStore()
    assert (store.lock_timeout_ms, store.statement_timeout_ms) == (1234, 5678)
    assert DjangoOrderStore(lock_timeout_ms=0).lock_timeout_ms == 0


@pytest.mark.django_db
def test_claim_then_bind_then_replay():
    with DjangoOrderStore().transaction():
        assert idempotency.claim("k-1", "h" * 64) is None

    rec = IdempotencyKey.objects.get(key="k-1")
    assert rec.order_id is None

    with DjangoOrderStore().transaction():
        again = idempotency.claim("k-1", "h" * 64)
    assert again is not None
    assert again.key == "k-1"


@pytest.mark.django_db
def test_claim_with_different_hash_conflicts():
    with DjangoOrderStore().transaction():
        idempotency.claim("k-2", "a" * 64)

    with pytest.raises(IdempotencyConflictError):
        with DjangoOrderStore().transaction():
            idempotency.claim("k-2", "b" * 64)


@pytest.mark.django_db
def test_order_repository_get_missing_raises_not_found():
    with pytest.raises(NotFoundError):
        OrderRepository().get(123456)
