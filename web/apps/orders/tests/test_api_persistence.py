"""Integration tests asserting what a placement leaves in the database.

These tests use low-level SQL on the ``orders``, ``order_items`` and
``products`` tables so they check persisted state rather than ORM caches.
"""

from decimal import Decimal

import pytest
from django.db import connection

CREATE_URL = "/api/orders/"


def _scalar(sql, params=()):
    with connection.cursor() as cur:
        cur.execute(sql, params)
        return cur.fetchone()[0]


@pytest.mark.django_db
def test_create_persists_order_items_and_decrements(client, make_user, make_product):
    user = make_user()
    p = make_product(price="7.25", stock=4)

    r = client.post(
        CREATE_URL,
        data={"userId": user.id, "items": [{"productId": p.id, "quantity": 3}]},
        content_type="application/json",
    )
    assert r.status_code == 201
    oid = r.json()["data"]["orderId"]

    with connection.cursor() as cur:
        cur.execute("select user_id, status, total_amount from orders where id = %s", [oid])
        row = cur.fetchone()
    assert row is not None
    user_id, status, total_amount = row
    assert user_id == user.id
    assert status == "pending"
    assert Decimal(str(total_amount)) == Decimal("21.75")

    with connection.cursor() as cur:
        cur.execute("select product_id, quantity, price from order_items where order_id = %s", [oid])
        items = cur.fetchall()
    assert [(pid, qty, Decimal(str(price))) for pid, qty, price in items] == [(p.id, 3, Decimal("7.25"))]

    assert _scalar("select stock from products where id = %s", [p.id]) == 1


@pytest.mark.django_db
def test_multi_item_failure_leaves_no_trace(client, make_user, make_product):
    """Atomicity: first line fits, last does not; no order, item or decrement."""
    user = make_user()
    ok1 = make_product(stock=10)
    ok2 = make_product(stock=10)
    short = make_product(stock=1)

    r = client.post(
        CREATE_URL,
        data={
            "userId": user.id,
            "items": [
                {"productId": ok1.id, "quantity": 2},
                {"productId": ok2.id, "quantity": 3},
                {"productId": short.id, "quantity": 2},
            ],
        },
        content_type="application/json",
    )
    assert r.status_code == 409

    assert _scalar("select count(*) from orders") == 0
    assert _scalar("select count(*) from order_items") == 0
    assert _scalar("select stock from products where id = %s", [ok1.id]) == 10
    assert _scalar("select stock from products where id = %s", [ok2.id]) == 10
    assert _scalar("select stock from products where id = %s", [short.id]) == 1


@pytest.mark.django_db
def test_snapshot_price_survives_product_price_change(client, make_user, make_product):
    user = make_user()
    p = make_product(price="4.00", stock=5)
    r = client.post(
        CREATE_URL,
        data={"userId": user.id, "items": [{"productId": p.id, "quantity": 1}]},
        content_type="application/json",
    )
    oid = r.json()["data"]["orderId"]

    r2 = client.put(f"/api/products/{p.id}/", data={"price": "9.50"}, content_type="application/json")
    assert r2.status_code == 200

    detail = client.get(f"/api/orders/{oid}/").json()["data"]
    assert detail["items"][0]["unitPrice"] == "4.00"
    assert detail["totalAmount"] == "4.00"
