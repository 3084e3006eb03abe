from decimal import Decimal

import pytest


@pytest.fixture(autouse=True)
def reset_throttle_history():
    from django.core.cache import cache

    # DRF throttles keep request history in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    from apps.users.models import UserModel

    counter = {"n": 0}

    def _make(name="Ada", email=None):
        counter["n"] += 1
        return UserModel.objects.create(name=name, email=email or f"user{counter['n']}@example.com")

    return _make


@pytest.fixture
def make_product(db):
    from apps.products.models import ProductModel

    counter = {"n": 0}

    def _make(price="10.00", stock=10, name=None):
        counter["n"] += 1
        return ProductModel.objects.create(
            name=name or f"Product {counter['n']}",
            price=Decimal(price),
            stock=stock,
        )

    return _make
