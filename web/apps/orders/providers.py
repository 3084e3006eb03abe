"""Service provider helpers for wiring the order placement service.

Views obtain the service through ``get_order_service`` (looked up on this
module at call time) so tests can swap the store with ``monkeypatch``.
"""

from .domain import OrderPlacementService
from .repository import DjangoOrderStore


def get_order_service() -> OrderPlacementService:
    """Return an ``OrderPlacementService`` over the default database.

    Lock and statement timeouts come from ``settings.ORDERS_LOCK_TIMEOUT_MS``
    and ``settings.ORDERS_STATEMENT_TIMEOUT_MS``.
    """
    return OrderPlacementService(store=DjangoOrderStore())
