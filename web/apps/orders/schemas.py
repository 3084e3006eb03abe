"""Pydantic schemas for orders.

Request and response bodies use camelCase keys; the snake_case field names
are accepted on input as well. Money is rendered as decimal strings.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from .domain import OrderLine, PlacedOrder, PlaceOrderRequest


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderItemIn(_CamelModel):
    """Input schema for a single order line.

    Attributes:
        product_id: Referenced product (``productId``).
        quantity: Positive number of units.
    """

    product_id: StrictInt = Field(gt=0)
    quantity: StrictInt = Field(gt=0)


class PlaceOrderDTO(_CamelModel):
    """Body for ``POST /api/orders/``.

    Attributes:
        user_id: Owning user (``userId``).
        items: Requested lines. Emptiness is reported by the domain service.
        idempotency_key: Optional key; the ``Idempotency-Key`` header takes
            precedence when both are sent.
    """

    user_id: StrictInt = Field(gt=0)
    items: list[OrderItemIn]
    idempotency_key: str | None = Field(default=None, min_length=1, max_length=200)

    def to_request(self, idempotency_key: str | None = None) -> PlaceOrderRequest:
        return PlaceOrderRequest(
            user_id=self.user_id,
            items=[OrderLine(product_id=i.product_id, quantity=i.quantity) for i in self.items],
            idempotency_key=idempotency_key or self.idempotency_key,
        )


class OrderItemOut(_CamelModel):
    product_id: int
    quantity: int
    unit_price: Decimal


class OrderReadDTO(_CamelModel):
    """Rendered order: ``{orderId, userId, totalAmount, status, items, createdAt}``."""

    order_id: int
    user_id: int
    total_amount: Decimal
    status: str
    items: list[OrderItemOut]
    created_at: datetime

    @classmethod
    def from_domain(cls, order: PlacedOrder) -> "OrderReadDTO":
        return cls(
            order_id=order.id,
            user_id=order.user_id,
            total_amount=order.total_amount,
            status=order.status.value,
            items=[
                OrderItemOut(product_id=ln.product_id, quantity=ln.quantity, unit_price=ln.unit_price)
                for ln in order.items
            ],
            created_at=order.created_at,
        )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
