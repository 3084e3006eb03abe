"""HTTP views for the orders app.

Views are kept intentionally small: they validate requests (via pydantic),
map to domain DTOs, delegate to the domain service or the read repository,
and return the shared response envelope.

Idempotency: a key may be sent in the ``Idempotency-Key`` header or as
``idempotencyKey`` in the body (the header wins). Replaying a placed order
with the same key and payload returns the original order with HTTP 200 and
``Idempotent-Replay: true``; reusing the key with a different payload
returns 409 ``idempotency_conflict``.
"""

from rest_framework import status
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.common.errors import ServiceError, ValidationError
from apps.common.responses import error_response, page_params, paginated, success
from apps.common.schemas import validate_payload

from . import providers
from .repository import OrderRepository
from .schemas import OrderReadDTO, PlaceOrderDTO


def _optional_int(query, name: str) -> int | None:
    raw = query.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


class OrdersCollectionView(APIView):
    """List orders (GET) and place a new order (POST)."""

    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        page, limit = page_params(request.query_params)
        try:
            user_id = _optional_int(request.query_params, "userId")
            orders, total = OrderRepository().list(
                page, limit, user_id=user_id, status=request.query_params.get("status") or None
            )
        except ServiceError as e:
            return error_response(e)
        return paginated(
            [OrderReadDTO.from_domain(o).to_json() for o in orders],
            "Orders retrieved successfully",
            page,
            limit,
            total,
        )

    def post(self, request):
        """Place an order.

        Returns:
            Response: One of the following.
            - 201 with the created order.
            - 200 with the original order when an idempotency key is
              replayed (``Idempotent-Replay: true``).
            - 400 ``validation_error`` for a malformed payload.
            - 404 ``not_found`` for an unknown user or product.
            - 409 ``insufficient_stock`` or ``idempotency_conflict``.
            - 503 ``transient_error`` on lock timeout or lost connection.
        """
        try:
            dto = validate_payload(PlaceOrderDTO, request.data)
            req = dto.to_request(request.headers.get("Idempotency-Key"))
            order = providers.get_order_service().place_order(req)
        except ServiceError as e:
            return error_response(e)

        body = OrderReadDTO.from_domain(order).to_json()
        if order.replayed:
            return success(body, "Order already placed", status=status.HTTP_200_OK, headers={"Idempotent-Replay": "true"})
        return success(body, "Order placed successfully", status=status.HTTP_201_CREATED)


class RetrieveOrderView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, order_id: int):
        try:
            order = OrderRepository().get(order_id)
        except ServiceError as e:
            return error_response(e)
        return success(OrderReadDTO.from_domain(order).to_json(), "Order retrieved successfully")
