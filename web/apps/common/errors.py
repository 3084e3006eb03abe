"""Error taxonomy shared by the storefront services.

Every error raised by a service or repository carries a machine-readable
``kind`` and the HTTP status the request layer should answer with. The
classes are plain Python so the orders domain stays free of Django imports.
"""


class ServiceError(Exception):
    """Base class for expected, typed service failures.

    Attributes:
        kind: Machine-readable error code rendered as ``error`` in responses.
        status_code: HTTP status the request layer maps this error to.
        message: Human-readable description.
    """

    kind = "service_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> dict:
        """Extra fields merged into the error envelope."""
        return {}


class ValidationError(ServiceError):
    """Malformed or missing input. Not retryable."""

    kind = "validation_error"
    status_code = 400


class NotFoundError(ServiceError):
    """A referenced user, product or order does not exist."""

    kind = "not_found"
    status_code = 404


class ConflictError(ServiceError):
    """The write would violate a uniqueness or reference rule."""

    kind = "conflict"
    status_code = 409


class InsufficientStockError(ServiceError):
    """Requested quantity exceeds the product's available stock."""

    kind = "insufficient_stock"
    status_code = 409

    def __init__(self, product_id: int, available: int | None, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested

    def details(self) -> dict:
        return {
            "productId": self.product_id,
            "available": self.available,
            "requested": self.requested,
        }


class IdempotencyConflictError(ServiceError):
    """An idempotency key was reused with a different request."""

    kind = "idempotency_conflict"
    status_code = 409


class TransientError(ServiceError):
    """Lock timeout, connection loss or a conflicting concurrent write.

    Safe to retry the whole call, ideally with the same idempotency key.
    """

    kind = "transient_error"
    status_code = 503
