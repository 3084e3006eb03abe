"""Response envelope helpers used by every API view.

Successful responses are wrapped as ``{status, message, data, timestamp}``;
list endpoints add a ``pagination`` block; failures render as
``{status, error, message, statusCode, timestamp}``.
"""

import math

from django.core.paginator import Paginator
from django.utils import timezone
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .errors import ServiceError

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _now() -> str:
    return timezone.now().isoformat()


def success(data, message: str, status: int = 200, headers: dict | None = None) -> Response:
    body = {"status": "success", "message": message, "data": data, "timestamp": _now()}
    return Response(body, status=status, headers=headers)


def error(kind: str, message: str, status: int, **extra) -> Response:
    body = {
        "status": "error",
        "error": kind,
        "message": message,
        "statusCode": status,
        "timestamp": _now(),
    }
    body.update(extra)
    return Response(body, status=status)


def error_response(exc: ServiceError) -> Response:
    """Render a ``ServiceError`` with its kind, status and extra details."""
    return error(exc.kind, exc.message, exc.status_code, **exc.details())


def page_params(query) -> tuple[int, int]:
    """Parse ``page`` and ``limit`` query params.

    Invalid values fall back to the defaults; ``page`` is at least 1 and
    ``limit`` is clamped to ``[1, MAX_LIMIT]``.
    """
    try:
        page = int(query.get("page", 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(query.get("limit", DEFAULT_LIMIT))
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    return max(1, page), min(MAX_LIMIT, max(1, limit))


def paginate(queryset, page: int, limit: int):
    """Return ``(items, total)`` for one page of ``queryset``.

    Pages past the end yield an empty list rather than the last page.
    """
    p = Paginator(queryset, limit)
    if page > p.num_pages:
        return [], p.count
    return list(p.page(page).object_list), p.count


def paginated(data: list, message: str, page: int, limit: int, total: int) -> Response:
    body = {
        "status": "success",
        "message": message,
        "data": data,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
        "timestamp": _now(),
    }
    return Response(body, status=200)


def api_exception_handler(exc, context):
    """DRF ``EXCEPTION_HANDLER`` rendering framework errors in the envelope.

    Malformed JSON becomes ``validation_error``; other DRF exceptions keep
    their ``default_code`` (``throttled``, ``method_not_allowed``, ...).
    Anything DRF does not handle is left to Django (500).
    """
    response = exception_handler(exc, context)
    if response is None:
        return None
    code = getattr(exc, "default_code", "error")
    kind = "validation_error" if code == "parse_error" else code
    detail = getattr(exc, "detail", None)
    wrapped = error(kind, str(detail) if detail is not None else str(exc), response.status_code)
    for name, value in response.items():
        wrapped[name] = value
    return wrapped
