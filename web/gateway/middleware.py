"""Gateway middleware: request correlation and API payload limits.

``RequestIdMiddleware`` gives every request an identifier, taken from the
incoming ``X-Request-ID`` header or generated as a UUIDv4. The id is stored
on the request, in the ``REQUEST_ID_CTX`` ContextVar (read by the logging
filter) and echoed back in the ``X-Request-ID`` response header. Each
handled request is logged once with method, path, status and duration.

``ApiSizeLimitMiddleware`` rejects ``/api/`` requests whose declared body is
larger than ``settings.API_MAX_BYTES`` with a 413 envelope.
"""

import contextvars
import logging
import time
import uuid

from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone
from django.utils.deprecation import MiddlewareMixin

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")

logger = logging.getLogger("storefront.gateway")


class RequestIdMiddleware(MiddlewareMixin):
    """Assign, propagate and log a per-request identifier.

    Attributes:
        HEADER (str): Incoming header name as found in ``request.META``.
        RESPONSE_HEADER (str): Header added to outgoing responses.
    """

    HEADER = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def process_request(self, request):
        rid = request.META.get(self.HEADER) or str(uuid.uuid4())
        request.request_id = rid
        request._started_at = time.monotonic()
        request._rid_token = REQUEST_ID_CTX.set(rid)

    def process_response(self, request, response):
        """Set the response header, log the request and reset the ContextVar."""
        rid = getattr(request, "request_id", REQUEST_ID_CTX.get())
        response[self.RESPONSE_HEADER] = rid

        started = getattr(request, "_started_at", None)
        elapsed_ms = round((time.monotonic() - started) * 1000, 2) if started is not None else None
        logger.info(
            "request handled",
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": elapsed_ms,
            },
        )

        token = getattr(request, "_rid_token", None)
        if token is not None:
            REQUEST_ID_CTX.reset(token)
        return response


class ApiSizeLimitMiddleware(MiddlewareMixin):
    """Refuse oversized API payloads before they reach a view."""

    def process_request(self, request):
        if not request.path.startswith("/api/"):
            return None
        clen = request.META.get("CONTENT_LENGTH")
        limit = getattr(settings, "API_MAX_BYTES", 1024 * 1024)
        if clen and clen.isdigit() and int(clen) > limit:
            logger.warning("payload too large", extra={"path": request.path, "content_length": int(clen)})
            return JsonResponse(
                {
                    "status": "error",
                    "error": "payload_too_large",
                    "message": f"Request body exceeds {limit} bytes",
                    "statusCode": 413,
                    "timestamp": timezone.now().isoformat(),
                },
                status=413,
            )
        return None
