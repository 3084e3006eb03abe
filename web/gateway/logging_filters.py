"""Logging filter that stamps records with the current request id.

Registered in ``settings.LOGGING`` so formatters can reference
``%(request_id)s`` without every call site passing it explicitly.
"""

from logging import Filter, LogRecord

from .middleware import REQUEST_ID_CTX


class RequestIdFilter(Filter):
    """Attach ``request_id`` to log records.

    Records emitted outside a request (management commands, startup) get a
    hyphen so the JSON formatter always has a value. A ``request_id``
    passed explicitly through ``extra`` is left untouched.
    """

    def filter(self, record: LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = REQUEST_ID_CTX.get()
        return True
