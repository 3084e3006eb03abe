"""Health endpoint: database reachability and pending migrations."""

import logging

from django.db import DatabaseError, connection
from django.db.migrations.executor import MigrationExecutor
from django.http import JsonResponse

logger = logging.getLogger("storefront.gateway")


def _db_ok() -> bool:
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
        return True
    except DatabaseError:
        logger.exception("health: database unreachable")
        return False


def _pending_migrations() -> list[str]:
    executor = MigrationExecutor(connection)
    plan = executor.migration_plan(executor.loader.graph.leaf_nodes())
    return [f"{m.app_label}.{m.name}" for m, _backwards in plan]


def live_view(_request):
    """Process liveness only; touches no database."""
    return JsonResponse({"ok": True})


def health_view(_request):
    db_ok = _db_ok()
    pending = _pending_migrations() if db_ok else []
    ok = db_ok and not pending
    return JsonResponse(
        {
            "ok": ok,
            "components": {
                "db": {"ok": db_ok, "vendor": connection.vendor},
                "migrations": {"ok": db_ok and not pending, "pending": pending},
            },
        },
        status=200 if ok else 503,
    )
