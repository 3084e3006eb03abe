"""Idempotency-key records for order placement.

Keys are claimed and bound inside the same transaction that creates the
order, so a key is never visible without its order and a failed attempt
leaves no key behind. Two concurrent requests with the same key serialize
on the primary-key index: the second insert waits for the first
transaction, then either succeeds (the first rolled back) or sees the
committed record and replays its order.
"""

from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction

from apps.common.errors import IdempotencyConflictError

from .models import IdempotencyKey


def claim(key: str, request_hash: str, using: str = DEFAULT_DB_ALIAS) -> IdempotencyKey | None:
    """Claim ``key`` for the current transaction.

    Behavior:
        - New key: insert a record and return None; the caller goes on to
          create the order and ``bind`` it.
        - Existing key, same request hash: lock the record and return it so
          the caller can replay its order.
        - Existing key, different hash: raise ``IdempotencyConflictError``.

    The insert runs in a nested savepoint so an ``IntegrityError`` only
    rolls back that block and leaves the outer transaction usable.

    Must be called inside ``transaction.atomic``.

    Args:
        key: Client-provided idempotency key.
        request_hash: Canonical hash of the request being placed.
        using: Database alias.

    Returns:
        IdempotencyKey | None: The existing record, or None if claimed now.
    """
    try:
        with transaction.atomic(using=using):
            IdempotencyKey.objects.using(using).create(key=key, request_hash=request_hash)
            return None
    except IntegrityError:
        rec = IdempotencyKey.objects.using(using).select_for_update().get(key=key)
        if rec.request_hash != request_hash:
            raise IdempotencyConflictError(f"Idempotency key {key!r} was already used for a different request")
        return rec


def bind(key: str, order_id: int, using: str = DEFAULT_DB_ALIAS) -> None:
    """Associate a claimed key with the order created in this transaction."""
    IdempotencyKey.objects.using(using).filter(key=key).update(order_id=order_id)
