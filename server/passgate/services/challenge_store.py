"""Ephemeral, TTL-bounded storage for challenges, tokens and one-time codes.

The store has no protocol logic. It guarantees three things the callers rely on:

- expiry is enforced at read time, so an expired row reads exactly like a
  missing one whether or not the purge task already ran;
- `consume` is a conditional delete: of several callers racing for the same
  record only the one whose DELETE removed the row receives the payload;
- `record_failed_attempt` increments and compares in one UPDATE statement.
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from passgate.models import EphemeralRecord
from passgate.utils import AttemptsExhausted, RecordExpired, RecordNotFound

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("passgate.security")

Purpose = EphemeralRecord.Purpose


def _live_record(key: str, purpose: str) -> EphemeralRecord:
    record = EphemeralRecord.objects.filter(key=key, purpose=purpose).first()
    if record is None:
        raise RecordNotFound(key=key, purpose=purpose)
    if record.expires_at <= timezone.now():
        EphemeralRecord.objects.filter(pk=record.pk, expires_at__lte=timezone.now()).delete()
        logger.info("Ephemeral %s record expired", purpose)
        raise RecordExpired(key=key, purpose=purpose)
    return record


def put(key: str, purpose: str, payload: dict, ttl_seconds: int) -> EphemeralRecord:
    """
    Store a record, replacing any previous one for the same (key, purpose).

    The replacement is a new row, so callers still holding the old record
    cannot count attempts against or consume the new one.
    """
    expires_at = timezone.now() + timedelta(seconds=ttl_seconds)
    with transaction.atomic():
        EphemeralRecord.objects.filter(key=key, purpose=purpose).delete()
        return EphemeralRecord.objects.create(
            key=key,
            purpose=purpose,
            payload=payload,
            expires_at=expires_at,
        )


def get(key: str, purpose: str) -> dict:
    return _live_record(key, purpose).payload


def get_record(key: str, purpose: str) -> EphemeralRecord:
    return _live_record(key, purpose)


def delete(key: str, purpose: str) -> bool:
    deleted, _ = EphemeralRecord.objects.filter(key=key, purpose=purpose).delete()
    return bool(deleted)


def consume(key: str, purpose: str) -> dict:
    """Atomically read-and-delete a live record. Raises RecordNotFound for everyone but the winner."""
    record = _live_record(key, purpose)
    deleted, _ = EphemeralRecord.objects.filter(
        pk=record.pk,
        expires_at__gt=timezone.now(),
    ).delete()
    if not deleted:
        raise RecordNotFound(key=key, purpose=purpose)
    return record.payload


def consume_record(record: EphemeralRecord) -> bool:
    """Conditional delete of a record previously read with `get_record`."""
    deleted, _ = EphemeralRecord.objects.filter(
        pk=record.pk,
        expires_at__gt=timezone.now(),
    ).delete()
    return bool(deleted)


def record_failed_attempt(record: EphemeralRecord, limit: int) -> int:
    """
    Count one failed attempt against `record` and return the attempts left.

    When the limit is reached the record is deleted and AttemptsExhausted is
    raised; the caller has to start over with a fresh record. RecordNotFound
    means the record was replaced or removed since it was read.
    """
    updated = EphemeralRecord.objects.filter(
        pk=record.pk,
        attempts__lt=limit - 1,
    ).update(attempts=F("attempts") + 1)

    if updated:
        attempts = (
            EphemeralRecord.objects.filter(pk=record.pk)
            .values_list("attempts", flat=True)
            .first()
        )
        return max(limit - (attempts if attempts is not None else limit), 0)

    deleted, _ = EphemeralRecord.objects.filter(pk=record.pk).delete()
    if not deleted:
        raise RecordNotFound(key=record.key, purpose=record.purpose)
    security_logger.warning("Attempt limit reached for %s record, invalidated", record.purpose)
    raise AttemptsExhausted()


def delete_for_keys(*prefixes: str) -> int:
    """Drop every record whose key starts with one of `prefixes` (account deletion)."""
    total = 0
    for prefix in prefixes:
        deleted, _ = EphemeralRecord.objects.filter(key__startswith=prefix).delete()
        total += deleted
    return total


def purge_expired() -> int:
    deleted, _ = EphemeralRecord.objects.filter(expires_at__lte=timezone.now()).delete()
    return deleted
