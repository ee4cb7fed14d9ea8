from celery import shared_task
import logging

from passgate.services import challenge_store

logger = logging.getLogger(__name__)


@shared_task
def purge_expired_records():
    """
    Periodic task removing ephemeral records past their TTL.

    Reads never depend on this having run; it only keeps the table small.
    """
    count = challenge_store.purge_expired()
    logger.info(f"Purged {count} expired ephemeral records")
    return count
