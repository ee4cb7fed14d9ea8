import logging
import smtplib

import requests
from celery import shared_task

from passgate.services import notifications

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def deliver_step_up_code(self, channel, destination, purpose, code, ttl_minutes, new_address=None):
    """
    Deliver a step-up code out of band.

    Delivery is best effort: transport errors are retried a few times, then
    dropped. The user can always request a new code.
    """
    subject, body = notifications.render_message(purpose, code, ttl_minutes, new_address=new_address)
    try:
        if channel == notifications.CHANNEL_SMS:
            return notifications.send_sms_code(destination, body)
        notifications.send_email_code(destination, subject, body)
        return True
    except (requests.RequestException, smtplib.SMTPException, OSError) as exc:
        logger.warning(
            f"Delivering {purpose} code to {notifications.mask_address(destination)} failed: {exc}"
        )
        raise self.retry(exc=exc, countdown=30)
