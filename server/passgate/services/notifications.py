"""Out-of-band delivery of step-up codes (email through Django mail, SMS through an HTTP gateway)."""

import logging

import requests
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)

CHANNEL_EMAIL = "email"
CHANNEL_SMS = "sms"
CHANNELS = (CHANNEL_EMAIL, CHANNEL_SMS)

SUBJECTS = {
    "contact-change-old": "Confirm your contact change",
    "contact-change-new": "Verify your new contact address",
    "account-deletion": "Confirm account deletion",
    "credential-deletion": "Confirm passkey removal",
}


def mask_address(address: str) -> str:
    if not address:
        return ""
    if "@" in address:
        local, _, domain = address.partition("@")
        return f"{local[:1]}***@{domain}"
    return f"***{address[-2:]}"


def render_message(purpose: str, code: str, ttl_minutes: int, new_address: str | None = None) -> tuple[str, str]:
    subject = SUBJECTS.get(purpose, "Your verification code")
    if purpose == "contact-change-old" and new_address:
        lead = f"Your code to authorize changing your contact address to {new_address} is: {code}"
    else:
        lead = f"Your verification code is: {code}"
    body = (
        f"{lead}\n\n"
        f"This code will expire in {ttl_minutes} minutes.\n\n"
        "If you didn't request this code, please ignore this message."
    )
    return subject, body


def send_email_code(address: str, subject: str, body: str) -> None:
    send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [address], fail_silently=False)
    logger.info("Step-up code emailed to %s", mask_address(address))


def send_sms_code(number: str, body: str) -> bool:
    """Post the message to the configured SMS gateway. Returns False when no gateway is set up."""
    url = (getattr(settings, "SMS_GATEWAY_URL", "") or "").strip()
    if not url:
        logger.warning("SMS gateway not configured, code for %s not sent", mask_address(number))
        return False

    headers = {"Content-Type": "application/json"}
    token = getattr(settings, "SMS_GATEWAY_TOKEN", "")
    if token:
        headers["Authorization"] = f"Bearer {token}"

    response = requests.post(url, json={"to": number, "message": body}, headers=headers, timeout=10)
    response.raise_for_status()
    logger.info("Step-up code sent by SMS to %s", mask_address(number))
    return True
