"""Single-use bridge between a verified passkey assertion and the login state machine."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime

from django.conf import settings

from passgate.services import challenge_store
from passgate.utils import RecordNotFound, VerificationTokenInvalid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationToken:
    value: str
    subject: str
    expires_at: datetime


def _token_key(subject: str, token: str) -> str:
    return f"{subject.strip().lower()}:{token}"


def mint(subject: str) -> VerificationToken:
    token = secrets.token_urlsafe(32)
    record = challenge_store.put(
        _token_key(subject, token),
        challenge_store.Purpose.VERIFICATION,
        {"subject": subject.strip().lower(), "verified": True},
        ttl_seconds=settings.PASSGATE_VERIFICATION_TOKEN_TTL_SECONDS,
    )
    return VerificationToken(value=token, subject=record.payload["subject"], expires_at=record.expires_at)


def redeem(subject: str, token: str) -> None:
    """
    Consume the token issued for `subject`.

    The record is deleted as soon as it is found, so a token that fails the
    checks below is gone as well. Raises VerificationTokenInvalid.
    """
    if not subject or not token:
        raise VerificationTokenInvalid()
    try:
        payload = challenge_store.consume(
            _token_key(subject, token),
            challenge_store.Purpose.VERIFICATION,
        )
    except RecordNotFound as exc:
        logger.info("Verification token rejected: %s", exc.kind)
        raise VerificationTokenInvalid() from exc

    if payload.get("verified") is not True or payload.get("subject") != subject.strip().lower():
        logger.warning("Verification token payload did not match the claimed subject")
        raise VerificationTokenInvalid()
