"""Step-up verification for sensitive account mutations.

Two interchangeable proofs exist for the same gated operation:

- an out-of-band numeric code (`send_code` / `verify_code`), limited to a
  fixed number of attempts per issued code;
- re-authentication with the account secret and, when enrolled, a TOTP
  second factor (`verify_secret`), a pure check with no stored state.

After a successful code check through the API a short single-use grant is
left behind so the gated request can follow; a gated request may instead carry
the secret inline. `require_step_up` accepts either.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime

import pyotp
from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.utils.crypto import constant_time_compare, get_random_string, salted_hmac

from passgate.models import User
from passgate.services import challenge_store
from passgate.services.notifications import CHANNEL_EMAIL, CHANNEL_SMS
from passgate.tasks.notifications import deliver_step_up_code
from passgate.utils import (
    CodeIncorrect,
    NoDestination,
    RecordNotFound,
    SecondFactorIncorrect,
    SecondFactorRequired,
    SecretIncorrect,
    StepUpCodeNotFound,
    StepUpRequired,
)

logger = logging.getLogger(__name__)

CONTACT_CHANGE_OLD = "contact-change-old"
CONTACT_CHANGE_NEW = "contact-change-new"
ACCOUNT_DELETION = "account-deletion"
CREDENTIAL_DELETION = "credential-deletion"
OTP_PURPOSES = (CONTACT_CHANGE_OLD, CONTACT_CHANGE_NEW, ACCOUNT_DELETION, CREDENTIAL_DELETION)

# Purposes a client may request directly; contact-change codes are only issued by the change chain.
GATED_PURPOSES = (ACCOUNT_DELETION, CREDENTIAL_DELETION)


class SecretCheck(str, enum.Enum):
    VERIFIED = "verified"
    NEEDS_SECOND_FACTOR = "needs_second_factor"


@dataclass(frozen=True)
class IssuedCode:
    purpose: str
    channel: str
    destination: str
    expires_at: datetime
    code: str


def _otp_key(user, purpose: str) -> str:
    return f"{user.pk}:{purpose}"


def _digest(user, purpose: str, code: str) -> str:
    return salted_hmac("passgate.step-up", f"{user.pk}:{purpose}:{code}").hexdigest()


def _ttl_minutes() -> int:
    return max(settings.PASSGATE_STEP_UP_CODE_TTL_SECONDS // 60, 1)


def send_code(user, purpose: str, destination: str | None = None, channel: str | None = None,
              new_address: str | None = None) -> IssuedCode:
    """Issue a fresh code for `purpose`, replacing any outstanding one, and hand it to delivery."""
    if purpose not in OTP_PURPOSES:
        raise ValueError(f"Unknown step-up purpose: {purpose}")

    channel = channel or CHANNEL_EMAIL
    if destination is None:
        destination = user.phone_number if channel == CHANNEL_SMS else user.email
    if not destination:
        raise NoDestination()

    code = get_random_string(settings.PASSGATE_STEP_UP_CODE_LENGTH, allowed_chars="0123456789")
    record = challenge_store.put(
        _otp_key(user, purpose),
        challenge_store.Purpose.STEP_UP,
        {
            "digest": _digest(user, purpose, code),
            "channel": channel,
            "destination": destination,
        },
        ttl_seconds=settings.PASSGATE_STEP_UP_CODE_TTL_SECONDS,
    )

    deliver_step_up_code.delay(channel, destination, purpose, code, _ttl_minutes(), new_address)
    logger.info("Step-up code issued for user %s (%s via %s)", user.pk, purpose, channel)
    return IssuedCode(
        purpose=purpose,
        channel=channel,
        destination=destination,
        expires_at=record.expires_at,
        code=code,
    )


def verify_code(user, purpose: str, code) -> None:
    """
    Check `code` against the outstanding record for `purpose`.

    Raises StepUpCodeNotFound (no live record), CodeIncorrect (mismatch,
    attempts left) or AttemptsExhausted (limit reached, record invalidated).
    On success the record is consumed.
    """
    try:
        record = challenge_store.get_record(_otp_key(user, purpose), challenge_store.Purpose.STEP_UP)
    except RecordNotFound as exc:
        logger.info("Step-up code unavailable for user %s (%s, %s)", user.pk, purpose, exc.kind)
        raise StepUpCodeNotFound() from exc

    presented = str(code or "").strip()
    if not constant_time_compare(record.payload.get("digest", ""), _digest(user, purpose, presented)):
        try:
            remaining = challenge_store.record_failed_attempt(
                record,
                settings.PASSGATE_STEP_UP_MAX_ATTEMPTS,
            )
        except RecordNotFound as exc:
            # Re-sent while this check was running; the new code keeps its attempts.
            raise StepUpCodeNotFound() from exc
        logger.info("Incorrect step-up code for user %s (%s), %s attempts left", user.pk, purpose, remaining)
        raise CodeIncorrect(remaining)

    if not challenge_store.consume_record(record):
        raise StepUpCodeNotFound()
    logger.info("Step-up code verified for user %s (%s)", user.pk, purpose)


def verify_secret(email: str, secret: str, second_factor: str | None = None) -> SecretCheck:
    """
    Re-authenticate without creating a session.

    Returns NEEDS_SECOND_FACTOR when the password is right but an enrolled
    TOTP was not supplied, so the caller can ask for it without asking for
    the password again.
    """
    user = User.objects.filter(email__iexact=(email or "").strip(), is_active=True).first()
    if user is None:
        # Same hashing cost as a real check.
        make_password(secret or "")
        raise SecretIncorrect()

    if not user.has_usable_password():
        make_password(secret or "")
        logger.info("Secret verification for user %s without a password", user.pk)
        raise SecretIncorrect()

    if not secret or not user.check_password(secret):
        logger.info("Secret verification failed for user %s", user.pk)
        raise SecretIncorrect()

    if not user.two_factor_enabled:
        return SecretCheck.VERIFIED

    if not second_factor:
        return SecretCheck.NEEDS_SECOND_FACTOR

    if not pyotp.TOTP(user.totp_secret).verify(str(second_factor).strip(), valid_window=1):
        logger.info("Second factor verification failed for user %s", user.pk)
        raise SecondFactorIncorrect()

    return SecretCheck.VERIFIED


def grant(user, purpose: str) -> None:
    challenge_store.put(
        _otp_key(user, purpose),
        challenge_store.Purpose.STEP_UP_GRANT,
        {"purpose": purpose},
        ttl_seconds=settings.PASSGATE_STEP_UP_GRANT_TTL_SECONDS,
    )


def require_step_up(user, purpose: str, data) -> str:
    """
    Authorize one gated operation for `purpose`.

    An inline `password` (plus `totp_code` when enrolled) is checked on the
    spot; otherwise the grant left by a verified code is consumed. Returns the
    method that was accepted.
    """
    secret = data.get("password")
    if secret:
        result = verify_secret(user.email, secret, data.get("totp_code"))
        if result is SecretCheck.NEEDS_SECOND_FACTOR:
            raise SecondFactorRequired()
        return "secret"

    try:
        challenge_store.consume(_otp_key(user, purpose), challenge_store.Purpose.STEP_UP_GRANT)
    except RecordNotFound as exc:
        raise StepUpRequired() from exc
    return "code"
