"""Account mutations gated by step-up: contact changes, account deletion and TOTP enrollment."""

import logging

import pyotp
from django.conf import settings
from django.db import IntegrityError, transaction

from passgate.models import User
from passgate.services import challenge_store, step_up
from passgate.services.notifications import CHANNEL_EMAIL, CHANNEL_SMS
from passgate.utils import (
    ContactChangeNotFound,
    ContactInUse,
    RecordNotFound,
    SecondFactorAlreadyEnrolled,
    SecondFactorIncorrect,
)

logger = logging.getLogger(__name__)

CONTACT_EMAIL = "email"
CONTACT_PHONE = "phone"
CONTACT_CHANNELS = {CONTACT_EMAIL: CHANNEL_EMAIL, CONTACT_PHONE: CHANNEL_SMS}
CONTACT_FIELDS = {CONTACT_EMAIL: "email", CONTACT_PHONE: "phone_number"}


def _change_key(user, kind: str) -> str:
    return f"{user.pk}:{kind}"


def _pending_change(user, kind: str, stage: str) -> dict:
    try:
        pending = challenge_store.get(_change_key(user, kind), challenge_store.Purpose.CONTACT_CHANGE)
    except RecordNotFound as exc:
        raise ContactChangeNotFound() from exc
    if pending.get("stage") != stage:
        raise ContactChangeNotFound()
    return pending


def _address_taken(kind: str, value: str, user) -> bool:
    field = CONTACT_FIELDS[kind]
    lookup = {f"{field}__iexact": value}
    return User.objects.filter(**lookup).exclude(pk=user.pk).exists()


def start_contact_change(user, kind: str, new_value: str) -> step_up.IssuedCode:
    """
    Stage one: remember the new address and prove control of the current one.

    Accounts without a phone number yet prove control of their email instead.
    """
    if _address_taken(kind, new_value, user):
        raise ContactInUse()

    challenge_store.put(
        _change_key(user, kind),
        challenge_store.Purpose.CONTACT_CHANGE,
        {"kind": kind, "new_value": new_value, "stage": "old"},
        ttl_seconds=settings.PASSGATE_STEP_UP_CODE_TTL_SECONDS * 2,
    )

    current = getattr(user, CONTACT_FIELDS[kind])
    channel = CONTACT_CHANNELS[kind] if current else CHANNEL_EMAIL
    return step_up.send_code(
        user,
        step_up.CONTACT_CHANGE_OLD,
        destination=current or user.email,
        channel=channel,
        new_address=new_value,
    )


def confirm_old_contact(user, kind: str, code) -> step_up.IssuedCode:
    """Stage two: the old address checked out, now send a code to the new one."""
    pending = _pending_change(user, kind, "old")
    step_up.verify_code(user, step_up.CONTACT_CHANGE_OLD, code)

    challenge_store.put(
        _change_key(user, kind),
        challenge_store.Purpose.CONTACT_CHANGE,
        {**pending, "stage": "new"},
        ttl_seconds=settings.PASSGATE_STEP_UP_CODE_TTL_SECONDS * 2,
    )
    return step_up.send_code(
        user,
        step_up.CONTACT_CHANGE_NEW,
        destination=pending["new_value"],
        channel=CONTACT_CHANNELS[kind],
    )


def confirm_new_contact(user, kind: str, code):
    """Final stage: the new address checked out, apply the change."""
    pending = _pending_change(user, kind, "new")
    step_up.verify_code(user, step_up.CONTACT_CHANGE_NEW, code)

    try:
        challenge_store.consume(_change_key(user, kind), challenge_store.Purpose.CONTACT_CHANGE)
    except RecordNotFound as exc:
        raise ContactChangeNotFound() from exc

    field = CONTACT_FIELDS[kind]
    old_value = getattr(user, field)
    setattr(user, field, pending["new_value"])
    update_fields = [field, "updated_at"]
    if kind == CONTACT_EMAIL and user.username == old_value:
        user.username = pending["new_value"]
        update_fields.append("username")

    try:
        with transaction.atomic():
            user.save(update_fields=update_fields)
    except IntegrityError as exc:
        setattr(user, field, old_value)
        raise ContactInUse() from exc

    logger.info("Contact %s changed for user %s", kind, user.pk)
    return user


def delete_account(user) -> None:
    """Remove the user, their credentials (cascade) and every ephemeral record keyed to them."""
    user_pk = user.pk
    with transaction.atomic():
        challenge_store.delete_for_keys(f"{user_pk}:", f"{(user.email or '').lower()}:")
        user.delete()
    logger.info("Account %s deleted", user_pk)


def begin_totp_setup(user) -> str:
    """Store a pending TOTP secret and return its provisioning URI."""
    if user.two_factor_enabled:
        raise SecondFactorAlreadyEnrolled()
    user.totp_secret = pyotp.random_base32()
    user.save(update_fields=["totp_secret", "updated_at"])
    return pyotp.TOTP(user.totp_secret).provisioning_uri(
        name=user.email,
        issuer_name=settings.WEBAUTHN_RP_NAME,
    )


def confirm_totp_setup(user, code) -> None:
    if user.two_factor_enabled:
        raise SecondFactorAlreadyEnrolled()
    if not user.totp_secret or not pyotp.TOTP(user.totp_secret).verify(str(code or "").strip(), valid_window=1):
        raise SecondFactorIncorrect()
    user.two_factor_enabled = True
    user.save(update_fields=["two_factor_enabled", "updated_at"])
    logger.info("TOTP second factor enrolled for user %s", user.pk)
