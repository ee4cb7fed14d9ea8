"""Session issuer driving the custom-challenge login.

This is the component that would be an external identity provider in a hosted
setup: it keeps per-attempt bookkeeping, calls define / create / verify in the
order such providers do, and mints JWTs with simplejwt once the state machine
approves. It never inspects verification tokens itself.
"""

import logging
import secrets
from dataclasses import dataclass

from django.conf import settings
from django.contrib.auth.models import update_last_login
from rest_framework_simplejwt.tokens import RefreshToken

from passgate.models import User
from passgate.services import challenge_store
from passgate.services.auth_state_machine import (
    PASSKEY_AUTH_METHOD,
    CustomChallengeAdapter,
    LoginAttempt,
)
from passgate.utils import LoginDenied, RecordNotFound

logger = logging.getLogger(__name__)

adapter = CustomChallengeAdapter()


@dataclass(frozen=True)
class PendingLogin:
    session: str
    challenge_name: str
    challenge_parameters: dict


@dataclass(frozen=True)
class IssuedSession:
    user: User
    access: str
    refresh: str


def initiate(email: str, auth_method: str | None) -> PendingLogin:
    """First round trip: define, then create the custom challenge."""
    subject = (email or "").strip().lower()
    user = User.objects.filter(email__iexact=subject, is_active=True).first()
    attempt = LoginAttempt(
        subject=subject,
        claims_passkey=auth_method == PASSKEY_AUTH_METHOD,
        passkey_enabled=bool(user and user.passkey_enabled),
    )

    decision = adapter.define(attempt)
    if decision["fail_authentication"] or not decision["challenge_name"]:
        logger.info("Custom login refused at define (passkey claimed=%s)", attempt.claims_passkey)
        raise LoginDenied()

    created = adapter.create(attempt, decision["challenge_name"])
    session = secrets.token_urlsafe(32)
    challenge_store.put(
        session,
        challenge_store.Purpose.LOGIN_ATTEMPT,
        attempt.to_payload(),
        ttl_seconds=settings.PASSGATE_CHALLENGE_TTL_SECONDS,
    )
    return PendingLogin(
        session=session,
        challenge_name=decision["challenge_name"],
        challenge_parameters=created["public_challenge_parameters"],
    )


def respond(session: str, answer: str | None) -> IssuedSession:
    """Second round trip: verify the answer, define again and issue tokens on approval."""
    try:
        payload = challenge_store.consume(session, challenge_store.Purpose.LOGIN_ATTEMPT)
    except RecordNotFound as exc:
        logger.info("Custom login session unavailable (%s)", exc.kind)
        raise LoginDenied() from exc

    attempt = LoginAttempt.from_payload(payload)
    adapter.verify(attempt, answer)
    decision = adapter.define(attempt)
    if not decision["issue_tokens"]:
        logger.info("Custom login denied (state=%s)", attempt.state.value)
        raise LoginDenied()

    user = User.objects.filter(email__iexact=attempt.subject, is_active=True).first()
    if user is None:
        raise LoginDenied()

    refresh = RefreshToken.for_user(user)
    update_last_login(None, user)
    logger.info("Session issued for user %s via passkey", user.pk)
    return IssuedSession(user=user, access=str(refresh.access_token), refresh=str(refresh))
