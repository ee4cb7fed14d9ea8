"""Registration and verification of device-bound passkeys.

Signature checks are delegated to python-fido2. This module adds what the
library leaves to the relying party: one credential per device, single-use
challenges, subject binding and the strictly increasing replay counter.
"""

import logging
import uuid
from dataclasses import dataclass

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from fido2.utils import websafe_encode
from fido2.webauthn import (
    AttestationObject,
    AuthenticatorData,
    CollectedClientData,
    PublicKeyCredentialUserEntity,
)

from passgate.models import Credential, User
from passgate.services import challenge_store, verification_tokens
from passgate.services.verification_tokens import VerificationToken
from passgate.utils import (
    AssertionInvalid,
    ChallengeNotFound,
    CredentialNotFound,
    CredentialSubjectMismatch,
    DeviceAlreadyRegistered,
    RecordNotFound,
    ReplayDetected,
)
from passgate.utils.webauthn import (
    build_attested_credential,
    build_fido2_server,
    encode_public_key,
    webauthn_json_bytes_to_bytes,
    webauthn_normalize_credential_id,
    webauthn_options_to_json,
)

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("passgate.security")

server = build_fido2_server()


@dataclass(frozen=True)
class RegistrationChallenge:
    device_id: str
    challenge: str
    options: dict


@dataclass(frozen=True)
class AuthenticationChallenge:
    correlation_key: str
    challenge: str
    options: dict


def _registration_key(user, device_id: str) -> str:
    return f"{user.pk}:{device_id}"


def _public_key_options(options) -> dict:
    data = dict(options)
    return webauthn_options_to_json(data.get("publicKey", data))


def _existing_credentials(user) -> list:
    existing = []
    for credential in Credential.objects.filter(user=user):
        try:
            existing.append(build_attested_credential(credential.credential_id, credential.public_key))
        except Exception:
            logger.warning("Skipping unreadable credential %s for user %s", credential.pk, user.pk)
            continue
    return existing


def begin_registration(user, device_id: str, device_name: str | None = None) -> RegistrationChallenge:
    """
    Start a passkey registration for `device_id`.

    A device that already has a credential is refused; the caller has to
    delete the old credential first.
    """
    if Credential.objects.filter(device_id=device_id).exists():
        logger.info("Registration refused, device already registered (user=%s)", user.pk)
        raise DeviceAlreadyRegistered(device_id)

    user_entity = PublicKeyCredentialUserEntity(
        id=str(user.pk).encode("utf-8"),
        name=user.email or str(user.pk),
        display_name=user.get_full_name() or user.email or str(user.pk),
    )
    options, state = server.register_begin(
        user=user_entity,
        credentials=_existing_credentials(user),
        resident_key_requirement="preferred",
        user_verification="required",
    )

    challenge_store.put(
        _registration_key(user, device_id),
        challenge_store.Purpose.REGISTRATION,
        {
            "state": state,
            "device_name": device_name or f"Passkey - {user.email}",
        },
        ttl_seconds=settings.PASSGATE_CHALLENGE_TTL_SECONDS,
    )

    return RegistrationChallenge(
        device_id=device_id,
        challenge=state["challenge"],
        options=_public_key_options(options),
    )


def complete_registration(user, device_id: str, credential: dict, credential_id=None) -> Credential:
    """
    Verify the attestation for the pending (user, device) challenge and store the credential.

    The challenge is consumed before verification, so a failed attempt cannot
    be replayed with the same challenge.
    """
    try:
        payload = challenge_store.consume(
            _registration_key(user, device_id),
            challenge_store.Purpose.REGISTRATION,
        )
    except RecordNotFound as exc:
        logger.info("Registration challenge unavailable (%s) for user %s", exc.kind, user.pk)
        raise ChallengeNotFound() from exc

    raw_id = credential_id or credential.get("rawId") or credential.get("id")
    try:
        presented_id = webauthn_normalize_credential_id(raw_id) if raw_id else None
        auth_data = server.register_complete(
            state=payload["state"],
            client_data=CollectedClientData(webauthn_json_bytes_to_bytes(credential["clientDataJSON"])),
            attestation_object=AttestationObject(webauthn_json_bytes_to_bytes(credential["attestationObject"])),
        )
    except Exception as exc:
        logger.info("Attestation verification failed for user %s: %s", user.pk, exc)
        raise AssertionInvalid() from exc

    credential_data = auth_data.credential_data
    attested_id = websafe_encode(credential_data.credential_id)
    if presented_id and presented_id != attested_id:
        logger.info("Presented credential id does not match attestation for user %s", user.pk)
        raise AssertionInvalid()

    try:
        with transaction.atomic():
            record = Credential.objects.create(
                user=user,
                credential_id=attested_id,
                public_key=encode_public_key(credential_data.public_key),
                device_id=device_id,
                sign_count=auth_data.counter,
                name=payload.get("device_name") or "Unnamed Device",
            )
            User.objects.filter(pk=user.pk).update(passkey_enabled=True)
    except IntegrityError as exc:
        raise DeviceAlreadyRegistered(device_id) from exc

    user.passkey_enabled = True
    logger.info("Passkey %s registered for user %s", record.pk, user.pk)
    return record


def begin_authentication(subject_hint: str) -> AuthenticationChallenge:
    """
    Start a passkey login for the claimed address.

    The subject is not looked up here, so the response is the same for known
    and unknown addresses.
    """
    options, state = server.authenticate_begin(user_verification="required")
    correlation_key = uuid.uuid4().hex

    challenge_store.put(
        correlation_key,
        challenge_store.Purpose.AUTHENTICATION,
        {"state": state, "subject": (subject_hint or "").strip().lower()},
        ttl_seconds=settings.PASSGATE_CHALLENGE_TTL_SECONDS,
    )

    return AuthenticationChallenge(
        correlation_key=correlation_key,
        challenge=state["challenge"],
        options=_public_key_options(options),
    )


def complete_authentication(correlation_key: str, credential_id, assertion: dict) -> VerificationToken:
    """
    Verify a signed assertion and mint a single-use verification token.

    Raises ChallengeNotFound, CredentialNotFound (or CredentialSubjectMismatch),
    AssertionInvalid or ReplayDetected. Callers facing the public must not
    tell these apart in their responses.
    """
    try:
        payload = challenge_store.consume(correlation_key, challenge_store.Purpose.AUTHENTICATION)
    except RecordNotFound as exc:
        logger.info("Authentication challenge unavailable (%s)", exc.kind)
        raise ChallengeNotFound() from exc

    try:
        normalized_id = webauthn_normalize_credential_id(credential_id)
    except ValueError as exc:
        raise CredentialNotFound() from exc

    credential = Credential.objects.select_related("user").filter(credential_id=normalized_id).first()
    if credential is None:
        logger.info("Assertion for unknown credential")
        raise CredentialNotFound()

    subject = payload.get("subject", "")
    if (credential.user.email or "").strip().lower() != subject:
        security_logger.warning(
            "Credential %s presented for a different subject than its owner (user=%s)",
            credential.pk,
            credential.user_id,
        )
        raise CredentialSubjectMismatch()

    try:
        auth_data = AuthenticatorData(webauthn_json_bytes_to_bytes(assertion["authenticatorData"]))
        attested = build_attested_credential(credential.credential_id, credential.public_key)
        server.authenticate_complete(
            state=payload["state"],
            credentials=[attested],
            credential_id=webauthn_json_bytes_to_bytes(normalized_id),
            client_data=CollectedClientData(webauthn_json_bytes_to_bytes(assertion["clientDataJSON"])),
            auth_data=auth_data,
            signature=webauthn_json_bytes_to_bytes(assertion["signature"]),
        )
        presented_count = auth_data.counter
    except Exception as exc:
        logger.info("Assertion verification failed for credential %s: %s", credential.pk, exc)
        raise AssertionInvalid() from exc

    if presented_count <= credential.sign_count:
        security_logger.error(
            "Replay detected for credential %s (stored=%s presented=%s)",
            credential.pk,
            credential.sign_count,
            presented_count,
        )
        raise ReplayDetected(credential.sign_count, presented_count)

    updated = Credential.objects.filter(
        pk=credential.pk,
        sign_count__lt=presented_count,
    ).update(sign_count=presented_count, last_used_at=timezone.now())
    if not updated:
        security_logger.error(
            "Replay detected for credential %s (concurrent assertion, presented=%s)",
            credential.pk,
            presented_count,
        )
        raise ReplayDetected(credential.sign_count, presented_count)

    logger.info("Passkey assertion verified for user %s", credential.user_id)
    return verification_tokens.mint(subject)


def list_credentials(user):
    return Credential.objects.filter(user=user).order_by("created_at")


def get_credential(user, credential_id) -> Credential:
    try:
        normalized_id = webauthn_normalize_credential_id(credential_id)
    except ValueError as exc:
        raise CredentialNotFound() from exc

    credential = Credential.objects.filter(user=user, credential_id=normalized_id).first()
    if credential is None:
        raise CredentialNotFound()
    return credential


def delete_credential(user, credential_id) -> None:
    """Delete one of the user's credentials and keep the profile flag in sync."""
    try:
        normalized_id = webauthn_normalize_credential_id(credential_id)
    except ValueError as exc:
        raise CredentialNotFound() from exc

    with transaction.atomic():
        deleted, _ = Credential.objects.filter(user=user, credential_id=normalized_id).delete()
        if not deleted:
            raise CredentialNotFound()
        if not Credential.objects.filter(user=user).exists():
            User.objects.filter(pk=user.pk).update(passkey_enabled=False)
            user.passkey_enabled = False

    logger.info("Passkey deleted for user %s", user.pk)
