from collections.abc import Mapping
from enum import Enum
from typing import Any

from django.conf import settings
from fido2 import cbor
from fido2.cose import CoseKey
from fido2.server import Fido2Server
from fido2.utils import websafe_decode, websafe_encode
from fido2.webauthn import Aaguid, AttestedCredentialData, PublicKeyCredentialRpEntity


def webauthn_rp_id() -> str:
    """Relying party id: explicit setting first, then the first allowed host."""
    rp_id = (getattr(settings, "WEBAUTHN_RP_ID", "") or "").strip()
    if rp_id:
        return rp_id
    if settings.ALLOWED_HOSTS:
        return settings.ALLOWED_HOSTS[0]
    return "localhost"


def build_fido2_server() -> Fido2Server:
    rp = PublicKeyCredentialRpEntity(
        id=webauthn_rp_id(),
        name=getattr(settings, "WEBAUTHN_RP_NAME", "passgate"),
    )
    origins = set(getattr(settings, "WEBAUTHN_ORIGINS", []) or [])
    if origins:
        return Fido2Server(rp, verify_origin=lambda origin: origin in origins)
    return Fido2Server(rp)


def webauthn_bytes_to_json_bytes(value: bytes) -> list[int]:
    """
    Convert raw bytes to a JSON-safe byte array (list of ints 0-255).

    This format is easy to consume in the browser:
        new Uint8Array(challenge).buffer
    """
    return list(value)


def webauthn_json_bytes_to_bytes(value: Any) -> bytes:
    """
    Convert a JSON WebAuthn binary field into raw bytes.

    Supported inputs:
    - list[int]: JSON byte array
    - str: base64url (padding optional)
    """
    if isinstance(value, list):
        return bytes(value)

    if isinstance(value, str):
        return websafe_decode(value.rstrip("="))

    raise ValueError("Unsupported WebAuthn binary value type")


def webauthn_options_to_json(value: Any) -> Any:
    """
    Turn fido2 creation or request options into JSON-safe data.

    Binary fields (challenge, user id, credential descriptor ids) become
    unpadded base64url strings, the same form credential ids are stored in.
    """
    if isinstance(value, bytes):
        return websafe_encode(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {key: webauthn_options_to_json(item) for key, item in value.items() if item is not None}
    if isinstance(value, (list, tuple)):
        return [webauthn_options_to_json(item) for item in value]
    return value


def webauthn_normalize_credential_id(value: Any) -> str:
    """
    Normalize a credential id coming from the frontend into unpadded base64url.

    Credential ids are stored in this form, so lookups work whether the
    frontend sends a byte-array or a (padded or unpadded) base64url string.
    """
    if isinstance(value, list):
        return websafe_encode(bytes(value))

    if isinstance(value, str):
        try:
            raw = webauthn_json_bytes_to_bytes(value)
        except ValueError:
            return value
        return websafe_encode(raw)

    raise ValueError("Unsupported credential id value type")


def encode_public_key(public_key: CoseKey) -> str:
    return websafe_encode(cbor.encode(public_key))


def build_attested_credential(credential_id: str, public_key: str) -> AttestedCredentialData:
    """Rebuild the fido2 credential object from the stored base64url columns."""
    raw_id = webauthn_json_bytes_to_bytes(credential_id)
    cose_key = CoseKey.parse(cbor.decode(webauthn_json_bytes_to_bytes(public_key)))
    return AttestedCredentialData.create(Aaguid.NONE, raw_id, cose_key)
