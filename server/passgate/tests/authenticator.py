"""
Software WebAuthn authenticator for tests.

Produces real ES256 "none" attestations and signed assertions, so the fido2
verification path runs without a browser or a hardware key.
"""

import hashlib
import json
import os

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from fido2.cose import ES256
from fido2.utils import websafe_encode
from fido2.webauthn import Aaguid, AttestationObject, AttestedCredentialData, AuthenticatorData

FLAG_UP = 0x01
FLAG_UV = 0x04
FLAG_AT = 0x40


def client_data_json(kind: str, challenge: str, origin: str = "https://localhost") -> bytes:
    return json.dumps(
        {"type": kind, "challenge": challenge, "origin": origin, "crossOrigin": False}
    ).encode("utf-8")


class SoftAuthenticator:
    """One credential on one device."""

    def __init__(self, rp_id: str = "localhost", origin: str | None = None, credential_id: bytes | None = None):
        self.rp_id = rp_id
        self.origin = origin or f"https://{rp_id}"
        # 0x9f is not valid UTF-8, so raw bytes leaking into a JSON response fail loudly.
        self.credential_id = credential_id or b"\x9f" + os.urandom(31)
        self.private_key = ec.generate_private_key(ec.SECP256R1())
        self.rp_id_hash = hashlib.sha256(rp_id.encode("utf-8")).digest()

    @property
    def websafe_id(self) -> str:
        return websafe_encode(self.credential_id)

    def attestation(self, challenge: str, counter: int = 0) -> dict:
        """Browser-shaped `credential` body for register/complete."""
        credential_data = AttestedCredentialData.create(
            Aaguid.NONE,
            self.credential_id,
            ES256.from_cryptography_key(self.private_key.public_key()),
        )
        auth_data = AuthenticatorData.create(
            self.rp_id_hash,
            FLAG_UP | FLAG_UV | FLAG_AT,
            counter,
            credential_data,
        )
        attestation_object = AttestationObject.create("none", auth_data, {})
        return {
            "id": self.websafe_id,
            "rawId": self.websafe_id,
            "clientDataJSON": websafe_encode(client_data_json("webauthn.create", challenge, self.origin)),
            "attestationObject": websafe_encode(attestation_object),
        }

    def assertion(self, challenge: str, counter: int) -> dict:
        """Browser-shaped `credential` body for login/complete."""
        auth_data = AuthenticatorData.create(self.rp_id_hash, FLAG_UP | FLAG_UV, counter)
        client_data = client_data_json("webauthn.get", challenge, self.origin)
        signature = self.private_key.sign(
            bytes(auth_data) + hashlib.sha256(client_data).digest(),
            ec.ECDSA(hashes.SHA256()),
        )
        return {
            "id": self.websafe_id,
            "rawId": self.websafe_id,
            "clientDataJSON": websafe_encode(client_data),
            "authenticatorData": websafe_encode(auth_data),
            "signature": websafe_encode(signature),
        }
