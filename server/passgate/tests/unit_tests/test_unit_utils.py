from django.test import SimpleTestCase, override_settings
from fido2.server import Fido2Server

from passgate.utils.webauthn import (
    build_fido2_server,
    webauthn_bytes_to_json_bytes,
    webauthn_json_bytes_to_bytes,
    webauthn_normalize_credential_id,
    webauthn_rp_id,
)


class WebauthnUtilsTest(SimpleTestCase):
    def test_json_bytes_round_trip(self):
        self.assertEqual(webauthn_json_bytes_to_bytes(webauthn_bytes_to_json_bytes(b"abc")), b"abc")

    def test_base64url_with_or_without_padding(self):
        self.assertEqual(webauthn_json_bytes_to_bytes("Y3JlZDE"), b"cred1")
        self.assertEqual(webauthn_json_bytes_to_bytes("Y3JlZDE="), b"cred1")

    def test_unsupported_binary_value(self):
        with self.assertRaises(ValueError):
            webauthn_json_bytes_to_bytes(123)

    def test_credential_id_forms_normalize_to_the_same_value(self):
        self.assertEqual(webauthn_normalize_credential_id(list(b"cred1")), "Y3JlZDE")
        self.assertEqual(webauthn_normalize_credential_id("Y3JlZDE="), "Y3JlZDE")
        self.assertEqual(webauthn_normalize_credential_id("Y3JlZDE"), "Y3JlZDE")

    def test_credential_id_of_unsupported_type(self):
        with self.assertRaises(ValueError):
            webauthn_normalize_credential_id(None)

    @override_settings(WEBAUTHN_RP_ID="auth.example.com", ALLOWED_HOSTS=["api.example.com"])
    def test_rp_id_from_setting(self):
        self.assertEqual(webauthn_rp_id(), "auth.example.com")

    @override_settings(WEBAUTHN_RP_ID="", ALLOWED_HOSTS=["api.example.com", "localhost"])
    def test_rp_id_falls_back_to_first_allowed_host(self):
        self.assertEqual(webauthn_rp_id(), "api.example.com")

    @override_settings(WEBAUTHN_RP_ID="", ALLOWED_HOSTS=[])
    def test_rp_id_default(self):
        self.assertEqual(webauthn_rp_id(), "localhost")

    @override_settings(WEBAUTHN_RP_ID="example.com", WEBAUTHN_ORIGINS=["https://app.example.com"])
    def test_server_uses_configured_rp(self):
        server = build_fido2_server()

        self.assertIsInstance(server, Fido2Server)
        self.assertEqual(server.rp.id, "example.com")
