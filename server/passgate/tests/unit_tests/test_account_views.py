from unittest.mock import patch

import pyotp
from django.core.cache import cache
from django.test import TestCase
from fido2.utils import websafe_encode
from rest_framework.test import APIClient

from passgate.models import Credential, User
from passgate.services import step_up


@patch("passgate.services.step_up.get_random_string", return_value="123456")
@patch("passgate.services.step_up.deliver_step_up_code")
class ContactChangeViewsTest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create(email="test@example.com", username="test@example.com")
        self.client.force_authenticate(user=self.user)

    def test_email_change_end_to_end(self, _mock_deliver, _mock_random):
        start = self.client.post(
            "/api/profile/contact/change/start/",
            {"kind": "email", "value": "New@Example.com"},
            format="json",
        )
        self.assertEqual(start.status_code, 200)
        self.assertEqual(start.data["destination"], "t***@example.com")

        old = self.client.post(
            "/api/profile/contact/change/verify-old/",
            {"kind": "email", "code": "123456"},
            format="json",
        )
        self.assertEqual(old.status_code, 200)
        self.assertEqual(old.data["destination"], "n***@example.com")

        new = self.client.post(
            "/api/profile/contact/change/verify-new/",
            {"kind": "email", "code": "123456"},
            format="json",
        )
        self.assertEqual(new.status_code, 200)
        self.assertEqual(new.data["user"]["email"], "new@example.com")

    def test_phone_number_must_be_e164(self, _mock_deliver, _mock_random):
        response = self.client.post(
            "/api/profile/contact/change/start/",
            {"kind": "phone", "value": "555-0100"},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("value", response.data["error"]["details"])

    def test_address_in_use_conflicts(self, _mock_deliver, _mock_random):
        User.objects.create(email="taken@example.com", username="taken@example.com")

        response = self.client.post(
            "/api/profile/contact/change/start/",
            {"kind": "email", "value": "taken@example.com"},
            format="json",
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["error"]["code"], "CONTACT_IN_USE")

    def test_verify_new_without_pending_change(self, _mock_deliver, _mock_random):
        response = self.client.post(
            "/api/profile/contact/change/verify-new/",
            {"kind": "email", "code": "123456"},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"]["code"], "CONTACT_CHANGE_MISSING")


@patch("passgate.services.step_up.get_random_string", return_value="123456")
@patch("passgate.services.step_up.deliver_step_up_code")
class AccountDeleteViewTest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create(email="test@example.com", username="test@example.com")
        Credential.objects.create(
            user=self.user,
            credential_id=websafe_encode(b"cred1"),
            public_key="pk",
            device_id="deviceA",
        )
        self.client.force_authenticate(user=self.user)

    def test_delete_requires_step_up(self, _mock_deliver, _mock_random):
        response = self.client.post("/api/account/delete/", {}, format="json")

        self.assertEqual(response.status_code, 403)
        self.assertTrue(User.objects.filter(email="test@example.com").exists())

    def test_delete_after_code(self, _mock_deliver, _mock_random):
        self.client.post("/api/auth/step-up/send/", {"purpose": step_up.ACCOUNT_DELETION}, format="json")
        self.client.post(
            "/api/auth/step-up/verify/",
            {"purpose": step_up.ACCOUNT_DELETION, "code": "123456"},
            format="json",
        )

        response = self.client.post("/api/account/delete/", {}, format="json")

        self.assertEqual(response.status_code, 204)
        self.assertFalse(User.objects.filter(email="test@example.com").exists())
        self.assertFalse(Credential.objects.exists())

    def test_credential_deletion_grant_does_not_authorize_account_deletion(self, _mock_deliver, _mock_random):
        step_up.grant(self.user, step_up.CREDENTIAL_DELETION)

        response = self.client.post("/api/account/delete/", {}, format="json")

        self.assertEqual(response.status_code, 403)


class TotpViewsTest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create(email="test@example.com", username="test@example.com")
        self.client.force_authenticate(user=self.user)

    def test_setup_and_confirm(self):
        setup = self.client.post("/api/auth/totp/setup/", {}, format="json")
        self.assertEqual(setup.status_code, 200)
        secret = pyotp.parse_uri(setup.data["provisioning_uri"]).secret

        confirm = self.client.post("/api/auth/totp/confirm/", {"code": pyotp.TOTP(secret).now()}, format="json")

        self.assertEqual(confirm.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.two_factor_enabled)

    def test_confirm_requires_code(self):
        response = self.client.post("/api/auth/totp/confirm/", {}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"]["code"], "MISSING_CODE")
