from django.core.cache import cache
from django.test import TestCase
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from passgate.models import Credential, User
from passgate.tests.authenticator import SoftAuthenticator


class AuthIntegrationTest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def test_jwt_authentication(self):
        user = User.objects.create(email="test@example.com", username="test@example.com")
        refresh = RefreshToken.for_user(user)
        access_token = str(refresh.access_token)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token}")
        response = self.client.get("/api/auth/me/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["email"], "test@example.com")

    def test_unauthorized_access(self):
        response = self.client.get("/api/auth/me/")

        self.assertEqual(response.status_code, 401)

    def test_api_root_lists_endpoints(self):
        response = self.client.get("/api/")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["passkey_login_begin"].endswith("/api/auth/passkey/login/begin/"))


class PasskeyLoginIntegrationTest(TestCase):
    def setUp(self):
        cache.clear()
        self.alice = User.objects.create(email="alice@example.com", username="alice@example.com")
        self.device = SoftAuthenticator()
        self.owner = APIClient()
        self.owner.force_authenticate(user=self.alice)

    def register(self, device, device_id="deviceA"):
        begin = self.owner.post("/api/auth/passkey/register/begin/", {"device_id": device_id}, format="json")
        if begin.status_code != 200:
            return begin
        return self.owner.post(
            "/api/auth/passkey/register/complete/",
            {"device_id": device_id, "credential": device.attestation(begin.json()["challenge"])},
            format="json",
        )

    def login_assertion(self, client, email, counter, device=None):
        device = device or self.device
        begin = client.post("/api/auth/passkey/login/begin/", {"email": email}, format="json")
        return client.post(
            "/api/auth/passkey/login/complete/",
            {
                "authentication_id": begin.json()["authentication_id"],
                "credential": device.assertion(begin.json()["challenge"], counter),
            },
            format="json",
        )

    def custom_login(self, client, email, answer):
        initiate = client.post(
            "/api/auth/custom/initiate/",
            {"email": email, "auth_method": "passkey"},
            format="json",
        )
        if initiate.status_code != 200:
            return initiate
        return client.post(
            "/api/auth/custom/respond/",
            {"session": initiate.data["session"], "answer": answer},
            format="json",
        )

    def test_register_device_twice_conflicts(self):
        first = self.register(self.device)
        second = self.register(SoftAuthenticator())

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 409)
        self.assertEqual(Credential.objects.filter(user=self.alice).count(), 1)

    def test_second_device_registers_and_logs_in(self):
        laptop = SoftAuthenticator()
        self.assertEqual(self.register(self.device).status_code, 200)

        second = self.register(laptop, device_id="deviceB")

        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()["credential"]["credential_id"], laptop.websafe_id)
        verified = self.login_assertion(APIClient(), "alice@example.com", counter=1, device=laptop)
        self.assertEqual(verified.status_code, 200)

    def test_passkey_login_issues_session_once_per_token(self):
        self.register(self.device)

        client = APIClient()
        verified = self.login_assertion(client, "alice@example.com", counter=1)
        self.assertEqual(verified.status_code, 200)
        token = verified.data["verification_token"]

        session = self.custom_login(client, "alice@example.com", token)
        self.assertEqual(session.status_code, 200)

        client.credentials(HTTP_AUTHORIZATION=f"Bearer {session.data['access']}")
        me = client.get("/api/auth/me/")
        self.assertEqual(me.data["email"], "alice@example.com")
        self.assertTrue(me.data["passkey_enabled"])

        replay = self.custom_login(APIClient(), "alice@example.com", token)
        self.assertEqual(replay.status_code, 401)

    def test_replayed_assertion_counter_is_rejected(self):
        self.register(self.device)
        client = APIClient()

        self.assertEqual(self.login_assertion(client, "alice@example.com", counter=1).status_code, 200)
        replayed = self.login_assertion(client, "alice@example.com", counter=1)

        self.assertEqual(replayed.status_code, 400)
        self.assertEqual(replayed.data["error"]["code"], "VERIFICATION_FAILED")
        self.assertEqual(Credential.objects.get().sign_count, 1)

    def test_token_cannot_be_used_for_another_account(self):
        bob = User.objects.create(email="bob@example.com", username="bob@example.com", passkey_enabled=True)
        self.register(self.device)
        client = APIClient()

        token = self.login_assertion(client, "alice@example.com", counter=1).data["verification_token"]
        response = self.custom_login(client, bob.email, token)

        self.assertEqual(response.status_code, 401)
