from datetime import timedelta

from django.test import TestCase, override_settings
from django.utils import timezone

from passgate.models import EphemeralRecord
from passgate.services import verification_tokens
from passgate.utils import VerificationTokenInvalid


class VerificationTokenTest(TestCase):
    def test_mint_normalizes_subject(self):
        token = verification_tokens.mint("  Alice@Example.com ")

        self.assertEqual(token.subject, "alice@example.com")
        self.assertTrue(
            EphemeralRecord.objects.filter(
                key=f"alice@example.com:{token.value}",
                purpose=EphemeralRecord.Purpose.VERIFICATION,
            ).exists()
        )

    def test_redeem_succeeds_once(self):
        token = verification_tokens.mint("alice@example.com")

        verification_tokens.redeem("alice@example.com", token.value)

        with self.assertRaises(VerificationTokenInvalid):
            verification_tokens.redeem("alice@example.com", token.value)

    def test_token_is_bound_to_its_subject(self):
        token = verification_tokens.mint("alice@example.com")

        with self.assertRaises(VerificationTokenInvalid):
            verification_tokens.redeem("mallory@example.com", token.value)

        # The legitimate holder can still use it.
        verification_tokens.redeem("alice@example.com", token.value)

    def test_redeem_rejects_blank_input(self):
        with self.assertRaises(VerificationTokenInvalid):
            verification_tokens.redeem("alice@example.com", "")

    @override_settings(PASSGATE_VERIFICATION_TOKEN_TTL_SECONDS=60)
    def test_expired_token_is_rejected(self):
        token = verification_tokens.mint("alice@example.com")
        EphemeralRecord.objects.update(expires_at=timezone.now() - timedelta(seconds=1))

        with self.assertRaises(VerificationTokenInvalid):
            verification_tokens.redeem("alice@example.com", token.value)

    def test_payload_without_verified_flag_is_rejected(self):
        token = verification_tokens.mint("alice@example.com")
        EphemeralRecord.objects.update(payload={"subject": "alice@example.com", "verified": False})

        with self.assertRaises(VerificationTokenInvalid):
            verification_tokens.redeem("alice@example.com", token.value)
        self.assertFalse(EphemeralRecord.objects.exists())
