from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from passgate.models import EphemeralRecord


class PurgeEphemeralRecordsCommandTest(TestCase):
    def setUp(self):
        EphemeralRecord.objects.create(
            key="old",
            purpose=EphemeralRecord.Purpose.STEP_UP,
            expires_at=timezone.now() - timedelta(minutes=1),
        )
        EphemeralRecord.objects.create(
            key="new",
            purpose=EphemeralRecord.Purpose.STEP_UP,
            expires_at=timezone.now() + timedelta(minutes=10),
        )

    def test_dry_run_keeps_records(self):
        out = StringIO()
        call_command("purge_ephemeral_records", "--dry-run", stdout=out)

        self.assertIn("1 expired records would be purged", out.getvalue())
        self.assertEqual(EphemeralRecord.objects.count(), 2)

    def test_purge(self):
        out = StringIO()
        call_command("purge_ephemeral_records", stdout=out)

        self.assertIn("Purged 1 expired records", out.getvalue())
        self.assertEqual(list(EphemeralRecord.objects.values_list("key", flat=True)), ["new"])
