"""Django management command removing expired challenges, codes and grants.

The Celery beat schedule runs the same purge periodically; this command is
for deployments without a beat worker (e.g. a cron job).
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from passgate.models import EphemeralRecord
from passgate.services import challenge_store


class Command(BaseCommand):
    """Delete every `EphemeralRecord` past its expiry."""

    help = "Purge expired ephemeral records"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only report how many records would be purged",
        )

    def handle(self, *args, **options):
        if options["dry_run"]:
            count = EphemeralRecord.objects.filter(expires_at__lte=timezone.now()).count()
            self.stdout.write(self.style.WARNING(f"{count} expired records would be purged"))
            return

        count = challenge_store.purge_expired()
        self.stdout.write(self.style.SUCCESS(f"Purged {count} expired records"))
