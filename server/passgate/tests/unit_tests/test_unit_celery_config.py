from django.test import SimpleTestCase
from celery import Celery

import config


class CeleryConfigTest(SimpleTestCase):
    def test_celery_app_is_exposed(self):
        self.assertTrue(hasattr(config, "celery_app"))
        self.assertIsInstance(config.celery_app, Celery)

    def test_purge_is_scheduled(self):
        schedule = config.celery_app.conf.beat_schedule

        self.assertEqual(
            schedule["purge-expired-ephemeral-records"]["task"],
            "passgate.tasks.cleanup.purge_expired_records",
        )
