"""
Pytest bootstrap for running the passgate Django tests without pytest-django.

Tests are Django `TestCase` / `SimpleTestCase` classes. Before collection we:
- point `DJANGO_SETTINGS_MODULE` at `config.settings`
- force an in-memory broker and an eager Celery so no worker is needed
- keep step-up codes out of responses unless a test opts in
- pin the WebAuthn relying party to localhost for the software authenticator
- create/teardown the Django test databases around the session
"""

import os

import django
from django.test.utils import (
    setup_databases,
    setup_test_environment,
    teardown_databases,
    teardown_test_environment,
)


_db_cfg = None


def pytest_configure():
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
    os.environ.setdefault("DEBUG", "true")
    os.environ["CELERY_BROKER_URL"] = "memory://"
    os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
    os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
    os.environ["PASSGATE_INLINE_CODES"] = "false"
    os.environ["WEBAUTHN_RP_ID"] = "localhost"
    os.environ["WEBAUTHN_ORIGINS"] = "https://localhost"
    os.environ.pop("REDIS_URL", None)
    os.environ.pop("DATABASE_URL", None)
    django.setup()


def pytest_sessionstart(session):
    global _db_cfg
    setup_test_environment()
    _db_cfg = setup_databases(verbosity=0, interactive=False, keepdb=False)


def pytest_sessionfinish(session, exitstatus):
    global _db_cfg
    if _db_cfg:
        teardown_databases(_db_cfg, verbosity=0)
        _db_cfg = None
    teardown_test_environment()
