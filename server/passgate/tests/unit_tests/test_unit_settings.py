import os
from unittest.mock import patch

from django.test import SimpleTestCase

from config import settings as project_settings


class DatabaseUrlParsingTest(SimpleTestCase):
    def test_sqlite_relative_url_uses_base_dir(self):
        result = project_settings._database_from_url("sqlite:///db.sqlite3")

        self.assertEqual(result["ENGINE"], "django.db.backends.sqlite3")
        self.assertEqual(result["NAME"], project_settings.BASE_DIR / "db.sqlite3")

    def test_postgres_url(self):
        result = project_settings._database_from_url("postgres://user:pw@db.internal:5433/passgate")

        self.assertEqual(result["ENGINE"], "django.db.backends.postgresql")
        self.assertEqual(result["NAME"], "passgate")
        self.assertEqual(result["HOST"], "db.internal")
        self.assertEqual(result["PORT"], 5433)

    def test_unknown_scheme_is_rejected(self):
        with self.assertRaises(ValueError):
            project_settings._database_from_url("mysql://localhost/passgate")


class EnvHelpersTest(SimpleTestCase):
    @patch.dict(os.environ, {"PASSGATE_TEST_FLAG": "yes"})
    def test_env_bool(self):
        self.assertTrue(project_settings._env_bool("PASSGATE_TEST_FLAG"))
        self.assertFalse(project_settings._env_bool("PASSGATE_TEST_MISSING"))

    @patch.dict(os.environ, {"PASSGATE_TEST_INT": " 42 "})
    def test_env_int(self):
        self.assertEqual(project_settings._env_int("PASSGATE_TEST_INT", 3), 42)
        self.assertEqual(project_settings._env_int("PASSGATE_TEST_MISSING", 3), 3)

    @patch.dict(os.environ, {"PASSGATE_TEST_LIST": "https://a.example, 'https://b.example',"})
    def test_env_list(self):
        self.assertEqual(
            project_settings._env_list("PASSGATE_TEST_LIST"),
            ["https://a.example", "https://b.example"],
        )


class StepUpDefaultsTest(SimpleTestCase):
    def test_defaults(self):
        self.assertEqual(project_settings.PASSGATE_STEP_UP_MAX_ATTEMPTS, 3)
        self.assertEqual(project_settings.PASSGATE_STEP_UP_CODE_LENGTH, 6)
        self.assertEqual(project_settings.PASSGATE_CHALLENGE_TTL_SECONDS, 300)
        self.assertEqual(project_settings.AUTH_USER_MODEL, "passgate.User")
