from django.core.checks import Error, Warning, run_checks
from django.test import SimpleTestCase, override_settings


def passgate_issues(issues):
    return [issue for issue in issues if issue.id and issue.id.startswith("passgate.")]


class PassgateChecksTest(SimpleTestCase):
    @override_settings(PASSGATE_INLINE_CODES=True, DEBUG=False)
    def test_inline_codes_without_debug_is_an_error(self):
        issues = passgate_issues(run_checks(tags=["security"]))

        self.assertIn("passgate.E001", [issue.id for issue in issues])
        self.assertTrue(all(isinstance(issue, (Error, Warning)) for issue in issues))

    @override_settings(PASSGATE_INLINE_CODES=True, DEBUG=True)
    def test_inline_codes_in_debug_is_allowed(self):
        issues = passgate_issues(run_checks(tags=["security"]))

        self.assertNotIn("passgate.E001", [issue.id for issue in issues])

    @override_settings(WEBAUTHN_RP_ID="example.com", ALLOWED_HOSTS=["api.other.com"])
    def test_rp_id_outside_allowed_hosts_warns(self):
        issues = passgate_issues(run_checks(tags=["security"]))

        self.assertIn("passgate.W001", [issue.id for issue in issues])

    @override_settings(WEBAUTHN_RP_ID="example.com", ALLOWED_HOSTS=["api.example.com"])
    def test_rp_id_parent_of_allowed_host(self):
        issues = passgate_issues(run_checks(tags=["security"]))

        self.assertNotIn("passgate.W001", [issue.id for issue in issues])
