from django.apps import AppConfig
from django.conf import settings
from django.core.checks import Error, Tags, Warning, register


class PassgateConfig(AppConfig):
    name = "passgate"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self) -> None:
        @register(Tags.security)
        def _check_passgate_settings(app_configs, **kwargs):
            """
            Refuse inline delivery of codes outside of development and flag an RP id the host cannot serve.
            """
            issues = []
            if getattr(settings, "PASSGATE_INLINE_CODES", False) and not settings.DEBUG:
                issues.append(
                    Error(
                        "PASSGATE_INLINE_CODES is enabled while DEBUG is off.",
                        hint="Inline codes leak step-up codes into API responses; unset PASSGATE_INLINE_CODES.",
                        id="passgate.E001",
                    )
                )

            rp_id = getattr(settings, "WEBAUTHN_RP_ID", "") or ""
            allowed_hosts = list(getattr(settings, "ALLOWED_HOSTS", []) or [])
            if rp_id and allowed_hosts and "*" not in allowed_hosts:
                if not any(host.lstrip(".") == rp_id or host.endswith("." + rp_id) for host in allowed_hosts):
                    issues.append(
                        Warning(
                            f"WEBAUTHN_RP_ID {rp_id!r} does not match any ALLOWED_HOSTS entry.",
                            hint="Passkeys are scoped to the RP id; browsers reject ceremonies from other hosts.",
                            id="passgate.W001",
                        )
                    )
            return issues
