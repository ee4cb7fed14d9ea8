"""Short-lived records backing challenges, verification tokens and step-up codes.

Rows are only ever touched through `passgate.services.challenge_store`, which
enforces expiry at read time and single-use consumption.
"""

from django.db import models


class EphemeralRecord(models.Model):
    """One time-bounded record, unique per (key, purpose)"""

    class Purpose(models.TextChoices):
        REGISTRATION = "registration", "Registration challenge"
        AUTHENTICATION = "authentication", "Authentication challenge"
        VERIFICATION = "verification", "Verification token"
        STEP_UP = "step-up", "Step-up code"
        STEP_UP_GRANT = "step-up-grant", "Step-up grant"
        CONTACT_CHANGE = "contact-change", "Pending contact change"
        LOGIN_ATTEMPT = "login-attempt", "Custom login attempt"

    key = models.CharField(max_length=255)
    purpose = models.CharField(max_length=32, choices=Purpose.choices)
    payload = models.JSONField(default=dict)
    attempts = models.PositiveSmallIntegerField(default=0)
    expires_at = models.DateTimeField(db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "ephemeral_records"
        constraints = [
            models.UniqueConstraint(fields=["key", "purpose"], name="ephemeral_key_purpose_uniq"),
        ]

    def __str__(self):
        return f"{self.purpose}:{self.key}"
