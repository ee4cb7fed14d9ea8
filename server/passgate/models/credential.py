from django.conf import settings
from django.db import models


class Credential(models.Model):
    """WebAuthn public-key credential bound to one device"""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='credentials'
    )
    credential_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Base64url credential ID from WebAuthn"
    )
    public_key = models.TextField(
        help_text="Base64url CBOR-encoded COSE public key"
    )
    device_id = models.CharField(
        max_length=128,
        unique=True,
        help_text="Client device identifier, at most one credential per device"
    )
    sign_count = models.PositiveBigIntegerField(
        default=0,
        help_text="Signature counter for replay attack prevention"
    )
    name = models.CharField(
        max_length=100,
        help_text="User-friendly device name"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    last_used_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'credentials'
        indexes = [
            models.Index(fields=['user', 'created_at'], name='credentials_user_created_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.user.email})"
