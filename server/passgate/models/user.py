"""Custom user model used by the `passgate` Django app.

Besides Django's `AbstractUser` fields, the model carries the denormalized
profile hints the authentication core reads and writes: whether the user has a
live passkey, the phone number used for SMS step-up codes and the TOTP second
factor used during re-authentication.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """User account that can sign in with a passkey and be re-verified with a secret"""

    email = models.EmailField(
        unique=True,
        help_text="Primary contact address, also used as the login subject."
    )
    phone_number = models.CharField(
        max_length=32,
        blank=True,
        help_text="E.164 phone number used for SMS step-up codes."
    )
    passkey_enabled = models.BooleanField(
        default=False,
        help_text="Whether the user has at least one live passkey."
    )
    totp_secret = models.CharField(
        max_length=64,
        blank=True,
        help_text="Base32 TOTP secret (pending until two_factor_enabled is set)."
    )
    two_factor_enabled = models.BooleanField(
        default=False,
        help_text="Whether a TOTP second factor is enrolled."
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "users"

    def save(self, *args, **kwargs):
        """Passkey-only accounts get an unusable password until one is explicitly set"""
        if self._state.adding and not self.password:
            self.set_unusable_password()
        super().save(*args, **kwargs)

    def __str__(self):
        """Return a human-readable identifier for the user."""
        return self.email or self.username
