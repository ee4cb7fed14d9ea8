from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from passgate.models import Credential, EphemeralRecord, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin for custom User model."""

    list_display = [
        "email",
        "phone_number",
        "passkey_enabled",
        "two_factor_enabled",
        "created_at",
    ]
    list_filter = ["passkey_enabled", "two_factor_enabled", "is_staff", "created_at"]
    search_fields = ["email", "first_name", "last_name", "phone_number"]
    readonly_fields = ["created_at", "updated_at"]

    fieldsets = (
        (None, {"fields": ("email", "username", "password")}),
        ("Personal Info", {"fields": ("first_name", "last_name", "phone_number")}),
        ("Authentication", {"fields": ("passkey_enabled", "two_factor_enabled")}),
        (
            "Permissions",
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                )
            },
        ),
        ("Important Dates", {"fields": ("last_login", "created_at", "updated_at")}),
    )

    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("email", "username", "password1", "password2")}),
    )

    ordering = ["-created_at"]


@admin.register(Credential)
class CredentialAdmin(admin.ModelAdmin):
    list_display = ["user", "name", "device_id", "sign_count", "created_at", "last_used_at"]
    search_fields = ["user__email", "name", "device_id", "credential_id"]
    readonly_fields = ["credential_id", "public_key", "sign_count", "created_at", "last_used_at"]


@admin.register(EphemeralRecord)
class EphemeralRecordAdmin(admin.ModelAdmin):
    """Read-only view of challenges, codes and pending changes."""

    list_display = ["key", "purpose", "attempts", "expires_at", "created_at"]
    list_filter = ["purpose"]
    search_fields = ["key"]
    exclude = ["payload"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
