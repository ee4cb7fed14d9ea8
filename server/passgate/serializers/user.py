"""DRF serializers for user and passkey models."""

from rest_framework import serializers
from passgate.models import User, Credential


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model"""

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'first_name',
            'last_name',
            'phone_number',
            'passkey_enabled',
            'two_factor_enabled',
            'created_at',
        ]
        read_only_fields = fields


class CredentialSerializer(serializers.ModelSerializer):
    """Serializer for Credential model"""

    class Meta:
        model = Credential
        fields = [
            'credential_id',
            'name',
            'device_id',
            'created_at',
            'last_used_at',
        ]
        read_only_fields = fields
