"""Request serializers for step-up, re-authentication and contact changes."""

import re

from rest_framework import serializers

from passgate.services.accounts import CONTACT_CHANNELS, CONTACT_EMAIL
from passgate.services.step_up import GATED_PURPOSES

PHONE_PATTERN = re.compile(r"^\+[1-9]\d{6,14}$")


class StepUpSendSerializer(serializers.Serializer):
    """Serializer for a step-up code request"""

    purpose = serializers.ChoiceField(choices=GATED_PURPOSES)
    channel = serializers.ChoiceField(choices=["email", "sms"], required=False)


class StepUpVerifySerializer(serializers.Serializer):
    """Serializer for a step-up code check"""

    purpose = serializers.ChoiceField(choices=GATED_PURPOSES)
    code = serializers.RegexField(r"^\d{4,10}$", error_messages={"invalid": "Code must be numeric"})


class VerifySecretSerializer(serializers.Serializer):
    """Serializer for re-authentication with the account password"""

    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)
    totp_code = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ContactChangeStartSerializer(serializers.Serializer):
    """Serializer for the first stage of a contact change"""

    kind = serializers.ChoiceField(choices=list(CONTACT_CHANNELS))
    value = serializers.CharField(max_length=254)

    def validate(self, attrs):
        """Validate the new address against its kind and normalize it."""
        value = attrs["value"].strip()
        if attrs["kind"] == CONTACT_EMAIL:
            value = serializers.EmailField().run_validation(value).lower()
        elif not PHONE_PATTERN.match(value):
            raise serializers.ValidationError({"value": "Phone number must be in E.164 format"})
        attrs["value"] = value
        return attrs


class ContactChangeVerifySerializer(serializers.Serializer):
    """Serializer for the code-checking stages of a contact change"""

    kind = serializers.ChoiceField(choices=list(CONTACT_CHANNELS))
    code = serializers.RegexField(r"^\d{4,10}$", error_messages={"invalid": "Code must be numeric"})


class CustomLoginInitiateSerializer(serializers.Serializer):
    email = serializers.EmailField()
    auth_method = serializers.CharField(required=False, allow_blank=True)


class CustomLoginRespondSerializer(serializers.Serializer):
    session = serializers.CharField()
    answer = serializers.CharField()
