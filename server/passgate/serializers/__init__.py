"""Serializer package for the `passgate` Django app.

This package re-exports the public DRF serializer classes used by views.
"""

from .step_up import (
    ContactChangeStartSerializer,
    ContactChangeVerifySerializer,
    CustomLoginInitiateSerializer,
    CustomLoginRespondSerializer,
    StepUpSendSerializer,
    StepUpVerifySerializer,
    VerifySecretSerializer,
)
from .user import UserSerializer, CredentialSerializer

__all__ = [
    "ContactChangeStartSerializer",
    "ContactChangeVerifySerializer",
    "CustomLoginInitiateSerializer",
    "CustomLoginRespondSerializer",
    "StepUpSendSerializer",
    "StepUpVerifySerializer",
    "VerifySecretSerializer",
    "UserSerializer",
    "CredentialSerializer",
]
