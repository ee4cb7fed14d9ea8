import logging

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from django_ratelimit.decorators import ratelimit

from passgate.serializers import (
    StepUpSendSerializer,
    StepUpVerifySerializer,
    VerifySecretSerializer,
)
from passgate.services import notifications, step_up
from passgate.utils import AuthFlowError, error_response, format_error

logger = logging.getLogger(__name__)


def issued_code_payload(issued):
    """Response body for a freshly sent code; the code itself only when inline codes are on."""
    payload = {
        "message": "Verification code sent",
        "purpose": issued.purpose,
        "channel": issued.channel,
        "destination": notifications.mask_address(issued.destination),
        "expires_at": issued.expires_at,
    }
    if settings.PASSGATE_INLINE_CODES and settings.DEBUG:
        payload["dev_code"] = issued.code
    return payload


@ratelimit(group="step_up_send", key="user_or_ip", rate="5/m", block=True)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def step_up_send(request):
    """
    Send a step-up code for a gated operation.

    POST /api/auth/step-up/send/
    {
        "purpose": "account-deletion",
        "channel": "email"
    }
    """
    serializer = StepUpSendSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        issued = step_up.send_code(
            request.user,
            serializer.validated_data["purpose"],
            channel=serializer.validated_data.get("channel"),
        )
    except AuthFlowError as exc:
        return error_response(exc)

    return Response(issued_code_payload(issued))


@ratelimit(group="step_up_verify", key="user_or_ip", rate="10/m", block=True)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def step_up_verify(request):
    """
    Check a step-up code. On success the gated request can follow within the grant window.
    """
    serializer = StepUpVerifySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    purpose = serializer.validated_data["purpose"]

    try:
        step_up.verify_code(request.user, purpose, serializer.validated_data["code"])
    except AuthFlowError as exc:
        return error_response(exc)

    step_up.grant(request.user, purpose)
    return Response(
        {
            "verified": True,
            "purpose": purpose,
            "grant_expires_in": settings.PASSGATE_STEP_UP_GRANT_TTL_SECONDS,
        }
    )


@ratelimit(group="verify_credentials", key="ip", rate="10/m", block=True)
@api_view(["POST"])
@permission_classes([AllowAny])
def verify_credentials(request):
    """
    Re-authenticate with email and password without creating a session.

    POST /api/auth/verify-credentials/
    {
        "email": "user@example.com",
        "password": "...",
        "totp_code": "123456"     # when a second factor is enrolled
    }

    Wrong email, wrong password and wrong second factor all get the same answer.
    """
    serializer = VerifySecretSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            format_error(code="verification_failed", message="Could not verify"),
            status=status.HTTP_401_UNAUTHORIZED,
        )

    try:
        result = step_up.verify_secret(
            serializer.validated_data["email"],
            serializer.validated_data["password"],
            serializer.validated_data.get("totp_code"),
        )
    except AuthFlowError as exc:
        logger.info("Credential verification failed: %s", exc.code)
        return Response(
            format_error(code="verification_failed", message="Could not verify"),
            status=status.HTTP_401_UNAUTHORIZED,
        )

    if result is step_up.SecretCheck.NEEDS_SECOND_FACTOR:
        return Response({"verified": False, "needs_second_factor": True})
    return Response({"verified": True, "needs_second_factor": False})
