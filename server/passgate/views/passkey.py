import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from django_ratelimit.decorators import ratelimit

from passgate.serializers import CredentialSerializer
from passgate.services import credential_registry, step_up
from passgate.utils import AuthFlowError, error_response, format_error

logger = logging.getLogger(__name__)


def _verification_failed():
    return Response(
        format_error(code="verification_failed", message="Could not verify"),
        status=status.HTTP_400_BAD_REQUEST,
    )


@ratelimit(group="passkey_register_begin", key="ip", rate="5/m", block=True)
@ratelimit(group="passkey_register_begin", key="user", rate="5/m", block=True)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def passkey_register_begin(request):
    """
    Start passkey registration for one device of the authenticated user

    POST /api/auth/passkey/register/begin/
    {
        "device_id": "3f0c...",
        "device_name": "Work laptop"
    }
    """
    device_id = str(request.data.get("device_id", "")).strip()
    if not device_id:
        return Response(
            format_error(code="missing_device_id", message="Device id is required"),
            status=status.HTTP_400_BAD_REQUEST,
        )

    try:
        registration = credential_registry.begin_registration(
            request.user,
            device_id,
            device_name=(request.data.get("device_name") or "").strip() or None,
        )
    except AuthFlowError as exc:
        return error_response(exc)

    options = registration.options
    return Response(
        {
            "device_id": registration.device_id,
            "challenge": registration.challenge,
            "rp": options.get("rp"),
            "user": options.get("user"),
            "pubKeyCredParams": options.get("pubKeyCredParams", []),
            "excludeCredentials": options.get("excludeCredentials", []),
            "timeout": options.get("timeout", 60000),
            "attestation": options.get("attestation", "none"),
            "authenticatorSelection": options.get("authenticatorSelection", {}),
        }
    )


@ratelimit(group="passkey_register_complete", key="ip", rate="5/m", block=True)
@ratelimit(group="passkey_register_complete", key="user", rate="5/m", block=True)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def passkey_register_complete(request):
    device_id = str(request.data.get("device_id", "")).strip()
    if not device_id:
        return Response(
            format_error(code="missing_device_id", message="Device id is required"),
            status=status.HTTP_400_BAD_REQUEST,
        )

    credential_data = request.data.get("credential") or {}
    if not credential_data:
        return Response(
            format_error(code="missing_credential", message="Missing credential data"),
            status=status.HTTP_400_BAD_REQUEST,
        )

    if not credential_data.get("clientDataJSON") or not credential_data.get("attestationObject"):
        return Response(
            format_error(code="missing_attestation", message="Missing attestation data"),
            status=status.HTTP_400_BAD_REQUEST,
        )

    try:
        credential = credential_registry.complete_registration(
            request.user,
            device_id,
            credential_data,
            credential_id=request.data.get("credential_id"),
        )
    except AuthFlowError as exc:
        return error_response(exc)

    return Response(
        {
            "message": "Passkey registered successfully",
            "credential": CredentialSerializer(credential).data,
        }
    )


@ratelimit(group="passkey_login_begin", key="ip", rate="10/m", block=True)
@api_view(["POST"])
@permission_classes([AllowAny])
def passkey_login_begin(request):
    """
    Start a passkey login. The response shape does not depend on whether the address is known.

    POST /api/auth/passkey/login/begin/
    {
        "email": "user@example.com"
    }
    """
    email = str(request.data.get("email", "")).strip().lower()
    if not email:
        return Response(
            format_error(code="missing_email", message="Email is required"),
            status=status.HTTP_400_BAD_REQUEST,
        )

    authentication = credential_registry.begin_authentication(email)
    options = authentication.options
    return Response(
        {
            "authentication_id": authentication.correlation_key,
            "challenge": authentication.challenge,
            "timeout": options.get("timeout", 60000),
            "rpId": options.get("rpId"),
            "userVerification": options.get("userVerification", "required"),
        }
    )


@ratelimit(group="passkey_login_complete", key="ip", rate="10/m", block=True)
@api_view(["POST"])
@permission_classes([AllowAny])
def passkey_login_complete(request):
    """
    Verify a passkey assertion and return a single-use verification token.

    The token is the answer to the custom challenge of /api/auth/custom/.
    Every failure returns the same response; the reason is only logged.
    """
    authentication_id = str(request.data.get("authentication_id", "")).strip()
    credential_data = request.data.get("credential") or {}
    credential_id = credential_data.get("id") or credential_data.get("rawId")

    if not authentication_id or not credential_id:
        return _verification_failed()

    if not (
        credential_data.get("clientDataJSON")
        and credential_data.get("authenticatorData")
        and credential_data.get("signature")
    ):
        return _verification_failed()

    try:
        token = credential_registry.complete_authentication(
            authentication_id,
            credential_id,
            credential_data,
        )
    except AuthFlowError as exc:
        logger.info("Passkey login failed: %s (%s)", exc.code, exc.kind)
        return _verification_failed()

    return Response(
        {
            "message": "Passkey verified successfully",
            "email": token.subject,
            "verification_token": token.value,
            "expires_at": token.expires_at,
        }
    )


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def passkey_list(request):
    credentials = credential_registry.list_credentials(request.user)
    return Response({"passkeys": CredentialSerializer(credentials, many=True).data})


@ratelimit(group="passkey_delete", key="user_or_ip", rate="10/m", block=True)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def passkey_delete(request):
    """
    Delete one passkey after step-up verification

    POST /api/auth/passkeys/delete/
    {
        "credential_id": "...",
        "password": "...",        # or a prior verified credential-deletion code
        "totp_code": "123456"
    }
    """
    credential_id = request.data.get("credential_id")
    if not credential_id:
        return Response(
            format_error(code="missing_credential_id", message="credential_id is required"),
            status=status.HTTP_400_BAD_REQUEST,
        )

    try:
        # Unknown ids must not burn a single-use grant.
        credential_registry.get_credential(request.user, credential_id)
        step_up.require_step_up(request.user, step_up.CREDENTIAL_DELETION, request.data)
        credential_registry.delete_credential(request.user, credential_id)
    except AuthFlowError as exc:
        return error_response(exc)

    return Response(
        {
            "message": "Passkey deleted successfully",
            "passkey_enabled": request.user.passkey_enabled,
        }
    )
