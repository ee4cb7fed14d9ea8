import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django_ratelimit.decorators import ratelimit

from passgate.serializers import (
    ContactChangeStartSerializer,
    ContactChangeVerifySerializer,
    UserSerializer,
)
from passgate.services import accounts, step_up
from passgate.utils import AuthFlowError, error_response, format_error
from passgate.views.step_up import issued_code_payload

logger = logging.getLogger(__name__)


@ratelimit(group="contact_change", key="user_or_ip", rate="5/m", block=True)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def contact_change_start(request):
    """
    Begin changing the email or phone number of the account.

    POST /api/profile/contact/change/start/
    {
        "kind": "email",
        "value": "new@example.com"
    }

    A code is sent to the current address first.
    """
    serializer = ContactChangeStartSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        issued = accounts.start_contact_change(
            request.user,
            serializer.validated_data["kind"],
            serializer.validated_data["value"],
        )
    except AuthFlowError as exc:
        return error_response(exc)

    return Response(issued_code_payload(issued))


@ratelimit(group="contact_change_verify", key="user_or_ip", rate="10/m", block=True)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def contact_change_verify_old(request):
    serializer = ContactChangeVerifySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        issued = accounts.confirm_old_contact(
            request.user,
            serializer.validated_data["kind"],
            serializer.validated_data["code"],
        )
    except AuthFlowError as exc:
        return error_response(exc)

    return Response(issued_code_payload(issued))


@ratelimit(group="contact_change_verify", key="user_or_ip", rate="10/m", block=True)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def contact_change_verify_new(request):
    serializer = ContactChangeVerifySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        user = accounts.confirm_new_contact(
            request.user,
            serializer.validated_data["kind"],
            serializer.validated_data["code"],
        )
    except AuthFlowError as exc:
        return error_response(exc)

    return Response({"message": "Contact updated", "user": UserSerializer(user).data})


@ratelimit(group="account_delete", key="user_or_ip", rate="5/m", block=True)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def account_delete(request):
    """
    Delete the authenticated account.

    POST /api/account/delete/
    {
        "password": "...",      # or a prior verified account-deletion code
        "totp_code": "123456"
    }
    """
    try:
        step_up.require_step_up(request.user, step_up.ACCOUNT_DELETION, request.data)
    except AuthFlowError as exc:
        return error_response(exc)

    accounts.delete_account(request.user)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def totp_setup(request):
    try:
        uri = accounts.begin_totp_setup(request.user)
    except AuthFlowError as exc:
        return error_response(exc)
    return Response({"provisioning_uri": uri})


@ratelimit(group="totp_confirm", key="user_or_ip", rate="5/m", block=True)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def totp_confirm(request):
    code = str(request.data.get("code", "")).strip()
    if not code:
        return Response(
            format_error(code="missing_code", message="code is required"),
            status=status.HTTP_400_BAD_REQUEST,
        )

    try:
        accounts.confirm_totp_setup(request.user, code)
    except AuthFlowError as exc:
        return error_response(exc)

    return Response({"two_factor_enabled": True})
