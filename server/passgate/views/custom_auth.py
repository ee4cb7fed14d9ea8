import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from django_ratelimit.decorators import ratelimit

from passgate.serializers import (
    CustomLoginInitiateSerializer,
    CustomLoginRespondSerializer,
    UserSerializer,
)
from passgate.services import session_issuer
from passgate.utils import AuthFlowError, format_error

logger = logging.getLogger(__name__)


def _not_authorized():
    return Response(
        format_error(code="not_authorized", message="Incorrect username or password"),
        status=status.HTTP_401_UNAUTHORIZED,
    )


@ratelimit(group="custom_login_initiate", key="ip", rate="10/m", block=True)
@api_view(["POST"])
@permission_classes([AllowAny])
def custom_login_initiate(request):
    """
    Start a custom-challenge login.

    POST /api/auth/custom/initiate/
    {
        "email": "user@example.com",
        "auth_method": "passkey"
    }

    Returns the session handle and the public challenge parameters.
    """
    serializer = CustomLoginInitiateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        pending = session_issuer.initiate(
            serializer.validated_data["email"],
            serializer.validated_data.get("auth_method"),
        )
    except AuthFlowError as exc:
        logger.info("Custom login initiate refused: %s", exc.code)
        return _not_authorized()

    return Response(
        {
            "session": pending.session,
            "challenge_name": pending.challenge_name,
            "challenge_parameters": pending.challenge_parameters,
        }
    )


@ratelimit(group="custom_login_respond", key="ip", rate="10/m", block=True)
@api_view(["POST"])
@permission_classes([AllowAny])
def custom_login_respond(request):
    """
    Answer the custom challenge with a verification token and receive JWTs.

    POST /api/auth/custom/respond/
    {
        "session": "...",
        "answer": "<verification_token>"
    }
    """
    serializer = CustomLoginRespondSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        issued = session_issuer.respond(
            serializer.validated_data["session"],
            serializer.validated_data["answer"],
        )
    except AuthFlowError as exc:
        logger.info("Custom login respond refused: %s", exc.code)
        return _not_authorized()

    return Response(
        {
            "access": issued.access,
            "refresh": issued.refresh,
            "user": UserSerializer(issued.user).data,
        }
    )
