from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from passgate.serializers import UserSerializer


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def auth_me(request):
    """
    Return the authenticated user's profile data.

    GET /api/auth/me/
    """
    serializer = UserSerializer(request.user)
    return Response(serializer.data)
