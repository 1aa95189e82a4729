# users/views.py
"""
USER VIEWS

Staff accounts are created in Django Admin; tokens come from
/api/auth/jwt/create/. This module only exposes the current user.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle
from rest_framework.views import APIView

from .serializers import UserSerializer


class MeUserThrottle(UserRateThrottle):
    """
    Authenticated user throttling for /me/.
    Uses REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']['user'].
    """
    scope = "user"


# ---------------- CURRENT USER ----------------
class MeView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [MeUserThrottle]

    def get(self, request):
        return Response(
            {
                "authenticated": True,
                "user": UserSerializer(request.user).data,
            },
            status=status.HTTP_200_OK,
        )
