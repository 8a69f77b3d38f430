"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers and return the result wrapped in a DRF ``Response``.

View Map
--------
- ``LoginView``  — POST /auth/login/
- ``MeView``     — GET /me/
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    CustomTokenObtainPairSerializer,
    LoginRequestSerializer,
    TokenResponseSerializer,
    UserDetailSerializer,
)

logger = logging.getLogger(__name__)


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates a user via any of the four
    unique identifiers (username, national_id, phone_number, email)
    plus password and returns a JWT pair with the user profile.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Log in",
        description=(
            "Authenticate with any unique identifier (username, national ID, "
            "phone number or email) plus password.  Returns a JWT pair whose "
            "access token carries a ``role`` claim."
        ),
        request=LoginRequestSerializer,
        responses={
            200: OpenApiResponse(response=TokenResponseSerializer, description="Authenticated."),
            400: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = TokenResponseSerializer(
            {**serializer.validated_data, "user": serializer.user}
        ).data
        logger.info("User %s logged in", serializer.user.pk)
        return Response(payload, status=status.HTTP_200_OK)


class MeView(APIView):
    """
    GET /api/accounts/me/ → Retrieve the authenticated user's profile.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user",
        responses={200: OpenApiResponse(response=UserDetailSerializer)},
        tags=["Auth"],
    )
    def get(self, request: Request) -> Response:
        return Response(
            UserDetailSerializer(request.user).data,
            status=status.HTTP_200_OK,
        )
