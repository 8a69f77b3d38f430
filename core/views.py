"""
Core app views — **Thin Views**.

Each view delegates all business logic to the corresponding service in
``core.services``.  Views are responsible only for:

1. Extracting and validating query parameters from the request.
2. Calling the service with the request's ``Actor`` and parameters.
3. Serialising the result and returning an HTTP ``Response``.

No model imports, no aggregation logic, no cross-app queries.
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)

from core.domain.access import actor_for_request
from core.pagination import PageRequest, page_payload, paginate

from .serializers import (
    CalendarEntrySerializer,
    CalendarQuerySerializer,
    CaseStatisticsSerializer,
    DashboardCaseSerializer,
    NotificationSerializer,
    SystemConstantsSerializer,
)
from .services import (
    CaseStatisticsService,
    DashboardService,
    HearingCalendarService,
    NotificationService,
    SystemConstantsService,
)


class CaseStatisticsView(APIView):
    """
    **GET /api/core/statistics/**

    Case statistics over the cases visible to the authenticated user.
    Cached per user for 15 minutes.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Case statistics",
        description=(
            "Counts by status, type, priority and month, average resolution "
            "time, resolution rate, attention / overdue counts and upcoming "
            "hearings, scoped to the cases the user may see."
        ),
        responses={200: OpenApiResponse(response=CaseStatisticsSerializer, description="Statistics.")},
        tags=["Dashboard"],
    )
    def get(self, request: Request) -> Response:
        data = CaseStatisticsService(actor_for_request(request)).get_statistics()
        return Response(CaseStatisticsSerializer(data).data, status=status.HTTP_200_OK)


class DashboardView(APIView):
    """
    **GET /api/core/dashboard/**

    The ten role-scoped cases most in need of attention.  Cached per
    user for 5 minutes.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Dashboard cases",
        description=(
            "Critical cases and cases waiting in submitted, under review or "
            "scheduled for hearing, highest priority first."
        ),
        responses={200: OpenApiResponse(response=DashboardCaseSerializer(many=True), description="Dashboard cases.")},
        tags=["Dashboard"],
    )
    def get(self, request: Request) -> Response:
        data = DashboardService(actor_for_request(request)).get_dashboard()
        return Response(
            DashboardCaseSerializer(data, many=True).data,
            status=status.HTTP_200_OK,
        )


class HearingCalendarView(APIView):
    """
    **GET /api/core/calendar/?from_date=YYYY-MM-DD&to_date=YYYY-MM-DD**

    Scheduled hearings visible to the authenticated user in the range,
    ordered by date then start time.

    **Error Responses**:
        - ``400 Bad Request``: malformed dates or ``from_date > to_date``.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Hearing calendar",
        parameters=[
            OpenApiParameter(name="from_date", type=str, required=False, description="ISO date, default today."),
            OpenApiParameter(name="to_date", type=str, required=False, description="ISO date, default one month after from_date."),
        ],
        responses={
            200: OpenApiResponse(response=CalendarEntrySerializer(many=True), description="Calendar entries."),
            400: OpenApiResponse(description="Invalid date range."),
        },
        tags=["Hearings"],
    )
    def get(self, request: Request) -> Response:
        query = CalendarQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        data = HearingCalendarService(actor_for_request(request)).get_calendar(
            query.validated_data.get("from_date"),
            query.validated_data.get("to_date"),
        )
        return Response(
            CalendarEntrySerializer(data, many=True).data,
            status=status.HTTP_200_OK,
        )


class SystemConstantsView(APIView):
    """
    **GET /api/core/constants/**

    Return all system-wide choice enumerations so clients can build
    dropdowns, filters and labels without hardcoding values.

    **Authentication**: Not required (``AllowAny``).
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="System constants",
        description=(
            "Return case statuses, case types, priorities, resolution types, "
            "hearing statuses, participant types and roles."
        ),
        responses={200: OpenApiResponse(response=SystemConstantsSerializer, description="System constants.")},
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        data = SystemConstantsService.get_constants()
        serializer = SystemConstantsSerializer(data)
        return Response(serializer.data, status=status.HTTP_200_OK)


class NotificationViewSet(viewsets.ViewSet):
    """
    **Notification API** — list and mark-as-read for the authenticated user.

    Endpoints
    ---------
    GET  /api/core/notifications/              → list notifications
    POST /api/core/notifications/{id}/read/    → mark a notification as read
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List notifications",
        description="Paginated notifications of the authenticated user, newest first.",
        parameters=[
            OpenApiParameter(name="unread", type=bool, required=False, description="Only unread notifications."),
            OpenApiParameter(name="page", type=int, required=False),
            OpenApiParameter(name="page_size", type=int, required=False),
        ],
        responses={200: OpenApiResponse(response=NotificationSerializer(many=True), description="Notification list.")},
        tags=["Notifications"],
    )
    def list(self, request: Request) -> Response:
        unread_only = request.query_params.get("unread", "").lower() in ("1", "true", "yes")
        service = NotificationService(user=request.user)
        page = paginate(
            service.list_notifications(unread_only=unread_only),
            PageRequest.from_params(request.query_params),
        )
        return Response(page_payload(page, NotificationSerializer), status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="read")
    @extend_schema(
        summary="Mark notification as read",
        request=None,
        responses={
            200: OpenApiResponse(response=NotificationSerializer, description="Updated notification."),
            404: OpenApiResponse(description="Notification not found."),
        },
        tags=["Notifications"],
    )
    def mark_as_read(self, request: Request, pk=None) -> Response:
        """
        **POST /api/core/notifications/{id}/read/**
        """
        service = NotificationService(user=request.user)
        notification = service.mark_as_read(notification_id=pk)
        serializer = NotificationSerializer(notification)
        return Response(serializer.data, status=status.HTTP_200_OK)
