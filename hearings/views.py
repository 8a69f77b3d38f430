"""
Hearings app ViewSets.

Thin views: validate with a serializer, delegate to
``HearingSchedulingService`` / ``HearingQueryService`` with the request's
``Actor``, serialize the result.

ViewSets
--------
- ``HearingViewSet``            — schedule, retrieve, update, cancel,
                                  record outcome.
- ``HearingParticipantViewSet`` — ``/api/hearings/{hearing_pk}/participants/``
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.domain.access import actor_for_request
from core.pagination import PageRequest, page_payload

from .serializers import (
    HearingCancelSerializer,
    HearingDetailSerializer,
    HearingOutcomeSerializer,
    HearingParticipantCreateSerializer,
    HearingParticipantSerializer,
    HearingScheduleSerializer,
    HearingUpdateSerializer,
)
from .services import HearingQueryService, HearingSchedulingService

logger = logging.getLogger(__name__)


class HearingViewSet(viewsets.ViewSet):
    """
    Hearing endpoints.  Hearings are never deleted; use ``cancel``.

    All capability checks run against the hearing's parent case inside
    the service layer.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Schedule a hearing",
        description=(
            "Schedule a hearing for a case and move the case to "
            "SCHEDULED_FOR_HEARING.  Rejected with 409 scheduling_conflict "
            "when the slot overlaps another active hearing of the presiding "
            "officer."
        ),
        request=HearingScheduleSerializer,
        responses={
            201: OpenApiResponse(response=HearingDetailSerializer, description="Hearing scheduled."),
            400: OpenApiResponse(description="Invalid slot or officer cannot preside."),
            403: OpenApiResponse(description="Only officers can schedule hearings."),
            404: OpenApiResponse(description="Case or officer not found."),
            409: OpenApiResponse(description="Scheduling conflict or case status does not allow hearings."),
        },
        tags=["Hearings"],
    )
    def create(self, request: Request) -> Response:
        """
        POST /api/hearings/
        """
        serializer = HearingScheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        hearing = HearingSchedulingService.schedule(
            serializer.validated_data,
            actor_for_request(request),
        )
        return Response(HearingDetailSerializer(hearing).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve a hearing",
        responses={
            200: OpenApiResponse(response=HearingDetailSerializer, description="Hearing detail."),
            403: OpenApiResponse(description="Actor may not read this hearing."),
            404: OpenApiResponse(description="Hearing not found."),
        },
        tags=["Hearings"],
    )
    def retrieve(self, request: Request, pk=None) -> Response:
        """
        GET /api/hearings/{id}/
        """
        hearing = HearingQueryService.get_hearing(pk, actor_for_request(request))
        return Response(HearingDetailSerializer(hearing).data)

    @extend_schema(
        summary="Update a hearing",
        description=(
            "Partial update, including status along a legal edge.  Moving a "
            "hearing does not re-run overlap detection."
        ),
        request=HearingUpdateSerializer,
        responses={
            200: OpenApiResponse(response=HearingDetailSerializer, description="Hearing updated."),
            409: OpenApiResponse(description="Illegal status edge or slot taken."),
        },
        tags=["Hearings"],
    )
    def partial_update(self, request: Request, pk=None) -> Response:
        """
        PATCH /api/hearings/{id}/
        """
        serializer = HearingUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        hearing = HearingSchedulingService.update(
            pk,
            serializer.validated_data,
            actor_for_request(request),
        )
        return Response(HearingDetailSerializer(hearing).data)

    @action(detail=True, methods=["post"], url_path="cancel")
    @extend_schema(
        summary="Cancel a hearing",
        request=HearingCancelSerializer,
        responses={
            200: OpenApiResponse(response=HearingDetailSerializer, description="Hearing cancelled."),
            409: OpenApiResponse(description="Hearing already cancelled."),
        },
        tags=["Hearings"],
    )
    def cancel(self, request: Request, pk=None) -> Response:
        """
        POST /api/hearings/{id}/cancel/
        """
        serializer = HearingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        hearing = HearingSchedulingService.cancel(
            pk,
            actor_for_request(request),
            reason=serializer.validated_data["reason"],
        )
        return Response(HearingDetailSerializer(hearing).data)

    @action(detail=True, methods=["post"], url_path="outcome")
    @extend_schema(
        summary="Record hearing outcome",
        request=HearingOutcomeSerializer,
        responses={
            200: OpenApiResponse(response=HearingDetailSerializer, description="Outcome recorded."),
            409: OpenApiResponse(description="Hearing is not completed."),
        },
        tags=["Hearings"],
    )
    def outcome(self, request: Request, pk=None) -> Response:
        """
        POST /api/hearings/{id}/outcome/
        """
        serializer = HearingOutcomeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        hearing = HearingSchedulingService.record_outcome(
            pk,
            actor_for_request(request),
            **serializer.validated_data,
        )
        return Response(HearingDetailSerializer(hearing).data)


class HearingParticipantViewSet(viewsets.ViewSet):
    """Attendees nested under a hearing."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List hearing participants",
        parameters=[
            OpenApiParameter(name="page", type=int, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="page_size", type=int, location=OpenApiParameter.QUERY),
        ],
        responses={200: OpenApiResponse(response=HearingParticipantSerializer(many=True), description="Participants.")},
        tags=["Hearings – Participants"],
    )
    def list(self, request: Request, hearing_pk=None) -> Response:
        page = HearingQueryService.list_participants(
            hearing_pk,
            actor_for_request(request),
            PageRequest.from_params(request.query_params),
        )
        return Response(page_payload(page, HearingParticipantSerializer))

    @extend_schema(
        summary="Add a hearing participant",
        request=HearingParticipantCreateSerializer,
        responses={
            201: OpenApiResponse(response=HearingParticipantSerializer, description="Participant added."),
            409: OpenApiResponse(description="Participant already on the hearing."),
        },
        tags=["Hearings – Participants"],
    )
    def create(self, request: Request, hearing_pk=None) -> Response:
        serializer = HearingParticipantCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        participant = HearingSchedulingService.add_participant(
            hearing_pk,
            actor_for_request(request),
            serializer.validated_data,
        )
        return Response(
            HearingParticipantSerializer(participant).data,
            status=status.HTTP_201_CREATED,
        )
