"""
Cases app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the appropriate service class,
       passing the request's ``Actor``.
    3. Serialize the result and return a DRF ``Response``.

No database queries, workflow logic, or access rules live here.

ViewSets
--------
- ``CaseViewSet``            — case CRUD, workflow and read-only
                               sub-resource actions.
- ``CaseNoteViewSet``        — ``/api/cases/{case_pk}/notes/``
- ``CaseParticipantViewSet`` — ``/api/cases/{case_pk}/participants/``
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.domain.access import actor_for_request
from core.pagination import PageRequest, page_payload
from hearings.serializers import HearingListSerializer
from hearings.services import HearingQueryService

from .serializers import (
    AssignStaffSerializer,
    CaseCreateSerializer,
    CaseDetailSerializer,
    CaseListSerializer,
    CaseNoteCreateSerializer,
    CaseNoteSerializer,
    CaseParticipantCreateSerializer,
    CaseParticipantSerializer,
    CaseSearchSerializer,
    CaseStatusChangeSerializer,
    CaseUpdateRecordSerializer,
    CaseUpdateSerializer,
    ReopenCaseSerializer,
    ResolveCaseSerializer,
)
from .services import (
    CaseAssignmentService,
    CaseCreationService,
    CaseNoteService,
    CaseParticipantService,
    CaseQueryService,
    CaseWorkflowService,
)

logger = logging.getLogger(__name__)

_PAGE_PARAMETERS = [
    OpenApiParameter(name="page", type=int, location=OpenApiParameter.QUERY, description="1-based page number."),
    OpenApiParameter(name="page_size", type=int, location=OpenApiParameter.QUERY, description="Items per page (max 100)."),
]


class CaseViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the cases app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined, preventing accidental exposure of unintended
    CRUD operations.  Cases are never deleted, so there is no
    ``destroy``.

    Permission Strategy
    -------------------
    The base permission is ``IsAuthenticated``.  Role and relationship
    checks are enforced exclusively inside the service layer through the
    request's ``Actor``; never in the view.
    """

    permission_classes = [IsAuthenticated]

    def _detail(self, request: Request, case, *, http_status=status.HTTP_200_OK) -> Response:
        serializer = CaseDetailSerializer(case, context={"actor": actor_for_request(request)})
        return Response(serializer.data, status=http_status)

    # ── Standard CRUD ────────────────────────────────────────────────

    @extend_schema(
        summary="Search cases",
        description=(
            "Role-scoped, filtered, paginated case search ordered newest first. "
            "Parties see their own cases, officers and mediators the cases "
            "assigned to them, admins every case."
        ),
        parameters=[CaseSearchSerializer, *_PAGE_PARAMETERS],
        responses={200: OpenApiResponse(response=CaseListSerializer(many=True), description="One page of cases.")},
        tags=["Cases"],
    )
    def list(self, request: Request) -> Response:
        """
        GET /api/cases/
        """
        filter_serializer = CaseSearchSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        page = CaseQueryService.search(
            actor_for_request(request),
            filter_serializer.validated_data,
            PageRequest.from_params(request.query_params),
        )
        return Response(page_payload(page, CaseListSerializer))

    @extend_schema(
        summary="File a case",
        description=(
            "Create a case in draft status.  Priority is classified from the "
            "case type and claim amount.  Mediators cannot file cases."
        ),
        request=CaseCreateSerializer,
        responses={
            201: OpenApiResponse(response=CaseDetailSerializer, description="Case created."),
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Actor may not file this case."),
            404: OpenApiResponse(description="Respondent, property or tenancy not found."),
            503: OpenApiResponse(description="Property or tenancy registry unavailable."),
        },
        tags=["Cases"],
    )
    def create(self, request: Request) -> Response:
        """
        POST /api/cases/
        """
        serializer = CaseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = CaseCreationService.create_case(
            serializer.validated_data,
            actor_for_request(request),
        )
        return self._detail(request, case, http_status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve a case",
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Case detail."),
            403: OpenApiResponse(description="Actor may not read this case."),
            404: OpenApiResponse(description="Case not found."),
        },
        tags=["Cases"],
    )
    def retrieve(self, request: Request, pk=None) -> Response:
        """
        GET /api/cases/{id}/

        Served from the aggregate cache when warm.
        """
        case = CaseQueryService.get_case(pk, actor_for_request(request))
        return self._detail(request, case)

    @extend_schema(
        summary="Update a case",
        description=(
            "Partial update.  Complainants may change title, description and "
            "claim amount; officers may also change status (along a legal "
            "edge), priority, awarded amount and resolution fields."
        ),
        request=CaseUpdateSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Case updated."),
            403: OpenApiResponse(description="Permission denied."),
            409: OpenApiResponse(description="Illegal status transition."),
        },
        tags=["Cases"],
    )
    def partial_update(self, request: Request, pk=None) -> Response:
        """
        PATCH /api/cases/{id}/
        """
        serializer = CaseUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        case = CaseWorkflowService.update_case(
            pk,
            serializer.validated_data,
            actor_for_request(request),
        )
        return self._detail(request, case)

    # ── Workflow @actions ────────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="submit")
    @extend_schema(
        summary="Submit a draft",
        description="Complainant or officer submits a draft case (DRAFT → SUBMITTED).",
        request=None,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Case submitted."),
            403: OpenApiResponse(description="Only the complainant or an officer can submit."),
            409: OpenApiResponse(description="Case is not a draft."),
        },
        tags=["Cases – Workflow"],
    )
    def submit(self, request: Request, pk=None) -> Response:
        """
        POST /api/cases/{id}/submit/
        """
        case = CaseWorkflowService.submit(pk, actor_for_request(request))
        return self._detail(request, case)

    @action(detail=True, methods=["post"], url_path="assign")
    @extend_schema(
        summary="Assign officer and/or mediator",
        description=(
            "Assign an RCD officer and/or a mediator (user ids) and move the "
            "case to UNDER_REVIEW.  Requires officer capability."
        ),
        request=AssignStaffSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Case assigned."),
            404: OpenApiResponse(description="Officer or mediator not found or inactive."),
            409: OpenApiResponse(description="Case not assignable, or mediator at capacity."),
        },
        tags=["Cases – Workflow"],
    )
    def assign(self, request: Request, pk=None) -> Response:
        """
        POST /api/cases/{id}/assign/
        """
        serializer = AssignStaffSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        case = CaseAssignmentService.assign(
            pk,
            actor_for_request(request),
            officer_user_id=data.get("officer_id"),
            mediator_user_id=data.get("mediator_id"),
        )
        return self._detail(request, case)

    @action(detail=True, methods=["post"], url_path="resolve")
    @extend_schema(
        summary="Resolve a case",
        request=ResolveCaseSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Case resolved."),
            403: OpenApiResponse(description="Only officers can resolve cases."),
            409: OpenApiResponse(description="Case status does not allow resolution."),
        },
        tags=["Cases – Workflow"],
    )
    def resolve(self, request: Request, pk=None) -> Response:
        """
        POST /api/cases/{id}/resolve/
        """
        serializer = ResolveCaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        case = CaseWorkflowService.resolve(
            pk,
            actor_for_request(request),
            resolution=data["resolution"],
            details=data["details"],
            awarded_amount=data.get("awarded_amount"),
        )
        return self._detail(request, case)

    @action(detail=True, methods=["post"], url_path="reopen")
    @extend_schema(
        summary="Reopen a resolved or closed case",
        request=ReopenCaseSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Case reopened."),
            409: OpenApiResponse(description="Case is neither resolved nor closed."),
        },
        tags=["Cases – Workflow"],
    )
    def reopen(self, request: Request, pk=None) -> Response:
        """
        POST /api/cases/{id}/reopen/
        """
        serializer = ReopenCaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = CaseWorkflowService.reopen(
            pk,
            actor_for_request(request),
            reason=serializer.validated_data["reason"],
        )
        return self._detail(request, case)

    @action(detail=True, methods=["post"], url_path="status")
    @extend_schema(
        summary="Administrative status change",
        description="Move the case along any single legal edge of the lifecycle.",
        request=CaseStatusChangeSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Status changed."),
            409: OpenApiResponse(description="Illegal transition."),
        },
        tags=["Cases – Workflow"],
    )
    def change_status(self, request: Request, pk=None) -> Response:
        """
        POST /api/cases/{id}/status/
        """
        serializer = CaseStatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = CaseWorkflowService.update_status(
            pk,
            actor_for_request(request),
            new_status=serializer.validated_data["status"],
            reason=serializer.validated_data["reason"],
        )
        return self._detail(request, case)

    # ── Read-only sub-resources ──────────────────────────────────────

    @action(detail=True, methods=["get"], url_path="updates")
    @extend_schema(
        summary="Case audit trail",
        parameters=_PAGE_PARAMETERS,
        responses={200: OpenApiResponse(response=CaseUpdateRecordSerializer(many=True), description="Audit records in insertion order.")},
        tags=["Cases – Sub-resources"],
    )
    def updates(self, request: Request, pk=None) -> Response:
        """
        GET /api/cases/{id}/updates/
        """
        page = CaseQueryService.list_updates(
            pk,
            actor_for_request(request),
            PageRequest.from_params(request.query_params),
        )
        return Response(page_payload(page, CaseUpdateRecordSerializer))

    @action(detail=True, methods=["get"], url_path="hearings")
    @extend_schema(
        summary="Hearings of a case",
        parameters=_PAGE_PARAMETERS,
        responses={200: OpenApiResponse(response=HearingListSerializer(many=True), description="Hearings, newest first.")},
        tags=["Cases – Sub-resources"],
    )
    def hearings(self, request: Request, pk=None) -> Response:
        """
        GET /api/cases/{id}/hearings/
        """
        page = HearingQueryService.list_for_case(
            pk,
            actor_for_request(request),
            PageRequest.from_params(request.query_params),
        )
        return Response(page_payload(page, HearingListSerializer))


class CaseNoteViewSet(viewsets.ViewSet):
    """
    Notes nested under a case.  Internal notes are listed only for
    actors holding ``view_internal_notes``.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List case notes",
        parameters=_PAGE_PARAMETERS,
        responses={200: OpenApiResponse(response=CaseNoteSerializer(many=True), description="Notes, newest first.")},
        tags=["Cases – Notes"],
    )
    def list(self, request: Request, case_pk=None) -> Response:
        page = CaseQueryService.list_notes(
            case_pk,
            actor_for_request(request),
            PageRequest.from_params(request.query_params),
        )
        return Response(page_payload(page, CaseNoteSerializer))

    @extend_schema(
        summary="Add a case note",
        request=CaseNoteCreateSerializer,
        responses={
            201: OpenApiResponse(response=CaseNoteSerializer, description="Note added."),
            403: OpenApiResponse(description="Actor may not add (internal) notes."),
        },
        tags=["Cases – Notes"],
    )
    def create(self, request: Request, case_pk=None) -> Response:
        serializer = CaseNoteCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        note = CaseNoteService.add_note(
            case_pk,
            actor_for_request(request),
            **serializer.validated_data,
        )
        return Response(CaseNoteSerializer(note).data, status=status.HTTP_201_CREATED)


class CaseParticipantViewSet(viewsets.ViewSet):
    """Participants nested under a case."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List case participants",
        parameters=_PAGE_PARAMETERS,
        responses={200: OpenApiResponse(response=CaseParticipantSerializer(many=True), description="Participants.")},
        tags=["Cases – Participants"],
    )
    def list(self, request: Request, case_pk=None) -> Response:
        page = CaseQueryService.list_participants(
            case_pk,
            actor_for_request(request),
            PageRequest.from_params(request.query_params),
        )
        return Response(page_payload(page, CaseParticipantSerializer))

    @extend_schema(
        summary="Add a case participant",
        request=CaseParticipantCreateSerializer,
        responses={
            201: OpenApiResponse(response=CaseParticipantSerializer, description="Participant added."),
            409: OpenApiResponse(description="Participant already on the case with this type."),
        },
        tags=["Cases – Participants"],
    )
    def create(self, request: Request, case_pk=None) -> Response:
        serializer = CaseParticipantCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        participant = CaseParticipantService.add_participant(
            case_pk,
            actor_for_request(request),
            serializer.validated_data,
        )
        return Response(
            CaseParticipantSerializer(participant).data,
            status=status.HTTP_201_CREATED,
        )
