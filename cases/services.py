"""
Cases app Service Layer.

This module is the **single source of truth** for all business logic
in the ``cases`` app.  Views must remain thin: validate input via
serializers, call a service method with the request's ``Actor``, and
return the result wrapped in a DRF ``Response``.

Architecture
------------
- ``CaseCreationService``     — Draft creation with seed participants.
- ``CaseQueryService``        — Cached single-case read, scoped search,
                                audit / note / participant listings.
- ``CaseWorkflowService``     — State-machine transitions (submit,
                                update, resolve, reopen, status override).
- ``CaseAssignmentService``   — Officer / mediator assignment.
- ``CaseNoteService``         — Case annotations.
- ``CaseParticipantService``  — Additional case participants.

Every mutation follows the same unit of work:

1. Lock the case row (``select_for_update``) inside ``transaction.atomic``.
2. Check the actor's capability, then re-check the current status
   against ``ALLOWED_TRANSITIONS`` on the locked row.
3. Write the entity change and append a ``CaseUpdate`` audit record.
4. Register post-commit side effects: cache eviction for every affected
   actor and fire-and-forget notifications.

Workflow State-Machine Overview
--------------------------------
::

  DRAFT → SUBMITTED → UNDER_REVIEW ⇄ INVESTIGATION
                           ↓               ↓
                  SCHEDULED_FOR_HEARING ⇄ HEARING_IN_PROGRESS
                           ↓               ↓
                        DECISION_PENDING ──┘
                           ↓
     {RESOLVED, WITHDRAWN, DISMISSED} → CLOSED
     {RESOLVED, CLOSED} → REOPENED → UNDER_REVIEW | INVESTIGATION | ...
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Prefetch, QuerySet
from django.utils import timezone

from core.collaborators import ensure_exists, property_lookup, tenancy_lookup
from core.constants import CASE_DETAIL_CACHE_TTL
from core.domain.access import Actor, Capability
from core.domain.cache import AggregateCache, CacheInvalidation, CacheKeys
from core.domain.exceptions import Conflict, DomainError, InvalidTransition, NotFound, PermissionDenied
from core.domain.notifications import notify_case_assigned, notify_case_status_changed
from core.domain.transactions import guard_transition, lock_for_update
from core.pagination import Page, PageRequest, paginate

from .models import (
    FINISHED_STATUSES,
    Case,
    CaseNote,
    CaseParticipant,
    CaseStatus,
    CaseUpdate,
    CaseUpdateType,
    Mediator,
    ParticipantType,
    RCDOfficer,
    ResolutionType,
)
from .numbering import allocate_case_number
from .priority import classify_priority

logger = logging.getLogger(__name__)

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  Valid transition map
# ═══════════════════════════════════════════════════════════════════

#: Maps a source status to the set of statuses it may move to.
#: Transitions not present here are illegal for every actor.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    CaseStatus.DRAFT: frozenset({
        CaseStatus.SUBMITTED,
        CaseStatus.WITHDRAWN,
    }),
    CaseStatus.SUBMITTED: frozenset({
        CaseStatus.UNDER_REVIEW,
        CaseStatus.RESOLVED,
        CaseStatus.WITHDRAWN,
        CaseStatus.DISMISSED,
    }),
    CaseStatus.UNDER_REVIEW: frozenset({
        CaseStatus.INVESTIGATION,
        CaseStatus.SCHEDULED_FOR_HEARING,
        CaseStatus.RESOLVED,
        CaseStatus.WITHDRAWN,
        CaseStatus.DISMISSED,
    }),
    CaseStatus.INVESTIGATION: frozenset({
        CaseStatus.UNDER_REVIEW,
        CaseStatus.SCHEDULED_FOR_HEARING,
        CaseStatus.RESOLVED,
        CaseStatus.WITHDRAWN,
        CaseStatus.DISMISSED,
    }),
    CaseStatus.SCHEDULED_FOR_HEARING: frozenset({
        CaseStatus.HEARING_IN_PROGRESS,
        CaseStatus.DECISION_PENDING,
        CaseStatus.UNDER_REVIEW,
        CaseStatus.RESOLVED,
        CaseStatus.WITHDRAWN,
        CaseStatus.DISMISSED,
    }),
    CaseStatus.HEARING_IN_PROGRESS: frozenset({
        CaseStatus.DECISION_PENDING,
        CaseStatus.SCHEDULED_FOR_HEARING,
        CaseStatus.RESOLVED,
        CaseStatus.WITHDRAWN,
        CaseStatus.DISMISSED,
    }),
    CaseStatus.DECISION_PENDING: frozenset({
        CaseStatus.RESOLVED,
        CaseStatus.DISMISSED,
        CaseStatus.SCHEDULED_FOR_HEARING,
    }),
    CaseStatus.RESOLVED: frozenset({
        CaseStatus.CLOSED,
        CaseStatus.REOPENED,
    }),
    CaseStatus.WITHDRAWN: frozenset({CaseStatus.CLOSED}),
    CaseStatus.DISMISSED: frozenset({CaseStatus.CLOSED}),
    CaseStatus.CLOSED: frozenset({CaseStatus.REOPENED}),
    CaseStatus.REOPENED: frozenset({
        CaseStatus.UNDER_REVIEW,
        CaseStatus.INVESTIGATION,
        CaseStatus.SCHEDULED_FOR_HEARING,
        CaseStatus.RESOLVED,
        CaseStatus.WITHDRAWN,
        CaseStatus.DISMISSED,
    }),
}

#: Statuses from which a case may be (re)assigned.
ASSIGNABLE_STATUSES = frozenset({
    CaseStatus.SUBMITTED,
    CaseStatus.UNDER_REVIEW,
    CaseStatus.INVESTIGATION,
    CaseStatus.REOPENED,
})

UPDATABLE_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "claim_amount",
    "awarded_amount",
    "resolution",
    "resolution_details",
)


# ═══════════════════════════════════════════════════════════════════
#  Shared helpers
# ═══════════════════════════════════════════════════════════════════


def display_name(user: Any) -> str:
    return user.get_full_name() or user.get_username()


def record_update(
    case: Case,
    update_type: str,
    description: str,
    *,
    actor: Actor,
    old_value: dict[str, Any] | None = None,
    new_value: dict[str, Any] | None = None,
) -> CaseUpdate:
    """Append one entry to ``case``'s audit trail."""
    return CaseUpdate.objects.create(
        case=case,
        update_type=update_type,
        description=description,
        old_value=old_value,
        new_value=new_value,
        actor=actor.user,
        actor_name=actor.display_name,
    )


def staff_user_ids(case: Case) -> list[Any]:
    """User ids of the officer and mediator currently assigned to ``case``."""
    ids = []
    if case.assigned_officer_id:
        ids.append(case.assigned_officer.user_id)
    if case.assigned_mediator_id:
        ids.append(case.assigned_mediator.user_id)
    return ids


def invalidate_case_views(case: Case, actor: Actor, *extra_user_ids: Any) -> None:
    """
    Evict the single-case view of ``case`` and the aggregates of every
    actor it touches, once the surrounding transaction commits.
    """
    (
        CacheInvalidation()
        .case(case.pk)
        .actors(
            actor.user_id,
            case.complainant_id,
            case.respondent_id,
            *staff_user_ids(case),
            *extra_user_ids,
        )
        .schedule()
    )


def stamp_status_dates(case: Case, new_status: str, now: datetime) -> None:
    """Set ``resolution_date`` / ``closed_at`` when entering those statuses."""
    if new_status == CaseStatus.RESOLVED:
        case.resolution_date = now
    elif new_status == CaseStatus.CLOSED:
        case.closed_at = now


def _lock_case(case_id: Any) -> Case:
    return lock_for_update(
        Case,
        case_id,
        select_related=("assigned_officer", "assigned_mediator"),
    )


def _label(status: str) -> str:
    return CaseStatus(status).label


# ═══════════════════════════════════════════════════════════════════
#  Case Creation Service
# ═══════════════════════════════════════════════════════════════════


class CaseCreationService:
    """
    Files a new case in ``draft`` status.
    """

    @staticmethod
    @transaction.atomic
    def create_case(validated_data: dict[str, Any], actor: Actor) -> Case:
        """
        Create a new case with its seed participants and first audit entry.

        Parameters
        ----------
        validated_data : dict
            Cleaned data from ``CaseCreateSerializer``.
            Required: ``case_type``, ``title``, ``description``,
            ``respondent_id``.
            Optional: ``complainant_id`` (officers filing on behalf of a
            complainant), ``incident_date``, ``claim_amount``,
            ``property_id``, ``tenancy_agreement_id``,
            ``property_address``, ``initial_note``.
        actor : Actor
            The filing user.  Parties file as the complainant; officers
            and admins may name the complainant.

        Returns
        -------
        Case
            The newly created case in ``draft``.

        Raises
        ------
        PermissionDenied
            Mediators cannot file cases; parties cannot file on behalf
            of somebody else.
        NotFound
            Complainant, respondent, property or tenancy does not exist.
        DependencyUnavailable
            The property or tenancy registry could not be consulted.
        DomainError
            Complainant and respondent are the same user, or the
            incident date lies in the future.

        Implementation Contract
        -----------------------
        Case number allocation, the case row, both participants, the
        ``case_created`` audit entry and the optional note are written
        in one transaction; any failure rolls back all of them.
        """
        if not actor.can_file_cases:
            raise PermissionDenied("Mediators cannot file cases.")

        complainant_id = validated_data.get("complainant_id")
        if complainant_id is None or complainant_id == actor.user_id:
            complainant = actor.user
        elif actor.is_officer:
            complainant = _get_user(complainant_id, "Complainant")
        else:
            raise PermissionDenied("You can only file cases as the complainant.")

        respondent = _get_user(validated_data["respondent_id"], "Respondent")
        if respondent.pk == complainant.pk:
            raise DomainError("Complainant and respondent must be different users.")

        incident_date = validated_data.get("incident_date")
        if incident_date is not None and incident_date > timezone.localdate():
            raise DomainError("Incident date cannot be in the future.")

        property_id = validated_data.get("property_id")
        if property_id is not None:
            ensure_exists(property_lookup(), property_id)
        tenancy_agreement_id = validated_data.get("tenancy_agreement_id")
        if tenancy_agreement_id is not None:
            ensure_exists(tenancy_lookup(), tenancy_agreement_id)

        case_type = validated_data["case_type"]
        claim_amount = validated_data.get("claim_amount")

        case = Case.objects.create(
            case_number=allocate_case_number(case_type),
            case_type=case_type,
            title=validated_data["title"],
            description=validated_data["description"],
            complainant=complainant,
            complainant_name=display_name(complainant),
            complainant_phone=complainant.phone_number,
            complainant_email=complainant.email,
            respondent=respondent,
            respondent_name=display_name(respondent),
            respondent_phone=respondent.phone_number,
            respondent_email=respondent.email,
            property_id=property_id,
            tenancy_agreement_id=tenancy_agreement_id,
            property_address=validated_data.get("property_address", ""),
            incident_date=incident_date,
            claim_amount=claim_amount,
            priority=classify_priority(case_type, claim_amount),
            status=CaseStatus.DRAFT,
            created_by=actor.user,
            updated_by=actor.user,
        )

        CaseParticipant.objects.bulk_create([
            _seed_participant(case, complainant, ParticipantType.COMPLAINANT, actor),
            _seed_participant(case, respondent, ParticipantType.RESPONDENT, actor),
        ])

        record_update(
            case,
            CaseUpdateType.CASE_CREATED,
            f"Case {case.case_number} created",
            actor=actor,
            new_value={"status": case.status, "priority": case.priority},
        )

        initial_note = (validated_data.get("initial_note") or "").strip()
        if initial_note:
            CaseNote.objects.create(
                case=case,
                title="Initial note",
                content=initial_note,
                author=actor.user,
                author_name=actor.display_name,
                is_internal=False,
            )

        invalidate_case_views(case, actor)
        logger.info(
            "Case %s created by actor=%s (priority=%s)",
            case.case_number,
            actor.user_id,
            case.priority,
        )
        return case


def _get_user(user_id: Any, label: str) -> Any:
    try:
        return User.objects.get(pk=user_id, is_active=True)
    except (User.DoesNotExist, DjangoValidationError, ValueError, TypeError):
        raise NotFound(f"{label} {user_id} not found.")


def _seed_participant(case: Case, user: Any, participant_type: str, actor: Actor) -> CaseParticipant:
    return CaseParticipant(
        case=case,
        participant_id=str(user.pk),
        participant_name=display_name(user),
        participant_email=user.email,
        participant_phone=user.phone_number,
        participant_type=participant_type,
        is_primary_contact=True,
        added_by=actor.user,
    )


# ═══════════════════════════════════════════════════════════════════
#  Case Query Service
# ═══════════════════════════════════════════════════════════════════


class CaseQueryService:
    """
    Read side of the cases app.

    Single-case reads go through the aggregate cache; the capability
    check always runs **after** the cache lookup so a cached view is
    never served to an actor who may not read it.
    """

    @staticmethod
    def get_case(case_id: Any, actor: Actor) -> Case:
        """
        Return the case with its participants and notes prefetched.

        Raises ``NotFound`` for a missing case and ``PermissionDenied``
        when the actor lacks ``read`` on it.
        """
        case = AggregateCache.get_or_build(
            CacheKeys.case(case_id),
            CASE_DETAIL_CACHE_TTL,
            lambda: _load_case_view(case_id),
        )
        actor.require(case, Capability.READ)
        return case

    @staticmethod
    def get_readable_case(case_id: Any, actor: Actor) -> Case:
        """Uncached lookup + ``read`` check, for sub-resource listings."""
        case = _get_case_or_404(Case.objects.all(), case_id)
        actor.require(case, Capability.READ)
        return case

    @staticmethod
    def search(actor: Actor, filters: dict[str, Any], page_request: PageRequest) -> Page:
        """
        Role-scoped, filtered, paginated case search.

        Parameters
        ----------
        actor : Actor
            Scope predicate source (``actor.scope_cases``).
        filters : dict
            Cleaned data from ``CaseSearchSerializer``.
        page_request : PageRequest
            Requested page.

        Returns
        -------
        Page
            Cases ordered newest first.
        """
        qs = actor.scope_cases(
            Case.objects.select_related("assigned_officer", "assigned_mediator")
        )
        qs = _apply_search_filters(qs, filters)
        return paginate(qs.order_by("-created_at", "-id"), page_request)

    @staticmethod
    def list_updates(case_id: Any, actor: Actor, page_request: PageRequest) -> Page:
        """Audit trail in insertion order."""
        case = CaseQueryService.get_readable_case(case_id, actor)
        return paginate(case.updates.order_by("id"), page_request)

    @staticmethod
    def list_notes(case_id: Any, actor: Actor, page_request: PageRequest) -> Page:
        """Notes newest first; internal notes only for staff actors."""
        case = CaseQueryService.get_readable_case(case_id, actor)
        qs = case.notes.all()
        if not actor.can(case, Capability.VIEW_INTERNAL_NOTES):
            qs = qs.filter(is_internal=False)
        return paginate(qs.order_by("-created_at", "-id"), page_request)

    @staticmethod
    def list_participants(case_id: Any, actor: Actor, page_request: PageRequest) -> Page:
        case = CaseQueryService.get_readable_case(case_id, actor)
        return paginate(case.participants.order_by("created_at", "id"), page_request)


def _get_case_or_404(queryset: QuerySet, case_id: Any) -> Case:
    try:
        return queryset.get(pk=case_id)
    except (Case.DoesNotExist, DjangoValidationError, ValueError, TypeError):
        raise NotFound(f"Case {case_id} not found.")


def _load_case_view(case_id: Any) -> Case:
    queryset = (
        Case.objects
        .select_related("assigned_officer", "assigned_mediator")
        .prefetch_related(
            Prefetch("participants", queryset=CaseParticipant.objects.order_by("created_at", "id")),
            Prefetch("notes", queryset=CaseNote.objects.order_by("-created_at", "-id")),
        )
    )
    return _get_case_or_404(queryset, case_id)


_CONTAINS_FILTERS = {
    "case_number": "case_number__icontains",
    "title": "title__icontains",
    "complainant_name": "complainant_name__icontains",
    "respondent_name": "respondent_name__icontains",
}

_EXACT_FILTERS = {
    "case_type": "case_type",
    "status": "status",
    "priority": "priority",
    "complainant": "complainant_id",
    "respondent": "respondent_id",
    "property_id": "property_id",
    "tenancy_agreement_id": "tenancy_agreement_id",
    "assigned_officer": "assigned_officer_id",
    "assigned_mediator": "assigned_mediator_id",
}

_RANGE_FILTERS = {
    "created_from": "created_at__date__gte",
    "created_to": "created_at__date__lte",
    "incident_from": "incident_date__gte",
    "incident_to": "incident_date__lte",
}


def _apply_search_filters(qs: QuerySet, filters: dict[str, Any]) -> QuerySet:
    qs = qs.filter(is_active=filters.get("is_active", True))
    for source in (_CONTAINS_FILTERS, _EXACT_FILTERS, _RANGE_FILTERS):
        for key, lookup in source.items():
            value = filters.get(key)
            if value not in (None, ""):
                qs = qs.filter(**{lookup: value})
    return qs


# ═══════════════════════════════════════════════════════════════════
#  Case Workflow Service
# ═══════════════════════════════════════════════════════════════════


class CaseWorkflowService:
    """
    Manages **all** status transitions in the case lifecycle.

    Each public method locks the case row, checks the actor's
    capability, re-checks the current status against
    ``ALLOWED_TRANSITIONS`` on the locked row, writes the change plus
    its audit record, and registers post-commit eviction and
    notification.  No transition may be replayed blindly: the status
    check on the locked row is what rejects a concurrent duplicate.
    """

    @staticmethod
    @transaction.atomic
    def submit(case_id: Any, actor: Actor) -> Case:
        """
        **Complainant (or an officer) submits a draft.**

        Transitions: ``DRAFT`` → ``SUBMITTED``; sets ``submitted_at``.

        Raises
        ------
        PermissionDenied
            Actor is neither the complainant nor an officer.
        InvalidTransition
            The case is not a draft.
        DomainError
            Title or description is blank.
        """
        case = _lock_case(case_id)
        actor.require(case, Capability.SUBMIT)

        if case.status != CaseStatus.DRAFT:
            raise InvalidTransition(
                current=case.status,
                target=CaseStatus.SUBMITTED,
                reason="Only draft cases can be submitted.",
            )
        if not case.title.strip() or not case.description.strip():
            raise DomainError("Title and description are required before submission.")

        now = timezone.now()
        old_status = case.status
        case.status = CaseStatus.SUBMITTED
        case.submitted_at = now
        case.updated_by = actor.user
        case.save(update_fields=["status", "submitted_at", "updated_by", "updated_at"])

        record_update(
            case,
            CaseUpdateType.CASE_SUBMITTED,
            f"Case submitted for review by {actor.display_name}",
            actor=actor,
            old_value={"status": old_status},
            new_value={"status": case.status},
        )
        notify_case_status_changed(case, old_status, case.status, actor=actor)
        invalidate_case_views(case, actor)
        logger.info("Case %s submitted by actor=%s", case.case_number, actor.user_id)
        return case

    @staticmethod
    @transaction.atomic
    def update_case(case_id: Any, validated_data: dict[str, Any], actor: Actor) -> Case:
        """
        Partially update a case.

        Parameters
        ----------
        case_id : UUID
        validated_data : dict
            Any subset of ``UPDATABLE_FIELDS``.
        actor : Actor
            Complainant or officer (``update`` capability).

        Returns
        -------
        Case
            The updated case.

        Raises
        ------
        PermissionDenied
            Actor is neither the complainant nor an officer.
        InvalidTransition
            ``status`` is changed along an edge not in
            ``ALLOWED_TRANSITIONS``.
        DomainError
            No updatable field supplied.

        Implementation Contract
        -----------------------
        One ``case_updated`` audit record captures the before / after
        values of every supplied field.  Entering ``resolved`` stamps
        ``resolution_date``; entering ``closed`` stamps ``closed_at``.
        """
        changes = {k: validated_data[k] for k in UPDATABLE_FIELDS if k in validated_data}
        if not changes:
            raise DomainError("No updatable fields supplied.")

        case = _lock_case(case_id)
        actor.require(case, Capability.UPDATE)

        old_status = case.status
        new_status = changes.get("status", old_status)
        if new_status != old_status:
            guard_transition(old_status, new_status, ALLOWED_TRANSITIONS)

        old_value = {field: getattr(case, field) for field in changes}
        for field, value in changes.items():
            setattr(case, field, value)

        update_fields = list(changes) + ["updated_by", "updated_at"]
        if new_status != old_status:
            stamp_status_dates(case, new_status, timezone.now())
            update_fields += ["resolution_date", "closed_at"]

        case.updated_by = actor.user
        case.save(update_fields=update_fields)

        record_update(
            case,
            CaseUpdateType.CASE_UPDATED,
            f"Case updated: {', '.join(changes)}",
            actor=actor,
            old_value=old_value,
            new_value={field: getattr(case, field) for field in changes},
        )
        if new_status != old_status:
            notify_case_status_changed(case, old_status, new_status, actor=actor)
        invalidate_case_views(case, actor)
        logger.info(
            "Case %s updated (%s) by actor=%s",
            case.case_number,
            ", ".join(changes),
            actor.user_id,
        )
        return case

    @staticmethod
    @transaction.atomic
    def resolve(
        case_id: Any,
        actor: Actor,
        *,
        resolution: str,
        details: str,
        awarded_amount: Decimal | None = None,
    ) -> Case:
        """
        **Officer records the resolution of a case.**

        Transitions: any status with an edge to ``RESOLVED`` →
        ``RESOLVED``.  Drafts, terminal and already resolved
        cases are rejected with ``InvalidTransition``.

        Besides the ``case_resolved`` audit record a public resolution
        note is appended to the case.
        """
        case = _lock_case(case_id)
        actor.require(case, Capability.RESOLVE)
        guard_transition(
            case.status,
            CaseStatus.RESOLVED,
            ALLOWED_TRANSITIONS,
            reason="Draft, terminal and already resolved cases cannot be resolved.",
        )

        now = timezone.now()
        old_status = case.status
        old_value = {
            "status": old_status,
            "resolution": case.resolution,
            "awarded_amount": case.awarded_amount,
        }
        case.status = CaseStatus.RESOLVED
        case.resolution = resolution
        case.resolution_details = details
        if awarded_amount is not None:
            case.awarded_amount = awarded_amount
        stamp_status_dates(case, CaseStatus.RESOLVED, now)
        case.updated_by = actor.user
        case.save(update_fields=[
            "status",
            "resolution",
            "resolution_details",
            "awarded_amount",
            "resolution_date",
            "updated_by",
            "updated_at",
        ])

        resolution_label = ResolutionType(resolution).label
        record_update(
            case,
            CaseUpdateType.CASE_RESOLVED,
            f"Case resolved: {resolution_label}",
            actor=actor,
            old_value=old_value,
            new_value={
                "status": case.status,
                "resolution": case.resolution,
                "awarded_amount": case.awarded_amount,
            },
        )
        CaseNote.objects.create(
            case=case,
            title="Case Resolution",
            content=f"Resolution: {resolution_label}\n\n{details}",
            author=actor.user,
            author_name=actor.display_name,
            is_internal=False,
        )
        notify_case_status_changed(case, old_status, case.status, actor=actor)
        invalidate_case_views(case, actor)
        logger.info("Case %s resolved (%s) by actor=%s", case.case_number, resolution, actor.user_id)
        return case

    @staticmethod
    @transaction.atomic
    def reopen(case_id: Any, actor: Actor, *, reason: str) -> Case:
        """
        **Officer reopens a resolved or closed case.**

        Transitions: ``RESOLVED`` | ``CLOSED`` → ``REOPENED``; clears
        ``closed_at`` and leaves an internal "Case Reopened" note carrying
        the reason.
        """
        if not (reason or "").strip():
            raise DomainError("A reason is required to reopen a case.")

        case = _lock_case(case_id)
        actor.require(case, Capability.REOPEN)
        guard_transition(
            case.status,
            CaseStatus.REOPENED,
            ALLOWED_TRANSITIONS,
            reason="Only resolved or closed cases can be reopened.",
        )

        old_status = case.status
        case.status = CaseStatus.REOPENED
        case.closed_at = None
        case.updated_by = actor.user
        case.save(update_fields=["status", "closed_at", "updated_by", "updated_at"])

        record_update(
            case,
            CaseUpdateType.CASE_REOPENED,
            f"Case reopened: {reason}",
            actor=actor,
            old_value={"status": old_status},
            new_value={"status": case.status, "reason": reason},
        )
        CaseNote.objects.create(
            case=case,
            title="Case Reopened",
            content=reason,
            author=actor.user,
            author_name=actor.display_name,
            is_internal=True,
        )
        notify_case_status_changed(case, old_status, case.status, actor=actor)
        invalidate_case_views(case, actor)
        logger.info("Case %s reopened by actor=%s", case.case_number, actor.user_id)
        return case

    @staticmethod
    @transaction.atomic
    def update_status(case_id: Any, actor: Actor, *, new_status: str, reason: str = "") -> Case:
        """
        **Administrative status override.**

        Moves the case along any single edge of ``ALLOWED_TRANSITIONS``
        and records old / new status in the audit trail.
        """
        case = _lock_case(case_id)
        actor.require(case, Capability.CHANGE_STATUS)
        guard_transition(case.status, new_status, ALLOWED_TRANSITIONS)

        old_status = case.status
        case.status = new_status
        stamp_status_dates(case, new_status, timezone.now())
        case.updated_by = actor.user
        case.save(update_fields=[
            "status",
            "resolution_date",
            "closed_at",
            "updated_by",
            "updated_at",
        ])

        description = f"Status changed from {_label(old_status)} to {_label(new_status)}"
        if reason:
            description = f"{description}: {reason}"
        record_update(
            case,
            CaseUpdateType.STATUS_CHANGED,
            description,
            actor=actor,
            old_value={"status": old_status},
            new_value={"status": new_status},
        )
        notify_case_status_changed(case, old_status, new_status, actor=actor)
        invalidate_case_views(case, actor)
        logger.info(
            "Case %s status %s → %s by actor=%s",
            case.case_number,
            old_status,
            new_status,
            actor.user_id,
        )
        return case


# ═══════════════════════════════════════════════════════════════════
#  Case Assignment Service
# ═══════════════════════════════════════════════════════════════════


class CaseAssignmentService:
    """
    Assigns RCD officers and mediators to cases.

    Callers supply **user** ids (the login identity); they are resolved
    to the internal ``RCDOfficer`` / ``Mediator`` rows here.
    """

    @staticmethod
    @transaction.atomic
    def assign(
        case_id: Any,
        actor: Actor,
        *,
        officer_user_id: Any = None,
        mediator_user_id: Any = None,
    ) -> Case:
        """
        Assign an officer and/or mediator and move the case to
        ``UNDER_REVIEW``.

        Parameters
        ----------
        case_id : UUID
        actor : Actor
            Must hold ``assign`` (officers and admins).
        officer_user_id, mediator_user_id
            User ids of the staff to assign.  At least one is required;
            an omitted one leaves the current assignment unchanged.

        Raises
        ------
        DomainError
            Neither officer nor mediator supplied.
        PermissionDenied
            Actor lacks ``assign``.
        NotFound
            Officer or mediator missing or inactive.
        InvalidTransition
            The case status does not allow assignment.
        Conflict
            The mediator already carries ``max_active_cases`` open cases.
        """
        if officer_user_id is None and mediator_user_id is None:
            raise DomainError("An officer or a mediator must be specified.")

        case = _lock_case(case_id)
        actor.require(case, Capability.ASSIGN)
        if case.status not in ASSIGNABLE_STATUSES:
            raise InvalidTransition(
                current=case.status,
                target=CaseStatus.UNDER_REVIEW,
                reason="Cases can only be assigned while submitted, under review, "
                       "under investigation or reopened.",
            )

        officer = mediator = None
        if officer_user_id is not None:
            officer = (
                RCDOfficer.objects
                .filter(user_id=officer_user_id, is_active=True)
                .first()
            )
            if officer is None:
                raise NotFound(f"RCD officer {officer_user_id} not found or inactive.")
        if mediator_user_id is not None:
            mediator = (
                Mediator.objects
                .select_for_update()
                .filter(user_id=mediator_user_id, is_active=True)
                .first()
            )
            if mediator is None:
                raise NotFound(f"Mediator {mediator_user_id} not found or inactive.")
            open_cases = (
                Case.objects
                .filter(assigned_mediator=mediator)
                .exclude(status__in=FINISHED_STATUSES)
                .exclude(pk=case.pk)
                .count()
            )
            if open_cases >= mediator.max_active_cases:
                raise Conflict(
                    f"Mediator {mediator.full_name} already has "
                    f"{open_cases} active case(s)."
                )

        previous_staff = staff_user_ids(case)
        old_value = {
            "status": case.status,
            "assigned_officer": case.assigned_officer_name,
            "assigned_mediator": case.assigned_mediator_name,
        }
        update_fields = ["status", "updated_by", "updated_at"]
        if officer is not None:
            case.assigned_officer = officer
            case.assigned_officer_name = officer.full_name
            update_fields += ["assigned_officer", "assigned_officer_name"]
        if mediator is not None:
            case.assigned_mediator = mediator
            case.assigned_mediator_name = mediator.full_name
            update_fields += ["assigned_mediator", "assigned_mediator_name"]

        old_status = case.status
        case.status = CaseStatus.UNDER_REVIEW
        case.updated_by = actor.user
        case.save(update_fields=update_fields)

        assignees = [p.full_name for p in (officer, mediator) if p is not None]
        record_update(
            case,
            CaseUpdateType.CASE_ASSIGNED,
            f"Case assigned to {', '.join(assignees)}",
            actor=actor,
            old_value=old_value,
            new_value={
                "status": case.status,
                "assigned_officer": case.assigned_officer_name,
                "assigned_mediator": case.assigned_mediator_name,
            },
        )
        notify_case_assigned(case, actor=actor, officer=officer, mediator=mediator)
        if old_status != case.status:
            notify_case_status_changed(case, old_status, case.status, actor=actor)
        invalidate_case_views(case, actor, *previous_staff)
        logger.info(
            "Case %s assigned (officer=%s, mediator=%s) by actor=%s",
            case.case_number,
            officer.pk if officer else None,
            mediator.pk if mediator else None,
            actor.user_id,
        )
        return case


# ═══════════════════════════════════════════════════════════════════
#  Case Note Service
# ═══════════════════════════════════════════════════════════════════


class CaseNoteService:

    @staticmethod
    @transaction.atomic
    def add_note(
        case_id: Any,
        actor: Actor,
        *,
        content: str,
        title: str = "",
        is_internal: bool = False,
    ) -> CaseNote:
        """
        Append a note.  Parties may only write notes visible to both
        sides; internal notes need ``view_internal_notes``.
        """
        case = _lock_case(case_id)
        actor.require(case, Capability.ADD_NOTE)
        if is_internal and not actor.can(case, Capability.VIEW_INTERNAL_NOTES):
            raise PermissionDenied("Only staff can add internal notes.")

        note = CaseNote.objects.create(
            case=case,
            title=title,
            content=content,
            author=actor.user,
            author_name=actor.display_name,
            is_internal=is_internal,
        )
        record_update(
            case,
            CaseUpdateType.NOTE_ADDED,
            f"{'Internal' if is_internal else 'Public'} note added by {actor.display_name}",
            actor=actor,
            new_value={"note_id": note.pk, "is_internal": is_internal},
        )
        invalidate_case_views(case, actor)
        return note


# ═══════════════════════════════════════════════════════════════════
#  Case Participant Service
# ═══════════════════════════════════════════════════════════════════


class CaseParticipantService:

    @staticmethod
    @transaction.atomic
    def add_participant(case_id: Any, actor: Actor, validated_data: dict[str, Any]) -> CaseParticipant:
        """
        Add a witness, representative or other participant.

        Raises ``Conflict`` when the same participant id is already
        recorded on the case with the same participant type.
        """
        case = _lock_case(case_id)
        actor.require(case, Capability.MANAGE_PARTICIPANTS)

        participant_id = str(validated_data["participant_id"])
        participant_type = validated_data["participant_type"]
        if case.participants.filter(
            participant_id=participant_id,
            participant_type=participant_type,
        ).exists():
            raise Conflict(
                f"Participant {participant_id} is already on this case as "
                f"{ParticipantType(participant_type).label}."
            )

        participant = CaseParticipant.objects.create(
            case=case,
            participant_id=participant_id,
            participant_name=validated_data["participant_name"],
            participant_email=validated_data.get("participant_email", ""),
            participant_phone=validated_data.get("participant_phone", ""),
            participant_type=participant_type,
            role=validated_data.get("role", ""),
            organization=validated_data.get("organization", ""),
            is_primary_contact=validated_data.get("is_primary_contact", False),
            address=validated_data.get("address", ""),
            notes=validated_data.get("notes", ""),
            added_by=actor.user,
        )
        record_update(
            case,
            CaseUpdateType.PARTICIPANT_ADDED,
            f"{participant.get_participant_type_display()} {participant.participant_name} added",
            actor=actor,
            new_value={
                "participant_id": participant_id,
                "participant_type": participant_type,
            },
        )
        invalidate_case_views(case, actor)
        return participant
