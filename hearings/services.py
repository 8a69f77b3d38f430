"""
Hearings app Service Layer.

Architecture
------------
- ``HearingSchedulingService`` — schedule, update, cancel, record the
                                 outcome of a hearing, add participants.
- ``HearingQueryService``      — single hearing read and per-case listing.

Conflict detection
------------------
Hearing slots are half-open intervals ``[start, end)``.  Two slots of
the same presiding officer on the same date conflict iff
``s1 < e2 and s2 < e1``; touching boundaries do not conflict.

Scheduling locks the presiding officer's ``RCDOfficer`` row for the
whole overlap scan + insert, so two concurrent requests for the same
officer are serialized.  The conditional unique constraint on
``(presiding_officer, hearing_date, start_time)`` over non-cancelled
hearings is the database backstop.

``update`` deliberately does **not** re-run conflict detection when a
hearing is moved; callers that reschedule are expected to check the
officer's calendar themselves.  Only the database backstop applies.

Lock order is always case → hearing → officer.
"""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from cases.models import Case, CaseStatus, CaseUpdateType, RCDOfficer
from cases.numbering import allocate_hearing_number
from cases.services import (
    ALLOWED_TRANSITIONS,
    CaseQueryService,
    invalidate_case_views,
    record_update,
)
from core.domain.access import Actor, Capability
from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    SchedulingConflict,
)
from core.domain.notifications import (
    notify_case_status_changed,
    notify_hearing_cancelled,
    notify_hearing_scheduled,
)
from core.domain.transactions import guard_transition, lock_for_update
from core.pagination import Page, PageRequest, paginate

from .models import Hearing, HearingParticipant, HearingStatus

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  State tables
# ═══════════════════════════════════════════════════════════════════

#: Status edges reachable through ``update``.  Cancellation has its own
#: operation and is reachable from every non-cancelled status.
HEARING_TRANSITIONS: dict[str, frozenset[str]] = {
    HearingStatus.SCHEDULED: frozenset({
        HearingStatus.IN_PROGRESS,
        HearingStatus.ADJOURNED,
        HearingStatus.POSTPONED,
        HearingStatus.COMPLETED,
    }),
    HearingStatus.IN_PROGRESS: frozenset({
        HearingStatus.ADJOURNED,
        HearingStatus.COMPLETED,
    }),
    HearingStatus.ADJOURNED: frozenset({
        HearingStatus.SCHEDULED,
        HearingStatus.IN_PROGRESS,
        HearingStatus.COMPLETED,
    }),
    HearingStatus.POSTPONED: frozenset({
        HearingStatus.SCHEDULED,
    }),
    HearingStatus.COMPLETED: frozenset(),
    HearingStatus.CANCELLED: frozenset(),
}

#: Final statuses ``record_outcome`` may leave a hearing in.
OUTCOME_FINAL_STATUSES = frozenset({
    HearingStatus.COMPLETED,
    HearingStatus.ADJOURNED,
})

#: Case statuses from which a hearing may be scheduled.
SCHEDULABLE_CASE_STATUSES = frozenset(
    source
    for source, targets in ALLOWED_TRANSITIONS.items()
    if CaseStatus.SCHEDULED_FOR_HEARING in targets
) | {CaseStatus.SCHEDULED_FOR_HEARING}

_HEARING_UPDATABLE_FIELDS = (
    "title",
    "description",
    "hearing_date",
    "start_time",
    "end_time",
    "location",
    "virtual_meeting_link",
    "status",
    "outcome",
    "minutes",
)


# ═══════════════════════════════════════════════════════════════════
#  Conflict detection
# ═══════════════════════════════════════════════════════════════════


def intervals_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open interval overlap: ``[start_a, end_a)`` ∩ ``[start_b, end_b)`` ≠ ∅."""
    return start_a < end_b and start_b < end_a


def find_conflicting_hearings(
    officer_id: Any,
    hearing_date: date,
    start_time: time,
    end_time: time,
    *,
    exclude_id: Any = None,
) -> list[Hearing]:
    """Non-cancelled hearings of ``officer_id`` on ``hearing_date`` overlapping the slot."""
    qs = (
        Hearing.objects
        .filter(presiding_officer_id=officer_id, hearing_date=hearing_date)
        .exclude(status=HearingStatus.CANCELLED)
        .order_by("start_time")
    )
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return [
        hearing for hearing in qs
        if intervals_overlap(start_time, end_time, hearing.start_time, hearing.end_time)
    ]


# ═══════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════


def _resolve_officer(user_id: Any, *, label: str, presiding: bool, lock: bool) -> RCDOfficer:
    qs = RCDOfficer.objects.select_for_update() if lock else RCDOfficer.objects.all()
    officer = qs.filter(user_id=user_id, is_active=True).first()
    if officer is None:
        raise NotFound(f"{label} {user_id} not found or inactive.")
    if presiding and not officer.can_preside_hearings:
        raise DomainError(f"{officer.full_name} cannot preside over hearings.")
    return officer


def _lock_hearing(hearing_id: Any) -> tuple[Hearing, Case]:
    """Lock the parent case, then the hearing; both rows stay locked."""
    try:
        case_id = Hearing.objects.values_list("case_id", flat=True).get(pk=hearing_id)
    except (Hearing.DoesNotExist, DjangoValidationError, ValueError, TypeError):
        raise NotFound(f"Hearing {hearing_id} not found.")
    case = lock_for_update(
        Case,
        case_id,
        select_related=("assigned_officer", "assigned_mediator"),
    )
    hearing = lock_for_update(
        Hearing,
        hearing_id,
        select_related=("presiding_officer", "clerk"),
    )
    hearing.case = case
    return hearing, case


def _hearing_staff_user_ids(hearing: Hearing) -> list[Any]:
    ids = [hearing.presiding_officer.user_id]
    if hearing.clerk_id:
        ids.append(hearing.clerk.user_id)
    return ids


def _slot(hearing: Hearing) -> dict[str, Any]:
    return {
        "hearing_date": hearing.hearing_date,
        "start_time": hearing.start_time,
        "end_time": hearing.end_time,
    }


# ═══════════════════════════════════════════════════════════════════
#  Hearing Scheduling Service
# ═══════════════════════════════════════════════════════════════════


class HearingSchedulingService:
    """
    Write side of the hearings app.

    Every operation checks the actor's capability on the **parent
    case** and appends its audit record to that case's trail.
    """

    @staticmethod
    @transaction.atomic
    def schedule(validated_data: dict[str, Any], actor: Actor) -> Hearing:
        """
        Schedule a hearing and move the case to ``SCHEDULED_FOR_HEARING``.

        Parameters
        ----------
        validated_data : dict
            Cleaned data from ``HearingScheduleSerializer``.
            Required: ``case_id``, ``title``, ``hearing_date``,
            ``start_time``, ``end_time``, ``presiding_officer_id`` (user id).
            Optional: ``description``, ``location``,
            ``virtual_meeting_link``, ``clerk_id`` (user id).
        actor : Actor
            Must hold ``schedule_hearing`` on the case.

        Returns
        -------
        Hearing
            The new hearing in ``scheduled``.

        Raises
        ------
        DomainError
            ``start_time >= end_time``, a past date, or the presiding
            officer may not preside.
        NotFound
            Case, presiding officer or clerk missing / inactive.
        InvalidTransition
            The case is in a status hearings cannot be scheduled from.
        SchedulingConflict
            The slot overlaps another non-cancelled hearing of the
            presiding officer.  Nothing is written.
        """
        hearing_date = validated_data["hearing_date"]
        start_time = validated_data["start_time"]
        end_time = validated_data["end_time"]
        if start_time >= end_time:
            raise DomainError("Hearing start time must be before end time.")
        if hearing_date < timezone.localdate():
            raise DomainError("Hearings cannot be scheduled in the past.")

        case = lock_for_update(
            Case,
            validated_data["case_id"],
            select_related=("assigned_officer", "assigned_mediator"),
        )
        actor.require(case, Capability.SCHEDULE_HEARING)
        if case.status not in SCHEDULABLE_CASE_STATUSES:
            raise InvalidTransition(
                current=case.status,
                target=CaseStatus.SCHEDULED_FOR_HEARING,
                reason="Hearings can only be scheduled for cases under active review.",
            )

        officer = _resolve_officer(
            validated_data["presiding_officer_id"],
            label="Presiding officer",
            presiding=True,
            lock=True,
        )
        clerk = None
        if validated_data.get("clerk_id") is not None:
            clerk = _resolve_officer(
                validated_data["clerk_id"],
                label="Clerk",
                presiding=False,
                lock=False,
            )

        conflicts = find_conflicting_hearings(officer.pk, hearing_date, start_time, end_time)
        if conflicts:
            raise SchedulingConflict(conflicting=[h.hearing_number for h in conflicts])

        try:
            with transaction.atomic():
                hearing = Hearing.objects.create(
                    hearing_number=allocate_hearing_number(),
                    case=case,
                    title=validated_data["title"],
                    description=validated_data.get("description", ""),
                    hearing_date=hearing_date,
                    start_time=start_time,
                    end_time=end_time,
                    location=validated_data.get("location", ""),
                    virtual_meeting_link=validated_data.get("virtual_meeting_link", ""),
                    status=HearingStatus.SCHEDULED,
                    presiding_officer=officer,
                    presiding_officer_name=officer.full_name,
                    clerk=clerk,
                    clerk_name=clerk.full_name if clerk else "",
                    created_by=actor.user,
                    updated_by=actor.user,
                )
        except IntegrityError:
            raise SchedulingConflict(
                "The presiding officer already has a hearing starting at this time."
            )

        old_status = case.status
        if old_status != CaseStatus.SCHEDULED_FOR_HEARING:
            case.status = CaseStatus.SCHEDULED_FOR_HEARING
            case.updated_by = actor.user
            case.save(update_fields=["status", "updated_by", "updated_at"])

        record_update(
            case,
            CaseUpdateType.HEARING_SCHEDULED,
            f"Hearing {hearing.hearing_number} scheduled for "
            f"{hearing_date:%Y-%m-%d} {start_time:%H:%M}-{end_time:%H:%M}",
            actor=actor,
            old_value={"status": old_status},
            new_value={
                "status": case.status,
                "hearing_id": hearing.pk,
                "hearing_number": hearing.hearing_number,
                **_slot(hearing),
            },
        )
        notify_hearing_scheduled(hearing, actor=actor)
        if old_status != case.status:
            notify_case_status_changed(case, old_status, case.status, actor=actor)
        invalidate_case_views(case, actor, *_hearing_staff_user_ids(hearing))
        logger.info(
            "Hearing %s scheduled for case %s (officer=%s) by actor=%s",
            hearing.hearing_number,
            case.case_number,
            officer.pk,
            actor.user_id,
        )
        return hearing

    @staticmethod
    @transaction.atomic
    def update(hearing_id: Any, validated_data: dict[str, Any], actor: Actor) -> Hearing:
        """
        Partially update a hearing.

        Accepts any subset of ``_HEARING_UPDATABLE_FIELDS`` plus
        ``presiding_officer_id`` / ``clerk_id`` (user ids).  Status
        changes follow ``HEARING_TRANSITIONS``.  Moving the hearing does
        **not** re-run conflict detection.

        Raises
        ------
        InvalidTransition
            The hearing is cancelled, or the status edge is illegal.
        SchedulingConflict
            The new slot starts at exactly the same time as another
            active hearing of the same officer (database backstop).
        """
        hearing, case = _lock_hearing(hearing_id)
        actor.require(case, Capability.MANAGE_HEARINGS)
        if hearing.status == HearingStatus.CANCELLED:
            raise InvalidTransition(
                current=hearing.status,
                target=validated_data.get("status", hearing.status),
                reason="Cancelled hearings cannot be updated.",
            )

        changes = {k: validated_data[k] for k in _HEARING_UPDATABLE_FIELDS if k in validated_data}
        new_status = changes.get("status", hearing.status)
        if new_status != hearing.status:
            guard_transition(hearing.status, new_status, HEARING_TRANSITIONS)

        previous_staff = _hearing_staff_user_ids(hearing)
        old_value = {field: getattr(hearing, field) for field in changes}
        for field, value in changes.items():
            setattr(hearing, field, value)

        if "presiding_officer_id" in validated_data:
            officer = _resolve_officer(
                validated_data["presiding_officer_id"],
                label="Presiding officer",
                presiding=True,
                lock=True,
            )
            old_value["presiding_officer"] = hearing.presiding_officer_name
            hearing.presiding_officer = officer
            hearing.presiding_officer_name = officer.full_name
            changes["presiding_officer"] = officer.full_name
        if "clerk_id" in validated_data:
            clerk = None
            if validated_data["clerk_id"] is not None:
                clerk = _resolve_officer(
                    validated_data["clerk_id"],
                    label="Clerk",
                    presiding=False,
                    lock=False,
                )
            old_value["clerk"] = hearing.clerk_name
            hearing.clerk = clerk
            hearing.clerk_name = clerk.full_name if clerk else ""
            changes["clerk"] = hearing.clerk_name

        if not changes:
            raise DomainError("No updatable fields supplied.")
        if hearing.start_time >= hearing.end_time:
            raise DomainError("Hearing start time must be before end time.")

        hearing.updated_by = actor.user
        try:
            with transaction.atomic():
                hearing.save()
        except IntegrityError:
            raise SchedulingConflict(
                "The presiding officer already has a hearing starting at this time."
            )

        new_value = {
            field: getattr(hearing, field)
            for field in changes
            if field in _HEARING_UPDATABLE_FIELDS
        }
        if "presiding_officer" in changes:
            new_value["presiding_officer"] = hearing.presiding_officer_name
        if "clerk" in changes:
            new_value["clerk"] = hearing.clerk_name

        record_update(
            case,
            CaseUpdateType.HEARING_UPDATED,
            f"Hearing {hearing.hearing_number} updated: {', '.join(changes)}",
            actor=actor,
            old_value=old_value,
            new_value=new_value,
        )
        invalidate_case_views(
            case,
            actor,
            *previous_staff,
            *_hearing_staff_user_ids(hearing),
        )
        logger.info(
            "Hearing %s updated (%s) by actor=%s",
            hearing.hearing_number,
            ", ".join(changes),
            actor.user_id,
        )
        return hearing

    @staticmethod
    @transaction.atomic
    def cancel(hearing_id: Any, actor: Actor, *, reason: str) -> Hearing:
        """
        Cancel a hearing.

        Transitions the hearing from any status except ``cancelled`` to
        ``cancelled``.  A case waiting in ``SCHEDULED_FOR_HEARING`` is
        reverted to ``UNDER_REVIEW``.
        """
        if not (reason or "").strip():
            raise DomainError("A cancellation reason is required.")

        hearing, case = _lock_hearing(hearing_id)
        actor.require(case, Capability.MANAGE_HEARINGS)
        if hearing.status == HearingStatus.CANCELLED:
            raise InvalidTransition(
                current=hearing.status,
                target=HearingStatus.CANCELLED,
                reason="The hearing is already cancelled.",
            )

        old_hearing_status = hearing.status
        hearing.status = HearingStatus.CANCELLED
        hearing.cancellation_reason = reason
        hearing.updated_by = actor.user
        hearing.save(update_fields=["status", "cancellation_reason", "updated_by", "updated_at"])

        old_case_status = case.status
        if old_case_status == CaseStatus.SCHEDULED_FOR_HEARING:
            case.status = CaseStatus.UNDER_REVIEW
            case.updated_by = actor.user
            case.save(update_fields=["status", "updated_by", "updated_at"])

        record_update(
            case,
            CaseUpdateType.HEARING_CANCELLED,
            f"Hearing {hearing.hearing_number} cancelled: {reason}",
            actor=actor,
            old_value={"hearing_status": old_hearing_status, "status": old_case_status},
            new_value={"hearing_status": hearing.status, "status": case.status},
        )
        notify_hearing_cancelled(hearing, actor=actor)
        if old_case_status != case.status:
            notify_case_status_changed(case, old_case_status, case.status, actor=actor)
        invalidate_case_views(case, actor, *_hearing_staff_user_ids(hearing))
        logger.info("Hearing %s cancelled by actor=%s", hearing.hearing_number, actor.user_id)
        return hearing

    @staticmethod
    @transaction.atomic
    def add_participant(hearing_id: Any, actor: Actor, validated_data: dict[str, Any]) -> HearingParticipant:
        """
        Add an attendee.  Duplicates by ``(hearing, participant_id)``
        raise ``Conflict``.
        """
        hearing, case = _lock_hearing(hearing_id)
        actor.require(case, Capability.MANAGE_HEARINGS)
        if hearing.status == HearingStatus.CANCELLED:
            raise InvalidTransition(
                current=hearing.status,
                reason="Participants cannot be added to a cancelled hearing.",
            )

        participant_id = str(validated_data["participant_id"])
        if hearing.participants.filter(participant_id=participant_id).exists():
            raise Conflict(f"Participant {participant_id} is already on this hearing.")

        confirmed = validated_data.get("has_confirmed_attendance", False)
        participant = HearingParticipant.objects.create(
            hearing=hearing,
            participant_id=participant_id,
            participant_name=validated_data["participant_name"],
            participant_email=validated_data.get("participant_email", ""),
            participant_phone=validated_data.get("participant_phone", ""),
            participant_type=validated_data["participant_type"],
            role=validated_data.get("role", ""),
            organization=validated_data.get("organization", ""),
            is_required=validated_data.get("is_required", True),
            has_confirmed_attendance=confirmed,
            confirmed_at=timezone.now() if confirmed else None,
            notes=validated_data.get("notes", ""),
        )
        record_update(
            case,
            CaseUpdateType.HEARING_PARTICIPANT_ADDED,
            f"{participant.participant_name} added to hearing {hearing.hearing_number}",
            actor=actor,
            new_value={
                "hearing_id": hearing.pk,
                "participant_id": participant_id,
                "participant_type": participant.participant_type,
            },
        )
        invalidate_case_views(case, actor)
        return participant

    @staticmethod
    @transaction.atomic
    def record_outcome(
        hearing_id: Any,
        actor: Actor,
        *,
        outcome: str,
        minutes: str = "",
        final_status: str = HearingStatus.COMPLETED,
    ) -> Hearing:
        """
        Record the outcome and minutes of a completed hearing.

        Only legal while the hearing is ``completed``; ``final_status``
        must be ``completed`` or ``adjourned``.
        """
        if final_status not in OUTCOME_FINAL_STATUSES:
            raise DomainError("Final status must be 'completed' or 'adjourned'.")

        hearing, case = _lock_hearing(hearing_id)
        actor.require(case, Capability.MANAGE_HEARINGS)
        if hearing.status != HearingStatus.COMPLETED:
            raise InvalidTransition(
                current=hearing.status,
                target=final_status,
                reason="Outcomes can only be recorded for completed hearings.",
            )

        old_value = {
            "hearing_status": hearing.status,
            "outcome": hearing.outcome,
        }
        hearing.outcome = outcome
        hearing.minutes = minutes
        hearing.status = final_status
        hearing.updated_by = actor.user
        hearing.save(update_fields=["outcome", "minutes", "status", "updated_by", "updated_at"])

        record_update(
            case,
            CaseUpdateType.HEARING_OUTCOME_RECORDED,
            f"Outcome recorded for hearing {hearing.hearing_number}",
            actor=actor,
            old_value=old_value,
            new_value={"hearing_status": hearing.status, "outcome": outcome},
        )
        invalidate_case_views(case, actor, *_hearing_staff_user_ids(hearing))
        logger.info(
            "Outcome recorded for hearing %s (%s) by actor=%s",
            hearing.hearing_number,
            final_status,
            actor.user_id,
        )
        return hearing


# ═══════════════════════════════════════════════════════════════════
#  Hearing Query Service
# ═══════════════════════════════════════════════════════════════════


class HearingQueryService:

    @staticmethod
    def get_hearing(hearing_id: Any, actor: Actor) -> Hearing:
        """
        Return one hearing.  Readable by anyone who can read the case,
        and by the officers presiding or clerking it.
        """
        try:
            hearing = (
                Hearing.objects
                .select_related("case", "presiding_officer", "clerk")
                .prefetch_related("participants")
                .get(pk=hearing_id)
            )
        except (Hearing.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound(f"Hearing {hearing_id} not found.")
        if not actor.can_read_hearing(hearing):
            raise PermissionDenied("You do not have access to this hearing.")
        return hearing

    @staticmethod
    def list_for_case(case_id: Any, actor: Actor, page_request: PageRequest) -> Page:
        """Hearings of a readable case, newest first."""
        case = CaseQueryService.get_readable_case(case_id, actor)
        qs = (
            case.hearings
            .select_related("presiding_officer", "clerk")
            .order_by("-hearing_date", "-start_time")
        )
        return paginate(qs, page_request)

    @staticmethod
    def list_participants(hearing_id: Any, actor: Actor, page_request: PageRequest) -> Page:
        hearing = HearingQueryService.get_hearing(hearing_id, actor)
        return paginate(hearing.participants.order_by("created_at", "id"), page_request)
