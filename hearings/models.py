"""
Hearings app models.

A hearing is a scheduled proceeding tied to one case and presided over
by an RCD officer.  Hearing status is tracked independently of (but
linked to) the parent case's status.  Hearings are never deleted; a
withdrawn slot is status-transitioned to ``cancelled``.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q

from cases.models import Case, ParticipantType, RCDOfficer
from core.models import TimeStampedModel


class HearingStatus(models.TextChoices):
    SCHEDULED = "scheduled", "Scheduled"
    IN_PROGRESS = "in_progress", "In Progress"
    ADJOURNED = "adjourned", "Adjourned"
    POSTPONED = "postponed", "Postponed"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class Hearing(TimeStampedModel):
    """
    Scheduled proceeding for a case.

    Two non-cancelled hearings of the same presiding officer may not
    start at the same date and time; the conditional unique constraint
    below backs up the overlap check done by the scheduling service.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    hearing_number = models.CharField(
        max_length=30,
        unique=True,
        editable=False,
        verbose_name="Hearing Number",
    )
    case = models.ForeignKey(
        Case,
        on_delete=models.PROTECT,
        related_name="hearings",
        verbose_name="Case",
    )
    title = models.CharField(max_length=200, verbose_name="Title")
    description = models.TextField(blank=True, default="", verbose_name="Description")
    hearing_date = models.DateField(verbose_name="Hearing Date", db_index=True)
    start_time = models.TimeField(verbose_name="Start Time")
    end_time = models.TimeField(verbose_name="End Time")
    location = models.CharField(max_length=500, blank=True, default="", verbose_name="Location")
    virtual_meeting_link = models.URLField(max_length=500, blank=True, default="", verbose_name="Virtual Meeting Link")
    status = models.CharField(
        max_length=20,
        choices=HearingStatus.choices,
        default=HearingStatus.SCHEDULED,
        verbose_name="Status",
        db_index=True,
    )

    presiding_officer = models.ForeignKey(
        RCDOfficer,
        on_delete=models.PROTECT,
        related_name="presided_hearings",
        verbose_name="Presiding Officer",
    )
    presiding_officer_name = models.CharField(max_length=200, verbose_name="Presiding Officer Name")
    clerk = models.ForeignKey(
        RCDOfficer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="clerked_hearings",
        verbose_name="Clerk",
    )
    clerk_name = models.CharField(max_length=200, blank=True, default="", verbose_name="Clerk Name")

    outcome = models.TextField(max_length=1000, blank=True, default="", verbose_name="Outcome")
    minutes = models.TextField(max_length=5000, blank=True, default="", verbose_name="Minutes")
    cancellation_reason = models.TextField(blank=True, default="", verbose_name="Cancellation Reason")
    is_active = models.BooleanField(default=True, verbose_name="Active")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="scheduled_hearings",
        verbose_name="Created By",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="updated_hearings",
        verbose_name="Updated By",
    )

    class Meta:
        verbose_name = "Hearing"
        verbose_name_plural = "Hearings"
        ordering = ["-hearing_date", "-start_time"]
        indexes = [
            models.Index(fields=["presiding_officer", "hearing_date"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["presiding_officer", "hearing_date", "start_time"],
                condition=~Q(status="cancelled"),
                name="uniq_active_hearing_slot_per_officer",
            ),
        ]

    def __str__(self):
        return f"{self.hearing_number} ({self.hearing_date} {self.start_time:%H:%M})"


class HearingParticipant(TimeStampedModel):
    """
    Attendance record for one person at a hearing.
    """

    hearing = models.ForeignKey(
        Hearing,
        on_delete=models.CASCADE,
        related_name="participants",
        verbose_name="Hearing",
    )
    participant_id = models.CharField(max_length=64, verbose_name="Participant ID")
    participant_name = models.CharField(max_length=200, verbose_name="Name")
    participant_email = models.EmailField(blank=True, default="", verbose_name="Email")
    participant_phone = models.CharField(max_length=20, blank=True, default="", verbose_name="Phone")
    participant_type = models.CharField(
        max_length=30,
        choices=ParticipantType.choices,
        verbose_name="Participant Type",
    )
    role = models.CharField(max_length=100, blank=True, default="", verbose_name="Role")
    organization = models.CharField(max_length=200, blank=True, default="", verbose_name="Organization")
    is_required = models.BooleanField(default=True, verbose_name="Attendance Required")
    has_confirmed_attendance = models.BooleanField(default=False, verbose_name="Confirmed Attendance")
    confirmed_at = models.DateTimeField(null=True, blank=True, verbose_name="Confirmed At")
    attended = models.BooleanField(null=True, blank=True, verbose_name="Attended")
    notes = models.TextField(blank=True, default="", verbose_name="Notes")

    class Meta:
        verbose_name = "Hearing Participant"
        verbose_name_plural = "Hearing Participants"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["hearing", "participant_id"],
                name="uniq_hearing_participant",
            ),
        ]

    def __str__(self):
        return f"{self.participant_name} at {self.hearing_id}"
