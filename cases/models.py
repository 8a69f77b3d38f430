"""
Cases app models.

Covers the complete rent-dispute case lifecycle — from the complainant's
draft, through submission, officer review, investigation and hearings,
to resolution, closure and (when needed) reopening — together with the
staff profiles (RCD officers, mediators) that cases are assigned to.
"""

import uuid

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class CaseType(models.TextChoices):
    RENT_ARREARS = "rent_arrears", "Rent Arrears"
    PROPERTY_MAINTENANCE = "property_maintenance", "Property Maintenance"
    ILLEGAL_EVICTION = "illegal_eviction", "Illegal Eviction"
    RENT_INCREASE_DISPUTE = "rent_increase_dispute", "Rent Increase Dispute"
    SECURITY_DEPOSIT_DISPUTE = "security_deposit_dispute", "Security Deposit Dispute"
    HARASSMENT = "harassment", "Harassment"
    UTILITY_DISPUTE = "utility_dispute", "Utility Dispute"
    REPAIR_NEGLECT = "repair_neglect", "Repair Neglect"
    OVERCROWDING = "overcrowding", "Overcrowding"
    HEALTH_AND_SAFETY = "health_and_safety", "Health and Safety"
    NOISE_COMPLAINT = "noise_complaint", "Noise Complaint"
    LEASE_VIOLATION = "lease_violation", "Lease Violation"
    OTHER = "other", "Other"


class CaseStatus(models.TextChoices):
    """
    Lifecycle status.  Legal edges live in
    ``cases.services.ALLOWED_TRANSITIONS``.
    """

    DRAFT = "draft", "Draft"
    SUBMITTED = "submitted", "Submitted"
    UNDER_REVIEW = "under_review", "Under Review"
    INVESTIGATION = "investigation", "Under Investigation"
    SCHEDULED_FOR_HEARING = "scheduled_for_hearing", "Scheduled for Hearing"
    HEARING_IN_PROGRESS = "hearing_in_progress", "Hearing in Progress"
    DECISION_PENDING = "decision_pending", "Decision Pending"
    RESOLVED = "resolved", "Resolved"
    CLOSED = "closed", "Closed"
    REOPENED = "reopened", "Reopened"
    WITHDRAWN = "withdrawn", "Withdrawn"
    DISMISSED = "dismissed", "Dismissed"


#: Statuses with no further lifecycle work (``Reopened`` is re-entry).
TERMINAL_STATUSES = frozenset({
    CaseStatus.CLOSED,
    CaseStatus.WITHDRAWN,
    CaseStatus.DISMISSED,
})

#: Statuses that no longer count against a mediator's caseload.
FINISHED_STATUSES = TERMINAL_STATUSES | {CaseStatus.RESOLVED}


class CasePriority(models.IntegerChoices):
    """
    Attention tier.  The *integer value* orders the tiers so that
    ``order_by("-priority")`` puts critical cases first.
    """

    LOW = 1, "Low"
    MEDIUM = 2, "Medium"
    HIGH = 3, "High"
    CRITICAL = 4, "Critical"


class ResolutionType(models.TextChoices):
    SETTLEMENT = "settlement", "Settlement"
    MEDIATION_AGREEMENT = "mediation_agreement", "Mediation Agreement"
    ARBITRATION_AWARD = "arbitration_award", "Arbitration Award"
    RULING = "ruling", "Ruling"
    CONSENT_ORDER = "consent_order", "Consent Order"
    DISMISSAL = "dismissal", "Dismissal"
    WITHDRAWAL = "withdrawal", "Withdrawal"


class ParticipantType(models.TextChoices):
    COMPLAINANT = "complainant", "Complainant"
    RESPONDENT = "respondent", "Respondent"
    WITNESS = "witness", "Witness"
    LEGAL_REPRESENTATIVE = "legal_representative", "Legal Representative"
    EXPERT_WITNESS = "expert_witness", "Expert Witness"
    INTERPRETER = "interpreter", "Interpreter"
    OBSERVER = "observer", "Observer"


class CaseUpdateType(models.TextChoices):
    """Kind of entry in a case's audit trail."""

    CASE_CREATED = "case_created", "Case Created"
    CASE_UPDATED = "case_updated", "Case Updated"
    CASE_SUBMITTED = "case_submitted", "Case Submitted"
    CASE_ASSIGNED = "case_assigned", "Case Assigned"
    STATUS_CHANGED = "status_changed", "Status Changed"
    CASE_RESOLVED = "case_resolved", "Case Resolved"
    CASE_REOPENED = "case_reopened", "Case Reopened"
    NOTE_ADDED = "note_added", "Note Added"
    PARTICIPANT_ADDED = "participant_added", "Participant Added"
    HEARING_SCHEDULED = "hearing_scheduled", "Hearing Scheduled"
    HEARING_UPDATED = "hearing_updated", "Hearing Updated"
    HEARING_CANCELLED = "hearing_cancelled", "Hearing Cancelled"
    HEARING_PARTICIPANT_ADDED = "hearing_participant_added", "Hearing Participant Added"
    HEARING_OUTCOME_RECORDED = "hearing_outcome_recorded", "Hearing Outcome Recorded"


# ────────────────────────────────────────────────────────────────────
# Staff profiles
# ────────────────────────────────────────────────────────────────────

class RCDOfficer(TimeStampedModel):
    """
    Rent Control Department officer.

    The internal ``id`` is what cases and hearings reference; the linked
    ``user`` is the login identity.  Only active officers receive new
    assignments or preside over new hearings.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="rcd_officer_profile",
        verbose_name="User Account",
    )
    full_name = models.CharField(max_length=200, verbose_name="Full Name")
    employee_number = models.CharField(
        max_length=50,
        unique=True,
        verbose_name="Employee Number",
    )
    department = models.CharField(max_length=100, blank=True, default="", verbose_name="Department")
    designation = models.CharField(max_length=100, blank=True, default="", verbose_name="Designation")
    region = models.CharField(max_length=100, blank=True, default="", verbose_name="Region")
    can_preside_hearings = models.BooleanField(default=True, verbose_name="Can Preside Hearings")
    can_assign_cases = models.BooleanField(default=True, verbose_name="Can Assign Cases")
    can_close_cases = models.BooleanField(default=False, verbose_name="Can Close Cases")
    is_active = models.BooleanField(default=True, verbose_name="Active")

    class Meta:
        verbose_name = "RCD Officer"
        verbose_name_plural = "RCD Officers"
        ordering = ["full_name"]

    def __str__(self):
        return f"{self.full_name} ({self.employee_number})"


class Mediator(TimeStampedModel):
    """
    Neutral mediator assignable to a case for settlement facilitation.

    ``max_active_cases`` caps the number of unfinished cases a mediator
    may carry at once.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="mediator_profile",
        verbose_name="User Account",
    )
    full_name = models.CharField(max_length=200, verbose_name="Full Name")
    email = models.EmailField(blank=True, default="", verbose_name="Email")
    phone = models.CharField(max_length=20, blank=True, default="", verbose_name="Phone")
    license_number = models.CharField(max_length=50, blank=True, default="", verbose_name="License Number")
    specialization = models.CharField(max_length=200, blank=True, default="", verbose_name="Specialization")
    max_active_cases = models.PositiveIntegerField(default=10, verbose_name="Max Active Cases")
    is_active = models.BooleanField(default=True, verbose_name="Active")

    class Meta:
        verbose_name = "Mediator"
        verbose_name_plural = "Mediators"
        ordering = ["full_name"]

    def __str__(self):
        return self.full_name


# ────────────────────────────────────────────────────────────────────
# Case aggregate
# ────────────────────────────────────────────────────────────────────

class Case(TimeStampedModel):
    """
    Central entity of the system — a rent dispute.

    * Created in ``draft`` by the complainant (or an officer on their
      behalf) with exactly two seed participants.
    * ``case_number`` is allocated once at creation and never changes.
    * Never physically deleted; withdrawal, dismissal and closure are
      statuses.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    case_number = models.CharField(
        max_length=30,
        unique=True,
        editable=False,
        verbose_name="Case Number",
    )
    case_type = models.CharField(
        max_length=30,
        choices=CaseType.choices,
        verbose_name="Case Type",
        db_index=True,
    )
    title = models.CharField(max_length=200, verbose_name="Title")
    description = models.TextField(max_length=2000, verbose_name="Description")

    # ── Parties ─────────────────────────────────────────────────────
    complainant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="complaints_filed",
        verbose_name="Complainant",
    )
    complainant_name = models.CharField(max_length=200, verbose_name="Complainant Name")
    complainant_phone = models.CharField(max_length=20, blank=True, default="", verbose_name="Complainant Phone")
    complainant_email = models.EmailField(blank=True, default="", verbose_name="Complainant Email")

    respondent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="complaints_received",
        verbose_name="Respondent",
    )
    respondent_name = models.CharField(max_length=200, verbose_name="Respondent Name")
    respondent_phone = models.CharField(max_length=20, blank=True, default="", verbose_name="Respondent Phone")
    respondent_email = models.EmailField(blank=True, default="", verbose_name="Respondent Email")

    # ── Linked external records ─────────────────────────────────────
    property_id = models.UUIDField(null=True, blank=True, verbose_name="Property ID")
    tenancy_agreement_id = models.UUIDField(null=True, blank=True, verbose_name="Tenancy Agreement ID")
    property_address = models.CharField(max_length=500, blank=True, default="", verbose_name="Property Address")

    # ── Lifecycle ───────────────────────────────────────────────────
    status = models.CharField(
        max_length=30,
        choices=CaseStatus.choices,
        default=CaseStatus.DRAFT,
        verbose_name="Status",
        db_index=True,
    )
    priority = models.IntegerField(
        choices=CasePriority.choices,
        default=CasePriority.MEDIUM,
        verbose_name="Priority",
        db_index=True,
    )
    incident_date = models.DateField(null=True, blank=True, verbose_name="Incident Date")
    claim_amount = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Claim Amount",
    )
    awarded_amount = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Awarded Amount",
    )
    resolution = models.CharField(
        max_length=30,
        choices=ResolutionType.choices,
        blank=True,
        default="",
        verbose_name="Resolution",
    )
    resolution_details = models.TextField(blank=True, default="", verbose_name="Resolution Details")
    resolution_date = models.DateTimeField(null=True, blank=True, verbose_name="Resolution Date")
    is_active = models.BooleanField(default=True, verbose_name="Active")

    # ── Assignment ──────────────────────────────────────────────────
    assigned_officer = models.ForeignKey(
        RCDOfficer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_cases",
        verbose_name="Assigned Officer",
    )
    assigned_officer_name = models.CharField(max_length=200, blank=True, default="", verbose_name="Assigned Officer Name")
    assigned_mediator = models.ForeignKey(
        Mediator,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_cases",
        verbose_name="Assigned Mediator",
    )
    assigned_mediator_name = models.CharField(max_length=200, blank=True, default="", verbose_name="Assigned Mediator Name")

    # ── Attribution / timestamps ────────────────────────────────────
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_cases",
        verbose_name="Created By",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="updated_cases",
        verbose_name="Updated By",
    )
    submitted_at = models.DateTimeField(null=True, blank=True, verbose_name="Submitted At")
    closed_at = models.DateTimeField(null=True, blank=True, verbose_name="Closed At")

    class Meta:
        verbose_name = "Case"
        verbose_name_plural = "Cases"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "priority"]),
            models.Index(fields=["complainant", "status"]),
            models.Index(fields=["respondent", "status"]),
        ]

    def __str__(self):
        return f"{self.case_number} — {self.title}"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class CaseParticipant(TimeStampedModel):
    """
    A party associated with a case.

    Every case is created with exactly two primary participants
    (complainant and respondent).  Witnesses, representatives and others
    are added later; ``participant_id`` is the user id for registered
    users or an external reference otherwise.
    """

    case = models.ForeignKey(
        Case,
        on_delete=models.CASCADE,
        related_name="participants",
        verbose_name="Case",
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
    is_primary_contact = models.BooleanField(default=False, verbose_name="Primary Contact")
    address = models.CharField(max_length=500, blank=True, default="", verbose_name="Address")
    notes = models.TextField(blank=True, default="", verbose_name="Notes")
    added_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="Added By",
    )

    class Meta:
        verbose_name = "Case Participant"
        verbose_name_plural = "Case Participants"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["case", "participant_id", "participant_type"],
                name="uniq_case_participant",
            ),
        ]

    def __str__(self):
        return f"{self.get_participant_type_display()} {self.participant_name} on {self.case_id}"


class CaseNote(TimeStampedModel):
    """
    Free-text annotation on a case.  Internal notes are hidden from
    complainants and respondents.
    """

    case = models.ForeignKey(
        Case,
        on_delete=models.CASCADE,
        related_name="notes",
        verbose_name="Case",
    )
    title = models.CharField(max_length=200, blank=True, default="", verbose_name="Title")
    content = models.TextField(max_length=5000, verbose_name="Content")
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="case_notes",
        verbose_name="Author",
    )
    author_name = models.CharField(max_length=200, blank=True, default="", verbose_name="Author Name")
    is_internal = models.BooleanField(default=False, verbose_name="Internal")

    class Meta:
        verbose_name = "Case Note"
        verbose_name_plural = "Case Notes"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Note on {self.case_id}: {self.title or self.content[:40]}"


class CaseUpdate(models.Model):
    """
    Append-only audit trail entry.

    Rows are written once by the service layer and never changed: both
    ``save()`` on an existing row and ``delete()`` raise.  The
    auto-incrementing ``id`` preserves insertion order, which is the
    order the trail is replayed in.

    ``old_value`` / ``new_value`` hold structured snapshots of the
    touched fields (``{"status": "draft"}``), not pre-rendered text.
    """

    case = models.ForeignKey(
        Case,
        on_delete=models.CASCADE,
        related_name="updates",
        verbose_name="Case",
    )
    update_type = models.CharField(
        max_length=40,
        choices=CaseUpdateType.choices,
        verbose_name="Update Type",
    )
    description = models.TextField(verbose_name="Description")
    old_value = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder, verbose_name="Old Value")
    new_value = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder, verbose_name="New Value")
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="case_updates",
        verbose_name="Actor",
    )
    actor_name = models.CharField(max_length=200, blank=True, default="", verbose_name="Actor Name")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")

    class Meta:
        verbose_name = "Case Update"
        verbose_name_plural = "Case Updates"
        ordering = ["id"]

    def __str__(self):
        return f"{self.case_id}: {self.update_type}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Case updates are append-only and cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Case updates are append-only and cannot be deleted.")
