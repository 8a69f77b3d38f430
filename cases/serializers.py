"""
Cases app serializers.

Contains all Request and Response serializers for the Cases API.
Serializers handle field definitions, read/write constraints, and field-level
validation only.  **No business logic, workflow transitions, or priority
classification live here**; those belong in ``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Case read serializers (list, detail)
3. Case write serializers (create, update)
4. Workflow action serializers (assign, resolve, reopen, status change)
5. Sub-resource serializers (note, participant, audit record)
"""

from __future__ import annotations

import re
from typing import Any

from rest_framework import serializers

from core.domain.access import Capability

from .models import (
    Case,
    CaseNote,
    CaseParticipant,
    CasePriority,
    CaseStatus,
    CaseType,
    CaseUpdate,
    ParticipantType,
    ResolutionType,
)

# ── Phone number validation regex ───────────────────────────────────
_PHONE_REGEX = re.compile(r"^\+?\d{7,15}$")

_AMOUNT = dict(max_digits=18, decimal_places=2, min_value=0)


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseSearchSerializer(serializers.Serializer):
    """
    Validates and cleans query-parameter filters for ``GET /api/cases/``.

    All fields are optional.  The view passes the validated dict directly
    to ``CaseQueryService.search``.  Pagination parameters (``page``,
    ``page_size``) are read separately.

    Query Parameters
    ----------------
    ``case_number`` / ``title``                : str  — substring match
    ``complainant_name`` / ``respondent_name`` : str  — substring match
    ``case_type`` / ``status`` / ``priority``  : exact match
    ``complainant`` / ``respondent``           : int  — user PK
    ``assigned_officer`` / ``assigned_mediator``: UUID — internal profile id
    ``created_from`` / ``created_to``          : date — inclusive range
    ``incident_from`` / ``incident_to``        : date — inclusive range
    ``is_active``                              : bool — default ``true``
    """

    case_number = serializers.CharField(required=False)
    title = serializers.CharField(required=False)
    case_type = serializers.ChoiceField(choices=CaseType.choices, required=False)
    status = serializers.ChoiceField(choices=CaseStatus.choices, required=False)
    priority = serializers.ChoiceField(choices=CasePriority.choices, required=False)
    complainant = serializers.IntegerField(required=False, min_value=1)
    respondent = serializers.IntegerField(required=False, min_value=1)
    complainant_name = serializers.CharField(required=False)
    respondent_name = serializers.CharField(required=False)
    property_id = serializers.UUIDField(required=False)
    tenancy_agreement_id = serializers.UUIDField(required=False)
    assigned_officer = serializers.UUIDField(required=False)
    assigned_mediator = serializers.UUIDField(required=False)
    created_from = serializers.DateField(required=False)
    created_to = serializers.DateField(required=False)
    incident_from = serializers.DateField(required=False)
    incident_to = serializers.DateField(required=False)
    is_active = serializers.BooleanField(required=False, default=True)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        """Every ``*_from`` bound must not be after its ``*_to`` bound."""
        for prefix in ("created", "incident"):
            lower = attrs.get(f"{prefix}_from")
            upper = attrs.get(f"{prefix}_to")
            if lower and upper and lower > upper:
                raise serializers.ValidationError(
                    {f"{prefix}_from": f"'{prefix}_from' must be on or before '{prefix}_to'."}
                )
        return attrs


# ═══════════════════════════════════════════════════════════════════
#  2. Case Read Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseListSerializer(serializers.ModelSerializer):
    """Compact representation for search results and dashboards."""

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    priority_display = serializers.CharField(source="get_priority_display", read_only=True)

    class Meta:
        model = Case
        fields = [
            "id",
            "case_number",
            "case_type",
            "title",
            "status",
            "status_display",
            "priority",
            "priority_display",
            "complainant_name",
            "respondent_name",
            "claim_amount",
            "assigned_officer_name",
            "assigned_mediator_name",
            "submitted_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CaseNoteSerializer(serializers.ModelSerializer):
    """Read representation of a ``CaseNote``."""

    class Meta:
        model = CaseNote
        fields = [
            "id",
            "title",
            "content",
            "author",
            "author_name",
            "is_internal",
            "created_at",
        ]
        read_only_fields = fields


class CaseParticipantSerializer(serializers.ModelSerializer):
    """Read representation of a ``CaseParticipant``."""

    class Meta:
        model = CaseParticipant
        fields = [
            "id",
            "participant_id",
            "participant_name",
            "participant_email",
            "participant_phone",
            "participant_type",
            "role",
            "organization",
            "is_primary_contact",
            "address",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class CaseUpdateRecordSerializer(serializers.ModelSerializer):
    """Read-only serializer for the case audit trail."""

    class Meta:
        model = CaseUpdate
        fields = [
            "id",
            "update_type",
            "description",
            "old_value",
            "new_value",
            "actor",
            "actor_name",
            "created_at",
        ]
        read_only_fields = fields


class CaseDetailSerializer(serializers.ModelSerializer):
    """
    Full case view with participants and notes.

    Internal notes are included only when the ``actor`` passed in the
    serializer context holds ``view_internal_notes`` on the case.
    """

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    priority_display = serializers.CharField(source="get_priority_display", read_only=True)
    case_type_display = serializers.CharField(source="get_case_type_display", read_only=True)
    participants = CaseParticipantSerializer(many=True, read_only=True)
    notes = serializers.SerializerMethodField()

    class Meta:
        model = Case
        fields = [
            "id",
            "case_number",
            "case_type",
            "case_type_display",
            "title",
            "description",
            "status",
            "status_display",
            "priority",
            "priority_display",
            "complainant",
            "complainant_name",
            "complainant_phone",
            "complainant_email",
            "respondent",
            "respondent_name",
            "respondent_phone",
            "respondent_email",
            "property_id",
            "tenancy_agreement_id",
            "property_address",
            "incident_date",
            "claim_amount",
            "awarded_amount",
            "resolution",
            "resolution_details",
            "resolution_date",
            "is_active",
            "assigned_officer",
            "assigned_officer_name",
            "assigned_mediator",
            "assigned_mediator_name",
            "submitted_at",
            "closed_at",
            "participants",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_notes(self, obj: Case) -> list[dict[str, Any]]:
        actor = self.context.get("actor")
        notes = list(obj.notes.all())
        if actor is None or not actor.can(obj, Capability.VIEW_INTERNAL_NOTES):
            notes = [note for note in notes if not note.is_internal]
        return CaseNoteSerializer(notes, many=True).data


# ═══════════════════════════════════════════════════════════════════
#  3. Case Write Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseCreateSerializer(serializers.Serializer):
    """
    Request body for ``POST /api/cases/``.

    ``complainant_id`` is only honoured for officers and admins filing on
    behalf of a party; everyone else files as themselves.
    """

    case_type = serializers.ChoiceField(choices=CaseType.choices)
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(max_length=2000)
    respondent_id = serializers.IntegerField(min_value=1)
    complainant_id = serializers.IntegerField(min_value=1, required=False)
    incident_date = serializers.DateField(required=False, allow_null=True)
    claim_amount = serializers.DecimalField(required=False, allow_null=True, **_AMOUNT)
    property_id = serializers.UUIDField(required=False, allow_null=True)
    tenancy_agreement_id = serializers.UUIDField(required=False, allow_null=True)
    property_address = serializers.CharField(max_length=500, required=False, allow_blank=True)
    initial_note = serializers.CharField(max_length=5000, required=False, allow_blank=True)


class CaseUpdateSerializer(serializers.Serializer):
    """
    Request body for ``PATCH /api/cases/{id}/``.

    All fields are optional.  A ``status`` change must follow an edge of
    the case state machine.
    """

    title = serializers.CharField(max_length=200, required=False)
    description = serializers.CharField(max_length=2000, required=False)
    status = serializers.ChoiceField(choices=CaseStatus.choices, required=False)
    priority = serializers.ChoiceField(choices=CasePriority.choices, required=False)
    claim_amount = serializers.DecimalField(required=False, allow_null=True, **_AMOUNT)
    awarded_amount = serializers.DecimalField(required=False, allow_null=True, **_AMOUNT)
    resolution = serializers.ChoiceField(choices=ResolutionType.choices, required=False, allow_blank=True)
    resolution_details = serializers.CharField(required=False, allow_blank=True)


# ═══════════════════════════════════════════════════════════════════
#  4. Workflow Action Serializers
# ═══════════════════════════════════════════════════════════════════


class AssignStaffSerializer(serializers.Serializer):
    """
    Request body for ``POST /api/cases/{id}/assign/``.

    Both ids are **user** PKs.  At least one must be supplied.
    """

    officer_id = serializers.IntegerField(min_value=1, required=False)
    mediator_id = serializers.IntegerField(min_value=1, required=False)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if "officer_id" not in attrs and "mediator_id" not in attrs:
            raise serializers.ValidationError(
                "At least one of 'officer_id' or 'mediator_id' is required."
            )
        return attrs


class ResolveCaseSerializer(serializers.Serializer):
    """Request body for ``POST /api/cases/{id}/resolve/``."""

    resolution = serializers.ChoiceField(choices=ResolutionType.choices)
    details = serializers.CharField(max_length=5000)
    awarded_amount = serializers.DecimalField(required=False, allow_null=True, **_AMOUNT)


class ReopenCaseSerializer(serializers.Serializer):
    """Request body for ``POST /api/cases/{id}/reopen/``."""

    reason = serializers.CharField(max_length=2000)


class CaseStatusChangeSerializer(serializers.Serializer):
    """Request body for ``POST /api/cases/{id}/status/``."""

    status = serializers.ChoiceField(choices=CaseStatus.choices)
    reason = serializers.CharField(max_length=2000, required=False, allow_blank=True, default="")


# ═══════════════════════════════════════════════════════════════════
#  5. Sub-resource Write Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseNoteCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    content = serializers.CharField(max_length=5000)
    is_internal = serializers.BooleanField(required=False, default=False)


class CaseParticipantCreateSerializer(serializers.Serializer):
    """Request body for ``POST /api/cases/{case_pk}/participants/``."""

    participant_id = serializers.CharField(max_length=64)
    participant_name = serializers.CharField(max_length=200)
    participant_email = serializers.EmailField(required=False, allow_blank=True)
    participant_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    participant_type = serializers.ChoiceField(choices=ParticipantType.choices)
    role = serializers.CharField(max_length=100, required=False, allow_blank=True)
    organization = serializers.CharField(max_length=200, required=False, allow_blank=True)
    is_primary_contact = serializers.BooleanField(required=False, default=False)
    address = serializers.CharField(max_length=500, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_participant_phone(self, value: str) -> str:
        """Accept blank or 7–15 digits with an optional leading ``+``."""
        if value and not _PHONE_REGEX.match(value):
            raise serializers.ValidationError(
                "Phone number must be 7–15 digits, optionally prefixed with '+'."
            )
        return value
