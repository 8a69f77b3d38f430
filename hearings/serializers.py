"""
Hearings app serializers.

Request serializers validate shape only; slot conflicts, officer
eligibility and status edges are checked in ``services.py``.
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from cases.models import ParticipantType

from .models import Hearing, HearingParticipant, HearingStatus


class HearingParticipantSerializer(serializers.ModelSerializer):

    class Meta:
        model = HearingParticipant
        fields = [
            "id",
            "participant_id",
            "participant_name",
            "participant_email",
            "participant_phone",
            "participant_type",
            "role",
            "organization",
            "is_required",
            "has_confirmed_attendance",
            "confirmed_at",
            "attended",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class HearingListSerializer(serializers.ModelSerializer):
    """Compact representation used in case hearing listings."""

    case_number = serializers.CharField(source="case.case_number", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Hearing
        fields = [
            "id",
            "hearing_number",
            "case",
            "case_number",
            "title",
            "hearing_date",
            "start_time",
            "end_time",
            "location",
            "status",
            "status_display",
            "presiding_officer",
            "presiding_officer_name",
            "clerk_name",
        ]
        read_only_fields = fields


class HearingDetailSerializer(serializers.ModelSerializer):
    """Full hearing representation including participants."""

    case_number = serializers.CharField(source="case.case_number", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    participants = HearingParticipantSerializer(many=True, read_only=True)

    class Meta:
        model = Hearing
        fields = [
            "id",
            "hearing_number",
            "case",
            "case_number",
            "title",
            "description",
            "hearing_date",
            "start_time",
            "end_time",
            "location",
            "virtual_meeting_link",
            "status",
            "status_display",
            "presiding_officer",
            "presiding_officer_name",
            "clerk",
            "clerk_name",
            "outcome",
            "minutes",
            "cancellation_reason",
            "is_active",
            "participants",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


def _check_slot(attrs: dict[str, Any]) -> None:
    start, end = attrs.get("start_time"), attrs.get("end_time")
    if start is not None and end is not None and start >= end:
        raise serializers.ValidationError({"end_time": "End time must be after start time."})


class HearingScheduleSerializer(serializers.Serializer):
    """
    Request body for ``POST /api/hearings/``.

    ``presiding_officer_id`` and ``clerk_id`` are **user** PKs.
    """

    case_id = serializers.UUIDField()
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    hearing_date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    location = serializers.CharField(max_length=500, required=False, allow_blank=True)
    virtual_meeting_link = serializers.URLField(max_length=500, required=False, allow_blank=True)
    presiding_officer_id = serializers.IntegerField(min_value=1)
    clerk_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        _check_slot(attrs)
        return attrs


class HearingUpdateSerializer(serializers.Serializer):
    """Request body for ``PATCH /api/hearings/{id}/``.  All fields optional."""

    title = serializers.CharField(max_length=200, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    hearing_date = serializers.DateField(required=False)
    start_time = serializers.TimeField(required=False)
    end_time = serializers.TimeField(required=False)
    location = serializers.CharField(max_length=500, required=False, allow_blank=True)
    virtual_meeting_link = serializers.URLField(max_length=500, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=HearingStatus.choices, required=False)
    presiding_officer_id = serializers.IntegerField(min_value=1, required=False)
    clerk_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    outcome = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    minutes = serializers.CharField(max_length=5000, required=False, allow_blank=True)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        _check_slot(attrs)
        return attrs


class HearingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=2000)


class HearingOutcomeSerializer(serializers.Serializer):
    """Request body for ``POST /api/hearings/{id}/outcome/``."""

    outcome = serializers.CharField(max_length=1000)
    minutes = serializers.CharField(max_length=5000, required=False, allow_blank=True, default="")
    final_status = serializers.ChoiceField(
        choices=[
            (HearingStatus.COMPLETED, HearingStatus.COMPLETED.label),
            (HearingStatus.ADJOURNED, HearingStatus.ADJOURNED.label),
        ],
        required=False,
        default=HearingStatus.COMPLETED,
    )


class HearingParticipantCreateSerializer(serializers.Serializer):
    participant_id = serializers.CharField(max_length=64)
    participant_name = serializers.CharField(max_length=200)
    participant_email = serializers.EmailField(required=False, allow_blank=True)
    participant_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    participant_type = serializers.ChoiceField(choices=ParticipantType.choices)
    role = serializers.CharField(max_length=100, required=False, allow_blank=True)
    organization = serializers.CharField(max_length=200, required=False, allow_blank=True)
    is_required = serializers.BooleanField(required=False, default=True)
    has_confirmed_attendance = serializers.BooleanField(required=False, default=False)
    notes = serializers.CharField(required=False, allow_blank=True)
