"""
Core app serializers.

**Response-only** serializers for the aggregated endpoints served by the
core app, plus the query-parameter serializer of the hearing calendar.
They define the *output schema* for statistics, dashboard, calendar,
constants and notifications.

Architectural note
------------------
These serializers never import models from other apps.  They work
exclusively with plain Python dicts / lists produced by the service
layer, keeping the core app decoupled from the ``cases`` and
``hearings`` models.
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers


# ════════════════════════════════════════════════════════════════════
#  Case Statistics
# ════════════════════════════════════════════════════════════════════

class CountByChoiceSerializer(serializers.Serializer):
    """
    Case count for one enum member.

    Example::

        {"value": "under_review", "label": "Under Review", "count": 12}
    """

    value = serializers.CharField(help_text="Machine-readable enum value.")
    label = serializers.CharField(help_text="Human-readable display label.")
    count = serializers.IntegerField(help_text="Number of cases.")


class CountByMonthSerializer(serializers.Serializer):
    month = serializers.CharField(help_text="Calendar month, YYYY-MM.")
    count = serializers.IntegerField(help_text="Cases created in the month.")


class CaseStatisticsSerializer(serializers.Serializer):
    """
    Output schema for ``GET /api/core/statistics/``.

    Example::

        {
            "total_cases": 42,
            "by_status": [{"value": "draft", "label": "Draft", "count": 3}, ...],
            "by_month": [{"month": "2026-05", "count": 7}, ...],
            "average_resolution_days": 18.5,
            "resolution_rate": 61.9,
            "requires_attention": 2,
            "overdue": 1,
            "upcoming_hearings": 4
        }
    """

    total_cases = serializers.IntegerField(help_text="Cases visible to the user.")
    by_status = CountByChoiceSerializer(many=True)
    by_type = CountByChoiceSerializer(many=True)
    by_priority = CountByChoiceSerializer(many=True)
    by_month = CountByMonthSerializer(
        many=True,
        help_text="Cases created per month over the last six months, oldest first.",
    )
    average_resolution_days = serializers.FloatField(
        allow_null=True,
        help_text="Mean days from submission to resolution; null with no resolved cases.",
    )
    resolution_rate = serializers.FloatField(
        help_text="Percentage of non-draft cases that are resolved or closed.",
    )
    requires_attention = serializers.IntegerField(
        help_text="Critical / high cases still waiting for review after 14 days.",
    )
    overdue = serializers.IntegerField(
        help_text="Cases still submitted 30 days after filing.",
    )
    upcoming_hearings = serializers.IntegerField(
        help_text="Scheduled hearings within the next 7 days.",
    )


# ════════════════════════════════════════════════════════════════════
#  Dashboard
# ════════════════════════════════════════════════════════════════════

class DashboardCaseSerializer(serializers.Serializer):
    """One row of the dashboard case list."""

    id = serializers.UUIDField()
    case_number = serializers.CharField()
    title = serializers.CharField()
    case_type = serializers.CharField()
    status = serializers.CharField()
    priority = serializers.IntegerField()
    complainant_name = serializers.CharField()
    respondent_name = serializers.CharField()
    assigned_officer_name = serializers.CharField(allow_blank=True)
    created_at = serializers.DateTimeField()
    next_hearing_date = serializers.DateField(allow_null=True)
    days_since_creation = serializers.IntegerField()
    requires_attention = serializers.BooleanField()


# ════════════════════════════════════════════════════════════════════
#  Hearing Calendar
# ════════════════════════════════════════════════════════════════════

class CalendarQuerySerializer(serializers.Serializer):
    """
    Query parameters of ``GET /api/core/calendar/``.

    Both bounds are optional; the range defaults to today → one month
    later.
    """

    from_date = serializers.DateField(required=False)
    to_date = serializers.DateField(required=False)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        from_date = attrs.get("from_date")
        to_date = attrs.get("to_date")
        if from_date and to_date and from_date > to_date:
            raise serializers.ValidationError(
                {"from_date": "'from_date' must be on or before 'to_date'."}
            )
        return attrs


class CalendarEntrySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    hearing_number = serializers.CharField()
    title = serializers.CharField()
    case_id = serializers.UUIDField()
    case_number = serializers.CharField()
    case_title = serializers.CharField()
    hearing_date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    location = serializers.CharField(allow_blank=True)
    virtual_meeting_link = serializers.CharField(allow_blank=True)
    presiding_officer_name = serializers.CharField()
    status = serializers.CharField()
    is_today = serializers.BooleanField()
    is_past = serializers.BooleanField()
    is_upcoming = serializers.BooleanField()


# ════════════════════════════════════════════════════════════════════
#  System Constants
# ════════════════════════════════════════════════════════════════════

class ChoiceItemSerializer(serializers.Serializer):
    """
    A single ``{value, label}`` pair from a Django choices enum.

    Example::

        {"value": "rent_arrears", "label": "Rent Arrears"}
    """

    value = serializers.CharField(help_text="Machine-readable value.")
    label = serializers.CharField(help_text="Human-readable label.")


class SystemConstantsSerializer(serializers.Serializer):
    """
    Output schema for ``GET /api/core/constants/``.

    Each key maps to a list of ``{value, label}`` pairs so clients can
    build dropdowns without hardcoding values.
    """

    case_statuses = ChoiceItemSerializer(many=True, help_text="Case lifecycle statuses.")
    case_types = ChoiceItemSerializer(many=True, help_text="Kinds of rent dispute.")
    case_priorities = ChoiceItemSerializer(many=True, help_text="Priority tiers, low to critical.")
    resolution_types = ChoiceItemSerializer(many=True, help_text="How a case may be resolved.")
    hearing_statuses = ChoiceItemSerializer(many=True, help_text="Hearing lifecycle statuses.")
    participant_types = ChoiceItemSerializer(many=True, help_text="Roles a participant may hold.")
    roles = ChoiceItemSerializer(many=True, help_text="System roles.")


# ════════════════════════════════════════════════════════════════════
#  Notifications
# ════════════════════════════════════════════════════════════════════

class NotificationSerializer(serializers.Serializer):
    """
    Read-only serializer for ``Notification`` instances.
    """

    id = serializers.IntegerField(read_only=True, help_text="Notification PK.")
    title = serializers.CharField(read_only=True)
    message = serializers.CharField(read_only=True)
    is_read = serializers.BooleanField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    content_type = serializers.StringRelatedField(
        read_only=True,
        help_text="Related content type (case or hearing), if any.",
    )
    object_id = serializers.CharField(
        read_only=True,
        allow_null=True,
        help_text="PK of the related object, if any.",
    )
