"""
Core app services — **Service Layer**.

Contains the cross-app read models: statistics, dashboard and hearing
calendar, plus the system constants and the notification inbox.  Views
delegate all business logic to the service classes defined here,
keeping views thin and ensuring testability.

╔══════════════════════════════════════════════════════════════════════╗
║  CROSS-APP IMPORT RULEBOOK                                         ║
║                                                                    ║
║  The core app is the ONLY app allowed to aggregate models from     ║
║  several other apps.  To prevent circular imports at module load   ║
║  time it NEVER imports models from other apps at the module        ║
║  level:                                                            ║
║                                                                    ║
║       from django.apps import apps                                 ║
║       Case = apps.get_model("cases", "Case")                      ║
║                                                                    ║
║  Choice/enum classes are imported lazily inside methods too.       ║
╚══════════════════════════════════════════════════════════════════════╝

Caching
-------
Every aggregate is built through ``AggregateCache.get_or_build`` under an
actor-scoped key (see ``core.domain.cache``).  Aggregates are plain
dicts / lists, never model instances, so they survive pickling by any
cache backend.  Mutating services evict them after commit; a reader may
still see a stale aggregate for at most its TTL.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Any

from django.apps import apps
from django.db.models import Count, Min, Q
from django.db.models.functions import TruncMonth
from django.utils import timezone

from core.constants import (
    ATTENTION_AGE_DAYS,
    CASE_STATISTICS_CACHE_TTL,
    DASHBOARD_CACHE_TTL,
    DASHBOARD_CASE_LIMIT,
    DASHBOARD_REVIEW_STALE_DAYS,
    DASHBOARD_SUBMITTED_STALE_DAYS,
    HEARING_CALENDAR_CACHE_TTL,
    OVERDUE_SUBMITTED_DAYS,
    RoleNames,
    STATISTICS_MONTHS_BACK,
    UPCOMING_HEARING_DAYS,
)
from core.domain.access import Actor
from core.domain.cache import AggregateCache, CacheKeys
from core.domain.exceptions import DomainError, NotFound

logger = logging.getLogger(__name__)


def _month_start(day: date, months_back: int) -> date:
    """First day of the month ``months_back`` months before ``day``'s month."""
    index = day.year * 12 + (day.month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


def one_month_after(day: date) -> date:
    """Same day next month, clamped to that month's last day."""
    year, month = (day.year + 1, 1) if day.month == 12 else (day.year, day.month + 1)
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def _scoped_cases(actor: Actor):
    Case = apps.get_model("cases", "Case")
    return actor.scope_cases(Case.objects.filter(is_active=True))


# ════════════════════════════════════════════════════════════════════
#  Case Statistics Service
# ════════════════════════════════════════════════════════════════════

class CaseStatisticsService:
    """
    Produces the statistics dict consumed by ``CaseStatisticsSerializer``.

    All figures are computed over the cases visible to the actor
    (``actor.scope_cases``); admins see system-wide figures.

    Figures
    -------
    - ``total_cases`` and counts by status, type and priority
      (every enum member is present, zero when empty).
    - ``by_month`` — cases created in each of the last
      ``STATISTICS_MONTHS_BACK`` months, oldest first.
    - ``average_resolution_days`` — mean of
      ``resolution_date - submitted_at`` over resolved cases.
    - ``resolution_rate`` — % of non-draft cases that are resolved or
      closed.
    - ``requires_attention`` — critical / high cases still submitted or
      under review after ``ATTENTION_AGE_DAYS``.
    - ``overdue`` — cases still submitted after ``OVERDUE_SUBMITTED_DAYS``.
    - ``upcoming_hearings`` — scheduled hearings in the next
      ``UPCOMING_HEARING_DAYS`` days.
    """

    def __init__(self, actor: Actor) -> None:
        self.actor = actor

    def get_statistics(self) -> dict[str, Any]:
        return AggregateCache.get_or_build(
            CacheKeys.statistics(self.actor.user_id),
            CASE_STATISTICS_CACHE_TTL,
            self._build,
        )

    def _build(self) -> dict[str, Any]:
        from cases.models import CasePriority, CaseStatus, CaseType

        now = timezone.now()
        today = timezone.localdate()
        case_qs = _scoped_cases(self.actor)

        aggregates = case_qs.aggregate(
            total_cases=Count("id"),
            non_draft=Count("id", filter=~Q(status=CaseStatus.DRAFT)),
            finished=Count(
                "id",
                filter=Q(status__in=[CaseStatus.RESOLVED, CaseStatus.CLOSED]),
            ),
            requires_attention=Count(
                "id",
                filter=Q(
                    priority__in=[CasePriority.CRITICAL, CasePriority.HIGH],
                    status__in=[CaseStatus.SUBMITTED, CaseStatus.UNDER_REVIEW],
                    created_at__lt=now - timedelta(days=ATTENTION_AGE_DAYS),
                ),
            ),
            overdue=Count(
                "id",
                filter=Q(
                    status=CaseStatus.SUBMITTED,
                    created_at__lt=now - timedelta(days=OVERDUE_SUBMITTED_DAYS),
                ),
            ),
        )

        non_draft = aggregates["non_draft"]
        resolution_rate = (
            round(aggregates["finished"] * 100 / non_draft, 2) if non_draft else 0.0
        )

        return {
            "total_cases": aggregates["total_cases"],
            "by_status": self._count_by(case_qs, "status", CaseStatus),
            "by_type": self._count_by(case_qs, "case_type", CaseType),
            "by_priority": self._count_by(case_qs, "priority", CasePriority),
            "by_month": self._count_by_month(case_qs, today),
            "average_resolution_days": self._average_resolution_days(case_qs),
            "resolution_rate": resolution_rate,
            "requires_attention": aggregates["requires_attention"],
            "overdue": aggregates["overdue"],
            "upcoming_hearings": self._upcoming_hearings(today),
        }

    @staticmethod
    def _count_by(case_qs, field: str, choices_class: type) -> list[dict[str, Any]]:
        counts = {
            row[field]: row["count"]
            for row in case_qs.order_by().values(field).annotate(count=Count("id"))
        }
        return [
            {"value": str(value), "label": str(label), "count": counts.get(value, 0)}
            for value, label in choices_class.choices
        ]

    @staticmethod
    def _count_by_month(case_qs, today: date) -> list[dict[str, Any]]:
        first_month = _month_start(today, STATISTICS_MONTHS_BACK - 1)
        rows = (
            case_qs
            .filter(created_at__date__gte=first_month)
            .annotate(month=TruncMonth("created_at"))
            .order_by()
            .values("month")
            .annotate(count=Count("id"))
        )
        counts: dict[str, int] = {}
        for row in rows:
            key = f"{row['month']:%Y-%m}"
            counts[key] = counts.get(key, 0) + row["count"]
        months = [
            _month_start(today, back)
            for back in range(STATISTICS_MONTHS_BACK - 1, -1, -1)
        ]
        return [
            {"month": f"{month:%Y-%m}", "count": counts.get(f"{month:%Y-%m}", 0)}
            for month in months
        ]

    @staticmethod
    def _average_resolution_days(case_qs) -> float | None:
        spans = [
            (resolved - submitted).total_seconds() / 86400
            for submitted, resolved in case_qs.filter(
                submitted_at__isnull=False,
                resolution_date__isnull=False,
            ).values_list("submitted_at", "resolution_date")
        ]
        if not spans:
            return None
        return round(sum(spans) / len(spans), 1)

    def _upcoming_hearings(self, today: date) -> int:
        from hearings.models import HearingStatus

        Hearing = apps.get_model("hearings", "Hearing")
        return self.actor.scope_hearings(
            Hearing.objects.filter(
                status=HearingStatus.SCHEDULED,
                hearing_date__gte=today,
                hearing_date__lte=today + timedelta(days=UPCOMING_HEARING_DAYS),
            )
        ).count()


# ════════════════════════════════════════════════════════════════════
#  Dashboard Service
# ════════════════════════════════════════════════════════════════════

class DashboardService:
    """
    Top ``DASHBOARD_CASE_LIMIT`` cases needing the actor's attention:
    critical cases plus cases waiting in submitted / under review /
    scheduled for hearing, highest priority first, then newest.
    """

    def __init__(self, actor: Actor) -> None:
        self.actor = actor

    def get_dashboard(self) -> list[dict[str, Any]]:
        return AggregateCache.get_or_build(
            CacheKeys.dashboard(self.actor.user_id),
            DASHBOARD_CACHE_TTL,
            self._build,
        )

    def _build(self) -> list[dict[str, Any]]:
        from cases.models import CasePriority, CaseStatus
        from hearings.models import HearingStatus

        now = timezone.now()
        today = timezone.localdate()
        cases = (
            _scoped_cases(self.actor)
            .filter(
                Q(priority=CasePriority.CRITICAL)
                | Q(status__in=[
                    CaseStatus.SUBMITTED,
                    CaseStatus.UNDER_REVIEW,
                    CaseStatus.SCHEDULED_FOR_HEARING,
                ])
            )
            .annotate(
                next_hearing_date=Min(
                    "hearings__hearing_date",
                    filter=Q(
                        hearings__status=HearingStatus.SCHEDULED,
                        hearings__hearing_date__gte=today,
                    ),
                )
            )
            .order_by("-priority", "-created_at")[:DASHBOARD_CASE_LIMIT]
        )
        return [
            {
                "id": case.pk,
                "case_number": case.case_number,
                "title": case.title,
                "case_type": case.case_type,
                "status": case.status,
                "priority": case.priority,
                "complainant_name": case.complainant_name,
                "respondent_name": case.respondent_name,
                "assigned_officer_name": case.assigned_officer_name,
                "created_at": case.created_at,
                "next_hearing_date": case.next_hearing_date,
                "days_since_creation": (now - case.created_at).days,
                "requires_attention": self.requires_attention(case, now),
            }
            for case in cases
        ]

    @staticmethod
    def requires_attention(case, now) -> bool:
        from cases.models import CasePriority, CaseStatus

        age_days = (now - case.created_at).days
        if case.priority == CasePriority.CRITICAL:
            return True
        if case.status == CaseStatus.SUBMITTED:
            return age_days > DASHBOARD_SUBMITTED_STALE_DAYS
        if case.status == CaseStatus.UNDER_REVIEW:
            return age_days > DASHBOARD_REVIEW_STALE_DAYS
        return False


# ════════════════════════════════════════════════════════════════════
#  Hearing Calendar Service
# ════════════════════════════════════════════════════════════════════

class HearingCalendarService:
    """
    Scheduled hearings visible to the actor in ``[from_date, to_date]``.

    Officers see hearings they preside or clerk and hearings of cases
    assigned to them; parties see hearings of their cases; mediators
    see hearings of the cases they mediate.

    The cache key embeds the actor's calendar generation, so an
    eviction (generation bump) orphans every cached range at once.
    """

    def __init__(self, actor: Actor) -> None:
        self.actor = actor

    def get_calendar(self, from_date: date | None = None, to_date: date | None = None) -> list[dict[str, Any]]:
        today = timezone.localdate()
        from_date = from_date or today
        to_date = to_date or one_month_after(from_date)
        if from_date > to_date:
            raise DomainError("from_date must be on or before to_date.")

        generation = AggregateCache.calendar_generation(self.actor.user_id)
        return AggregateCache.get_or_build(
            CacheKeys.calendar(self.actor.user_id, generation, from_date, to_date),
            HEARING_CALENDAR_CACHE_TTL,
            lambda: self._build(from_date, to_date),
        )

    def _build(self, from_date: date, to_date: date) -> list[dict[str, Any]]:
        from hearings.models import HearingStatus

        Hearing = apps.get_model("hearings", "Hearing")
        today = timezone.localdate()
        hearings = (
            self.actor.scope_hearings(
                Hearing.objects.filter(
                    status=HearingStatus.SCHEDULED,
                    hearing_date__gte=from_date,
                    hearing_date__lte=to_date,
                )
            )
            .select_related("case")
            .order_by("hearing_date", "start_time")
        )
        return [
            {
                "id": hearing.pk,
                "hearing_number": hearing.hearing_number,
                "title": hearing.title,
                "case_id": hearing.case_id,
                "case_number": hearing.case.case_number,
                "case_title": hearing.case.title,
                "hearing_date": hearing.hearing_date,
                "start_time": hearing.start_time,
                "end_time": hearing.end_time,
                "location": hearing.location,
                "virtual_meeting_link": hearing.virtual_meeting_link,
                "presiding_officer_name": hearing.presiding_officer_name,
                "status": hearing.status,
                "is_today": hearing.hearing_date == today,
                "is_past": hearing.hearing_date < today,
                "is_upcoming": hearing.hearing_date > today,
            }
            for hearing in hearings
        ]


# ════════════════════════════════════════════════════════════════════
#  System Constants Service
# ════════════════════════════════════════════════════════════════════

class SystemConstantsService:
    """
    Gathers all system-wide choice enumerations into a single dict for
    clients.

    This service is **stateless**; it does not depend on the requesting
    user.
    """

    @staticmethod
    def get_constants() -> dict[str, Any]:
        """Return all system constants as a dict."""
        from cases.models import (
            CasePriority,
            CaseStatus,
            CaseType,
            ParticipantType,
            ResolutionType,
        )
        from hearings.models import HearingStatus

        to_list = SystemConstantsService._choices_to_list

        return {
            "case_statuses": to_list(CaseStatus),
            "case_types": to_list(CaseType),
            "case_priorities": to_list(CasePriority),
            "resolution_types": to_list(ResolutionType),
            "hearing_statuses": to_list(HearingStatus),
            "participant_types": to_list(ParticipantType),
            "roles": [{"value": name, "label": name.replace("_", " ")} for name in RoleNames.ALL],
        }

    @staticmethod
    def _choices_to_list(
        choices_class: type,
    ) -> list[dict[str, str]]:
        """
        Convert a Django ``TextChoices`` or ``IntegerChoices`` class to
        a list of ``{"value": ..., "label": ...}`` dicts.
        """
        return [
            {"value": str(value), "label": str(label)}
            for value, label in choices_class.choices
        ]


# ═══════════════════════════════════════════════════════════════════
#  Notification Service
# ═══════════════════════════════════════════════════════════════════

class NotificationService:
    """
    Handles listing and marking notifications as read for a given user.
    """

    def __init__(self, user: Any) -> None:
        self.user = user

    def list_notifications(self, *, unread_only: bool = False) -> Any:
        """Return notifications for ``self.user``, most recent first."""
        from core.models import Notification

        qs = (
            Notification.objects
            .filter(recipient=self.user)
            .select_related("content_type")
            .order_by("-created_at", "-id")
        )
        if unread_only:
            qs = qs.filter(is_read=False)
        return qs

    def mark_as_read(self, notification_id: Any) -> Any:
        """Mark a single notification of ``self.user`` as read."""
        from core.models import Notification

        try:
            notification = Notification.objects.get(
                pk=notification_id,
                recipient=self.user,
            )
        except (Notification.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Notification {notification_id} not found.")
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read"])
        return notification
