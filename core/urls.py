"""
Core app URL configuration.

Provides cross-app read models (statistics, dashboard, hearing calendar),
system-wide constants/enums, and notifications.

URL prefix (registered in ``backend/urls.py``)::

    path('api/core/', include('core.urls'))

Endpoint summary
----------------
GET  /api/core/statistics/                 — Case statistics (role-scoped).
GET  /api/core/dashboard/                  — Cases needing attention (role-scoped).
GET  /api/core/calendar/                   — Scheduled hearings in a date range.
GET  /api/core/constants/                  — System choice enumerations.
GET  /api/core/notifications/              — List notifications for the authenticated user.
POST /api/core/notifications/{id}/read/    — Mark a single notification as read.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

app_name = "core"

# ── Router for ViewSet-based endpoints ───────────────────────────────
router = DefaultRouter()
router.register(
    prefix=r"notifications",
    viewset=views.NotificationViewSet,
    basename="notification",
)

urlpatterns = [
    # ── Statistics / Dashboard ───────────────────────────────────────
    path(
        "statistics/",
        views.CaseStatisticsView.as_view(),
        name="case-statistics",
    ),
    path(
        "dashboard/",
        views.DashboardView.as_view(),
        name="dashboard",
    ),

    # ── Hearing calendar ─────────────────────────────────────────────
    path(
        "calendar/",
        views.HearingCalendarView.as_view(),
        name="hearing-calendar",
    ),

    # ── System Constants / Enums ─────────────────────────────────────
    path(
        "constants/",
        views.SystemConstantsView.as_view(),
        name="system-constants",
    ),

    # ── Notifications (router-generated URLs) ────────────────────────
    path("", include(router.urls)),
]
