"""
Cases app URL configuration.

All routes are registered under the ``/api/`` prefix.

Route Hierarchy
---------------
  /api/cases/                             → search / create
  /api/cases/{id}/                        → retrieve / partial_update

  ── Workflow @actions (resource-level RPC) ──────────────────────
  POST /api/cases/{id}/submit/             → complainant submits draft
  POST /api/cases/{id}/assign/             → officer / mediator assignment
  POST /api/cases/{id}/resolve/            → officer records resolution
  POST /api/cases/{id}/reopen/             → officer reopens
  POST /api/cases/{id}/status/             → administrative status change

  ── Read-only sub-resource @actions ─────────────────────────────
  GET  /api/cases/{id}/updates/
  GET  /api/cases/{id}/hearings/

  ── Nested routers (case_pk) ────────────────────────────────────
  GET|POST /api/cases/{case_pk}/notes/
  GET|POST /api/cases/{case_pk}/participants/
"""

from rest_framework.routers import DefaultRouter
from rest_framework_nested import routers as nested_routers

from .views import CaseNoteViewSet, CaseParticipantViewSet, CaseViewSet

router = DefaultRouter()
router.register(
    prefix=r"cases",
    viewset=CaseViewSet,
    basename="case",
)

# Parent lookup kwarg → case_pk
case_router = nested_routers.NestedDefaultRouter(
    parent_router=router,
    parent_prefix=r"cases",
    lookup="case",
)
case_router.register(
    prefix=r"notes",
    viewset=CaseNoteViewSet,
    basename="case-note",
)
case_router.register(
    prefix=r"participants",
    viewset=CaseParticipantViewSet,
    basename="case-participant",
)

urlpatterns = router.urls + case_router.urls
