"""
Hearings app URL configuration.

  POST     /api/hearings/                          → schedule
  GET      /api/hearings/{id}/                     → retrieve
  PATCH    /api/hearings/{id}/                     → update
  POST     /api/hearings/{id}/cancel/
  POST     /api/hearings/{id}/outcome/
  GET|POST /api/hearings/{hearing_pk}/participants/
"""

from rest_framework.routers import DefaultRouter
from rest_framework_nested import routers as nested_routers

from .views import HearingParticipantViewSet, HearingViewSet

router = DefaultRouter()
router.register(
    prefix=r"hearings",
    viewset=HearingViewSet,
    basename="hearing",
)

# Parent lookup kwarg → hearing_pk
participants_router = nested_routers.NestedDefaultRouter(
    parent_router=router,
    parent_prefix=r"hearings",
    lookup="hearing",
)
participants_router.register(
    prefix=r"participants",
    viewset=HearingParticipantViewSet,
    basename="hearing-participant",
)

urlpatterns = router.urls + participants_router.urls
