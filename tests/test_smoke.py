"""
Smoke tests — verify that Django boots, URL routing resolves, and
the core domain modules are importable.

These tests do NOT require real data — they just prove the plumbing
works.
"""

from __future__ import annotations

from io import StringIO

import pytest
from django.urls import resolve, reverse


# ════════════════════════════════════════════════════════════════════
#  URL Routing Smoke Tests
# ════════════════════════════════════════════════════════════════════

class TestURLRouting:
    """Ensure all top-level app URL namespaces resolve without 404."""

    EXPECTED_URLS = [
        # (url_name, expected_path_prefix)
        ("case-list",               "/api/cases/"),
        ("hearing-list",            "/api/hearings/"),
        ("core:dashboard",          "/api/core/dashboard/"),
        ("core:case-statistics",    "/api/core/statistics/"),
        ("core:hearing-calendar",   "/api/core/calendar/"),
        ("core:system-constants",   "/api/core/constants/"),
        ("core:notification-list",  "/api/core/notifications/"),
        ("accounts:me",             "/api/accounts/me/"),
        ("schema",                  "/api/schema/"),
    ]

    @pytest.mark.parametrize("url_name,expected_prefix", EXPECTED_URLS)
    def test_url_resolves(self, url_name: str, expected_prefix: str):
        """Named URL reverses to the expected path prefix."""
        url = reverse(url_name)
        assert url.startswith(expected_prefix), (
            f"{url_name} resolved to {url}, expected prefix {expected_prefix}"
        )

    @pytest.mark.parametrize("url_name,expected_prefix", EXPECTED_URLS)
    def test_url_resolve_matches_view(self, url_name: str, expected_prefix: str):
        """Path resolves to a view function (not a 404)."""
        match = resolve(expected_prefix)
        assert match.func is not None

    def test_nested_case_routes(self):
        case_id = "00000000-0000-0000-0000-000000000001"
        assert reverse("case-note-list", kwargs={"case_pk": case_id}) == f"/api/cases/{case_id}/notes/"
        assert reverse("case-submit", kwargs={"pk": case_id}) == f"/api/cases/{case_id}/submit/"


# ════════════════════════════════════════════════════════════════════
#  Core Domain Module Import Tests
# ════════════════════════════════════════════════════════════════════

class TestCoreDomainImports:
    """Verify that shared domain utility modules are importable."""

    def test_import_exceptions(self):
        from core.domain.exceptions import (
            Conflict,
            DependencyUnavailable,
            DomainError,
            InvalidTransition,
            NotFound,
            PermissionDenied,
            SchedulingConflict,
        )
        # Ensure they form an inheritance chain
        assert issubclass(InvalidTransition, Conflict)
        assert issubclass(SchedulingConflict, Conflict)
        assert issubclass(Conflict, DomainError)
        assert issubclass(PermissionDenied, DomainError)
        assert issubclass(NotFound, DomainError)
        assert issubclass(DependencyUnavailable, DomainError)

    def test_import_notifications(self):
        from core.domain.notifications import NotificationService
        assert hasattr(NotificationService, "create")

    def test_import_transactions(self):
        from core.domain.transactions import (
            after_commit,
            guard_transition,
            lock_for_update,
        )
        assert callable(after_commit)
        assert callable(guard_transition)
        assert callable(lock_for_update)

    def test_import_sequences_and_cache(self):
        from core.domain.cache import CacheInvalidation, CacheKeys
        from core.domain.sequences import next_sequence
        assert callable(next_sequence)
        assert CacheKeys.case("abc") == "case_abc"
        assert CacheInvalidation().case("abc").keys == ["case_abc"]


# ════════════════════════════════════════════════════════════════════
#  Exception Behaviour Tests
# ════════════════════════════════════════════════════════════════════

class TestDomainExceptions:
    """Unit tests for domain exception classes."""

    def test_domain_error_message(self):
        from core.domain.exceptions import DomainError
        err = DomainError("test message")
        assert str(err) == "test message"
        assert err.code == "validation_failed"

    def test_invalid_transition_structured(self):
        from core.domain.exceptions import InvalidTransition
        err = InvalidTransition(
            current="draft",
            target="resolved",
            reason="Only cases under review can be resolved.",
        )
        assert "draft" in str(err)
        assert "resolved" in str(err)
        assert "Only cases under review" in str(err)
        assert err.current == "draft"
        assert err.target == "resolved"
        assert err.code == "invalid_state"

    def test_invalid_transition_plain_message(self):
        from core.domain.exceptions import InvalidTransition
        err = InvalidTransition("Cannot close case.")
        assert str(err) == "Cannot close case."

    def test_scheduling_conflict_lists_hearing_numbers(self):
        from core.domain.exceptions import SchedulingConflict
        err = SchedulingConflict(conflicting=["HE/2026/03/0001", "HE/2026/03/0004"])
        assert "HE/2026/03/0001, HE/2026/03/0004" in str(err)
        assert err.conflicting == ["HE/2026/03/0001", "HE/2026/03/0004"]

    def test_guard_transition_rejects_unknown_edge(self):
        from core.domain.exceptions import InvalidTransition
        from core.domain.transactions import guard_transition

        allowed = {"draft": {"submitted"}}
        guard_transition("draft", "submitted", allowed)
        with pytest.raises(InvalidTransition):
            guard_transition("draft", "resolved", allowed)
        with pytest.raises(InvalidTransition):
            guard_transition("closed", "draft", allowed)


# ════════════════════════════════════════════════════════════════════
#  Exception Handler Tests
# ════════════════════════════════════════════════════════════════════

class TestDomainExceptionHandler:
    """The DRF handler maps each domain error to its status and code."""

    @pytest.mark.parametrize("exc_name,status_code,code", [
        ("DomainError",           400, "validation_failed"),
        ("PermissionDenied",      403, "unauthorized"),
        ("NotFound",              404, "not_found"),
        ("Conflict",              409, "conflict"),
        ("InvalidTransition",     409, "invalid_state"),
        ("SchedulingConflict",    409, "scheduling_conflict"),
        ("DependencyUnavailable", 503, "dependency_unavailable"),
    ])
    def test_maps_domain_errors(self, exc_name, status_code, code):
        from core.domain import exceptions
        from core.domain.exception_handler import domain_exception_handler

        response = domain_exception_handler(getattr(exceptions, exc_name)(), {})
        assert response.status_code == status_code
        assert response.data["code"] == code
        assert response.data["detail"]

    def test_drf_errors_pass_through(self):
        from rest_framework.exceptions import ValidationError
        from core.domain.exception_handler import domain_exception_handler

        response = domain_exception_handler(ValidationError({"title": ["Required."]}), {})
        assert response.status_code == 400
        assert "code" not in response.data


# ════════════════════════════════════════════════════════════════════
#  Authentication Plumbing
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
def test_authenticated_party_reaches_dashboard(auth_header, api_client):
    header = auth_header(username="smoke_party")
    api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
    resp = api_client.get(reverse("core:dashboard"))
    assert resp.status_code == 200
    assert resp.data == []


@pytest.mark.django_db
def test_anonymous_request_is_rejected(api_client):
    resp = api_client.get(reverse("core:dashboard"))
    assert resp.status_code == 401


@pytest.mark.django_db
def test_setup_roles_is_idempotent():
    from django.core.management import call_command

    from accounts.models import Role
    from core.constants import RoleNames

    call_command("setup_roles", stdout=StringIO())
    call_command("setup_roles", stdout=StringIO())
    assert sorted(Role.objects.values_list("name", flat=True)) == sorted(RoleNames.ALL)
