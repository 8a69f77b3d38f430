"""
Integration tests for the case lifecycle API.

Scope in this file:
- Filing, submission, assignment, hearing, resolution and reopening,
  with one audit record per step.
- Relationship-based access (parties vs. strangers vs. officers).
- Invalid transitions leave the case untouched.
- Internal notes and search scoping.
- Single-case cache eviction after a committed update.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role, User
from cases.models import (
    Case,
    CaseNote,
    CasePriority,
    CaseStatus,
    CaseType,
    CaseUpdate,
    CaseUpdateType,
    Mediator,
    RCDOfficer,
)
from core.constants import RoleNames


def _make_role(name: str) -> Role:
    role, _ = Role.objects.get_or_create(
        name=name,
        defaults={"description": f"Test role: {name}"},
    )
    return role


class TestCaseLifecycleFlow(TestCase):
    @classmethod
    def setUpTestData(cls) -> None:
        cls.officer_role = _make_role(RoleNames.RCD_OFFICER)
        cls.mediator_role = _make_role(RoleNames.MEDIATOR)
        cls.tenant_role = _make_role(RoleNames.TENANT)
        cls.landlord_role = _make_role(RoleNames.LANDLORD)

        cls.password = "L1fecycle!Pass"

        cls.tenant = User.objects.create_user(
            username="lc_tenant",
            password=cls.password,
            email="lc_tenant@rent.test",
            first_name="Tina",
            last_name="Tenant",
            national_id="5100000001",
            phone_number="09151000001",
            role=cls.tenant_role,
        )
        cls.landlord = User.objects.create_user(
            username="lc_landlord",
            password=cls.password,
            email="lc_landlord@rent.test",
            first_name="Larry",
            last_name="Landlord",
            national_id="5100000002",
            phone_number="09151000002",
            role=cls.landlord_role,
        )
        cls.stranger = User.objects.create_user(
            username="lc_stranger",
            password=cls.password,
            email="lc_stranger@rent.test",
            first_name="Sam",
            last_name="Stranger",
            national_id="5100000003",
            phone_number="09151000003",
            role=cls.tenant_role,
        )
        cls.officer_user = User.objects.create_user(
            username="lc_officer",
            password=cls.password,
            email="lc_officer@rent.test",
            first_name="Olu",
            last_name="Adeyemi",
            national_id="5100000004",
            phone_number="09151000004",
            role=cls.officer_role,
        )
        cls.officer = RCDOfficer.objects.create(
            user=cls.officer_user,
            full_name="Olu Adeyemi",
            employee_number="RCD-0001",
        )
        cls.mediator_user = User.objects.create_user(
            username="lc_mediator",
            password=cls.password,
            email="lc_mediator@rent.test",
            first_name="Mina",
            last_name="Mediator",
            national_id="5100000005",
            phone_number="09151000005",
            role=cls.mediator_role,
        )
        cls.mediator = Mediator.objects.create(
            user=cls.mediator_user,
            full_name="Mina Mediator",
            max_active_cases=1,
        )
        cls._case_seq = 0

    def setUp(self):
        self.client = APIClient()
        self.login_url = reverse("accounts:login")

    # ── helpers ──────────────────────────────────────────────────────

    def login(self, user: User) -> str:
        response = self.client.post(
            self.login_url,
            {"identifier": user.username, "password": self.password},
            format="json",
        )
        self.assertEqual(
            response.status_code,
            status.HTTP_200_OK,
            msg=f"Login failed in test setup: {response.data}",
        )
        return response.data["access"]

    def auth(self, user: User) -> None:
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {self.login(user)}")

    def _make_case(self, *, status_value: str = CaseStatus.DRAFT, **overrides) -> Case:
        type(self)._case_seq += 1
        values = {
            "case_number": f"RA/2026/01/{self._case_seq:04d}",
            "case_type": CaseType.RENT_ARREARS,
            "title": "Unpaid rent for flat 4B",
            "description": "Three months of rent are outstanding.",
            "complainant": self.tenant,
            "complainant_name": "Tina Tenant",
            "respondent": self.landlord,
            "respondent_name": "Larry Landlord",
            "status": status_value,
            "priority": CasePriority.MEDIUM,
            "created_by": self.tenant,
        }
        values.update(overrides)
        return Case.objects.create(**values)

    def _audit_count(self, case_id) -> int:
        return CaseUpdate.objects.filter(case_id=case_id).count()

    # ── end-to-end ───────────────────────────────────────────────────

    def test_full_lifecycle_writes_one_audit_record_per_step(self):
        self.auth(self.tenant)
        response = self.client.post(
            reverse("case-list"),
            {
                "case_type": CaseType.RENT_ARREARS,
                "title": "Unpaid rent for flat 4B",
                "description": "Three months of rent are outstanding.",
                "respondent_id": self.landlord.pk,
                "claim_amount": "7500.00",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        case_id = response.data["id"]
        self.assertEqual(response.data["status"], CaseStatus.DRAFT)
        self.assertEqual(response.data["priority"], CasePriority.HIGH)
        self.assertTrue(response.data["case_number"].startswith("RA/"))
        self.assertEqual(len(response.data["participants"]), 2)
        self.assertEqual(self._audit_count(case_id), 1)

        response = self.client.post(reverse("case-submit", args=[case_id]), format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["status"], CaseStatus.SUBMITTED)
        self.assertIsNotNone(response.data["submitted_at"])
        self.assertEqual(self._audit_count(case_id), 2)

        self.auth(self.officer_user)
        response = self.client.post(
            reverse("case-assign", args=[case_id]),
            {"officer_id": self.officer_user.pk},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["status"], CaseStatus.UNDER_REVIEW)
        self.assertEqual(response.data["assigned_officer_name"], "Olu Adeyemi")
        self.assertEqual(self._audit_count(case_id), 3)

        hearing_date = timezone.localdate() + timedelta(days=10)
        response = self.client.post(
            reverse("hearing-list"),
            {
                "case_id": case_id,
                "title": "First hearing",
                "hearing_date": hearing_date.isoformat(),
                "start_time": "10:00",
                "end_time": "11:00",
                "location": "Room 2",
                "presiding_officer_id": self.officer_user.pk,
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        hearing_id = response.data["id"]
        self.assertTrue(response.data["hearing_number"].startswith("HE/"))
        self.assertEqual(
            Case.objects.get(pk=case_id).status,
            CaseStatus.SCHEDULED_FOR_HEARING,
        )
        self.assertEqual(self._audit_count(case_id), 4)

        response = self.client.patch(
            reverse("hearing-detail", args=[hearing_id]),
            {"status": "completed"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(self._audit_count(case_id), 5)

        response = self.client.post(
            reverse("hearing-outcome", args=[hearing_id]),
            {"outcome": "Parties agreed on a payment plan."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["outcome"], "Parties agreed on a payment plan.")
        self.assertEqual(self._audit_count(case_id), 6)

        response = self.client.post(
            reverse("case-resolve", args=[case_id]),
            {
                "resolution": "settlement",
                "details": "Arrears to be paid in three instalments.",
                "awarded_amount": "6000.00",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["status"], CaseStatus.RESOLVED)
        self.assertIsNotNone(response.data["resolution_date"])
        self.assertEqual(self._audit_count(case_id), 7)

        response = self.client.post(
            reverse("case-reopen", args=[case_id]),
            {"reason": "Landlord missed the first instalment."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["status"], CaseStatus.REOPENED)
        self.assertEqual(self._audit_count(case_id), 8)

        response = self.client.get(reverse("case-updates", args=[case_id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(
            [row["update_type"] for row in response.data["results"]],
            [
                CaseUpdateType.CASE_CREATED,
                CaseUpdateType.CASE_SUBMITTED,
                CaseUpdateType.CASE_ASSIGNED,
                CaseUpdateType.HEARING_SCHEDULED,
                CaseUpdateType.HEARING_UPDATED,
                CaseUpdateType.HEARING_OUTCOME_RECORDED,
                CaseUpdateType.CASE_RESOLVED,
                CaseUpdateType.CASE_REOPENED,
            ],
        )
        self.assertTrue(
            CaseNote.objects.filter(case_id=case_id, title="Case Resolution").exists()
        )

    # ── invalid transitions ──────────────────────────────────────────

    def test_resolving_a_draft_is_rejected_and_leaves_case_unchanged(self):
        case = self._make_case(assigned_officer=self.officer, assigned_officer_name="Olu Adeyemi")
        self.auth(self.officer_user)

        response = self.client.post(
            reverse("case-resolve", args=[case.pk]),
            {"resolution": "settlement", "details": "Premature."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)
        self.assertEqual(response.data["code"], "invalid_state")

        case.refresh_from_db()
        self.assertEqual(case.status, CaseStatus.DRAFT)
        self.assertEqual(case.resolution, "")
        self.assertIsNone(case.resolution_date)
        self.assertEqual(self._audit_count(case.pk), 0)

    def test_submitted_case_can_be_resolved_directly(self):
        case = self._make_case(status_value=CaseStatus.SUBMITTED)
        self.auth(self.officer_user)

        response = self.client.post(
            reverse("case-resolve", args=[case.pk]),
            {"resolution": "settlement", "details": "Settled before review."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)

        case.refresh_from_db()
        self.assertEqual(case.status, CaseStatus.RESOLVED)
        self.assertIsNotNone(case.resolution_date)
        self.assertEqual(
            CaseUpdate.objects.get(case=case).update_type,
            CaseUpdateType.CASE_RESOLVED,
        )

    def test_reopen_leaves_internal_note_with_reason(self):
        case = self._make_case(
            status_value=CaseStatus.RESOLVED,
            assigned_officer=self.officer,
            assigned_officer_name="Olu Adeyemi",
        )
        self.auth(self.officer_user)

        response = self.client.post(
            reverse("case-reopen", args=[case.pk]),
            {"reason": "Landlord missed the first instalment."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)

        note = CaseNote.objects.get(case=case, title="Case Reopened")
        self.assertTrue(note.is_internal)
        self.assertEqual(note.content, "Landlord missed the first instalment.")
        self.assertEqual(note.author, self.officer_user)

        response = self.client.get(reverse("case-detail", args=[case.pk]))
        self.assertIn("Case Reopened", [n["title"] for n in response.data["notes"]])

        self.auth(self.tenant)
        response = self.client.get(reverse("case-detail", args=[case.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertNotIn("Case Reopened", [n["title"] for n in response.data["notes"]])

    def test_submitting_twice_is_rejected(self):
        case = self._make_case()
        self.auth(self.tenant)

        first = self.client.post(reverse("case-submit", args=[case.pk]), format="json")
        second = self.client.post(reverse("case-submit", args=[case.pk]), format="json")

        self.assertEqual(first.status_code, status.HTTP_200_OK, msg=first.data)
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT, msg=second.data)
        self.assertEqual(second.data["code"], "invalid_state")
        self.assertEqual(self._audit_count(case.pk), 1)

    def test_illegal_status_edge_is_rejected(self):
        case = self._make_case(status_value=CaseStatus.SUBMITTED)
        self.auth(self.officer_user)

        response = self.client.post(
            reverse("case-change-status", args=[case.pk]),
            {"status": CaseStatus.CLOSED},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)
        case.refresh_from_db()
        self.assertEqual(case.status, CaseStatus.SUBMITTED)

    def test_withdrawn_case_can_be_closed(self):
        case = self._make_case(status_value=CaseStatus.WITHDRAWN)
        self.auth(self.officer_user)

        response = self.client.post(
            reverse("case-change-status", args=[case.pk]),
            {"status": CaseStatus.CLOSED, "reason": "Complainant withdrew."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        case.refresh_from_db()
        self.assertEqual(case.status, CaseStatus.CLOSED)
        self.assertIsNotNone(case.closed_at)

    # ── access ───────────────────────────────────────────────────────

    def test_stranger_cannot_read_case(self):
        case = self._make_case()
        self.auth(self.stranger)

        response = self.client.get(reverse("case-detail", args=[case.pk]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, msg=response.data)
        self.assertEqual(response.data["code"], "unauthorized")

    def test_respondent_reads_but_cannot_submit(self):
        case = self._make_case()
        self.auth(self.landlord)

        response = self.client.get(reverse("case-detail", args=[case.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)

        response = self.client.post(reverse("case-submit", args=[case.pk]), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, msg=response.data)

    def test_party_cannot_resolve(self):
        case = self._make_case(status_value=CaseStatus.UNDER_REVIEW)
        self.auth(self.tenant)

        response = self.client.post(
            reverse("case-resolve", args=[case.pk]),
            {"resolution": "settlement", "details": "Self-service."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, msg=response.data)
        case.refresh_from_db()
        self.assertEqual(case.status, CaseStatus.UNDER_REVIEW)

    def test_complainant_can_update_any_case_field(self):
        case = self._make_case()
        self.auth(self.tenant)

        response = self.client.patch(
            reverse("case-detail", args=[case.pk]),
            {
                "priority": CasePriority.CRITICAL,
                "status": CaseStatus.SUBMITTED,
                "resolution_details": "Landlord has been notified.",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)

        case.refresh_from_db()
        self.assertEqual(case.priority, CasePriority.CRITICAL)
        self.assertEqual(case.status, CaseStatus.SUBMITTED)
        self.assertEqual(case.resolution_details, "Landlord has been notified.")
        audit = CaseUpdate.objects.get(case=case)
        self.assertEqual(audit.update_type, CaseUpdateType.CASE_UPDATED)
        self.assertEqual(audit.old_value["priority"], CasePriority.MEDIUM)

    def test_complainant_status_update_still_follows_the_state_machine(self):
        case = self._make_case()
        self.auth(self.tenant)

        response = self.client.patch(
            reverse("case-detail", args=[case.pk]),
            {"status": CaseStatus.CLOSED},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)
        self.assertEqual(response.data["code"], "invalid_state")
        case.refresh_from_db()
        self.assertEqual(case.status, CaseStatus.DRAFT)

    def test_respondent_cannot_update_case(self):
        case = self._make_case()
        self.auth(self.landlord)

        response = self.client.patch(
            reverse("case-detail", args=[case.pk]),
            {"title": "Rewritten by respondent"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, msg=response.data)

    def test_missing_case_returns_not_found(self):
        self.auth(self.tenant)
        response = self.client.get(
            reverse("case-detail", args=["00000000-0000-0000-0000-000000000000"])
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, msg=response.data)
        self.assertEqual(response.data["code"], "not_found")

    def test_unauthenticated_request_is_rejected(self):
        response = self.client.get(reverse("case-list"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    # ── filing rules ─────────────────────────────────────────────────

    def test_mediator_cannot_file_a_case(self):
        self.auth(self.mediator_user)
        response = self.client.post(
            reverse("case-list"),
            {
                "case_type": CaseType.NOISE_COMPLAINT,
                "title": "Noise",
                "description": "Loud music at night.",
                "respondent_id": self.landlord.pk,
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, msg=response.data)
        self.assertFalse(Case.objects.exists())

    def test_complainant_and_respondent_must_differ(self):
        self.auth(self.tenant)
        response = self.client.post(
            reverse("case-list"),
            {
                "case_type": CaseType.OTHER,
                "title": "Against myself",
                "description": "Not a real dispute.",
                "respondent_id": self.tenant.pk,
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, msg=response.data)
        self.assertEqual(response.data["code"], "validation_failed")

    def test_future_incident_date_is_rejected(self):
        self.auth(self.tenant)
        response = self.client.post(
            reverse("case-list"),
            {
                "case_type": CaseType.REPAIR_NEGLECT,
                "title": "Leaking roof",
                "description": "Water comes through the ceiling.",
                "respondent_id": self.landlord.pk,
                "incident_date": (timezone.localdate() + timedelta(days=3)).isoformat(),
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, msg=response.data)

    # ── assignment ───────────────────────────────────────────────────

    def test_mediator_at_capacity_is_rejected(self):
        self._make_case(
            status_value=CaseStatus.UNDER_REVIEW,
            assigned_mediator=self.mediator,
            assigned_mediator_name="Mina Mediator",
        )
        case = self._make_case(status_value=CaseStatus.SUBMITTED)
        self.auth(self.officer_user)

        response = self.client.post(
            reverse("case-assign", args=[case.pk]),
            {"mediator_id": self.mediator_user.pk},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)
        self.assertEqual(response.data["code"], "conflict")
        case.refresh_from_db()
        self.assertIsNone(case.assigned_mediator_id)
        self.assertEqual(case.status, CaseStatus.SUBMITTED)

    def test_assign_requires_officer_or_mediator(self):
        case = self._make_case(status_value=CaseStatus.SUBMITTED)
        self.auth(self.officer_user)

        response = self.client.post(reverse("case-assign", args=[case.pk]), {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, msg=response.data)

    def test_assigning_a_draft_is_rejected(self):
        case = self._make_case()
        self.auth(self.officer_user)

        response = self.client.post(
            reverse("case-assign", args=[case.pk]),
            {"officer_id": self.officer_user.pk},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)
        self.assertEqual(response.data["code"], "invalid_state")

    # ── notes / search ───────────────────────────────────────────────

    def test_internal_notes_are_hidden_from_parties(self):
        case = self._make_case(
            status_value=CaseStatus.UNDER_REVIEW,
            assigned_officer=self.officer,
            assigned_officer_name="Olu Adeyemi",
        )
        self.auth(self.officer_user)
        response = self.client.post(
            reverse("case-note-list", args=[case.pk]),
            {"content": "Landlord has prior violations.", "is_internal": True},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        response = self.client.post(
            reverse("case-note-list", args=[case.pk]),
            {"content": "Hearing expected next month."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)

        response = self.client.get(reverse("case-note-list", args=[case.pk]))
        self.assertEqual(response.data["count"], 2)

        self.auth(self.tenant)
        response = self.client.get(reverse("case-note-list", args=[case.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["count"], 1)
        self.assertFalse(response.data["results"][0]["is_internal"])

        response = self.client.get(reverse("case-detail", args=[case.pk]))
        self.assertEqual(len(response.data["notes"]), 1)

    def test_party_cannot_write_internal_note(self):
        case = self._make_case()
        self.auth(self.tenant)

        response = self.client.post(
            reverse("case-note-list", args=[case.pk]),
            {"content": "Secret.", "is_internal": True},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, msg=response.data)

    def test_search_is_scoped_to_the_actor(self):
        self._make_case()
        self._make_case(status_value=CaseStatus.SUBMITTED, title="Broken boiler")

        self.auth(self.stranger)
        response = self.client.get(reverse("case-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["count"], 0)

        self.auth(self.tenant)
        response = self.client.get(reverse("case-list"))
        self.assertEqual(response.data["count"], 2)

        response = self.client.get(reverse("case-list"), {"title": "boiler"})
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["status"], CaseStatus.SUBMITTED)

    def test_search_rejects_inverted_date_range(self):
        self.auth(self.tenant)
        response = self.client.get(
            reverse("case-list"),
            {"created_from": "2026-05-10", "created_to": "2026-05-01"},
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    # ── cache ────────────────────────────────────────────────────────

    def test_case_view_is_evicted_after_committed_update(self):
        case = self._make_case()
        self.auth(self.tenant)

        response = self.client.get(reverse("case-detail", args=[case.pk]))
        self.assertEqual(response.data["title"], "Unpaid rent for flat 4B")

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.patch(
                reverse("case-detail", args=[case.pk]),
                {"title": "Unpaid rent and deposit", "claim_amount": "1200.00"},
                format="json",
            )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)

        response = self.client.get(reverse("case-detail", args=[case.pk]))
        self.assertEqual(response.data["title"], "Unpaid rent and deposit")
        self.assertEqual(Decimal(response.data["claim_amount"]), Decimal("1200.00"))
