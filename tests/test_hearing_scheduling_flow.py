"""
Hearing scheduling: overlap detection, cancellation and outcomes.

Slots are half-open ``[start, end)`` per presiding officer per date;
touching slots do not conflict and cancelled hearings free their slot.
"""

from __future__ import annotations

from datetime import time, timedelta

import pytest
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role, User
from cases.models import Case, CasePriority, CaseStatus, CaseType, CaseUpdate, CaseUpdateType, RCDOfficer
from core.constants import RoleNames
from hearings.models import Hearing, HearingStatus
from hearings.services import HEARING_TRANSITIONS, intervals_overlap


# ════════════════════════════════════════════════════════════════════
#  Interval arithmetic
# ════════════════════════════════════════════════════════════════════

class TestIntervalsOverlap:

    @pytest.mark.parametrize("a,b,expected", [
        ((time(10), time(11)), (time(10, 30), time(11, 30)), True),
        ((time(10), time(12)), (time(10, 30), time(11)), True),
        ((time(10), time(11)), (time(10), time(11)), True),
        ((time(10), time(11)), (time(11), time(12)), False),
        ((time(11), time(12)), (time(10), time(11)), False),
        ((time(9), time(10)), (time(14), time(15)), False),
    ])
    def test_half_open_overlap(self, a, b, expected):
        assert intervals_overlap(*a, *b) is expected
        assert intervals_overlap(*b, *a) is expected


def test_terminal_hearing_statuses_have_no_edges():
    assert HEARING_TRANSITIONS[HearingStatus.COMPLETED] == frozenset()
    assert HEARING_TRANSITIONS[HearingStatus.CANCELLED] == frozenset()
    assert HearingStatus.CANCELLED not in HEARING_TRANSITIONS[HearingStatus.SCHEDULED]


# ════════════════════════════════════════════════════════════════════
#  API flow
# ════════════════════════════════════════════════════════════════════

def _make_role(name: str) -> Role:
    role, _ = Role.objects.get_or_create(
        name=name,
        defaults={"description": f"Test role: {name}"},
    )
    return role


class TestHearingSchedulingFlow(TestCase):
    @classmethod
    def setUpTestData(cls) -> None:
        officer_role = _make_role(RoleNames.RCD_OFFICER)
        tenant_role = _make_role(RoleNames.TENANT)
        landlord_role = _make_role(RoleNames.LANDLORD)

        cls.password = "H3aring!Pass"

        cls.officer_user = User.objects.create_user(
            username="hs_officer",
            password=cls.password,
            email="hs_officer@rent.test",
            first_name="Priya",
            last_name="Nair",
            national_id="5200000001",
            phone_number="09152000001",
            role=officer_role,
        )
        cls.officer = RCDOfficer.objects.create(
            user=cls.officer_user,
            full_name="Priya Nair",
            employee_number="RCD-0101",
        )
        cls.second_officer_user = User.objects.create_user(
            username="hs_officer_2",
            password=cls.password,
            email="hs_officer_2@rent.test",
            first_name="Tom",
            last_name="Berg",
            national_id="5200000002",
            phone_number="09152000002",
            role=officer_role,
        )
        cls.second_officer = RCDOfficer.objects.create(
            user=cls.second_officer_user,
            full_name="Tom Berg",
            employee_number="RCD-0102",
        )
        cls.tenant = User.objects.create_user(
            username="hs_tenant",
            password=cls.password,
            email="hs_tenant@rent.test",
            national_id="5200000003",
            phone_number="09152000003",
            role=tenant_role,
        )
        cls.landlord = User.objects.create_user(
            username="hs_landlord",
            password=cls.password,
            email="hs_landlord@rent.test",
            national_id="5200000004",
            phone_number="09152000004",
            role=landlord_role,
        )

        cls.case_a = cls._make_case(1)
        cls.case_b = cls._make_case(2)
        cls.draft_case = cls._make_case(3, status_value=CaseStatus.DRAFT)

    @classmethod
    def _make_case(cls, seq: int, *, status_value: str = CaseStatus.UNDER_REVIEW) -> Case:
        return Case.objects.create(
            case_number=f"RA/2026/02/{seq:04d}",
            case_type=CaseType.RENT_ARREARS,
            title=f"Arrears dispute {seq}",
            description="Rent unpaid since January.",
            complainant=cls.tenant,
            complainant_name="hs_tenant",
            respondent=cls.landlord,
            respondent_name="hs_landlord",
            status=status_value,
            priority=CasePriority.MEDIUM,
            assigned_officer=cls.officer,
            assigned_officer_name=cls.officer.full_name,
            created_by=cls.tenant,
        )

    def setUp(self):
        self.client = APIClient()
        self.hearing_date = timezone.localdate() + timedelta(days=14)
        self.auth(self.officer_user)

    def login(self, user: User) -> str:
        response = self.client.post(
            reverse("accounts:login"),
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

    def _schedule(self, case: Case, start: str, end: str, *, officer_user: User | None = None, **extra):
        payload = {
            "case_id": str(case.pk),
            "title": "Hearing",
            "hearing_date": self.hearing_date.isoformat(),
            "start_time": start,
            "end_time": end,
            "presiding_officer_id": (officer_user or self.officer_user).pk,
        }
        payload.update(extra)
        return self.client.post(reverse("hearing-list"), payload, format="json")

    # ── scheduling ───────────────────────────────────────────────────

    def test_schedule_moves_case_to_scheduled_for_hearing(self):
        response = self._schedule(self.case_a, "10:00", "11:00")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        self.assertEqual(response.data["status"], HearingStatus.SCHEDULED)
        self.assertEqual(response.data["presiding_officer_name"], "Priya Nair")

        self.case_a.refresh_from_db()
        self.assertEqual(self.case_a.status, CaseStatus.SCHEDULED_FOR_HEARING)
        self.assertTrue(
            CaseUpdate.objects.filter(
                case=self.case_a,
                update_type=CaseUpdateType.HEARING_SCHEDULED,
            ).exists()
        )

    def test_overlapping_slot_is_rejected_and_nothing_is_written(self):
        first = self._schedule(self.case_a, "10:00", "11:00")
        self.assertEqual(first.status_code, status.HTTP_201_CREATED, msg=first.data)

        response = self._schedule(self.case_b, "10:30", "11:30")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)
        self.assertEqual(response.data["code"], "scheduling_conflict")
        self.assertIn(first.data["hearing_number"], response.data["detail"])

        self.assertEqual(Hearing.objects.count(), 1)
        self.case_b.refresh_from_db()
        self.assertEqual(self.case_b.status, CaseStatus.UNDER_REVIEW)
        self.assertFalse(CaseUpdate.objects.filter(case=self.case_b).exists())

    def test_adjacent_slot_does_not_conflict(self):
        self.assertEqual(self._schedule(self.case_a, "10:00", "11:00").status_code, status.HTTP_201_CREATED)
        response = self._schedule(self.case_b, "11:00", "12:00")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)

    def test_other_officer_may_take_the_same_slot(self):
        self.assertEqual(self._schedule(self.case_a, "10:00", "11:00").status_code, status.HTTP_201_CREATED)
        response = self._schedule(
            self.case_b,
            "10:00",
            "11:00",
            officer_user=self.second_officer_user,
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)

    def test_cancelled_hearing_frees_its_slot(self):
        first = self._schedule(self.case_a, "10:00", "11:00")
        response = self.client.post(
            reverse("hearing-cancel", args=[first.data["id"]]),
            {"reason": "Officer on leave."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)

        response = self._schedule(self.case_b, "10:00", "11:00")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)

    def test_moving_a_hearing_onto_an_overlapping_slot_is_allowed(self):
        first = self._schedule(self.case_a, "10:00", "11:00")
        self.assertEqual(first.status_code, status.HTTP_201_CREATED, msg=first.data)
        second = self._schedule(self.case_b, "13:00", "14:00")
        self.assertEqual(second.status_code, status.HTTP_201_CREATED, msg=second.data)

        response = self.client.patch(
            reverse("hearing-detail", args=[second.data["id"]]),
            {"start_time": "10:30", "end_time": "11:30"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)

        moved = Hearing.objects.get(pk=second.data["id"])
        self.assertEqual(moved.start_time, time(10, 30))
        self.assertEqual(moved.end_time, time(11, 30))
        self.assertEqual(
            Hearing.objects.filter(presiding_officer=self.officer, status=HearingStatus.SCHEDULED).count(),
            2,
        )

    def test_moving_a_hearing_onto_the_same_start_time_is_conflict(self):
        self._schedule(self.case_a, "10:00", "11:00")
        second = self._schedule(self.case_b, "13:00", "14:00")

        response = self.client.patch(
            reverse("hearing-detail", args=[second.data["id"]]),
            {"start_time": "10:00", "end_time": "10:45"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)
        self.assertEqual(response.data["code"], "scheduling_conflict")

        unchanged = Hearing.objects.get(pk=second.data["id"])
        self.assertEqual(unchanged.start_time, time(13, 0))
        self.assertFalse(
            CaseUpdate.objects.filter(
                case=self.case_b,
                update_type=CaseUpdateType.HEARING_UPDATED,
            ).exists()
        )

    def test_end_before_start_is_rejected(self):
        response = self._schedule(self.case_a, "11:00", "10:00")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Hearing.objects.exists())

    def test_past_date_is_rejected(self):
        response = self._schedule(
            self.case_a,
            "10:00",
            "11:00",
            hearing_date=(timezone.localdate() - timedelta(days=1)).isoformat(),
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, msg=response.data)
        self.assertEqual(response.data["code"], "validation_failed")

    def test_draft_case_cannot_be_scheduled(self):
        response = self._schedule(self.draft_case, "10:00", "11:00")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)
        self.assertEqual(response.data["code"], "invalid_state")

    def test_party_cannot_schedule(self):
        self.auth(self.tenant)
        response = self._schedule(self.case_a, "10:00", "11:00")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, msg=response.data)

    def test_unknown_presiding_officer_is_not_found(self):
        response = self._schedule(self.case_a, "10:00", "11:00", officer_user=self.tenant)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, msg=response.data)

    # ── cancellation ─────────────────────────────────────────────────

    def test_cancel_reverts_case_to_under_review(self):
        first = self._schedule(self.case_a, "10:00", "11:00")
        response = self.client.post(
            reverse("hearing-cancel", args=[first.data["id"]]),
            {"reason": "Parties settled privately."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["status"], HearingStatus.CANCELLED)
        self.assertEqual(response.data["cancellation_reason"], "Parties settled privately.")

        self.case_a.refresh_from_db()
        self.assertEqual(self.case_a.status, CaseStatus.UNDER_REVIEW)

    def test_cancelling_twice_is_rejected(self):
        first = self._schedule(self.case_a, "10:00", "11:00")
        url = reverse("hearing-cancel", args=[first.data["id"]])
        self.client.post(url, {"reason": "First."}, format="json")

        response = self.client.post(url, {"reason": "Second."}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)
        self.assertEqual(response.data["code"], "invalid_state")

    # ── updates / outcomes ───────────────────────────────────────────

    def test_illegal_hearing_status_edge_is_rejected(self):
        first = self._schedule(self.case_a, "10:00", "11:00")
        url = reverse("hearing-detail", args=[first.data["id"]])
        self.client.patch(url, {"status": HearingStatus.COMPLETED}, format="json")

        response = self.client.patch(url, {"status": HearingStatus.SCHEDULED}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)
        self.assertEqual(response.data["code"], "invalid_state")

    def test_outcome_requires_completed_hearing(self):
        first = self._schedule(self.case_a, "10:00", "11:00")
        response = self.client.post(
            reverse("hearing-outcome", args=[first.data["id"]]),
            {"outcome": "Too early."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)
        self.assertEqual(response.data["code"], "invalid_state")

    def test_outcome_may_adjourn_and_leaves_case_status(self):
        first = self._schedule(self.case_a, "10:00", "11:00")
        self.client.patch(
            reverse("hearing-detail", args=[first.data["id"]]),
            {"status": HearingStatus.COMPLETED},
            format="json",
        )
        response = self.client.post(
            reverse("hearing-outcome", args=[first.data["id"]]),
            {
                "outcome": "Adjourned for landlord's documents.",
                "minutes": "Both parties present.",
                "final_status": HearingStatus.ADJOURNED,
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["status"], HearingStatus.ADJOURNED)
        self.assertEqual(response.data["minutes"], "Both parties present.")

        self.case_a.refresh_from_db()
        self.assertEqual(self.case_a.status, CaseStatus.SCHEDULED_FOR_HEARING)

    def test_duplicate_hearing_participant_is_conflict(self):
        first = self._schedule(self.case_a, "10:00", "11:00")
        url = reverse("hearing-participant-list", args=[first.data["id"]])
        payload = {
            "participant_id": str(self.tenant.pk),
            "participant_name": "hs_tenant",
            "participant_type": "complainant",
        }
        self.assertEqual(self.client.post(url, payload, format="json").status_code, status.HTTP_201_CREATED)

        response = self.client.post(url, payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, msg=response.data)

        response = self.client.get(url)
        self.assertEqual(response.data["count"], 1)

    # ── reads ────────────────────────────────────────────────────────

    def test_presiding_officer_reads_hearing_of_unassigned_case(self):
        first = self._schedule(
            self.case_a,
            "10:00",
            "11:00",
            officer_user=self.second_officer_user,
        )
        self.auth(self.second_officer_user)
        response = self.client.get(reverse("hearing-detail", args=[first.data["id"]]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)

        response = self.client.get(reverse("case-detail", args=[self.case_a.pk]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, msg=response.data)

    def test_parties_list_hearings_of_their_case(self):
        self._schedule(self.case_a, "09:00", "10:00")
        self._schedule(self.case_a, "13:00", "14:00")

        self.auth(self.landlord)
        response = self.client.get(reverse("case-hearings", args=[self.case_a.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["count"], 2)
        self.assertEqual(
            [row["start_time"] for row in response.data["results"]],
            ["13:00:00", "09:00:00"],
        )
