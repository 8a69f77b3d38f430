"""
Integration tests — multi-identifier login.

Endpoint under test:  POST /api/accounts/auth/login/
                      (named URL: accounts:login)
Request payload:      {"identifier": "<username|email|phone|national_id>",
                       "password": "<password>"}
Success response:     HTTP 200, {"access": "...", "refresh": "...", "user": {...}}
Failure response:     HTTP 400 from CustomTokenObtainPairSerializer.validate
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import Role
from core.constants import RoleNames

User = get_user_model()

# ── Constants ────────────────────────────────────────────────────────────────
_PASSWORD = "Str0ng!Pass99"

_USER_FIELDS = {
    "username":     "login_test_user",
    "email":        "login_test_user@example.com",
    "phone_number": "09130000099",
    "national_id":  "8800000099",
    "first_name":   "Login",
    "last_name":    "Tester",
}


class TestAuthLoginMultiIdentifier(TestCase):
    """
    Login accepts any of the four unique identifiers plus the password.
    """

    @classmethod
    def setUpTestData(cls):
        cls.tenant_role, _ = Role.objects.get_or_create(name=RoleNames.TENANT)
        cls.user = User.objects.create_user(
            password=_PASSWORD,
            role=cls.tenant_role,
            **_USER_FIELDS,
        )

    def setUp(self):
        self.client = APIClient()
        self.login_url = reverse("accounts:login")

    # ── Helper ───────────────────────────────────────────────────────────────

    def _post_login(self, identifier: str, password: str):
        return self.client.post(
            self.login_url,
            {"identifier": identifier, "password": password},
            format="json",
        )

    def _assert_login_ok(self, identifier: str) -> dict:
        resp = self._post_login(identifier, _PASSWORD)
        self.assertEqual(
            resp.status_code,
            status.HTTP_200_OK,
            msg=f"Login with {identifier!r} failed: {resp.data}",
        )
        self.assertIn("access", resp.data)
        self.assertIn("refresh", resp.data)
        self.assertEqual(resp.data["user"]["id"], self.user.pk)
        return resp.data

    # ── Success cases ────────────────────────────────────────────────────────

    def test_login_with_username(self):
        self._assert_login_ok(_USER_FIELDS["username"])

    def test_login_with_email(self):
        self._assert_login_ok(_USER_FIELDS["email"])

    def test_login_with_phone_number(self):
        self._assert_login_ok(_USER_FIELDS["phone_number"])

    def test_login_with_national_id(self):
        self._assert_login_ok(_USER_FIELDS["national_id"])

    def test_access_token_carries_role_claim(self):
        data = self._assert_login_ok(_USER_FIELDS["username"])
        token = AccessToken(data["access"])
        self.assertEqual(token["role"], RoleNames.TENANT)

    def test_user_without_role_gets_null_role_claim(self):
        User.objects.create_user(
            username="roleless",
            password=_PASSWORD,
            email="roleless@example.com",
            national_id="8800000100",
            phone_number="09130000100",
        )
        resp = self._post_login("roleless", _PASSWORD)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIsNone(AccessToken(resp.data["access"])["role"])

    # ── Failure cases ────────────────────────────────────────────────────────

    def test_wrong_password_is_rejected(self):
        resp = self._post_login(_USER_FIELDS["username"], "not-the-password")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertNotIn("access", resp.data)

    def test_unknown_identifier_is_rejected(self):
        resp = self._post_login("nobody@example.com", _PASSWORD)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_fields_are_rejected(self):
        resp = self.client.post(self.login_url, {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("identifier", resp.data)
        self.assertIn("password", resp.data)

    def test_inactive_user_cannot_log_in(self):
        User.objects.filter(pk=self.user.pk).update(is_active=False)
        resp = self._post_login(_USER_FIELDS["username"], _PASSWORD)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_refresh_token_yields_new_access_token(self):
        data = self._assert_login_ok(_USER_FIELDS["username"])
        resp = self.client.post(
            reverse("accounts:token-refresh"),
            {"refresh": data["refresh"]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn("access", resp.data)

    def test_login_response_embeds_user_profile(self):
        data = self._assert_login_ok(_USER_FIELDS["username"])
        self.assertEqual(set(data), {"access", "refresh", "user"})
        self.assertEqual(data["user"]["username"], _USER_FIELDS["username"])
        self.assertIn("role_detail", data["user"])
        self.assertIsNone(data["user"]["officer_id"])
        self.assertIsNone(data["user"]["mediator_id"])
