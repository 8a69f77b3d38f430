"""
Accounts app models.

Defines the single-role system and a custom User model that extends
Django's ``AbstractUser``.  Roles only name the actor kind (Admin,
RCD officer, mediator, tenant, landlord); what a user may do with a
given case is decided by ``core.domain.access`` from the role **and**
the user's relationship to that case.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models


class Role(models.Model):
    """
    Named actor role.

    Default roles are seeded by ``manage.py setup_roles``:
        Admin, RCD_Officer, Mediator, Tenant, Landlord.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Role Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )

    class Meta:
        verbose_name = "Role"
        verbose_name_plural = "Roles"
        ordering = ["name"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    """
    Custom user model for the rent-dispute tribunal.

    Login is supported via *any one* of username / national_id /
    phone_number / email together with the password.

    Each user holds at most **one** role at a time (FK to ``Role``).
    A user without a role is treated as a party (tenant / landlord).
    """

    national_id = models.CharField(
        max_length=20,
        unique=True,
        verbose_name="National ID",
        db_index=True,
    )
    phone_number = models.CharField(
        max_length=20,
        unique=True,
        verbose_name="Phone Number",
        db_index=True,
    )
    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )

    role = models.ForeignKey(
        Role,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
        verbose_name="Assigned Role",
    )

    # Fields required when creating a superuser via CLI
    REQUIRED_FIELDS = ["email", "national_id", "phone_number",
                       "first_name", "last_name"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        role_name = self.role.name if self.role else "No Role"
        return f"{self.username} ({self.get_full_name()}) - {role_name}"

    def has_role(self, role_name: str) -> bool:
        """Check if the user's current role matches the given name."""
        return self.role is not None and self.role.name == role_name
