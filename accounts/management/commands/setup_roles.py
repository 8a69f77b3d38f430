"""
Management command: setup_roles
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Seeds the database with the base **Roles** of the rent-dispute
tribunal.  Capabilities are not stored per role; they are derived at
request time by ``core.domain.access`` from the role name and the
user's relationship to each case.

The command is **idempotent** — safe to run multiple times.  Existing
roles keep their id; only the description is refreshed.

Usage::

    python manage.py setup_roles
"""

from django.core.management.base import BaseCommand

from accounts.models import Role
from core.constants import RoleNames

ROLE_DESCRIPTIONS: dict[str, str] = {
    RoleNames.ADMIN: "Full access to every case and hearing.",
    RoleNames.RCD_OFFICER: (
        "Rent Control Department officer — assigns, schedules, resolves "
        "and reopens cases; reads cases assigned to them."
    ),
    RoleNames.MEDIATOR: "Mediator — reads and annotates cases they mediate.",
    RoleNames.TENANT: "Tenant party to rent disputes.",
    RoleNames.LANDLORD: "Landlord party to rent disputes.",
}


class Command(BaseCommand):
    help = "Seeds the base tribunal roles.  Safe to run multiple times (idempotent)."

    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n══════════════════════════════════════════"
            "\n  Role Setup"
            "\n══════════════════════════════════════════\n"
        ))

        roles_created = 0
        roles_updated = 0

        for role_name, description in ROLE_DESCRIPTIONS.items():
            role, created = Role.objects.get_or_create(
                name=role_name,
                defaults={"description": description},
            )
            if created:
                roles_created += 1
            elif role.description != description:
                role.description = description
                role.save(update_fields=["description"])
                roles_updated += 1

            action = "Created" if created else "Checked"
            self.stdout.write(self.style.SUCCESS(f"  ✔  {action} role: {role_name}"))

        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n──────────────────────────────────────────"
        ))
        self.stdout.write(self.style.SUCCESS(
            f"  Done!  {roles_created} role(s) created, "
            f"{roles_updated} role(s) updated.\n"
        ))
