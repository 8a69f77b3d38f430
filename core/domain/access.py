"""
core.domain.access — Actor resolution and capability-based access control.

Every request is bound to exactly one ``Actor`` value, resolved once from
the authenticated user and passed explicitly into every service call.
Services never read the "current user" from ambient state.

╔══════════════════════════════════════════════════════════════════╗
║  Access is role **and relationship** based.                     ║
║    AdminActor     full access to every case and hearing.        ║
║    OfficerActor   broad officer operations on any case; reads   ║
║                   only cases assigned to the officer.           ║
║    MediatorActor  reads cases where they are the mediator.      ║
║    PartyActor     tenants / landlords; reads cases where they   ║
║                   are complainant or respondent.                ║
╚══════════════════════════════════════════════════════════════════╝

The variant is chosen once by ``resolve_actor`` from the user's role.
The external-id → internal-id step (user → ``RCDOfficer`` /
``Mediator`` profile) happens in the same place, so services compare
``case.assigned_officer_id`` against ``actor.officer_id`` directly.

Single-resource operations call ``actor.require(case, Capability.X)``.
List operations apply ``actor.scope_cases(qs)`` /
``actor.scope_hearings(qs)`` as query predicates instead of filtering
after the fact.

Usage::

    from core.domain.access import Capability, actor_for_request

    actor = actor_for_request(request)
    actor.require(case, Capability.SUBMIT)
    visible = actor.scope_cases(Case.objects.all())
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.apps import apps
from django.db.models import Q, QuerySet

from core.constants import RoleNames
from core.domain.exceptions import PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User
    from cases.models import Case


class Capability(str, enum.Enum):
    """Operations an actor may perform on a specific case."""

    READ = "read"
    UPDATE = "update"
    SUBMIT = "submit"
    ADD_NOTE = "add_note"
    VIEW_INTERNAL_NOTES = "view_internal_notes"
    MANAGE_PARTICIPANTS = "manage_participants"
    ASSIGN = "assign"
    SCHEDULE_HEARING = "schedule_hearing"
    MANAGE_HEARINGS = "manage_hearings"
    RESOLVE = "resolve"
    REOPEN = "reopen"
    CHANGE_STATUS = "change_status"


# Officer-capability operations that do not depend on case assignment.
_OFFICER_BROAD = frozenset({
    Capability.UPDATE,
    Capability.SUBMIT,
    Capability.ASSIGN,
    Capability.SCHEDULE_HEARING,
    Capability.MANAGE_HEARINGS,
    Capability.MANAGE_PARTICIPANTS,
    Capability.RESOLVE,
    Capability.REOPEN,
    Capability.CHANGE_STATUS,
})

_CAPABILITY_MESSAGES: dict[Capability, str] = {
    Capability.READ: "You do not have access to this case.",
    Capability.UPDATE: "Only the complainant or an officer can update this case.",
    Capability.SUBMIT: "Only the complainant or an officer can submit this case.",
    Capability.ADD_NOTE: "You cannot add notes to this case.",
    Capability.ASSIGN: "Only officers can assign cases.",
    Capability.SCHEDULE_HEARING: "Only officers can schedule hearings.",
    Capability.MANAGE_HEARINGS: "Only officers can manage hearings.",
    Capability.MANAGE_PARTICIPANTS: "Only officers can manage case participants.",
    Capability.RESOLVE: "Only officers can resolve cases.",
    Capability.REOPEN: "Only officers can reopen cases.",
    Capability.CHANGE_STATUS: "Only officers can change case status.",
}


@dataclass(frozen=True)
class Actor:
    """
    Base actor.  Holds the authenticated user and its display name.

    Subclasses override ``capabilities_for`` and the two scope methods.
    """

    user: Any
    display_name: str

    role_name = ""
    can_file_cases = True

    @property
    def user_id(self) -> Any:
        return self.user.pk

    @property
    def is_officer(self) -> bool:
        """True for actors holding officer capability (officers and admins)."""
        return False

    def capabilities_for(self, case: Case) -> frozenset[Capability]:
        return frozenset()

    def can(self, case: Case, capability: Capability) -> bool:
        return capability in self.capabilities_for(case)

    def require(self, case: Case, capability: Capability, message: str = "") -> None:
        """
        Raise ``PermissionDenied`` unless this actor holds ``capability``
        on ``case``.
        """
        if not self.can(case, capability):
            raise PermissionDenied(
                message or _CAPABILITY_MESSAGES.get(
                    capability, "You do not have permission to perform this action.",
                )
            )

    def require_officer(self, message: str = "") -> None:
        """Guard for officer operations that are not tied to one case."""
        if not self.is_officer:
            raise PermissionDenied(message or "This operation requires officer capability.")

    def can_read_hearing(self, hearing: Any) -> bool:
        return self.can(hearing.case, Capability.READ)

    def scope_cases(self, queryset: QuerySet) -> QuerySet:
        return queryset.none()

    def scope_hearings(self, queryset: QuerySet) -> QuerySet:
        return queryset.none()

    def is_party_to(self, case: Case) -> bool:
        return self.user_id is not None and self.user_id in (
            case.complainant_id,
            case.respondent_id,
        )


@dataclass(frozen=True)
class AdminActor(Actor):
    """System administrator (``Admin`` role or Django superuser)."""

    role_name = RoleNames.ADMIN

    @property
    def is_officer(self) -> bool:
        return True

    def capabilities_for(self, case: Case) -> frozenset[Capability]:
        return frozenset(Capability)

    def scope_cases(self, queryset: QuerySet) -> QuerySet:
        return queryset

    def scope_hearings(self, queryset: QuerySet) -> QuerySet:
        return queryset


@dataclass(frozen=True)
class OfficerActor(Actor):
    """
    RCD officer.  ``officer_id`` is the internal ``RCDOfficer`` id, or
    ``None`` when the user holds the role without an officer profile.
    """

    officer_id: Any = None

    role_name = RoleNames.RCD_OFFICER

    @property
    def is_officer(self) -> bool:
        return True

    def capabilities_for(self, case: Case) -> frozenset[Capability]:
        caps = set(_OFFICER_BROAD)
        if self.officer_id is not None and case.assigned_officer_id == self.officer_id:
            caps |= {
                Capability.READ,
                Capability.ADD_NOTE,
                Capability.VIEW_INTERNAL_NOTES,
            }
        return frozenset(caps)

    def can_read_hearing(self, hearing: Any) -> bool:
        if self.officer_id is not None and self.officer_id in (
            hearing.presiding_officer_id,
            hearing.clerk_id,
        ):
            return True
        return super().can_read_hearing(hearing)

    def scope_cases(self, queryset: QuerySet) -> QuerySet:
        if self.officer_id is None:
            return queryset.none()
        return queryset.filter(assigned_officer_id=self.officer_id)

    def scope_hearings(self, queryset: QuerySet) -> QuerySet:
        if self.officer_id is None:
            return queryset.none()
        return queryset.filter(
            Q(presiding_officer_id=self.officer_id)
            | Q(clerk_id=self.officer_id)
            | Q(case__assigned_officer_id=self.officer_id)
        )


@dataclass(frozen=True)
class MediatorActor(Actor):
    """Mediator.  ``mediator_id`` is the internal ``Mediator`` id."""

    mediator_id: Any = None

    role_name = RoleNames.MEDIATOR
    can_file_cases = False

    def capabilities_for(self, case: Case) -> frozenset[Capability]:
        if self.mediator_id is not None and case.assigned_mediator_id == self.mediator_id:
            return frozenset({
                Capability.READ,
                Capability.ADD_NOTE,
                Capability.VIEW_INTERNAL_NOTES,
            })
        return frozenset()

    def scope_cases(self, queryset: QuerySet) -> QuerySet:
        if self.mediator_id is None:
            return queryset.none()
        return queryset.filter(assigned_mediator_id=self.mediator_id)

    def scope_hearings(self, queryset: QuerySet) -> QuerySet:
        if self.mediator_id is None:
            return queryset.none()
        return queryset.filter(case__assigned_mediator_id=self.mediator_id)


@dataclass(frozen=True)
class PartyActor(Actor):
    """Tenant, landlord, or any user without a staff role."""

    role_name = ""

    def capabilities_for(self, case: Case) -> frozenset[Capability]:
        if not self.is_party_to(case):
            return frozenset()
        caps = {Capability.READ, Capability.ADD_NOTE}
        if case.complainant_id == self.user_id:
            caps |= {Capability.UPDATE, Capability.SUBMIT}
        return frozenset(caps)

    def scope_cases(self, queryset: QuerySet) -> QuerySet:
        return queryset.filter(
            Q(complainant_id=self.user_id) | Q(respondent_id=self.user_id)
        )

    def scope_hearings(self, queryset: QuerySet) -> QuerySet:
        return queryset.filter(
            Q(case__complainant_id=self.user_id) | Q(case__respondent_id=self.user_id)
        )


# ── Resolution ──────────────────────────────────────────────────────


def resolve_display_name(user: User) -> str:
    """Display name used for audit attribution."""
    return user.get_full_name() or user.get_username()


def resolve_actor(user: User) -> Actor:
    """
    Build the ``Actor`` variant for ``user``.

    Officers and mediators are looked up by user to obtain their internal
    profile id; this is the only place that lookup happens.  Deactivated
    profiles are treated as missing.
    """
    display_name = resolve_display_name(user)
    role = getattr(user, "role", None)
    role_name = role.name if role is not None else None

    if user.is_superuser or role_name == RoleNames.ADMIN:
        return AdminActor(user=user, display_name=display_name)

    if role_name == RoleNames.RCD_OFFICER:
        RCDOfficer = apps.get_model("cases", "RCDOfficer")
        officer_id = (
            RCDOfficer.objects
            .filter(user=user, is_active=True)
            .values_list("id", flat=True)
            .first()
        )
        return OfficerActor(user=user, display_name=display_name, officer_id=officer_id)

    if role_name == RoleNames.MEDIATOR:
        Mediator = apps.get_model("cases", "Mediator")
        mediator_id = (
            Mediator.objects
            .filter(user=user, is_active=True)
            .values_list("id", flat=True)
            .first()
        )
        return MediatorActor(user=user, display_name=display_name, mediator_id=mediator_id)

    return PartyActor(user=user, display_name=display_name)


_REQUEST_ACTOR_ATTR = "_resolved_actor"


def actor_for_request(request: Any) -> Actor:
    """
    Return the ``Actor`` for an authenticated DRF request, resolving it on
    first use and memoizing it on the request object.
    """
    actor = getattr(request, _REQUEST_ACTOR_ATTR, None)
    if actor is None:
        actor = resolve_actor(request.user)
        setattr(request, _REQUEST_ACTOR_ATTR, actor)
    return actor
