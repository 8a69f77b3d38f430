"""
core.domain.notifications — Notification creation and post-commit hooks.

Centralises notification creation so every app uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **Fire-and-forget** — case and hearing services never call
  ``NotificationService.create`` directly.  They call one of the
  ``notify_*`` hooks below, which register the delivery with
  ``after_commit``.  A failed delivery is logged and never rolls back or
  fails the operation that triggered it.
* **Supports multiple recipients** — pass a single ``User`` or an
  iterable of ``User`` instances; ``None`` entries and duplicates are
  dropped.
* **Generic relation** — ``related_object`` is optional; if provided
  its ``ContentType`` and PK are stored via the ``Notification`` model's
  ``GenericForeignKey``.

Usage::

    from core.domain.notifications import notify_case_status_changed

    notify_case_status_changed(case, old_status, new_status, actor=actor)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.contrib.contenttypes.models import ContentType
from django.db import models

from core.domain.transactions import after_commit

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification

logger = logging.getLogger(__name__)

# ── Event-type → human-readable templates ───────────────────────────
_EVENT_TEMPLATES: dict[str, tuple[str, str]] = {
    # event_type: (title_template, message_template)
    "case_status_changed": (
        "Case Status Updated",
        "Case {case_number} changed status from {old_status} to {new_status}.",
    ),
    "case_assigned": (
        "Case Assigned",
        "Case {case_number} has been assigned to you.",
    ),
    "hearing_scheduled": (
        "Hearing Scheduled",
        "Hearing {hearing_number} for case {case_number} is scheduled on "
        "{hearing_date} at {start_time}.",
    ),
    "hearing_cancelled": (
        "Hearing Cancelled",
        "Hearing {hearing_number} for case {case_number} has been cancelled.",
    ),
}


class NotificationService:
    """
    Stateless helper for creating ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def create(
        cls,
        *,
        actor: Any,
        recipients: User | Iterable[User | None],
        event_type: str,
        payload: dict[str, Any] | None = None,
        related_object: models.Model | None = None,
    ) -> list[Notification]:
        """
        Create one ``Notification`` per distinct recipient.

        Args:
            actor:          Display name of the user who performed the
                            action; used for logging only.
            recipients:     A single ``User`` or iterable of ``User``
                            instances.
            event_type:     Key into ``_EVENT_TEMPLATES``.  If unknown
                            the raw event_type is used as title.
            payload:        Values interpolated into the message template.
            related_object: Optional model instance linked via
                            ``GenericForeignKey``.

        Returns:
            List of created ``Notification`` instances.
        """
        from core.models import Notification  # lazy import

        if isinstance(recipients, models.Model):
            recipients = [recipients]

        unique: list[User] = []
        seen: set[Any] = set()
        for recipient in recipients:
            if recipient is None or recipient.pk in seen:
                continue
            seen.add(recipient.pk)
            unique.append(recipient)

        if not unique:
            logger.debug(
                "No recipients for event_type=%s by actor=%s",
                event_type,
                actor,
            )
            return []

        title, template = _EVENT_TEMPLATES.get(
            event_type,
            (event_type.replace("_", " ").title(), f"Event: {event_type}"),
        )
        message = template.format(**(payload or {}))

        content_type = None
        object_id = None
        if related_object is not None:
            content_type = ContentType.objects.get_for_model(related_object)
            object_id = str(related_object.pk)

        notifications = Notification.objects.bulk_create([
            Notification(
                recipient=recipient,
                title=title,
                message=message,
                content_type=content_type,
                object_id=object_id,
            )
            for recipient in unique
        ])

        logger.info(
            "Created %d notification(s) [%s] by actor=%s",
            len(notifications),
            event_type,
            actor,
        )
        return notifications


# ═══════════════════════════════════════════════════════════════════
#  Post-commit hooks
# ═══════════════════════════════════════════════════════════════════


def _schedule(*, event_type: str, actor: Any, recipients: list, payload: dict,
              related_object: models.Model) -> None:
    after_commit(
        lambda: NotificationService.create(
            actor=actor,
            recipients=recipients,
            event_type=event_type,
            payload=payload,
            related_object=related_object,
        ),
        label=f"notification {event_type}",
    )


def _case_parties(case) -> list:
    return [case.complainant, case.respondent]


def notify_case_status_changed(case, old_status: str, new_status: str, *, actor) -> None:
    """Tell both parties that ``case`` moved between statuses."""
    _schedule(
        event_type="case_status_changed",
        actor=actor.display_name,
        recipients=_case_parties(case),
        payload={
            "case_number": case.case_number,
            "old_status": old_status,
            "new_status": new_status,
        },
        related_object=case,
    )


def notify_case_assigned(case, *, actor, officer=None, mediator=None) -> None:
    """Tell newly assigned staff that ``case`` is theirs."""
    recipients = [
        profile.user for profile in (officer, mediator) if profile is not None
    ]
    _schedule(
        event_type="case_assigned",
        actor=actor.display_name,
        recipients=recipients,
        payload={"case_number": case.case_number},
        related_object=case,
    )


def notify_hearing_scheduled(hearing, *, actor) -> None:
    """Tell both parties and the presiding officer about a new hearing."""
    case = hearing.case
    _schedule(
        event_type="hearing_scheduled",
        actor=actor.display_name,
        recipients=_case_parties(case) + [hearing.presiding_officer.user],
        payload={
            "hearing_number": hearing.hearing_number,
            "case_number": case.case_number,
            "hearing_date": hearing.hearing_date.isoformat(),
            "start_time": hearing.start_time.strftime("%H:%M"),
        },
        related_object=hearing,
    )


def notify_hearing_cancelled(hearing, *, actor) -> None:
    """Tell both parties and the presiding officer a hearing is off."""
    case = hearing.case
    _schedule(
        event_type="hearing_cancelled",
        actor=actor.display_name,
        recipients=_case_parties(case) + [hearing.presiding_officer.user],
        payload={
            "hearing_number": hearing.hearing_number,
            "case_number": case.case_number,
        },
        related_object=hearing,
    )
