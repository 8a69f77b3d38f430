"""
core.domain.transactions — Helpers for safe state transitions.

Provides utilities that wrap ``select_for_update`` and
``transaction.on_commit`` into reusable patterns so that the case and
hearing service layers follow the same concurrency-safe approach.

Design goals
------------
* State-transition reads always lock the row first (``select_for_update``)
  and re-check the current status inside the same transaction, so two
  concurrent transitions cannot both succeed from the same source state.
* Side effects that must not roll back the write (notifications, cache
  eviction) run only after the outermost transaction commits.

Usage::

    from core.domain.transactions import after_commit, guard_transition, lock_for_update

    @transaction.atomic
    def submit(case_id, actor):
        case = lock_for_update(Case, case_id)
        guard_transition(case.status, CaseStatus.SUBMITTED, ALLOWED_TRANSITIONS)
        ...
        after_commit(lambda: notify(...), label="notify case submitted")
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, TypeVar

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models, transaction

from core.domain.exceptions import InvalidTransition, NotFound

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=models.Model)


def lock_for_update(
    model_class: type[M],
    pk: Any,
    *,
    select_related: Iterable[str] = (),
    **filters: Any,
) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class:    The Django model class.
        pk:             Primary key value.
        select_related: Forward relations to join in the same query.
        **filters:      Extra lookups the row must satisfy (e.g.
                        ``is_active=True``); a row that fails them is
                        reported as missing.

    Returns:
        The locked model instance.

    Raises:
        NotFound: If no matching row exists.
    """
    qs = model_class.objects.select_for_update(of=("self",))
    if select_related:
        qs = qs.select_related(*select_related)
    try:
        return qs.get(pk=pk, **filters)
    except (model_class.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFound(f"{model_class._meta.verbose_name.title()} {pk} not found.")


def guard_transition(
    current: str,
    target: str,
    allowed: Mapping[str, Iterable[str]],
    *,
    reason: str | None = None,
) -> None:
    """
    Raise ``InvalidTransition`` unless ``current → target`` is an edge of
    ``allowed``.

    Args:
        current: Status read from the locked row.
        target:  Requested status.
        allowed: Map of source status → permitted target statuses.
        reason:  Optional explanation appended to the error message.
    """
    if target not in allowed.get(current, ()):
        raise InvalidTransition(
            current=str(current),
            target=str(target),
            reason=reason,
        )


def after_commit(fn: Callable[[], Any], *, label: str) -> None:
    """
    Run ``fn`` once the current transaction commits, never before.

    Failures are logged and do not propagate: the triggering write has
    already committed and must not be reported as failed.  Outside a
    transaction ``fn`` runs immediately.

    Args:
        fn:    Zero-argument callable.
        label: Short description used in the failure log line.
    """

    def _run() -> None:
        try:
            fn()
        except Exception:
            logger.exception("Post-commit action failed: %s", label)

    transaction.on_commit(_run)
