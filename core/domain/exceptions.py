"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations raised by the case
and hearing service layers.  They are deliberately **not** DRF exceptions
so that the domain layer stays framework-agnostic; the global handler in
``core.domain.exception_handler`` maps them onto HTTP responses.

Every exception carries a stable machine-readable ``code`` that clients
can branch on, next to the human-readable message.

Mapping cheatsheet
------------------
┌───────────────────────┬────────────────────────┬──────┐
│ Domain Exception      │ code                   │ HTTP │
├───────────────────────┼────────────────────────┼──────┤
│ DomainError           │ validation_failed      │ 400  │
│ PermissionDenied      │ unauthorized           │ 403  │
│ NotFound              │ not_found              │ 404  │
│ Conflict              │ conflict               │ 409  │
│ SchedulingConflict    │ scheduling_conflict    │ 409  │
│ InvalidTransition     │ invalid_state          │ 409  │
│ DependencyUnavailable │ dependency_unavailable │ 503  │
└───────────────────────┴────────────────────────┴──────┘

Usage inside a service::

    from core.domain.exceptions import InvalidTransition

    if target not in ALLOWED_TRANSITIONS[case.status]:
        raise InvalidTransition(current=case.status, target=target)
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Raised directly for missing or invalid input (``ValidationFailed``).
    Maps to HTTP 400.
    """

    code = "validation_failed"

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class PermissionDenied(DomainError):
    """
    The acting user lacks the role or case relationship required for
    this operation.

    Maps to HTTP 403.
    """

    code = "unauthorized"

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested case, hearing, officer or mediator does not exist.

    Maps to HTTP 404.
    """

    code = "not_found"

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: duplicate participant, duplicate number, mediator at
    capacity.  Maps to HTTP 409.
    """

    code = "conflict"

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class SchedulingConflict(Conflict):
    """
    A hearing slot overlaps an existing non-cancelled hearing of the same
    presiding officer.

    ``conflicting`` holds the hearing numbers that overlap the requested
    interval.
    """

    code = "scheduling_conflict"

    def __init__(
        self,
        message: str = "Hearing time conflicts with existing hearings for the presiding officer.",
        *,
        conflicting: list[str] | None = None,
    ) -> None:
        self.conflicting = list(conflicting or [])
        if self.conflicting:
            message = f"{message} Conflicting hearings: {', '.join(self.conflicting)}."
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A state-machine transition that is not allowed from the current status.

    Inherits from ``Conflict`` because an invalid transition IS a conflict
    with the resource's current state.  Maps to HTTP 409.

    Example::

        raise InvalidTransition(
            current="draft",
            target="resolved",
            reason="Only cases under review can be resolved.",
        )
    """

    code = "invalid_state"

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            message = " ".join(parts) + "."
            if reason:
                message = f"{message} {reason}"
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason


class DependencyUnavailable(DomainError):
    """
    An external collaborator (property registry, tenancy registry) could
    not be consulted.

    Maps to HTTP 503.
    """

    code = "dependency_unavailable"

    def __init__(self, message: str = "A required external service is unavailable.") -> None:
        super().__init__(message)
