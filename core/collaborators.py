"""
External collaborator lookups.

Property listings and tenancy agreements live outside this service.
Case creation only needs to know whether a referenced property or tenancy
exists, so each collaborator is a narrow lookup with a single
``exists(id, timeout=...) -> bool`` method.

The concrete implementation is selected by dotted path in settings::

    PROPERTY_LOOKUP_CLASS = "myproject.registry.PropertyRegistryLookup"
    TENANCY_LOOKUP_CLASS  = "myproject.registry.TenancyRegistryLookup"

Both default to ``AcceptAnyLookup``, which treats every id as existing.
Every call is bounded by ``settings.COLLABORATOR_TIMEOUT_SECONDS``.
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.utils.module_loading import import_string

from core.constants import DEFAULT_COLLABORATOR_TIMEOUT_SECONDS
from core.domain.exceptions import DependencyUnavailable, NotFound

logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_CLASS = "core.collaborators.AcceptAnyLookup"


class ExistenceLookup:
    """Interface for an external registry that answers "does id exist?"."""

    #: Human-readable name used in error messages.
    label = "Resource"

    def exists(self, resource_id: Any, *, timeout: float | None = None) -> bool:
        """
        Return whether ``resource_id`` is known to the registry.

        Implementations must give up after ``timeout`` seconds and raise;
        ``None`` means the implementation's own default.
        """
        raise NotImplementedError


class AcceptAnyLookup(ExistenceLookup):
    """Lookup used when no external registry is configured."""

    def exists(self, resource_id: Any, *, timeout: float | None = None) -> bool:
        return True


def _load(setting_name: str, label: str) -> ExistenceLookup:
    dotted_path = getattr(settings, setting_name, DEFAULT_LOOKUP_CLASS)
    lookup = import_string(dotted_path)()
    lookup.label = label
    return lookup


def property_lookup() -> ExistenceLookup:
    return _load("PROPERTY_LOOKUP_CLASS", "Property")


def tenancy_lookup() -> ExistenceLookup:
    return _load("TENANCY_LOOKUP_CLASS", "Tenancy agreement")


def lookup_timeout() -> float:
    return float(
        getattr(settings, "COLLABORATOR_TIMEOUT_SECONDS", DEFAULT_COLLABORATOR_TIMEOUT_SECONDS)
    )


def ensure_exists(
    lookup: ExistenceLookup,
    resource_id: Any,
    *,
    timeout: float | None = None,
) -> None:
    """
    Raise unless ``lookup`` confirms ``resource_id`` exists.

    ``timeout`` is handed to the lookup unchanged; when omitted the
    configured ``COLLABORATOR_TIMEOUT_SECONDS`` is used.

    Raises
    ------
    NotFound
        The registry answered and the id is unknown.
    DependencyUnavailable
        The registry could not be consulted or did not answer in time.
    """
    if timeout is None:
        timeout = lookup_timeout()
    try:
        found = lookup.exists(resource_id, timeout=timeout)
    except Exception as exc:
        logger.warning(
            "%s lookup failed for id=%s (timeout=%ss): %s",
            lookup.label,
            resource_id,
            timeout,
            exc,
        )
        raise DependencyUnavailable(
            f"{lookup.label} registry is unavailable."
        ) from exc
    if not found:
        raise NotFound(f"{lookup.label} {resource_id} not found.")
