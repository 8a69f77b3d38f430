"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF exception handler for the domain exceptions.
access             Actor resolution and capability checks.
transactions       ``select_for_update`` / transition guard / post-commit helpers.
sequences          Race-free per-bucket sequence allocation.
cache              Aggregate cache keys and post-commit eviction.
notifications      Notification creation and post-commit hooks.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.access import Capability, actor_for_request
    from core.domain.transactions import after_commit, lock_for_update
    from core.domain.cache import CacheInvalidation
"""
