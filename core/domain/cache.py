"""
core.domain.cache — Time-boxed cache of derived read views.

Statistics, dashboards, hearing calendars and single-case views are
expensive to derive and are cached through Django's cache framework
under actor-scoped keys with a short TTL.  There is no automatic
dependency tracking: every mutating service collects the keys it
invalidates in a ``CacheInvalidation`` and flushes them **after** its
transaction commits, so a rolled-back write never evicts anything.

Staleness bound
---------------
Eviction is best-effort and not part of the database commit.  A reader
may observe a stale aggregate for up to its TTL after a write; this is
accepted for statistics, dashboards and calendars.

Key layout
----------
``case_{case_id}``                                   single-case view
``case_stats_{user_id}``                             statistics
``dashboard_cases_{user_id}``                        dashboard
``hearing_calendar_{user_id}_g{gen}_{from}_{to}``    calendar (YYYYMMDD)
``hearing_calendar_gen_{user_id}``                   calendar generation

Calendars are keyed by date range, so they cannot be evicted by name.
Each user carries a generation counter embedded in the calendar key;
evicting a user's calendars bumps the counter and orphans every range
cached under the previous generation.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Iterable, TypeVar

from django.core.cache import cache

from core.constants import CALENDAR_GENERATION_TTL
from core.domain.transactions import after_commit

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheKeys:
    """Builders for every aggregate cache key."""

    @staticmethod
    def case(case_id: Any) -> str:
        return f"case_{case_id}"

    @staticmethod
    def statistics(user_id: Any) -> str:
        return f"case_stats_{user_id}"

    @staticmethod
    def dashboard(user_id: Any) -> str:
        return f"dashboard_cases_{user_id}"

    @staticmethod
    def calendar_generation(user_id: Any) -> str:
        return f"hearing_calendar_gen_{user_id}"

    @staticmethod
    def calendar(user_id: Any, generation: int, from_date: date, to_date: date) -> str:
        return (
            f"hearing_calendar_{user_id}_g{generation}_"
            f"{from_date:%Y%m%d}_{to_date:%Y%m%d}"
        )


class AggregateCache:
    """Read-through access to the aggregate cache."""

    @staticmethod
    def get_or_build(key: str, ttl: int, builder: Callable[[], T]) -> T:
        """
        Return the cached value for ``key`` or build, store and return it.

        Exceptions from ``builder`` propagate and nothing is cached.
        """
        value = cache.get(key)
        if value is not None:
            logger.debug("Cache hit: %s", key)
            return value
        value = builder()
        cache.set(key, value, ttl)
        return value

    @staticmethod
    def calendar_generation(user_id: Any) -> int:
        """Current calendar generation for ``user_id`` (0 when unset)."""
        return cache.get(CacheKeys.calendar_generation(user_id), 0)


class CacheInvalidation:
    """
    Unit-of-work collector for cache evictions.

    Services add keys and affected users while they mutate, then call
    ``schedule()`` once; eviction happens after the transaction commits.

    Example::

        invalidation = CacheInvalidation()
        invalidation.case(case.pk)
        invalidation.actors(actor.user_id, case.complainant_id, case.respondent_id)
        invalidation.schedule()
    """

    def __init__(self) -> None:
        self._keys: list[str] = []
        self._calendar_users: list[Any] = []

    def case(self, case_id: Any) -> "CacheInvalidation":
        self._add_key(CacheKeys.case(case_id))
        return self

    def actors(self, *user_ids: Any) -> "CacheInvalidation":
        """Evict statistics, dashboard and calendars for every given user."""
        for user_id in user_ids:
            if user_id is None:
                continue
            self._add_key(CacheKeys.statistics(user_id))
            self._add_key(CacheKeys.dashboard(user_id))
            if user_id not in self._calendar_users:
                self._calendar_users.append(user_id)
        return self

    @property
    def keys(self) -> list[str]:
        return list(self._keys)

    def schedule(self) -> None:
        """Flush the collected evictions once the transaction commits."""
        keys = list(self._keys)
        calendar_users = list(self._calendar_users)
        if not keys and not calendar_users:
            return
        after_commit(
            lambda: _flush(keys, calendar_users),
            label=f"cache eviction of {len(keys)} key(s)",
        )

    def _add_key(self, key: str) -> None:
        if key not in self._keys:
            self._keys.append(key)


def _flush(keys: Iterable[str], calendar_users: Iterable[Any]) -> None:
    keys = list(keys)
    cache.delete_many(keys)
    for user_id in calendar_users:
        generation_key = CacheKeys.calendar_generation(user_id)
        generation = cache.get(generation_key, 0)
        cache.set(generation_key, generation + 1, CALENDAR_GENERATION_TTL)
    logger.debug("Evicted cache keys %s", keys)
