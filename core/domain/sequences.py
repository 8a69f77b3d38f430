"""
core.domain.sequences — Race-free sequence allocation per numbering bucket.

Case and hearing numbers embed a per-month sequence.  Counting the rows
that already carry a prefix and adding one is not safe under concurrent
creation: two requests can read the same count before either commits.
Instead every bucket owns one ``SequenceCounter`` row that is locked with
``select_for_update`` and incremented in the database.

The lock is held until the caller's outermost transaction commits, so a
rolled-back case creation also rolls back its sequence number.

Usage::

    from core.domain.sequences import next_sequence

    seq = next_sequence("RA", year=2026, month=3)   # 1, 2, 3, ...
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import F

logger = logging.getLogger(__name__)


@transaction.atomic
def next_sequence(prefix: str, *, year: int, month: int) -> int:
    """
    Allocate the next value in the ``(prefix, year, month)`` bucket.

    Args:
        prefix: Numbering prefix (``"RA"``, ``"HE"``, ...).
        year:   Four-digit year of the bucket.
        month:  Month of the bucket (1–12).

    Returns:
        The newly allocated sequence value, starting at 1 for a fresh
        bucket.
    """
    from core.models import SequenceCounter

    # get_or_create retries the lookup itself if a concurrent insert of
    # the same bucket wins the unique constraint.
    counter, _ = (
        SequenceCounter.objects
        .select_for_update()
        .get_or_create(prefix=prefix, year=year, month=month)
    )

    SequenceCounter.objects.filter(pk=counter.pk).update(
        last_value=F("last_value") + 1,
    )
    counter.refresh_from_db(fields=["last_value"])

    logger.debug(
        "Allocated sequence %d in bucket %s/%d/%02d",
        counter.last_value,
        prefix,
        year,
        month,
    )
    return counter.last_value
